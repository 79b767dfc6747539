"""
LLM Client - Unified interface for multiple LLM providers.
Supports OpenAI, Mistral, OpenRouter, Ollama and an offline mock.
"""
from openai import AsyncOpenAI
from typing import Optional
import asyncio
import json
import logging
import re

from ..config import PROVIDERS_REQUIRING_KEY, Settings, get_llm_config
from ..errors import ConfigurationError, LLMError, LLMTimeoutError

logger = logging.getLogger(__name__)


class LLMClient:
    """Async LLM client with OpenAI-compatible API."""

    def __init__(self, config: Optional[Settings] = None):
        llm_config = get_llm_config(config)
        self.provider = llm_config["provider"]
        self.model = llm_config["model"]
        self.temperature = llm_config["temperature"]
        self.max_tokens = llm_config["max_tokens"]
        self.timeout = llm_config["timeout"]

        # Fail before any request is attempted, not with a network error later
        if self.provider in PROVIDERS_REQUIRING_KEY and not llm_config["api_key"]:
            raise ConfigurationError(
                f"API key is missing for provider '{self.provider}'. Set LLM_API_KEY.",
                setting_name="llm_api_key",
            )

        if self.provider == "mock":
            from .mock_llm import MockLLMClient
            self._mock = MockLLMClient()
            self.model = self._mock.model
            self.client = None
        else:
            self._mock = None
            self.client = AsyncOpenAI(
                # Ollama ignores the key but the SDK insists on one
                api_key=llm_config["api_key"] or "ollama",
                base_url=llm_config["base_url"]
            )
        logger.info(f"LLM client ready: provider={self.provider}, model={self.model}")

    async def chat(
        self,
        messages: list[dict],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        schema: Optional[dict] = None
    ) -> str:
        """
        Send a chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content'
            temperature: Override default temperature
            max_tokens: Override default max tokens
            schema: JSON schema the response must follow

        Returns:
            The assistant's response content ("" when the model sent none)
        """
        if self._mock is not None:
            return await self._mock.chat(messages, temperature, max_tokens, schema)

        kwargs = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature if temperature is None else temperature,
            "max_tokens": max_tokens or self.max_tokens,
        }

        # Structured output support (not all providers support this)
        if schema is not None:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": "structured_itinerary", "schema": schema},
            }

        try:
            response = await self.client.chat.completions.create(**kwargs)
        except Exception as e:
            # If structured output is rejected, retry without it
            if "response_format" not in kwargs:
                raise
            logger.warning(f"Provider rejected response_format, retrying without it: {e}")
            del kwargs["response_format"]
            response = await self.client.chat.completions.create(**kwargs)
        return response.choices[0].message.content or ""

    async def generate(
        self,
        prompt: str,
        system_directive: Optional[str] = None,
        prior_turns: Optional[list[dict]] = None,
        schema: Optional[dict] = None,
        temperature: Optional[float] = None
    ) -> str:
        """
        Run one generation with a bounded wait.

        The provider is treated as stateless: the directive and every prior
        turn are sent again on each call.

        Raises:
            LLMTimeoutError: no answer within the configured timeout
            LLMError: any other provider failure
        """
        messages = []
        if system_directive:
            messages.append({"role": "system", "content": system_directive})
        messages.extend(prior_turns or [])
        messages.append({"role": "user", "content": prompt})

        try:
            return await asyncio.wait_for(
                self.chat(messages, temperature=temperature, schema=schema),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise LLMTimeoutError(
                f"No response from {self.provider} within {self.timeout}s",
                cause=e,
                provider=self.provider,
                timeout_seconds=self.timeout,
            )
        except Exception as e:
            raise LLMError(f"LLM call to {self.provider} failed", cause=e, provider=self.provider)

    async def generate_json(
        self,
        prompt: str,
        schema: dict,
        temperature: Optional[float] = None
    ) -> dict:
        """
        Run a schema-constrained generation and parse the JSON response.

        Returns:
            Parsed JSON dict ({} when nothing parseable came back)
        """
        response = await self.generate(prompt, schema=schema, temperature=temperature)
        return parse_json_response(response)


def parse_json_response(text: str) -> dict:
    """Parse JSON from LLM response, handling markdown code blocks."""
    text = (text or "").strip()

    # Try direct parse first
    try:
        parsed = json.loads(text)
        return parsed if isinstance(parsed, dict) else {}
    except json.JSONDecodeError:
        pass

    # Try extracting from markdown code block
    json_match = re.search(r'```(?:json)?\s*([\s\S]*?)```', text)
    if json_match:
        try:
            parsed = json.loads(json_match.group(1).strip())
            return parsed if isinstance(parsed, dict) else {}
        except json.JSONDecodeError:
            pass

    # Try finding JSON object in text
    brace_start = text.find('{')
    brace_end = text.rfind('}')
    if brace_start != -1 and brace_end > brace_start:
        try:
            return json.loads(text[brace_start:brace_end + 1])
        except json.JSONDecodeError:
            pass

    # Return empty dict if parsing fails
    return {}


# Global LLM client instance
llm_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    """Get or create the global LLM client."""
    global llm_client
    if llm_client is None:
        llm_client = LLMClient()
    return llm_client
