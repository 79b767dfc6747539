"""
Conversation Session - Document-grounded chat with an explicit transcript.
"""
from typing import Optional
import logging

from .llm_client import LLMClient
from .prompts import build_chat_directive
from ..config import settings
from ..errors import ConversationBusyError, ConversationClosedError, EmptyResponseError

logger = logging.getLogger(__name__)


class ConversationSession:
    """
    Stateful chat handle bound to one grounding text.

    The provider is stateless, so the directive and the full transcript are
    sent on every turn. Turns are strictly sequential: a second `send` while
    one is outstanding is rejected.
    """

    def __init__(self, directive: str, llm: LLMClient, temperature: Optional[float] = None):
        self.directive = directive
        self.llm = llm
        self.temperature = settings.chat_temperature if temperature is None else temperature
        self._transcript: list[dict] = []
        self._sending = False
        self._closed = False

    @classmethod
    def open(
        cls,
        grounding_text: str,
        llm: LLMClient,
        temperature: Optional[float] = None
    ) -> "ConversationSession":
        """Create a conversation whose every turn is bound to `grounding_text`."""
        return cls(build_chat_directive(grounding_text), llm, temperature)

    @property
    def transcript(self) -> tuple[dict, ...]:
        """Completed turns, oldest first."""
        return tuple(self._transcript)

    @property
    def is_sending(self) -> bool:
        return self._sending

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self):
        """Invalidate the handle; in-flight replies will be dropped."""
        self._closed = True

    async def send(self, user_text: str) -> str:
        """
        Ask one question and return the assistant's reply.

        Raises:
            ConversationBusyError: a previous turn has not finished
            ConversationClosedError: the handle was closed (before or during the call)
            EmptyResponseError: the model sent back no text
            LLMError: the model call itself failed
        """
        if self._closed:
            raise ConversationClosedError("Conversation has been closed")
        if self._sending:
            raise ConversationBusyError("A message is already being sent")

        self._sending = True
        try:
            reply = await self.llm.generate(
                user_text,
                system_directive=self.directive,
                prior_turns=list(self._transcript),
                temperature=self.temperature,
            )
        finally:
            self._sending = False

        if self._closed:
            logger.info("Dropping reply that arrived after the conversation was closed")
            raise ConversationClosedError("Conversation was closed while waiting for a reply")
        if not reply or not reply.strip():
            raise EmptyResponseError("Empty response from model")

        # Failed turns never enter the transcript
        self._transcript.append({"role": "user", "content": user_text})
        self._transcript.append({"role": "assistant", "content": reply})
        return reply
