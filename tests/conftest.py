"""Shared pytest fixtures."""
import asyncio
import json

import pytest

from wanderlust.models.itinerary import StructuredItinerary
from wanderlust.models.session import SessionStore
from wanderlust.services.document_parser import ExtractedText, join_pages
from wanderlust.services.flow_controller import FlowController
from wanderlust.services.llm_client import parse_json_response


TWO_PAGE_TEXT = join_pages([
    "Booking reference XK42P\nFlight AF1234 Paris CDG 2024-10-12 09:00",
    "Hotel Lumiere, Rue de Rivoli\nCheck-in from 15:00",
])

ITINERARY_RESPONSE = {
    "title": "Weekend in Paris",
    "destination": "Paris",
    "dates": "Oct 12 - Oct 14",
    "events": [
        {
            "date": "2024-10-12",
            "time": "09:00",
            "activity": "Flight AF1234 to Paris",
            "location": "CDG",
            "type": "flight",
        }
    ],
    "suggestedQuestions": [
        "What is my flight number?",
        "Where is the hotel?",
        "When can I check in?",
    ],
}


class ScriptedLLM:
    """Stands in for LLMClient; replays queued replies (exceptions are raised)."""

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.calls = []

    async def generate(self, prompt, system_directive=None, prior_turns=None, schema=None, temperature=None):
        self.calls.append({
            "prompt": prompt,
            "system_directive": system_directive,
            "prior_turns": list(prior_turns or []),
            "schema": schema,
        })
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def generate_json(self, prompt, schema, temperature=None):
        return parse_json_response(await self.generate(prompt, schema=schema, temperature=temperature))


class BlockingLLM(ScriptedLLM):
    """ScriptedLLM that waits for `release` before every answer."""

    def __init__(self, replies=None):
        super().__init__(replies)
        self.release = asyncio.Event()

    async def generate(self, prompt, system_directive=None, prior_turns=None, schema=None, temperature=None):
        await self.release.wait()
        return await super().generate(prompt, system_directive, prior_turns, schema, temperature)


@pytest.fixture
def itinerary_json():
    return json.dumps(ITINERARY_RESPONSE)


@pytest.fixture
def sample_itinerary():
    return StructuredItinerary.model_validate(ITINERARY_RESPONSE)


@pytest.fixture
def store():
    return SessionStore()


@pytest.fixture
def fake_pdf(monkeypatch):
    """Replace PDF text extraction with the two-page sample document."""
    async def fake_extract(data):
        return ExtractedText(text=TWO_PAGE_TEXT, page_count=2)

    monkeypatch.setattr("wanderlust.services.flow_controller.extract_text_async", fake_extract)
    return TWO_PAGE_TEXT


@pytest.fixture
def make_flow(store):
    def _make(llm):
        return FlowController(store=store, llm_factory=lambda: llm)
    return _make
