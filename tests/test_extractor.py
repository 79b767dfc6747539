"""Tests for itinerary extraction."""
import json

import pytest

from wanderlust.errors import LLMError
from wanderlust.models.itinerary import EventCategory, fallback_itinerary
from wanderlust.services.extractor import ITINERARY_SCHEMA, ItineraryExtractor
from wanderlust.services.llm_client import parse_json_response

from .conftest import ITINERARY_RESPONSE, TWO_PAGE_TEXT, ScriptedLLM


class TestItineraryExtractor:
    """Test the extraction logic."""

    @pytest.mark.asyncio
    async def test_flight_scenario(self, itinerary_json):
        """A two-page document with one flight yields exactly that event."""
        llm = ScriptedLLM([itinerary_json])
        extractor = ItineraryExtractor(llm)

        itinerary = await extractor.extract_itinerary(TWO_PAGE_TEXT)

        assert len(llm.calls) == 1
        assert TWO_PAGE_TEXT in llm.calls[0]["prompt"]
        assert llm.calls[0]["schema"] is ITINERARY_SCHEMA
        assert len(itinerary.events) == 1
        event = itinerary.events[0]
        assert event.category == EventCategory.FLIGHT
        assert event.date == "2024-10-12"
        assert event.time == "09:00"

    @pytest.mark.asyncio
    async def test_text_truncated_to_limit(self, itinerary_json):
        llm = ScriptedLLM([itinerary_json])
        extractor = ItineraryExtractor(llm, char_limit=50_000)
        text = "A" * 50_000 + "~" * 10

        await extractor.extract_itinerary(text)

        prompt = llm.calls[0]["prompt"]
        assert "A" * 50_000 in prompt
        assert "~" not in prompt

    @pytest.mark.asyncio
    async def test_model_failure_returns_fallback(self):
        llm = ScriptedLLM([LLMError("boom", provider="openai")])
        extractor = ItineraryExtractor(llm)

        itinerary = await extractor.extract_itinerary(TWO_PAGE_TEXT)

        assert itinerary == fallback_itinerary()
        assert itinerary.to_display_dict() == {
            "title": "My Trip",
            "destination": "Unknown",
            "dates": "Upcoming",
            "events": [],
            "suggestedQuestions": [
                "What is in this document?",
                "Are there any flights?",
                "Where am I staying?",
            ],
        }

    @pytest.mark.asyncio
    async def test_unparseable_output_returns_fallback(self):
        extractor = ItineraryExtractor(ScriptedLLM(["Sorry, I cannot help with that."]))
        assert await extractor.extract_itinerary(TWO_PAGE_TEXT) == fallback_itinerary()

    @pytest.mark.asyncio
    async def test_missing_top_level_field_returns_fallback(self):
        broken = {k: v for k, v in ITINERARY_RESPONSE.items() if k != "destination"}
        extractor = ItineraryExtractor(ScriptedLLM([json.dumps(broken)]))
        assert await extractor.extract_itinerary(TWO_PAGE_TEXT) == fallback_itinerary()

    @pytest.mark.asyncio
    async def test_malformed_event_is_dropped(self):
        data = dict(ITINERARY_RESPONSE)
        data["events"] = ITINERARY_RESPONSE["events"] + [
            {"date": "2024-10-13", "activity": "No time given", "type": "activity"},
            {"date": "2024-10-13", "time": "20:00", "activity": "Dinner", "type": "dining"},
        ]
        extractor = ItineraryExtractor(ScriptedLLM([json.dumps(data)]))

        itinerary = await extractor.extract_itinerary(TWO_PAGE_TEXT)

        assert [e.activity for e in itinerary.events] == ["Flight AF1234 to Paris", "Dinner"]
        assert itinerary.events[1].category == EventCategory.OTHER

    @pytest.mark.asyncio
    async def test_fenced_json_is_accepted(self, itinerary_json):
        extractor = ItineraryExtractor(ScriptedLLM([f"```json\n{itinerary_json}\n```"]))
        itinerary = await extractor.extract_itinerary(TWO_PAGE_TEXT)
        assert itinerary.title == "Weekend in Paris"


class TestParseJsonResponse:
    """Test JSON repair of model output."""

    def test_direct(self):
        assert parse_json_response('{"a": 1}') == {"a": 1}

    def test_embedded_in_prose(self):
        assert parse_json_response('Here you go: {"a": 1} enjoy') == {"a": 1}

    def test_non_object_is_empty(self):
        assert parse_json_response("[1, 2]") == {}

    def test_garbage_is_empty(self):
        assert parse_json_response("no json here") == {}


def test_schema_requires_event_fields():
    event_schema = ITINERARY_SCHEMA["properties"]["events"]["items"]
    assert event_schema["required"] == ["date", "time", "activity", "type"]
    assert event_schema["properties"]["type"]["enum"] == ["flight", "hotel", "activity", "food", "other"]
    assert ITINERARY_SCHEMA["required"] == ["title", "destination", "dates", "events", "suggestedQuestions"]
