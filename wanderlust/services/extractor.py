"""
Itinerary Extractor - Builds a structured itinerary from the grounding text.
Extraction is an enhancement: failures degrade to a fixed fallback instead of raising.
"""
from typing import Optional
import logging

from pydantic import ValidationError

from .llm_client import LLMClient, get_llm_client
from .prompts import build_extraction_prompt
from ..config import settings
from ..models.itinerary import (
    EventCategory,
    ItineraryEvent,
    StructuredItinerary,
    fallback_itinerary,
)

logger = logging.getLogger(__name__)


ITINERARY_SCHEMA = {
    "type": "object",
    "properties": {
        "title": {
            "type": "string",
            "description": "A creative title for this trip (e.g., 'Weekend in Paris')"
        },
        "destination": {
            "type": "string",
            "description": "Main city or country of the trip"
        },
        "dates": {
            "type": "string",
            "description": "Date range of the trip (e.g., 'Oct 12 - Oct 15')"
        },
        "events": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "date": {
                        "type": "string",
                        "description": "Date of event in YYYY-MM-DD format"
                    },
                    "time": {
                        "type": "string",
                        "description": "Time of event in HH:MM (24h) format"
                    },
                    "activity": {
                        "type": "string",
                        "description": "Short description of activity"
                    },
                    "location": {
                        "type": "string",
                        "description": "Location name if available, else empty"
                    },
                    "type": {
                        "type": "string",
                        "enum": [c.value for c in EventCategory],
                        "description": "Category of the event"
                    },
                },
                "required": ["date", "time", "activity", "type"],
            },
        },
        "suggestedQuestions": {
            "type": "array",
            "items": {"type": "string"},
            "description": "3 specific questions the user could ask about this itinerary"
        },
    },
    "required": ["title", "destination", "dates", "events", "suggestedQuestions"],
}


class ItineraryExtractor:
    """Extracts a StructuredItinerary from document text."""

    def __init__(self, llm: Optional[LLMClient] = None, char_limit: Optional[int] = None):
        self.llm = llm or get_llm_client()
        self.char_limit = char_limit or settings.summary_char_limit

    async def extract_itinerary(self, text: str) -> StructuredItinerary:
        """
        Extract the itinerary of a document.

        Only the first `char_limit` characters are sent to the model.

        Args:
            text: Full grounding text

        Returns:
            The extracted itinerary, or the fallback itinerary on any failure
        """
        truncated = text[:self.char_limit]
        if len(text) > self.char_limit:
            logger.info(f"Truncated document from {len(text)} to {self.char_limit} chars for extraction")

        try:
            result = await self.llm.generate_json(
                build_extraction_prompt(truncated),
                schema=ITINERARY_SCHEMA,
            )
            itinerary = self._parse_itinerary(result)
        except Exception as e:
            logger.warning(f"Itinerary extraction degraded, using fallback: {e}")
            return fallback_itinerary()

        logger.info(f"Extracted itinerary '{itinerary.title}' with {len(itinerary.events)} events")
        return itinerary

    def _parse_itinerary(self, data: dict) -> StructuredItinerary:
        """
        Validate the model response.

        Malformed events are dropped one by one; a malformed envelope raises.
        """
        if not isinstance(data, dict) or not data:
            raise ValueError("Model returned no JSON object")

        raw_events = data.get("events")
        if not isinstance(raw_events, list):
            raise ValueError("Model response has no events list")

        events = []
        for index, event_data in enumerate(raw_events):
            try:
                events.append(ItineraryEvent.model_validate(event_data))
            except ValidationError as e:
                logger.warning(f"Skipping malformed event #{index}: {e.error_count()} validation errors")

        return StructuredItinerary.model_validate({**data, "events": events})


# Global extractor instance
extractor: Optional[ItineraryExtractor] = None


def get_extractor() -> ItineraryExtractor:
    """Get or create the global extractor."""
    global extractor
    if extractor is None:
        extractor = ItineraryExtractor()
    return extractor
