"""
Itinerary models - Structured summary extracted from an uploaded travel document.
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any
from enum import Enum


MAX_SUGGESTED_QUESTIONS = 3

# Returned whenever structured extraction fails; chat still works without it.
FALLBACK_TITLE = "My Trip"
FALLBACK_DESTINATION = "Unknown"
FALLBACK_DATE_RANGE = "Upcoming"
FALLBACK_QUESTIONS = (
    "What is in this document?",
    "Are there any flights?",
    "Where am I staying?",
)


class EventCategory(str, Enum):
    """Category of an itinerary event."""
    FLIGHT = "flight"
    HOTEL = "hotel"
    ACTIVITY = "activity"
    FOOD = "food"
    OTHER = "other"


class ItineraryEvent(BaseModel):
    """A single dated entry of the itinerary."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    date: str = Field(
        ...,
        min_length=1,
        description="Date of the event (YYYY-MM-DD)"
    )
    time: str = Field(
        ...,
        min_length=1,
        description="Start time of the event (HH:MM, 24h)"
    )
    activity: str = Field(
        ...,
        min_length=1,
        description="Short description of the activity"
    )
    location: str = Field(
        default="",
        description="Location name, empty when the document has none"
    )
    category: EventCategory = Field(
        default=EventCategory.OTHER,
        alias="type",
        description="Category of the event"
    )

    @field_validator("date", "time", "activity", mode="before")
    @classmethod
    def _strip_required(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("location", mode="before")
    @classmethod
    def _normalize_location(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value: Any) -> EventCategory:
        # Anything outside the fixed set is filed under "other"
        if isinstance(value, EventCategory):
            return value
        try:
            return EventCategory(str(value).strip().lower())
        except ValueError:
            return EventCategory.OTHER


class StructuredItinerary(BaseModel):
    """Complete structured itinerary for one document."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    title: str = Field(
        ...,
        description="Short title for the trip"
    )
    destination: str = Field(
        ...,
        description="Main city or country of the trip"
    )
    date_range: str = Field(
        ...,
        alias="dates",
        description="Human-readable date range of the trip"
    )
    events: list[ItineraryEvent] = Field(
        ...,
        description="Events in document order"
    )
    suggested_questions: list[str] = Field(
        ...,
        alias="suggestedQuestions",
        description="Up to three follow-up questions about this document"
    )

    @field_validator("suggested_questions", mode="before")
    @classmethod
    def _limit_questions(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        questions = [str(q).strip() for q in value if q is not None and str(q).strip()]
        return questions[:MAX_SUGGESTED_QUESTIONS]

    def to_display_dict(self) -> dict:
        """Convert to the external (camelCase) dictionary shape."""
        return self.model_dump(mode="json", by_alias=True)


def fallback_itinerary() -> StructuredItinerary:
    """The fixed itinerary used when extraction fails."""
    return StructuredItinerary(
        title=FALLBACK_TITLE,
        destination=FALLBACK_DESTINATION,
        date_range=FALLBACK_DATE_RANGE,
        events=[],
        suggested_questions=list(FALLBACK_QUESTIONS),
    )
