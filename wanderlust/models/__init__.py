"""Data models for the itinerary assistant."""
from .document import GroundingDocument, GroundingStore
from .itinerary import EventCategory, ItineraryEvent, StructuredItinerary, fallback_itinerary
from .session import ConversationMessage, MessageRole, SessionState, SessionStore, TripSession

__all__ = [
    "GroundingDocument",
    "GroundingStore",
    "EventCategory",
    "ItineraryEvent",
    "StructuredItinerary",
    "fallback_itinerary",
    "ConversationMessage",
    "MessageRole",
    "SessionState",
    "SessionStore",
    "TripSession",
]
