"""Services for the itinerary assistant."""
from .llm_client import LLMClient
from .extractor import ItineraryExtractor
from .conversation import ConversationSession
from .flow_controller import FlowController

__all__ = [
    "LLMClient",
    "ItineraryExtractor",
    "ConversationSession",
    "FlowController",
]
