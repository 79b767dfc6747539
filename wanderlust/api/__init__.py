"""HTTP API for the itinerary assistant."""
from .routes import router

__all__ = ["router"]
