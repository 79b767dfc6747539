"""Document-grounded travel itinerary assistant."""

__version__ = "1.0.0"
