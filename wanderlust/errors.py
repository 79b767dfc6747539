"""Typed errors for the itinerary assistant.

Every failure the pipeline knows about is one of these. Services raise
them; the API layer maps them to HTTP status codes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class WanderlustError(Exception):
    """Base error for the assistant.

    Attributes:
        message: Human-readable error description
        cause: Optional underlying exception that caused this error
    """

    message: str
    cause: Optional[Exception] = field(default=None, repr=False)

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message

    def __post_init__(self) -> None:
        super().__init__(self.message)


@dataclass
class IngestionError(WanderlustError):
    """The uploaded document could not be turned into text.

    Attributes:
        filename: Name of the rejected upload
        unsupported_type: True when rejected before parsing (wrong format)
    """

    filename: str = ""
    unsupported_type: bool = False


@dataclass
class ConfigurationError(WanderlustError):
    """Invalid or missing configuration.

    Attributes:
        setting_name: Name of the problematic setting
    """

    setting_name: str = ""


@dataclass
class InvalidTransitionError(WanderlustError):
    """An operation is not legal in the session's current state."""

    current_state: str = ""
    requested: str = ""


@dataclass
class LLMError(WanderlustError):
    """The generative model call failed."""

    provider: str = ""


@dataclass
class LLMTimeoutError(LLMError):
    """The generative model did not answer within the configured bound."""

    timeout_seconds: float = 0.0


@dataclass
class ConversationError(WanderlustError):
    """Base for failures of a single chat turn."""


@dataclass
class EmptyResponseError(ConversationError):
    """The model returned no text for a chat turn."""


@dataclass
class ConversationBusyError(ConversationError):
    """A chat turn is already outstanding on this conversation."""


@dataclass
class ConversationClosedError(ConversationError):
    """The conversation was closed by a session reset."""
