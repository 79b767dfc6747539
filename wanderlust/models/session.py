"""
Session management - Tracks the pipeline state, the grounding document and conversation history.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, TYPE_CHECKING
from datetime import datetime
from enum import Enum
import logging
import uuid

from .document import GroundingDocument, GroundingStore
from .itinerary import StructuredItinerary
from ..errors import InvalidTransitionError

if TYPE_CHECKING:
    from ..services.conversation import ConversationSession

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Current state of the session."""
    IDLE = "idle"  # Waiting for an upload
    PARSING = "parsing"  # Extracting text from the uploaded file
    ANALYZING = "analyzing"  # Opening the conversation and extracting the itinerary
    READY = "ready"  # Chat and export available
    ERROR = "error"  # Pipeline failed, reset required


# Reset is not listed here: it replaces the session instead of moving it.
ALLOWED_TRANSITIONS: dict[SessionState, frozenset] = {
    SessionState.IDLE: frozenset({SessionState.PARSING}),
    SessionState.PARSING: frozenset({SessionState.ANALYZING, SessionState.ERROR}),
    SessionState.ANALYZING: frozenset({SessionState.READY, SessionState.ERROR}),
    SessionState.READY: frozenset(),
    SessionState.ERROR: frozenset(),
}


class MessageRole(str, Enum):
    """Author of a conversation message."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"  # Stored, never rendered


class ConversationMessage(BaseModel):
    """A single message in the conversation."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique message identifier"
    )
    role: MessageRole = Field(..., description="Who wrote the message")
    text: str = Field(..., description="Message content")
    created_at: datetime = Field(default_factory=datetime.now)
    is_error: bool = Field(
        default=False,
        description="True when the message reports a failed chat turn"
    )

    def to_display_dict(self) -> dict:
        return {
            "id": self.id,
            "role": self.role.value,
            "text": self.text,
            "created_at": self.created_at.isoformat(),
            "is_error": self.is_error,
        }


class TripSession:
    """
    One upload-to-chat lifecycle.

    Owns exactly one grounding document, at most one itinerary and an
    append-only message list. A reset never mutates an existing session;
    the store swaps in a fresh one and marks this one discarded.
    """

    def __init__(self, session_id: Optional[str] = None):
        self.session_id = session_id or str(uuid.uuid4())
        self.created_at = datetime.now()
        self.updated_at = self.created_at
        self.state = SessionState.IDLE
        self.grounding = GroundingStore(on_replace=self._invalidate_derived)
        self.itinerary: Optional[StructuredItinerary] = None
        self.conversation: Optional["ConversationSession"] = None
        self.sending = False
        self.last_error: Optional[str] = None
        self.discarded = False
        self._messages: list[ConversationMessage] = []

    @property
    def document(self) -> Optional[GroundingDocument]:
        return self.grounding.get_document()

    @property
    def messages(self) -> tuple[ConversationMessage, ...]:
        return tuple(self._messages)

    def transition(self, target: SessionState):
        """Move to `target`, refusing anything the state table does not allow."""
        if target not in ALLOWED_TRANSITIONS[self.state]:
            raise InvalidTransitionError(
                f"Cannot move from {self.state.value} to {target.value}",
                current_state=self.state.value,
                requested=target.value,
            )
        logger.info(f"Session {self.session_id}: {self.state.value} -> {target.value}")
        self.state = target
        self.updated_at = datetime.now()

    def require_state(self, *states: SessionState, action: str):
        """Raise unless the session is in one of `states`."""
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise InvalidTransitionError(
                f"Cannot {action} while session is {self.state.value} (allowed: {allowed})",
                current_state=self.state.value,
                requested=action,
            )

    def fail(self, reason: str):
        """Enter the error state, remembering why."""
        self.transition(SessionState.ERROR)
        self.last_error = reason

    def set_document(
        self,
        name: str,
        text: str,
        byte_size: int,
        page_count: int
    ) -> GroundingDocument:
        """Store the grounding document; drops any itinerary and messages."""
        return self.grounding.set_document(name, text, byte_size, page_count)

    def set_itinerary(self, itinerary: StructuredItinerary):
        """Attach the itinerary extracted from the current document."""
        if self.itinerary is not None:
            raise InvalidTransitionError(
                "Itinerary already extracted for this document",
                current_state=self.state.value,
                requested="set_itinerary",
            )
        self.itinerary = itinerary
        self.updated_at = datetime.now()

    def add_message(self, role: MessageRole, text: str, is_error: bool = False) -> ConversationMessage:
        """Add a message to the conversation."""
        msg = ConversationMessage(role=role, text=text, is_error=is_error)
        self._messages.append(msg)
        self.updated_at = datetime.now()
        return msg

    def rendered_messages(self) -> list[ConversationMessage]:
        """Messages a user should see (system messages excluded)."""
        return [m for m in self._messages if m.role != MessageRole.SYSTEM]

    def discard(self):
        """Invalidate this session so late results are ignored."""
        self.discarded = True
        if self.conversation is not None:
            self.conversation.close()
        self.conversation = None
        self.grounding.clear()
        self._invalidate_derived()

    def get_status(self) -> dict:
        """Get a summary of session status."""
        document = self.document
        return {
            "session_id": self.session_id,
            "state": self.state.value,
            "document": document.to_display_dict() if document else None,
            "itinerary": self.itinerary.to_display_dict() if self.itinerary else None,
            "message_count": len(self.rendered_messages()),
            "is_sending": self.sending,
            "last_error": self.last_error,
        }

    def _invalidate_derived(self):
        self.itinerary = None
        self._messages = []
        self.updated_at = datetime.now()


# In-memory session storage; nothing survives a restart
class SessionStore:
    """Simple in-memory session store."""

    def __init__(self):
        self._sessions: dict[str, TripSession] = {}

    def create(self) -> TripSession:
        """Create a new session."""
        session = TripSession()
        self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str) -> Optional[TripSession]:
        """Get a session by ID."""
        return self._sessions.get(session_id)

    def reset(self, session_id: str) -> TripSession:
        """Replace a session with a fresh idle one under the same ID."""
        old = self._sessions.get(session_id)
        if old is not None:
            old.discard()
        session = TripSession(session_id=session_id)
        self._sessions[session_id] = session
        return session

    def delete(self, session_id: str):
        """Delete a session."""
        session = self._sessions.pop(session_id, None)
        if session is not None:
            session.discard()


# Global session store
session_store = SessionStore()
