"""
Flow Controller - Drives a session through upload, analysis, chat, export and reset.
Every operation is gated by the session state.
"""
from typing import Callable, Optional
import logging

from .conversation import ConversationSession
from .document_parser import check_upload, extract_text_async
from .exporter import ExportedFile, export_calendar, export_json
from .extractor import ItineraryExtractor
from .llm_client import LLMClient, get_llm_client
from .prompts import CHAT_ERROR_APOLOGY
from ..errors import (
    ConfigurationError,
    ConversationBusyError,
    ConversationClosedError,
    IngestionError,
    InvalidTransitionError,
    WanderlustError,
)
from ..models.session import (
    ConversationMessage,
    MessageRole,
    SessionState,
    SessionStore,
    TripSession,
    session_store,
)

logger = logging.getLogger(__name__)


class FlowController:
    """
    Controls the session pipeline.

    The backend (this class) makes all decisions:
    - Which operations the current state allows
    - When to extract text, open the conversation and extract the itinerary
    - How failures are surfaced (fatal for uploads, per-message for chat)
    """

    def __init__(
        self,
        store: Optional[SessionStore] = None,
        llm_factory: Callable[[], LLMClient] = get_llm_client
    ):
        self.store = store or session_store
        self.llm_factory = llm_factory

    async def process_upload(
        self,
        session: TripSession,
        filename: str,
        content_type: Optional[str],
        data: bytes
    ) -> TripSession:
        """
        Run the whole pipeline for one uploaded document.

        Args:
            session: An idle session
            filename: Uploaded file name
            content_type: Declared media type of the upload
            data: Raw file bytes

        Returns:
            The session, Ready on success

        Raises:
            InvalidTransitionError: the session is not idle
            IngestionError: the file could not be read; the session is reset to idle
            ConfigurationError: the model cannot be used; the session stays in error
        """
        session.require_state(SessionState.IDLE, action="upload a document")
        session.transition(SessionState.PARSING)

        try:
            check_upload(filename, content_type, data)
            extracted = await extract_text_async(data)
        except IngestionError as e:
            logger.warning(f"Ingestion failed for {filename!r}: {e}")
            if not session.discarded:
                session.fail(e.message)
                self.store.reset(session.session_id)
            raise

        if session.discarded:
            logger.info(f"Session {session.session_id} was reset during parsing; dropping result")
            return session

        document = session.set_document(filename, extracted.text, len(data), extracted.page_count)
        session.transition(SessionState.ANALYZING)

        try:
            llm = self.llm_factory()
        except ConfigurationError as e:
            logger.error(f"Cannot open conversation: {e}")
            session.fail(e.message)
            raise
        session.conversation = ConversationSession.open(document.full_text, llm)

        itinerary = await ItineraryExtractor(llm).extract_itinerary(document.full_text)

        if session.discarded:
            logger.info(f"Session {session.session_id} was reset during analysis; dropping itinerary")
            return session

        session.set_itinerary(itinerary)
        session.transition(SessionState.READY)

        session.add_message(
            MessageRole.SYSTEM,
            f"Grounding document: {document.name} ({document.page_count} pages, {document.byte_size} bytes)"
        )
        session.add_message(
            MessageRole.ASSISTANT,
            f"Hi! I've analyzed **{itinerary.title or document.name}**.\n\n"
            f"I found details for a trip to **{itinerary.destination}**. "
            "You can see the timeline, or ask me specific questions!"
        )
        return session

    async def send_message(self, session: TripSession, text: str) -> Optional[ConversationMessage]:
        """
        Process one chat turn.

        Model failures become an assistant message with is_error set; they
        never leave the session.

        Returns:
            The assistant message, or None if the session was reset meanwhile

        Raises:
            InvalidTransitionError: the session is not ready
            ConversationBusyError: a previous turn is still outstanding
            ValueError: the message is blank
        """
        session.require_state(SessionState.READY, action="send a message")
        text = (text or "").strip()
        if not text:
            raise ValueError("Message cannot be empty")
        if session.sending:
            raise ConversationBusyError("Please wait for the previous answer")

        session.add_message(MessageRole.USER, text)
        session.sending = True
        try:
            reply = await session.conversation.send(text)
        except ConversationClosedError:
            return None
        except WanderlustError as e:
            if session.discarded:
                return None
            logger.warning(f"Chat turn failed in session {session.session_id}: {e}")
            return session.add_message(MessageRole.ASSISTANT, CHAT_ERROR_APOLOGY, is_error=True)
        finally:
            session.sending = False

        if session.discarded:
            return None
        return session.add_message(MessageRole.ASSISTANT, reply)

    async def ask_suggested(self, session: TripSession, index: int) -> Optional[ConversationMessage]:
        """Send one of the itinerary's suggested questions through the normal chat path."""
        session.require_state(SessionState.READY, action="ask a suggested question")
        questions = session.itinerary.suggested_questions
        if not 0 <= index < len(questions):
            raise IndexError(f"No suggested question #{index}")
        return await self.send_message(session, questions[index])

    def export(self, session: TripSession, fmt: str) -> ExportedFile:
        """Serialize the session's itinerary ('json' or 'calendar')."""
        session.require_state(SessionState.READY, action="export the itinerary")
        if fmt == "json":
            return export_json(session.itinerary)
        if fmt in ("calendar", "ics"):
            return export_calendar(session.itinerary)
        raise ValueError(f"Unknown export format: {fmt}")

    def reset(self, session: TripSession, confirmed: bool) -> TripSession:
        """
        Discard the document, itinerary and messages of a session.

        Returns:
            A fresh idle session under the same ID
        """
        if not confirmed:
            raise ValueError("Reset must be confirmed")
        if session.state == SessionState.IDLE:
            raise InvalidTransitionError(
                "Nothing to reset",
                current_state=session.state.value,
                requested="reset",
            )
        logger.info(f"Resetting session {session.session_id} from {session.state.value}")
        return self.store.reset(session.session_id)


# Global flow controller instance
flow_controller: Optional[FlowController] = None


def get_flow_controller() -> FlowController:
    """Get or create the global flow controller."""
    global flow_controller
    if flow_controller is None:
        flow_controller = FlowController()
    return flow_controller
