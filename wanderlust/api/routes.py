"""
API Routes for the itinerary assistant.
"""
from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile
from pydantic import BaseModel
from typing import Optional

from ..errors import (
    ConfigurationError,
    ConversationBusyError,
    IngestionError,
    InvalidTransitionError,
)
from ..models.session import TripSession
from ..services.exporter import content_disposition
from ..services.flow_controller import FlowController, get_flow_controller


router = APIRouter(prefix="/api", tags=["itinerary-assistant"])


# Request/Response Models
class CreateSessionResponse(BaseModel):
    session_id: str
    state: str


class ChatRequest(BaseModel):
    session_id: str
    message: str


class ChatResponse(BaseModel):
    id: str
    role: str
    text: str
    created_at: str
    is_error: bool


class ResetRequest(BaseModel):
    confirm: bool = False


def _get_session(session_id: str, flow: FlowController) -> TripSession:
    session = flow.store.get(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _reply(message) -> ChatResponse:
    if message is None:
        # The session was reset while the model was answering
        raise HTTPException(status_code=409, detail="Session was reset")
    return ChatResponse(**message.to_display_dict())


# Endpoints

@router.post("/session", response_model=CreateSessionResponse)
async def create_session(flow: FlowController = Depends(get_flow_controller)):
    """Create a new idle session."""
    session = flow.store.create()
    return CreateSessionResponse(session_id=session.session_id, state=session.state.value)


@router.get("/session/{session_id}")
async def get_session_status(session_id: str, flow: FlowController = Depends(get_flow_controller)):
    """Get the current session status."""
    return _get_session(session_id, flow).get_status()


@router.post("/session/{session_id}/upload")
async def upload_document(
    session_id: str,
    file: UploadFile = File(...),
    flow: FlowController = Depends(get_flow_controller)
):
    """Upload a PDF and run extraction; returns the ready session."""
    session = _get_session(session_id, flow)
    data = await file.read()

    try:
        await flow.process_upload(session, file.filename or "document.pdf", file.content_type, data)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except IngestionError as e:
        raise HTTPException(status_code=415 if e.unsupported_type else 422, detail=e.message)
    except ConfigurationError as e:
        raise HTTPException(status_code=503, detail=e.message)

    return _get_session(session_id, flow).get_status()


@router.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest, flow: FlowController = Depends(get_flow_controller)):
    """Send a chat message and get the assistant's answer."""
    session = _get_session(request.session_id, flow)
    try:
        message = await flow.send_message(session, request.message)
    except (InvalidTransitionError, ConversationBusyError) as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _reply(message)


@router.post("/session/{session_id}/suggested/{index}", response_model=ChatResponse)
async def ask_suggested_question(
    session_id: str,
    index: int,
    flow: FlowController = Depends(get_flow_controller)
):
    """Ask one of the suggested questions."""
    session = _get_session(session_id, flow)
    try:
        message = await flow.ask_suggested(session, index)
    except (InvalidTransitionError, ConversationBusyError) as e:
        raise HTTPException(status_code=409, detail=str(e))
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _reply(message)


@router.get("/messages/{session_id}")
async def get_messages(session_id: str, flow: FlowController = Depends(get_flow_controller)):
    """Get the rendered chat history for a session."""
    session = _get_session(session_id, flow)
    return {
        "messages": [msg.to_display_dict() for msg in session.rendered_messages()]
    }


@router.get("/itinerary/{session_id}")
async def get_itinerary(session_id: str, flow: FlowController = Depends(get_flow_controller)):
    """Get the extracted itinerary."""
    session = _get_session(session_id, flow)
    if not session.itinerary:
        return {"itinerary": None, "message": "No itinerary extracted yet"}
    return {"itinerary": session.itinerary.to_display_dict()}


@router.get("/export/{session_id}/{fmt}")
async def export_itinerary(
    session_id: str,
    fmt: str,
    flow: FlowController = Depends(get_flow_controller)
):
    """Download the itinerary as JSON or iCalendar."""
    session = _get_session(session_id, flow)
    try:
        exported = flow.export(session, fmt)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": content_disposition(exported.filename)},
    )


@router.post("/session/{session_id}/reset", response_model=CreateSessionResponse)
async def reset_session(
    session_id: str,
    request: Optional[ResetRequest] = None,
    flow: FlowController = Depends(get_flow_controller)
):
    """Discard the document, itinerary and chat after user confirmation."""
    session = _get_session(session_id, flow)
    confirmed = bool(request and request.confirm)
    try:
        fresh = flow.reset(session, confirmed)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return CreateSessionResponse(session_id=fresh.session_id, state=fresh.state.value)
