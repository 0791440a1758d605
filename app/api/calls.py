"""Video call session endpoints."""
import logging
from datetime import datetime
from typing import List, Literal, Optional
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from app.core.config import settings
from app.core.dependencies import get_session_manager
from app.services.call_session.errors import (
    CallSessionError,
    ExtensionUnavailableError,
    InvalidParticipantsError,
    MediaPermissionDeniedError,
    NotAParticipantError,
    NotTeachingError,
    ParticipantNotReadyError,
    SessionEndedError,
    SessionNotFoundError,
)
from app.services.call_session.manager import CallSessionManager
from app.services.call_session.media import MediaPermissions
from app.services.call_session.models import Notice, Participant
from app.services.teaching.models import Difficulty

router = APIRouter()
logger = logging.getLogger(__name__)

_ERROR_STATUS = {
    SessionNotFoundError: 404,
    NotAParticipantError: 403,
    MediaPermissionDeniedError: 403,
    SessionEndedError: 409,
    NotTeachingError: 409,
    ExtensionUnavailableError: 409,
    ParticipantNotReadyError: 409,
    InvalidParticipantsError: 400,
}


def _http_error(error: CallSessionError) -> HTTPException:
    """Map a call session error to an HTTP error."""
    status_code = _ERROR_STATUS.get(type(error), 400)
    return HTTPException(status_code=status_code, detail=str(error))


class CreateCallRequest(BaseModel):
    """Request body for starting a call."""
    initiator: Participant
    receiver: Participant
    permissions: MediaPermissions = MediaPermissions()


class JoinCallRequest(BaseModel):
    """Request body for the receiver joining a call."""
    user_id: str
    permissions: MediaPermissions = MediaPermissions()


class TransportEventRequest(BaseModel):
    """Media transport state change reported by a client."""
    event: Literal["connected", "disconnected", "failed"]


class StatusUpdateRequest(BaseModel):
    """Explicit status change. Only ending is supported."""
    status: Literal["ended"]
    reason: str = "hangup"


class TeachingQuestionRequest(BaseModel):
    """Request for a new teaching prompt."""
    user_id: str
    difficulty: Optional[Difficulty] = None


class TeachingQuestionResponse(BaseModel):
    """Teaching prompt response model."""
    question: str
    context: str
    difficulty: Difficulty
    fallback: bool = False


class ExtendRequest(BaseModel):
    """Request body for extending a call."""
    user_id: str


class ExtendResponse(BaseModel):
    """Extension response model."""
    extended: bool
    budget_seconds: int


class MediaToggleRequest(BaseModel):
    """Request body for toggling a local track."""
    user_id: str
    kind: Literal["video", "audio"]


class CallRecordResponse(BaseModel):
    """Stored call response model."""
    id: str
    initiator_id: str
    receiver_id: str
    status: str
    created_at: datetime
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    duration_seconds: int = 0
    switch_fired: bool = False
    extended: bool = False
    end_reason: Optional[str] = None

    class Config:
        from_attributes = True


@router.post("/api/video-calls", status_code=201)
async def create_call(
    body: CreateCallRequest,
    session_manager: CallSessionManager = Depends(get_session_manager),
):
    """Start a call between two users. The initiator teaches first."""
    logger.info(
        f"[VIDEO CALLS] Create call - Initiator: {body.initiator.user_id}, "
        f"Receiver: {body.receiver.user_id}"
    )
    try:
        session = await session_manager.create_session(
            body.initiator, body.receiver, body.permissions
        )
    except CallSessionError as e:
        logger.warning(f"[VIDEO CALLS] Could not create call: {e}")
        raise _http_error(e)
    return session.snapshot(body.initiator.user_id)


@router.get("/api/video-calls/active")
async def list_active_calls(
    user_id: Optional[str] = None,
    session_manager: CallSessionManager = Depends(get_session_manager),
):
    """List calls that have not ended."""
    sessions = await session_manager.list_active_sessions(user_id)
    return [session.snapshot(user_id) for session in sessions]


@router.get("/api/video-calls/history", response_model=List[CallRecordResponse])
async def get_call_history(
    user_id: str,
    limit: int = 50,
    session_manager: CallSessionManager = Depends(get_session_manager),
):
    """Stored calls the user took part in, newest first."""
    logger.info(f"[CALL HISTORY] Request received - User: {user_id}, limit: {limit}")
    calls = await session_manager.call_persistence.list_calls_for_user(user_id, limit=limit)
    logger.info(f"[CALL HISTORY] Found {len(calls)} calls for {user_id}")
    return [CallRecordResponse.model_validate(call) for call in calls]


@router.get("/api/video-calls/ice-servers")
async def get_ice_servers():
    """ICE servers clients should use for the peer connection."""
    return {"iceServers": [{"urls": url} for url in settings.stun_servers]}


@router.get("/api/video-calls/{session_id}")
async def get_call(
    session_id: str,
    user_id: Optional[str] = None,
    session_manager: CallSessionManager = Depends(get_session_manager),
):
    """Current state of a call; pass user_id to include that user's role."""
    try:
        session = await session_manager.get_session(session_id)
    except CallSessionError as e:
        raise _http_error(e)
    return session.snapshot(user_id)


@router.post("/api/video-calls/{session_id}/join")
async def join_call(
    session_id: str,
    body: JoinCallRequest,
    session_manager: CallSessionManager = Depends(get_session_manager),
):
    """Receiver accepts the call and reports device permissions."""
    try:
        session = await session_manager.join_session(session_id, body.user_id, body.permissions)
    except CallSessionError as e:
        logger.warning(f"[VIDEO CALLS] Join failed - Session: {session_id}, Error: {e}")
        raise _http_error(e)
    return session.snapshot(body.user_id)


@router.post("/api/video-calls/{session_id}/transport")
async def handle_transport_event(
    request: Request,
    session_id: str,
    body: TransportEventRequest,
    session_manager: CallSessionManager = Depends(get_session_manager),
):
    """
    Handle media transport state changes reported by a client.

    connected starts or resumes the timer, disconnected pauses it, failed
    ends the call.
    """
    logger.info(
        f"[TRANSPORT] Event '{body.event}' - Session: {session_id}, "
        f"Client: {request.client.host if request.client else 'unknown'}"
    )
    try:
        if body.event == "connected":
            session = await session_manager.on_transport_connected(session_id)
        elif body.event == "disconnected":
            session = await session_manager.on_transport_disconnected(session_id)
        else:
            session = await session_manager.on_transport_failed(session_id)
    except CallSessionError as e:
        raise _http_error(e)
    return session.snapshot()


@router.put("/api/video-calls/{session_id}/status")
async def update_call_status(
    session_id: str,
    body: StatusUpdateRequest,
    session_manager: CallSessionManager = Depends(get_session_manager),
):
    """End a call. Repeating the request is harmless."""
    try:
        session = await session_manager.end_session(session_id, reason=body.reason)
    except CallSessionError as e:
        raise _http_error(e)
    return session.snapshot()


@router.post(
    "/api/video-calls/{session_id}/teaching-question",
    response_model=TeachingQuestionResponse,
)
async def get_teaching_question(
    session_id: str,
    body: TeachingQuestionRequest,
    session_manager: CallSessionManager = Depends(get_session_manager),
):
    """New conversation prompt for the participant currently teaching."""
    try:
        result = await session_manager.fetch_teaching_prompt(
            session_id, body.user_id, body.difficulty
        )
    except CallSessionError as e:
        logger.info(f"[TEACHING AID] Request refused - Session: {session_id}, Error: {e}")
        raise _http_error(e)
    return TeachingQuestionResponse(
        question=result.prompt.question,
        context=result.prompt.context,
        difficulty=result.prompt.difficulty,
        fallback=result.fallback,
    )


@router.post("/api/video-calls/{session_id}/extend", response_model=ExtendResponse)
async def extend_call(
    session_id: str,
    body: ExtendRequest,
    session_manager: CallSessionManager = Depends(get_session_manager),
):
    """Extend the call once it has passed the extension mark."""
    try:
        extended = await session_manager.request_extension(session_id, body.user_id)
        session = await session_manager.get_session(session_id)
    except CallSessionError as e:
        raise _http_error(e)
    return ExtendResponse(extended=extended, budget_seconds=session.extension.budget_seconds)


@router.post("/api/video-calls/{session_id}/media")
async def toggle_media(
    session_id: str,
    body: MediaToggleRequest,
    session_manager: CallSessionManager = Depends(get_session_manager),
):
    """Turn the user's camera or microphone on or off."""
    try:
        enabled = await session_manager.toggle_media(session_id, body.user_id, body.kind)
    except CallSessionError as e:
        raise _http_error(e)
    return {"kind": body.kind, "enabled": enabled}


@router.get("/api/video-calls/{session_id}/notices", response_model=List[Notice])
async def get_notices(
    session_id: str,
    since: int = 0,
    session_manager: CallSessionManager = Depends(get_session_manager),
):
    """Notices for both participants newer than ``since``."""
    try:
        return await session_manager.notices(session_id, since)
    except CallSessionError as e:
        raise _http_error(e)
