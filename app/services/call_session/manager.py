"""Call session manager."""
import logging
import uuid
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.services.call_session.errors import (
    InvalidParticipantsError,
    NotAParticipantError,
    NotTeachingError,
    ParticipantNotReadyError,
    SessionEndedError,
    SessionNotFoundError,
)
from app.services.call_session.extension import ExtensionGate
from app.services.call_session.media import MediaDevices, MediaPermissions
from app.services.call_session.models import CallSession, CallStatus, Notice, Participant
from app.services.call_session.roles import Role, RoleSplit, RoleSwitchScheduler
from app.services.call_session.timer import CallTimer
from app.services.persistence.calls import CallPersistenceService
from app.services.teaching.fetcher import TeachingAidFetcher
from app.services.teaching.models import Difficulty, FetchResult, normalize_question

logger = logging.getLogger(__name__)

# Module-level session storage (persists across requests)
# Each process runs its own timers; sessions are lost on restart
_sessions: Dict[str, CallSession] = {}

TimerFactory = Callable[[], CallTimer]


def active_session_count() -> int:
    return sum(1 for session in _sessions.values() if session.is_active)


def default_timer_factory() -> CallTimer:
    return CallTimer(interval=settings.tick_interval_seconds)


def prune_ended_sessions(now: Optional[datetime] = None) -> int:
    """Drop ended sessions older than the retention window. Returns how many were dropped."""
    now = now or datetime.utcnow()
    cutoff = now - timedelta(seconds=settings.ended_session_retention_seconds)
    expired = [
        session_id
        for session_id, session in _sessions.items()
        if session.status == CallStatus.ENDED
        and session.ended_at is not None
        and session.ended_at <= cutoff
    ]
    for session_id in expired:
        del _sessions[session_id]
    if expired:
        logger.debug(f"[CALL SESSION] Pruned {len(expired)} ended session(s)")
    return len(expired)


def _on_role_switch(session: CallSession, split: RoleSplit) -> None:
    """Drop the stale teaching suggestion and tell both sides who teaches now."""
    session.prompt_epoch += 1
    session.current_prompt = None
    teacher = session.teacher
    name = teacher.display_name or teacher.user_id
    session.add_notice("role_switched", f"Teaching Mode Switched: {name} is now the teacher")


def _make_tick_handler(session: CallSession) -> Callable[[int], None]:
    def handle_tick(elapsed: int) -> None:
        session.roles.on_tick(elapsed)
        if session.extension.on_tick(elapsed):
            minutes = session.extension.extension_seconds // 60
            session.add_notice(
                "extension_available", f"You can now extend the call by {minutes} minutes"
            )

    return handle_tick


class CallSessionManager:
    """Owns the lifecycle of language exchange call sessions."""

    def __init__(
        self,
        db: AsyncSession,
        fetcher: TeachingAidFetcher,
        media_devices: MediaDevices,
        timer_factory: Optional[TimerFactory] = None,
    ):
        self.db = db
        self.fetcher = fetcher
        self.media_devices = media_devices
        self.timer_factory = timer_factory or default_timer_factory
        self.call_persistence = CallPersistenceService(db)

    async def create_session(
        self,
        initiator: Participant,
        receiver: Participant,
        permissions: Optional[MediaPermissions] = None,
    ) -> CallSession:
        """
        Create a new call session in the connecting state.

        The initiator's camera and microphone are acquired first, so a
        permission denial surfaces before any session exists.

        Raises:
            InvalidParticipantsError: initiator and receiver are the same user
            MediaPermissionDeniedError: camera or microphone access refused
        """
        if initiator.user_id == receiver.user_id:
            raise InvalidParticipantsError("A call needs two different participants")

        prune_ended_sessions()
        media = await self.media_devices.acquire(
            initiator.user_id, permissions or MediaPermissions()
        )

        session_id = uuid.uuid4().hex
        timer = self.timer_factory()
        session = CallSession(
            session_id=session_id,
            initiator=initiator,
            receiver=receiver,
            timer=timer,
            roles=RoleSwitchScheduler(settings.switch_after_seconds),
            extension=ExtensionGate(
                gate_seconds=settings.extension_gate_seconds,
                extension_seconds=settings.extension_seconds,
                budget_seconds=settings.call_budget_seconds,
            ),
        )
        session.media[initiator.user_id] = media
        session.roles.on_switch(lambda split: _on_role_switch(session, split))
        timer.add_listener(_make_tick_handler(session))

        try:
            await self.call_persistence.create_call(
                session_id, initiator.user_id, receiver.user_id
            )
        except Exception:
            media.release()
            raise

        _sessions[session_id] = session
        logger.info(
            f"[CALL SESSION] Created session {session_id} - "
            f"Initiator: {initiator.user_id} (teaching), Receiver: {receiver.user_id} (learning)"
        )
        return session

    async def get_session(self, session_id: str) -> CallSession:
        """Get an existing call session."""
        session = _sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    async def list_active_sessions(self, user_id: Optional[str] = None) -> List[CallSession]:
        """Sessions that have not ended, optionally only those involving ``user_id``."""
        return [
            session
            for session in _sessions.values()
            if session.is_active and (user_id is None or session.side_of(user_id) is not None)
        ]

    async def forget_session(self, session_id: str) -> None:
        """Drop an ended session from memory."""
        session = _sessions.get(session_id)
        if session is not None and session.is_active:
            await self.end_session(session_id)
        _sessions.pop(session_id, None)

    async def join_session(
        self, session_id: str, user_id: str, permissions: Optional[MediaPermissions] = None
    ) -> CallSession:
        """Acquire the joining participant's media before their connection proceeds."""
        session = await self._get_live_session(session_id)
        self._require_participant(session, user_id)

        if user_id in session.media and not session.media[user_id].released:
            return session

        session.media[user_id] = await self.media_devices.acquire(
            user_id, permissions or MediaPermissions()
        )
        logger.info(f"[CALL SESSION] User {user_id} joined session {session_id}")
        return session

    async def on_transport_connected(self, session_id: str) -> CallSession:
        """
        Media handshake completed: start (or resume) the call timer.

        Raises:
            ParticipantNotReadyError: a participant has not joined with
                camera and microphone, so the timer must not start
        """
        session = await self._get_live_session(session_id)
        if session.status == CallStatus.CONNECTED:
            return session

        for participant in (session.initiator, session.receiver):
            media = session.media.get(participant.user_id)
            if media is None or media.released:
                logger.warning(
                    f"[CALL SESSION] Refusing to connect session {session_id} - "
                    f"{participant.user_id} has no local media"
                )
                raise ParticipantNotReadyError(session_id, participant.user_id)

        first_connection = session.started_at is None
        if first_connection:
            session.started_at = datetime.utcnow()
        session.status = CallStatus.CONNECTED
        session.timer.start()

        if first_connection:
            session.add_notice("call_connected", "Call Connected: video call is now active")
        else:
            session.add_notice(
                "call_reconnected",
                f"Call reconnected at {session.elapsed_seconds}s",
            )
        logger.info(
            f"[CALL SESSION] Session {session_id} connected - "
            f"Elapsed: {session.elapsed_seconds}s, First connection: {first_connection}"
        )

        await self.call_persistence.notify_call_status(
            session_id, CallStatus.CONNECTED.value, started_at=session.started_at
        )
        return session

    async def on_transport_disconnected(self, session_id: str) -> CallSession:
        """
        Transient drop: pause timing but keep the session.

        A later ``on_transport_connected`` for the same session resumes the
        timer without resetting it.
        """
        session = await self.get_session(session_id)
        if session.status != CallStatus.CONNECTED:
            return session

        session.timer.stop()
        session.status = CallStatus.CONNECTING
        session.add_notice("call_interrupted", "Connection interrupted, trying to reconnect")
        logger.warning(
            f"[CALL SESSION] Session {session_id} disconnected at {session.elapsed_seconds}s"
        )

        await self.call_persistence.notify_call_status(
            session_id,
            CallStatus.CONNECTING.value,
            duration_seconds=session.elapsed_seconds,
        )
        return session

    async def on_transport_failed(self, session_id: str) -> CallSession:
        """Terminal transport failure: end the call. Not retried."""
        logger.error(f"[CALL SESSION] Transport failed for session {session_id}")
        return await self.end_session(session_id, reason="transport_failed")

    async def end_session(self, session_id: str, reason: str = "hangup") -> CallSession:
        """End a call session and clean up.

        Safe to call any number of times from any trigger; only the first
        call stops the timer and releases media.

        Args:
            session_id: Call session id
            reason: "hangup", "transport_failed", ...
        """
        session = await self.get_session(session_id)
        if session.status == CallStatus.ENDED:
            logger.debug(f"[CALL SESSION] Session {session_id} already ended, ignoring")
            return session

        # Local cleanup first; nothing below may prevent it
        session.status = CallStatus.ENDED
        session.ended_at = datetime.utcnow()
        session.end_reason = reason
        session.timer.stop()
        session.prompt_epoch += 1
        session.current_prompt = None
        session.used_prompts.clear()
        released = session.release_media()
        session.add_notice("call_ended", f"Call ended ({reason})")
        logger.info(
            f"[CALL SESSION] Session {session_id} ended - Reason: {reason}, "
            f"Duration: {session.elapsed_seconds}s, Media handles released: {released}"
        )

        try:
            await self.call_persistence.notify_call_status(
                session_id,
                CallStatus.ENDED.value,
                ended_at=session.ended_at,
                duration_seconds=session.elapsed_seconds,
                switch_fired=session.switch_fired,
                extended=session.extension.extended,
                end_reason=reason,
            )
        except Exception as e:
            logger.error(
                f"[CALL SESSION] Could not record end of session {session_id}: "
                f"{type(e).__name__}: {str(e)}",
                exc_info=True,
            )
        return session

    async def end_all_sessions(self, reason: str = "shutdown") -> int:
        """End every live session, e.g. when the process stops. Returns how many were ended."""
        live = [session.id for session in _sessions.values() if session.is_active]
        for session_id in live:
            await self.end_session(session_id, reason=reason)
        if live:
            logger.info(f"[CALL SESSION] Ended {len(live)} live session(s) - Reason: {reason}")
        return len(live)

    async def fetch_teaching_prompt(
        self,
        session_id: str,
        user_id: str,
        difficulty: Optional[Difficulty] = None,
    ) -> FetchResult:
        """
        Fetch a new conversation prompt for the participant currently teaching.

        Raises:
            NotTeachingError: requester is in Learning mode, or roles switched
                while the fetch was in flight
            SessionEndedError: the call ended (possibly while fetching)
        """
        session = await self._get_live_session(session_id)
        self._require_participant(session, user_id)
        if session.role_of(user_id) != Role.TEACHING:
            raise NotTeachingError(user_id)

        difficulty = difficulty or Difficulty(settings.default_difficulty)
        epoch = session.prompt_epoch
        result = await self.fetcher.fetch(
            session.participant(session.side_of(user_id)).interests,
            difficulty,
            list(session.used_prompts),
        )

        # The call may have ended or switched roles while we waited
        if not session.is_active:
            logger.info(f"[TEACHING AID] Ignoring prompt for ended session {session_id}")
            raise SessionEndedError(session_id)
        if session.prompt_epoch != epoch:
            logger.info(f"[TEACHING AID] Ignoring prompt fetched before role switch in {session_id}")
            raise NotTeachingError(user_id)

        # A concurrent request may have recorded the same question meanwhile
        used = {normalize_question(question) for question in session.used_prompts}
        if normalize_question(result.prompt.question) in used:
            logger.info(
                f"[TEACHING AID] Session {session_id} prompt already shown, using fallback"
            )
            result = FetchResult(
                prompt=self.fetcher.fallback_prompt(difficulty, used), fallback=True
            )

        session.remember_prompt(result.prompt)
        if result.fallback:
            session.add_notice(
                "prompt_fallback",
                "Question generation failed, showing a general conversation starter",
            )
        logger.info(
            f"[TEACHING AID] Session {session_id} prompt: '{result.prompt.question}' "
            f"(fallback: {result.fallback}, used: {len(session.used_prompts)})"
        )
        return result

    async def request_extension(self, session_id: str, user_id: str) -> bool:
        """Extend the call budget; either participant may ask once the gate is open."""
        session = await self._get_live_session(session_id)
        self._require_participant(session, user_id)

        extended = session.extension.request_extension()
        if extended:
            minutes = session.extension.extension_seconds // 60
            session.add_notice("call_extended", f"Call extended by {minutes} minutes")
            await self.call_persistence.notify_call_status(
                session_id, session.status.value, extended=True
            )
        return extended

    async def toggle_media(self, session_id: str, user_id: str, kind: str) -> bool:
        """Turn the participant's camera ("video") or microphone ("audio") on or off."""
        session = await self._get_live_session(session_id)
        self._require_participant(session, user_id)
        media = session.media.get(user_id)
        if media is None:
            return False
        return media.toggle(kind)

    async def notices(self, session_id: str, since: int = 0) -> List[Notice]:
        session = await self.get_session(session_id)
        return session.notices_since(since)

    async def _get_live_session(self, session_id: str) -> CallSession:
        session = await self.get_session(session_id)
        if session.status == CallStatus.ENDED:
            raise SessionEndedError(session_id)
        return session

    def _require_participant(self, session: CallSession, user_id: str) -> None:
        if session.side_of(user_id) is None:
            raise NotAParticipantError(session.id, user_id)
