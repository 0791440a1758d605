"""Video call persistence service."""
import logging
from datetime import datetime
from typing import Any, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from sqlalchemy.exc import SQLAlchemyError

from app.db.models import VideoCall

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = {
    "started_at",
    "ended_at",
    "duration_seconds",
    "switch_fired",
    "extended",
    "end_reason",
}


class CallPersistenceService:
    """Service for persisting video call data."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_call(
        self, session_id: str, initiator_id: str, receiver_id: str
    ) -> VideoCall:
        """Create a new call record or return existing one."""
        existing_call = await self.get_call(session_id)
        if existing_call:
            return existing_call

        call = VideoCall(
            id=session_id,
            initiator_id=initiator_id,
            receiver_id=receiver_id,
            status="connecting",
        )
        self.db.add(call)
        await self.db.commit()
        await self.db.refresh(call)
        return call

    async def get_call(self, session_id: str) -> Optional[VideoCall]:
        """Get call by session id."""
        result = await self.db.execute(
            select(VideoCall).where(VideoCall.id == session_id)
        )
        return result.scalar_one_or_none()

    async def list_calls_for_user(self, user_id: str, limit: int = 50) -> List[VideoCall]:
        """List a user's calls, newest first."""
        result = await self.db.execute(
            select(VideoCall)
            .where(
                (VideoCall.initiator_id == user_id) | (VideoCall.receiver_id == user_id)
            )
            .order_by(desc(VideoCall.created_at))
            .limit(limit)
        )
        return list(result.scalars().all())

    async def update_call(
        self, session_id: str, status: Optional[str] = None, **fields: Any
    ) -> Optional[VideoCall]:
        """Update call status and any of the tracked timing fields."""
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown call fields: {sorted(unknown)}")

        call = await self.get_call(session_id)
        if call:
            if status:
                call.status = status
            for name, value in fields.items():
                if value is not None:
                    setattr(call, name, value)
            await self.db.commit()
            await self.db.refresh(call)
        return call

    async def notify_call_status(
        self, session_id: str, status: str, **fields: Any
    ) -> bool:
        """
        Best-effort status notification.

        Returns False instead of raising when the write fails, so callers can
        finish their local cleanup regardless.
        """
        if status == "ended" and "ended_at" not in fields:
            fields["ended_at"] = datetime.utcnow()
        try:
            call = await self.update_call(session_id, status, **fields)
        except SQLAlchemyError as e:
            logger.warning(
                f"[CALL PERSISTENCE] Failed to record status '{status}' - "
                f"Session: {session_id}, Error: {type(e).__name__}: {str(e)}"
            )
            await self.db.rollback()
            return False

        if call is None:
            logger.warning(
                f"[CALL PERSISTENCE] No call record for status '{status}' - Session: {session_id}"
            )
            return False
        return True
