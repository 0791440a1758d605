"""Call session models."""
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel

from app.services.call_session.extension import ExtensionGate
from app.services.call_session.media import LocalMedia
from app.services.call_session.roles import Role, RoleSwitchScheduler, Side
from app.services.call_session.timer import CallTimer
from app.services.teaching.models import TeachingPrompt, normalize_question


class CallStatus(str, Enum):
    """Call lifecycle states."""

    CONNECTING = "connecting"  # Dialled, waiting for the media handshake
    CONNECTED = "connected"  # Media flowing, timer ticking
    ENDED = "ended"  # Hung up or failed; terminal

    def __str__(self) -> str:
        return self.value


class Participant(BaseModel):
    """One side of a language exchange call."""

    user_id: str
    display_name: Optional[str] = None
    interests: List[str] = []


class Notice(BaseModel):
    """Message shown to both participants."""

    seq: int
    kind: str  # call_connected, role_switched, prompt_fallback, call_extended, call_ended, ...
    message: str
    at: datetime


class CallSession:
    """In-memory state of one video call."""

    def __init__(
        self,
        session_id: str,
        initiator: Participant,
        receiver: Participant,
        timer: CallTimer,
        roles: RoleSwitchScheduler,
        extension: ExtensionGate,
    ):
        self.id = session_id
        self.initiator = initiator
        self.receiver = receiver
        self.timer = timer
        self.roles = roles
        self.extension = extension
        self.media: Dict[str, LocalMedia] = {}  # user_id -> local handles
        self.status = CallStatus.CONNECTING
        self.started_at: Optional[datetime] = None
        self.ended_at: Optional[datetime] = None
        self.end_reason: Optional[str] = None
        self.used_prompts: List[str] = []
        self.current_prompt: Optional[TeachingPrompt] = None
        self.notices: List[Notice] = []
        # Bumped on role switch and on end; stale fetch results are dropped
        self.prompt_epoch = 0

    @property
    def elapsed_seconds(self) -> int:
        return self.timer.elapsed

    @property
    def switch_fired(self) -> bool:
        return self.roles.switch_fired

    @property
    def can_extend(self) -> bool:
        return self.extension.can_extend

    @property
    def is_active(self) -> bool:
        return self.status != CallStatus.ENDED

    def side_of(self, user_id: str) -> Optional[Side]:
        if user_id == self.initiator.user_id:
            return Side.INITIATOR
        if user_id == self.receiver.user_id:
            return Side.RECEIVER
        return None

    def participant(self, side: Side) -> Participant:
        return self.initiator if side == Side.INITIATOR else self.receiver

    def role_of(self, user_id: str) -> Optional[Role]:
        side = self.side_of(user_id)
        if side is None:
            return None
        return self.roles.role_of(side)

    @property
    def teacher(self) -> Participant:
        return self.participant(self.roles.split.teaching_side)

    @property
    def learner(self) -> Participant:
        if self.roles.split.teaching_side == Side.INITIATOR:
            return self.receiver
        return self.initiator

    def add_notice(self, kind: str, message: str) -> Notice:
        notice = Notice(
            seq=len(self.notices) + 1,
            kind=kind,
            message=message,
            at=datetime.utcnow(),
        )
        self.notices.append(notice)
        return notice

    def notices_since(self, seq: int = 0) -> List[Notice]:
        return [notice for notice in self.notices if notice.seq > seq]

    def release_media(self) -> int:
        """Release every held media handle; returns how many were released now."""
        return sum(1 for media in self.media.values() if media.release())

    def remember_prompt(self, prompt: TeachingPrompt) -> None:
        """Show a prompt and record its question once."""
        self.current_prompt = prompt
        key = normalize_question(prompt.question)
        if all(normalize_question(q) != key for q in self.used_prompts):
            self.used_prompts.append(prompt.question)

    def snapshot(self, user_id: Optional[str] = None) -> dict:
        """Plain-dict view of the session for API responses."""
        data = {
            "id": self.id,
            "status": self.status.value,
            "initiator": self.initiator.model_dump(),
            "receiver": self.receiver.model_dump(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "elapsed_seconds": self.elapsed_seconds,
            "switch_fired": self.switch_fired,
            "teaching_user_id": self.teacher.user_id,
            "learning_user_id": self.learner.user_id,
            "can_extend": self.can_extend,
            "extended": self.extension.extended,
            "budget_seconds": self.extension.budget_seconds,
            "remaining_seconds": max(0, self.extension.budget_seconds - self.elapsed_seconds),
            "current_prompt": self.current_prompt.model_dump(mode="json") if self.current_prompt else None,
            "used_prompts": list(self.used_prompts),
            "degraded": self.timer.degraded,
            "end_reason": self.end_reason,
        }
        if user_id is not None:
            role = self.role_of(user_id)
            data["my_role"] = role.value if role else None
        return data
