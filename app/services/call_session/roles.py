"""Teaching/Learning role state for a call."""
import logging
from enum import Enum
from typing import Callable, List

logger = logging.getLogger(__name__)


class Role(str, Enum):
    """Role a participant holds at a given moment."""

    TEACHING = "teaching"
    LEARNING = "learning"

    def __str__(self) -> str:
        return self.value


class Side(str, Enum):
    """Which end of the call a participant is on."""

    INITIATOR = "initiator"
    RECEIVER = "receiver"

    def __str__(self) -> str:
        return self.value


class RoleSplit(str, Enum):
    """Which side is teaching. Held per session, never per participant."""

    INITIATOR_TEACHING = "initiator_teaching"
    RECEIVER_TEACHING = "receiver_teaching"

    def inverted(self) -> "RoleSplit":
        if self is RoleSplit.INITIATOR_TEACHING:
            return RoleSplit.RECEIVER_TEACHING
        return RoleSplit.INITIATOR_TEACHING

    @property
    def teaching_side(self) -> Side:
        if self is RoleSplit.INITIATOR_TEACHING:
            return Side.INITIATOR
        return Side.RECEIVER

    def __str__(self) -> str:
        return self.value


SwitchCallback = Callable[[RoleSplit], None]


class RoleSwitchScheduler:
    """Inverts the role split exactly once, when the call reaches the switch mark."""

    def __init__(self, switch_after_seconds: int = 900):
        self.switch_after_seconds = switch_after_seconds
        self.split = RoleSplit.INITIATOR_TEACHING
        self.switch_fired = False
        self._callbacks: List[SwitchCallback] = []

    def on_switch(self, callback: SwitchCallback) -> None:
        self._callbacks.append(callback)

    def role_of(self, side: Side) -> Role:
        if side == self.split.teaching_side:
            return Role.TEACHING
        return Role.LEARNING

    def on_tick(self, elapsed: int) -> bool:
        """Handle a tick; returns True only on the tick that performed the switch."""
        if self.switch_fired or elapsed != self.switch_after_seconds:
            return False

        old_split = self.split
        self.split = old_split.inverted()
        self.switch_fired = True
        logger.info(
            f"[ROLE SWITCH] Roles inverted at {elapsed}s: {old_split.value} -> {self.split.value}"
        )
        for callback in list(self._callbacks):
            callback(self.split)
        return True
