"""Call extension gate."""
import logging

from app.services.call_session.errors import ExtensionUnavailableError

logger = logging.getLogger(__name__)


class ExtensionGate:
    """Lets either participant extend the call once it has run long enough."""

    def __init__(
        self,
        gate_seconds: int = 1800,
        extension_seconds: int = 900,
        budget_seconds: int = 1800,
    ):
        self.gate_seconds = gate_seconds
        self.extension_seconds = extension_seconds
        self.budget_seconds = budget_seconds
        self.extended = False
        self._open = False

    @property
    def can_extend(self) -> bool:
        return self._open

    def on_tick(self, elapsed: int) -> bool:
        """Returns True on the tick that opens the gate."""
        # Opening is one-way
        if self._open or elapsed < self.gate_seconds:
            return False
        self._open = True
        logger.info(f"[EXTENSION GATE] Gate opened at {elapsed}s")
        return True

    def request_extension(self) -> bool:
        """
        Extend the logical call budget.

        Returns:
            True if the budget was extended, False if this call was already
            extended (repeat requests have no further effect).

        Raises:
            ExtensionUnavailableError: if the gate has not opened yet.
        """
        if not self._open:
            raise ExtensionUnavailableError(
                f"Calls can be extended after {self.gate_seconds // 60} minutes"
            )
        if self.extended:
            return False

        self.extended = True
        self.budget_seconds += self.extension_seconds
        logger.info(
            f"[EXTENSION GATE] Call extended by {self.extension_seconds}s, "
            f"budget now {self.budget_seconds}s"
        )
        return True
