"""Per-call elapsed time tracking."""
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

logger = logging.getLogger(__name__)

TickListener = Callable[[int], None]


class CallTimer:
    """
    Counts elapsed seconds for a single connected call.

    The timer is owned by its session; nothing about it is global. A running
    timer sleeps ``interval`` seconds between ticks using the injected
    ``sleep`` coroutine, and every tick is delivered to the registered
    listeners through ``advance()``. Tests can drive ``advance()`` directly
    instead of waiting on real time.

    If the clock source fails the timer marks itself degraded and stops
    advancing; listeners simply stop hearing ticks.
    """

    def __init__(
        self,
        interval: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.interval = interval
        self._sleep = sleep
        self._elapsed = 0
        self._running = False
        self._degraded = False
        self._task: Optional[asyncio.Task] = None
        self._listeners: List[TickListener] = []

    @property
    def elapsed(self) -> int:
        return self._elapsed

    @property
    def running(self) -> bool:
        return self._running

    @property
    def degraded(self) -> bool:
        return self._degraded

    def add_listener(self, listener: TickListener) -> None:
        """Register a callback that receives every new elapsed value."""
        self._listeners.append(listener)

    def start(self) -> None:
        """Start (or resume) ticking. No-op if already running or degraded."""
        if self._running or self._degraded:
            return
        self._running = True
        try:
            self._schedule()
        except RuntimeError as e:
            # No event loop to drive the clock
            logger.warning(f"[CALL TIMER] Clock unavailable, timer will not advance: {e}")
            self._running = False
            self._degraded = True

    def stop(self) -> None:
        """Stop ticking. Elapsed time is kept so a later start() resumes."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def advance(self, seconds: int = 1) -> None:
        """Move the clock forward one second at a time while running."""
        for _ in range(seconds):
            if not self._running:
                return
            self._elapsed += 1
            for listener in list(self._listeners):
                try:
                    listener(self._elapsed)
                except Exception as e:
                    logger.error(
                        f"[CALL TIMER] Tick listener failed at {self._elapsed}s: "
                        f"{type(e).__name__}: {str(e)}",
                        exc_info=True,
                    )

    def _schedule(self) -> None:
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run())

    async def _run(self) -> None:
        while self._running:
            try:
                await self._sleep(self.interval)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(
                    f"[CALL TIMER] Clock source failed at {self._elapsed}s, "
                    f"session degraded: {type(e).__name__}: {str(e)}"
                )
                self._degraded = True
                self._running = False
                self._task = None
                return
            self.advance()
