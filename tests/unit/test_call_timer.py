"""Unit tests for the call timer."""
import asyncio
import pytest

from app.services.call_session.timer import CallTimer


async def _instant_sleep(_interval: float) -> None:
    await asyncio.sleep(0)


async def _let_loop_run(iterations: int = 50) -> None:
    for _ in range(iterations):
        await asyncio.sleep(0)


class TestCallTimer:
    """Test elapsed time tracking."""

    def test_does_not_advance_before_start(self, manual_timer_factory):
        """Ticks before start() are ignored."""
        timer = manual_timer_factory()
        timer.advance(10)

        assert timer.elapsed == 0
        assert timer.running is False

    def test_advance_notifies_every_second(self, manual_timer_factory):
        """Listeners see each elapsed value, none skipped."""
        timer = manual_timer_factory()
        seen = []
        timer.add_listener(seen.append)

        timer.start()
        timer.advance(5)

        assert seen == [1, 2, 3, 4, 5]
        assert timer.elapsed == 5

    def test_stop_preserves_elapsed_and_resume_continues(self, manual_timer_factory):
        """Stopping pauses the count; starting again resumes from the same value."""
        timer = manual_timer_factory()
        timer.start()
        timer.advance(120)

        timer.stop()
        timer.advance(30)
        assert timer.elapsed == 120

        timer.start()
        timer.advance(1)
        assert timer.elapsed == 121

    def test_listener_error_does_not_stop_timer(self, manual_timer_factory):
        """A failing listener is logged and the other listeners still run."""
        timer = manual_timer_factory()
        seen = []

        def broken(_elapsed):
            raise ValueError("boom")

        timer.add_listener(broken)
        timer.add_listener(seen.append)
        timer.start()
        timer.advance(3)

        assert seen == [1, 2, 3]
        assert timer.running is True

    def test_start_without_event_loop_degrades(self):
        """No clock source: the timer stays at zero and reports degraded."""
        timer = CallTimer()
        timer.start()

        assert timer.degraded is True
        assert timer.running is False
        assert timer.elapsed == 0

    @pytest.mark.asyncio
    async def test_running_timer_ticks_until_stopped(self):
        """The background task ticks through the injected sleep."""
        timer = CallTimer(interval=1.0, sleep=_instant_sleep)
        seen = []

        def on_tick(elapsed):
            seen.append(elapsed)
            if elapsed == 5:
                timer.stop()

        timer.add_listener(on_tick)
        timer.start()
        await _let_loop_run()

        assert seen == [1, 2, 3, 4, 5]
        assert timer.running is False
        assert timer.elapsed == 5

    @pytest.mark.asyncio
    async def test_start_twice_runs_one_task(self):
        """A second start() while running does not double the tick rate."""
        timer = CallTimer(interval=1.0, sleep=_instant_sleep)
        seen = []

        def on_tick(elapsed):
            seen.append(elapsed)
            if elapsed == 3:
                timer.stop()

        timer.add_listener(on_tick)
        timer.start()
        timer.start()
        await _let_loop_run()

        assert seen == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_clock_failure_degrades_session(self):
        """If the sleep source fails the timer stops advancing without raising."""
        async def broken_sleep(_interval):
            raise OSError("clock unavailable")

        timer = CallTimer(interval=1.0, sleep=broken_sleep)
        timer.start()
        await _let_loop_run(5)

        assert timer.degraded is True
        assert timer.running is False
        assert timer.elapsed == 0

        # A degraded timer cannot be restarted
        timer.start()
        assert timer.running is False

    @pytest.mark.asyncio
    async def test_stop_cancels_background_task(self):
        """stop() cancels the sleeping task."""
        timer = CallTimer(interval=60.0)
        timer.start()
        await asyncio.sleep(0)

        task = timer._task
        timer.stop()
        await _let_loop_run(5)

        assert task.cancelled() or task.done()
        assert timer.elapsed == 0
