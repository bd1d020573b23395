"""Timer abstractions for the autosave scheduler."""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol


class TimerHandle(Protocol):
    """A scheduled callback that can be cancelled before it fires."""

    def cancel(self) -> None:
        """Prevent the callback from running."""


class Clock(Protocol):
    """Source of time and one-shot timers."""

    def now(self) -> datetime:
        """Return the current time."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` once after ``delay`` seconds."""


class AsyncioClock:
    """Wall-clock timers on the running event loop."""

    def now(self) -> datetime:
        return datetime.now(tz=UTC)

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


@dataclass
class _VirtualTimer:
    due: float
    callback: Callable[[], None]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class VirtualClock:
    """Manually advanced clock; timers fire only inside ``advance``."""

    start: datetime = field(default_factory=lambda: datetime(2024, 1, 1, tzinfo=UTC))
    elapsed: float = 0.0
    _timers: list[_VirtualTimer] = field(default_factory=list, repr=False)

    def now(self) -> datetime:
        return self.start + timedelta(seconds=self.elapsed)

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = _VirtualTimer(due=self.elapsed + delay, callback=callback)
        self._timers.append(timer)
        return timer

    def advance(self, seconds: float) -> None:
        """Move time forward, firing due timers in order."""
        target = self.elapsed + seconds
        while True:
            due = [t for t in self._timers if not t.cancelled and t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self._timers.remove(timer)
            self.elapsed = timer.due
            timer.callback()
        self.elapsed = target
        self._timers = [t for t in self._timers if not t.cancelled]

    @property
    def pending_timers(self) -> int:
        return sum(1 for t in self._timers if not t.cancelled)
