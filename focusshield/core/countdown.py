#!/usr/bin/env python3
from __future__ import annotations

import datetime as dt
import threading
from typing import Callable, Optional


def format_remaining(remaining: dt.timedelta) -> str:
    total = max(0, int(remaining.total_seconds()))
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{hours:d}:{minutes:02d}:{seconds:02d}"
    return f"{minutes:02d}:{seconds:02d}"


class Countdown:
    """A blocking wait until ``deadline`` that can be cancelled from elsewhere.

    ``run()`` wakes every ``interval`` seconds, hands the remaining time to
    ``on_tick`` and returns True once the deadline has passed, or False as
    soon as ``cancel()`` is called.
    """

    def __init__(
        self,
        deadline: dt.datetime,
        interval: float = 1.0,
        on_tick: Optional[Callable[[dt.timedelta], None]] = None,
        clock: Callable[[], dt.datetime] = dt.datetime.now,
    ) -> None:
        self.deadline = deadline
        self.interval = interval
        self.on_tick = on_tick
        self.clock = clock
        self._cancelled = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def remaining(self) -> dt.timedelta:
        return max(self.deadline - self.clock(), dt.timedelta(0))

    def expired(self) -> bool:
        return self.clock() >= self.deadline

    def run(self) -> bool:
        while not self._cancelled.is_set():
            remaining = self.remaining()
            if self.on_tick is not None:
                self.on_tick(remaining)
            if not remaining:
                return True
            self._cancelled.wait(min(self.interval, remaining.total_seconds()))
        return False
