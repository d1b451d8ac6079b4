from __future__ import annotations

import heapq
import itertools
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol


class Clock(Protocol):
    def now_ms(self) -> int: ...


class MonotonicClock:
    def now_ms(self) -> int:
        return int(time.monotonic() * 1000)


class ManualClock:
    """
    Clock that only moves when told to. Used by tests and the offline smoke script.
    """

    def __init__(self, start_ms: int = 0) -> None:
        self._now_ms = int(start_ms)

    def now_ms(self) -> int:
        return self._now_ms

    def advance(self, ms: int) -> int:
        if ms < 0:
            raise ValueError("cannot move a clock backwards")
        self._now_ms += int(ms)
        return self._now_ms


@dataclass
class TimerHandle:
    due_ms: int
    seq: int
    callback: Callable[[], None] = field(repr=False)
    cancelled: bool = False
    fired: bool = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def active(self) -> bool:
        return not self.cancelled and not self.fired


class Scheduler:
    """
    Cooperative fixed-delay timer service.

    Nothing runs on its own: the owner calls `run_due()` (each UI rerun, or each
    step of a test) and every timer whose due time has passed fires, in due-time
    order with FIFO tie-breaks. Callbacks may schedule further timers; those fire
    in the same `run_due()` call when they are already due, so a reveal that fell
    behind catches up in one pass.
    """

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self.clock: Clock = clock or MonotonicClock()
        self._heap: List[tuple[int, int, TimerHandle]] = []
        self._seq = itertools.count(1)

    def now_ms(self) -> int:
        return self.clock.now_ms()

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        due = self.now_ms() + max(0, int(delay_ms))
        return self._push(due, callback)

    def call_at(self, due_ms: int, callback: Callable[[], None]) -> TimerHandle:
        return self._push(int(due_ms), callback)

    def _push(self, due_ms: int, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(due_ms=due_ms, seq=next(self._seq), callback=callback)
        heapq.heappush(self._heap, (handle.due_ms, handle.seq, handle))
        return handle

    def run_due(self, now_ms: Optional[int] = None) -> int:
        now = self.now_ms() if now_ms is None else int(now_ms)
        fired = 0
        while self._heap and self._heap[0][0] <= now:
            _, _, handle = heapq.heappop(self._heap)
            if handle.cancelled:
                continue
            handle.fired = True
            handle.callback()
            fired += 1
        return fired

    def next_due_ms(self) -> Optional[int]:
        self._drop_cancelled()
        if not self._heap:
            return None
        return self._heap[0][0]

    def pending_count(self) -> int:
        return sum(1 for _, _, h in self._heap if h.active)

    def _drop_cancelled(self) -> None:
        while self._heap and self._heap[0][2].cancelled:
            heapq.heappop(self._heap)
