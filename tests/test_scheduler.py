from __future__ import annotations

import unittest

from scheduler import ManualClock, MonotonicClock, Scheduler


class TestScheduler(unittest.TestCase):
    def test_timers_fire_only_when_due(self) -> None:
        clock = ManualClock()
        scheduler = Scheduler(clock)
        fired: list[str] = []
        scheduler.call_later(100, lambda: fired.append("a"))
        self.assertEqual(scheduler.run_due(), 0)
        clock.advance(99)
        self.assertEqual(scheduler.run_due(), 0)
        clock.advance(1)
        self.assertEqual(scheduler.run_due(), 1)
        self.assertEqual(fired, ["a"])

    def test_same_due_time_is_fifo(self) -> None:
        clock = ManualClock()
        scheduler = Scheduler(clock)
        fired: list[int] = []
        for i in range(5):
            scheduler.call_later(10, lambda i=i: fired.append(i))
        clock.advance(10)
        scheduler.run_due()
        self.assertEqual(fired, [0, 1, 2, 3, 4])

    def test_due_order_wins_over_insertion_order(self) -> None:
        clock = ManualClock()
        scheduler = Scheduler(clock)
        fired: list[str] = []
        scheduler.call_later(50, lambda: fired.append("late"))
        scheduler.call_later(10, lambda: fired.append("early"))
        clock.advance(60)
        scheduler.run_due()
        self.assertEqual(fired, ["early", "late"])

    def test_cancelled_timer_never_fires(self) -> None:
        clock = ManualClock()
        scheduler = Scheduler(clock)
        fired: list[str] = []
        handle = scheduler.call_later(10, lambda: fired.append("x"))
        handle.cancel()
        handle.cancel()
        clock.advance(100)
        self.assertEqual(scheduler.run_due(), 0)
        self.assertEqual(fired, [])
        self.assertFalse(handle.active)
        self.assertIsNone(scheduler.next_due_ms())

    def test_chained_timers_catch_up_in_one_pass(self) -> None:
        clock = ManualClock()
        scheduler = Scheduler(clock)
        count = {"n": 0}

        def _tick(due: int) -> None:
            count["n"] += 1
            if count["n"] < 10:
                scheduler.call_at(due + 5, lambda: _tick(due + 5))

        scheduler.call_at(5, lambda: _tick(5))
        clock.advance(1000)
        self.assertEqual(scheduler.run_due(), 10)
        self.assertEqual(scheduler.pending_count(), 0)

    def test_next_due_and_pending_count(self) -> None:
        clock = ManualClock(start_ms=1000)
        scheduler = Scheduler(clock)
        scheduler.call_later(30, lambda: None)
        scheduler.call_later(20, lambda: None)
        self.assertEqual(scheduler.next_due_ms(), 1020)
        self.assertEqual(scheduler.pending_count(), 2)

    def test_manual_clock_rejects_going_backwards(self) -> None:
        with self.assertRaises(ValueError):
            ManualClock().advance(-1)

    def test_monotonic_clock_does_not_go_backwards(self) -> None:
        clock = MonotonicClock()
        a = clock.now_ms()
        b = clock.now_ms()
        self.assertGreaterEqual(b, a)


if __name__ == "__main__":
    unittest.main()
