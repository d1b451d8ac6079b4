from __future__ import annotations

import unittest

from code_panel import CodePanelManager
from scheduler import ManualClock, Scheduler


def _panel(tick_ms: int = 10) -> tuple[CodePanelManager, ManualClock]:
    clock = ManualClock()
    return CodePanelManager(Scheduler(clock), tick_ms=tick_ms), clock


def _run(panel: CodePanelManager, clock: ManualClock, ms: int) -> None:
    clock.advance(ms)
    panel.scheduler.run_due()


class TestTabs(unittest.TestCase):
    def test_open_tab_always_creates_and_activates(self) -> None:
        panel, _ = _panel()
        a = panel.open_tab("\nprint(1)", "Same")
        b = panel.open_tab("\nprint(1)", "Same")
        self.assertNotEqual(a, b)
        self.assertEqual([t.id for t in panel.open_tabs], [a, b])
        self.assertEqual(panel.active_tab_id, b)

    def test_open_then_close_restores_previous_state(self) -> None:
        panel, _ = _panel()
        panel.open_panel()
        before = (panel.open_tabs, panel.active_tab_id)
        tab_id = panel.open_tab("\nx = 1", "Only")
        self.assertTrue(panel.close(tab_id))
        self.assertEqual((panel.open_tabs, panel.active_tab_id), before)
        self.assertEqual(panel.revealed_length, 0)
        self.assertEqual(panel.displayed_code(), "")
        self.assertFalse(panel.is_revealing())

    def test_closing_active_tab_falls_back_to_last_remaining(self) -> None:
        panel, _ = _panel()
        a = panel.open_tab("a", "A")
        b = panel.open_tab("b", "B")
        c = panel.open_tab("c", "C")
        panel.activate(b)
        panel.close(b)
        self.assertEqual(panel.active_tab_id, c)
        panel.close(c)
        self.assertEqual(panel.active_tab_id, a)

    def test_closing_inactive_tab_keeps_active_and_reveal(self) -> None:
        panel, clock = _panel()
        panel.open_panel()
        a = panel.open_tab("aaaa", "A")
        b = panel.open_tab("bbbbbbbb", "B")
        _run(panel, clock, 30)
        self.assertEqual(panel.revealed_length, 3)
        panel.close(a)
        self.assertEqual(panel.active_tab_id, b)
        self.assertEqual(panel.revealed_length, 3)
        self.assertTrue(panel.is_revealing())

    def test_close_unknown_tab_is_noop(self) -> None:
        panel, _ = _panel()
        panel.open_tab("a", "A")
        self.assertFalse(panel.close("tab-999"))
        self.assertEqual(len(panel.open_tabs), 1)

    def test_activate_unknown_tab_raises(self) -> None:
        panel, _ = _panel()
        with self.assertRaises(KeyError):
            panel.activate("tab-404")

    def test_tabs_are_immutable(self) -> None:
        panel, _ = _panel()
        panel.open_tab("a", "A")
        with self.assertRaises(Exception):
            panel.open_tabs[0].title = "changed"  # type: ignore[misc]


class TestReveal(unittest.TestCase):
    def test_reveal_is_monotonic_and_stops_at_full_length(self) -> None:
        panel, clock = _panel(tick_ms=10)
        code = "\nprint('hello')"
        panel.open_tab(code, "T")
        panel.open_panel()
        seen = [panel.revealed_length]
        for _ in range(len(code) + 5):
            _run(panel, clock, 10)
            seen.append(panel.revealed_length)
        self.assertEqual(seen, sorted(seen))
        self.assertEqual(seen[-1], len(code))
        self.assertEqual(panel.displayed_code(), code)
        self.assertFalse(panel.is_revealing())
        _run(panel, clock, 1000)
        self.assertEqual(panel.revealed_length, len(code))

    def test_no_reveal_while_panel_closed(self) -> None:
        panel, clock = _panel()
        panel.open_tab("abcdef", "T")
        _run(panel, clock, 1000)
        self.assertEqual(panel.revealed_length, 0)
        self.assertFalse(panel.is_revealing())

    def test_late_pump_catches_up(self) -> None:
        panel, clock = _panel(tick_ms=10)
        panel.open_tab("abcdefghij", "T")
        panel.open_panel()
        _run(panel, clock, 55)
        self.assertEqual(panel.revealed_length, 5)

    def test_switching_tabs_cancels_and_restarts(self) -> None:
        panel, clock = _panel(tick_ms=10)
        panel.open_panel()
        a = panel.open_tab("aaaaaaaaaa", "A")
        b = panel.open_tab("bbbbbbbbbb", "B")
        _run(panel, clock, 40)
        self.assertEqual(panel.revealed_length, 4)
        panel.activate(a)
        self.assertEqual(panel.revealed_length, 0)
        _run(panel, clock, 20)
        self.assertEqual(panel.displayed_code(), "aa")
        panel.activate(b)
        _run(panel, clock, 10)
        self.assertEqual(panel.displayed_code(), "b")

    def test_reactivating_same_tab_restarts_from_zero(self) -> None:
        panel, clock = _panel(tick_ms=10)
        panel.open_panel()
        a = panel.open_tab("abcdef", "A")
        _run(panel, clock, 30)
        panel.activate(a)
        self.assertEqual(panel.revealed_length, 0)

    def test_closing_panel_cancels_without_partial_tick(self) -> None:
        panel, clock = _panel(tick_ms=10)
        panel.open_tab("abcdefghij", "T")
        panel.open_panel()
        _run(panel, clock, 30)
        panel.close_panel()
        self.assertEqual(panel.revealed_length, 0)
        _run(panel, clock, 1000)
        self.assertEqual(panel.revealed_length, 0)
        self.assertEqual(panel.displayed_code(), "")
        self.assertEqual(panel.scheduler.pending_count(), 0)

    def test_reopening_panel_restarts_reveal(self) -> None:
        panel, clock = _panel(tick_ms=10)
        panel.open_tab("abcdefghij", "T")
        panel.open_panel()
        _run(panel, clock, 50)
        self.assertFalse(panel.toggle_panel())
        self.assertTrue(panel.toggle_panel())
        self.assertEqual(panel.revealed_length, 0)
        _run(panel, clock, 20)
        self.assertEqual(panel.revealed_length, 2)

    def test_advance_reveal_reports_remaining(self) -> None:
        panel, _ = _panel()
        panel.open_tab("abc", "T")
        self.assertFalse(panel.advance_reveal())  # panel closed
        panel.open_panel()
        self.assertTrue(panel.advance_reveal())
        self.assertTrue(panel.advance_reveal())
        self.assertFalse(panel.advance_reveal())
        self.assertFalse(panel.advance_reveal())
        self.assertEqual(panel.revealed_length, 3)

    def test_tick_must_be_positive(self) -> None:
        clock = ManualClock()
        with self.assertRaises(ValueError):
            CodePanelManager(Scheduler(clock), tick_ms=0)


class TestCopy(unittest.TestCase):
    def test_copy_hands_full_code_to_sink(self) -> None:
        panel, _ = _panel()
        panel.open_tab("\nfull code", "T")
        copied: list[str] = []
        self.assertTrue(panel.copy_active(copied.append))
        self.assertEqual(copied, ["\nfull code"])

    def test_copy_failure_is_logged_and_state_untouched(self) -> None:
        panel, clock = _panel()
        panel.open_panel()
        panel.open_tab("abcdef", "T")
        _run(panel, clock, 20)
        before = panel.state()

        def _broken(_: str) -> None:
            raise OSError("clipboard denied")

        with self.assertLogs("orgbot.code_panel", level="WARNING"):
            self.assertFalse(panel.copy_active(_broken))
        self.assertEqual(panel.state(), before)

    def test_sink_refusal_is_not_reported_as_copied(self) -> None:
        panel, _ = _panel()
        panel.open_tab("abc", "T")
        with self.assertLogs("orgbot.code_panel", level="WARNING"):
            self.assertFalse(panel.copy_active(lambda _: False))

    def test_copy_without_tab_returns_false(self) -> None:
        panel, _ = _panel()
        self.assertFalse(panel.copy_active(lambda _: None))


if __name__ == "__main__":
    unittest.main()
