from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from scheduler import Scheduler, TimerHandle

logger = logging.getLogger("orgbot.code_panel")

DEFAULT_REVEAL_TICK_MS = 10


@dataclass(frozen=True)
class Tab:
    id: str
    title: str
    full_code: str


@dataclass(frozen=True)
class PanelState:
    open_tabs: Tuple[Tab, ...]
    active_tab_id: Optional[str]
    revealed_length: int
    is_open: bool


class CodePanelManager:
    """
    Side panel of code tabs with a typing-style reveal of the active tab.

    The reveal is one armed timer at a time, bound to the tab it was started for.
    Switching tabs, closing the active tab, or closing the panel cancels that timer
    and resets `revealed_length` to 0; the next reveal always starts from empty.
    """

    def __init__(self, scheduler: Scheduler, *, tick_ms: int = DEFAULT_REVEAL_TICK_MS) -> None:
        if tick_ms <= 0:
            raise ValueError("tick_ms must be positive")
        self.scheduler = scheduler
        self.tick_ms = int(tick_ms)
        self.is_open = False
        self.active_tab_id: Optional[str] = None
        self.revealed_length = 0
        self._tabs: List[Tab] = []
        self._tab_seq = itertools.count(1)
        self._reveal: Optional[TimerHandle] = None

    # region tabs
    @property
    def open_tabs(self) -> Tuple[Tab, ...]:
        return tuple(self._tabs)

    def state(self) -> PanelState:
        return PanelState(
            open_tabs=self.open_tabs,
            active_tab_id=self.active_tab_id,
            revealed_length=self.revealed_length,
            is_open=self.is_open,
        )

    def active_tab(self) -> Optional[Tab]:
        return self._find(self.active_tab_id)

    def _find(self, tab_id: Optional[str]) -> Optional[Tab]:
        if tab_id is None:
            return None
        for tab in self._tabs:
            if tab.id == tab_id:
                return tab
        return None

    def open_tab(self, code: str, title: str) -> str:
        # No dedup: every reveal event gets its own tab.
        tab = Tab(id=f"tab-{next(self._tab_seq)}", title=title or "Code Snippet", full_code=code or "")
        self._tabs.append(tab)
        logger.debug("opened %s %r (%d chars)", tab.id, tab.title, len(tab.full_code))
        self._set_active(tab.id)
        return tab.id

    def activate(self, tab_id: str) -> None:
        if self._find(tab_id) is None:
            raise KeyError(tab_id)
        self._set_active(tab_id)

    def close(self, tab_id: str) -> bool:
        tab = self._find(tab_id)
        if tab is None:
            return False
        self._tabs.remove(tab)
        logger.debug("closed %s", tab_id)
        if tab_id == self.active_tab_id:
            self._set_active(self._tabs[-1].id if self._tabs else None)
        return True

    def _set_active(self, tab_id: Optional[str]) -> None:
        self.active_tab_id = tab_id
        self._restart_reveal()

    # endregion tabs

    # region panel visibility
    def open_panel(self) -> None:
        if self.is_open:
            return
        self.is_open = True
        self._restart_reveal()

    def close_panel(self) -> None:
        self.is_open = False
        self._cancel_reveal()
        self.revealed_length = 0

    def toggle_panel(self) -> bool:
        if self.is_open:
            self.close_panel()
        else:
            self.open_panel()
        return self.is_open

    # endregion panel visibility

    # region reveal
    def displayed_code(self) -> str:
        tab = self.active_tab()
        if tab is None or not self.is_open:
            return ""
        return tab.full_code[: self.revealed_length]

    def is_revealing(self) -> bool:
        return self._reveal is not None and self._reveal.active

    def advance_reveal(self) -> bool:
        """
        Reveal one more character of the active tab.

        Returns True while more of the code remains hidden.
        """
        tab = self.active_tab()
        if tab is None or not self.is_open:
            return False
        if self.revealed_length < len(tab.full_code):
            self.revealed_length += 1
        return self.revealed_length < len(tab.full_code)

    def _cancel_reveal(self) -> None:
        if self._reveal is not None:
            self._reveal.cancel()
            self._reveal = None

    def _restart_reveal(self) -> None:
        self._cancel_reveal()
        self.revealed_length = 0
        tab = self.active_tab()
        if tab is None or not self.is_open or not tab.full_code:
            return
        self._arm(tab.id, self.scheduler.now_ms() + self.tick_ms)

    def _arm(self, tab_id: str, due_ms: int) -> None:
        handle: Optional[TimerHandle] = None

        def _tick() -> None:
            # A stale timer must not touch the new tab's reveal.
            if handle is not self._reveal or tab_id != self.active_tab_id:
                return
            if self.advance_reveal():
                # Chain from the due time, not wall time, so a late pump catches up.
                self._arm(tab_id, handle.due_ms + self.tick_ms)
            else:
                self._reveal = None

        handle = self.scheduler.call_at(due_ms, _tick)
        self._reveal = handle

    # endregion reveal

    def copy_active(self, sink: Callable[[str], object]) -> bool:
        """
        Hand the active tab's full code to a clipboard/export sink.

        A sink that raises or returns False is a failed copy: it is logged and
        reported as False, and panel state is untouched.
        """
        tab = self.active_tab()
        if tab is None:
            return False
        try:
            accepted = sink(tab.full_code)
        except Exception as exc:
            logger.warning("Failed to copy text from %s: %s", tab.id, exc)
            return False
        if accepted is False:
            logger.warning("Failed to copy text from %s: sink refused it", tab.id)
            return False
        return True
