from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, List, Optional

from code_panel import CodePanelManager
from normalizer import has_follow_up_marker, strip_follow_up
from resolver import CodeUnlock, ResolutionOutcome, Resolver, render_outcome
from scheduler import Scheduler, TimerHandle
from transcript import Sender, Transcript, Turn

logger = logging.getLogger("orgbot.conversation")

DEFAULT_RESOLVE_DELAY_MS = 1500


class ConversationState(str, Enum):
    IDLE = "IDLE"
    AWAITING_RESOLUTION = "AWAITING_RESOLUTION"


class ConversationSession:
    """
    Owns the transcript and drives each exchange through
    Idle -> AwaitingResolution -> Resolved.

    `submit` appends the user turn plus a pending bot placeholder and schedules
    resolution after an artificial delay. When the timer fires the placeholder is
    replaced in place, by id, with the resolved reply. A code unlock also opens a
    tab in the code panel. Input is never blocked: several exchanges may be in
    flight and they resolve in submission order.
    """

    def __init__(
        self,
        resolver: Resolver,
        scheduler: Scheduler,
        panel: CodePanelManager,
        *,
        resolve_delay_ms: int = DEFAULT_RESOLVE_DELAY_MS,
    ) -> None:
        self.resolver = resolver
        self.scheduler = scheduler
        self.panel = panel
        self.resolve_delay_ms = max(0, int(resolve_delay_ms))
        self.transcript = Transcript()
        self.last_outcome: Optional[ResolutionOutcome] = None
        self._in_flight: Dict[int, TimerHandle] = {}

    @property
    def state(self) -> ConversationState:
        if self._in_flight:
            return ConversationState.AWAITING_RESOLUTION
        return ConversationState.IDLE

    def turns(self) -> List[Turn]:
        return self.transcript.turns()

    def submit(self, text: str) -> Optional[int]:
        """
        Queue one user utterance. Returns the id of the pending bot turn, or None
        for blank input.
        """
        raw = (text or "").strip()
        if not raw:
            return None
        self.transcript.append(text=raw, sender=Sender.USER)
        pending = self.transcript.append(text="", sender=Sender.BOT, is_pending=True)
        logger.debug("submit %r -> pending turn %s", raw, pending.id)
        self._in_flight[pending.id] = self.scheduler.call_later(
            self.resolve_delay_ms,
            lambda: self._complete(pending.id, raw),
        )
        return pending.id

    def _complete(self, pending_id: int, raw: str) -> None:
        self._in_flight.pop(pending_id, None)
        current = self.transcript.find(pending_id)
        if current is None or not current.is_pending:
            return

        # Resolve against what was on screen when this input was submitted.
        prior: List[Turn] = []
        for turn in self.transcript:
            if turn.id == pending_id:
                break
            prior.append(turn)

        outcome = self.resolver.resolve(raw, prior)
        text, code = render_outcome(outcome)
        self.transcript.replace(pending_id, text=text, code=code)
        self.last_outcome = outcome
        logger.debug("resolved turn %s as %s", pending_id, type(outcome).__name__)

        if isinstance(outcome, CodeUnlock):
            self.panel.open_tab(outcome.code, outcome.tab_title)
            self.panel.open_panel()

    def pump(self, now_ms: Optional[int] = None) -> int:
        return self.scheduler.run_due(now_ms)

    def is_busy(self) -> bool:
        return bool(self._in_flight) or self.panel.is_revealing()

    def decline_follow_up(self, turn_id: int) -> bool:
        """
        The "No" answer to a code offer: drop the offer sentence from that reply.

        The turn keeps its id and position, so a later "yes" no longer sees an offer.
        """
        turn = self.transcript.find(turn_id)
        if turn is None or turn.sender != Sender.BOT or turn.is_pending:
            return False
        if not has_follow_up_marker(turn.text):
            return False
        self.transcript.replace(turn_id, text=strip_follow_up(turn.text), code=turn.code)
        return True

    def history_items(self, width: int = 60) -> List[str]:
        items: List[str] = []
        for turn in self.transcript:
            if turn.is_pending:
                continue
            prefix = "You: " if turn.sender == Sender.USER else "Assistant: "
            line = " ".join(turn.text.split())
            if len(line) > width:
                line = line[: max(0, width - 1)].rstrip() + "…"
            items.append(prefix + line)
        return items

    def reset(self) -> None:
        for handle in self._in_flight.values():
            handle.cancel()
        self._in_flight.clear()
        self.transcript.clear()
        self.last_outcome = None
