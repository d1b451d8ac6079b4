from __future__ import annotations

import itertools
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Iterator, List, Optional


class Sender(str, Enum):
    USER = "user"
    BOT = "bot"


@dataclass(frozen=True)
class Turn:
    id: int
    text: str
    sender: Sender
    code: str = ""
    timestamp: str = ""
    is_pending: bool = False

    @property
    def has_code(self) -> bool:
        return bool(self.code.strip())


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class Transcript:
    """
    Ordered arena of turns addressed by a stable id.

    Insertion order is display order. Turns are only ever appended, or replaced
    in place under the same id (pending placeholder -> resolved reply).
    """

    def __init__(self) -> None:
        self._order: List[int] = []
        self._turns: Dict[int, Turn] = {}
        self._seq = itertools.count(1)

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[Turn]:
        return (self._turns[i] for i in self._order)

    def turns(self) -> List[Turn]:
        return list(self)

    def append(self, *, text: str, sender: Sender, code: str = "", is_pending: bool = False) -> Turn:
        turn = Turn(
            id=next(self._seq),
            text=text,
            sender=sender,
            code=code or "",
            timestamp=_utc_now_iso(),
            is_pending=is_pending,
        )
        self._order.append(turn.id)
        self._turns[turn.id] = turn
        return turn

    def find(self, turn_id: int) -> Optional[Turn]:
        return self._turns.get(turn_id)

    def replace(self, turn_id: int, *, text: str, code: str = "", is_pending: bool = False) -> Turn:
        current = self._turns.get(turn_id)
        if current is None:
            raise KeyError(turn_id)
        updated = replace(current, text=text, code=code or "", is_pending=is_pending, timestamp=_utc_now_iso())
        self._turns[turn_id] = updated
        return updated

    def pending_ids(self) -> List[int]:
        return [i for i in self._order if self._turns[i].is_pending]

    def last_bot_turn(self) -> Optional[Turn]:
        for turn in reversed(self.turns()):
            if turn.sender == Sender.BOT and not turn.is_pending:
                return turn
        return None

    def clear(self) -> None:
        self._order.clear()
        self._turns.clear()
