from __future__ import annotations

import re
from enum import Enum
from typing import Optional


class NormalizeMode(str, Enum):
    STRICT = "STRICT"
    FUZZY = "FUZZY"


FOLLOW_UP_MARKER = "would you like"

_WHITESPACE_RE = re.compile(r"\s+")
_NON_FUZZY_CHARS_RE = re.compile(r"[^a-z0-9 ]")
_FOLLOW_UP_MARKER_RE = re.compile(re.escape(FOLLOW_UP_MARKER), re.IGNORECASE)
# The offer is always the trailing question: "Would you like to see ...?"
_FOLLOW_UP_SENTENCE_RE = re.compile(r"\s*would you like[^?]*\?\s*$", re.IGNORECASE)

_AFFIRMATIVE = "yes"


def _collapse(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize(text: Optional[str], mode: NormalizeMode = NormalizeMode.STRICT) -> str:
    """
    Normalize free text into a canonical key.

    STRICT lowercases and collapses whitespace but keeps punctuation; it is the
    form used for direct catalog-key lookup.

    FUZZY additionally drops everything outside `[a-z0-9 ]`. It is used to compare
    long-form bot prose where punctuation and line breaks may differ.

    Both modes are total and idempotent: `normalize(normalize(x)) == normalize(x)`.
    """
    t = _collapse((text or "").lower())
    if mode == NormalizeMode.FUZZY:
        t = _collapse(_NON_FUZZY_CHARS_RE.sub("", t))
    return t


def is_affirmative(text: Optional[str]) -> bool:
    return normalize(text) == _AFFIRMATIVE


def has_follow_up_marker(text: Optional[str]) -> bool:
    return bool(_FOLLOW_UP_MARKER_RE.search(text or ""))


def split_on_follow_up(fuzzy_text: str) -> str:
    """
    Return the part of an already fuzzy-normalized text before the follow-up marker.

    Text without the marker is returned whole.
    """
    return fuzzy_text.split(FOLLOW_UP_MARKER, 1)[0].strip()


def strip_follow_up(text: str) -> str:
    """
    Remove the trailing "Would you like ...?" offer from a bot reply.

    Used by the "No" action. Text without an offer is returned unchanged.
    """
    stripped = _FOLLOW_UP_SENTENCE_RE.sub("", text or "")
    if stripped == text:
        # Offer without a question mark; cut at the marker itself.
        m = _FOLLOW_UP_MARKER_RE.search(text or "")
        if m:
            stripped = text[: m.start()]
    return stripped.rstrip()
