from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Sequence, Tuple, Union

from catalog import Catalog, CatalogEntry, Response
from normalizer import (
    NormalizeMode,
    has_follow_up_marker,
    is_affirmative,
    normalize,
    split_on_follow_up,
)
from transcript import Sender, Turn

logger = logging.getLogger("orgbot.resolver")

GENERIC_TAB_TITLE = "Code"
NO_CODE_REASON = "no code available"
NO_CODE_TEXT = "Sorry, I couldn't find any code to show for this prompt."


class MatcherTier(str, Enum):
    EXACT_KEY = "EXACT_KEY"
    VARIATION_LIST = "VARIATION_LIST"
    FUZZY_CONTAINMENT = "FUZZY_CONTAINMENT"
    PREFIX_SPLIT = "PREFIX_SPLIT"
    LAST_CODE_FALLBACK = "LAST_CODE_FALLBACK"
    ANY_PRIOR_CODE_FALLBACK = "ANY_PRIOR_CODE_FALLBACK"


@dataclass(frozen=True)
class NewAnswer:
    response: Response
    title: str
    tier: MatcherTier


@dataclass(frozen=True)
class CodeUnlock:
    code: str
    tab_title: str
    tier: MatcherTier


@dataclass(frozen=True)
class Unmatched:
    reason: str = NO_CODE_REASON


@dataclass(frozen=True)
class Default:
    response: Response


ResolutionOutcome = Union[NewAnswer, CodeUnlock, Unmatched, Default]


# region question matchers
class ExactKeyMatcher:
    tier = MatcherTier.EXACT_KEY

    def match(self, key: str, catalog: Catalog) -> Optional[CatalogEntry]:
        return catalog.lookup(key)


class VariationListMatcher:
    tier = MatcherTier.VARIATION_LIST

    def match(self, key: str, catalog: Catalog) -> Optional[CatalogEntry]:
        return catalog.match_variation(key)


QUESTION_MATCHERS: Tuple[Union[ExactKeyMatcher, VariationListMatcher], ...] = (
    ExactKeyMatcher(),
    VariationListMatcher(),
)


# endregion question matchers

# region unlock matchers
@dataclass(frozen=True)
class UnlockContext:
    last_bot: Turn
    bot_turns: Tuple[Turn, ...]  # resolved bot turns, oldest first
    catalog: Catalog

    @property
    def last_bot_fuzzy(self) -> str:
        return normalize(self.last_bot.text, NormalizeMode.FUZZY)


def _unlock(code: str, title: str, tier: MatcherTier) -> CodeUnlock:
    # The viewer reserves the first line; the code starts on line two.
    return CodeUnlock(code="\n" + code, tab_title=title, tier=tier)


class FuzzyContainmentMatcher:
    tier = MatcherTier.FUZZY_CONTAINMENT

    def match(self, ctx: UnlockContext) -> Optional[CodeUnlock]:
        bot = ctx.last_bot_fuzzy
        if not bot:
            return None
        for entry in ctx.catalog.entries:
            scripted = normalize(entry.response.text, NormalizeMode.FUZZY)
            if not scripted or not entry.response.code:
                continue
            if scripted in bot or bot in scripted:
                return _unlock(entry.response.code, entry.title, self.tier)
        return None


class PrefixSplitMatcher:
    """
    Compare the text before the follow-up marker.

    Recovers the entry when the offer wording itself differs (or was cut) but the
    body of the answer is intact.
    """

    tier = MatcherTier.PREFIX_SPLIT

    def match(self, ctx: UnlockContext) -> Optional[CodeUnlock]:
        bot = ctx.last_bot_fuzzy
        bot_prefix = split_on_follow_up(bot)
        for entry in ctx.catalog.entries:
            if not entry.response.code:
                continue
            scripted = normalize(entry.response.text, NormalizeMode.FUZZY)
            scripted_prefix = split_on_follow_up(scripted)
            if scripted_prefix and bot.startswith(scripted_prefix):
                return _unlock(entry.response.code, entry.title, self.tier)
            if bot_prefix and scripted.startswith(bot_prefix):
                return _unlock(entry.response.code, entry.title, self.tier)
        return None


class LastCodeFallbackMatcher:
    tier = MatcherTier.LAST_CODE_FALLBACK

    def match(self, ctx: UnlockContext) -> Optional[CodeUnlock]:
        if ctx.last_bot.has_code:
            return _unlock(ctx.last_bot.code, GENERIC_TAB_TITLE, self.tier)
        return None


class AnyPriorCodeFallbackMatcher:
    tier = MatcherTier.ANY_PRIOR_CODE_FALLBACK

    def match(self, ctx: UnlockContext) -> Optional[CodeUnlock]:
        for turn in reversed(ctx.bot_turns):
            if turn.has_code:
                return _unlock(turn.code, GENERIC_TAB_TITLE, self.tier)
        return None


UnlockMatcher = Union[FuzzyContainmentMatcher, PrefixSplitMatcher, LastCodeFallbackMatcher, AnyPriorCodeFallbackMatcher]

UNLOCK_MATCHERS: Tuple[UnlockMatcher, ...] = (
    FuzzyContainmentMatcher(),
    PrefixSplitMatcher(),
    LastCodeFallbackMatcher(),
    AnyPriorCodeFallbackMatcher(),
)


# endregion unlock matchers


class Resolver:
    """
    Map raw user input to a scripted outcome.

    The catalog is injected so tests can swap in a fixture table. `resolve` never
    raises: anything that goes wrong inside a matcher is logged and the next tier
    is tried, ending in `Default` (question) or `Unmatched` (code unlock).
    """

    def __init__(
        self,
        catalog: Catalog,
        *,
        question_matchers: Sequence = QUESTION_MATCHERS,
        unlock_matchers: Sequence[UnlockMatcher] = UNLOCK_MATCHERS,
    ) -> None:
        self.catalog = catalog
        self.question_matchers = tuple(question_matchers)
        self.unlock_matchers = tuple(unlock_matchers)

    def resolve(self, raw_input: str, transcript: Iterable[Turn]) -> ResolutionOutcome:
        bot_turns = tuple(t for t in transcript if t.sender == Sender.BOT and not t.is_pending)
        last_bot = bot_turns[-1] if bot_turns else None

        if is_affirmative(raw_input) and last_bot is not None and has_follow_up_marker(last_bot.text):
            return self._resolve_unlock(UnlockContext(last_bot=last_bot, bot_turns=bot_turns, catalog=self.catalog))
        return self._resolve_question(raw_input)

    def _resolve_question(self, raw_input: str) -> ResolutionOutcome:
        key = normalize(raw_input)
        logger.debug("Normalized question: %r", key)
        if key:
            for matcher in self.question_matchers:
                try:
                    entry = matcher.match(key, self.catalog)
                except Exception:
                    logger.exception("question matcher %s failed for %r", matcher.tier.value, key)
                    continue
                if entry is not None:
                    logger.debug("matched %r via %s", entry.title, matcher.tier.value)
                    return NewAnswer(response=entry.response, title=entry.title, tier=matcher.tier)
        return Default(response=self.catalog.default_response)

    def _resolve_unlock(self, ctx: UnlockContext) -> ResolutionOutcome:
        for matcher in self.unlock_matchers:
            try:
                outcome = matcher.match(ctx)
            except Exception:
                logger.exception("unlock matcher %s failed", matcher.tier.value)
                continue
            if outcome is not None:
                logger.debug("code unlock %r via %s", outcome.tab_title, matcher.tier.value)
                return outcome
        logger.info("code unlock found nothing for bot turn %s", ctx.last_bot.id)
        return Unmatched(reason=NO_CODE_REASON)


def render_outcome(outcome: ResolutionOutcome) -> Tuple[str, str]:
    """
    Bot turn (text, code) for a resolution outcome.
    """
    if isinstance(outcome, (NewAnswer, Default)):
        return outcome.response.text, outcome.response.code
    if isinstance(outcome, CodeUnlock):
        return f"Here's the code. I've opened “{outcome.tab_title}” in the code viewer.", ""
    return NO_CODE_TEXT, ""
