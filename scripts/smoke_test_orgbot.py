from __future__ import annotations

"""
Smoke test for the OrgBot demo (local, offline).

This script plays a few scripted sessions against the real catalog with a manual
clock standing in for the UI's timers, then checks:
- every exchange resolves (no pending turns left)
- "yes" after a code offer opens a tab and the reveal runs to the end
- unknown questions fall back to the default answer

It writes one JSON transcript per scenario to `out/smoke_test_orgbot/` and exits
non-zero if anything breaks.

Usage:
  python3 scripts/smoke_test_orgbot.py
  python3 scripts/smoke_test_orgbot.py --out-dir out/smoke_test_orgbot
  python3 scripts/smoke_test_orgbot.py --catalog my_catalog.json
"""

import argparse
import json
import sys
import traceback
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Callable, List, Optional

# Allow running as `python3 scripts/smoke_test_orgbot.py` (module imports live at repo root).
_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from catalog import Catalog, CatalogError, load_catalog
from code_panel import CodePanelManager
from conversation import ConversationSession
from resolver import Resolver
from sample_catalog import load_builtin_catalog
from scheduler import ManualClock, Scheduler


@dataclass(frozen=True)
class Step:
    label: str
    apply: Callable[[ConversationSession], None]


class SmokeFailure(AssertionError):
    pass


def _new_session(catalog: Catalog, clock: ManualClock) -> ConversationSession:
    scheduler = Scheduler(clock)
    return ConversationSession(Resolver(catalog), scheduler, CodePanelManager(scheduler, tick_ms=10), resolve_delay_ms=1500)


def _settle(session: ConversationSession, clock: ManualClock, *, max_ms: int = 120_000) -> None:
    """
    Advance the manual clock until nothing is pending or revealing.
    """
    spent = 0
    while session.is_busy():
        next_due = session.scheduler.next_due_ms()
        if next_due is None:
            break
        step = max(0, next_due - clock.now_ms())
        clock.advance(step)
        spent += step
        session.pump()
        if spent > max_ms:
            raise SmokeFailure(f"session still busy after {max_ms} ms")


def _say(text: str) -> Callable[[ConversationSession], None]:
    def _apply(s: ConversationSession) -> None:
        s.submit(text)

    return _apply


def _expect(check: Callable[[ConversationSession], bool], message: str) -> Callable[[ConversationSession], None]:
    def _apply(s: ConversationSession) -> None:
        if not check(s):
            raise SmokeFailure(message)

    return _apply


def _last_bot_text(s: ConversationSession) -> str:
    last = s.transcript.last_bot_turn()
    return last.text if last else ""


def _run_scenario(*, name: str, catalog: Catalog, steps: List[Step], out_dir: Path) -> None:
    clock = ManualClock()
    session = _new_session(catalog, clock)
    for step in steps:
        step.apply(session)
        _settle(session, clock)
        print(f"[{name}] {step.label}: {len(session.turns())} turns, {len(session.panel.open_tabs)} tabs")

    if session.transcript.pending_ids():
        raise SmokeFailure(f"[{name}] pending turns left: {session.transcript.pending_ids()}")

    payload = {
        "scenario": name,
        "catalog_revision": catalog.revision,
        "turns": [{**asdict(t), "sender": t.sender.value} for t in session.turns()],
        "tabs": [asdict(t) for t in session.panel.open_tabs],
        "panel": {
            "is_open": session.panel.is_open,
            "active_tab_id": session.panel.active_tab_id,
            "revealed_length": session.panel.revealed_length,
        },
    }
    out_path = out_dir / f"{name}.json"
    out_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    print(f"[{name}] wrote {out_path}")


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Offline smoke test for the OrgBot demo.")
    ap.add_argument("--out-dir", type=Path, default=_ROOT / "out" / "smoke_test_orgbot")
    ap.add_argument("--catalog", type=Path, default=None, help="Optional catalog JSON instead of the built-in table")
    args = ap.parse_args(argv)

    catalog = load_catalog(args.catalog) if args.catalog else load_builtin_catalog()
    out_dir: Path = args.out_dir
    out_dir.mkdir(parents=True, exist_ok=True)

    def _revealed_all(s: ConversationSession) -> bool:
        tab = s.panel.active_tab()
        return tab is not None and s.panel.revealed_length == len(tab.full_code)

    # Scenario 1: quick-pick prompt, then accept the code offer.
    s1 = [
        Step(label="ask_prompt", apply=_say("Check for public S3 buckets")),
        Step(label="check_offer", apply=_expect(lambda s: "Would you like" in _last_bot_text(s), "no code offer")),
        Step(label="say_yes", apply=_say("yes")),
        Step(label="check_tab", apply=_expect(_revealed_all, "tab missing or reveal incomplete")),
    ]

    # Scenario 2: spoken phrasing variant of the permission-sets question.
    s2 = [
        Step(
            label="ask_variant",
            apply=_say("how do I send different permission sets to two teams of users across multiple AWS accounts"),
        ),
        Step(label="say_yes", apply=_say("  YES ")),
        Step(label="check_tab", apply=_expect(lambda s: "PermissionSets" in (s.panel.displayed_code()), "no code")),
    ]

    # Scenario 3: unknown question, then a declined offer.
    s3 = [
        Step(label="ask_unknown", apply=_say("asdkjhasd")),
        Step(
            label="check_default",
            apply=_expect(lambda s: _last_bot_text(s) == catalog.default_response.text, "no default answer"),
        ),
        Step(label="ask_prompt", apply=_say("List users without MFA")),
        Step(label="decline", apply=lambda s: s.decline_follow_up(s.transcript.last_bot_turn().id)),
        Step(label="say_yes", apply=_say("yes")),
        Step(label="check_no_tab", apply=_expect(lambda s: not s.panel.open_tabs, "declined offer still opened code")),
    ]

    _run_scenario(name="prompt_then_yes", catalog=catalog, steps=s1, out_dir=out_dir)
    _run_scenario(name="spoken_variant", catalog=catalog, steps=s2, out_dir=out_dir)
    _run_scenario(name="default_and_decline", catalog=catalog, steps=s3, out_dir=out_dir)

    print("")
    print(f"OK: wrote transcripts to {out_dir}")
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except CatalogError as exc:
        print(f"FAIL: CatalogError: {exc}", file=sys.stderr)
        raise SystemExit(2)
    except SmokeFailure as exc:
        print(f"FAIL: {exc}", file=sys.stderr)
        raise SystemExit(1)
    except Exception:
        traceback.print_exc()
        raise SystemExit(1)
