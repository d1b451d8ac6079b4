from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import List, Optional

import streamlit as st
import streamlit.components.v1 as components

import voice_input
from catalog import Catalog, CatalogError, load_catalog
from code_panel import CodePanelManager
from config import Settings, configure_logging, load_env_file, load_settings
from conversation import ConversationSession
from normalizer import has_follow_up_marker
from resolver import Resolver
from sample_catalog import load_builtin_catalog
from scheduler import Scheduler
from transcript import Sender, Turn

logger = logging.getLogger("orgbot.app")

_SESSION_KEY = "orgbot_session"
_RERUN_POLL_S = 0.35
_COPY_KEY = "panel_copy_text"
_COPY_READY_MSG = "Full code is below: use the copy icon on the block."
_COPY_FAILED_MSG = "Could not copy the code."


def _read_secret_or_env_str(key: str) -> str:
    """
    Read a configuration value from Streamlit Secrets (preferred) or environment variables.

    Returns a stripped string; returns "" when missing.
    """
    val: object = ""
    try:
        val = st.secrets.get(key, "")  # type: ignore[attr-defined]
    except Exception:
        # No secrets.toml at all is the normal local case.
        val = ""
    if not val:
        val = os.environ.get(key, "")
    if isinstance(val, str):
        return val.strip()
    return str(val).strip() if val is not None else ""


_MIRRORED_SECRETS = (
    "OPENAI_API_KEY",
    "OPENAI_TRANSCRIBE_ENABLED",
    "OPENAI_TRANSCRIBE_MODEL",
    "ORGBOT_CATALOG_PATH",
    "ORGBOT_RESOLVE_DELAY_MS",
    "ORGBOT_REVEAL_TICK_MS",
    "LOG_LEVEL",
)


def _sync_env_from_secrets() -> None:
    """
    Mirror Streamlit secrets into environment variables.

    This keeps `config.py` and `voice_input.py` Streamlit-free while still allowing
    `.streamlit/secrets.toml` to configure the demo.
    """
    for key in _MIRRORED_SECRETS:
        value = _read_secret_or_env_str(key)
        if value:
            os.environ[key] = value


@st.cache_resource(show_spinner=False)
def _load_catalog_cached(path_str: str, mtime: float) -> Catalog:
    # `mtime` is part of the cache key so edits to the JSON file are picked up.
    return load_catalog(Path(path_str))


def _load_catalog(settings: Settings) -> Catalog:
    path = settings.catalog_path
    if path is None:
        return load_builtin_catalog()
    if not path.exists():
        raise CatalogError(f"Catalog file not found: {path}")
    return _load_catalog_cached(str(path), path.stat().st_mtime)


def _build_session(settings: Settings, catalog: Catalog) -> ConversationSession:
    scheduler = Scheduler()
    panel = CodePanelManager(scheduler, tick_ms=settings.reveal_tick_ms)
    return ConversationSession(
        Resolver(catalog),
        scheduler,
        panel,
        resolve_delay_ms=settings.resolve_delay_ms,
    )


def _session(settings: Settings, catalog: Catalog) -> ConversationSession:
    session = st.session_state.get(_SESSION_KEY)
    if not isinstance(session, ConversationSession) or session.resolver.catalog.revision != catalog.revision:
        session = _build_session(settings, catalog)
        st.session_state[_SESSION_KEY] = session
    return session


def _follow_up_turn_id(turns: List[Turn]) -> Optional[int]:
    """
    The latest resolved bot turn, when it still carries a code offer.
    """
    for turn in reversed(turns):
        if turn.sender != Sender.BOT or turn.is_pending:
            continue
        return turn.id if has_follow_up_marker(turn.text) else None
    return None


def _guess_language(code: str) -> str:
    body = code.lstrip()
    if body.startswith("//") or "const " in body or "require(" in body:
        return "javascript"
    if "import " in body or body.startswith("# Python") or "print(" in body:
        return "python"
    return "bash"


def _clipboard_sink(text: str) -> bool:
    """
    Stage the full active code for copying.

    The server has no access to the browser clipboard, so the staged code is shown in
    `st.code`, whose copy icon does the copy (and reports failures) in the browser.
    Returns False when there is nothing worth copying.
    """
    if not text.strip():
        return False
    st.session_state[_COPY_KEY] = text
    return True


def _maybe_autoscroll_chat(session: ConversationSession) -> None:
    """
    Scroll the chat container to the newest turn when a turn is added or resolved.
    """
    turns = session.turns()
    if not turns:
        return
    latest = [turns[-1].id, turns[-1].is_pending]
    if st.session_state.get("chat_last_scrolled_turn") == latest:
        return

    components.html(
        """
<script>
(() => {
  try {
    const doc = window.parent.document;
    window.requestAnimationFrame(() => {
      const anchor = doc.getElementById("chat-scroll-anchor");
      if (anchor) {
        try { anchor.scrollIntoView({ behavior: "smooth", block: "end" }); } catch (e) {}
      }
    });
  } catch (e) {}
})();
</script>
""",
        height=0,
    )
    st.session_state["chat_last_scrolled_turn"] = latest


# region chat
def _render_transcript(session: ConversationSession) -> None:
    turns = session.turns()
    offer_id = _follow_up_turn_id(turns)
    for turn in turns:
        role = "user" if turn.sender == Sender.USER else "assistant"
        with st.chat_message(role):
            if turn.is_pending:
                st.caption("Thinking…")
                continue
            st.markdown(turn.text)
            if turn.id == offer_id:
                yes_col, no_col, _ = st.columns([1, 1, 4])
                if yes_col.button("Yes", key=f"offer_yes_{turn.id}", use_container_width=True):
                    session.submit("yes")
                    st.rerun()
                if no_col.button("No", key=f"offer_no_{turn.id}", use_container_width=True):
                    session.decline_follow_up(turn.id)
                    st.rerun()
    st.markdown('<div id="chat-scroll-anchor"></div>', unsafe_allow_html=True)
    _maybe_autoscroll_chat(session)


def _render_prompt_buttons(session: ConversationSession, prompts: List[str]) -> None:
    if not prompts:
        return
    cols = st.columns(len(prompts))
    for col, prompt in zip(cols, prompts):
        if col.button(prompt, key=f"prompt_{prompt}", use_container_width=True):
            session.submit(prompt)
            st.rerun()


def _render_voice_input(session: ConversationSession, settings: Settings) -> None:
    if not voice_input.transcription_enabled(settings.transcribe_enabled):
        return
    seq = int(st.session_state.get("voice_input_seq") or 0)
    clip = st.audio_input("Ask with your voice", key=f"voice_input_{seq}")
    if clip is None:
        return
    with st.spinner("Transcribing…"):
        text = voice_input.transcribe_audio(
            clip.getvalue(),
            model=settings.transcribe_model,
            enabled=settings.transcribe_enabled,
            filename=getattr(clip, "name", "speech.wav"),
        )
    # A fresh widget key drops the recorded clip so it is submitted once.
    st.session_state["voice_input_seq"] = seq + 1
    if text:
        session.submit(text)
    else:
        st.warning("Sorry, I couldn't make out that recording.")
    st.rerun()


def _render_chat(session: ConversationSession, catalog: Catalog, settings: Settings) -> None:
    st.subheader("OrgBot Assistant")
    st.caption(
        "Try a compliance or operations prompt, like connecting Jira, uploading a privacy policy, "
        "or checking for public S3 buckets."
    )
    with st.container(height=560, border=True):
        _render_transcript(session)

    user_text = st.chat_input("Ask me anything about OrgBot")
    if user_text is not None:
        session.submit(user_text)
        st.rerun()

    _render_prompt_buttons(session, list(catalog.prompts))
    _render_voice_input(session, settings)


# endregion chat


# region code panel
def _render_code_panel(session: ConversationSession) -> None:
    panel = session.panel
    header, copy_col = st.columns([4, 1])
    header.markdown("#### OrgBot Code Viewer")
    if copy_col.button("Copy", key="panel_copy", use_container_width=True, disabled=panel.active_tab() is None):
        if panel.copy_active(_clipboard_sink):
            st.toast(_COPY_READY_MSG)
        else:
            st.toast(_COPY_FAILED_MSG)

    tabs = panel.open_tabs
    if not tabs:
        st.info("Say **yes** to a code offer and the sample will open here.")
        return

    for tab in tabs:
        title_col, close_col = st.columns([5, 1])
        label = f"▸ {tab.title}" if tab.id == panel.active_tab_id else tab.title
        if title_col.button(label, key=f"tab_{tab.id}", use_container_width=True):
            panel.activate(tab.id)
            st.rerun()
        if close_col.button("✕", key=f"tab_close_{tab.id}", use_container_width=True):
            panel.close(tab.id)
            st.rerun()

    active = panel.active_tab()
    if active is not None:
        st.code(panel.displayed_code(), language=_guess_language(active.full_code), line_numbers=True)
        staged = st.session_state.get(_COPY_KEY)
        if staged == active.full_code:
            with st.expander("Full code", expanded=True):
                st.code(staged, language=_guess_language(staged))


# endregion code panel


def _render_sidebar(session: ConversationSession, catalog: Catalog) -> None:
    with st.sidebar:
        label = "Hide code" if session.panel.is_open else "Show code"
        if st.button(label, key="panel_toggle", use_container_width=True):
            session.panel.toggle_panel()
            st.rerun()

        st.markdown("### Chat History")
        items = session.history_items()
        if not items:
            st.caption("No messages yet.")
        for item in items:
            st.caption(item)

        if st.button("Start over", key="chat_reset", use_container_width=True):
            session.reset()
            st.rerun()
        st.caption(f"Catalog: {catalog.revision}")


def _maybe_rerun_while_busy(session: ConversationSession) -> None:
    """
    Streamlit has no background timers: keep rerunning while a reply is pending
    or a reveal is typing, pumping the scheduler on each pass.
    """
    if not session.is_busy():
        return
    next_due = session.scheduler.next_due_ms()
    wait_ms = 0 if next_due is None else max(0, next_due - session.scheduler.now_ms())
    time.sleep(min(_RERUN_POLL_S, wait_ms / 1000.0))
    st.rerun()


def main() -> None:
    st.set_page_config(page_title="OrgBot Assistant", layout="wide")

    load_env_file()
    _sync_env_from_secrets()
    settings = load_settings()
    configure_logging(settings.log_level)

    try:
        catalog = _load_catalog(settings)
    except CatalogError as exc:
        logger.error("Catalog load failed: %s", exc)
        st.error(f"Could not load the question catalog: {exc}")
        st.stop()

    session = _session(settings, catalog)
    session.pump()

    _render_sidebar(session, catalog)

    if session.panel.is_open:
        chat_col, panel_col = st.columns([3, 2], gap="large")
        with chat_col:
            _render_chat(session, catalog, settings)
        with panel_col:
            _render_code_panel(session)
    else:
        _render_chat(session, catalog, settings)

    _maybe_rerun_while_busy(session)


if __name__ == "__main__":
    main()
