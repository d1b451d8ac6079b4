from __future__ import annotations

import logging
import os
from typing import Optional

from openai import OpenAI

logger = logging.getLogger("orgbot.voice")


def _api_key() -> str:
    return str(os.getenv("OPENAI_API_KEY", "")).strip()


def transcription_enabled(enabled: bool) -> bool:
    """
    Whether recorded speech can be turned into text.

    `enabled` comes from `Settings.transcribe_enabled`; an API key is still required,
    so the demo runs without one by default.
    """
    return bool(enabled) and bool(_api_key())


def transcribe_audio(
    audio: bytes,
    *,
    model: str,
    enabled: bool = True,
    filename: str = "speech.wav",
    timeout_s: float = 20.0,
    client: Optional[OpenAI] = None,
) -> Optional[str]:
    """
    Turn one finished recording into a final transcript.

    Returns None when transcription is disabled, the clip is empty, or the call
    fails; the caller only ever receives complete utterances.
    """
    if not audio:
        return None
    if client is None:
        if not transcription_enabled(enabled):
            return None
        client = OpenAI(api_key=_api_key(), timeout=timeout_s)

    try:
        resp = client.audio.transcriptions.create(model=model, file=(filename, audio))
    except Exception as exc:
        logger.warning("Transcription failed: %s", exc)
        return None

    text = getattr(resp, "text", None)
    if not isinstance(text, str):
        return None
    text = " ".join(text.split())
    return text or None
