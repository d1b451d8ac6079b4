from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from code_panel import DEFAULT_REVEAL_TICK_MS
from conversation import DEFAULT_RESOLVE_DELAY_MS

BASE_DIR = Path(__file__).resolve().parent

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    resolve_delay_ms: int
    reveal_tick_ms: int
    catalog_path: Optional[Path]
    log_level: str
    transcribe_enabled: bool
    transcribe_model: str


def _truthy_env(name: str) -> bool:
    return str(os.getenv(name, "")).strip().lower() in {"1", "true", "yes", "y", "on"}


def _int_env(name: str, default: int, *, minimum: int = 0) -> int:
    raw = str(os.getenv(name, "")).strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logging.getLogger("orgbot.config").warning("Ignoring non-integer %s=%r", name, raw)
        return default
    return max(minimum, value)


def load_env_file(path: Optional[Path] = None) -> bool:
    env_path = path or (BASE_DIR / ".env")
    if not env_path.exists():
        return False
    return load_dotenv(env_path, override=False)


def load_settings() -> Settings:
    """
    Read runtime settings from the environment (after an optional `.env`).

    Streamlit secrets are mirrored into the environment by the app before this
    runs, so this module stays Streamlit-free.
    """
    catalog_raw = str(os.getenv("ORGBOT_CATALOG_PATH", "")).strip()
    return Settings(
        resolve_delay_ms=_int_env("ORGBOT_RESOLVE_DELAY_MS", DEFAULT_RESOLVE_DELAY_MS),
        reveal_tick_ms=_int_env("ORGBOT_REVEAL_TICK_MS", DEFAULT_REVEAL_TICK_MS, minimum=1),
        catalog_path=Path(catalog_raw).expanduser() if catalog_raw else None,
        log_level=str(os.getenv("LOG_LEVEL", "INFO")).strip().upper() or "INFO",
        transcribe_enabled=_truthy_env("OPENAI_TRANSCRIBE_ENABLED"),
        transcribe_model=str(os.getenv("OPENAI_TRANSCRIBE_MODEL", "")).strip() or "gpt-4o-mini-transcribe",
    )


def configure_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    if not logging.getLogger().handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("orgbot").setLevel(level)
