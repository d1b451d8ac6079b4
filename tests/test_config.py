from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from config import configure_logging, load_env_file, load_settings


class TestLoadSettings(unittest.TestCase):
    def test_defaults(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            settings = load_settings()
        self.assertEqual(settings.resolve_delay_ms, 1500)
        self.assertEqual(settings.reveal_tick_ms, 10)
        self.assertIsNone(settings.catalog_path)
        self.assertEqual(settings.log_level, "INFO")
        self.assertFalse(settings.transcribe_enabled)

    def test_overrides(self) -> None:
        env = {
            "ORGBOT_RESOLVE_DELAY_MS": "0",
            "ORGBOT_REVEAL_TICK_MS": "25",
            "ORGBOT_CATALOG_PATH": "/tmp/catalog.json",
            "LOG_LEVEL": "debug",
            "OPENAI_TRANSCRIBE_ENABLED": "yes",
            "OPENAI_TRANSCRIBE_MODEL": "whisper-1",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            settings = load_settings()
        self.assertEqual(settings.resolve_delay_ms, 0)
        self.assertEqual(settings.reveal_tick_ms, 25)
        self.assertEqual(settings.catalog_path, Path("/tmp/catalog.json"))
        self.assertEqual(settings.log_level, "DEBUG")
        self.assertTrue(settings.transcribe_enabled)
        self.assertEqual(settings.transcribe_model, "whisper-1")

    def test_bad_integers_fall_back_to_defaults(self) -> None:
        env = {"ORGBOT_RESOLVE_DELAY_MS": "soon", "ORGBOT_REVEAL_TICK_MS": "0"}
        with mock.patch.dict(os.environ, env, clear=True):
            with self.assertLogs("orgbot.config", level="WARNING"):
                settings = load_settings()
        self.assertEqual(settings.resolve_delay_ms, 1500)
        # Clamped: a zero tick would never finish the reveal.
        self.assertEqual(settings.reveal_tick_ms, 1)

    def test_env_file_is_loaded_without_overriding(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            env_path = Path(td) / ".env"
            env_path.write_text("ORGBOT_REVEAL_TICK_MS=40\nLOG_LEVEL=WARNING\n", encoding="utf-8")
            with mock.patch.dict(os.environ, {"LOG_LEVEL": "ERROR"}, clear=True):
                self.assertTrue(load_env_file(env_path))
                settings = load_settings()
        self.assertEqual(settings.reveal_tick_ms, 40)
        self.assertEqual(settings.log_level, "ERROR")

    def test_missing_env_file(self) -> None:
        self.assertFalse(load_env_file(Path("/nonexistent/.env")))

    def test_configure_logging_sets_orgbot_level(self) -> None:
        import logging

        configure_logging("DEBUG")
        self.assertEqual(logging.getLogger("orgbot").level, logging.DEBUG)
        configure_logging("not-a-level")
        self.assertEqual(logging.getLogger("orgbot").level, logging.INFO)


if __name__ == "__main__":
    unittest.main()
