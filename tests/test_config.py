"""Tests for configuration loading and validation."""

from __future__ import annotations

from pathlib import Path
import tempfile
import unittest

from pydantic import ValidationError

from racemanager.config import DEFAULT_CONFIG, Config, ensure_config_dir, load_config


class ConfigTests(unittest.TestCase):
    """Validate config merge and fallback behavior."""

    def test_missing_config_uses_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config = load_config(config_path=Path(temp_dir) / "config.toml")
        self.assertEqual(config["app"]["title"], DEFAULT_CONFIG["app"]["title"])
        self.assertEqual(config["store"]["max_history_size"], 50)
        self.assertEqual(config["event_bus"]["max_history_size"], 100)
        self.assertEqual(config["router"]["not_found_path"], "/404")
        self.assertEqual(config["router"]["error_path"], "/error")
        self.assertEqual(config["router"]["default_title"], "RaceManager Pro")
        self.assertEqual(config["logging"]["level"], DEFAULT_CONFIG["logging"]["level"])

    def test_partial_config_overrides_selected_values(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            config_path.write_text(
                """
[app]
title = "Paddock Club"
environment = "Production"

[store]
max_history_size = 200

[router]
origin = "https://racemanager.app/"
                """.strip(),
                encoding="utf-8",
            )
            config = load_config(config_path=config_path)
        self.assertEqual(config["app"]["title"], "Paddock Club")
        self.assertEqual(config["app"]["environment"], "production")
        self.assertEqual(config["store"]["max_history_size"], 200)
        self.assertEqual(config["store"]["max_notify_depth"], 16)
        self.assertEqual(config["router"]["origin"], "https://racemanager.app")
        # The document title follows the app title unless set explicitly.
        self.assertEqual(config["router"]["default_title"], "Paddock Club")

    def test_invalid_values_fall_back_to_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            config_path.write_text(
                """
[router]
not_found_path = "404"
                """.strip(),
                encoding="utf-8",
            )
            with self.assertLogs("racemanager.config", level="WARNING") as logs:
                config = load_config(config_path=config_path)
        self.assertEqual(config["router"]["not_found_path"], "/404")
        self.assertTrue(any("config.invalid" in line for line in logs.output))

    def test_malformed_toml_is_reported(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            config_path.write_text("[store\nmax_history_size = ", encoding="utf-8")
            with self.assertLogs("racemanager.config", level="WARNING") as logs:
                config = load_config(config_path=config_path)
        self.assertEqual(config["store"]["max_history_size"], 50)
        self.assertTrue(any("config.parse_failed" in line for line in logs.output))

    def test_router_fallbacks_must_differ(self) -> None:
        with self.assertRaises(ValidationError):
            Config.model_validate({"router": {"not_found_path": "/oops", "error_path": "/oops"}})

    def test_rejects_non_http_origin_and_unknown_environment(self) -> None:
        with self.assertRaises(ValidationError):
            Config.model_validate({"router": {"origin": "ftp://racemanager.app"}})
        with self.assertRaises(ValidationError):
            Config.model_validate({"app": {"environment": "qa"}})

    def test_store_limits_are_bounded(self) -> None:
        with self.assertRaises(ValidationError):
            Config.model_validate({"store": {"max_notify_depth": 0}})

    def test_ensure_config_dir_creates_directory(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            target = Path(temp_dir) / "nested" / "racemanager"
            self.assertEqual(ensure_config_dir(target), target)
            self.assertTrue(target.is_dir())


if __name__ == "__main__":
    unittest.main()
