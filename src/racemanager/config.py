"""Configuration loading and validation for the RaceManager runtime core."""

from __future__ import annotations

from copy import deepcopy
import logging
from pathlib import Path
import tomllib
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .exceptions import ConfigValidationError

LOGGER = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "racemanager"
CONFIG_PATH = CONFIG_DIR / "config.toml"

VALID_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}
VALID_ENVIRONMENTS = {"development", "staging", "production", "test"}


class AppConfig(BaseModel):
    """Application metadata."""

    title: str = "RaceManager Pro"
    environment: str = "development"

    @field_validator("title", mode="before")
    @classmethod
    def _validate_title(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Expected a string value.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("String value must not be empty.")
        return normalized

    @field_validator("environment", mode="before")
    @classmethod
    def _validate_environment(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("environment must be a string.")
        normalized = value.strip().lower()
        if normalized not in VALID_ENVIRONMENTS:
            raise ValueError(f"Unsupported environment {normalized!r}.")
        return normalized


class StoreConfig(BaseModel):
    """Reactive store limits."""

    max_history_size: int = Field(default=50, ge=1, le=10_000)
    max_notify_depth: int = Field(default=16, ge=1, le=1_000)


class EventBusConfig(BaseModel):
    """Event bus introspection limits."""

    max_history_size: int = Field(default=100, ge=1, le=100_000)


class RouterConfig(BaseModel):
    """Fallback routes and document defaults for the router."""

    not_found_path: str = "/404"
    error_path: str = "/error"
    default_title: str = ""
    origin: str = ""

    @field_validator("not_found_path", "error_path", mode="before")
    @classmethod
    def _validate_route_path(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Route paths must be strings.")
        normalized = value.strip()
        if not normalized.startswith("/"):
            raise ValueError("Route paths must start with '/'.")
        return normalized

    @field_validator("origin", mode="before")
    @classmethod
    def _validate_origin(cls, value: Any) -> str:
        if value is None:
            return ""
        if not isinstance(value, str):
            raise ValueError("origin must be a string.")
        normalized = value.strip().rstrip("/")
        if normalized and not normalized.startswith(("http://", "https://")):
            raise ValueError("origin must be an http(s) URL.")
        return normalized

    @model_validator(mode="after")
    def _distinct_fallbacks(self) -> RouterConfig:
        if self.not_found_path == self.error_path:
            raise ValueError("not_found_path and error_path must differ.")
        return self


class LoggingConfig(BaseModel):
    """Logging behavior and output destinations."""

    level: str = "INFO"
    structured: bool = True
    log_to_file: bool = False
    log_file_path: str = "~/.local/state/racemanager/app.log"

    @field_validator("level", mode="before")
    @classmethod
    def _validate_level(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("Logging level must be a string.")
        normalized = value.strip().upper()
        if normalized not in VALID_LOG_LEVELS:
            raise ValueError(f"Unsupported log level {normalized!r}.")
        return normalized

    @field_validator("log_file_path", mode="before")
    @classmethod
    def _validate_log_file_path(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("log_file_path must be a string.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("log_file_path must not be empty.")
        return normalized


class Config(BaseModel):
    """Root configuration model."""

    app: AppConfig = Field(default_factory=AppConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    event_bus: EventBusConfig = Field(default_factory=EventBusConfig)
    router: RouterConfig = Field(default_factory=RouterConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def _default_title_from_app(self) -> Config:
        if not self.router.default_title.strip():
            self.router.default_title = self.app.title
        return self


def _build_default_config() -> dict[str, dict[str, Any]]:
    data = Config().model_dump()
    # Keep the router title empty so a user-set app title still flows into it
    # when a partial TOML is merged onto these defaults.
    data["router"]["default_title"] = ""
    return data


DEFAULT_CONFIG: dict[str, dict[str, Any]] = _build_default_config()


def ensure_config_dir(config_dir: Path | None = None) -> Path:
    """Ensure that the config directory exists and return its path."""
    directory = config_dir or CONFIG_DIR
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        LOGGER.warning("Unable to create config directory %s: %s", directory, exc)
    return directory


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override values onto base values."""
    merged: dict[str, Any] = deepcopy(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _validate_config(raw: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Validate merged config and fall back to safe defaults when possible."""
    try:
        return Config.model_validate(raw).model_dump()
    except ValidationError as exc:
        LOGGER.warning(
            "config.invalid",
            extra={"event": "config.invalid", "reason": str(exc)},
        )
        return Config().model_dump()
    except Exception as exc:  # noqa: BLE001 - unexpected model construction failure.
        raise ConfigValidationError(f"Unable to validate configuration: {exc}") from exc


def load_config(config_path: Path | None = None) -> dict[str, dict[str, Any]]:
    """Load configuration from TOML, merge with defaults, and validate.

    A missing file yields the defaults. The optional ``config_path`` argument
    is intended for tests and tooling.
    """
    target_path = config_path or CONFIG_PATH
    raw_data: dict[str, Any] = {}
    if target_path.exists():
        try:
            raw_data = tomllib.loads(target_path.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError) as exc:
            LOGGER.warning(
                "config.parse_failed",
                extra={
                    "event": "config.parse_failed",
                    "path": str(target_path),
                    "reason": str(exc),
                },
            )
            raw_data = {}
    return _validate_config(_deep_merge(DEFAULT_CONFIG, raw_data))
