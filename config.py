"""autodesc configuration: environment / .env defaults plus a persisted JSON store."""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from prompts.system_prompt import DEFAULT_SUMMARY_PROMPT
from services.atomic_io import atomic_write_text

logger = logging.getLogger("autodesc.config")

DEFAULT_SETTINGS_FILE = Path.home() / ".config" / "autodesc" / "settings.json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="AUTODESC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- LLM provider --------------------------------------------------
    api_provider: str = "kimi"  # "kimi" | "deepseek" | "hunyuan" | "qianwen"
    api_key: str = ""
    model: str = "moonshot-v1-8k"

    # --- Generation ----------------------------------------------------
    summary_length: int = Field(default=150, ge=50, le=500)
    custom_prompt: str = DEFAULT_SUMMARY_PROMPT
    categories: list[str] = Field(default_factory=list)
    review_tags: bool = False

    # --- Server / logging ----------------------------------------------
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "info"


LOG_FORMAT = "%(asctime)s | %(name)-30s | %(levelname)-7s | %(message)s"


def configure_logging(level: str = "info") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, stream=sys.stderr)


def default_settings_path() -> Path:
    override = os.environ.get("AUTODESC_SETTINGS_FILE")
    return Path(override).expanduser() if override else DEFAULT_SETTINGS_FILE


def _persisted_fields(settings: Settings) -> dict[str, Any]:
    """Values that differ from what the environment and defaults already give."""
    baseline = Settings().model_dump()
    return {name: value for name, value in settings.model_dump().items() if value != baseline[name]}


class SettingsStore:
    """Load-once / save-on-change persistence for :class:`Settings`.

    The file holds every value that differs from the environment / default
    baseline, so env-sourced secrets are never copied to disk.  Values from
    the file take precedence over the environment.
    """

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path is not None else default_settings_path()

    def load(self) -> Settings:
        if not self.path.exists():
            logger.debug("No settings file at %s; using defaults.", self.path)
            return Settings()
        raw = self.path.read_text(encoding="utf-8")
        settings = Settings(**json.loads(raw)) if raw.strip() else Settings()
        logger.debug("Loaded settings from %s", self.path)
        return settings

    def save(self, settings: Settings) -> None:
        data = _persisted_fields(settings)
        atomic_write_text(self.path, json.dumps(data, ensure_ascii=False, indent=2))
        logger.debug("Saved settings to %s", self.path)

    def update(self, settings: Settings, **changes: Any) -> Settings:
        """Return a validated copy of *settings* with *changes* applied, persisted."""
        data = settings.model_dump()
        data.update(changes)
        updated = Settings(**data)
        self.save(updated)
        return updated

    def add_category(self, settings: Settings, name: str) -> Settings:
        """Append *name* to the category list (if new) and persist."""
        name = name.strip()
        if not name:
            raise ValueError("Category name must not be empty.")
        if name in settings.categories:
            return settings
        logger.info("Adding category %r", name)
        return self.update(settings, categories=[*settings.categories, name])

    def reset_prompt(self, settings: Settings) -> Settings:
        return self.update(settings, custom_prompt=DEFAULT_SUMMARY_PROMPT)
