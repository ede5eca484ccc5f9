"""
Runtime settings, read from the environment.

Entry points call `load_dotenv()` first, so a local `.env` file can supply any
of these:

    STATSBOOK_TEMPLATE_DIR      directory of layout templates (*.json)
    STATSBOOK_CURRENT_VERSION   newest layout; older ones get a warning
    STATSBOOK_DEFAULT_VERSION   layout assumed when "Read Me" is missing
    LOG_LEVEL                   logging level for the CLI / API
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, field_validator

from .template import TEMPLATE_DIR


class Settings(BaseModel):
    template_dir: Path = TEMPLATE_DIR
    current_version: str = "2019"
    default_version: str = "2018"
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level '{value}'")
        return level

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None) -> "Settings":
        """Build settings from environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        values: dict[str, str] = {}
        for field_name, variable in (
            ("template_dir", "STATSBOOK_TEMPLATE_DIR"),
            ("current_version", "STATSBOOK_CURRENT_VERSION"),
            ("default_version", "STATSBOOK_DEFAULT_VERSION"),
            ("log_level", "LOG_LEVEL"),
        ):
            if env.get(variable):
                values[field_name] = env[variable]
        return cls(**values)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
