from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SobaSettings(BaseSettings, frozen=True):
    """Runtime settings, read from SOBA_* environment variables or .env."""

    model_config = SettingsConfigDict(
        env_prefix="SOBA_",
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = Field(default="WARNING", description="Root level for the soba loggers")
    log_format: str = Field(
        default="%(asctime)s %(levelname)s %(name)s: %(message)s",
        description="Format string passed to logging.basicConfig",
    )
    bootstrap_core: bool = Field(
        default=True,
        description="Define inheritable:1 and objectmanager:1 when a runtime starts",
    )
    manifest: Optional[str] = Field(
        default=None,
        description="Default YAML class manifest for the command line",
    )


@lru_cache(maxsize=1)
def get_settings() -> SobaSettings:
    return SobaSettings()


def configure_logging(settings: Optional[SobaSettings] = None) -> None:
    settings = settings or get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.WARNING)
    logging.basicConfig(level=logging.WARNING, format=settings.log_format)
    logging.getLogger("soba").setLevel(level)
