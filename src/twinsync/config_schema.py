"""Unified configuration schema for twinsync.

Defines Pydantic models for the YAML config structure with dedicated
sections for the sync run and for logging.

Usage:
    from twinsync.config_schema import UnifiedConfig, build_config

    raw = load_hierarchical_config()
    unified = build_config(raw)
    fallbacks = unified.sync.model_dump(exclude_none=True)
"""

from __future__ import annotations

import logging
import re
from typing import Literal

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class SyncSection(BaseModel):
    """Sync run settings.

    All fields are optional so the endpoints and flags can be supplied
    by environment variables or CLI arguments instead.
    """

    source: str | None = Field(
        default=None, description="Source directory"
    )
    destination: str | None = Field(
        default=None, description="Destination directory"
    )
    conflict_strategy: Literal[
        "prompt", "source-wins", "dest-wins", "newest", "keep-both"
    ] = Field(
        default="prompt",
        description="How conflicting files and orphans are resolved",
    )
    exclude: str | None = Field(
        default=None,
        description="Regular expression of relative paths to ignore",
    )
    dry_run: bool = Field(
        default=False, description="Compute decisions without mutating"
    )
    verbose: bool = Field(
        default=False,
        description="Echo identical-file events to the terminal",
    )

    model_config = {"frozen": True}

    @field_validator("exclude")
    @classmethod
    def _check_exclude(cls, value: str | None) -> str | None:
        if value is None:
            return value
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(
                f"exclude is not a valid regular expression: {exc}"
            ) from exc
        return value


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
        format: ``text`` or ``json`` line format.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")
    format: Literal["text", "json"] = Field(
        default="text", description="Log line format"
    )

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Aggregates all config sections. Every section has sensible defaults,
    so ``UnifiedConfig()`` (zero-config) is always valid.
    """

    sync: SyncSection = Field(default_factory=SyncSection)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully; anything absent gets defaults.
    Unknown top-level sections are ignored with a warning.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.
    """
    if not raw_data:
        return UnifiedConfig()

    known = set(UnifiedConfig.model_fields)
    for key in raw_data:
        if key not in known:
            logger.warning("Ignoring unknown config section '%s'", key)

    return UnifiedConfig(
        **{k: v for k, v in raw_data.items() if k in known}
    )
