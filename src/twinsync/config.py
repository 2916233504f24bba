"""Run configuration for a twinsync invocation.

Reads sync settings from CLI args, environment variables, .env files,
and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    TWINSYNC_SOURCE: Source directory
    TWINSYNC_DESTINATION: Destination directory
    TWINSYNC_STRATEGY: Conflict strategy (optional, default: prompt)
    TWINSYNC_EXCLUDE: Exclude regular expression (optional)
    TWINSYNC_DRY_RUN: Simulate without mutating (optional, default: false)
    TWINSYNC_VERBOSE: Echo identical-file events (optional, default: false)
    TWINSYNC_LOG_FILE: Log file path (optional, default: timestamped name)
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path

from .logger import default_log_file
from .sync.models import ConflictStrategy
from .validators import (
    validate_endpoint,
    validate_endpoint_pair,
    validate_exclude_pattern,
    validate_strategy,
)


@dataclass
class Config:
    source: Path
    destination: Path
    strategy: ConflictStrategy = ConflictStrategy.PROMPT
    dry_run: bool = False
    verbose: bool = False
    exclude: re.Pattern | None = None
    log_file: str | None = None


def validate_config(config: Config) -> None:
    """Validate and normalise the endpoints, raising ValueError if invalid.

    Both endpoints are resolved to absolute real paths in place.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If an endpoint is missing, not a directory, lacks
            read/write permission, or the endpoints overlap.
    """
    config.source = Path(config.source).expanduser().resolve()
    config.destination = Path(config.destination).expanduser().resolve()

    for path, role in (
        (config.source, "Source directory"),
        (config.destination, "Destination directory"),
    ):
        ok, message = validate_endpoint(path, role)
        if not ok:
            raise ValueError(message)

    ok, message = validate_endpoint_pair(config.source, config.destination)
    if not ok:
        raise ValueError(message)


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def _resolve_flag(cli_value: bool, env_key: str, fallback: object) -> bool:
    if cli_value:
        return True
    env_value = _get_bool_env(env_key)
    if env_value is not None:
        return env_value
    return bool(fallback)


def load_config(
    source: str | None = None,
    destination: str | None = None,
    strategy: str | None = None,
    dry_run: bool = False,
    verbose: bool = False,
    exclude: str | None = None,
    log_file: str | None = None,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        source: Override source directory.
        destination: Override destination directory.
        strategy: Override conflict strategy name.
        dry_run: Simulate the run (CLI flag).
        verbose: Echo identical-file events (CLI flag).
        exclude: Override exclude regular expression.
        log_file: Override log file path.
        yaml_fallbacks: Dict of values from the YAML ``sync`` section,
            plus ``log_file`` from the ``logging`` section.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If an endpoint is missing or invalid, the strategy is
            unknown, or the exclude pattern does not compile.
    """
    fb = yaml_fallbacks or {}

    # --- Endpoints: CLI > env > YAML > error ---

    final_source = source or os.getenv("TWINSYNC_SOURCE") or fb.get("source")
    if not final_source:
        raise ValueError(
            "Source directory not given. Pass it as the first argument, "
            "set TWINSYNC_SOURCE, or add 'source' to the sync config."
        )

    final_destination = (
        destination
        or os.getenv("TWINSYNC_DESTINATION")
        or fb.get("destination")
    )
    if not final_destination:
        raise ValueError(
            "Destination directory not given. Pass it as the second "
            "argument, set TWINSYNC_DESTINATION, or add 'destination' "
            "to the sync config."
        )

    # --- Strategy and exclude: CLI > env > YAML > default ---

    final_strategy = (
        strategy
        or os.getenv("TWINSYNC_STRATEGY")
        or fb.get("conflict_strategy")
        or ConflictStrategy.PROMPT.value
    ).strip()
    ok, message = validate_strategy(final_strategy)
    if not ok:
        raise ValueError(message)

    final_exclude = (
        exclude or os.getenv("TWINSYNC_EXCLUDE") or fb.get("exclude")
    )
    compiled_exclude = None
    if final_exclude:
        ok, message = validate_exclude_pattern(final_exclude)
        if not ok:
            raise ValueError(message)
        compiled_exclude = re.compile(final_exclude)

    # --- Flags: CLI > env > YAML > default ---

    final_dry_run = _resolve_flag(
        dry_run, "TWINSYNC_DRY_RUN", fb.get("dry_run", False)
    )
    final_verbose = _resolve_flag(
        verbose, "TWINSYNC_VERBOSE", fb.get("verbose", False)
    )

    final_log_file = (
        log_file
        or os.getenv("TWINSYNC_LOG_FILE")
        or fb.get("log_file")
        or default_log_file()
    )

    config = Config(
        source=Path(final_source),
        destination=Path(final_destination),
        strategy=ConflictStrategy(final_strategy),
        dry_run=final_dry_run,
        verbose=final_verbose,
        exclude=compiled_exclude,
        log_file=final_log_file,
    )

    validate_config(config)

    return config
