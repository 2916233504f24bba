"""
Input validation functions for twinsync.

Provides validation for sync endpoints, conflict strategy names and
exclude patterns so configuration errors surface before any pass runs.
"""

import os
import re
from pathlib import Path

VALID_STRATEGIES = (
    "prompt",
    "source-wins",
    "dest-wins",
    "newest",
    "keep-both",
)


# ---------------------------------------------------------------------------
# Error message formatting helpers
# ---------------------------------------------------------------------------


def format_validation_error(field_name: str, reason: str) -> str:
    """
    Generate consistent error message for validation failures.

    Args:
        field_name: Human-readable field name (e.g., "Source directory")
        reason: Description of validation failure (e.g., "does not exist")

    Returns:
        Formatted error message string
    """
    return f"{field_name} {reason}"


def validate_endpoint(path: Path, field_name: str) -> tuple[bool, str]:
    """
    Validate one sync endpoint directory.

    Args:
        path: The directory path to validate
        field_name: Human-readable role used in the error message

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.

    Validation rules:
        - Must exist
        - Must be a directory
        - Must be readable, writable and traversable
    """
    if not path.exists():
        return (
            False,
            format_validation_error(field_name, f"does not exist: {path}"),
        )

    if not path.is_dir():
        return (
            False,
            format_validation_error(
                field_name, f"is not a directory: {path}"
            ),
        )

    if not os.access(path, os.R_OK | os.X_OK):
        return (
            False,
            format_validation_error(field_name, f"is not readable: {path}"),
        )

    if not os.access(path, os.W_OK):
        return (
            False,
            format_validation_error(field_name, f"is not writable: {path}"),
        )

    return (True, "")


def validate_endpoint_pair(source: Path, destination: Path) -> tuple[bool, str]:
    """
    Validate that two resolved endpoints can be synchronised together.

    Rejects identical directories and trees nested inside one another,
    either of which would make the sync walk its own output.
    """
    if source == destination:
        return (
            False,
            format_validation_error(
                "Source and destination", f"are the same directory: {source}"
            ),
        )

    if source.is_relative_to(destination) or destination.is_relative_to(
        source
    ):
        return (
            False,
            format_validation_error(
                "Source and destination",
                f"must not be nested: {source} / {destination}",
            ),
        )

    return (True, "")


def validate_strategy(name: str) -> tuple[bool, str]:
    """
    Validate a conflict strategy name.

    Returns:
        Tuple of (is_valid, error_message).
    """
    if name not in VALID_STRATEGIES:
        return (
            False,
            format_validation_error(
                "Conflict strategy",
                f"'{name}' is not recognised. "
                f"Valid strategies: {', '.join(VALID_STRATEGIES)}",
            ),
        )
    return (True, "")


def validate_exclude_pattern(pattern: str) -> tuple[bool, str]:
    """
    Validate an exclude regular expression.

    Returns:
        Tuple of (is_valid, error_message).
    """
    if not pattern:
        return (
            False,
            format_validation_error("Exclude pattern", "cannot be empty"),
        )

    try:
        re.compile(pattern)
    except re.error as exc:
        return (
            False,
            format_validation_error(
                "Exclude pattern", f"is not a valid regular expression: {exc}"
            ),
        )

    return (True, "")
