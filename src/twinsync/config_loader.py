"""
Config file discovery and loading for twinsync.

A run may be configured from up to three YAML files.  They are found by
convention, read with a loader that understands ``!include``, merged
section by section and finally have ``${VAR}`` references expanded.

Usage:
    from twinsync.config_loader import load_hierarchical_config

    raw = load_hierarchical_config()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "TWINSYNC_CONFIG"
PROJECT_CONFIG_DIR = ".twinsync"
PROJECT_CONFIG_NAMES = ("config.yml", "config.yaml")
USER_CONFIG_PATH = Path(".config") / "twinsync" / "config.yml"

# ${NAME} or ${NAME:-fallback}
_ENV_REF = re.compile(r"\$\{(?P<name>[^}:]+?)(?::-(?P<fallback>.*?))?\}")


# ---------------------------------------------------------------------------
# Environment references
# ---------------------------------------------------------------------------


def interpolate_env_vars(value: str) -> str:
    """Expand ``${NAME}`` and ``${NAME:-fallback}`` in *value*.

    An unset or empty variable expands to its fallback, or to nothing
    when there is none.  An unterminated ``${`` is kept as written.
    """

    def _expand(match: re.Match) -> str:
        current = os.environ.get(match.group("name"))
        if current:
            return current
        return match.group("fallback") or ""

    return _ENV_REF.sub(_expand, value)


def _interpolate_recursive(node: Any) -> Any:
    if isinstance(node, dict):
        return {key: _interpolate_recursive(item) for key, item in node.items()}
    if isinstance(node, list):
        return [_interpolate_recursive(item) for item in node]
    if isinstance(node, str):
        return interpolate_env_vars(node)
    return node


# ---------------------------------------------------------------------------
# YAML with !include
# ---------------------------------------------------------------------------


class ConfigLoader(yaml.SafeLoader):
    """SafeLoader that resolves ``!include <path>`` nodes.

    Registered on this subclass only; plain ``yaml.safe_load`` keeps
    rejecting the tag.  ``chain`` holds the files currently being read,
    outermost first.
    """

    chain: tuple[Path, ...] = ()


def _include(loader: ConfigLoader, node: yaml.ScalarNode) -> Any:
    current = Path(loader.name).resolve()
    target = Path(loader.construct_scalar(node)).expanduser()
    if not target.is_absolute():
        target = current.parent / target
    target = target.resolve()

    if target in loader.chain:
        cycle = " -> ".join(str(p) for p in (*loader.chain, target))
        raise ValueError(f"Circular include detected: {cycle}")
    if not target.is_file():
        raise FileNotFoundError(
            f"Include file not found: {target} (referenced from {current})"
        )
    return _load_yaml_with_includes(target, chain=loader.chain)


ConfigLoader.add_constructor("!include", _include)


def _load_yaml_with_includes(
    path: Path, *, chain: tuple[Path, ...] = ()
) -> Any:
    """Parse one YAML file, following ``!include`` tags."""
    path = Path(path).resolve()
    with path.open("r", encoding="utf-8") as stream:
        loader = ConfigLoader(stream)
        loader.chain = (*chain, path)
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


# ---------------------------------------------------------------------------
# Discovery and merge
# ---------------------------------------------------------------------------


def discover_config_files() -> list[Path]:
    """Return the config files that exist, most specific first.

    1. the file named by ``TWINSYNC_CONFIG``
    2. ``.twinsync/config.yml`` or ``.twinsync/config.yaml`` in the CWD
    3. ``~/.config/twinsync/config.yml``
    """
    candidates: list[Path] = []

    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        candidates.append(Path(explicit).expanduser().resolve())

    project_dir = Path.cwd() / PROJECT_CONFIG_DIR
    candidates.extend(project_dir / name for name in PROJECT_CONFIG_NAMES)
    candidates.append(Path.home() / USER_CONFIG_PATH)

    return [path for path in candidates if path.exists()]


def load_hierarchical_config() -> dict[str, Any]:
    """Read every discovered config file into one raw dict.

    Files are applied from least to most specific.  A section (top-level
    key) from a more specific file replaces the whole section of a less
    specific one; sections are not merged key by key.  Environment
    references are expanded last.

    Returns:
        The merged mapping, or ``{}`` when no config file exists.

    Raises:
        yaml.YAMLError: A file is not valid YAML.
        ValueError: An include cycle was found.
        OSError: A file or include could not be read.
    """
    merged: dict[str, Any] = {}

    for path in reversed(discover_config_files()):
        logger.debug("Reading config file %s", path)
        data = _load_yaml_with_includes(path)
        if data is None:
            continue
        if not isinstance(data, dict):
            logger.warning(
                "Ignoring %s: top level is a %s, not a mapping",
                path,
                type(data).__name__,
            )
            continue
        merged.update(data)

    if not merged:
        logger.debug("No config file settings, using defaults")
    return _interpolate_recursive(merged)
