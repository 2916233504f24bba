"""Lazy traversal of one endpoint tree.

``iter_entries`` yields a ``RelativeEntry`` per regular file, depth-first
in sorted order so repeated walks of an unchanged tree produce the same
sequence.  The generator is one-shot; walk again to restart.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RelativeEntry:
    """A file path relative to the endpoint it was found under.

    ``rel_path`` always uses ``/`` separators; it is the join key
    between the two trees and the string exclude patterns match against.
    """

    root: Path
    rel_path: str

    @property
    def path(self) -> Path:
        return self.root.joinpath(*self.rel_path.split("/"))

    def under(self, other_root: Path) -> Path:
        """Return where this entry lives beneath *other_root*."""
        return other_root.joinpath(*self.rel_path.split("/"))


def iter_entries(root: Path) -> Iterator[RelativeEntry]:
    """Yield every regular file beneath *root*.

    Symbolic links are neither followed nor yielded.  Directories that
    cannot be listed are logged and skipped.
    """

    def _on_error(exc: OSError) -> None:
        logger.error("Cannot list %s: %s", exc.filename, exc.strerror)

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        dirnames.sort()
        base = Path(dirpath)
        for name in sorted(filenames):
            full = base / name
            if full.is_symlink():
                logger.debug("Ignoring symlink %s", full)
                continue
            if not full.is_file():
                continue
            yield RelativeEntry(
                root=root, rel_path=full.relative_to(root).as_posix()
            )
