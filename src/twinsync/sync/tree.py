"""Filesystem views used by the sync engine.

Every observation and mutation the engine makes goes through a
``TreeView``:

* ``LocalTree`` acts on disk.
* ``SimulatedTree`` (dry-run) leaves disk untouched and records each
  planned copy, deletion and directory creation in an overlay.  Later
  lookups and walks consult the overlay, so the second pass and the
  reconciler see the first pass's effects exactly as in a real run and
  a dry run reports the same decisions and counters.
"""

from __future__ import annotations

import heapq
import logging
import os
from pathlib import Path
from typing import Iterator

from twinsync import file_handler
from twinsync.sync import comparator
from twinsync.sync.models import FileState
from twinsync.sync.walker import RelativeEntry, iter_entries

logger = logging.getLogger(__name__)


class TargetExistsError(FileExistsError):
    """A copy target appeared between the decision and the write."""


def walk_order_key(entry: RelativeEntry) -> tuple:
    """Sort key reproducing ``iter_entries`` order for arbitrary paths.

    Files of a directory precede everything in its subdirectories, and
    siblings are ordered by name.
    """
    parts = entry.rel_path.split("/")
    return tuple((1, p) for p in parts[:-1]) + ((0, parts[-1]),)


class LocalTree:
    """Direct view of the filesystem."""

    dry_run = False

    def state(self, path: Path, with_digest: bool = True) -> FileState:
        return comparator.file_state(path, with_digest=with_digest)

    def exists(self, path: Path) -> bool:
        return self.state(path, with_digest=False).exists

    def taken(self, path: Path) -> bool:
        """Whether anything (file, directory or link) occupies *path*."""
        return os.path.lexists(path)

    def identical(self, path_a: Path, path_b: Path) -> bool:
        return comparator.identical(path_a, path_b)

    def iter_entries(self, root: Path) -> Iterator[RelativeEntry]:
        return iter_entries(root)

    def ensure_parent(self, path: Path) -> bool:
        return file_handler.ensure_parent_dir(path)

    def copy(self, src: Path, dst: Path, overwrite: bool = False) -> None:
        """Copy *src* to *dst* preserving its modification time.

        Raises:
            TargetExistsError: If *overwrite* is false and *dst* exists.
        """
        if not overwrite and self.taken(dst):
            raise TargetExistsError(f"Target appeared: {dst}")
        file_handler.copy_preserving_mtime(src, dst)

    def delete(self, path: Path) -> None:
        file_handler.remove_file(path)

    def disambiguate(self, path: Path, stamp: str, marker: str) -> Path:
        return file_handler.disambiguated_name(
            path, stamp, marker, exists=self.taken
        )


class SimulatedTree(LocalTree):
    """Dry-run view: mutations are recorded, never performed."""

    dry_run = True

    def __init__(self) -> None:
        # path -> state of the would-be file, or None for a deletion
        self._overlay: dict[Path, FileState | None] = {}
        self._created_dirs: set[Path] = set()

    def state(self, path: Path, with_digest: bool = True) -> FileState:
        if path in self._overlay:
            return self._overlay[path] or FileState(exists=False)
        return super().state(path, with_digest=with_digest)

    def taken(self, path: Path) -> bool:
        if path in self._overlay:
            return self._overlay[path] is not None
        return path in self._created_dirs or super().taken(path)

    def identical(self, path_a: Path, path_b: Path) -> bool:
        if path_a not in self._overlay and path_b not in self._overlay:
            return super().identical(path_a, path_b)
        digest_a = self._digest(path_a)
        digest_b = self._digest(path_b)
        return digest_a == digest_b

    def _digest(self, path: Path) -> str:
        st = self.state(path)
        if not st.exists:
            raise FileNotFoundError(f"No such file: {path}")
        return st.digest or comparator.file_digest(path)

    def iter_entries(self, root: Path) -> Iterator[RelativeEntry]:
        real = (
            entry
            for entry in iter_entries(root)
            if self._overlay.get(entry.path, True) is not None
        )
        virtual = sorted(
            (
                RelativeEntry(
                    root=root, rel_path=path.relative_to(root).as_posix()
                )
                for path, st in self._overlay.items()
                if st is not None
                and path.is_relative_to(root)
                and not os.path.lexists(path)
            ),
            key=walk_order_key,
        )
        return heapq.merge(real, virtual, key=walk_order_key)

    def ensure_parent(self, path: Path) -> bool:
        parent = path.parent
        if parent in self._created_dirs or parent.is_dir():
            return False
        while parent not in self._created_dirs and not parent.is_dir():
            self._created_dirs.add(parent)
            parent = parent.parent
        return True

    def copy(self, src: Path, dst: Path, overwrite: bool = False) -> None:
        if not overwrite and self.taken(dst):
            raise TargetExistsError(f"Target appeared: {dst}")
        st = self.state(src)
        if not st.exists:
            raise FileNotFoundError(f"No such file: {src}")
        self._overlay[dst] = st
        logger.debug("Simulated copy %s -> %s", src, dst)

    def delete(self, path: Path) -> None:
        if not self.exists(path):
            raise FileNotFoundError(f"No such file: {path}")
        self._overlay[path] = None
        logger.debug("Simulated delete %s", path)


def make_tree(dry_run: bool) -> LocalTree:
    """Return the tree view for a real or simulated run."""
    return SimulatedTree() if dry_run else LocalTree()
