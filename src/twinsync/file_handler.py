"""File handler module: the filesystem mutations a sync run performs.

All functions act on disk directly and raise ``OSError`` on failure;
dry-run handling lives one level up, in ``twinsync.sync.tree``.
"""

import os
import shutil
from pathlib import Path
from typing import Callable

# =============================================================================
# Directories
# =============================================================================


def ensure_parent_dir(path: Path) -> bool:
    """Create the parent directory of *path* (recursively) if missing.

    Returns:
        ``True`` if a directory was created, ``False`` if it existed.
    """
    parent = path.parent
    if parent.is_dir():
        return False
    parent.mkdir(parents=True, exist_ok=True)
    return True


# =============================================================================
# Copy / Delete
# =============================================================================


def copy_preserving_mtime(src: Path, dst: Path) -> int:
    """Copy *src* over *dst*, carrying the source's timestamps.

    ``shutil.copy2`` already copies metadata; the explicit ``os.utime``
    keeps the modification time exact on filesystems where copystat
    rounds it.

    Returns:
        Number of bytes copied.
    """
    shutil.copy2(src, dst)
    st = os.stat(src)
    os.utime(dst, ns=(st.st_atime_ns, st.st_mtime_ns))
    return st.st_size


def remove_file(path: Path) -> None:
    """Delete the regular file at *path*."""
    path.unlink()


# =============================================================================
# Naming
# =============================================================================


def disambiguated_name(
    path: Path,
    stamp: str,
    marker: str,
    exists: Callable[[Path], bool] = os.path.lexists,
) -> Path:
    """Return a sibling of *path* named ``<stem>_<stamp>_<marker><suffix>``.

    A numeric ``_N`` is appended while *exists* reports the candidate as
    taken, so the returned path never names an existing file.
    """
    base = f"{path.stem}_{stamp}_{marker}"
    candidate = path.with_name(f"{base}{path.suffix}")
    counter = 1
    while exists(candidate):
        candidate = path.with_name(f"{base}_{counter}{path.suffix}")
        counter += 1
    return candidate
