"""Content comparison of same-named files.

Two files are identical when their SHA-256 digests match.  Read failures
propagate as ``OSError``: a file that cannot be read must never be
reported as "different", or the caller would overwrite it.
"""

from __future__ import annotations

import hashlib
import os
import stat
from pathlib import Path

from twinsync.sync.models import FileState

CHUNK_SIZE = 1024 * 1024


def file_digest(path: Path) -> str:
    """Return the SHA-256 hex digest of the file at *path*.

    Raises:
        OSError: If the file cannot be opened or read.
    """
    h = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(CHUNK_SIZE), b""):
            h.update(chunk)
    return h.hexdigest()


def identical(path_a: Path, path_b: Path) -> bool:
    """Return ``True`` if both files hold exactly the same bytes.

    Raises:
        OSError: If either file cannot be read.
    """
    return file_digest(path_a) == file_digest(path_b)


def file_state(path: Path, with_digest: bool = True) -> FileState:
    """Stat (and optionally hash) *path*.

    A missing path yields ``FileState(exists=False)``; anything that is
    not a regular file is treated as missing.  Other failures propagate.
    """
    try:
        st = os.stat(path)
    except FileNotFoundError:
        return FileState(exists=False)
    if not stat.S_ISREG(st.st_mode):
        return FileState(exists=False)
    return FileState(
        exists=True,
        digest=file_digest(path) if with_digest else None,
        mtime=st.st_mtime,
        size=st.st_size,
    )
