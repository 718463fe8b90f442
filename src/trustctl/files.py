"""Filesystem helpers shared by the key store and the claim store."""
from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path

from trustctl.errors import StoreError

_UNSAFE_NAME = re.compile(r"[/\\\x00]")


def check_name(name: str, what: str = "name") -> str:
    """Return *name* if it can be used as a single path component."""
    if not name or name in (".", "..") or _UNSAFE_NAME.search(name):
        raise StoreError(f"{what} {name!r} is not a valid entity name")
    return name


def make_dirs(path: Path) -> None:
    """Create *path* (and parents) with owner-only permissions."""
    try:
        path.mkdir(mode=0o700, parents=True, exist_ok=True)
    except OSError as exc:
        raise StoreError(f"error creating {str(path)!r}: {exc}") from exc
    if not path.is_dir():
        raise StoreError(f"{str(path)!r} already exists and it is not a directory")


def write_atomic(path: Path, data: bytes, mode: int = 0o644) -> None:
    """Write *data* to *path* so readers never observe a partial file.

    The bytes go to a temporary file in the same directory which is flushed
    and then renamed over *path*. On failure the previous content of *path*
    is left untouched.

    Raises
    ------
    StoreError
        If the file cannot be written.
    """
    make_dirs(path.parent)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except OSError as exc:
        Path(tmp_name).unlink(missing_ok=True)
        raise StoreError(f"error writing {str(path)!r}: {exc}") from exc
