"""Reading and writing user supplied paths.

The path ``--`` stands for stdin when reading and stdout when writing.
Output files are never overwritten.
"""
from __future__ import annotations

import sys
from pathlib import Path

from trustctl.errors import StoreError

STDIO = "--"


def is_stdio(path: str) -> bool:
    return path == STDIO


def read_bytes(path: str) -> bytes:
    """Read *path*, or stdin for ``--``.

    Raises
    ------
    StoreError
        If the file cannot be read.
    """
    if is_stdio(path):
        return sys.stdin.buffer.read()
    target = Path(path).expanduser().resolve()
    try:
        return target.read_bytes()
    except OSError as exc:
        raise StoreError(f"error reading {str(target)!r}: {exc}") from exc


def write_bytes(path: str, data: bytes) -> None:
    """Write *data* to a new file at *path*, or to stdout for ``--``.

    Raises
    ------
    StoreError
        If *path* already exists or cannot be written.
    """
    if is_stdio(path):
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()
        return
    target = Path(path).expanduser().resolve()
    try:
        with target.open("xb") as fh:
            fh.write(data)
    except FileExistsError:
        raise StoreError(f"{str(target)!r} already exists") from None
    except OSError as exc:
        raise StoreError(f"error writing {str(target)!r}: {exc}") from exc


__all__ = ["STDIO", "is_stdio", "read_bytes", "write_bytes"]
