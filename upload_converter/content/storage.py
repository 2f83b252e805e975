"""
Upload storage — the filesystem side of a conversion.

File sizes, publishing a converted file, and best-effort removal of
whichever file lost the size gate. Converted bytes are staged in a
uniquely named temp file beside the target and moved into place with
``os.replace``, so a reader of the target path sees either the previous
file or the complete new one.
"""

from __future__ import annotations

import logging
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union

from .errors import CleanupError, WriteError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def file_size(path: PathLike) -> int:
    """Size of a file in bytes."""
    return os.path.getsize(path)


def derived_path(source: PathLike, extension: str) -> Path:
    """Same directory and stem as ``source``, with a new extension."""
    source = Path(source)
    return source.with_name(f"{source.stem}{extension}")


@contextmanager
def staged_file(target: PathLike) -> Iterator[Path]:
    """
    Yield a fresh temp path in the target's directory.

    Whatever is left at the temp path on exit (not published, or an
    error) is removed.
    """
    target = Path(target)
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{target.stem}.",
            suffix=f"{target.suffix}.tmp",
            dir=str(target.parent),
        )
    except OSError as e:
        raise WriteError(f"Cannot stage converted file: {e}", target) from e
    os.close(fd)
    tmp_path = Path(tmp_name)

    try:
        yield tmp_path
    finally:
        if tmp_path.exists():
            remove_quietly(tmp_path)


def publish(staged: PathLike, target: PathLike) -> Path:
    """Atomically move a staged file into place, overwriting the target."""
    try:
        os.replace(staged, target)
    except OSError as e:
        raise WriteError(f"Cannot publish converted file: {e}", target) from e
    return Path(target)


def remove_file(path: PathLike) -> None:
    """Delete a file, raising CleanupError on failure."""
    try:
        os.unlink(path)
    except FileNotFoundError:
        return
    except OSError as e:
        raise CleanupError(f"Cannot delete {path}: {e}", path) from e


def remove_quietly(path: PathLike) -> bool:
    """Best-effort delete. Returns True if the file is gone."""
    try:
        remove_file(path)
        return True
    except CleanupError as e:
        logger.debug(f"Cleanup skipped: {e.message}")
        return False
