"""Atomic replacement of small text files inside project directories."""

from __future__ import annotations

import os
import stat
import tempfile
from pathlib import Path

from writerfriend.errors import FilesystemUnavailableError


def write_text_atomic(path: Path, text: str) -> Path:
    """Replace ``path`` with ``text`` so readers never observe a partial file.

    The payload goes to a hidden temporary file in the same directory, is
    flushed to disk, and is then renamed over the target. An existing file
    keeps its permission bits; a new one gets the umask default.

    Args:
        path: File to create or replace. Its directory must exist.
        text: UTF-8 text to store.

    Returns:
        Path: ``path``, for chaining.

    Raises:
        FilesystemUnavailableError: If the file cannot be written.
    """
    tmp_name: str | None = None
    try:
        mode = _target_mode(path)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as handle:
            tmp_name = handle.name
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except OSError as exc:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise FilesystemUnavailableError(path, exc) from exc
    return path


def _target_mode(path: Path) -> int:
    """Return the permission bits ``path`` should end up with after a rewrite."""
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


__all__ = ["write_text_atomic"]
