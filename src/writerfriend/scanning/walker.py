"""Depth-first enumeration of folders and content files under a directory."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator, Literal

from writerfriend.errors import FilesystemUnavailableError

LOGGER = logging.getLogger(__name__)

ErrorCallback = Callable[[Path, Exception], None]


@dataclass(frozen=True, slots=True)
class WalkEntry:
    """A folder or content file discovered during a walk.

    Attributes:
        kind: ``"folder"`` for directories, ``"file"`` for content files.
        path: Absolute path of the entry.
    """

    kind: Literal["folder", "file"]
    path: Path


class DirectoryWalker:
    """Enumerate a directory tree in pre-order, filtered to content extensions.

    Each call to :meth:`walk` starts from scratch, so the walker itself holds no
    per-walk state and can be reused or restarted freely.
    """

    def __init__(
        self,
        *,
        extensions: Iterable[str] = (".md", ".json"),
        include_hidden: bool = False,
        follow_symlinks: bool = False,
    ) -> None:
        self.extensions = frozenset(_normalize_extension(ext) for ext in extensions)
        self.include_hidden = include_hidden
        self.follow_symlinks = follow_symlinks

    def walk(self, root: Path, *, on_error: ErrorCallback | None = None) -> Iterator[WalkEntry]:
        """Yield folders and content files below ``root``.

        Folders are yielded before their descendants and siblings are visited in
        name order. Entries that cannot be inspected, subdirectories that cannot
        be listed, and names that are not valid UTF-8 are logged, reported to
        ``on_error``, and skipped without aborting the rest of the walk.

        Args:
            root: Directory whose descendants are enumerated; not yielded itself.
            on_error: Optional callback receiving each skipped path and the cause.

        Yields:
            WalkEntry: Discovered folders and content files.

        Raises:
            FilesystemUnavailableError: If ``root`` itself cannot be listed.
        """
        root = root.expanduser()
        try:
            entries = self._list(root)
        except OSError as exc:
            raise FilesystemUnavailableError(root, exc) from exc

        visited: set[Path] = set()
        if self.follow_symlinks:
            visited.add(root.resolve())
        yield from self._walk_entries(entries, visited, on_error)

    def _walk_entries(
        self,
        entries: list[os.DirEntry[str]],
        visited: set[Path],
        on_error: ErrorCallback | None,
    ) -> Iterator[WalkEntry]:
        for entry in entries:
            if not self.include_hidden and entry.name.startswith("."):
                continue
            path = Path(entry.path)
            if not is_utf8_name(entry.name):
                undecodable = UnicodeError(f"name is not valid UTF-8: {os.fsencode(entry.name)!r}")
                LOGGER.warning("Skipping %s: %s", printable(path), undecodable)
                _report(on_error, path, undecodable)
                continue
            try:
                is_dir = entry.is_dir(follow_symlinks=self.follow_symlinks)
                is_file = not is_dir and entry.is_file(follow_symlinks=self.follow_symlinks)
            except OSError as exc:
                LOGGER.warning("Skipping unreadable entry %s: %s", path, exc)
                _report(on_error, path, exc)
                continue

            if is_dir:
                if self.follow_symlinks:
                    real = path.resolve()
                    if real in visited:
                        LOGGER.warning("Skipping symlink cycle at %s", path)
                        continue
                    visited.add(real)
                yield WalkEntry("folder", path)
                try:
                    children = self._list(path)
                except OSError as exc:
                    LOGGER.warning("Skipping unreadable directory %s: %s", path, exc)
                    _report(on_error, path, exc)
                    continue
                yield from self._walk_entries(children, visited, on_error)
            elif is_file and _normalize_extension(path.suffix) in self.extensions:
                yield WalkEntry("file", path)

    def _list(self, directory: Path) -> list[os.DirEntry[str]]:
        with os.scandir(directory) as iterator:
            return sorted(iterator, key=lambda entry: entry.name)


def is_utf8_name(name: str) -> bool:
    """Return False for names the OS decoded with surrogate escapes.

    Such names cannot be stored as text in the catalog.
    """
    try:
        name.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


def printable(value: Path | str) -> str:
    """Render a path for logs and reports, escaping undecodable bytes."""
    return os.fsencode(value).decode("utf-8", "backslashreplace")


def _report(on_error: ErrorCallback | None, path: Path, exc: Exception) -> None:
    if on_error is not None:
        on_error(path, exc)


def _normalize_extension(value: str) -> str:
    value = value.strip().lower()
    if value and not value.startswith("."):
        value = f".{value}"
    return value


__all__ = ["DirectoryWalker", "ErrorCallback", "WalkEntry", "is_utf8_name", "printable"]
