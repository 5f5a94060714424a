"""Error taxonomy shared by the catalog, reconciliation, and lifecycle layers."""

from __future__ import annotations

from pathlib import Path


class WriterFriendError(Exception):
    """Base exception for every failure surfaced by the core."""


class NotFoundError(WriterFriendError):
    """Raised when a requested project, item, or version does not exist."""

    kind = "record"

    def __init__(self, identifier: str, message: str | None = None) -> None:
        self.identifier = identifier
        super().__init__(message or f"{self.kind.capitalize()} not found: {identifier}")


class ProjectNotFoundError(NotFoundError):
    """Raised when no project matches the requested identifier."""

    kind = "project"


class ItemNotFoundError(NotFoundError):
    """Raised when no folder or document matches the requested identifier."""

    kind = "item"


class VersionNotFoundError(NotFoundError):
    """Raised when no version snapshot matches the requested identifier."""

    kind = "version"


class TimelineNotFoundError(NotFoundError):
    """Raised when a project has no timeline with the requested name."""

    kind = "timeline"


class CorruptMetadataError(WriterFriendError):
    """Raised when a project's metadata file exists but cannot be parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        super().__init__(f"Corrupt metadata file {path}: {reason}")


class FilesystemUnavailableError(WriterFriendError):
    """Raised when a required filesystem operation fails."""

    def __init__(self, path: Path, original: OSError) -> None:
        self.path = path
        self.original = original
        super().__init__(f"Filesystem operation failed for {path}: {original}")


class CatalogError(WriterFriendError):
    """Raised when a catalog database cannot be opened or queried."""


class TransactionFailureError(CatalogError):
    """Raised after a catalog batch failed and was rolled back."""


class ProjectExistsError(WriterFriendError):
    """Raised when creating a project whose directory is already present."""


class ItemConflictError(WriterFriendError):
    """Raised when a structural change would collide with an existing sibling."""


class TimelineExistsError(WriterFriendError):
    """Raised when creating a timeline whose file is already present."""


class CorruptTimelineError(WriterFriendError):
    """Raised when a timeline file exists but does not hold a JSON graph."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        super().__init__(f"Corrupt timeline file {path}: {reason}")


__all__ = [
    "WriterFriendError",
    "NotFoundError",
    "ProjectNotFoundError",
    "ItemNotFoundError",
    "VersionNotFoundError",
    "TimelineNotFoundError",
    "CorruptMetadataError",
    "FilesystemUnavailableError",
    "CatalogError",
    "TransactionFailureError",
    "ProjectExistsError",
    "ItemConflictError",
    "TimelineExistsError",
    "CorruptTimelineError",
]
