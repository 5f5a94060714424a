"""Configuration models describing WriterFriend settings."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class WriterFriendBaseModel(BaseModel):
    """Shared configuration for WriterFriend Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class PathSettings(WriterFriendBaseModel):
    """Locations and names making up the persisted project layout.

    Attributes:
        projects_root: Directory whose immediate children are project directories.
        main_database: File name of the project catalog under ``projects_root``.
        metadata_filename: Sidecar descriptor file name inside each project.
        manuscript_dirname: Directory walked for folders and documents.
        project_database: File name of the per-project item catalog.
        versions_dirname: Directory holding version snapshot files.
        timelines_dirname: Directory holding timeline graph files.
        skeleton_dirs: Subdirectories created for every new project.
    """

    projects_root: str = "~/WriterFriend"
    main_database: str = "main_database.sqlite"
    metadata_filename: str = "metadata.json"
    manuscript_dirname: str = "manuscript"
    project_database: str = "project_database.sqlite"
    versions_dirname: str = "versions"
    timelines_dirname: str = "timelines"
    skeleton_dirs: List[str] = Field(
        default_factory=lambda: ["manuscript", "assets", "characters"]
    )


class ScanningOptions(WriterFriendBaseModel):
    """Options governing the manuscript tree walk.

    Attributes:
        content_extensions: File suffixes recognized as documents.
        include_hidden: Whether dot-prefixed entries are walked.
        follow_symlinks: Whether symbolic links to directories are traversed.
    """

    content_extensions: List[str] = Field(default_factory=lambda: [".md", ".json"])
    include_hidden: bool = False
    follow_symlinks: bool = False


class CatalogSettings(WriterFriendBaseModel):
    """SQLite connection settings for both catalog stores.

    Attributes:
        journal_mode: SQLite journal mode applied on connect.
        busy_timeout_ms: Milliseconds to wait on a locked database.
    """

    journal_mode: Literal["WAL", "DELETE", "TRUNCATE", "MEMORY"] = "WAL"
    busy_timeout_ms: int = 5_000


class DocumentSettings(WriterFriendBaseModel):
    """Defaults for documents created through structural mutations.

    Attributes:
        default_extension: Suffix given to newly created document files.
    """

    default_extension: str = ".md"


class LoggingSettings(WriterFriendBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        file: Optional path of a rotating log file.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    file: Optional[str] = None
    max_size_mb: int = 100
    backup_count: int = 5


class CLIOptions(WriterFriendBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        json_default: Whether commands emit JSON unless told otherwise.
    """

    quiet_default: bool = False
    json_default: bool = False


class WriterFriendConfig(WriterFriendBaseModel):
    """Top-level configuration struct for WriterFriend.

    Attributes:
        paths: Persisted layout settings.
        scanning: Manuscript walk settings.
        catalog: SQLite settings.
        documents: New document defaults.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    paths: PathSettings = Field(default_factory=PathSettings)
    scanning: ScanningOptions = Field(default_factory=ScanningOptions)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    documents: DocumentSettings = Field(default_factory=DocumentSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "WriterFriendBaseModel",
    "PathSettings",
    "ScanningOptions",
    "CatalogSettings",
    "DocumentSettings",
    "LoggingSettings",
    "CLIOptions",
    "WriterFriendConfig",
]
