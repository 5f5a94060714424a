"""Reading and writing the per-project metadata sidecar file."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable

from pydantic import ValidationError

from writerfriend.errors import CorruptMetadataError, FilesystemUnavailableError
from writerfriend.fileio import write_text_atomic
from writerfriend.ids import new_project_id

from .models import DEFAULT_AUTHOR, DEFAULT_DESCRIPTION, MetadataDescriptor

DEFAULT_METADATA_FILENAME = "metadata.json"

LOGGER = logging.getLogger(__name__)


class MetadataRepository:
    """Manage the metadata descriptor stored inside each project directory."""

    def __init__(
        self,
        filename: str = DEFAULT_METADATA_FILENAME,
        *,
        id_factory: Callable[[], str] = new_project_id,
    ) -> None:
        """Initialize the repository.

        Args:
            filename: Name of the sidecar file inside a project directory.
            id_factory: Callable producing identifiers for descriptors lacking one.
        """
        self._filename = filename
        self._id_factory = id_factory

    @property
    def filename(self) -> str:
        """Return the sidecar file name."""
        return self._filename

    def path_for(self, project_dir: Path) -> Path:
        """Return the metadata file path for ``project_dir``."""
        return project_dir / self._filename

    def read(self, project_dir: Path) -> MetadataDescriptor | None:
        """Load the descriptor stored in ``project_dir``.

        An empty file is read as an empty descriptor so it can be backfilled.

        Args:
            project_dir: Project directory containing the sidecar file.

        Returns:
            MetadataDescriptor | None: Parsed descriptor, or ``None`` when no file exists.

        Raises:
            CorruptMetadataError: If the file holds malformed or non-object JSON.
            FilesystemUnavailableError: If the file exists but cannot be read.
        """
        path = self.path_for(project_dir)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as exc:
            raise CorruptMetadataError(path, f"not valid UTF-8 ({exc.reason})") from exc
        except OSError as exc:
            raise FilesystemUnavailableError(path, exc) from exc

        if not text.strip():
            return MetadataDescriptor()

        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise CorruptMetadataError(path, str(exc)) from exc
        if not isinstance(data, dict):
            raise CorruptMetadataError(path, "top-level value must be a JSON object")

        try:
            return MetadataDescriptor.model_validate(data)
        except ValidationError as exc:
            raise CorruptMetadataError(path, str(exc)) from exc

    def write(self, project_dir: Path, descriptor: MetadataDescriptor) -> Path:
        """Atomically replace the descriptor stored in ``project_dir``.

        The payload is written to a temporary file in the same directory and
        renamed over the target, so readers never observe a partial file. An
        existing file keeps its permission bits; a new one gets the umask default.

        Args:
            project_dir: Project directory receiving the sidecar file.
            descriptor: Descriptor to serialize.

        Returns:
            Path: Location of the written metadata file.

        Raises:
            FilesystemUnavailableError: If the file cannot be written.
        """
        payload = json.dumps(descriptor.to_file_payload(), indent=4, ensure_ascii=False)
        return write_text_atomic(self.path_for(project_dir), payload)

    def ensure_complete(
        self, descriptor: MetadataDescriptor, fallback_name: str
    ) -> tuple[MetadataDescriptor, list[str]]:
        """Backfill missing or blank descriptor fields with defaults.

        Args:
            descriptor: Descriptor as read from disk.
            fallback_name: Name to use when the descriptor has none, typically
                the project directory name.

        Returns:
            tuple[MetadataDescriptor, list[str]]: A completed copy of the
            descriptor and the on-disk names of the fields that were filled.
        """
        updates: dict[str, str] = {}
        filled: list[str] = []
        defaults = (
            ("id", "ID", self._id_factory),
            ("name", "Name", lambda: fallback_name),
            ("author_name", "Author Name", lambda: DEFAULT_AUTHOR),
            ("description", "Description", lambda: DEFAULT_DESCRIPTION),
        )
        for attribute, key, factory in defaults:
            if not getattr(descriptor, attribute):
                updates[attribute] = factory()
                filled.append(key)

        if not updates:
            return descriptor, filled
        return descriptor.model_copy(update=updates), filled


__all__ = [
    "MetadataRepository",
    "MetadataDescriptor",
    "DEFAULT_METADATA_FILENAME",
    "DEFAULT_AUTHOR",
    "DEFAULT_DESCRIPTION",
]
