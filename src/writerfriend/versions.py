"""Point-in-time snapshots of document content."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from writerfriend.catalog import Document, ItemCatalog, Project, Version, utcnow
from writerfriend.errors import (
    FilesystemUnavailableError,
    ItemNotFoundError,
    VersionNotFoundError,
)
from writerfriend.ids import new_item_id
from writerfriend.layout import ProjectLayout

LOGGER = logging.getLogger(__name__)


class VersionManager:
    """Copy document content into immutable snapshot files and catalog them.

    Snapshots live under ``<project>/versions/<document id>/`` and are named by
    UTC timestamp plus version id. A snapshot file is created exclusively and is
    never written again; only the catalog row's description may change.
    """

    def __init__(self, layout: ProjectLayout) -> None:
        self._layout = layout

    def snapshot(
        self,
        project: Project,
        catalog: ItemCatalog,
        document_id: str,
        description: str | None = None,
    ) -> Version:
        """Copy the document's current bytes to a new snapshot and record it.

        The file is written before the catalog row, so a failure in between
        leaves an unreferenced file rather than a row pointing at nothing.

        Raises:
            ItemNotFoundError: If ``document_id`` is not a document with content.
            FilesystemUnavailableError: If the content cannot be read or copied.
        """
        document = catalog.get_item(document_id)
        if not isinstance(document, Document):
            raise ItemNotFoundError(document_id, f"Document not found: {document_id}")
        if not document.content_path:
            raise ItemNotFoundError(document_id, f"Document {document_id} has no content file")

        project_dir = Path(project.path)
        source = self._layout.manuscript_dir(project_dir) / document.content_path
        timestamp = utcnow()
        version_id = new_item_id()
        target_dir = self._layout.versions_dir(project_dir) / document_id
        target = target_dir / f"{timestamp.strftime('%Y%m%dT%H%M%S%fZ')}_{version_id}{source.suffix}"

        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            with source.open("rb") as reader, target.open("xb") as writer:
                shutil.copyfileobj(reader, writer)
        except OSError as exc:
            failed = source if not source.exists() else target
            raise FilesystemUnavailableError(failed, exc) from exc

        version = Version(
            id=version_id,
            document_id=document_id,
            project_id=project.id,
            timestamp=timestamp,
            content_path=str(target),
            description=description,
        )
        catalog.insert_version(version)
        LOGGER.info("Snapshot %s of document %s written to %s", version.id, document_id, target)
        return version

    def update_description(self, catalog: ItemCatalog, version_id: str, text: str | None) -> Version:
        """Change a snapshot's description, the only mutable field of a version."""
        if not catalog.update_version_description(version_id, text):
            raise VersionNotFoundError(version_id)
        version = catalog.get_version(version_id)
        if version is None:
            raise VersionNotFoundError(version_id)
        return version

    def list_versions(self, catalog: ItemCatalog, document_id: str) -> list[Version]:
        return catalog.list_versions(document_id)

    def read_content(self, catalog: ItemCatalog, version_id: str) -> bytes:
        """Return the bytes stored in a snapshot file."""
        version = catalog.get_version(version_id)
        if version is None:
            raise VersionNotFoundError(version_id)
        path = Path(version.content_path)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise FilesystemUnavailableError(path, exc) from exc


__all__ = ["VersionManager"]
