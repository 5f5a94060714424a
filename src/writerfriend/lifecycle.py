"""Creation and deletion of a project's directory, metadata, and catalog rows."""

from __future__ import annotations

import logging
import shutil
from datetime import datetime
from pathlib import Path

from writerfriend.catalog import ItemCatalog, Project, ProjectCatalog, utcnow
from writerfriend.config.models import CatalogSettings
from writerfriend.errors import (
    CorruptMetadataError,
    FilesystemUnavailableError,
    ProjectNotFoundError,
)
from writerfriend.ids import new_project_id
from writerfriend.layout import ProjectLayout
from writerfriend.metadata import (
    DEFAULT_AUTHOR,
    DEFAULT_DESCRIPTION,
    MetadataDescriptor,
    MetadataRepository,
)

LOGGER = logging.getLogger(__name__)


class ProjectLifecycle:
    """Create and delete projects as a unit of directory, metadata file, and catalog row.

    Every step tolerates state left behind by an earlier, interrupted run: the
    same call serves explicit "create project" requests and the adoption of
    directories discovered during reconciliation.
    """

    def __init__(
        self,
        catalog: ProjectCatalog,
        layout: ProjectLayout,
        metadata: MetadataRepository,
        catalog_settings: CatalogSettings | None = None,
    ) -> None:
        self._catalog = catalog
        self._layout = layout
        self._metadata = metadata
        self._catalog_settings = catalog_settings or CatalogSettings()

    def create(
        self,
        name: str,
        author_name: str | None,
        description: str | None,
        path: Path,
        *,
        project_id: str | None = None,
        created_date: datetime | None = None,
    ) -> Project:
        """Create (or complete) a project rooted at ``path``.

        Args:
            name: Project display name.
            author_name: Author name; defaults to ``"Author"``.
            description: Description; defaults to ``"No description available"``.
            path: Project directory, created if absent and reused if present.
            project_id: Identifier to bind; a new one is generated when omitted.
            created_date: Original creation time when restoring a deleted project.

        Returns:
            Project: The catalog row that now exists for the directory.

        Raises:
            FilesystemUnavailableError: If the skeleton or metadata cannot be written.
            CatalogError: If the catalog row cannot be written.
        """
        project_id = project_id or new_project_id()
        author_name = author_name or DEFAULT_AUTHOR
        description = description or DEFAULT_DESCRIPTION
        path = path.absolute()

        for directory in [path, *self._layout.skeleton(path)]:
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise FilesystemUnavailableError(directory, exc) from exc

        try:
            existing = self._metadata.read(path)
        except CorruptMetadataError as exc:
            LOGGER.warning("Replacing unreadable metadata for %s: %s", path, exc)
            existing = None
        descriptor = (existing or MetadataDescriptor()).model_copy(
            update={
                "id": project_id,
                "name": name,
                "author_name": author_name,
                "description": description,
            }
        )
        if descriptor != existing:
            self._metadata.write(path, descriptor)

        with ItemCatalog(self._layout.project_database(path), self._catalog_settings):
            pass

        project = Project(
            id=project_id,
            name=name,
            author_name=author_name,
            created_date=created_date or utcnow(),
            path=str(path),
            description=description,
        )
        self._catalog.insert(project)
        LOGGER.info("Project %s (%s) initialized at %s", project.id, project.name, path)
        return project

    def adopt(
        self,
        path: Path,
        descriptor: MetadataDescriptor,
        *,
        created_date: datetime | None = None,
    ) -> Project:
        """Register an existing directory under the identity its metadata file carries."""
        if not descriptor.id or not descriptor.name:
            raise ValueError("Only completed descriptors can be adopted.")
        return self.create(
            descriptor.name,
            descriptor.author_name,
            descriptor.description,
            path,
            project_id=descriptor.id,
            created_date=created_date,
        )

    def delete(self, project_id: str) -> Project:
        """Delete a project's directory and catalog row.

        A tombstone is written first, then the directory is removed, then the
        row and its tombstone go together. If the process stops part way,
        reconciliation either drops the orphaned row (directory gone) or
        restores the row from the tombstone (directory still present), so the
        project never comes back with a new id.

        Raises:
            ProjectNotFoundError: If no catalog row exists for ``project_id``.
            FilesystemUnavailableError: If the directory cannot be removed.
        """
        project = self._catalog.get(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)

        self._catalog.add_tombstone(project)
        path = Path(project.path)
        try:
            shutil.rmtree(path)
        except FileNotFoundError:
            LOGGER.warning("Project folder not found while deleting %s: %s", project_id, path)
        except OSError as exc:
            raise FilesystemUnavailableError(path, exc) from exc

        with self._catalog.transaction():
            self._catalog.delete(project_id)
            self._catalog.pop_tombstone(project_id)
        LOGGER.info("Project %s deleted", project_id)
        return project


__all__ = ["ProjectLifecycle"]
