"""Entry point bundling the catalog, reconcilers, and lifecycle for one projects root."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from writerfriend.catalog import Folder, Document, ItemCatalog, Project, ProjectCatalog, Version
from writerfriend.config.models import WriterFriendConfig
from writerfriend.errors import (
    FilesystemUnavailableError,
    ProjectExistsError,
    ProjectNotFoundError,
)
from writerfriend.items import ItemEditor
from writerfriend.layout import ProjectLayout
from writerfriend.lifecycle import ProjectLifecycle
from writerfriend.metadata import MetadataDescriptor, MetadataRepository
from writerfriend.scanning import DirectoryWalker
from writerfriend.sync import (
    ItemReconciler,
    ItemSyncReport,
    ProjectReconciler,
    ProjectSyncReport,
    repair_order,
)
from writerfriend.timelines import Timeline, TimelineManager, TimelineSummary
from writerfriend.versions import VersionManager

LOGGER = logging.getLogger(__name__)


class Workspace:
    """Expose every project, item, and version operation by explicit project id.

    The workspace keeps the project catalog open for its lifetime. A project's
    item catalog is opened for the duration of a single call and closed again.
    """

    def __init__(
        self,
        config: WriterFriendConfig | None = None,
        *,
        projects_root: Path | None = None,
    ) -> None:
        """Open the project catalog under the configured projects root.

        Args:
            config: Loaded configuration; defaults apply when omitted.
            projects_root: Overrides ``config.paths.projects_root``.

        Raises:
            FilesystemUnavailableError: If the projects root cannot be created.
            CatalogError: If the project catalog cannot be opened.
        """
        self._config = config or WriterFriendConfig()
        self._layout = ProjectLayout.from_settings(self._config.paths, projects_root)
        try:
            self._layout.projects_root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemUnavailableError(self._layout.projects_root, exc) from exc

        self._metadata = MetadataRepository(self._config.paths.metadata_filename)
        self._catalog = ProjectCatalog(self._layout.main_database, self._config.catalog)
        self._lifecycle = ProjectLifecycle(
            self._catalog, self._layout, self._metadata, self._config.catalog
        )
        self._project_reconciler = ProjectReconciler(self._catalog, self._metadata, self._lifecycle)
        scanning = self._config.scanning
        self._item_reconciler = ItemReconciler(
            DirectoryWalker(
                extensions=scanning.content_extensions,
                include_hidden=scanning.include_hidden,
                follow_symlinks=scanning.follow_symlinks,
            )
        )
        self._versions = VersionManager(self._layout)
        self._timelines = TimelineManager(self._layout)

    @property
    def config(self) -> WriterFriendConfig:
        return self._config

    @property
    def layout(self) -> ProjectLayout:
        return self._layout

    @property
    def projects_root(self) -> Path:
        return self._layout.projects_root

    def close(self) -> None:
        self._catalog.close()

    def __enter__(self) -> "Workspace":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Projects                                                           #
    # ------------------------------------------------------------------ #

    def sync_projects(self) -> ProjectSyncReport:
        """Reconcile the project catalog with the directories under the projects root."""
        return self._project_reconciler.reconcile(self._layout.projects_root)

    def list_projects(self, *, sync: bool = True) -> list[Project]:
        """Return every project, reconciling with the filesystem first unless ``sync`` is False."""
        if sync:
            self.sync_projects()
        return self._catalog.list()

    def get_project(self, project_id: str) -> Project:
        project = self._catalog.get(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    def create_project(
        self,
        name: str,
        author_name: str | None = None,
        description: str | None = None,
    ) -> Project:
        """Create a new project directory named after ``name`` under the projects root.

        Raises:
            ValueError: If ``name`` is blank or not usable as a directory name.
            ProjectExistsError: If the target directory already exists.
        """
        name = (name or "").strip()
        if not name:
            raise ValueError("Project name is required.")
        if name in {".", ".."} or "/" in name or "\\" in name or name.startswith("."):
            raise ValueError(f"Invalid project name {name!r}.")

        path = self._layout.project_dir(name)
        if path.exists():
            raise ProjectExistsError(f"A project directory already exists at {path}")
        return self._lifecycle.create(
            name,
            (author_name or "").strip() or None,
            (description or "").strip() or None,
            path,
        )

    def delete_project(self, project_id: str) -> Project:
        return self._lifecycle.delete(project_id)

    def get_project_metadata(self, project_id: str) -> MetadataDescriptor:
        """Return the descriptor stored in the project's metadata file.

        A missing file yields an empty descriptor.
        """
        project = self.get_project(project_id)
        return self._metadata.read(Path(project.path)) or MetadataDescriptor()

    def update_project_metadata(
        self,
        project_id: str,
        *,
        name: str | None = None,
        author_name: str | None = None,
        description: str | None = None,
    ) -> Project:
        """Rewrite the project's metadata file and catalog row.

        Blank or omitted values leave the corresponding field unchanged. The
        project ``ID`` and any extra keys in the file are preserved.
        """
        project = self.get_project(project_id)
        project_dir = Path(project.path)
        current = self._metadata.read(project_dir) or MetadataDescriptor(id=project.id)

        updates = {
            key: value.strip()
            for key, value in (
                ("name", name),
                ("author_name", author_name),
                ("description", description),
            )
            if value is not None and value.strip()
        }
        descriptor = current.model_copy(update={"id": project.id, **updates})
        descriptor, _ = self._metadata.ensure_complete(descriptor, project_dir.name)
        self._metadata.write(project_dir, descriptor)

        updated = project.model_copy(
            update={
                "name": descriptor.name,
                "author_name": descriptor.author_name,
                "description": descriptor.description,
            }
        )
        self._catalog.update(updated)
        LOGGER.info("Updated metadata of project %s", project_id)
        return updated

    # ------------------------------------------------------------------ #
    # Items                                                              #
    # ------------------------------------------------------------------ #

    @contextmanager
    def item_catalog(self, project_id: str) -> Iterator[ItemCatalog]:
        """Open the item catalog of ``project_id`` for the duration of the block."""
        project = self.get_project(project_id)
        catalog = ItemCatalog(
            self._layout.project_database(Path(project.path)), self._config.catalog
        )
        try:
            yield catalog
        finally:
            catalog.close()

    def open_project(self, project_id: str) -> ItemSyncReport:
        """Reconcile a project's manuscript tree with its item catalog.

        Raises:
            ProjectNotFoundError: If the project is unknown.
            FilesystemUnavailableError: If the manuscript directory is missing or unreadable.
        """
        project = self.get_project(project_id)
        manuscript_dir = self._layout.manuscript_dir(Path(project.path))
        if not manuscript_dir.is_dir():
            raise FilesystemUnavailableError(
                manuscript_dir, FileNotFoundError(f"No manuscript directory in {project.path}")
            )
        with self.item_catalog(project_id) as catalog:
            return self._item_reconciler.reconcile(catalog, manuscript_dir, project_id)

    def list_items(self, project_id: str) -> list[Folder | Document]:
        with self.item_catalog(project_id) as catalog:
            return catalog.list_items()

    def repair_order(self, project_id: str) -> dict[str, int]:
        """Renumber every sibling group of the project to a dense 1..n sequence."""
        with self.item_catalog(project_id) as catalog:
            return repair_order(catalog)

    @contextmanager
    def items(self, project_id: str) -> Iterator[ItemEditor]:
        """Yield an :class:`ItemEditor` bound to the project's manuscript and catalog."""
        project = self.get_project(project_id)
        with self.item_catalog(project_id) as catalog:
            yield ItemEditor(
                catalog,
                self._layout.manuscript_dir(Path(project.path)),
                default_extension=self._config.documents.default_extension,
            )

    # ------------------------------------------------------------------ #
    # Versions                                                           #
    # ------------------------------------------------------------------ #

    def snapshot(self, project_id: str, document_id: str, description: str | None = None) -> Version:
        project = self.get_project(project_id)
        with self.item_catalog(project_id) as catalog:
            return self._versions.snapshot(project, catalog, document_id, description)

    def list_versions(self, project_id: str, document_id: str) -> list[Version]:
        with self.item_catalog(project_id) as catalog:
            return self._versions.list_versions(catalog, document_id)

    def read_version(self, project_id: str, version_id: str) -> bytes:
        with self.item_catalog(project_id) as catalog:
            return self._versions.read_content(catalog, version_id)

    def update_version_description(
        self, project_id: str, version_id: str, description: str | None
    ) -> Version:
        with self.item_catalog(project_id) as catalog:
            return self._versions.update_description(catalog, version_id, description)

    # ------------------------------------------------------------------ #
    # Timelines                                                          #
    # ------------------------------------------------------------------ #

    def list_timelines(self, project_id: str) -> list[TimelineSummary]:
        return self._timelines.list(self._project_dir(project_id))

    def create_timeline(self, project_id: str, name: str) -> Timeline:
        return self._timelines.create(self._project_dir(project_id), name)

    def read_timeline(self, project_id: str, name: str) -> Timeline:
        return self._timelines.read(self._project_dir(project_id), name)

    def save_timeline(
        self, project_id: str, name: str, nodes: list[dict[str, Any]], edges: list[dict[str, Any]]
    ) -> Timeline:
        """Replace the graph of an existing timeline, keeping any other keys in its file."""
        return self._timelines.save(self._project_dir(project_id), name, nodes, edges)

    def delete_timeline(self, project_id: str, name: str) -> None:
        self._timelines.delete(self._project_dir(project_id), name)

    def _project_dir(self, project_id: str) -> Path:
        return Path(self.get_project(project_id).path)


__all__ = ["Workspace"]
