"""Reconcile project directories under the projects root with the project catalog."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from writerfriend.catalog import Project, ProjectCatalog
from writerfriend.errors import CorruptMetadataError, FilesystemUnavailableError
from writerfriend.lifecycle import ProjectLifecycle
from writerfriend.metadata import MetadataDescriptor, MetadataRepository
from writerfriend.scanning import is_utf8_name, printable

from .models import ProjectSyncReport, SkippedEntry

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class _ObservedProject:
    directory: Path
    descriptor: MetadataDescriptor


class ProjectReconciler:
    """Bring the project catalog in line with the directories on disk.

    A directory's identity is the ``ID`` in its metadata file, never its path or
    name, so renaming or moving a directory updates its row in place.
    Directories without a metadata file are ignored.
    """

    def __init__(
        self,
        catalog: ProjectCatalog,
        metadata: MetadataRepository,
        lifecycle: ProjectLifecycle,
    ) -> None:
        self._catalog = catalog
        self._metadata = metadata
        self._lifecycle = lifecycle

    def reconcile(self, projects_root: Path) -> ProjectSyncReport:
        """Run one pass over the immediate subdirectories of ``projects_root``.

        Per-directory failures (corrupt metadata, unreadable files) are logged
        and reported as skipped; they never abort the pass. Running the pass
        again without filesystem changes writes nothing.

        Raises:
            FilesystemUnavailableError: If ``projects_root`` cannot be listed.
            TransactionFailureError: If a catalog write fails. The failure is
                logged with its traceback before it propagates.
        """
        report = ProjectSyncReport()
        try:
            self._reconcile(projects_root, report)
        except Exception:
            LOGGER.exception("Project reconciliation under %s abandoned", projects_root)
            raise
        return report

    def _reconcile(self, projects_root: Path, report: ProjectSyncReport) -> None:
        observed, protected_paths = self._observe(projects_root, report)
        rows = {project.id: project for project in self._catalog.list()}
        unmatched = dict(rows)

        for entry in self._deduplicate(observed, rows, report):
            descriptor = entry.descriptor
            project_id = descriptor.id or ""
            path = str(entry.directory)
            row = rows.get(project_id)
            if row is not None:
                unmatched.pop(project_id, None)
                if _differs(row, descriptor, path):
                    self._catalog.update(
                        row.model_copy(
                            update={
                                "path": path,
                                "name": descriptor.name,
                                "author_name": descriptor.author_name,
                                "description": descriptor.description,
                            }
                        )
                    )
                    LOGGER.info("Updated project %s from %s", project_id, path)
                    report.updated.append(project_id)
                continue

            tombstone = self._catalog.pop_tombstone(project_id)
            try:
                if tombstone is not None:
                    LOGGER.warning(
                        "Restoring project %s from tombstone; its directory %s still exists",
                        project_id,
                        path,
                    )
                    self._lifecycle.adopt(
                        entry.directory, descriptor, created_date=tombstone.created_date
                    )
                    report.restored.append(project_id)
                else:
                    LOGGER.info("Adopting %s as new project %s", path, project_id)
                    self._lifecycle.adopt(entry.directory, descriptor)
                    report.created.append(project_id)
            except FilesystemUnavailableError as exc:
                if tombstone is not None:
                    self._catalog.add_tombstone(tombstone)
                LOGGER.warning("Could not adopt %s: %s", path, exc)
                report.skipped.append(SkippedEntry(path=path, reason=str(exc)))

        stale = [
            project_id
            for project_id, project in unmatched.items()
            if project.path not in protected_paths
        ]
        if stale:
            self._catalog.delete_many(stale)
            for project_id in stale:
                LOGGER.info("Removed project %s; its directory is gone", project_id)
            report.deleted.extend(stale)

    def _observe(
        self, projects_root: Path, report: ProjectSyncReport
    ) -> tuple[list[_ObservedProject], set[str]]:
        """Read and self-heal the metadata of every candidate directory.

        Returns:
            tuple[list[_ObservedProject], set[str]]: Directories with usable
            metadata, and paths of directories that exist but had to be skipped
            (their catalog rows must survive this pass).
        """
        try:
            directories = sorted(
                child
                for child in projects_root.iterdir()
                if child.is_dir() and not child.name.startswith(".")
            )
        except OSError as exc:
            raise FilesystemUnavailableError(projects_root, exc) from exc

        observed: list[_ObservedProject] = []
        protected: set[str] = set()
        for directory in directories:
            if not is_utf8_name(directory.name):
                reason = "directory name is not valid UTF-8"
                LOGGER.warning("Skipping project directory %s: %s", printable(directory), reason)
                report.skipped.append(SkippedEntry(path=printable(directory), reason=reason))
                protected.add(str(directory))
                continue
            try:
                descriptor = self._metadata.read(directory)
                if descriptor is None:
                    LOGGER.debug("Ignoring %s: no metadata file", directory)
                    continue
                completed, filled = self._metadata.ensure_complete(descriptor, directory.name)
                if filled:
                    self._metadata.write(directory, completed)
                    LOGGER.info("Backfilled %s in metadata for %s", ", ".join(filled), directory)
                    report.healed.append(str(directory))
            except (CorruptMetadataError, FilesystemUnavailableError) as exc:
                LOGGER.warning("Skipping project directory %s: %s", directory, exc)
                report.skipped.append(SkippedEntry(path=str(directory), reason=str(exc)))
                protected.add(str(directory))
                continue
            observed.append(_ObservedProject(directory=directory, descriptor=completed))
        return observed, protected

    def _deduplicate(
        self,
        observed: list[_ObservedProject],
        rows: dict[str, Project],
        report: ProjectSyncReport,
    ) -> list[_ObservedProject]:
        """Keep one directory per project id.

        A copied project directory carries its original's id. The directory
        already recorded in the catalog wins; otherwise the first by name does.
        """
        by_id: dict[str, list[_ObservedProject]] = {}
        for entry in observed:
            by_id.setdefault(entry.descriptor.id or "", []).append(entry)

        kept: list[_ObservedProject] = []
        for project_id, entries in by_id.items():
            winner = entries[0]
            row = rows.get(project_id)
            if row is not None:
                winner = next((e for e in entries if str(e.directory) == row.path), winner)
            kept.append(winner)
            for loser in entries:
                if loser is winner:
                    continue
                reason = f"duplicate project id {project_id} already used by {winner.directory}"
                LOGGER.warning("Skipping %s: %s", loser.directory, reason)
                report.skipped.append(SkippedEntry(path=str(loser.directory), reason=reason))
        return kept


def _differs(row: Project, descriptor: MetadataDescriptor, path: str) -> bool:
    return (
        row.path != path
        or row.name != descriptor.name
        or row.author_name != descriptor.author_name
        or row.description != descriptor.description
    )


__all__ = ["ProjectReconciler"]
