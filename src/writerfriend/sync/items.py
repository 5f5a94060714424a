"""Reconcile a project's manuscript tree with its folder/document catalog."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path, PurePosixPath

from writerfriend.catalog import Document, Folder, ItemCatalog, utcnow
from writerfriend.ids import new_item_id
from writerfriend.scanning import DirectoryWalker, printable

from .models import ItemSyncPlan, ItemSyncReport, SkippedEntry
from .ordering import repair_order

LOGGER = logging.getLogger(__name__)


class ItemReconciler:
    """Compute and apply the catalog changes that mirror the manuscript tree.

    Rows are matched to the filesystem by their manuscript-relative path
    (``content_path`` for documents, ``relative_path`` for folders). The
    filesystem is only read, never changed.
    """

    def __init__(self, walker: DirectoryWalker) -> None:
        self._walker = walker

    def reconcile(self, catalog: ItemCatalog, manuscript_dir: Path, project_id: str) -> ItemSyncReport:
        """Run a full pass: plan, apply, then repair sibling order.

        Raises:
            FilesystemUnavailableError: If the manuscript directory cannot be listed.
            TransactionFailureError: If a catalog batch fails; that batch is rolled back.
        """
        plan = self.plan(catalog.list_items(), manuscript_dir)
        report = ItemSyncReport(project_id=project_id, skipped=list(plan.skipped))
        try:
            self.apply(catalog, plan)
        except Exception:
            LOGGER.exception("Item reconciliation for project %s abandoned", project_id)
            raise

        report.created = [item.id for item in plan.creates]
        report.updated = list(plan.parent_updates)
        report.deleted = list(plan.deletes)
        report.reordered = list(repair_order(catalog))
        LOGGER.info(
            "Project %s items: %d created, %d re-parented, %d deleted, %d reordered",
            project_id,
            len(report.created),
            len(report.updated),
            len(report.deleted),
            len(report.reordered),
        )
        return report

    def plan(self, existing: list[Folder | Document], manuscript_dir: Path) -> ItemSyncPlan:
        """Stage creates, parent updates, and deletions without touching the catalog.

        Args:
            existing: Current catalog rows in catalog iteration order.
            manuscript_dir: Root of the manuscript tree.

        Returns:
            ItemSyncPlan: Staged mutations.
        """
        plan = ItemSyncPlan()
        by_key: dict[str, Folder | Document] = {}
        for item in existing:
            key = item.path_key
            if key is not None and key not in by_key:
                by_key[key] = item

        pending_delete: dict[str, Folder | Document] = {item.id: item for item in existing}
        resolved: dict[str, str] = {}
        skipped_dirs: list[str] = []

        def _record_skip(path: Path, exc: Exception) -> None:
            relative = _relative(path, manuscript_dir)
            skipped_dirs.append(relative)
            plan.skipped.append(SkippedEntry(path=printable(relative), reason=str(exc)))

        now = utcnow()
        for entry in self._walker.walk(manuscript_dir, on_error=_record_skip):
            relative = _relative(entry.path, manuscript_dir)
            parent_key = PurePosixPath(relative).parent.as_posix()
            parent_id = resolved.get(parent_key) if parent_key != "." else None

            kind = "folder" if entry.kind == "folder" else "document"
            match = by_key.get(relative)
            if match is not None and match.type == kind:
                pending_delete.pop(match.id, None)
                resolved[relative] = match.id
                if match.parent_id != parent_id:
                    plan.parent_updates[match.id] = parent_id
                continue

            created = _new_item(kind, entry.path, relative, parent_id, now)
            plan.creates.append(created)
            resolved[relative] = created.id

        for item_id, item in list(pending_delete.items()):
            key = item.path_key
            if key is not None and any(_is_protected(key, skipped) for skipped in skipped_dirs):
                pending_delete.pop(item_id)

        plan.deletes = _cascade_deletes(existing, pending_delete, plan.parent_updates)
        return plan

    def apply(self, catalog: ItemCatalog, plan: ItemSyncPlan) -> None:
        """Write a staged plan: creates, then parent updates, then deletions.

        The whole plan commits in one transaction or not at all.
        """
        if plan.is_empty:
            return
        with catalog.transaction():
            catalog.insert_items(plan.creates)
            catalog.update_parents(plan.parent_updates)
            catalog.delete_items(plan.deletes)


def _new_item(
    kind: str, path: Path, relative: str, parent_id: str | None, now: datetime
) -> Folder | Document:
    if kind == "folder":
        return Folder(
            id=new_item_id(),
            name=path.name,
            relative_path=relative,
            parent_id=parent_id,
            order=0,
            created_date=now,
            modified_date=now,
        )
    return Document(
        id=new_item_id(),
        name=path.stem,
        content_path=relative,
        parent_id=parent_id,
        order=0,
        created_date=now,
        modified_date=now,
    )


def _cascade_deletes(
    existing: list[Folder | Document],
    pending_delete: dict[str, Folder | Document],
    parent_updates: dict[str, str | None],
) -> list[str]:
    """Extend the deletion set with every row whose final parent is being deleted.

    Rows matched by path were already re-parented onto live folders, so this
    only reaches rows that would otherwise be left pointing at a deleted folder.
    """
    doomed = set(pending_delete)
    final_parent = {
        item.id: parent_updates.get(item.id, item.parent_id)
        for item in existing
        if item.id not in doomed
    }
    changed = True
    while changed:
        changed = False
        for item_id, parent_id in list(final_parent.items()):
            if parent_id is not None and parent_id in doomed:
                doomed.add(item_id)
                del final_parent[item_id]
                changed = True
    return [item.id for item in existing if item.id in doomed]


def _relative(path: Path, root: Path) -> str:
    return path.relative_to(root).as_posix()


def _is_protected(key: str, skipped: str) -> bool:
    """Return True when ``key`` is the skipped path itself or lies beneath it."""
    return key == skipped or key.startswith(f"{skipped}/")


__all__ = ["ItemReconciler"]
