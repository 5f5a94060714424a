"""Plans and reports produced by reconciliation passes."""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from writerfriend.catalog import Item


class SkippedEntry(BaseModel):
    """A directory left out of a pass, with the reason it was skipped."""

    path: str
    reason: str


class ProjectSyncReport(BaseModel):
    """Outcome of reconciling the projects root against the project catalog.

    Attributes:
        created: Ids of directories adopted as new projects.
        restored: Ids re-registered from a tombstone after an interrupted delete.
        updated: Ids whose path, name, author, or description changed.
        deleted: Ids whose directory no longer exists.
        healed: Directories whose metadata file was backfilled and rewritten.
        skipped: Directories that could not be reconciled this pass.
    """

    created: List[str] = Field(default_factory=list)
    restored: List[str] = Field(default_factory=list)
    updated: List[str] = Field(default_factory=list)
    deleted: List[str] = Field(default_factory=list)
    healed: List[str] = Field(default_factory=list)
    skipped: List[SkippedEntry] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.created or self.restored or self.updated or self.deleted)


class ItemSyncPlan(BaseModel):
    """Catalog mutations staged by the item reconciler before anything is written.

    Attributes:
        creates: New folder and document rows, parents before children.
        parent_updates: Existing item id mapped to its new parent id.
        deletes: Ids of rows whose file or directory is gone, descendants included.
        skipped: Subtrees that could not be read and whose rows were kept.
    """

    creates: List[Item] = Field(default_factory=list)
    parent_updates: Dict[str, Optional[str]] = Field(default_factory=dict)
    deletes: List[str] = Field(default_factory=list)
    skipped: List[SkippedEntry] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.creates or self.parent_updates or self.deletes)


class ItemSyncReport(BaseModel):
    """Outcome of reconciling a manuscript tree against a project's item catalog."""

    project_id: str
    created: List[str] = Field(default_factory=list)
    updated: List[str] = Field(default_factory=list)
    deleted: List[str] = Field(default_factory=list)
    reordered: List[str] = Field(default_factory=list)
    skipped: List[SkippedEntry] = Field(default_factory=list)


__all__ = [
    "SkippedEntry",
    "ProjectSyncReport",
    "ItemSyncPlan",
    "ItemSyncReport",
]
