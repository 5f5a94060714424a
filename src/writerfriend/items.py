"""Structural changes to a project's manuscript: create, rename, move, reorder, delete.

The filesystem stays authoritative. Every mutation changes the file or
directory first and commits the catalog afterwards, so an interruption leaves
an untracked file (picked up by the next reconciliation) rather than a row
pointing at nothing. Sibling order is repaired after each structural change.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path, PurePosixPath
from typing import Any, Iterable

from writerfriend.catalog import Document, Folder, ItemCatalog, utcnow
from writerfriend.errors import (
    FilesystemUnavailableError,
    ItemConflictError,
    ItemNotFoundError,
)
from writerfriend.ids import new_item_id
from writerfriend.scanning import is_utf8_name
from writerfriend.sync.ordering import repair_order

LOGGER = logging.getLogger(__name__)

_FORBIDDEN_NAME_CHARS = set('/\\:*?"<>|\x00')


class ItemEditor:
    """Apply user-driven changes to one project's folders and documents."""

    def __init__(
        self,
        catalog: ItemCatalog,
        manuscript_dir: Path,
        *,
        default_extension: str = ".md",
    ) -> None:
        self._catalog = catalog
        self._manuscript_dir = manuscript_dir
        self._default_extension = (
            default_extension if default_extension.startswith(".") else f".{default_extension}"
        )

    @property
    def catalog(self) -> ItemCatalog:
        return self._catalog

    # ------------------------------------------------------------------ #
    # Creation                                                           #
    # ------------------------------------------------------------------ #

    def create_folder(self, name: str, parent_id: str | None = None) -> Folder:
        """Create a directory under ``parent_id`` (the manuscript root when None).

        Raises:
            ItemConflictError: If the parent already holds an entry with that name.
            ItemNotFoundError: If ``parent_id`` is not a folder.
        """
        name = validate_name(name)
        parent = self._parent_folder(parent_id)
        target = self._directory_of(parent) / name
        if target.exists() or any(child.name == name for child in self._folders_under(parent_id)):
            raise ItemConflictError(f"A folder named {name!r} already exists in this location")

        try:
            target.mkdir()
        except OSError as exc:
            raise FilesystemUnavailableError(target, exc) from exc

        folder = Folder(
            id=new_item_id(),
            name=name,
            relative_path=self._relative(target),
            parent_id=parent_id,
            order=self._catalog.max_sibling_order(parent_id) + 1,
        )
        self._catalog.insert_items([folder])
        repair_order(self._catalog)
        LOGGER.info("Created folder %s at %s", folder.id, folder.relative_path)
        return self._reload(folder.id)  # type: ignore[return-value]

    def create_document(
        self, name: str, parent_id: str | None = None, content: bytes = b""
    ) -> Document:
        """Write a new content file under ``parent_id`` and catalog it.

        When the file name is taken, ``-1``, ``-2``... is appended until it is free.
        """
        name = validate_name(name)
        parent = self._parent_folder(parent_id)
        directory = self._directory_of(parent)
        target = _free_path(directory / f"{name}{self._default_extension}")

        try:
            with target.open("xb") as handle:
                handle.write(content)
        except OSError as exc:
            raise FilesystemUnavailableError(target, exc) from exc

        document = Document(
            id=new_item_id(),
            name=target.stem,
            content_path=self._relative(target),
            parent_id=parent_id,
            order=self._catalog.max_sibling_order(parent_id) + 1,
        )
        self._catalog.insert_items([document])
        repair_order(self._catalog)
        LOGGER.info("Created document %s at %s", document.id, document.content_path)
        return self._reload(document.id)  # type: ignore[return-value]

    # ------------------------------------------------------------------ #
    # Rename / move / reorder                                            #
    # ------------------------------------------------------------------ #

    def rename_item(self, item_id: str, new_name: str) -> Folder | Document:
        """Rename an item on disk and in the catalog; documents keep their extension."""
        new_name = validate_name(new_name)
        item = self._require(item_id)
        source = self._absolute(item)
        target = source.with_name(new_name + source.suffix if isinstance(item, Document) else new_name)

        if target != source:
            if target.exists():
                raise ItemConflictError(f"{target.name!r} already exists in this location")
            self._rename_on_disk(source, target)

        with self._catalog.transaction():
            self._catalog.update_item_fields(item_id, name=new_name, modified_date=utcnow())
            if target != source:
                self._rewrite_paths(self._relative(source), self._relative(target))
        return self._reload(item_id)

    def move_item(self, item_id: str, new_parent_id: str | None) -> Folder | Document:
        """Move an item under another folder (or the root) and append it to its siblings.

        Raises:
            ValueError: If a folder would be moved into itself or a descendant.
            ItemConflictError: If the destination already holds an entry with that name.
        """
        item = self._require(item_id)
        parent = self._parent_folder(new_parent_id)
        if isinstance(item, Folder) and new_parent_id is not None:
            if new_parent_id == item.id or new_parent_id in self._descendant_ids(item.id):
                raise ValueError("A folder cannot be moved into itself or its descendants.")

        source = self._absolute(item)
        target = self._directory_of(parent) / source.name
        if target != source:
            if target.exists():
                raise ItemConflictError(f"{target.name!r} already exists in the destination")
            self._rename_on_disk(source, target)

        with self._catalog.transaction():
            order = self._catalog.max_sibling_order(new_parent_id) + 1
            self._catalog.update_item_fields(
                item_id, parent_id=new_parent_id, order=order, modified_date=utcnow()
            )
            if target != source:
                self._rewrite_paths(self._relative(source), self._relative(target))
        repair_order(self._catalog)
        return self._reload(item_id)

    def reorder_item(self, item_id: str, target_id: str) -> list[Folder | Document]:
        """Place ``item_id`` at ``target_id``'s position among their shared siblings.

        Moving an item down puts it after the target; moving it up puts it before.

        Returns:
            list[Folder | Document]: The sibling group in its new order.
        """
        item = self._require(item_id)
        target = self._require(target_id)
        if item.parent_id != target.parent_id:
            raise ValueError("Only items sharing a parent can be reordered against each other.")
        if item_id == target_id:
            return self._catalog.children(item.parent_id)

        siblings = self._catalog.children(item.parent_id)
        target_index = next(i for i, sibling in enumerate(siblings) if sibling.id == target_id)
        moving = next(sibling for sibling in siblings if sibling.id == item_id)
        remaining = [sibling for sibling in siblings if sibling.id != item_id]
        remaining.insert(target_index, moving)

        changes = {
            sibling.id: rank
            for rank, sibling in enumerate(remaining, start=1)
            if sibling.order != rank
        }
        self._catalog.update_orders(changes)
        return self._catalog.children(item.parent_id)

    # ------------------------------------------------------------------ #
    # Deletion                                                           #
    # ------------------------------------------------------------------ #

    def delete_item(self, item_id: str) -> list[str]:
        """Remove an item from disk and delete its row and every descendant row.

        Returns:
            list[str]: Ids of the deleted rows.
        """
        item = self._require(item_id)
        path = self._absolute(item)
        try:
            if isinstance(item, Folder):
                shutil.rmtree(path)
            else:
                path.unlink()
        except FileNotFoundError:
            LOGGER.warning("%s was already missing from disk", path)
        except OSError as exc:
            raise FilesystemUnavailableError(path, exc) from exc

        doomed = [item_id, *self._descendant_ids(item_id)]
        self._catalog.delete_items(doomed)
        repair_order(self._catalog)
        LOGGER.info("Deleted %d item(s) rooted at %s", len(doomed), item_id)
        return doomed

    # ------------------------------------------------------------------ #
    # Annotations and content                                            #
    # ------------------------------------------------------------------ #

    def update_beats(self, item_id: str, beats: Iterable[dict[str, Any]]) -> Folder | Document:
        return self._update_fields(item_id, beats=list(beats))

    def update_description(self, item_id: str, description: str | None) -> Folder | Document:
        return self._update_fields(item_id, description=description)

    def update_color(self, item_id: str, color: str | None) -> Folder | Document:
        return self._update_fields(item_id, color=color)

    def read_content(self, document_id: str) -> bytes:
        document = self._require_document(document_id)
        path = self._absolute(document)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise FilesystemUnavailableError(path, exc) from exc

    def write_content(self, document_id: str, data: bytes) -> Document:
        """Replace a document's bytes and bump its modification time."""
        document = self._require_document(document_id)
        path = self._absolute(document)
        try:
            path.write_bytes(data)
        except OSError as exc:
            raise FilesystemUnavailableError(path, exc) from exc
        return self._update_fields(document_id, modified_date=utcnow())  # type: ignore[return-value]

    # ------------------------------------------------------------------ #
    # Helpers                                                            #
    # ------------------------------------------------------------------ #

    def _update_fields(self, item_id: str, **fields: Any) -> Folder | Document:
        fields.setdefault("modified_date", utcnow())
        if not self._catalog.update_item_fields(item_id, **fields):
            raise ItemNotFoundError(item_id)
        return self._reload(item_id)

    def _require(self, item_id: str) -> Folder | Document:
        item = self._catalog.get_item(item_id)
        if item is None:
            raise ItemNotFoundError(item_id)
        return item

    def _require_document(self, document_id: str) -> Document:
        item = self._require(document_id)
        if not isinstance(item, Document) or not item.content_path:
            raise ItemNotFoundError(document_id, f"Document not found: {document_id}")
        return item

    def _reload(self, item_id: str) -> Folder | Document:
        return self._require(item_id)

    def _parent_folder(self, parent_id: str | None) -> Folder | None:
        if parent_id is None:
            return None
        parent = self._catalog.get_item(parent_id)
        if not isinstance(parent, Folder):
            raise ItemNotFoundError(parent_id, f"Folder not found: {parent_id}")
        return parent

    def _folders_under(self, parent_id: str | None) -> list[Folder]:
        return [child for child in self._catalog.children(parent_id) if isinstance(child, Folder)]

    def _directory_of(self, folder: Folder | None) -> Path:
        if folder is None or not folder.relative_path:
            return self._manuscript_dir
        return self._manuscript_dir / folder.relative_path

    def _absolute(self, item: Folder | Document) -> Path:
        key = item.path_key
        if not key:
            raise ItemNotFoundError(item.id, f"Item {item.id} has no path on disk")
        return self._manuscript_dir / key

    def _relative(self, path: Path) -> str:
        return path.relative_to(self._manuscript_dir).as_posix()

    def _descendant_ids(self, item_id: str) -> list[str]:
        children: dict[str | None, list[str]] = {}
        for item in self._catalog.list_items():
            children.setdefault(item.parent_id, []).append(item.id)
        found: list[str] = []
        frontier = [item_id]
        while frontier:
            current = frontier.pop()
            for child_id in children.get(current, []):
                if child_id not in found:
                    found.append(child_id)
                    frontier.append(child_id)
        return found

    def _rewrite_paths(self, old_prefix: str, new_prefix: str) -> None:
        """Re-key every row at or below ``old_prefix`` after an on-disk rename."""
        old = PurePosixPath(old_prefix)
        for item in self._catalog.list_items():
            key = item.path_key
            if key is None:
                continue
            current = PurePosixPath(key)
            if current != old and old not in current.parents:
                continue
            updated = (PurePosixPath(new_prefix) / current.relative_to(old)).as_posix()
            if isinstance(item, Folder):
                self._catalog.update_item_fields(item.id, relative_path=updated)
            else:
                self._catalog.update_item_fields(item.id, content_path=updated)

    def _rename_on_disk(self, source: Path, target: Path) -> None:
        try:
            source.rename(target)
        except OSError as exc:
            raise FilesystemUnavailableError(source, exc) from exc


def validate_name(value: str) -> str:
    """Trim ``value`` and reject names that cannot be a single file or directory name."""
    name = (value or "").strip()
    if not name:
        raise ValueError("A name is required.")
    if name in {".", ".."} or name.startswith("."):
        raise ValueError(f"Invalid name {value!r}: names cannot start with a dot.")
    if any(char in _FORBIDDEN_NAME_CHARS for char in name):
        raise ValueError(f"Invalid name {value!r}: path separators and reserved characters are not allowed.")
    if not is_utf8_name(name):
        raise ValueError(f"Invalid name {value!r}: names must be valid UTF-8.")
    return name


def _free_path(candidate: Path) -> Path:
    counter = 1
    final = candidate
    while final.exists():
        final = candidate.with_name(f"{candidate.stem}-{counter}{candidate.suffix}")
        counter += 1
    return final


__all__ = ["ItemEditor", "validate_name"]
