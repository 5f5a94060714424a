"""Catalog store tests for projects, items, and versions."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from writerfriend.catalog import Document, Folder, ItemCatalog, Project, ProjectCatalog, Version
from writerfriend.errors import CatalogError, TransactionFailureError


def _project(project_id: str = "abc123", path: str = "/tmp/Novel") -> Project:
    return Project(
        id=project_id,
        name="Novel",
        author_name="Author",
        path=path,
        created_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


def test_project_catalog_crud(tmp_path: Path) -> None:
    with ProjectCatalog(tmp_path / "main_database.sqlite") as catalog:
        catalog.insert(_project())
        catalog.insert(_project("zzz999", "/tmp/Other"))

        assert [project.id for project in catalog.list()] == ["abc123", "zzz999"]
        assert catalog.get("abc123") == _project()
        assert catalog.get_by_path("/tmp/Other").id == "zzz999"  # type: ignore[union-attr]

        renamed = _project().model_copy(update={"name": "Renamed", "path": "/tmp/Renamed"})
        assert catalog.update(renamed) is True
        assert catalog.get("abc123").name == "Renamed"  # type: ignore[union-attr]

        assert catalog.delete_many(["abc123", "zzz999"]) == 2
        assert catalog.list() == []
        assert catalog.update(renamed) is False


def test_project_catalog_persists_between_connections(tmp_path: Path) -> None:
    db = tmp_path / "main_database.sqlite"
    with ProjectCatalog(db) as catalog:
        catalog.insert(_project())

    with ProjectCatalog(db) as catalog:
        assert catalog.get("abc123") == _project()


def test_tombstones_pop_once(tmp_path: Path) -> None:
    with ProjectCatalog(tmp_path / "main.sqlite") as catalog:
        catalog.add_tombstone(_project())

        assert catalog.get_tombstone("abc123") == _project()
        assert catalog.pop_tombstone("abc123") == _project()
        assert catalog.pop_tombstone("abc123") is None


def test_delete_many_drops_matching_tombstones(tmp_path: Path) -> None:
    with ProjectCatalog(tmp_path / "main.sqlite") as catalog:
        catalog.insert(_project())
        catalog.add_tombstone(_project())
        catalog.add_tombstone(_project("zzz999", "/tmp/Other"))

        assert catalog.delete_many(["abc123"]) == 1

        assert catalog.get_tombstone("abc123") is None
        assert catalog.get_tombstone("zzz999") is not None


def test_item_catalog_round_trips_folders_and_documents(tmp_path: Path) -> None:
    folder = Folder(id="f1", name="Part", relative_path="Part", order=1)
    document = Document(
        id="d1",
        name="Scene",
        content_path="Part/Scene.md",
        parent_id="f1",
        order=1,
        beats=[{"text": "Hero arrives"}],
        color="red",
    )

    with ItemCatalog(tmp_path / "project_database.sqlite") as catalog:
        catalog.insert_items([folder, document])

        items = catalog.list_items()
        assert items == [folder, document]
        assert isinstance(items[0], Folder) and isinstance(items[1], Document)
        assert catalog.children("f1") == [document]
        assert catalog.children(None) == [folder]
        assert catalog.max_sibling_order("f1") == 1
        assert catalog.max_sibling_order("missing") == 0


def test_update_item_fields_and_bulk_updates(tmp_path: Path) -> None:
    with ItemCatalog(tmp_path / "project.sqlite") as catalog:
        catalog.insert_items(
            [
                Folder(id="f1", name="A", relative_path="A"),
                Document(id="d1", name="x", content_path="x.md"),
            ]
        )

        assert catalog.update_item_fields("d1", name="y", beats=[{"n": 1}], content_path="y.md")
        assert catalog.update_item_fields("missing", name="z") is False
        catalog.update_parents({"d1": "f1"})
        catalog.update_orders({"d1": 4, "f1": 2})

        document = catalog.get_item("d1")
        assert isinstance(document, Document)
        assert (document.name, document.content_path, document.parent_id, document.order) == (
            "y",
            "y.md",
            "f1",
            4,
        )
        assert document.beats == [{"n": 1}]

        with pytest.raises(ValueError):
            catalog.update_item_fields("d1", type="folder")


def test_failed_batch_is_rolled_back(tmp_path: Path) -> None:
    with ItemCatalog(tmp_path / "project.sqlite") as catalog:
        catalog.insert_items([Document(id="d1", name="x", content_path="x.md")])

        duplicate = [
            Document(id="d2", name="y", content_path="y.md"),
            Document(id="d1", name="again", content_path="again.md"),
        ]
        with pytest.raises(TransactionFailureError):
            catalog.insert_items(duplicate)

        assert [item.id for item in catalog.list_items()] == ["d1"]
        assert not catalog.connection.in_transaction


def test_nested_transactions_join_the_outer_one(tmp_path: Path) -> None:
    with ItemCatalog(tmp_path / "project.sqlite") as catalog:
        with pytest.raises(RuntimeError):
            with catalog.transaction():
                catalog.insert_items([Document(id="d1", name="x", content_path="x.md")])
                raise RuntimeError("abort")

        assert catalog.list_items() == []


def test_versions_are_listed_oldest_first(tmp_path: Path) -> None:
    older = Version(
        id="v1",
        document_id="d1",
        project_id="abc123",
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
        content_path="/snap/1.md",
    )
    newer = older.model_copy(
        update={"id": "v2", "timestamp": datetime(2024, 2, 1, tzinfo=timezone.utc)}
    )

    with ItemCatalog(tmp_path / "project.sqlite") as catalog:
        catalog.insert_version(newer)
        catalog.insert_version(older)

        assert [version.id for version in catalog.list_versions("d1")] == ["v1", "v2"]
        assert catalog.list_versions("other") == []
        assert catalog.update_version_description("v1", "first draft")
        assert catalog.get_version("v1").description == "first draft"  # type: ignore[union-attr]
        assert catalog.update_version_description("missing", "x") is False


def test_closed_catalog_raises_catalog_error(tmp_path: Path) -> None:
    catalog = ItemCatalog(tmp_path / "project.sqlite")
    catalog.close()

    with pytest.raises(CatalogError):
        catalog.list_items()


def test_unopenable_database_raises_catalog_error(tmp_path: Path) -> None:
    target = tmp_path / "directory.sqlite"
    target.mkdir()

    with pytest.raises(CatalogError):
        ItemCatalog(target)


def test_catalog_uses_configured_journal_mode(tmp_path: Path) -> None:
    with ProjectCatalog(tmp_path / "main.sqlite") as catalog:
        mode = catalog.connection.execute("PRAGMA journal_mode").fetchone()[0]

    assert mode.lower() == "wal"
    assert isinstance(catalog.path, Path)
