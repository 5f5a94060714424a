"""Project-level reconciliation tests."""

from __future__ import annotations

import json
import logging
import os
import shutil
from pathlib import Path

import pytest

from writerfriend.catalog import Document, ItemCatalog, ProjectCatalog
from writerfriend.config.models import PathSettings
from writerfriend.errors import CatalogError, FilesystemUnavailableError
from writerfriend.layout import ProjectLayout
from writerfriend.lifecycle import ProjectLifecycle
from writerfriend.metadata import MetadataRepository
from writerfriend.sync import ProjectReconciler


@pytest.fixture()
def projects_root(tmp_path: Path) -> Path:
    root = tmp_path / "WriterFriend"
    root.mkdir()
    return root


@pytest.fixture()
def catalog(projects_root: Path):
    store = ProjectCatalog(projects_root / "main_database.sqlite")
    yield store
    store.close()


def _reconciler(catalog: ProjectCatalog, projects_root: Path) -> ProjectReconciler:
    layout = ProjectLayout.from_settings(PathSettings(), projects_root)
    metadata = MetadataRepository()
    return ProjectReconciler(catalog, metadata, ProjectLifecycle(catalog, layout, metadata))


def _write_metadata(directory: Path, payload: dict[str, str]) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "metadata.json").write_text(json.dumps(payload), encoding="utf-8")


def _snapshot(catalog: ProjectCatalog) -> list[dict[str, object]]:
    return [project.model_dump() for project in catalog.list()]


def test_empty_metadata_is_backfilled_and_adopted(
    projects_root: Path, catalog: ProjectCatalog
) -> None:
    book = projects_root / "BookOne"
    _write_metadata(book, {})

    report = _reconciler(catalog, projects_root).reconcile(projects_root)

    on_disk = json.loads((book / "metadata.json").read_text(encoding="utf-8"))
    assert on_disk["Name"] == "BookOne"
    assert on_disk["Author Name"] == "Author"
    assert on_disk["Description"] == "No description available"
    assert len(on_disk["ID"]) == 6

    projects = catalog.list()
    assert len(projects) == 1
    assert projects[0].id == on_disk["ID"]
    assert projects[0].name == "BookOne"
    assert projects[0].path == str(book)
    assert report.created == [on_disk["ID"]]
    assert report.healed == [str(book)]


def test_adoption_creates_skeleton_and_item_catalog(
    projects_root: Path, catalog: ProjectCatalog
) -> None:
    book = projects_root / "BookOne"
    _write_metadata(book, {"Name": "Book", "ID": "abc123"})

    _reconciler(catalog, projects_root).reconcile(projects_root)

    assert (book / "manuscript").is_dir()
    assert (book / "project_database.sqlite").exists()
    with ItemCatalog(book / "project_database.sqlite") as items:
        assert items.list_items() == []


def test_reconciliation_is_idempotent(projects_root: Path, catalog: ProjectCatalog) -> None:
    _write_metadata(projects_root / "BookOne", {})
    _write_metadata(projects_root / "BookTwo", {"Name": "Second", "ID": "bbb222"})
    reconciler = _reconciler(catalog, projects_root)

    reconciler.reconcile(projects_root)
    first = _snapshot(catalog)
    metadata_before = (projects_root / "BookOne" / "metadata.json").read_text(encoding="utf-8")
    report = reconciler.reconcile(projects_root)

    assert _snapshot(catalog) == first
    assert not report.changed
    assert report.healed == []
    assert (projects_root / "BookOne" / "metadata.json").read_text(encoding="utf-8") == metadata_before


def test_renamed_directory_keeps_id_and_items(projects_root: Path, catalog: ProjectCatalog) -> None:
    book = projects_root / "BookOne"
    _write_metadata(book, {"Name": "BookOne", "ID": "abc123"})
    reconciler = _reconciler(catalog, projects_root)
    reconciler.reconcile(projects_root)
    (book / "manuscript" / "ch1.md").write_text("chapter", encoding="utf-8")
    with ItemCatalog(book / "project_database.sqlite") as items:
        items.insert_items([Document(id="doc1", name="ch1", content_path="ch1.md", order=1)])

    renamed = projects_root / "Renamed"
    book.rename(renamed)
    _write_metadata(renamed, {"Name": "Renamed Book", "ID": "abc123"})
    report = reconciler.reconcile(projects_root)

    project = catalog.get("abc123")
    assert project is not None
    assert project.path == str(renamed)
    assert project.name == "Renamed Book"
    assert [p.id for p in catalog.list()] == ["abc123"]
    assert report.updated == ["abc123"]
    with ItemCatalog(renamed / "project_database.sqlite") as items:
        assert [item.id for item in items.list_items()] == ["doc1"]


def test_removed_directory_deletes_the_row(projects_root: Path, catalog: ProjectCatalog) -> None:
    _write_metadata(projects_root / "BookOne", {"Name": "BookOne", "ID": "abc123"})
    reconciler = _reconciler(catalog, projects_root)
    reconciler.reconcile(projects_root)

    shutil.rmtree(projects_root / "BookOne")
    report = reconciler.reconcile(projects_root)

    assert catalog.list() == []
    assert report.deleted == ["abc123"]


def test_directories_without_metadata_are_ignored(
    projects_root: Path, catalog: ProjectCatalog
) -> None:
    (projects_root / "assets-dump").mkdir()
    (projects_root / ".cache").mkdir()

    report = _reconciler(catalog, projects_root).reconcile(projects_root)

    assert catalog.list() == []
    assert not report.changed
    assert not (projects_root / "assets-dump" / "metadata.json").exists()


def test_corrupt_metadata_is_skipped_and_row_kept(
    projects_root: Path, catalog: ProjectCatalog
) -> None:
    broken = projects_root / "Broken"
    _write_metadata(broken, {"Name": "Broken", "ID": "brk001"})
    _write_metadata(projects_root / "Fine", {"Name": "Fine", "ID": "fin001"})
    reconciler = _reconciler(catalog, projects_root)
    reconciler.reconcile(projects_root)

    (broken / "metadata.json").write_text("{oops", encoding="utf-8")
    report = reconciler.reconcile(projects_root)

    assert {project.id for project in catalog.list()} == {"brk001", "fin001"}
    assert [entry.path for entry in report.skipped] == [str(broken)]
    assert (broken / "metadata.json").read_text(encoding="utf-8") == "{oops"


def test_copied_directory_with_duplicate_id_is_skipped(
    projects_root: Path, catalog: ProjectCatalog
) -> None:
    original = projects_root / "Book"
    _write_metadata(original, {"Name": "Book", "ID": "abc123"})
    reconciler = _reconciler(catalog, projects_root)
    reconciler.reconcile(projects_root)

    shutil.copytree(original, projects_root / "Book copy")
    report = reconciler.reconcile(projects_root)

    project = catalog.get("abc123")
    assert project is not None and project.path == str(original)
    assert [entry.path for entry in report.skipped] == [str(projects_root / "Book copy")]
    assert not report.changed


def test_tombstone_restores_an_interrupted_delete(
    projects_root: Path, catalog: ProjectCatalog
) -> None:
    _write_metadata(projects_root / "Book", {"Name": "Book", "ID": "abc123"})
    reconciler = _reconciler(catalog, projects_root)
    reconciler.reconcile(projects_root)
    original = catalog.get("abc123")
    assert original is not None

    # Simulate a delete that wrote the tombstone and removed the row but not the directory.
    catalog.add_tombstone(original)
    catalog.delete("abc123")
    report = reconciler.reconcile(projects_root)

    restored = catalog.get("abc123")
    assert restored is not None
    assert restored.created_date == original.created_date
    assert report.restored == ["abc123"]
    assert catalog.get_tombstone("abc123") is None


def test_missing_projects_root_raises(tmp_path: Path) -> None:
    with ProjectCatalog(tmp_path / "main.sqlite") as store:
        with pytest.raises(FilesystemUnavailableError):
            _reconciler(store, tmp_path / "missing").reconcile(tmp_path / "missing")


def test_non_utf8_metadata_skips_only_that_directory(
    projects_root: Path, catalog: ProjectCatalog
) -> None:
    _write_metadata(projects_root / "Good", {})
    bad = projects_root / "Bad"
    bad.mkdir()
    (bad / "metadata.json").write_bytes(b'{"Name": "\xff\xfe"}')

    report = _reconciler(catalog, projects_root).reconcile(projects_root)

    assert [project.name for project in catalog.list()] == ["Good"]
    assert [entry.path for entry in report.skipped] == [str(bad)]
    assert (bad / "metadata.json").read_bytes() == b'{"Name": "\xff\xfe"}'


def test_undecodable_directory_name_is_skipped(
    projects_root: Path, catalog: ProjectCatalog
) -> None:
    odd = projects_root / os.fsdecode(b"Draft\xff")
    try:
        odd.mkdir()
    except (OSError, UnicodeEncodeError):
        pytest.skip("filesystem rejects names that are not valid UTF-8")
    _write_metadata(odd, {"Name": "Draft", "ID": "odd001"})
    _write_metadata(projects_root / "Fine", {"Name": "Fine", "ID": "fin001"})

    report = _reconciler(catalog, projects_root).reconcile(projects_root)

    assert [project.id for project in catalog.list()] == ["fin001"]
    assert len(report.skipped) == 1
    assert report.skipped[0].path.endswith("Draft\\xff")
    assert "UTF-8" in report.skipped[0].reason


def test_removed_directory_also_drops_its_tombstone(
    projects_root: Path, catalog: ProjectCatalog
) -> None:
    _write_metadata(projects_root / "Book", {"Name": "Book", "ID": "abc123"})
    reconciler = _reconciler(catalog, projects_root)
    reconciler.reconcile(projects_root)
    project = catalog.get("abc123")
    assert project is not None

    # A delete that stopped after the directory went away but before the row did.
    catalog.add_tombstone(project)
    shutil.rmtree(projects_root / "Book")
    report = reconciler.reconcile(projects_root)

    assert report.deleted == ["abc123"]
    assert catalog.get_tombstone("abc123") is None


def test_abandoned_pass_is_logged(
    projects_root: Path,
    catalog: ProjectCatalog,
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
) -> None:
    _write_metadata(projects_root / "Book", {"Name": "Book", "ID": "abc123"})

    def _broken() -> list[object]:
        raise CatalogError("database is locked")

    monkeypatch.setattr(catalog, "list", _broken)

    with caplog.at_level(logging.ERROR, logger="writerfriend.sync.projects"):
        with pytest.raises(CatalogError):
            _reconciler(catalog, projects_root).reconcile(projects_root)

    assert any(
        record.levelno == logging.ERROR and "abandoned" in record.getMessage()
        for record in caplog.records
    )
