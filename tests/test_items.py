"""Structural item mutation tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from writerfriend.catalog import Document, Folder
from writerfriend.errors import ItemConflictError, ItemNotFoundError
from writerfriend.workspace import Workspace


def _workspace(tmp_path: Path) -> tuple[Workspace, str, Path]:
    workspace = Workspace(projects_root=tmp_path / "projects")
    project = workspace.create_project("Novel")
    return workspace, project.id, Path(project.path) / "manuscript"


def _orders(items: list[Folder | Document], parent_id: str | None) -> list[tuple[str, int]]:
    siblings = sorted((item for item in items if item.parent_id == parent_id), key=lambda i: i.order)
    return [(item.name, item.order) for item in siblings]


def test_create_folder_and_document_write_disk_first(tmp_path: Path) -> None:
    workspace, project_id, manuscript = _workspace(tmp_path)

    with workspace, workspace.items(project_id) as editor:
        part = editor.create_folder("Part 1")
        chapter = editor.create_document("Chapter", part.id, b"Once upon a time")
        prologue = editor.create_document("Prologue")

        assert (manuscript / "Part 1").is_dir()
        assert (manuscript / "Part 1" / "Chapter.md").read_bytes() == b"Once upon a time"
        assert (manuscript / "Prologue.md").exists()
        assert isinstance(part, Folder) and part.relative_path == "Part 1"
        assert isinstance(chapter, Document) and chapter.content_path == "Part 1/Chapter.md"
        assert chapter.parent_id == part.id
        assert _orders(editor.catalog.list_items(), None) == [("Part 1", 1), ("Prologue", 2)]


def test_created_items_survive_reconciliation_unchanged(tmp_path: Path) -> None:
    workspace, project_id, _ = _workspace(tmp_path)

    with workspace:
        with workspace.items(project_id) as editor:
            part = editor.create_folder("Part 1")
            editor.create_document("Chapter", part.id)
        before = workspace.list_items(project_id)
        report = workspace.open_project(project_id)

        assert report.created == report.deleted == report.updated == []
        assert workspace.list_items(project_id) == before


def test_duplicate_folder_name_is_rejected(tmp_path: Path) -> None:
    workspace, project_id, _ = _workspace(tmp_path)

    with workspace, workspace.items(project_id) as editor:
        editor.create_folder("Part")
        with pytest.raises(ItemConflictError):
            editor.create_folder("Part")


def test_duplicate_document_name_gets_a_suffix(tmp_path: Path) -> None:
    workspace, project_id, manuscript = _workspace(tmp_path)

    with workspace, workspace.items(project_id) as editor:
        editor.create_document("Chapter")
        second = editor.create_document("Chapter")

        assert isinstance(second, Document)
        assert second.content_path == "Chapter-1.md"
        assert second.name == "Chapter-1"
        assert (manuscript / "Chapter-1.md").exists()


@pytest.mark.parametrize("name", ["", "  ", "a/b", "..", ".hidden"])
def test_invalid_names_are_rejected(tmp_path: Path, name: str) -> None:
    workspace, project_id, _ = _workspace(tmp_path)

    with workspace, workspace.items(project_id) as editor:
        with pytest.raises(ValueError):
            editor.create_folder(name)


def test_rename_folder_rewrites_descendant_paths(tmp_path: Path) -> None:
    workspace, project_id, manuscript = _workspace(tmp_path)

    with workspace, workspace.items(project_id) as editor:
        part = editor.create_folder("Part")
        act = editor.create_folder("Act", part.id)
        scene = editor.create_document("Scene", act.id, b"x")

        renamed = editor.rename_item(part.id, "Book")

        assert renamed.name == "Book"
        assert (manuscript / "Book" / "Act" / "Scene.md").exists()
        assert not (manuscript / "Part").exists()
        moved_scene = editor.catalog.get_item(scene.id)
        assert isinstance(moved_scene, Document)
        assert moved_scene.content_path == "Book/Act/Scene.md"
        moved_act = editor.catalog.get_item(act.id)
        assert isinstance(moved_act, Folder) and moved_act.relative_path == "Book/Act"


def test_rename_document_keeps_extension(tmp_path: Path) -> None:
    workspace, project_id, manuscript = _workspace(tmp_path)

    with workspace, workspace.items(project_id) as editor:
        document = editor.create_document("Draft")
        renamed = editor.rename_item(document.id, "Final")

        assert isinstance(renamed, Document)
        assert renamed.content_path == "Final.md"
        assert (manuscript / "Final.md").exists()


def test_move_appends_to_new_parent_and_repairs_old_group(tmp_path: Path) -> None:
    workspace, project_id, manuscript = _workspace(tmp_path)

    with workspace, workspace.items(project_id) as editor:
        part = editor.create_folder("Part")
        editor.create_document("Existing", part.id)
        loose = editor.create_document("Loose")
        editor.create_document("Other")

        moved = editor.move_item(loose.id, part.id)

        assert moved.parent_id == part.id
        assert isinstance(moved, Document) and moved.content_path == "Part/Loose.md"
        assert (manuscript / "Part" / "Loose.md").exists()
        items = editor.catalog.list_items()
        assert _orders(items, part.id) == [("Existing", 1), ("Loose", 2)]
        assert _orders(items, None) == [("Part", 1), ("Other", 2)]


def test_move_folder_into_its_descendant_is_rejected(tmp_path: Path) -> None:
    workspace, project_id, _ = _workspace(tmp_path)

    with workspace, workspace.items(project_id) as editor:
        part = editor.create_folder("Part")
        act = editor.create_folder("Act", part.id)

        with pytest.raises(ValueError):
            editor.move_item(part.id, act.id)
        with pytest.raises(ValueError):
            editor.move_item(part.id, part.id)


def test_reorder_moves_item_to_target_position(tmp_path: Path) -> None:
    workspace, project_id, _ = _workspace(tmp_path)

    with workspace, workspace.items(project_id) as editor:
        first = editor.create_document("One")
        editor.create_document("Two")
        third = editor.create_document("Three")

        siblings = editor.reorder_item(third.id, first.id)
        assert [item.name for item in siblings] == ["Three", "One", "Two"]

        siblings = editor.reorder_item(third.id, siblings[-1].id)
        assert [item.name for item in siblings] == ["One", "Two", "Three"]
        assert [item.order for item in siblings] == [1, 2, 3]


def test_reorder_requires_shared_parent(tmp_path: Path) -> None:
    workspace, project_id, _ = _workspace(tmp_path)

    with workspace, workspace.items(project_id) as editor:
        part = editor.create_folder("Part")
        inner = editor.create_document("Inner", part.id)
        outer = editor.create_document("Outer")

        with pytest.raises(ValueError):
            editor.reorder_item(inner.id, outer.id)


def test_delete_folder_removes_subtree(tmp_path: Path) -> None:
    workspace, project_id, manuscript = _workspace(tmp_path)

    with workspace, workspace.items(project_id) as editor:
        part = editor.create_folder("Part")
        act = editor.create_folder("Act", part.id)
        scene = editor.create_document("Scene", act.id)
        keep = editor.create_document("Keep")

        deleted = editor.delete_item(part.id)

        assert set(deleted) == {part.id, act.id, scene.id}
        assert not (manuscript / "Part").exists()
        remaining = editor.catalog.list_items()
        assert [item.id for item in remaining] == [keep.id]
        assert remaining[0].order == 1


def test_annotations_and_content(tmp_path: Path) -> None:
    workspace, project_id, _ = _workspace(tmp_path)

    with workspace, workspace.items(project_id) as editor:
        document = editor.create_document("Chapter", content=b"v1")

        beats = editor.update_beats(document.id, [{"text": "Inciting incident"}])
        described = editor.update_description(document.id, "Opening chapter")
        colored = editor.update_color(document.id, "#ff0000")
        written = editor.write_content(document.id, b"v2")

        assert beats.beats == [{"text": "Inciting incident"}]
        assert described.description == "Opening chapter"
        assert colored.color == "#ff0000"
        assert written.modified_date >= document.modified_date
        assert editor.read_content(document.id) == b"v2"


def test_unknown_items_raise_not_found(tmp_path: Path) -> None:
    workspace, project_id, _ = _workspace(tmp_path)

    with workspace, workspace.items(project_id) as editor:
        folder = editor.create_folder("Part")
        with pytest.raises(ItemNotFoundError):
            editor.rename_item("missing", "x")
        with pytest.raises(ItemNotFoundError):
            editor.create_document("x", parent_id="missing")
        with pytest.raises(ItemNotFoundError):
            editor.read_content(folder.id)
