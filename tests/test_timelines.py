"""Timeline file tests."""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from writerfriend.config.models import PathSettings
from writerfriend.errors import (
    CorruptTimelineError,
    ProjectNotFoundError,
    TimelineExistsError,
    TimelineNotFoundError,
)
from writerfriend.layout import ProjectLayout
from writerfriend.timelines import TimelineManager
from writerfriend.workspace import Workspace

NODES = [{"id": "n1", "position": {"x": 0, "y": 0}, "data": {"label": "Inciting incident"}}]
EDGES = [{"id": "e1", "source": "n1", "target": "n2"}]


@pytest.fixture()
def project_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "Novel"
    directory.mkdir()
    return directory


@pytest.fixture()
def manager(tmp_path: Path) -> TimelineManager:
    return TimelineManager(ProjectLayout.from_settings(PathSettings(), tmp_path))


def test_create_writes_an_empty_graph_with_two_space_indent(
    manager: TimelineManager, project_dir: Path
) -> None:
    timeline = manager.create(project_dir, "Main plot")

    path = project_dir / "timelines" / "Main plot.json"
    assert timeline.nodes == [] and timeline.edges == []
    assert path.read_text(encoding="utf-8") == '{\n  "nodes": [],\n  "edges": []\n}'
    assert sorted(p.name for p in path.parent.iterdir()) == ["Main plot.json"]


def test_create_refuses_an_existing_name(manager: TimelineManager, project_dir: Path) -> None:
    manager.create(project_dir, "Main plot")

    with pytest.raises(TimelineExistsError):
        manager.create(project_dir, " Main plot ")


@pytest.mark.parametrize("name", ["", "   ", "../escape", ".hidden", "a/b", os.fsdecode(b"bad\xff")])
def test_invalid_names_are_rejected(
    manager: TimelineManager, project_dir: Path, name: str
) -> None:
    with pytest.raises(ValueError):
        manager.create(project_dir, name)


def test_list_without_directory_is_empty(manager: TimelineManager, project_dir: Path) -> None:
    assert manager.list(project_dir) == []


def test_list_returns_names_and_modified_dates(
    manager: TimelineManager, project_dir: Path
) -> None:
    manager.create(project_dir, "Subplot")
    manager.create(project_dir, "Main plot")
    (project_dir / "timelines" / "notes.txt").write_text("ignored", encoding="utf-8")

    listed = manager.list(project_dir)

    assert [summary.name for summary in listed] == ["Main plot", "Subplot"]
    assert all(summary.modified_date.tzinfo is not None for summary in listed)


def test_save_replaces_graph_and_keeps_other_keys(
    manager: TimelineManager, project_dir: Path
) -> None:
    manager.create(project_dir, "Main plot")
    path = project_dir / "timelines" / "Main plot.json"
    path.write_text(json.dumps({"nodes": [], "edges": [], "viewport": {"zoom": 2}}), encoding="utf-8")

    saved = manager.save(project_dir, "Main plot", NODES, EDGES)

    assert saved.nodes == NODES
    on_disk = json.loads(path.read_text(encoding="utf-8"))
    assert on_disk == {"nodes": NODES, "edges": EDGES, "viewport": {"zoom": 2}}
    assert manager.read(project_dir, "Main plot").edges == EDGES


def test_save_rejects_non_object_nodes(manager: TimelineManager, project_dir: Path) -> None:
    manager.create(project_dir, "Main plot")

    with pytest.raises(ValueError):
        manager.save(project_dir, "Main plot", ["not an object"], [])  # type: ignore[list-item]

    assert manager.read(project_dir, "Main plot").nodes == []


def test_save_unknown_timeline_raises(manager: TimelineManager, project_dir: Path) -> None:
    with pytest.raises(TimelineNotFoundError):
        manager.save(project_dir, "Missing", NODES, EDGES)


@pytest.mark.parametrize("payload", [b"{oops", b"[1]", b'{"nodes": 3}', b"\xff\xfe"])
def test_read_rejects_corrupt_files(
    manager: TimelineManager, project_dir: Path, payload: bytes
) -> None:
    directory = project_dir / "timelines"
    directory.mkdir()
    (directory / "Broken.json").write_bytes(payload)

    with pytest.raises(CorruptTimelineError) as excinfo:
        manager.read(project_dir, "Broken")

    assert excinfo.value.path == directory / "Broken.json"


def test_delete_removes_the_file(manager: TimelineManager, project_dir: Path) -> None:
    manager.create(project_dir, "Main plot")

    manager.delete(project_dir, "Main plot")

    assert manager.list(project_dir) == []
    with pytest.raises(TimelineNotFoundError):
        manager.delete(project_dir, "Main plot")


def test_workspace_timelines_are_scoped_to_the_project(tmp_path: Path) -> None:
    with Workspace(projects_root=tmp_path / "projects") as workspace:
        first = workspace.create_project("First")
        second = workspace.create_project("Second")

        workspace.create_timeline(first.id, "Main plot")
        workspace.save_timeline(first.id, "Main plot", NODES, EDGES)

        assert [summary.name for summary in workspace.list_timelines(first.id)] == ["Main plot"]
        assert workspace.list_timelines(second.id) == []
        assert workspace.read_timeline(first.id, "Main plot").nodes == NODES
        assert (Path(first.path) / "timelines" / "Main plot.json").is_file()

        workspace.delete_timeline(first.id, "Main plot")
        assert workspace.list_timelines(first.id) == []

        with pytest.raises(ProjectNotFoundError):
            workspace.list_timelines("nope00")
