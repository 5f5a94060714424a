"""Per-project timeline graphs stored as JSON files.

A timeline is a named file ``<project>/timelines/<name>.json`` holding a graph
of ``nodes`` and ``edges``. Timelines are not catalogued; the directory
listing is the source of truth.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from writerfriend.errors import (
    CorruptTimelineError,
    FilesystemUnavailableError,
    TimelineExistsError,
    TimelineNotFoundError,
)
from writerfriend.fileio import write_text_atomic
from writerfriend.items import validate_name
from writerfriend.layout import ProjectLayout
from writerfriend.scanning import is_utf8_name

LOGGER = logging.getLogger(__name__)

TIMELINE_SUFFIX = ".json"


class Timeline(BaseModel):
    """Graph stored in a timeline file.

    Keys other than ``nodes`` and ``edges`` are kept and written back unchanged.
    """

    model_config = ConfigDict(extra="allow")

    nodes: List[Dict[str, Any]] = Field(default_factory=list)
    edges: List[Dict[str, Any]] = Field(default_factory=list)


class TimelineSummary(BaseModel):
    """Listing entry for one timeline file."""

    name: str
    modified_date: datetime


class TimelineManager:
    """Create, list, read, save, and delete the timelines of a project directory."""

    def __init__(self, layout: ProjectLayout) -> None:
        self._layout = layout

    def list(self, project_dir: Path) -> list[TimelineSummary]:
        """Return the project's timelines sorted by name.

        A project without a timelines directory has no timelines.

        Raises:
            FilesystemUnavailableError: If the directory exists but cannot be listed.
        """
        directory = self._layout.timelines_dir(project_dir)
        try:
            candidates = sorted(directory.iterdir())
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise FilesystemUnavailableError(directory, exc) from exc

        summaries: list[TimelineSummary] = []
        for path in candidates:
            if path.suffix != TIMELINE_SUFFIX or path.name.startswith("."):
                continue
            if not is_utf8_name(path.name):
                LOGGER.warning("Ignoring timeline file with an undecodable name in %s", directory)
                continue
            try:
                stat = path.stat()
            except OSError as exc:
                LOGGER.warning("Skipping unreadable timeline %s: %s", path, exc)
                continue
            summaries.append(
                TimelineSummary(
                    name=path.stem,
                    modified_date=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                )
            )
        return summaries

    def create(self, project_dir: Path, name: str) -> Timeline:
        """Write an empty graph to a new timeline file.

        Raises:
            ValueError: If ``name`` is blank or not a valid file name.
            TimelineExistsError: If a timeline with this name already exists.
            FilesystemUnavailableError: If the file cannot be written.
        """
        name = validate_name(name)
        path = self._path(project_dir, name)
        if path.exists():
            raise TimelineExistsError(f"A timeline named {name!r} already exists")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemUnavailableError(path.parent, exc) from exc

        timeline = Timeline()
        self._write(path, timeline)
        LOGGER.info("Created timeline %s at %s", name, path)
        return timeline

    def read(self, project_dir: Path, name: str) -> Timeline:
        """Load the graph stored in timeline ``name``.

        Raises:
            TimelineNotFoundError: If no such timeline exists.
            CorruptTimelineError: If the file is not a JSON object with list
                ``nodes`` and ``edges``.
            FilesystemUnavailableError: If the file cannot be read.
        """
        path = self._path(project_dir, validate_name(name))
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise TimelineNotFoundError(name) from exc
        except UnicodeDecodeError as exc:
            raise CorruptTimelineError(path, f"not valid UTF-8 ({exc.reason})") from exc
        except OSError as exc:
            raise FilesystemUnavailableError(path, exc) from exc

        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise CorruptTimelineError(path, str(exc)) from exc
        if not isinstance(data, dict):
            raise CorruptTimelineError(path, "top-level value must be a JSON object")
        try:
            return Timeline.model_validate(data)
        except ValidationError as exc:
            raise CorruptTimelineError(path, str(exc)) from exc

    def save(
        self,
        project_dir: Path,
        name: str,
        nodes: List[Dict[str, Any]],
        edges: List[Dict[str, Any]],
    ) -> Timeline:
        """Replace the nodes and edges of an existing timeline.

        Raises:
            TimelineNotFoundError: If no such timeline exists.
            CorruptTimelineError: If the stored file cannot be parsed.
            ValueError: If ``nodes`` or ``edges`` are not lists of objects.
            FilesystemUnavailableError: If the file cannot be written.
        """
        current = self.read(project_dir, name)
        updated = Timeline.model_validate({**current.model_dump(), "nodes": nodes, "edges": edges})
        self._write(self._path(project_dir, validate_name(name)), updated)
        LOGGER.info(
            "Saved timeline %s (%d nodes, %d edges)", name, len(updated.nodes), len(updated.edges)
        )
        return updated

    def delete(self, project_dir: Path, name: str) -> None:
        """Remove timeline ``name``.

        Raises:
            TimelineNotFoundError: If no such timeline exists.
            FilesystemUnavailableError: If the file cannot be removed.
        """
        path = self._path(project_dir, validate_name(name))
        try:
            path.unlink()
        except FileNotFoundError as exc:
            raise TimelineNotFoundError(name) from exc
        except OSError as exc:
            raise FilesystemUnavailableError(path, exc) from exc
        LOGGER.info("Deleted timeline %s", path)

    def _path(self, project_dir: Path, name: str) -> Path:
        return self._layout.timelines_dir(project_dir) / f"{name}{TIMELINE_SUFFIX}"

    def _write(self, path: Path, timeline: Timeline) -> None:
        write_text_atomic(path, json.dumps(timeline.model_dump(), indent=2, ensure_ascii=False))


__all__ = ["Timeline", "TimelineManager", "TimelineSummary", "TIMELINE_SUFFIX"]
