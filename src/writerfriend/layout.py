"""Path conventions for the projects root and each project directory."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from writerfriend.config.models import PathSettings


@dataclass(frozen=True, slots=True)
class ProjectLayout:
    """Resolve on-disk locations from the configured path settings.

    Attributes:
        settings: Path section of the configuration.
        projects_root: Absolute directory whose children are project directories.
    """

    settings: PathSettings
    projects_root: Path

    @classmethod
    def from_settings(cls, settings: PathSettings, projects_root: Path | None = None) -> "ProjectLayout":
        root = projects_root if projects_root is not None else Path(settings.projects_root)
        return cls(settings=settings, projects_root=root.expanduser().resolve())

    @property
    def main_database(self) -> Path:
        return self.projects_root / self.settings.main_database

    def project_dir(self, name: str) -> Path:
        return self.projects_root / name

    def metadata_path(self, project_dir: Path) -> Path:
        return project_dir / self.settings.metadata_filename

    def manuscript_dir(self, project_dir: Path) -> Path:
        return project_dir / self.settings.manuscript_dirname

    def project_database(self, project_dir: Path) -> Path:
        return project_dir / self.settings.project_database

    def versions_dir(self, project_dir: Path) -> Path:
        return project_dir / self.settings.versions_dirname

    def timelines_dir(self, project_dir: Path) -> Path:
        return project_dir / self.settings.timelines_dirname

    def skeleton(self, project_dir: Path) -> list[Path]:
        """Return the directories every project must contain, manuscript first."""
        names = [self.settings.manuscript_dirname, *self.settings.skeleton_dirs]
        return [project_dir / name for name in dict.fromkeys(names)]


__all__ = ["ProjectLayout"]
