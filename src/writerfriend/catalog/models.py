"""Catalog record models for projects, items, and versions."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class Project(BaseModel):
    """A writing project backed by one directory under the projects root.

    Attributes:
        id: Six-character identifier copied from the project's metadata file.
        name: Display name.
        author_name: Author shown for the project.
        created_date: When the catalog first saw the project.
        path: Absolute path of the project directory.
        description: Optional free-form description.
    """

    id: str
    name: str
    author_name: str
    created_date: datetime = Field(default_factory=utcnow)
    path: str
    description: Optional[str] = None


class ItemBase(BaseModel):
    """Fields shared by folders and documents."""

    id: str
    name: str
    parent_id: Optional[str] = None
    order: int = Field(default=0, ge=0)
    created_date: datetime = Field(default_factory=utcnow)
    modified_date: datetime = Field(default_factory=utcnow)
    description: Optional[str] = None
    color: Optional[str] = None
    beats: List[Dict[str, Any]] = Field(default_factory=list)

    @property
    def path_key(self) -> Optional[str]:
        """Return the manuscript-relative POSIX path used to match the filesystem."""
        raise NotImplementedError


class Folder(ItemBase):
    """A directory in the manuscript tree.

    Attributes:
        relative_path: POSIX path of the directory relative to the manuscript root.
    """

    type: Literal["folder"] = "folder"
    relative_path: Optional[str] = None

    @property
    def path_key(self) -> Optional[str]:
        return self.relative_path


class Document(ItemBase):
    """A content file in the manuscript tree.

    Attributes:
        content_path: POSIX path of the file relative to the manuscript root.
    """

    type: Literal["document"] = "document"
    content_path: Optional[str] = None

    @property
    def path_key(self) -> Optional[str]:
        return self.content_path


Item = Annotated[Union[Folder, Document], Field(discriminator="type")]
ITEM_ADAPTER: TypeAdapter[Folder | Document] = TypeAdapter(Item)


class Version(BaseModel):
    """An immutable point-in-time copy of a document's content.

    Attributes:
        id: Version identifier.
        document_id: Document the snapshot was taken from.
        project_id: Project owning the document.
        timestamp: When the snapshot was taken.
        content_path: Absolute path of the snapshot file.
        description: The only field that may change after creation.
        color: Optional display color.
    """

    id: str
    document_id: str
    project_id: str
    timestamp: datetime = Field(default_factory=utcnow)
    content_path: str
    description: Optional[str] = None
    color: Optional[str] = None


__all__ = [
    "Project",
    "ItemBase",
    "Folder",
    "Document",
    "Item",
    "ITEM_ADAPTER",
    "Version",
    "utcnow",
]
