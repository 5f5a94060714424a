"""Sidecar metadata descriptor model."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_AUTHOR = "Author"
DEFAULT_DESCRIPTION = "No description available"


class MetadataDescriptor(BaseModel):
    """Identity and display fields stored in a project's ``metadata.json``.

    Field aliases match the on-disk keys. Unknown keys such as ``coverImage``
    are kept so rewriting the file never drops data written by other tools.

    Attributes:
        name: Display name of the project.
        author_name: Author shown for the project.
        id: Immutable project identifier joining the directory to its catalog row.
        description: Free-form project description.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: Optional[str] = Field(default=None, alias="Name")
    author_name: Optional[str] = Field(default=None, alias="Author Name")
    id: Optional[str] = Field(default=None, alias="ID")
    description: Optional[str] = Field(default=None, alias="Description")

    def to_file_payload(self) -> dict[str, object]:
        """Return the mapping written to disk, always carrying all four fields."""
        return self.model_dump(mode="json", by_alias=True)


__all__ = ["MetadataDescriptor", "DEFAULT_AUTHOR", "DEFAULT_DESCRIPTION"]
