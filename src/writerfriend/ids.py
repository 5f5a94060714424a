"""Identifier generation for projects, items, and versions.

Item and version identifiers are 12 characters drawn from ``secrets``; the
collision probability is negligible at catalog sizes a single writer produces.

Project identifiers are only 6 characters long to stay compatible with the
persisted ``metadata.json`` format. That space holds roughly 2.2 billion
values, so collisions remain unlikely but are not detected anywhere; a
collision makes two project directories share one catalog row. This is a known
weakness that is accepted rather than checked.
"""

from __future__ import annotations

import secrets
import string

ITEM_ID_LENGTH = 12
PROJECT_ID_LENGTH = 6

_ALPHABET = string.ascii_lowercase + string.digits


def _token(length: int) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def new_item_id() -> str:
    """Return a fresh identifier for a folder, document, or version."""
    return _token(ITEM_ID_LENGTH)


def new_project_id() -> str:
    """Return a fresh 6-character project identifier."""
    return _token(PROJECT_ID_LENGTH)


__all__ = ["ITEM_ID_LENGTH", "PROJECT_ID_LENGTH", "new_item_id", "new_project_id"]
