"""Relational catalog of projects, items, and versions."""

from .models import ITEM_ADAPTER, Document, Folder, Item, ItemBase, Project, Version, utcnow
from .store import ItemCatalog, ProjectCatalog, SQLiteStore

__all__ = [
    "Project",
    "ItemBase",
    "Folder",
    "Document",
    "Item",
    "ITEM_ADAPTER",
    "Version",
    "utcnow",
    "SQLiteStore",
    "ProjectCatalog",
    "ItemCatalog",
]
