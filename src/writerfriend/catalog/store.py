"""SQLite-backed catalog stores.

Two databases make up the catalog:

- the project catalog (``main_database.sqlite`` under the projects root) holds
  one row per project directory plus tombstones for deleted projects;
- each project directory holds its own item catalog
  (``project_database.sqlite``) with folder, document, and version rows, so
  deleting a project directory deletes its catalog with it.

Connections run with ``isolation_level=None``. Single statements autocommit;
multi-statement batches go through :meth:`SQLiteStore.transaction`, which
either commits every statement or rolls all of them back.
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence

from writerfriend.config.models import CatalogSettings
from writerfriend.errors import CatalogError, TransactionFailureError

from .models import ITEM_ADAPTER, Document, Folder, ItemBase, Project, Version, utcnow

_PROJECT_COLUMNS = ("id", "name", "author_name", "created_date", "path", "description")
_ITEM_FIELD_COLUMNS = {
    "name": "name",
    "parent_id": "parent_id",
    "order": '"order"',
    "modified_date": "modified_date",
    "description": "description",
    "color": "color",
    "beats": "beats_json",
    "content_path": "content_path",
    "relative_path": "relative_path",
}


class SQLiteStore:
    """Connection handling shared by both catalog stores."""

    def __init__(self, db_path: Path, settings: CatalogSettings | None = None) -> None:
        self._db_path = db_path
        self._settings = settings or CatalogSettings()
        self._conn: Optional[sqlite3.Connection] = None
        try:
            self._connect()
            self._init_schema()
        except sqlite3.Error as exc:
            self.close()
            raise CatalogError(f"Cannot open catalog {db_path}: {exc}") from exc

    @property
    def path(self) -> Path:
        """Return the database file path."""
        return self._db_path

    def _connect(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(
            str(self._db_path),
            isolation_level=None,
            check_same_thread=False,
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute(f"PRAGMA journal_mode={self._settings.journal_mode}")
        self._conn.execute(f"PRAGMA busy_timeout={int(self._settings.busy_timeout_ms)}")

    def _init_schema(self) -> None:
        raise NotImplementedError

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise CatalogError(f"Catalog {self._db_path} is closed")
        return self._conn

    def close(self) -> None:
        """Close the underlying connection; safe to call more than once."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Group statements into one all-or-nothing write.

        Nested use joins the enclosing transaction.

        Raises:
            TransactionFailureError: If any statement fails; every statement in
                the batch has been rolled back by the time this is raised.
        """
        conn = self.connection
        if conn.in_transaction:
            yield conn
            return

        try:
            conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as exc:
            raise TransactionFailureError(f"Cannot start transaction on {self._db_path}: {exc}") from exc

        try:
            yield conn
        except TransactionFailureError:
            conn.execute("ROLLBACK")
            raise
        except (sqlite3.Error, CatalogError) as exc:
            conn.execute("ROLLBACK")
            raise TransactionFailureError(
                f"Catalog batch on {self._db_path} rolled back: {exc}"
            ) from exc
        except BaseException:
            conn.execute("ROLLBACK")
            raise

        try:
            conn.execute("COMMIT")
        except sqlite3.Error as exc:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise TransactionFailureError(f"Commit failed on {self._db_path}: {exc}") from exc

    def _execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        try:
            return self.connection.execute(sql, params)
        except sqlite3.Error as exc:
            raise CatalogError(f"Catalog query failed on {self._db_path}: {exc}") from exc


class ProjectCatalog(SQLiteStore):
    """Catalog of all projects under a projects root."""

    def _init_schema(self) -> None:
        conn = self.connection
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS projects (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                author_name TEXT NOT NULL,
                created_date TEXT NOT NULL,
                path TEXT NOT NULL,
                description TEXT
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS tombstones (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                author_name TEXT NOT NULL,
                created_date TEXT NOT NULL,
                path TEXT NOT NULL,
                description TEXT,
                deleted_at TEXT NOT NULL
            )
            """
        )

    def list(self) -> list[Project]:
        """Return every project row in insertion order."""
        rows = self._execute("SELECT * FROM projects ORDER BY rowid").fetchall()
        return [_row_to_project(row) for row in rows]

    def get(self, project_id: str) -> Project | None:
        row = self._execute("SELECT * FROM projects WHERE id = ?", (project_id,)).fetchone()
        return _row_to_project(row) if row else None

    def get_by_path(self, path: Path | str) -> Project | None:
        row = self._execute("SELECT * FROM projects WHERE path = ?", (str(path),)).fetchone()
        return _row_to_project(row) if row else None

    def insert(self, project: Project) -> Project:
        """Insert ``project``, replacing any row that already has its id."""
        self._execute(
            f"INSERT OR REPLACE INTO projects ({', '.join(_PROJECT_COLUMNS)}) VALUES (?, ?, ?, ?, ?, ?)",
            _project_params(project),
        )
        return project

    def update(self, project: Project) -> bool:
        """Overwrite the mutable fields of an existing row.

        Returns:
            bool: True if a row with the project's id existed.
        """
        cursor = self._execute(
            """
            UPDATE projects
            SET name = ?, author_name = ?, path = ?, description = ?
            WHERE id = ?
            """,
            (project.name, project.author_name, project.path, project.description, project.id),
        )
        return cursor.rowcount > 0

    def delete(self, project_id: str) -> bool:
        cursor = self._execute("DELETE FROM projects WHERE id = ?", (project_id,))
        return cursor.rowcount > 0

    def delete_many(self, project_ids: Iterable[str]) -> int:
        """Delete several rows in one transaction and return how many went away.

        Tombstones for the same ids are dropped too; once a row is gone for
        good there is no interrupted delete left to recognize.
        """
        ids = list(project_ids)
        if not ids:
            return 0
        params = [(pid,) for pid in ids]
        with self.transaction() as conn:
            cursor = conn.executemany("DELETE FROM projects WHERE id = ?", params)
            deleted = cursor.rowcount
            conn.executemany("DELETE FROM tombstones WHERE id = ?", params)
        return deleted

    def add_tombstone(self, project: Project) -> None:
        """Remember a project being deleted so an interrupted delete can be recognized."""
        self._execute(
            """
            INSERT OR REPLACE INTO tombstones
            (id, name, author_name, created_date, path, description, deleted_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (*_project_params(project), utcnow().isoformat()),
        )

    def get_tombstone(self, project_id: str) -> Project | None:
        row = self._execute("SELECT * FROM tombstones WHERE id = ?", (project_id,)).fetchone()
        return _row_to_project(row) if row else None

    def pop_tombstone(self, project_id: str) -> Project | None:
        """Remove and return the tombstone for ``project_id`` if one exists."""
        project = self.get_tombstone(project_id)
        if project is not None:
            self._execute("DELETE FROM tombstones WHERE id = ?", (project_id,))
        return project


class ItemCatalog(SQLiteStore):
    """Per-project catalog of folders, documents, and versions."""

    def _init_schema(self) -> None:
        conn = self.connection
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS items (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                type TEXT NOT NULL CHECK (type IN ('folder', 'document')),
                content_path TEXT,
                relative_path TEXT,
                parent_id TEXT,
                "order" INTEGER NOT NULL DEFAULT 0,
                created_date TEXT NOT NULL,
                modified_date TEXT NOT NULL,
                description TEXT,
                color TEXT,
                beats_json TEXT NOT NULL DEFAULT '[]'
            )
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_items_parent ON items(parent_id)")
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS versions (
                id TEXT PRIMARY KEY,
                document_id TEXT NOT NULL,
                project_id TEXT NOT NULL,
                timestamp TEXT NOT NULL,
                content_path TEXT NOT NULL,
                description TEXT,
                color TEXT
            )
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_versions_document ON versions(document_id)")

    # ------------------------------------------------------------------ #
    # Items                                                              #
    # ------------------------------------------------------------------ #

    def list_items(self) -> list[Folder | Document]:
        """Return every item in catalog iteration (insertion) order."""
        rows = self._execute("SELECT * FROM items ORDER BY rowid").fetchall()
        return [_row_to_item(row) for row in rows]

    def get_item(self, item_id: str) -> Folder | Document | None:
        row = self._execute("SELECT * FROM items WHERE id = ?", (item_id,)).fetchone()
        return _row_to_item(row) if row else None

    def children(self, parent_id: str | None) -> list[Folder | Document]:
        """Return the items directly under ``parent_id`` (None for the root), by order."""
        rows = self._execute(
            'SELECT * FROM items WHERE parent_id IS ? ORDER BY "order", rowid', (parent_id,)
        ).fetchall()
        return [_row_to_item(row) for row in rows]

    def max_sibling_order(self, parent_id: str | None) -> int:
        row = self._execute(
            'SELECT MAX("order") AS top FROM items WHERE parent_id IS ?', (parent_id,)
        ).fetchone()
        return int(row["top"]) if row and row["top"] is not None else 0

    def insert_items(self, items: Iterable[ItemBase]) -> int:
        """Insert items in one transaction and return how many were written."""
        params = [_item_params(item) for item in items]
        if not params:
            return 0
        with self.transaction() as conn:
            conn.executemany(
                """
                INSERT INTO items
                (id, name, type, content_path, relative_path, parent_id, "order",
                 created_date, modified_date, description, color, beats_json)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                params,
            )
        return len(params)

    def update_parents(self, parents: Mapping[str, str | None]) -> int:
        """Set ``parent_id`` for each item id in one transaction."""
        if not parents:
            return 0
        with self.transaction() as conn:
            conn.executemany(
                "UPDATE items SET parent_id = ? WHERE id = ?",
                [(parent_id, item_id) for item_id, parent_id in parents.items()],
            )
        return len(parents)

    def update_orders(self, orders: Mapping[str, int]) -> int:
        """Set ``order`` for each item id in one transaction."""
        if not orders:
            return 0
        with self.transaction() as conn:
            conn.executemany(
                'UPDATE items SET "order" = ? WHERE id = ?',
                [(order, item_id) for item_id, order in orders.items()],
            )
        return len(orders)

    def update_item_fields(self, item_id: str, **fields: Any) -> bool:
        """Update selected columns of one item.

        Accepted keyword names: ``name``, ``parent_id``, ``order``,
        ``modified_date``, ``description``, ``color``, ``beats``,
        ``content_path``, ``relative_path``.

        Returns:
            bool: True if the item existed.
        """
        if not fields:
            return self.get_item(item_id) is not None
        unknown = set(fields) - set(_ITEM_FIELD_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown item fields: {', '.join(sorted(unknown))}")

        assignments = []
        params: list[Any] = []
        for key, value in fields.items():
            assignments.append(f"{_ITEM_FIELD_COLUMNS[key]} = ?")
            if key == "beats":
                value = json.dumps(list(value), ensure_ascii=False)
            elif isinstance(value, datetime):
                value = value.isoformat()
            params.append(value)
        params.append(item_id)
        cursor = self._execute(f"UPDATE items SET {', '.join(assignments)} WHERE id = ?", params)
        return cursor.rowcount > 0

    def delete_items(self, item_ids: Iterable[str]) -> int:
        """Delete items by id in one transaction and return how many were requested."""
        ids = list(item_ids)
        if not ids:
            return 0
        with self.transaction() as conn:
            conn.executemany("DELETE FROM items WHERE id = ?", [(item_id,) for item_id in ids])
        return len(ids)

    # ------------------------------------------------------------------ #
    # Versions                                                           #
    # ------------------------------------------------------------------ #

    def insert_version(self, version: Version) -> Version:
        self._execute(
            """
            INSERT INTO versions
            (id, document_id, project_id, timestamp, content_path, description, color)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                version.id,
                version.document_id,
                version.project_id,
                version.timestamp.isoformat(),
                version.content_path,
                version.description,
                version.color,
            ),
        )
        return version

    def list_versions(self, document_id: str | None = None) -> list[Version]:
        """Return versions, oldest first, optionally for a single document."""
        if document_id is None:
            rows = self._execute("SELECT * FROM versions ORDER BY timestamp, rowid").fetchall()
        else:
            rows = self._execute(
                "SELECT * FROM versions WHERE document_id = ? ORDER BY timestamp, rowid",
                (document_id,),
            ).fetchall()
        return [Version.model_validate(dict(row)) for row in rows]

    def get_version(self, version_id: str) -> Version | None:
        row = self._execute("SELECT * FROM versions WHERE id = ?", (version_id,)).fetchone()
        return Version.model_validate(dict(row)) if row else None

    def update_version_description(self, version_id: str, description: str | None) -> bool:
        cursor = self._execute(
            "UPDATE versions SET description = ? WHERE id = ?", (description, version_id)
        )
        return cursor.rowcount > 0


def _project_params(project: Project) -> tuple[Any, ...]:
    return (
        project.id,
        project.name,
        project.author_name,
        project.created_date.isoformat(),
        project.path,
        project.description,
    )


def _row_to_project(row: sqlite3.Row) -> Project:
    return Project.model_validate({key: row[key] for key in _PROJECT_COLUMNS})


def _item_params(item: ItemBase) -> tuple[Any, ...]:
    content_path = item.content_path if isinstance(item, Document) else None
    relative_path = item.relative_path if isinstance(item, Folder) else None
    return (
        item.id,
        item.name,
        item.type,  # type: ignore[attr-defined]
        content_path,
        relative_path,
        item.parent_id,
        item.order,
        item.created_date.isoformat(),
        item.modified_date.isoformat(),
        item.description,
        item.color,
        json.dumps(item.beats, ensure_ascii=False),
    )


def _row_to_item(row: sqlite3.Row) -> Folder | Document:
    data = dict(row)
    beats_raw = data.pop("beats_json", None)
    try:
        beats = json.loads(beats_raw) if beats_raw else []
    except json.JSONDecodeError:
        beats = []
    data["beats"] = beats if isinstance(beats, list) else []
    if data["type"] == "folder":
        data.pop("content_path", None)
    else:
        data.pop("relative_path", None)
    return ITEM_ADAPTER.validate_python(data)


__all__ = ["SQLiteStore", "ProjectCatalog", "ItemCatalog"]
