"""
Database module for Braindump.

SQLite storage for the three stores the pipeline needs: pending fragments,
organized items and the append-only archive.
"""

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Iterator

from braindump.config import get_db_path
from braindump.errors import ItemConflictError
from braindump.ingress import generate_id
from braindump.interfaces import ArchiveStore, FragmentStore, OrganizedStore
from braindump.models import OrganizedItem, RawFragment

# Schema version for migrations
SCHEMA_VERSION = 1

SCHEMA = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

-- Raw captured notes, deleted once organized
CREATE TABLE IF NOT EXISTS fragments (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    content TEXT NOT NULL,
    created_at TEXT NOT NULL
);

-- Organized items
-- CATEGORY CONSTRAINT: Only 5 categories, FROZEN.
CREATE TABLE IF NOT EXISTS organized_items (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    source_fragment_id TEXT,
    category TEXT NOT NULL CHECK(category IN (
        'do', 'plan', 'think', 'shopping_list', 'important_dates_events'
    )),
    content TEXT NOT NULL,
    identity_key TEXT NOT NULL,             -- Normalised content, replay key
    recurrence TEXT CHECK(recurrence IN ('daily', 'weekly', 'monthly', 'yearly')),
    date TEXT,                              -- ISO 8601 date
    day_of_week TEXT,                       -- Derived from date on every write
    time TEXT,                              -- HH:MM
    completed INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

-- Append-only copies of everything inserted
CREATE TABLE IF NOT EXISTS archived_items (
    archive_id INTEGER PRIMARY KEY AUTOINCREMENT,
    item_id TEXT NOT NULL,
    owner_id TEXT NOT NULL,
    source_fragment_id TEXT,
    category TEXT NOT NULL,
    content TEXT NOT NULL,
    recurrence TEXT,
    date TEXT,
    day_of_week TEXT,
    time TEXT,
    completed INTEGER NOT NULL,
    archived_at TEXT NOT NULL
);

-- At most one open row per identity; replayed inserts are ignored
CREATE UNIQUE INDEX IF NOT EXISTS idx_organized_open_identity
    ON organized_items(owner_id, identity_key) WHERE completed = 0;

-- Indexes
CREATE INDEX IF NOT EXISTS idx_fragments_owner ON fragments(owner_id);
CREATE INDEX IF NOT EXISTS idx_organized_owner ON organized_items(owner_id, completed);
CREATE INDEX IF NOT EXISTS idx_organized_date ON organized_items(date);
"""

ITEM_COLUMNS = (
    "id", "owner_id", "source_fragment_id", "category", "content", "identity_key",
    "recurrence", "date", "day_of_week", "time", "completed", "created_at", "updated_at",
)


def _item_row(item: OrganizedItem, now: str) -> tuple[Any, ...]:
    return (
        item.id,
        item.owner_id,
        item.source_fragment_id,
        item.category.value,
        item.content,
        item.identity_key,
        item.recurrence,
        item.date.isoformat() if item.date else None,
        item.day_of_week,
        item.time,
        int(item.completed),
        item.created_at or now,
        now,
    )


class Database(FragmentStore, OrganizedStore, ArchiveStore):
    """SQLite database wrapper for Braindump."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()
        self._conn: sqlite3.Connection | None = None
        self._ensure_db()

    def _ensure_db(self) -> None:
        """Ensure database exists and schema is current."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.executescript(SCHEMA)
            # Set schema version
            conn.execute(
                "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,)
            )

    def open(self) -> None:
        """Keep one connection open until close()."""
        if self._conn is None:
            self._conn = self._new_connection()

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _new_connection(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """One transaction, on the open connection or a short-lived one."""
        conn = self._conn or self._new_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            if conn is not self._conn:
                conn.close()

    # Fragment store

    def add_fragment(self, owner_id: str, content: str) -> str:
        """Store a captured note. Returns the fragment ID."""
        fragment_id = generate_id()
        now = datetime.now(timezone.utc).isoformat()

        with self._connect() as conn:
            conn.execute(
                "INSERT INTO fragments (id, owner_id, content, created_at) VALUES (?, ?, ?, ?)",
                (fragment_id, owner_id, content, now),
            )
        return fragment_id

    def fetch_pending_fragments(self, owner_id: str) -> list[RawFragment]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM fragments WHERE owner_id = ? ORDER BY created_at, rowid",
                (owner_id,),
            ).fetchall()
            return [RawFragment(**dict(row)) for row in rows]

    def purge_fragments(self, owner_id: str, fragment_ids: Iterable[str] | None = None) -> int:
        with self._connect() as conn:
            if fragment_ids is None:
                cursor = conn.execute("DELETE FROM fragments WHERE owner_id = ?", (owner_id,))
                return cursor.rowcount
            deleted = 0
            for fragment_id in fragment_ids:
                cursor = conn.execute(
                    "DELETE FROM fragments WHERE owner_id = ? AND id = ?",
                    (owner_id, fragment_id),
                )
                deleted += cursor.rowcount
            return deleted

    def delete_fragment(self, owner_id: str, fragment_id: str) -> bool:
        """Discard one pending capture before it is organized."""
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM fragments WHERE owner_id = ? AND id = ?",
                (owner_id, fragment_id),
            )
            return cursor.rowcount > 0

    # Organized item store

    def fetch_open_items(self, owner_id: str) -> list[OrganizedItem]:
        return self.get_items(owner_id, include_completed=False)

    def get_items(
        self,
        owner_id: str,
        category: str | None = None,
        include_completed: bool = False,
    ) -> list[OrganizedItem]:
        """Get organized items with optional filters, oldest first."""
        query = "SELECT * FROM organized_items WHERE owner_id = ?"
        params: list[Any] = [owner_id]

        if category:
            query += " AND category = ?"
            params.append(category)

        if not include_completed:
            query += " AND completed = 0"

        query += " ORDER BY created_at, rowid"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
            return [OrganizedItem(**dict(row)) for row in rows]

    def insert_organized(self, items: list[OrganizedItem]) -> int:
        """Insert new rows. A row whose open identity already exists is ignored."""
        with self._connect() as conn:
            return self._insert_rows(conn, items)

    def update_organized(self, items: list[OrganizedItem]) -> int:
        with self._connect() as conn:
            return self._update_rows(conn, items)

    def save(self, inserted: list[OrganizedItem], enriched: list[OrganizedItem]) -> tuple[int, int]:
        """Inserts and enrichments in a single transaction."""
        with self._connect() as conn:
            return self._insert_rows(conn, inserted), self._update_rows(conn, enriched)

    def _insert_rows(self, conn: sqlite3.Connection, items: list[OrganizedItem]) -> int:
        now = datetime.now(timezone.utc).isoformat()
        placeholders = ", ".join("?" for _ in ITEM_COLUMNS)
        inserted = 0
        for item in items:
            cursor = conn.execute(
                f"INSERT OR IGNORE INTO organized_items ({', '.join(ITEM_COLUMNS)}) "
                f"VALUES ({placeholders})",
                _item_row(item, now),
            )
            inserted += cursor.rowcount
        return inserted

    def _update_rows(self, conn: sqlite3.Connection, items: list[OrganizedItem]) -> int:
        now = datetime.now(timezone.utc).isoformat()
        updated = 0
        for item in items:
            cursor = conn.execute("""
                UPDATE organized_items
                SET date = ?, day_of_week = ?, time = ?, recurrence = ?, updated_at = ?
                WHERE id = ?
            """, (
                item.date.isoformat() if item.date else None,
                item.day_of_week,
                item.time,
                item.recurrence,
                now,
                item.id,
            ))
            updated += cursor.rowcount
        return updated

    def set_completed(self, item_id: str, completed: bool = True) -> bool:
        """
        Toggle completion. Returns True if a row changed.

        Reopening raises ItemConflictError when the same item is already
        open again under a newer row.
        """
        now = datetime.now(timezone.utc).isoformat()

        with self._connect() as conn:
            if not completed:
                clash = conn.execute("""
                    SELECT other.id FROM organized_items AS item
                    JOIN organized_items AS other
                      ON other.owner_id = item.owner_id
                     AND other.identity_key = item.identity_key
                     AND other.id != item.id
                     AND other.completed = 0
                    WHERE item.id = ? AND item.completed = 1
                """, (item_id,)).fetchone()
                if clash:
                    raise ItemConflictError(
                        f"Item {item_id} is already open again as {clash['id']}"
                    )

            cursor = conn.execute("""
                UPDATE organized_items
                SET completed = ?, updated_at = ?
                WHERE id = ? AND completed != ?
            """, (int(completed), now, item_id, int(completed)))
            return cursor.rowcount > 0

    # Archive store

    def archive(self, items: list[OrganizedItem]) -> int:
        now = datetime.now(timezone.utc).isoformat()

        with self._connect() as conn:
            conn.executemany("""
                INSERT INTO archived_items (
                    item_id, owner_id, source_fragment_id, category, content,
                    recurrence, date, day_of_week, time, completed, archived_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, [
                (
                    item.id, item.owner_id, item.source_fragment_id, item.category.value,
                    item.content, item.recurrence,
                    item.date.isoformat() if item.date else None,
                    item.day_of_week, item.time, int(item.completed), now,
                )
                for item in items
            ])
        return len(items)

    def count_archived(self, owner_id: str) -> int:
        with self._connect() as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM archived_items WHERE owner_id = ?", (owner_id,)
            ).fetchone()[0]

    def get_stats(self, owner_id: str) -> dict[str, Any]:
        """Get database statistics for one owner."""
        with self._connect() as conn:
            pending = conn.execute(
                "SELECT COUNT(*) FROM fragments WHERE owner_id = ?", (owner_id,)
            ).fetchone()[0]
            by_category = dict(conn.execute("""
                SELECT category, COUNT(*) FROM organized_items
                WHERE owner_id = ? AND completed = 0
                GROUP BY category
            """, (owner_id,)).fetchall())
            completed = conn.execute(
                "SELECT COUNT(*) FROM organized_items WHERE owner_id = ? AND completed = 1",
                (owner_id,),
            ).fetchone()[0]

        return {
            "pending_fragments": pending,
            "open_by_category": by_category,
            "completed": completed,
            "archived": self.count_archived(owner_id),
        }
