"""SQLite-backed storage for Markdown artifacts and the item catalog."""

import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from ..errors import StorageFailure
from ..models.content import ArtifactKey, ContentItem, MarkdownDocument

logger = logging.getLogger(__name__)

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS markdown_documents (
        item_id INTEGER NOT NULL,
        langcode TEXT NOT NULL,
        body TEXT NOT NULL,
        generated_at INTEGER NOT NULL,
        PRIMARY KEY (item_id, langcode)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS content_items (
        item_id INTEGER NOT NULL,
        langcode TEXT NOT NULL,
        default_langcode INTEGER NOT NULL DEFAULT 1,
        type TEXT NOT NULL,
        status INTEGER NOT NULL,
        title TEXT NOT NULL DEFAULT '',
        path TEXT,
        created INTEGER NOT NULL,
        changed INTEGER,
        PRIMARY KEY (item_id, langcode)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_items_eligible ON content_items(type, status, default_langcode)",
]

# SQLite caps the number of bound parameters per statement
MAX_PARAMS = 500


def _placeholders(values: list) -> str:
    return ", ".join("?" for _ in values)


def _to_timestamp(value: Optional[datetime]) -> Optional[int]:
    if value is None:
        return None
    return int(value.timestamp())


def _from_timestamp(value: Optional[int]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


class ArtifactStore:
    """
    Durable key-value store of Markdown documents keyed by (item id, language).

    Holds two tables in one SQLite database:

    - markdown_documents: one row per (item_id, langcode), replaced
      atomically on every write
    - content_items: a catalog mirror of the CMS items, kept in sync by
      the caller, used for backlog and export queries

    A single connection is shared behind a lock and each mutation runs in
    its own transaction, so writes to one key are linearizable within a
    process; SQLite's file locking covers other processes.

    Example:
        store = ArtifactStore(Path("./llm_content.db"))
        store.upsert((42, "en"), "# Hello", generated_at=1700000000)
        body = store.get((42, "en"))
        missing = store.find_missing(["article"], limit=100)
        store.close()
    """

    # Upper bound on rows returned by list_all
    HARD_LIMIT = 500

    def __init__(self, database: Union[Path, str], timeout: float = 30.0) -> None:
        """
        Initialize the store.

        Args:
            database: Path of the SQLite file, or ":memory:"
            timeout: Seconds to wait when the database is locked
        """
        self._database = str(database)
        self._timeout = timeout
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

    def _ensure_db(self) -> sqlite3.Connection:
        """Ensure the database and tables exist."""
        if self._conn is None:
            try:
                if self._database != ":memory:":
                    Path(self._database).parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(self._database, timeout=self._timeout, check_same_thread=False)
                conn.row_factory = sqlite3.Row
                with conn:
                    for statement in SCHEMA:
                        conn.execute(statement)
            except (sqlite3.Error, OSError) as e:
                raise StorageFailure(f"Could not open artifact store at {self._database}: {e}") from e

            self._conn = conn
            logger.info(f"Initialized artifact store at {self._database}")

        return self._conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            conn = self._ensure_db()
            try:
                with conn:
                    yield conn
            except sqlite3.Error as e:
                logger.error(f"SQLite error: {e}")
                raise StorageFailure(f"SQLite error: {e}") from e

    def _fetch(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        with self._transaction() as conn:
            return conn.execute(sql, params).fetchall()

    # Documents

    def upsert(self, key: ArtifactKey, body: str, generated_at: int) -> None:
        """Insert or replace the document for a key in one transaction."""
        item_id, langcode = key
        with self._transaction() as conn:
            conn.execute(
                """INSERT INTO markdown_documents (item_id, langcode, body, generated_at)
                   VALUES (?, ?, ?, ?)
                   ON CONFLICT (item_id, langcode) DO UPDATE SET
                       body = excluded.body,
                       generated_at = excluded.generated_at""",
                (item_id, langcode, body, generated_at),
            )

    def get(self, key: ArtifactKey) -> Optional[str]:
        """Return the stored body for a key, or None when absent."""
        document = self.get_document(key)
        return document.body if document is not None else None

    def get_document(self, key: ArtifactKey) -> Optional[MarkdownDocument]:
        item_id, langcode = key
        rows = self._fetch(
            "SELECT item_id, langcode, body, generated_at FROM markdown_documents WHERE item_id = ? AND langcode = ?",
            (item_id, langcode),
        )
        if not rows:
            return None
        row = rows[0]
        return MarkdownDocument(
            item_id=row["item_id"],
            langcode=row["langcode"],
            body=row["body"],
            generated_at=row["generated_at"],
        )

    def delete(self, item_id: int, langcode: Optional[str] = None) -> int:
        """
        Delete stored documents.

        Args:
            item_id: Item whose documents are removed
            langcode: Only remove this language; None removes all languages

        Returns:
            Number of rows removed
        """
        with self._transaction() as conn:
            if langcode is None:
                cursor = conn.execute("DELETE FROM markdown_documents WHERE item_id = ?", (item_id,))
            else:
                cursor = conn.execute(
                    "DELETE FROM markdown_documents WHERE item_id = ? AND langcode = ?",
                    (item_id, langcode),
                )
            return cursor.rowcount

    def count_documents(self) -> int:
        rows = self._fetch("SELECT COUNT(*) AS total FROM markdown_documents")
        total: int = rows[0]["total"]
        return total

    def find_missing(self, types: list[str], limit: int = 0) -> list[int]:
        """
        Return ids of published items lacking a default-language document.

        The set difference runs in SQL as a LEFT JOIN anti-join, so no id
        list is loaded into memory.

        Args:
            types: Content types to consider
            limit: Maximum ids to return (0 = unbounded)

        Returns:
            Item ids in ascending order
        """
        if not types:
            return []

        sql = f"""SELECT i.item_id FROM content_items AS i
                  LEFT JOIN markdown_documents AS m
                      ON m.item_id = i.item_id AND m.langcode = i.langcode
                  WHERE i.status = 1
                    AND i.default_langcode = 1
                    AND i.type IN ({_placeholders(types)})
                    AND m.item_id IS NULL
                  ORDER BY i.item_id"""
        params: tuple = tuple(types)
        if limit > 0:
            sql += " LIMIT ?"
            params += (limit,)
        return [row["item_id"] for row in self._fetch(sql, params)]

    def list_all(self, types: list[str], limit: Optional[int] = None) -> list[str]:
        """
        Return stored bodies of published items of the given types.

        Ordered by item id then language, never more than HARD_LIMIT rows.
        Access checks are the caller's responsibility.
        """
        if not types:
            return []

        cap = self.HARD_LIMIT if not limit or limit <= 0 else min(limit, self.HARD_LIMIT)
        rows = self._fetch(
            f"""SELECT m.body FROM markdown_documents AS m
                INNER JOIN content_items AS i
                    ON i.item_id = m.item_id AND i.langcode = m.langcode
                WHERE i.status = 1 AND i.type IN ({_placeholders(types)})
                ORDER BY m.item_id ASC, m.langcode ASC
                LIMIT ?""",
            (*types, cap),
        )
        return [row["body"] for row in rows]

    # Item catalog

    def save_item(self, item: ContentItem) -> None:
        """Insert or update the catalog row of one item translation."""
        with self._transaction() as conn:
            conn.execute(
                """INSERT INTO content_items
                       (item_id, langcode, default_langcode, type, status, title, path, created, changed)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                   ON CONFLICT (item_id, langcode) DO UPDATE SET
                       default_langcode = excluded.default_langcode,
                       type = excluded.type,
                       status = excluded.status,
                       title = excluded.title,
                       path = excluded.path,
                       created = excluded.created,
                       changed = excluded.changed""",
                (
                    item.id,
                    item.langcode,
                    int(item.default_translation),
                    item.type,
                    int(item.published),
                    item.title,
                    item.path,
                    _to_timestamp(item.created),
                    _to_timestamp(item.revised),
                ),
            )

    def remove_item(self, item_id: int, langcode: Optional[str] = None) -> int:
        with self._transaction() as conn:
            if langcode is None:
                cursor = conn.execute("DELETE FROM content_items WHERE item_id = ?", (item_id,))
            else:
                cursor = conn.execute(
                    "DELETE FROM content_items WHERE item_id = ? AND langcode = ?",
                    (item_id, langcode),
                )
            return cursor.rowcount

    @staticmethod
    def _row_to_item(row: sqlite3.Row) -> ContentItem:
        return ContentItem(
            id=row["item_id"],
            langcode=row["langcode"],
            published=bool(row["status"]),
            type=row["type"],
            title=row["title"],
            created=datetime.fromtimestamp(row["created"], tz=timezone.utc),
            revised=_from_timestamp(row["changed"]),
            path=row["path"],
            default_translation=bool(row["default_langcode"]),
        )

    def get_item(self, item_id: int, langcode: Optional[str] = None) -> Optional[ContentItem]:
        """Return one catalog item; the default translation when langcode is None."""
        if langcode is None:
            rows = self._fetch(
                "SELECT * FROM content_items WHERE item_id = ? ORDER BY default_langcode DESC, langcode LIMIT 1",
                (item_id,),
            )
        else:
            rows = self._fetch(
                "SELECT * FROM content_items WHERE item_id = ? AND langcode = ?",
                (item_id, langcode),
            )
        return self._row_to_item(rows[0]) if rows else None

    def load_items(self, item_ids: list[int]) -> list[ContentItem]:
        """Load the default translations of the given items, in id order."""
        items: list[ContentItem] = []
        for start in range(0, len(item_ids), MAX_PARAMS):
            chunk = item_ids[start : start + MAX_PARAMS]
            rows = self._fetch(
                f"""SELECT * FROM content_items
                    WHERE default_langcode = 1 AND item_id IN ({_placeholders(chunk)})
                    ORDER BY item_id""",
                tuple(chunk),
            )
            items.extend(self._row_to_item(row) for row in rows)
        return items

    def list_eligible(self, types: list[str], limit: int = 0) -> list[int]:
        """Return ids of published default-language items of the given types."""
        if not types:
            return []

        sql = f"""SELECT item_id FROM content_items
                  WHERE status = 1 AND default_langcode = 1 AND type IN ({_placeholders(types)})
                  ORDER BY item_id"""
        params: tuple = tuple(types)
        if limit > 0:
            sql += " LIMIT ?"
            params += (limit,)
        return [row["item_id"] for row in self._fetch(sql, params)]

    def list_items(self, types: list[str], limit: int, by_changed: bool = False) -> list[ContentItem]:
        """
        Return published default-language items, newest first.

        Items are ordered by creation time, or by last change (creation
        time when never revised) with ``by_changed``.
        """
        if not types:
            return []

        order = "COALESCE(changed, created)" if by_changed else "created"
        rows = self._fetch(
            f"""SELECT * FROM content_items
                WHERE status = 1 AND default_langcode = 1 AND type IN ({_placeholders(types)})
                ORDER BY {order} DESC, item_id DESC
                LIMIT ?""",
            (*types, limit),
        )
        return [self._row_to_item(row) for row in rows]

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.info(f"Closed artifact store at {self._database}")

    def __enter__(self) -> "ArtifactStore":
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.close()

    @property
    def database(self) -> str:
        """Return the database location."""
        return self._database
