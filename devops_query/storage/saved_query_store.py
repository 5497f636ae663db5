"""
saved_query_store.py - Saved query repository
Single responsibility: CRUD for user-named queries in the local SQLite file.
"""
import logging
import sqlite3
from contextlib import contextmanager
from typing import Iterator, List
from uuid import UUID

from devops_query.errors import CorruptSavedQueryError
from devops_query.work_items.models import SavedQuery

logger = logging.getLogger(__name__)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS SavedQueries (
    Id        TEXT PRIMARY KEY,
    Name      TEXT NOT NULL,
    QueryText TEXT NOT NULL
)
"""


class SavedQueryStore:
    """
    Saved queries kept in a single table.

    Every call opens its own connection and closes it before returning,
    so an instance must not be shared between threads without outside locking.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self.initialize_schema()

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self.db_path, timeout=10)
        except sqlite3.Error as e:
            logger.error("Failed to connect to database at %s: %s", self.db_path, e)
            raise
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def initialize_schema(self) -> None:
        with self._connection() as conn:
            conn.execute(SCHEMA_SQL)
        logger.debug("Saved query schema ready in %s", self.db_path)

    def add_saved_query(self, query: SavedQuery) -> None:
        """Insert a query; a duplicate id raises sqlite3.IntegrityError."""
        with self._connection() as conn:
            conn.execute(
                "INSERT INTO SavedQueries (Id, Name, QueryText) VALUES (?, ?, ?)",
                (str(query.id), query.name, query.query_text),
            )
        logger.info("Saved query '%s' (%s)", query.name, query.id)

    def get_saved_queries(self) -> List[SavedQuery]:
        with self._connection() as conn:
            rows = conn.execute("SELECT Id, Name, QueryText FROM SavedQueries").fetchall()

        queries: List[SavedQuery] = []
        for row in rows:
            try:
                query_id = UUID(str(row["Id"]))
            except ValueError as e:
                raise CorruptSavedQueryError(f"Saved query has an invalid id: {row['Id']!r}") from e
            queries.append(SavedQuery(id=query_id, name=row["Name"], query_text=row["QueryText"]))
        return queries

    def update_saved_query(self, query: SavedQuery) -> int:
        """Update name and text by id. Returns the number of rows changed (0 if unknown)."""
        with self._connection() as conn:
            cur = conn.execute(
                "UPDATE SavedQueries SET Name = ?, QueryText = ? WHERE Id = ?",
                (query.name, query.query_text, str(query.id)),
            )
            return cur.rowcount

    def delete_saved_query(self, query_id: UUID) -> int:
        """Delete by id. Returns the number of rows removed (0 if unknown)."""
        with self._connection() as conn:
            cur = conn.execute("DELETE FROM SavedQueries WHERE Id = ?", (str(query_id),))
            return cur.rowcount
