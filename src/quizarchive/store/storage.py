"""SQLite record store standing in for the hosted database."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Protocol, Sequence

from quizarchive.errors import MultipleResultsError, NotFoundError, StoreError
from quizarchive.models import Ordering, Predicate

LOGGER = logging.getLogger(__name__)

# sqlite3 raises OverflowError, not sqlite3.Error, for integers wider than 64 bits.
_DB_ERRORS = (sqlite3.Error, OverflowError)

# Writable columns per collection; id and created_at are assigned by the store.
COLLECTIONS: Dict[str, tuple[str, ...]] = {
    "exams": (
        "school",
        "subject",
        "professor",
        "year",
        "semester",
        "course_code",
        "title",
        "file_link",
        "description",
        "assessment_type",
    ),
    "requests": (
        "title",
        "school",
        "subject",
        "course_code",
        "professor",
        "year",
        "semester",
        "upvotes",
    ),
    "tags": ("name", "name_key"),
    "exam_tags": ("exam_id", "tag_id"),
}

_OPERATORS = {
    "eq": "{column} = ?",
    "gte": "{column} >= ?",
    "lte": "{column} <= ?",
    "ilike": "{column} LIKE ? ESCAPE '\\'",
}

_NOW = "(strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))"


class Store(Protocol):
    """Operations the application needs from its record store."""

    def select(
        self,
        collection: str,
        filters: Sequence[Predicate] = (),
        ordering: Optional[Ordering] = None,
        range_start: Optional[int] = None,
        range_end: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[dict]: ...

    def select_single(self, collection: str, filters: Sequence[Predicate]) -> dict: ...

    def insert(self, collection: str, record: Mapping[str, Any]) -> dict: ...

    def update(
        self, collection: str, filters: Sequence[Predicate], patch: Mapping[str, Any]
    ) -> int: ...

    def insert_if_absent(self, collection: str, record: Mapping[str, Any], key: str) -> dict: ...

    def increment(self, collection: str, record_id: int, field: str) -> int: ...


class SQLiteStore:
    """Persistence layer for exams, requests and tags."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        try:
            self._conn = sqlite3.connect(self.db_path)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL;")
            self._conn.execute("PRAGMA synchronous=NORMAL;")
            self._conn.execute("PRAGMA foreign_keys=ON;")
            self._ensure_schema()
        except sqlite3.Error as exc:
            raise StoreError(f"Unable to open store at {self.db_path}: {exc}") from exc

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        try:
            yield self._conn
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS exams (
                    id INTEGER PRIMARY KEY,
                    created_at TEXT NOT NULL DEFAULT {_NOW},
                    school TEXT NOT NULL,
                    subject TEXT NOT NULL,
                    professor TEXT,
                    year INTEGER,
                    semester TEXT,
                    course_code TEXT,
                    title TEXT NOT NULL,
                    file_link TEXT NOT NULL,
                    description TEXT,
                    assessment_type TEXT
                )
                """
            )
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS requests (
                    id INTEGER PRIMARY KEY,
                    created_at TEXT NOT NULL DEFAULT {_NOW},
                    title TEXT NOT NULL,
                    school TEXT NOT NULL,
                    subject TEXT NOT NULL,
                    course_code TEXT,
                    professor TEXT,
                    year INTEGER,
                    semester TEXT,
                    upvotes INTEGER NOT NULL DEFAULT 0 CHECK (upvotes >= 0)
                )
                """
            )
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS tags (
                    id INTEGER PRIMARY KEY,
                    created_at TEXT NOT NULL DEFAULT {_NOW},
                    name TEXT NOT NULL,
                    name_key TEXT NOT NULL UNIQUE
                )
                """
            )
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS exam_tags (
                    id INTEGER PRIMARY KEY,
                    created_at TEXT NOT NULL DEFAULT {_NOW},
                    exam_id INTEGER NOT NULL,
                    tag_id INTEGER NOT NULL,
                    FOREIGN KEY(exam_id) REFERENCES exams(id) ON DELETE CASCADE,
                    FOREIGN KEY(tag_id) REFERENCES tags(id) ON DELETE CASCADE
                )
                """
            )
            conn.execute(
                """CREATE INDEX IF NOT EXISTS idx_exam_tags_exam_id
                    ON exam_tags(exam_id)
                """
            )

    def _columns(self, collection: str) -> tuple[str, ...]:
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise StoreError(f"Unknown collection: {collection}") from None

    def _check_column(self, collection: str, column: str) -> str:
        if column not in ("id", "created_at") and column not in self._columns(collection):
            raise StoreError(f"Unknown column {column!r} for {collection}")
        return column

    def _where(self, collection: str, filters: Sequence[Predicate]) -> tuple[str, list]:
        clauses: list[str] = []
        params: list = []
        for predicate in filters:
            template = _OPERATORS.get(predicate.op)
            if template is None:
                raise StoreError(f"Unsupported operator: {predicate.op}")
            column = self._check_column(collection, predicate.field)
            clauses.append(template.format(column=column))
            params.append(predicate.value)
        if not clauses:
            return "", params
        return " WHERE " + " AND ".join(clauses), params

    def select(
        self,
        collection: str,
        filters: Sequence[Predicate] = (),
        ordering: Optional[Ordering] = None,
        range_start: Optional[int] = None,
        range_end: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[dict]:
        """Return rows matching every predicate, inside the requested window."""
        self._columns(collection)
        where, params = self._where(collection, filters)
        sql = f"SELECT * FROM {collection}{where}"
        if ordering is not None:
            column = self._check_column(collection, ordering.field)
            direction = "ASC" if ordering.ascending else "DESC"
            sql += f" ORDER BY {column} {direction}, id {direction}"

        offset = max(range_start, 0) if range_start is not None else 0
        row_limit = -1
        if range_end is not None:
            row_limit = max(range_end - offset + 1, 0)
        if limit is not None:
            row_limit = limit if row_limit < 0 else min(row_limit, limit)
        if row_limit >= 0 or offset:
            sql += " LIMIT ? OFFSET ?"
            params.extend([row_limit, offset])

        LOGGER.debug("select %s: %s %s", collection, sql, params)
        try:
            rows = self._conn.execute(sql, params).fetchall()
        except _DB_ERRORS as exc:
            raise StoreError(f"select on {collection} failed: {exc}") from exc
        return [dict(row) for row in rows]

    def select_single(self, collection: str, filters: Sequence[Predicate]) -> dict:
        rows = self.select(collection, filters, limit=2)
        if not rows:
            raise NotFoundError(f"No {collection} row matches {list(filters)}")
        if len(rows) > 1:
            raise MultipleResultsError(
                f"More than one {collection} row matches {list(filters)}"
            )
        return rows[0]

    def _fetch_by_id(self, collection: str, record_id: int) -> dict:
        row = self._conn.execute(
            f"SELECT * FROM {collection} WHERE id = ?", (record_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError(f"No {collection} row with id {record_id}")
        return dict(row)

    def _insert_sql(self, collection: str, record: Mapping[str, Any]) -> tuple[str, list]:
        columns = [self._check_column(collection, column) for column in record]
        if not columns or "id" in columns or "created_at" in columns:
            raise StoreError(f"Invalid record for {collection}: {sorted(record)}")
        placeholders = ", ".join("?" for _ in columns)
        sql = f"INSERT INTO {collection}({', '.join(columns)}) VALUES ({placeholders})"
        return sql, list(record.values())

    def insert(self, collection: str, record: Mapping[str, Any]) -> dict:
        """Insert a record and return it as stored."""
        sql, params = self._insert_sql(collection, record)
        try:
            with self.transaction() as conn:
                row_id = conn.execute(sql, params).lastrowid
                return self._fetch_by_id(collection, row_id)
        except _DB_ERRORS as exc:
            raise StoreError(f"insert into {collection} failed: {exc}") from exc

    def insert_if_absent(self, collection: str, record: Mapping[str, Any], key: str) -> dict:
        """Insert unless a row with the same ``key`` value exists; return that row."""
        self._check_column(collection, key)
        if key not in record:
            raise StoreError(f"Record for {collection} lacks key column {key!r}")
        sql, params = self._insert_sql(collection, record)
        sql = sql.replace("INSERT INTO", "INSERT OR IGNORE INTO", 1)
        try:
            with self.transaction() as conn:
                conn.execute(sql, params)
                row = conn.execute(
                    f"SELECT * FROM {collection} WHERE {key} = ?", (record[key],)
                ).fetchone()
        except _DB_ERRORS as exc:
            raise StoreError(f"insert into {collection} failed: {exc}") from exc
        if row is None:
            raise StoreError(f"insert into {collection} did not persist {key}={record[key]!r}")
        return dict(row)

    def update(
        self, collection: str, filters: Sequence[Predicate], patch: Mapping[str, Any]
    ) -> int:
        """Apply ``patch`` to matching rows and return how many were touched."""
        if not patch:
            raise StoreError("Empty update")
        assignments = ", ".join(
            f"{self._check_column(collection, column)} = ?" for column in patch
        )
        if "id" in patch or "created_at" in patch:
            raise StoreError("id and created_at are immutable")
        where, params = self._where(collection, filters)
        sql = f"UPDATE {collection} SET {assignments}{where}"
        try:
            with self.transaction() as conn:
                return conn.execute(sql, [*patch.values(), *params]).rowcount
        except _DB_ERRORS as exc:
            raise StoreError(f"update on {collection} failed: {exc}") from exc

    def increment(self, collection: str, record_id: int, field: str) -> int:
        """Atomically add one to ``field`` and return the new value."""
        column = self._check_column(collection, field)
        try:
            with self.transaction() as conn:
                touched = conn.execute(
                    f"UPDATE {collection} SET {column} = {column} + 1 WHERE id = ?",
                    (record_id,),
                ).rowcount
                if touched == 0:
                    raise NotFoundError(f"No {collection} row with id {record_id}")
                return self._fetch_by_id(collection, record_id)[column]
        except _DB_ERRORS as exc:
            raise StoreError(f"increment on {collection} failed: {exc}") from exc
