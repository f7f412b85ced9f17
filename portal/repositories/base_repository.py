"""
Base Repository.

Provides shared infrastructure for all repositories:
- DatabaseManager reference (Supabase + SQLite)
- Logger reference
- Supabase-first reads with SQLite fallback
- Writes and deletes that land in SQLite and the sync queue when Supabase
  is unreachable

Filters are plain ``{column: value}`` mappings.  A list value means
"column IN (...)".  Column names always come from repository code, never
from callers' payloads.
"""

from __future__ import annotations

import json
import sqlite3
from typing import Callable, Mapping, Optional, Sequence, TypeVar, Union

from pydantic import BaseModel
from supabase import Client as SupabaseClient

from portal.database import DatabaseManager
from portal.logger import StructuredLogger

T = TypeVar("T")

FilterValue = Union[str, int, Sequence[str]]
Filters = Mapping[str, FilterValue]
Row = dict[str, object]


class RepositoryReadError(RuntimeError):
    """A strict read could not get an authoritative answer from either store."""


class BaseRepository:
    """Base class for all repositories. Receives dependencies via __init__."""

    TABLE: str = ""

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        self._db = db
        self._logger = logger

    @property
    def supabase(self) -> SupabaseClient:
        """Returns the Supabase client for cloud operations."""
        return self._db.supabase

    @property
    def sqlite(self) -> sqlite3.Connection:
        """Returns the SQLite connection for local operations."""
        return self._db.sqlite

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _execute_with_fallback(
        self,
        supabase_op: Callable[[], Optional[T]],
        sqlite_op: Callable[[], Optional[T]],
        default_factory: Callable[[], T],
        *,
        operation_name: str,
        on_supabase_success: Optional[Callable[[T], None]] = None,
    ) -> T:
        """Execute a read with Supabase-first, SQLite-fallback semantics.

        Execution order:
        1. Call ``supabase_op()``.  If it returns a non-``None`` value,
           optionally invoke ``on_supabase_success``, then return.
        2. Call ``sqlite_op()``.  If it returns a non-``None`` value, return.
        3. Return ``default_factory()``.

        ``on_supabase_success`` is meant for cache warming; its failures are
        logged and never mask the result.
        """
        try:
            result = supabase_op()
            if result is not None:
                if on_supabase_success is not None:
                    try:
                        on_supabase_success(result)
                    except sqlite3.Error as cache_exc:
                        self._logger.warning(
                            "Post-Supabase callback failed for %s: %s",
                            operation_name,
                            cache_exc,
                        )
                return result
        except Exception as exc:
            self._logger.warning(
                "Supabase unavailable for %s: %s", operation_name, exc
            )

        try:
            result = sqlite_op()
            if result is not None:
                return result
        except sqlite3.Error as sqlite_exc:
            self._logger.error(
                "SQLite fallback also failed for %s: %s",
                operation_name,
                sqlite_exc,
            )

        return default_factory()

    def _execute_strict(
        self,
        supabase_op: Callable[[], list[Row]],
        sqlite_op: Callable[[], list[Row]],
        *,
        operation_name: str,
    ) -> list[Row]:
        """Read from whichever store is authoritative, or raise.

        Online, Supabase is the only answer that counts: the mirror may lack
        rows written by the admin panel.  Offline, the SQLite store is all
        there is.
        """
        if self._db.is_online:
            try:
                rows = supabase_op()
            except Exception as exc:
                self._logger.error(
                    "Strict read %s failed on Supabase: %s", operation_name, exc
                )
                raise RepositoryReadError(
                    f"Could not read {operation_name} from Supabase: {exc}"
                ) from exc
            try:
                self._cache_rows(rows)
            except sqlite3.Error as cache_exc:
                self._logger.warning(
                    "Mirror refresh failed for %s: %s", operation_name, cache_exc
                )
            return rows

        try:
            return sqlite_op()
        except sqlite3.Error as exc:
            self._logger.error(
                "Strict read %s failed on SQLite: %s", operation_name, exc
            )
            raise RepositoryReadError(
                f"Could not read {operation_name} from SQLite: {exc}"
            ) from exc

    def _select(
        self, filters: Filters, *, operation_name: str, strict: bool = False
    ) -> list[Row]:
        """Fetch every row of ``TABLE`` matching *filters*.

        With ``strict=True`` a failed read raises ``RepositoryReadError``
        instead of degrading to the mirror or to an empty list.  Deletes
        key on these results, so "could not read" must never look like
        "nothing there".
        """

        def _supabase() -> list[Row]:
            query = self.supabase.table(self.TABLE).select("*")
            for column, value in filters.items():
                if isinstance(value, (list, tuple)):
                    query = query.in_(column, list(value))
                else:
                    query = query.eq(column, value)
            return list(query.execute().data or [])

        def _sqlite() -> list[Row]:
            where, params = self._where_clause(filters)
            rows = self.sqlite.execute(
                f"SELECT * FROM {self.TABLE}{where}", params
            ).fetchall()
            return [dict(row) for row in rows]

        if strict:
            return self._execute_strict(
                _supabase, _sqlite, operation_name=f"{operation_name} ({self.TABLE})"
            )
        return self._execute_with_fallback(
            supabase_op=_supabase,
            sqlite_op=_sqlite,
            default_factory=list,
            operation_name=f"{operation_name} ({self.TABLE})",
            on_supabase_success=self._cache_rows,
        )

    def _select_one(
        self, filters: Filters, *, operation_name: str, strict: bool = False
    ) -> Optional[Row]:
        rows = self._select(filters, operation_name=operation_name, strict=strict)
        return rows[0] if rows else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _insert(self, row: Row, entity_id: str) -> None:
        """Insert *row* into Supabase and mirror it locally.

        When Supabase is unavailable the row is written to SQLite and an
        ``insert`` is queued for :class:`SyncService`.
        """
        try:
            self.supabase.table(self.TABLE).insert(row).execute()
            self._cache_rows([row])
        except Exception as exc:
            self._logger.warning(
                "Supabase insert into %s failed, keeping local copy: %s",
                self.TABLE,
                exc,
            )
            self._cache_rows([row])
            self._queue_pending_sync("insert", entity_id, row)

    def _update(self, entity_id: str, changes: Row) -> None:
        """Apply *changes* to the row with primary key *entity_id*."""
        try:
            self.supabase.table(self.TABLE).update(changes).eq("id", entity_id).execute()
        except Exception as exc:
            self._logger.warning(
                "Supabase update of %s/%s failed, keeping local change: %s",
                self.TABLE,
                entity_id,
                exc,
            )
            self._queue_pending_sync("update", entity_id, changes)

        assignments = ", ".join(f"{column} = ?" for column in changes)
        with self._db.write_lock:
            self.sqlite.execute(
                f"UPDATE {self.TABLE} SET {assignments} WHERE id = ?",
                (*changes.values(), entity_id),
            )
            self.sqlite.commit()

    def _delete(self, filters: Filters) -> int:
        """Delete every row matching *filters*; return how many were removed.

        Deleting rows that do not exist is a successful no-op returning 0,
        which is what makes cascade steps safe to re-run.  Offline deletes
        are queued only when they actually removed something, so a repeated
        cascade leaves the store byte-for-byte unchanged.
        """
        if not filters:
            raise ValueError(f"Refusing unfiltered delete on {self.TABLE}")

        remote_deleted: Optional[int] = None
        try:
            query = self.supabase.table(self.TABLE).delete()
            for column, value in filters.items():
                if isinstance(value, (list, tuple)):
                    query = query.in_(column, list(value))
                else:
                    query = query.eq(column, value)
            remote_deleted = len(query.execute().data or [])
        except Exception as exc:
            self._logger.warning(
                "Supabase delete on %s failed, deleting locally: %s",
                self.TABLE,
                exc,
            )

        where, params = self._where_clause(filters)
        with self._db.write_lock:
            cursor = self.sqlite.execute(f"DELETE FROM {self.TABLE}{where}", params)
            self.sqlite.commit()
        local_deleted = cursor.rowcount

        if remote_deleted is None and local_deleted > 0:
            self._queue_pending_sync(
                "delete", self._describe(filters), {"filters": dict(filters)}
            )
        return remote_deleted if remote_deleted is not None else local_deleted

    # ------------------------------------------------------------------
    # Local mirror helpers
    # ------------------------------------------------------------------

    def _cache_rows(self, rows: list[Row]) -> None:
        """Upsert *rows* into the SQLite mirror."""
        if not rows:
            return
        with self._db.write_lock:
            for row in rows:
                columns = ", ".join(row)
                placeholders = ", ".join("?" for _ in row)
                self.sqlite.execute(
                    f"INSERT OR REPLACE INTO {self.TABLE} ({columns}) VALUES ({placeholders})",
                    tuple(self._to_sqlite(v) for v in row.values()),
                )
            self.sqlite.commit()

    def _queue_pending_sync(
        self,
        operation: str,
        entity_id: str,
        payload: Row,
    ) -> None:
        """Record an operation for replay once Supabase is reachable."""
        try:
            with self._db.write_lock:
                self.sqlite.execute(
                    """
                    INSERT INTO sync_queue (table_name, operation, entity_id, payload)
                    VALUES (?, ?, ?, ?)
                    """,
                    (self.TABLE, operation, entity_id, json.dumps(payload, default=str)),
                )
                self.sqlite.commit()
            self._logger.info(
                "Queued pending sync: %s %s/%s", operation, self.TABLE, entity_id
            )
        except sqlite3.Error as exc:
            self._logger.warning(
                "Failed to queue pending sync for %s/%s: %s",
                self.TABLE,
                entity_id,
                exc,
            )

    @staticmethod
    def _where_clause(filters: Filters) -> tuple[str, tuple[object, ...]]:
        clauses: list[str] = []
        params: list[object] = []
        for column, value in filters.items():
            if isinstance(value, (list, tuple)):
                if not value:
                    clauses.append("0")
                    continue
                clauses.append(f"{column} IN ({', '.join('?' for _ in value)})")
                params.extend(value)
            else:
                clauses.append(f"{column} = ?")
                params.append(value)
        if not clauses:
            return "", ()
        return " WHERE " + " AND ".join(clauses), tuple(params)

    @staticmethod
    def _describe(filters: Filters) -> str:
        return ",".join(
            f"{k}={'|'.join(v) if isinstance(v, (list, tuple)) else v}"
            for k, v in filters.items()
        )

    @staticmethod
    def _to_row(model: BaseModel) -> Row:
        """Serialise a model the way both stores expect (ISO timestamps, enum values)."""
        return model.model_dump(mode="json")

    @staticmethod
    def _to_sqlite(value: object) -> object:
        if isinstance(value, bool):
            return int(value)
        if value is None or isinstance(value, (str, int, float)):
            return value
        return str(value)
