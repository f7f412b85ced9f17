"""
Sync Service.

Replays pending ``sync_queue`` entries to Supabase.  Every offline write
or delete made by a repository is recorded there first; :meth:`flush`
pushes them upstream in creation order once Supabase is reachable.

The engine has no background jobs, so flushing is an explicit call (the
``sync`` CLI subcommand) rather than a polling thread.

Thread Safety
-------------
All SQLite writes acquire ``DatabaseManager.write_lock`` (an ``RLock``)
before executing.
"""

from __future__ import annotations

import json
from typing import Optional

from portal.database import DatabaseManager
from portal.logger import StructuredLogger
from portal.services.base_service import BaseService

Payload = dict[str, object]


class SyncService(BaseService):
    """Drains the local ``sync_queue`` to Supabase on demand.

    Parameters
    ----------
    db:
        Initialised ``DatabaseManager`` providing ``.supabase``,
        ``.sqlite``, ``.write_lock``, and ``.is_online`` access.
    logger:
        Structured JSON logger.
    """

    _BATCH_SIZE: int = 50
    _MAX_RETRY_COUNT: int = 5

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        super().__init__(logger)
        self._db: DatabaseManager = db

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def flush(self, batch_size: Optional[int] = None) -> int:
        """Replay up to *batch_size* pending rows; return how many synced.

        Returns ``0`` without touching the queue while offline.
        """
        if not self._db.is_online:
            self._logger.info(
                "Offline: %d queued change(s) left for a later sync.",
                self._db.get_pending_sync_count(),
            )
            return 0

        with self._db.write_lock:
            rows = self._db.sqlite.execute(
                """
                SELECT id, table_name, operation, entity_id, payload
                FROM sync_queue
                WHERE status = 'pending'
                ORDER BY id ASC
                LIMIT ?
                """,
                (batch_size or self._BATCH_SIZE,),
            ).fetchall()

        synced_count: int = 0
        for row in rows:
            queue_id: int = row["id"]
            try:
                payload: Payload = json.loads(row["payload"])
            except (json.JSONDecodeError, TypeError) as exc:
                self._logger.error(
                    "Malformed JSON payload in sync_queue row %d: %s", queue_id, exc
                )
                self._mark_failed(queue_id, f"Malformed JSON: {exc}")
                continue

            try:
                self._replay_operation(
                    row["table_name"], row["operation"], row["entity_id"], payload
                )
                self._mark_synced(queue_id)
                synced_count += 1
            except Exception as exc:
                self._logger.warning("Failed to sync queue row %d: %s", queue_id, exc)
                self._mark_failed(queue_id, str(exc))

        if rows:
            self._logger.info(
                "Sync flush complete: %d/%d rows synced.", synced_count, len(rows)
            )
        return synced_count

    # ------------------------------------------------------------------
    # Operation dispatcher
    # ------------------------------------------------------------------

    def _replay_operation(
        self,
        table_name: str,
        operation: str,
        entity_id: str,
        payload: Payload,
    ) -> None:
        """Replay a single queued operation to Supabase.

        ``insert`` and ``update`` carry the row (or changed columns);
        ``delete`` carries ``{"filters": {column: value-or-list}}``.

        Raises
        ------
        ValueError
            If the table or operation is not recognised.
        """
        if not self._db.is_record_set(table_name):
            raise ValueError(f"Disallowed sync target table: {table_name}")

        table = self._db.supabase.table(table_name)

        if operation == "insert":
            table.upsert(payload).execute()

        elif operation == "update":
            table.update(payload).eq("id", entity_id).execute()

        elif operation == "delete":
            filters = payload.get("filters")
            if not isinstance(filters, dict) or not filters:
                raise ValueError("Queued delete has no filters")
            query = table.delete()
            for column, value in filters.items():
                if isinstance(value, list):
                    query = query.in_(column, value)
                else:
                    query = query.eq(column, value)
            query.execute()

        else:
            raise ValueError(f"Unknown sync operation: {operation}")

    # ------------------------------------------------------------------
    # Mark helpers (direct SQLite, with write_lock)
    # ------------------------------------------------------------------

    def _mark_synced(self, queue_id: int) -> None:
        with self._db.write_lock:
            self._db.sqlite.execute(
                """
                UPDATE sync_queue
                SET status = 'synced', attempted_at = CURRENT_TIMESTAMP
                WHERE id = ?
                """,
                (queue_id,),
            )
            self._db.sqlite.commit()

    def _mark_failed(self, queue_id: int, error_message: str) -> None:
        """Record a failed attempt; give up after ``_MAX_RETRY_COUNT`` attempts."""
        with self._db.write_lock:
            row = self._db.sqlite.execute(
                "SELECT error_message FROM sync_queue WHERE id = ?", (queue_id,)
            ).fetchone()

            attempts = self._previous_attempts(row["error_message"] if row else None)
            status = (
                "permanently_failed"
                if attempts + 1 >= self._MAX_RETRY_COUNT
                else "pending"
            )
            self._db.sqlite.execute(
                """
                UPDATE sync_queue
                SET status = ?, attempted_at = CURRENT_TIMESTAMP, error_message = ?
                WHERE id = ?
                """,
                (status, f"Attempt {attempts + 1}: {error_message}", queue_id),
            )
            self._db.sqlite.commit()

    @staticmethod
    def _previous_attempts(error_message: Optional[str]) -> int:
        """Parse ``N`` out of a stored ``"Attempt N: ..."`` message."""
        if not error_message or not error_message.startswith("Attempt "):
            return 0
        head = error_message[len("Attempt "):].split(":", 1)[0]
        return int(head) if head.isdigit() else 0
