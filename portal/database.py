"""
Store connections for the portal engine.

The portal's record sets (approvals, read receipts, messages, directory
rows, file metadata, catalog) live in Supabase and are shared with the
admin panel and the customer app.  The engine keeps a SQLite mirror of
every record set it touches:

* reads fall back to the mirror when Supabase cannot answer,
* writes and deletes made while Supabase is unreachable land in the mirror
  and are queued in ``sync_queue`` until ``SyncService.flush`` replays them.

No relation between record sets is enforced by either store.  Keeping them
consistent is the job of the cascade deletion coordinator.

Query logic lives in the repositories; this module owns the connections,
the list of record sets and a few bookkeeping queries over the mirror.

Typical wiring::

    db = DatabaseManager.from_config(get_config(), StructuredLogger(name="database"))
    initialize_schema(db.sqlite, logger)
"""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path
from typing import Optional

from supabase import create_client, Client as SupabaseClient

from portal.config import AppConfig
from portal.logger import StructuredLogger

# Record sets mirrored locally and replayable through the sync queue.
RECORD_SETS: tuple[str, ...] = (
    "customers",
    "staff",
    "projects",
    "project_files",
    "report_approvals",
    "file_read_status",
    "customer_messages",
    "catalog_folders",
    "catalog_entries",
)


class DatabaseManager:
    """Optional Supabase client plus the mandatory SQLite mirror.

    With an empty URL or key the engine runs offline: ``supabase`` raises
    ``RuntimeError``, which every repository treats as "use the mirror".
    """

    def __init__(
        self,
        supabase_url: str,
        supabase_key: str,
        sqlite_path: Path,
        logger: StructuredLogger,
    ) -> None:
        self._logger: StructuredLogger = logger
        self._write_lock: threading.RLock = threading.RLock()
        self._supabase: Optional[SupabaseClient] = self._open_supabase(
            supabase_url, supabase_key
        )
        self._sqlite_conn: sqlite3.Connection = self._open_mirror(sqlite_path)
        self._closed: bool = False

    @classmethod
    def from_config(cls, config: AppConfig, logger: StructuredLogger) -> DatabaseManager:
        return cls(
            supabase_url=config.SUPABASE_URL,
            supabase_key=config.SUPABASE_ANON_KEY.get_secret_value(),
            sqlite_path=config.sqlite_path,
            logger=logger,
        )

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    @property
    def supabase(self) -> SupabaseClient:
        """The Supabase client.

        Raises:
            RuntimeError: When the engine runs offline.
        """
        if self._supabase is None:
            raise RuntimeError(
                "Supabase client is not initialised. "
                "The engine is running in offline mode."
            )
        return self._supabase

    @property
    def is_online(self) -> bool:
        return self._supabase is not None

    @property
    def sqlite(self) -> sqlite3.Connection:
        return self._sqlite_conn

    @property
    def write_lock(self) -> threading.RLock:
        """Serialises every mirror write and its ``commit()``."""
        return self._write_lock

    # ------------------------------------------------------------------
    # Mirror bookkeeping
    # ------------------------------------------------------------------

    @staticmethod
    def is_record_set(name: str) -> bool:
        return name in RECORD_SETS

    def mirror_counts(self) -> dict[str, int]:
        """Row count of every record set in the local mirror."""
        counts: dict[str, int] = {}
        with self._write_lock:
            for table in RECORD_SETS:
                row = self._sqlite_conn.execute(
                    f"SELECT COUNT(*) AS cnt FROM {table}"
                ).fetchone()
                counts[table] = int(row["cnt"])
        return counts

    def queue_counts(self) -> dict[str, int]:
        """``sync_queue`` rows per status (``pending``, ``synced``, ...).

        Empty when the queue table does not exist yet.
        """
        with self._write_lock:
            try:
                rows = self._sqlite_conn.execute(
                    "SELECT status, COUNT(*) AS cnt FROM sync_queue GROUP BY status"
                ).fetchall()
            except sqlite3.Error:
                self._logger.debug("sync_queue not readable yet", exc_info=True)
                return {}
        return {row["status"]: int(row["cnt"]) for row in rows}

    def get_pending_sync_count(self) -> int:
        return self.queue_counts().get("pending", 0)

    def close(self) -> None:
        """Close the mirror connection.  Repeated calls do nothing."""
        with self._write_lock:
            if self._closed:
                return
            self._sqlite_conn.close()
            self._closed = True
            self._logger.info("SQLite connection closed.")

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _open_supabase(self, url: str, key: str) -> Optional[SupabaseClient]:
        if not (url and key):
            self._logger.warning(
                "Supabase credentials not configured; the mirror is the only store."
            )
            return None
        try:
            client = create_client(url, key)
        except (ValueError, TypeError) as exc:
            self._logger.warning(
                "Supabase credentials rejected (%s); running offline.", exc
            )
            return None
        except Exception as exc:
            self._logger.error(
                "Supabase client could not be created (%s); running offline.",
                exc,
                exc_info=True,
            )
            return None
        self._logger.info("Supabase client initialized.")
        return client

    def _open_mirror(self, path: Path) -> sqlite3.Connection:
        """Open (or create) the SQLite mirror in WAL mode.

        Raises:
            PermissionError: If the file or its directory is not writable.
        """
        try:
            conn = sqlite3.connect(str(path), check_same_thread=False)
        except PermissionError as exc:
            msg = f"Cannot open the local mirror at '{path}': {exc}"
            self._logger.error(msg)
            raise PermissionError(msg) from exc
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL;")
        self._logger.info("SQLite mirror opened at %s", path)
        return conn
