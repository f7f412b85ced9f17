"""
Centralized SQLite Schema Initialization.

Defines the local mirror of every portal record set and provides a single
entry-point -- :func:`initialize_schema` -- that creates all tables
idempotently.  A ``schema_version`` row records which layout the file was
created with.

Every record set is flat and independently keyed.  There are deliberately
no ``FOREIGN KEY`` clauses: the document store upstream has none either,
and cross-collection cleanup is the cascade deletion coordinator's job.

Usage::

    import sqlite3
    from portal.logger import StructuredLogger
    from portal.schema import initialize_schema

    conn = sqlite3.connect("portal_local.db")
    initialize_schema(conn, StructuredLogger(name="portal.schema"))
"""

from __future__ import annotations

import sqlite3

from portal.logger import StructuredLogger

__all__ = ["CURRENT_SCHEMA_VERSION", "initialize_schema"]

CURRENT_SCHEMA_VERSION: int = 1

_TABLE_DEFINITIONS: list[str] = [
    # -- outbound sync buffer --------------------------------------------------
    """
    CREATE TABLE IF NOT EXISTS sync_queue (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        table_name TEXT NOT NULL,
        operation TEXT NOT NULL,
        entity_id TEXT NOT NULL,
        payload TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'pending',
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        attempted_at TIMESTAMP,
        error_message TEXT
    )
    """,
    # -- persistent structured audit trail ------------------------------------
    """
    CREATE TABLE IF NOT EXISTS audit_log (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        timestamp TEXT NOT NULL,
        action TEXT NOT NULL,
        entity_type TEXT NOT NULL,
        entity_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        details TEXT DEFAULT '{}',
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    # -- directory -------------------------------------------------------------
    """
    CREATE TABLE IF NOT EXISTS customers (
        id TEXT PRIMARY KEY,
        customer_number TEXT,
        name TEXT,
        email TEXT,
        enabled INTEGER NOT NULL DEFAULT 1,
        created_at TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS staff (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL,
        full_name TEXT NOT NULL DEFAULT '',
        enabled INTEGER NOT NULL DEFAULT 1
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS projects (
        id TEXT PRIMARY KEY,
        customer_id TEXT,
        name TEXT NOT NULL DEFAULT '',
        project_number TEXT,
        created_at TEXT
    )
    """,
    # -- files and their dependents -------------------------------------------
    """
    CREATE TABLE IF NOT EXISTS project_files (
        id TEXT PRIMARY KEY,
        project_id TEXT NOT NULL,
        folder_path TEXT NOT NULL,
        file_name TEXT NOT NULL,
        file_path TEXT NOT NULL,
        storage_id TEXT,
        uploaded_at TEXT,
        uploaded_by TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS report_approvals (
        id TEXT PRIMARY KEY,
        project_id TEXT NOT NULL,
        customer_id TEXT NOT NULL,
        file_path TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'pending'
               CHECK (status IN ('pending', 'approved', 'auto-approved')),
        uploaded_at TEXT,
        approved_at TEXT,
        auto_approve_deadline TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS file_read_status (
        id TEXT PRIMARY KEY,
        project_id TEXT NOT NULL,
        file_path TEXT NOT NULL,
        reader_id TEXT NOT NULL,
        read_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS customer_messages (
        id TEXT PRIMARY KEY,
        project_id TEXT NOT NULL,
        customer_id TEXT NOT NULL,
        folder_path TEXT NOT NULL,
        file_name TEXT,
        subject TEXT,
        message TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'unread'
               CHECK (status IN ('unread', 'read', 'resolved')),
        created_at TEXT NOT NULL,
        read_at TEXT,
        resolved_at TEXT
    )
    """,
    # -- catalog tree ----------------------------------------------------------
    """
    CREATE TABLE IF NOT EXISTS catalog_folders (
        id TEXT PRIMARY KEY,
        parent_id TEXT,
        name TEXT NOT NULL,
        sort_order INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS catalog_entries (
        id TEXT PRIMARY KEY,
        folder_id TEXT NOT NULL,
        name TEXT NOT NULL,
        description TEXT
    )
    """,
]

_INDEX_DEFINITIONS: list[str] = [
    "CREATE INDEX IF NOT EXISTS idx_report_approvals_project ON report_approvals(project_id)",
    "CREATE INDEX IF NOT EXISTS idx_report_approvals_customer ON report_approvals(customer_id)",
    "CREATE INDEX IF NOT EXISTS idx_file_read_status_project ON file_read_status(project_id)",
    "CREATE INDEX IF NOT EXISTS idx_customer_messages_customer ON customer_messages(customer_id)",
    "CREATE INDEX IF NOT EXISTS idx_project_files_project ON project_files(project_id)",
    "CREATE INDEX IF NOT EXISTS idx_catalog_folders_parent ON catalog_folders(parent_id)",
    "CREATE INDEX IF NOT EXISTS idx_catalog_entries_folder ON catalog_entries(folder_id)",
    "CREATE INDEX IF NOT EXISTS idx_sync_queue_status ON sync_queue(status)",
]


def _ensure_version_table(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_version (
            id INTEGER PRIMARY KEY CHECK (id = 1),
            version INTEGER NOT NULL,
            applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
        """
    )
    conn.commit()


def _get_schema_version(conn: sqlite3.Connection) -> int:
    row = conn.execute("SELECT version FROM schema_version WHERE id = 1").fetchone()
    return int(row[0]) if row else 0


def _set_schema_version(conn: sqlite3.Connection, version: int) -> None:
    conn.execute(
        """
        INSERT INTO schema_version (id, version) VALUES (1, ?)
        ON CONFLICT(id) DO UPDATE SET version = excluded.version,
                                      applied_at = CURRENT_TIMESTAMP
        """,
        (version,),
    )


def initialize_schema(conn: sqlite3.Connection, logger: StructuredLogger) -> None:
    """Ensure the local SQLite mirror contains every record set.

    Safe to call on every startup: all DDL uses ``IF NOT EXISTS`` and the
    whole creation runs in one SQLite transaction that is rolled back on
    failure, leaving the stored version untouched for the next attempt.
    """
    _ensure_version_table(conn)
    current: int = _get_schema_version(conn)

    if current >= CURRENT_SCHEMA_VERSION:
        logger.info("Schema is up to date (version %d).", current)
        return

    try:
        for ddl in _TABLE_DEFINITIONS:
            conn.execute(ddl)
        for stmt in _INDEX_DEFINITIONS:
            conn.execute(stmt)
        _set_schema_version(conn, CURRENT_SCHEMA_VERSION)
        conn.commit()
    except sqlite3.Error:
        conn.rollback()
        logger.error(
            "Schema initialisation failed; rolled back to version %d.", current
        )
        raise

    logger.info("Schema initialised at version %d.", CURRENT_SCHEMA_VERSION)
