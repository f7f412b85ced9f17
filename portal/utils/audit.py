"""
Structured Audit Logging Utility.

Every state change the engine performs (approval stamped, message moved
forward, cascade step, email sent) is emitted as one validated JSON audit
event, and optionally persisted to the ``audit_log`` table.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from typing import Optional, Union

from pydantic import BaseModel, Field

from portal.logger import StructuredLogger

__all__ = ["AuditEvent", "log_audit_event", "persist_audit_event"]

# Scalars only: nested structures should be modelled, not smuggled through
# the audit log.
DetailValue = Union[str, int, float, bool, None]


class AuditEvent(BaseModel):
    """Schema-validated representation of a single audit trail entry."""

    timestamp: str
    action: str
    entity_type: str
    entity_id: str
    user_id: str
    details: dict[str, DetailValue] = Field(default_factory=dict)


def _build_event(
    action: str,
    entity_type: str,
    entity_id: str,
    user_id: str,
    details: Optional[dict[str, DetailValue]],
) -> AuditEvent:
    return AuditEvent(
        timestamp=datetime.now(timezone.utc).isoformat(),
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        user_id=user_id,
        details=details or {},
    )


def log_audit_event(
    logger: StructuredLogger,
    action: str,
    entity_type: str,
    entity_id: str,
    user_id: str = "system",
    details: Optional[dict[str, DetailValue]] = None,
    conn: Optional[sqlite3.Connection] = None,
) -> None:
    """Log a structured JSON audit event, with optional SQLite persistence.

    Args:
        logger: The logger instance to write to.
        action: What happened (e.g. ``"APPROVAL_STAMPED"``,
            ``"CASCADE_STEP"``, ``"EMAIL_SENT"``).
        entity_type: Type of entity affected (e.g. ``"ReportApproval"``).
        entity_id: Primary key of the affected entity.
        user_id: Actor; ``"system"`` for engine-initiated changes.
        details: Optional flat context.
        conn: When provided, the event is also written to ``audit_log``.
            Persistence errors are logged and never propagate.
    """
    event = _build_event(action, entity_type, entity_id, user_id, details)
    logger.info("AUDIT: %s", json.dumps(event.model_dump(), default=str))

    if conn is not None:
        try:
            persist_audit_event(conn, event)
        except sqlite3.Error as db_err:
            logger.warning("Failed to persist audit event to SQLite: %s", db_err)


def persist_audit_event(conn: sqlite3.Connection, event: AuditEvent) -> None:
    """Write an already-validated audit event to the ``audit_log`` table."""
    conn.execute(
        """
        INSERT INTO audit_log (timestamp, action, entity_type, entity_id, user_id, details)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (
            event.timestamp,
            event.action,
            event.entity_type,
            event.entity_id,
            event.user_id,
            json.dumps(event.details, default=str),
        ),
    )
    conn.commit()
