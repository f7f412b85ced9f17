"""Shared utility functions for the portal engine.

Convenience re-exports so consumers can import directly from
``portal.utils`` while full module imports keep working.
"""

from portal.utils.audit import AuditEvent, log_audit_event
from portal.utils.paths import basename, folder_segments, is_under

__all__ = [
    "AuditEvent",
    "basename",
    "folder_segments",
    "is_under",
    "log_audit_event",
]
