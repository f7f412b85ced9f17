"""
Shared Enumerations for portal models.

StrEnum values compare equal to their string equivalents, so values read
back from Supabase or SQLite (``"auto-approved"``) match without mapping.
"""

from __future__ import annotations
from enum import StrEnum


class ApprovalStatus(StrEnum):
    """Report approval states.

    ``APPROVED`` and ``AUTO_APPROVED`` are terminal; a record never moves
    back to ``PENDING``.
    """

    PENDING = "pending"
    APPROVED = "approved"
    AUTO_APPROVED = "auto-approved"

    @property
    def is_terminal(self) -> bool:
        return self is not ApprovalStatus.PENDING


class MessageStatus(StrEnum):
    """Customer message states, ordered: unread → read → resolved."""

    UNREAD = "unread"
    READ = "read"
    RESOLVED = "resolved"

    @property
    def rank(self) -> int:
        return _MESSAGE_ORDER.index(self)


_MESSAGE_ORDER: tuple[MessageStatus, ...] = (
    MessageStatus.UNREAD,
    MessageStatus.READ,
    MessageStatus.RESOLVED,
)


class UploadDirection(StrEnum):
    """Who uploaded a file, and therefore who gets told about it.

    ``UPLOAD_BY_CUSTOMER`` notifies staff; ``UPLOAD_BY_STAFF`` notifies the
    project's customer.
    """

    UPLOAD_BY_CUSTOMER = "upload_by_customer"
    UPLOAD_BY_STAFF = "upload_by_staff"


class SkipReason(StrEnum):
    """Why a notification was not sent (or not delivered)."""

    NO_EMAIL = "no_email"
    PROJECT_NOT_FOUND = "project_not_found"
    CUSTOMER_NOT_FOUND = "customer_not_found"
    NO_RECIPIENTS = "no_recipients"
    EMAIL_NOT_CONFIGURED = "email_not_configured"
    TRANSPORT_ERROR = "transport_error"
    INTERNAL_ERROR = "internal_error"


class ParentKind(StrEnum):
    """Entity kinds the cascade deletion coordinator can remove."""

    CUSTOMER = "customer"
    PROJECT = "project"
    FILE = "file"
    FOLDER = "folder"
