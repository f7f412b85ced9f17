"""
Report Approval Models.

``ApprovalRecord`` is one raw row of the ``report_approvals`` record set.
Several rows may describe the same logical file; ``EffectiveApproval`` is
the single view the reconciler derives from all of them.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from portal.models.enums import ApprovalStatus
from portal.utils.paths import basename


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive timestamps as UTC so every comparison is well-defined."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ApprovalRecord(BaseModel):
    """One raw approval entry for an uploaded report."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    project_id: str
    customer_id: str
    file_path: str
    status: ApprovalStatus = ApprovalStatus.PENDING
    uploaded_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    auto_approve_deadline: Optional[datetime] = None

    model_config = {"from_attributes": True, "frozen": True}

    @field_validator("uploaded_at", "approved_at", "auto_approve_deadline")
    @classmethod
    def _normalise_tz(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @property
    def file_name(self) -> str:
        return basename(self.file_path)

    @property
    def observed_at(self) -> Optional[datetime]:
        """Timestamp used to order records of equal rank."""
        return self.approved_at or self.uploaded_at


class EffectiveApproval(BaseModel):
    """Display-time status of one logical file.

    ``derived`` is ``True`` when the status was lazily promoted to
    ``auto-approved`` because the deadline passed; the underlying record is
    still ``pending`` in storage.
    """

    project_id: str
    customer_id: str
    file_name: str
    file_path: str
    status: ApprovalStatus
    approved_at: Optional[datetime] = None
    pending_until: Optional[datetime] = None
    record_id: Optional[str] = None
    derived: bool = False

    model_config = {"frozen": True}


class ApprovalOverviewItem(BaseModel):
    """Effective approval enriched with directory data for listings."""

    approval: EffectiveApproval
    project_name: str = "Unknown Project"
    customer_number: Optional[str] = None
    customer_email: Optional[str] = None


class ApprovalOverview(BaseModel):
    """Filtered approvals listing with the counters shown above it."""

    items: list[ApprovalOverviewItem] = Field(default_factory=list)
    total: int = 0
    pending_count: int = 0
    approved_count: int = 0
