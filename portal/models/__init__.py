"""
Data Models Package.

Re-exports all Pydantic models for short imports:
    from portal.models import ApprovalRecord, EffectiveApproval, CustomerMessage
    from portal.models import ApprovalStatus, MessageStatus, UploadDirection
    from portal.models import UploadEvent, RouteResult, CascadeReport
"""

from __future__ import annotations

from portal.models.approval import (
    ApprovalOverview,
    ApprovalOverviewItem,
    ApprovalRecord,
    EffectiveApproval,
)
from portal.models.directory import Customer, Project, StaffMember
from portal.models.enums import (
    ApprovalStatus,
    MessageStatus,
    ParentKind,
    SkipReason,
    UploadDirection,
)
from portal.models.records import (
    CatalogEntry,
    CatalogFolder,
    CustomerMessage,
    ProjectFile,
    ReadReceipt,
)
from portal.models.service_models import (
    CascadeReport,
    CascadeStep,
    RouteResult,
    ServiceResult,
    UploadEvent,
    UploadOutcome,
)

__all__ = [
    "ApprovalOverview",
    "ApprovalOverviewItem",
    "ApprovalRecord",
    "ApprovalStatus",
    "CascadeReport",
    "CascadeStep",
    "CatalogEntry",
    "CatalogFolder",
    "Customer",
    "CustomerMessage",
    "EffectiveApproval",
    "MessageStatus",
    "ParentKind",
    "Project",
    "ProjectFile",
    "ReadReceipt",
    "RouteResult",
    "ServiceResult",
    "SkipReason",
    "StaffMember",
    "UploadDirection",
    "UploadEvent",
    "UploadOutcome",
]
