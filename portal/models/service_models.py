"""
Service Layer Data Transfer Objects.

Pydantic models for validated input/output at service boundaries.
"""

from __future__ import annotations

from datetime import datetime
from typing import Generic, Optional, TypeVar

from pydantic import AliasChoices, BaseModel, Field, field_validator

from portal.models.approval import ApprovalRecord, ensure_utc
from portal.models.enums import ParentKind, SkipReason, UploadDirection
from portal.models.records import ProjectFile

T = TypeVar("T")

__all__ = [
    "CascadeReport",
    "CascadeStep",
    "RouteResult",
    "ServiceResult",
    "UploadEvent",
    "UploadOutcome",
]


# ---------------------------------------------------------------------------
# Notification models
# ---------------------------------------------------------------------------

class UploadEvent(BaseModel):
    """Payload of the upload notification trigger.

    Accepts the camelCase keys the upload flow posts as well as snake_case.
    """

    project_id: str = Field(
        validation_alias=AliasChoices("project_id", "projectId"), min_length=1
    )
    file_path: str = Field(
        validation_alias=AliasChoices("file_path", "filePath"), min_length=1
    )
    folder_path: str = Field(
        validation_alias=AliasChoices("folder_path", "folderPath"), min_length=1
    )
    file_name: str = Field(
        validation_alias=AliasChoices("file_name", "fileName"), min_length=1
    )
    is_report: bool = Field(
        default=False, validation_alias=AliasChoices("is_report", "isReport")
    )
    uploaded_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("uploaded_at", "uploadedAt")
    )

    model_config = {"populate_by_name": True, "str_strip_whitespace": True}

    @field_validator("uploaded_at")
    @classmethod
    def _normalise_tz(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @property
    def folder_name(self) -> str:
        return self.folder_path.rstrip("/").rsplit("/", 1)[-1] or self.folder_path


class RouteResult(BaseModel):
    """Outcome of one notification attempt.

    ``success`` is only ``True`` when the transport accepted the message.
    ``skipped`` marks intentional non-sends (missing data, no config).
    """

    success: bool
    skipped: bool = False
    reason: Optional[SkipReason] = None
    direction: Optional[UploadDirection] = None
    recipients: list[str] = Field(default_factory=list)

    @classmethod
    def skip(
        cls, reason: SkipReason, direction: Optional[UploadDirection] = None
    ) -> RouteResult:
        return cls(success=False, skipped=True, reason=reason, direction=direction)


# ---------------------------------------------------------------------------
# Cascade models
# ---------------------------------------------------------------------------

class CascadeStep(BaseModel):
    """One fan-out delete against a single record set."""

    collection: str
    key: str
    deleted: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class CascadeReport(BaseModel):
    """Everything a cascade run touched.

    ``parent_deleted`` stays ``False`` when any dependent step failed; the
    parent row is kept so that re-running the cascade can find the leftovers.
    """

    kind: ParentKind
    parent_id: str
    steps: list[CascadeStep] = Field(default_factory=list)
    children: list[CascadeReport] = Field(default_factory=list)
    parent_deleted: bool = False

    @property
    def failed_steps(self) -> list[CascadeStep]:
        failed = [s for s in self.steps if not s.ok]
        for child in self.children:
            failed.extend(child.failed_steps)
        return failed

    @property
    def complete(self) -> bool:
        return self.parent_deleted and not self.failed_steps

    @property
    def total_deleted(self) -> int:
        return sum(s.deleted for s in self.steps) + sum(
            c.total_deleted for c in self.children
        )


# ---------------------------------------------------------------------------
# Generic service models
# ---------------------------------------------------------------------------

class ServiceResult(BaseModel, Generic[T]):
    """
    Standard service return envelope.

    All public service methods that face a caller return this, so the CLI
    and any HTTP adapter can map ``status_code`` directly.
    """

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    status_code: int = 200


# ---------------------------------------------------------------------------
# Upload orchestration
# ---------------------------------------------------------------------------

class UploadOutcome(BaseModel):
    """What registering one uploaded file produced."""

    file: ProjectFile
    approval: Optional[ApprovalRecord] = None
    notification: Optional[RouteResult] = None
