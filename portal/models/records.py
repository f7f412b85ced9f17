"""
File-dependent record models.

Read receipts and customer messages reference a project file by plain
attributes; nothing in storage ties them to the file metadata row.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from portal.models.approval import ensure_utc
from portal.models.enums import MessageStatus


def _new_id() -> str:
    return str(uuid.uuid4())


class ProjectFile(BaseModel):
    """Metadata row for a file stored in object storage."""

    id: str = Field(default_factory=_new_id)
    project_id: str
    folder_path: str
    file_name: str
    file_path: str
    storage_id: Optional[str] = None
    uploaded_at: Optional[datetime] = None
    uploaded_by: Optional[str] = None

    model_config = {"from_attributes": True}

    @field_validator("uploaded_at")
    @classmethod
    def _normalise_tz(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class ReadReceipt(BaseModel):
    """A reader has opened a file.  Append-only."""

    id: str = Field(default_factory=_new_id)
    project_id: str
    file_path: str
    reader_id: str
    read_at: datetime

    model_config = {"from_attributes": True, "frozen": True}

    @field_validator("read_at")
    @classmethod
    def _normalise_tz(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class CustomerMessage(BaseModel):
    """Message a customer left on a project folder (or on one file in it)."""

    id: str = Field(default_factory=_new_id)
    project_id: str
    customer_id: str
    folder_path: str
    file_name: Optional[str] = None
    subject: Optional[str] = None
    message: str
    status: MessageStatus = MessageStatus.UNREAD
    created_at: datetime
    read_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @field_validator("created_at", "read_at", "resolved_at")
    @classmethod
    def _normalise_tz(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    def advanced_to(self, target: MessageStatus, at: datetime) -> CustomerMessage:
        """Return a copy moved forward to *target*.

        Moving to the current status returns ``self`` unchanged.  Resolving
        an unread message stamps ``read_at`` as well.

        Raises:
            ValueError: If *target* is behind the current status.
        """
        if target.rank < self.status.rank:
            raise ValueError(
                f"Cannot move message {self.id} from '{self.status}' back to '{target}'."
            )
        if target == self.status:
            return self

        at = ensure_utc(at)
        updates: dict[str, object] = {"status": target}
        if self.read_at is None:
            updates["read_at"] = at
        if target == MessageStatus.RESOLVED:
            updates["resolved_at"] = at
        return self.model_copy(update=updates)


class CatalogFolder(BaseModel):
    """Node of the catalog folder tree.  ``parent_id`` is ``None`` at the root."""

    id: str = Field(default_factory=_new_id)
    parent_id: Optional[str] = None
    name: str
    sort_order: int = 0

    model_config = {"from_attributes": True}


class CatalogEntry(BaseModel):
    """Item owned by exactly one catalog folder."""

    id: str = Field(default_factory=_new_id)
    folder_id: str
    name: str
    description: Optional[str] = None

    model_config = {"from_attributes": True}
