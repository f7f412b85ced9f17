"""
Directory Models.

Projects, customers and staff members as the engine sees them.  All
contact fields are optional: a missing email or name is an expected state
that leads to a soft skip, never a validation error.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, field_validator


def _blank_to_none(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


class Project(BaseModel):
    id: str
    customer_id: Optional[str] = None
    name: str = "Unknown Project"
    project_number: Optional[str] = None

    model_config = {"from_attributes": True}

    @field_validator("customer_id", "project_number")
    @classmethod
    def _strip(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)


class Customer(BaseModel):
    """A customer account, keyed by its auth uid."""

    id: str
    customer_number: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    enabled: bool = True

    model_config = {"from_attributes": True}

    @field_validator("customer_number", "name", "email")
    @classmethod
    def _strip(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)

    @property
    def display_name(self) -> str:
        return self.name or self.customer_number or "Customer"


class StaffMember(BaseModel):
    """Admin panel user that receives customer-side notifications."""

    id: str
    email: str
    full_name: str = ""
    enabled: bool = True

    model_config = {"from_attributes": True}
