"""
Directory Repositories.

Projects, customers and staff.  These record sets are owned by the admin
panel; the engine reads them to address notifications and deletes them
only as the last step of a cascade.
"""

from __future__ import annotations

from typing import Optional

from portal.database import DatabaseManager
from portal.logger import StructuredLogger
from portal.models.directory import Customer, Project, StaffMember
from portal.repositories.base_repository import BaseRepository


class ProjectRepository(BaseRepository):
    """Data access layer for Project entities."""

    TABLE = "projects"

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        super().__init__(db, logger)

    def get_by_id(self, project_id: str) -> Optional[Project]:
        row = self._select_one({"id": project_id}, operation_name="get_by_id")
        return Project(**row) if row else None

    def list_all(self) -> list[Project]:
        return [Project(**row) for row in self._select({}, operation_name="list_all")]

    def list_by_customer(
        self, customer_id: str, *, strict: bool = False
    ) -> list[Project]:
        rows = self._select(
            {"customer_id": customer_id},
            operation_name="list_by_customer",
            strict=strict,
        )
        return [Project(**row) for row in rows]

    def add(self, project: Project) -> Project:
        self._insert(self._to_row(project), project.id)
        return project

    def delete(self, project_id: str) -> int:
        return self._delete({"id": project_id})


class CustomerRepository(BaseRepository):
    """Data access layer for Customer entities."""

    TABLE = "customers"

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        super().__init__(db, logger)

    def get_by_id(self, customer_id: str) -> Optional[Customer]:
        row = self._select_one({"id": customer_id}, operation_name="get_by_id")
        return Customer(**row) if row else None

    def list_all(self) -> list[Customer]:
        return [Customer(**row) for row in self._select({}, operation_name="list_all")]

    def add(self, customer: Customer) -> Customer:
        self._insert(self._to_row(customer), customer.id)
        return customer

    def delete(self, customer_id: str) -> int:
        return self._delete({"id": customer_id})


class StaffRepository(BaseRepository):
    """Data access layer for StaffMember entities."""

    TABLE = "staff"

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        super().__init__(db, logger)

    def list_enabled(self) -> list[StaffMember]:
        """Enabled staff members.

        Filtering happens in Python: SQLite stores the flag as ``1``/``0``
        while Supabase returns booleans.
        """
        rows = self._select({}, operation_name="list_enabled")
        return [m for m in (StaffMember(**row) for row in rows) if m.enabled]

    def add(self, member: StaffMember) -> StaffMember:
        self._insert(self._to_row(member), member.id)
        return member
