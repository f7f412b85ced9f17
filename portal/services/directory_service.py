"""
Directory Lookup Service.

Read-only view of projects, customers and staff used to address
notifications.  "Not found" is returned as ``None`` or an empty list and
is never an error.
"""

from __future__ import annotations

from typing import Optional

from portal.logger import StructuredLogger
from portal.models.directory import Customer, Project
from portal.repositories.directory_repository import (
    CustomerRepository,
    ProjectRepository,
    StaffRepository,
)
from portal.services.base_service import BaseService


class DirectoryService(BaseService):
    """Resolves ids to directory entries."""

    def __init__(
        self,
        project_repo: ProjectRepository,
        customer_repo: CustomerRepository,
        staff_repo: StaffRepository,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._project_repo = project_repo
        self._customer_repo = customer_repo
        self._staff_repo = staff_repo

    def resolve_project(self, project_id: str) -> Optional[Project]:
        project = self._project_repo.get_by_id(project_id)
        if project is None:
            self._logger.info("Project not found: %s", project_id)
        return project

    def resolve_customer(self, customer_id: str) -> Optional[Customer]:
        customer = self._customer_repo.get_by_id(customer_id)
        if customer is None:
            self._logger.info("Customer not found: %s", customer_id)
        return customer

    def list_staff_emails(self) -> list[str]:
        """Emails of every enabled staff member, de-duplicated case-insensitively."""
        seen: set[str] = set()
        emails: list[str] = []
        for member in self._staff_repo.list_enabled():
            email = member.email.strip()
            if email and email.lower() not in seen:
                seen.add(email.lower())
                emails.append(email)
        return emails
