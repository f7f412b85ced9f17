"""
Report Approval Repository.

Data access for the ``report_approvals`` record set.  Storage does not
enforce one row per file, so every read returns *all* matching rows and
leaves de-duplication to the approval reconciler.
"""

from __future__ import annotations

from portal.database import DatabaseManager
from portal.logger import StructuredLogger
from portal.models.approval import ApprovalRecord
from portal.repositories.base_repository import BaseRepository
from portal.utils.paths import basename


class ApprovalRepository(BaseRepository):
    """Data access layer for ApprovalRecord entities."""

    TABLE = "report_approvals"

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        super().__init__(db, logger)

    def add(self, record: ApprovalRecord) -> ApprovalRecord:
        """Persist a new approval record (Supabase first, SQLite on failure)."""
        self._insert(self._to_row(record), record.id)
        return record

    def list_all(self) -> list[ApprovalRecord]:
        rows = self._select({}, operation_name="list_all")
        return [ApprovalRecord(**row) for row in rows]

    def list_by_project(self, project_id: str) -> list[ApprovalRecord]:
        rows = self._select({"project_id": project_id}, operation_name="list_by_project")
        return [ApprovalRecord(**row) for row in rows]

    def list_by_customer(self, customer_id: str) -> list[ApprovalRecord]:
        rows = self._select(
            {"customer_id": customer_id}, operation_name="list_by_customer"
        )
        return [ApprovalRecord(**row) for row in rows]

    def list_for_file(
        self, project_id: str, customer_id: str, file_path: str
    ) -> list[ApprovalRecord]:
        """All records describing the same logical file.

        Rows are matched on the basename of ``file_path`` because upstream
        writers store both full storage paths and bare file names.
        """
        name = basename(file_path)
        rows = self._select(
            {"project_id": project_id, "customer_id": customer_id},
            operation_name="list_for_file",
        )
        return [
            ApprovalRecord(**row)
            for row in rows
            if basename(str(row["file_path"])) == name
        ]

    def delete_by_customer(self, customer_id: str) -> int:
        return self._delete({"customer_id": customer_id})

    def delete_by_project(self, project_id: str) -> int:
        return self._delete({"project_id": project_id})

    def delete_for_file(self, project_id: str, file_path: str) -> int:
        """Delete every approval of *project_id* whose basename matches *file_path*.

        The candidate rows are read strictly: a failed read raises instead of
        reporting zero matches.
        """
        name = basename(file_path)
        rows = self._select(
            {"project_id": project_id}, operation_name="delete_for_file", strict=True
        )
        ids = [
            str(row["id"]) for row in rows if basename(str(row["file_path"])) == name
        ]
        if not ids:
            return 0
        return self._delete({"id": ids})
