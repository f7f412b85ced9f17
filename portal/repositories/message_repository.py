"""
Customer Message Repository.

Handles data access for messages customers leave on project folders.
"""

from __future__ import annotations

from typing import Optional

from portal.database import DatabaseManager
from portal.logger import StructuredLogger
from portal.models.records import CustomerMessage
from portal.repositories.base_repository import BaseRepository


class MessageRepository(BaseRepository):
    """Data access layer for CustomerMessage entities."""

    TABLE = "customer_messages"

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        super().__init__(db, logger)

    def add(self, message: CustomerMessage) -> CustomerMessage:
        self._insert(self._to_row(message), message.id)
        return message

    def get_by_id(self, message_id: str) -> Optional[CustomerMessage]:
        row = self._select_one({"id": message_id}, operation_name="get_by_id")
        return CustomerMessage(**row) if row else None

    def list_by_project(self, project_id: str) -> list[CustomerMessage]:
        rows = self._select({"project_id": project_id}, operation_name="list_by_project")
        return [CustomerMessage(**row) for row in rows]

    def list_by_customer(self, customer_id: str) -> list[CustomerMessage]:
        rows = self._select(
            {"customer_id": customer_id}, operation_name="list_by_customer"
        )
        return [CustomerMessage(**row) for row in rows]

    def save_status(self, message: CustomerMessage) -> None:
        """Persist the status columns of an already-advanced message."""
        row = self._to_row(message)
        self._update(
            message.id,
            {
                "status": row["status"],
                "read_at": row["read_at"],
                "resolved_at": row["resolved_at"],
            },
        )

    def delete_by_customer(self, customer_id: str) -> int:
        return self._delete({"customer_id": customer_id})

    def delete_by_project(self, project_id: str) -> int:
        return self._delete({"project_id": project_id})

    def delete_for_file(self, project_id: str, folder_path: str, file_name: str) -> int:
        """Delete the messages attached to one file of a folder.

        Folder-level messages (no ``file_name``) are left alone.
        """
        return self._delete(
            {
                "project_id": project_id,
                "folder_path": folder_path,
                "file_name": file_name,
            }
        )
