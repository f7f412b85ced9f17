"""
Read Receipt Repository.

Data access for ``file_read_status``.  Receipts are append-only; they are
only ever removed by the cascade deletion coordinator.
"""

from __future__ import annotations

from portal.database import DatabaseManager
from portal.logger import StructuredLogger
from portal.models.records import ReadReceipt
from portal.repositories.base_repository import BaseRepository
from portal.utils.paths import basename


class ReadReceiptRepository(BaseRepository):
    """Data access layer for ReadReceipt entities."""

    TABLE = "file_read_status"

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        super().__init__(db, logger)

    def add(self, receipt: ReadReceipt) -> ReadReceipt:
        self._insert(self._to_row(receipt), receipt.id)
        return receipt

    def list_by_project(self, project_id: str) -> list[ReadReceipt]:
        rows = self._select({"project_id": project_id}, operation_name="list_by_project")
        return [ReadReceipt(**row) for row in rows]

    def list_by_reader(self, reader_id: str) -> list[ReadReceipt]:
        rows = self._select({"reader_id": reader_id}, operation_name="list_by_reader")
        return [ReadReceipt(**row) for row in rows]

    def has_read(self, project_id: str, file_path: str, reader_id: str) -> bool:
        """``True`` when *reader_id* has a receipt for the file (basename match)."""
        name = basename(file_path)
        return any(
            basename(receipt.file_path) == name
            for receipt in self.list_by_reader(reader_id)
            if receipt.project_id == project_id
        )

    def delete_by_reader(self, reader_id: str) -> int:
        return self._delete({"reader_id": reader_id})

    def delete_by_project(self, project_id: str) -> int:
        return self._delete({"project_id": project_id})

    def delete_for_file(self, project_id: str, file_path: str) -> int:
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
