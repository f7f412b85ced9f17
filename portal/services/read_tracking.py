"""
File Read Tracking Service.

Records that a reader opened a file.  A receipt's existence is the whole
signal, so marking an already-read file again is a no-op.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from portal.logger import StructuredLogger
from portal.models.records import ReadReceipt
from portal.repositories.read_receipt_repository import ReadReceiptRepository
from portal.services.base_service import BaseService


class ReadTrackingService(BaseService):
    def __init__(self, receipt_repo: ReadReceiptRepository, logger: StructuredLogger) -> None:
        super().__init__(logger)
        self._receipt_repo = receipt_repo

    def is_read(self, project_id: str, file_path: str, reader_id: str) -> bool:
        return self._receipt_repo.has_read(project_id, file_path, reader_id)

    def mark_read(
        self,
        project_id: str,
        file_path: str,
        reader_id: str,
        now: Optional[datetime] = None,
    ) -> Optional[ReadReceipt]:
        """Append a receipt unless one exists; return the new receipt or ``None``."""
        if self.is_read(project_id, file_path, reader_id):
            return None
        receipt = ReadReceipt(
            project_id=project_id,
            file_path=file_path,
            reader_id=reader_id,
            read_at=now or datetime.now(timezone.utc),
        )
        self._receipt_repo.add(receipt)
        self._logger.debug("Marked %s read by %s", file_path, reader_id)
        return receipt
