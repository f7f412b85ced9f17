"""
Object Storage Adapter.

File payloads live in a Supabase Storage bucket; the engine only ever
removes them as part of a file cascade.  Removing a key that is not in the
bucket succeeds, which keeps cascades re-runnable.
"""

from __future__ import annotations

from typing import Protocol

from portal.config import AppConfig
from portal.database import DatabaseManager
from portal.logger import StructuredLogger
from portal.services.base_service import BaseService


class ObjectStorage(Protocol):
    def delete_object(self, storage_id: str) -> bool:
        """Remove *storage_id*; return ``True`` if something was removed."""
        ...


class SupabaseObjectStorage(BaseService):
    """``ObjectStorage`` backed by the configured Supabase Storage bucket.

    Unlike record deletes there is no offline fallback: when Supabase is
    unreachable the call raises and the cascade step is reported as failed.
    """

    def __init__(
        self,
        db: DatabaseManager,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._db = db
        self._bucket = config.SUPABASE_STORAGE_BUCKET

    def delete_object(self, storage_id: str) -> bool:
        removed = self._db.supabase.storage.from_(self._bucket).remove([storage_id])
        if removed:
            self._logger.info("Removed %s from bucket %s", storage_id, self._bucket)
            return True
        self._logger.info(
            "Object %s not present in bucket %s; nothing to remove",
            storage_id,
            self._bucket,
        )
        return False
