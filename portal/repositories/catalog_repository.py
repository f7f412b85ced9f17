"""
Catalog Repositories.

The catalog is a folder tree (``catalog_folders.parent_id``) whose leaves
are entries (``catalog_entries.folder_id``).  Neither link is enforced by
storage.
"""

from __future__ import annotations

from typing import Optional

from portal.database import DatabaseManager
from portal.logger import StructuredLogger
from portal.models.records import CatalogEntry, CatalogFolder
from portal.repositories.base_repository import BaseRepository


class CatalogFolderRepository(BaseRepository):
    """Data access layer for CatalogFolder entities."""

    TABLE = "catalog_folders"

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        super().__init__(db, logger)

    def add(self, folder: CatalogFolder) -> CatalogFolder:
        self._insert(self._to_row(folder), folder.id)
        return folder

    def get_by_id(self, folder_id: str) -> Optional[CatalogFolder]:
        row = self._select_one({"id": folder_id}, operation_name="get_by_id")
        return CatalogFolder(**row) if row else None

    def list_children(
        self, parent_id: str, *, strict: bool = False
    ) -> list[CatalogFolder]:
        rows = self._select(
            {"parent_id": parent_id}, operation_name="list_children", strict=strict
        )
        folders = [CatalogFolder(**row) for row in rows]
        return sorted(folders, key=lambda f: (f.sort_order, f.name))

    def delete(self, folder_id: str) -> int:
        return self._delete({"id": folder_id})


class CatalogEntryRepository(BaseRepository):
    """Data access layer for CatalogEntry entities."""

    TABLE = "catalog_entries"

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        super().__init__(db, logger)

    def add(self, entry: CatalogEntry) -> CatalogEntry:
        self._insert(self._to_row(entry), entry.id)
        return entry

    def list_by_folder(self, folder_id: str) -> list[CatalogEntry]:
        rows = self._select({"folder_id": folder_id}, operation_name="list_by_folder")
        return [CatalogEntry(**row) for row in rows]

    def delete_by_folder(self, folder_id: str) -> int:
        return self._delete({"folder_id": folder_id})
