"""
Project File Repository.

Metadata rows for files held in object storage.  The payload itself lives
in the storage bucket under ``storage_id``.
"""

from __future__ import annotations

from typing import Optional

from portal.database import DatabaseManager
from portal.logger import StructuredLogger
from portal.models.records import ProjectFile
from portal.repositories.base_repository import BaseRepository


class FileRepository(BaseRepository):
    """Data access layer for ProjectFile entities."""

    TABLE = "project_files"

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        super().__init__(db, logger)

    def add(self, project_file: ProjectFile) -> ProjectFile:
        self._insert(self._to_row(project_file), project_file.id)
        return project_file

    def get(
        self, project_id: str, file_id: str, *, strict: bool = False
    ) -> Optional[ProjectFile]:
        """Fetch one file, scoped to its project."""
        row = self._select_one(
            {"id": file_id, "project_id": project_id},
            operation_name="get",
            strict=strict,
        )
        return ProjectFile(**row) if row else None

    def list_by_project(
        self, project_id: str, *, strict: bool = False
    ) -> list[ProjectFile]:
        rows = self._select(
            {"project_id": project_id}, operation_name="list_by_project", strict=strict
        )
        return [ProjectFile(**row) for row in rows]

    def delete(self, file_id: str) -> int:
        return self._delete({"id": file_id})
