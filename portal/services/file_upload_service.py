"""
File Upload Service.

Runs after the raw bytes have landed in object storage:

1. store the file metadata row,
2. stamp a pending approval when the file is a report,
3. fire the upload notification.

Step 3 is best effort; a failed or skipped notification never fails the
upload.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from portal.logger import StructuredLogger
from portal.models.approval import ApprovalRecord
from portal.models.records import ProjectFile
from portal.models.service_models import (
    RouteResult,
    ServiceResult,
    UploadEvent,
    UploadOutcome,
)
from portal.repositories.file_repository import FileRepository
from portal.services.approval_service import ApprovalService
from portal.services.base_service import BaseService
from portal.services.directory_service import DirectoryService
from portal.services.notification_router import NotificationRouter
from portal.utils.audit import log_audit_event


def storage_path(project_id: str, folder_path: str, file_name: str) -> str:
    """Full storage path ``projects/<project>/<folder>/<file>``."""
    return "/".join(
        part.strip("/")
        for part in ("projects", project_id, folder_path, file_name)
        if part.strip("/")
    )


class FileUploadService(BaseService):
    """Registers uploaded files and triggers their side effects."""

    def __init__(
        self,
        file_repo: FileRepository,
        directory: DirectoryService,
        approval_service: ApprovalService,
        router: NotificationRouter,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._file_repo = file_repo
        self._directory = directory
        self._approvals = approval_service
        self._router = router

    def register_upload(
        self,
        project_id: str,
        folder_path: str,
        file_name: str,
        storage_id: Optional[str] = None,
        uploaded_by: Optional[str] = None,
        uploaded_at: Optional[datetime] = None,
    ) -> ServiceResult[UploadOutcome]:
        project = self._directory.resolve_project(project_id)
        if project is None:
            return ServiceResult(
                success=False, error="Project not found.", status_code=404
            )

        uploaded_at = uploaded_at or datetime.now(timezone.utc)
        file_path = storage_path(project_id, folder_path, file_name)
        project_file = ProjectFile(
            project_id=project_id,
            folder_path=folder_path,
            file_name=file_name,
            file_path=file_path,
            storage_id=storage_id or file_path,
            uploaded_at=uploaded_at,
            uploaded_by=uploaded_by,
        )
        self._file_repo.add(project_file)
        log_audit_event(
            logger=self._logger,
            action="FILE_UPLOADED",
            entity_type="ProjectFile",
            entity_id=project_file.id,
            user_id=uploaded_by or "system",
            details={"project_id": project_id, "file_path": file_path},
        )

        approval: Optional[ApprovalRecord] = None
        is_report = self._approvals.is_report_folder(folder_path)
        if is_report and project.customer_id:
            approval = self._approvals.record_upload(
                project_id, project.customer_id, file_path, folder_path, uploaded_at
            )

        notification: Optional[RouteResult] = None
        try:
            notification = self._router.route(
                UploadEvent(
                    project_id=project_id,
                    file_path=file_path,
                    folder_path=folder_path,
                    file_name=file_name,
                    is_report=is_report,
                    uploaded_at=uploaded_at,
                )
            )
        except Exception as email_err:
            self._logger.error(
                "File registered, but upload notification failed: %s", str(email_err)
            )

        return ServiceResult(
            success=True,
            data=UploadOutcome(
                file=project_file, approval=approval, notification=notification
            ),
            status_code=201,
        )
