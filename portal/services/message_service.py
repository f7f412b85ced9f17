"""
Customer Message Service.

Customers leave messages on a project folder (optionally about a single
file).  Staff move them forward through unread -> read -> resolved; the
status never goes back.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError

from portal.logger import StructuredLogger
from portal.models.enums import MessageStatus
from portal.models.records import CustomerMessage
from portal.models.service_models import ServiceResult
from portal.repositories.message_repository import MessageRepository
from portal.services.base_service import BaseService
from portal.services.notification_router import NotificationRouter
from portal.utils.audit import log_audit_event


class MessageService(BaseService):
    """Posting customer messages and advancing their status."""

    def __init__(
        self,
        message_repo: MessageRepository,
        router: NotificationRouter,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._message_repo = message_repo
        self._router = router

    def post_message(
        self,
        project_id: str,
        customer_id: str,
        folder_path: str,
        message: str,
        file_name: Optional[str] = None,
        subject: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ServiceResult[CustomerMessage]:
        """
        Store a new unread message and notify staff.

        The notification is best effort; its outcome does not affect the
        result.  Blank required fields are rejected with ``status_code=400``.
        """
        if not (project_id.strip() and customer_id.strip() and folder_path.strip()):
            return ServiceResult(
                success=False,
                error="project_id, customer_id and folder_path are required.",
                status_code=400,
            )
        if not message.strip():
            return ServiceResult(
                success=False, error="Message text is required.", status_code=400
            )

        try:
            record = CustomerMessage(
                project_id=project_id,
                customer_id=customer_id,
                folder_path=folder_path,
                message=message,
                file_name=(file_name or "").strip() or None,
                subject=(subject or "").strip() or None,
                created_at=now or datetime.now(timezone.utc),
            )
        except ValidationError as exc:
            return ServiceResult(success=False, error=str(exc), status_code=400)

        self._message_repo.add(record)
        log_audit_event(
            logger=self._logger,
            action="MESSAGE_POSTED",
            entity_type="CustomerMessage",
            entity_id=record.id,
            user_id=customer_id,
            details={"project_id": project_id, "folder_path": folder_path},
        )

        try:
            outcome = self._router.notify_customer_message(record)
            self._logger.info(
                "Message %s notification: success=%s reason=%s",
                record.id, outcome.success, outcome.reason,
            )
        except Exception as email_err:
            self._logger.error(
                "Message stored, but staff notification failed: %s", str(email_err)
            )

        return ServiceResult(success=True, data=record, status_code=201)

    def advance_status(
        self,
        message_id: str,
        target: MessageStatus,
        now: Optional[datetime] = None,
        user_id: str = "system",
    ) -> ServiceResult[CustomerMessage]:
        """Move a message forward to *target*.

        Repeating the current status is a successful no-op; moving backward
        is rejected with ``status_code=409``.
        """
        current = self._message_repo.get_by_id(message_id)
        if current is None:
            return ServiceResult(
                success=False, error="Message not found.", status_code=404
            )

        try:
            advanced = current.advanced_to(target, now or datetime.now(timezone.utc))
        except ValueError as exc:
            return ServiceResult(success=False, error=str(exc), status_code=409)

        if advanced is current:
            return ServiceResult(success=True, data=current)

        self._message_repo.save_status(advanced)
        log_audit_event(
            logger=self._logger,
            action="MESSAGE_STATUS_CHANGED",
            entity_type="CustomerMessage",
            entity_id=message_id,
            user_id=user_id,
            details={"from": str(current.status), "to": str(advanced.status)},
            conn=self._message_repo.sqlite,
        )
        return ServiceResult(success=True, data=advanced)

    def list_for_project(self, project_id: str) -> list[CustomerMessage]:
        messages = self._message_repo.list_by_project(project_id)
        return sorted(messages, key=lambda m: m.created_at, reverse=True)
