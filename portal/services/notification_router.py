"""
Notification Router.

Decides who hears about an upload and what they are told:

- a file in the customer upload zone was put there by the customer, so
  every enabled staff member gets one joint email written in the
  customer's name;
- anything else was put there by staff, so the project's customer gets an
  email; reports additionally carry the auto-approval deadline.

Notifications are best effort.  Missing directory data and an unconfigured
transport become soft skips, transport failures are logged and reported,
and nothing here ever raises into the upload flow.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Mapping, Optional

from pydantic import ValidationError

from portal.config import AppConfig
from portal.logger import StructuredLogger
from portal.models.directory import Customer, Project
from portal.models.enums import SkipReason, UploadDirection
from portal.models.records import CustomerMessage
from portal.models.service_models import RouteResult, ServiceResult, UploadEvent
from portal.services import email_templates
from portal.services.approval_service import ApprovalService
from portal.services.base_service import BaseService
from portal.services.directory_service import DirectoryService
from portal.services.email_service import EmailService
from portal.services.email_templates import EmailContent
from portal.utils.paths import is_under


class NotificationRouter(BaseService):
    """Routes upload and message notifications to staff or customers."""

    def __init__(
        self,
        directory: DirectoryService,
        approval_service: ApprovalService,
        email_service: EmailService,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._directory = directory
        self._approvals = approval_service
        self._email = email_service
        self._config = config

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def classify(self, folder_path: str) -> UploadDirection:
        if is_under(folder_path, self._config.CUSTOMER_UPLOADS_FOLDER):
            return UploadDirection.UPLOAD_BY_CUSTOMER
        return UploadDirection.UPLOAD_BY_STAFF

    def handle_upload_notification(
        self, payload: Mapping[str, object]
    ) -> ServiceResult[RouteResult]:
        """Validate a raw trigger payload and route it.

        A malformed payload is the only hard failure (``status_code=400``);
        every other outcome is a successful envelope around a ``RouteResult``.
        """
        try:
            event = UploadEvent.model_validate(payload)
        except ValidationError as exc:
            self._logger.warning("Rejected upload notification payload: %s", exc)
            return ServiceResult(
                success=False,
                error=f"Invalid payload: {exc.error_count()} validation error(s)",
                status_code=400,
            )

        log = self._logger.bind(project_id=event.project_id, file_path=event.file_path)
        try:
            return ServiceResult(success=True, data=self.route(event))
        except Exception as exc:
            # Routing faults never fail the upload that triggered them.
            log.error(
                "Unexpected error routing upload notification: %s", exc, exc_info=True
            )
            return ServiceResult(
                success=True,
                data=RouteResult(success=False, reason=SkipReason.INTERNAL_ERROR),
            )

    def route(self, event: UploadEvent) -> RouteResult:
        direction = self.classify(event.folder_path)

        project = self._directory.resolve_project(event.project_id)
        if project is None:
            return RouteResult.skip(SkipReason.PROJECT_NOT_FOUND, direction)
        if not project.customer_id:
            self._logger.info("Project %s has no customer id", project.id)
            return RouteResult.skip(SkipReason.CUSTOMER_NOT_FOUND, direction)

        customer = self._directory.resolve_customer(project.customer_id)

        if direction is UploadDirection.UPLOAD_BY_CUSTOMER:
            return self._notify_staff_of_upload(event, project, customer)
        return self._notify_customer_of_upload(event, project, customer)

    def notify_customer_message(self, message: CustomerMessage) -> RouteResult:
        """Tell every enabled staff member about a message a customer posted."""
        project = self._directory.resolve_project(message.project_id)
        if project is None:
            return RouteResult.skip(SkipReason.PROJECT_NOT_FOUND)

        recipients = self._directory.list_staff_emails()
        if not recipients:
            return RouteResult.skip(SkipReason.NO_RECIPIENTS)

        customer = self._directory.resolve_customer(message.customer_id)
        content = email_templates.customer_message_for_staff(
            message, project, self._config.COMPANY_NAME
        )
        return self._send(
            recipients,
            content,
            direction=None,
            sender_name=customer.display_name if customer else None,
            reply_to=customer.email if customer else None,
        )

    # ------------------------------------------------------------------
    # Direction handlers
    # ------------------------------------------------------------------

    def _notify_staff_of_upload(
        self,
        event: UploadEvent,
        project: Project,
        customer: Optional[Customer],
    ) -> RouteResult:
        direction = UploadDirection.UPLOAD_BY_CUSTOMER
        recipients = self._directory.list_staff_emails()
        if not recipients:
            self._logger.info("No enabled staff emails; skipping upload notification")
            return RouteResult.skip(SkipReason.NO_RECIPIENTS, direction)

        content = email_templates.customer_upload_for_staff(
            customer,
            project,
            event.folder_name,
            event.file_name,
            admin_panel_url=self._config.ADMIN_PANEL_URL,
            company_name=self._config.COMPANY_NAME,
        )
        return self._send(
            recipients,
            content,
            direction=direction,
            sender_name=customer.display_name if customer else "Customer",
            reply_to=customer.email if customer else None,
        )

    def _notify_customer_of_upload(
        self,
        event: UploadEvent,
        project: Project,
        customer: Optional[Customer],
    ) -> RouteResult:
        direction = UploadDirection.UPLOAD_BY_STAFF
        if customer is None:
            return RouteResult.skip(SkipReason.CUSTOMER_NOT_FOUND, direction)
        if not customer.email:
            self._logger.info(
                "Customer %s has no email stored; skipping notification", customer.id
            )
            return RouteResult.skip(SkipReason.NO_EMAIL, direction)

        deadline: Optional[datetime] = None
        if event.is_report or self._approvals.is_report_folder(event.folder_path):
            deadline = self._approvals.stored_deadline(
                project.id, customer.id, event.file_path
            ) or self._approvals.deadline_for(
                event.uploaded_at or datetime.now(timezone.utc)
            )

        content = email_templates.staff_upload_for_customer(
            customer,
            project,
            event.folder_name,
            event.file_name,
            portal_url=self._config.PORTAL_URL,
            company_name=self._config.COMPANY_NAME,
            deadline=deadline,
            business_days=self._config.AUTO_APPROVE_BUSINESS_DAYS,
        )
        return self._send([customer.email], content, direction=direction)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _send(
        self,
        recipients: list[str],
        content: EmailContent,
        direction: Optional[UploadDirection],
        sender_name: Optional[str] = None,
        reply_to: Optional[str] = None,
    ) -> RouteResult:
        if not self._email.is_configured:
            self._logger.warning("Email transport not configured; skipping send")
            return RouteResult.skip(SkipReason.EMAIL_NOT_CONFIGURED, direction)

        try:
            result = self._email.send_email(
                recipients,
                content.subject,
                content.html,
                content.text,
                sender_name=sender_name,
                reply_to=reply_to,
            )
        except Exception as exc:
            self._logger.error(
                "Email transport raised for %s: %s", ", ".join(recipients), exc,
                exc_info=True,
            )
            return RouteResult(
                success=False,
                reason=SkipReason.TRANSPORT_ERROR,
                direction=direction,
                recipients=recipients,
            )

        if not result.success:
            self._logger.error(
                "Email transport failed for %s: %s", ", ".join(recipients), result.error
            )
            return RouteResult(
                success=False,
                reason=SkipReason.TRANSPORT_ERROR,
                direction=direction,
                recipients=recipients,
            )

        return RouteResult(success=True, direction=direction, recipients=recipients)
