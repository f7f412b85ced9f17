"""
Approval Service.

Stamps approval records when reports are uploaded and answers "what is the
status of this report right now?" by reconciling every stored row.

Nothing here writes an effective status back: an overdue pending record is
only *displayed* as auto-approved.
"""

from __future__ import annotations

from datetime import datetime, timezone
from functools import reduce
from typing import Optional

from portal.config import AppConfig
from portal.logger import StructuredLogger
from portal.models.approval import (
    ApprovalOverview,
    ApprovalOverviewItem,
    ApprovalRecord,
    EffectiveApproval,
    ensure_utc,
)
from portal.models.enums import ApprovalStatus
from portal.models.service_models import ServiceResult
from portal.repositories.approval_repository import ApprovalRepository
from portal.repositories.directory_repository import (
    CustomerRepository,
    ProjectRepository,
)
from portal.services.approval_reconciler import merge, reconcile, reconcile_all
from portal.services.base_service import BaseService
from portal.services.deadlines import add_business_days
from portal.utils.audit import log_audit_event
from portal.utils.paths import basename, is_under


class ApprovalService(BaseService):
    """Report approval lifecycle: stamp on upload, reconcile on read."""

    def __init__(
        self,
        approval_repo: ApprovalRepository,
        project_repo: ProjectRepository,
        customer_repo: CustomerRepository,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._approval_repo = approval_repo
        self._project_repo = project_repo
        self._customer_repo = customer_repo
        self._config = config

    # ------------------------------------------------------------------
    # Upload side
    # ------------------------------------------------------------------

    def is_report_folder(self, folder_path: str) -> bool:
        return is_under(folder_path, self._config.REPORTS_FOLDER)

    def deadline_for(self, uploaded_at: datetime) -> datetime:
        """Auto-approval deadline for a report uploaded at *uploaded_at*."""
        return add_business_days(
            ensure_utc(uploaded_at), self._config.AUTO_APPROVE_BUSINESS_DAYS
        )

    def record_upload(
        self,
        project_id: str,
        customer_id: str,
        file_path: str,
        folder_path: str,
        uploaded_at: Optional[datetime] = None,
    ) -> Optional[ApprovalRecord]:
        """Create the pending approval record for a freshly uploaded report.

        Uploads outside the reports folder create nothing and return ``None``.
        The deadline is fixed here and never recomputed.
        """
        if not self.is_report_folder(folder_path):
            return None

        uploaded_at = ensure_utc(uploaded_at) or datetime.now(timezone.utc)
        record = ApprovalRecord(
            project_id=project_id,
            customer_id=customer_id,
            file_path=file_path,
            status=ApprovalStatus.PENDING,
            uploaded_at=uploaded_at,
            auto_approve_deadline=self.deadline_for(uploaded_at),
        )
        self._approval_repo.add(record)

        log_audit_event(
            logger=self._logger,
            action="APPROVAL_STAMPED",
            entity_type="ReportApproval",
            entity_id=record.id,
            details={
                "project_id": project_id,
                "customer_id": customer_id,
                "file_name": record.file_name,
                "auto_approve_deadline": record.auto_approve_deadline.isoformat(),
            },
            conn=self._approval_repo.sqlite,
        )
        return record

    def stored_deadline(
        self, project_id: str, customer_id: str, file_path: str
    ) -> Optional[datetime]:
        """Deadline of the winning stored record for the file, if any."""
        records = self._approval_repo.list_for_file(project_id, customer_id, file_path)
        if not records:
            return None
        return reduce(merge, records).auto_approve_deadline

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def get_effective_status(
        self,
        project_id: str,
        customer_id: str,
        file_path: str,
        now: Optional[datetime] = None,
    ) -> EffectiveApproval:
        """Effective status of one report.  No stored rows means ``pending``."""
        now = ensure_utc(now) or datetime.now(timezone.utc)
        records = self._approval_repo.list_for_file(project_id, customer_id, file_path)
        effective = reconcile(records, now)
        if effective is not None:
            return effective
        return EffectiveApproval(
            project_id=project_id,
            customer_id=customer_id,
            file_name=basename(file_path),
            file_path=file_path,
            status=ApprovalStatus.PENDING,
        )

    def list_overview(
        self,
        now: Optional[datetime] = None,
        project_id: Optional[str] = None,
        status: Optional[ApprovalStatus] = None,
        search: Optional[str] = None,
    ) -> ServiceResult[ApprovalOverview]:
        """Reconcile every stored approval and return the filtered listing.

        Args:
            now: Reference time for deadline projection (defaults to now).
            project_id: Only this project.
            status: Only this *effective* status.
            search: Case-insensitive substring over customer number, customer
                email, project name and file name.
        """
        now = ensure_utc(now) or datetime.now(timezone.utc)
        try:
            effective = reconcile_all(self._approval_repo.list_all(), now)
            project_names = {p.id: p.name for p in self._project_repo.list_all()}
            customers = {c.id: c for c in self._customer_repo.list_all()}

            items: list[ApprovalOverviewItem] = []
            for approval in effective.values():
                customer = customers.get(approval.customer_id)
                items.append(
                    ApprovalOverviewItem(
                        approval=approval,
                        project_name=project_names.get(
                            approval.project_id, "Unknown Project"
                        ),
                        customer_number=customer.customer_number if customer else None,
                        customer_email=customer.email if customer else None,
                    )
                )

            if project_id:
                items = [i for i in items if i.approval.project_id == project_id]
            if status:
                items = [i for i in items if i.approval.status == status]
            term = (search or "").strip().lower()
            if term:
                items = [i for i in items if _matches(i, term)]

            items.sort(
                key=lambda i: (i.project_name.lower(), i.approval.file_name.lower())
            )
            return ServiceResult(
                success=True,
                data=ApprovalOverview(
                    items=items,
                    total=len(items),
                    pending_count=sum(
                        1 for i in items if i.approval.status == ApprovalStatus.PENDING
                    ),
                    approved_count=sum(
                        1 for i in items if i.approval.status.is_terminal
                    ),
                ),
            )
        except Exception as exc:
            self._logger.error(
                "Error building approvals overview: %s", str(exc), exc_info=True
            )
            return ServiceResult(
                success=False,
                error=f"Database error: {str(exc)}",
                status_code=500,
            )


def _matches(item: ApprovalOverviewItem, term: str) -> bool:
    haystack = (
        item.customer_number or "",
        item.customer_email or "",
        item.project_name,
        item.approval.file_name,
    )
    return any(term in value.lower() for value in haystack)
