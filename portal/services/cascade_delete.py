"""
Cascade Deletion Coordinator.

The record sets reference each other by plain attributes and the store
offers no cross-collection transactions, so deleting a parent means
walking its dependents explicitly.

Each cascade is a fixed list of ``(record set, key)`` steps.  Steps run
independently: a failing step is logged and recorded in the
``CascadeReport`` while the remaining steps still run.  The parent row is
removed only when every dependent step (including nested cascades)
succeeded, so re-running the same cascade picks up whatever was left and
converges on the same final state.  Deleting rows that are already gone
counts as success.

Dependents are enumerated with strict reads.  A listing that cannot be
answered by either store is a failed step, never an empty list: treating
"could not read" as "no children" would delete the parent and orphan
every child.
"""

from __future__ import annotations

from typing import Callable, Optional, TypeVar

from portal.logger import StructuredLogger
from portal.models.enums import ParentKind
from portal.models.service_models import CascadeReport, CascadeStep
from portal.repositories.approval_repository import ApprovalRepository
from portal.repositories.catalog_repository import (
    CatalogEntryRepository,
    CatalogFolderRepository,
)
from portal.repositories.directory_repository import (
    CustomerRepository,
    ProjectRepository,
)
from portal.repositories.file_repository import FileRepository
from portal.repositories.message_repository import MessageRepository
from portal.repositories.read_receipt_repository import ReadReceiptRepository
from portal.services.base_service import BaseService
from portal.services.object_storage import ObjectStorage
from portal.utils.audit import log_audit_event

T = TypeVar("T")


class CascadeDeletionCoordinator(BaseService):
    """Deletes customers, projects, files and catalog folders with their dependents."""

    def __init__(
        self,
        customer_repo: CustomerRepository,
        project_repo: ProjectRepository,
        file_repo: FileRepository,
        approval_repo: ApprovalRepository,
        receipt_repo: ReadReceiptRepository,
        message_repo: MessageRepository,
        folder_repo: CatalogFolderRepository,
        entry_repo: CatalogEntryRepository,
        storage: ObjectStorage,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._customer_repo = customer_repo
        self._project_repo = project_repo
        self._file_repo = file_repo
        self._approval_repo = approval_repo
        self._receipt_repo = receipt_repo
        self._message_repo = message_repo
        self._folder_repo = folder_repo
        self._entry_repo = entry_repo
        self._storage = storage

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def delete_customer(self, customer_id: str) -> CascadeReport:
        """Remove a customer, their projects and everything keyed to them."""
        report = CascadeReport(kind=ParentKind.CUSTOMER, parent_id=customer_id)

        projects = self._collect(
            report, "projects", f"customer_id={customer_id}",
            lambda: self._project_repo.list_by_customer(customer_id, strict=True),
        )
        for project in projects or []:
            report.children.append(self.delete_project(project.id))

        self._run_step(
            report, "report_approvals", f"customer_id={customer_id}",
            lambda: self._approval_repo.delete_by_customer(customer_id),
        )
        self._run_step(
            report, "customer_messages", f"customer_id={customer_id}",
            lambda: self._message_repo.delete_by_customer(customer_id),
        )
        self._run_step(
            report, "file_read_status", f"reader_id={customer_id}",
            lambda: self._receipt_repo.delete_by_reader(customer_id),
        )
        return self._finish(
            report, "customers", lambda: self._customer_repo.delete(customer_id)
        )

    def delete_project(self, project_id: str) -> CascadeReport:
        """Remove a project, each of its files (file cascade) and its records."""
        report = CascadeReport(kind=ParentKind.PROJECT, parent_id=project_id)

        files = self._collect(
            report, "project_files", f"project_id={project_id}",
            lambda: self._file_repo.list_by_project(project_id, strict=True),
        )
        for project_file in files or []:
            report.children.append(self.delete_file(project_id, project_file.id))

        self._run_step(
            report, "file_read_status", f"project_id={project_id}",
            lambda: self._receipt_repo.delete_by_project(project_id),
        )
        self._run_step(
            report, "report_approvals", f"project_id={project_id}",
            lambda: self._approval_repo.delete_by_project(project_id),
        )
        self._run_step(
            report, "customer_messages", f"project_id={project_id}",
            lambda: self._message_repo.delete_by_project(project_id),
        )
        return self._finish(
            report, "projects", lambda: self._project_repo.delete(project_id)
        )

    def delete_file(self, project_id: str, file_id: str) -> CascadeReport:
        """Remove one file: its approvals, read receipts, messages, payload, metadata.

        Approvals and receipts are matched on the file's basename, the same
        identity the approval reconciler groups by.  A file whose metadata
        is already gone has nothing left to key on and is reported as done;
        a file whose metadata cannot be read is a failed step and nothing
        else runs.
        """
        report = CascadeReport(kind=ParentKind.FILE, parent_id=file_id)
        log = self._scoped(report)

        found = self._collect(
            report, "project_files", f"id={file_id}",
            lambda: [self._file_repo.get(project_id, file_id, strict=True)],
        )
        if found is None:
            return report
        project_file = found[0]
        if project_file is None:
            log.info("File %s of project %s not found; nothing to delete", file_id, project_id)
            report.parent_deleted = True
            return report

        self._run_step(
            report, "report_approvals", f"file={project_file.file_name}",
            lambda: self._approval_repo.delete_for_file(project_id, project_file.file_path),
        )
        self._run_step(
            report, "file_read_status", f"file={project_file.file_name}",
            lambda: self._receipt_repo.delete_for_file(project_id, project_file.file_path),
        )
        self._run_step(
            report, "customer_messages", f"file={project_file.file_name}",
            lambda: self._message_repo.delete_for_file(
                project_id, project_file.folder_path, project_file.file_name
            ),
        )
        storage_id = project_file.storage_id
        if storage_id:
            self._run_step(
                report, "object_storage", storage_id,
                lambda: int(self._storage.delete_object(storage_id)),
            )
        return self._finish(report, "project_files", lambda: self._file_repo.delete(file_id))

    def delete_folder(self, folder_id: str) -> CascadeReport:
        """Remove a catalog folder depth-first: sub-folders, entries, the folder."""
        return self._delete_folder(folder_id, visited=set())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _delete_folder(self, folder_id: str, visited: set[str]) -> CascadeReport:
        report = CascadeReport(kind=ParentKind.FOLDER, parent_id=folder_id)
        visited.add(folder_id)

        children = self._collect(
            report, "catalog_folders", f"parent_id={folder_id}",
            lambda: self._folder_repo.list_children(folder_id, strict=True),
        )
        for child in children or []:
            if child.id in visited:
                self._scoped(report).error(
                    "Catalog folder cycle detected at %s (parent %s)", child.id, folder_id
                )
                report.steps.append(
                    CascadeStep(
                        collection="catalog_folders",
                        key=f"id={child.id}",
                        error="folder cycle",
                    )
                )
                continue
            report.children.append(self._delete_folder(child.id, visited))

        self._run_step(
            report, "catalog_entries", f"folder_id={folder_id}",
            lambda: self._entry_repo.delete_by_folder(folder_id),
        )
        return self._finish(
            report, "catalog_folders", lambda: self._folder_repo.delete(folder_id)
        )

    def _scoped(self, report: CascadeReport) -> StructuredLogger:
        return self._logger.bind(parent_kind=str(report.kind), parent_id=report.parent_id)

    def _collect(
        self,
        report: CascadeReport,
        collection: str,
        key: str,
        fetch: Callable[[], list[T]],
    ) -> Optional[list[T]]:
        """Enumerate dependents; ``None`` (and a failed step) when unreadable."""
        try:
            return fetch()
        except Exception as exc:
            error = f"read failed: {exc}" if str(exc) else f"read failed: {type(exc).__name__}"
            self._scoped(report).error(
                "Cannot list %s %s; keeping the parent", collection, key,
                exc_info=True,
            )
            self._record(report, CascadeStep(collection=collection, key=key, error=error))
            return None

    def _run_step(
        self,
        report: CascadeReport,
        collection: str,
        key: str,
        action: Callable[[], int],
    ) -> CascadeStep:
        error: Optional[str] = None
        deleted = 0
        try:
            deleted = action()
        except Exception as exc:
            error = str(exc) or type(exc).__name__
            self._scoped(report).error(
                "Cascade step failed: %s %s: %s", collection, key, error,
                exc_info=True,
            )
        return self._record(
            report, CascadeStep(collection=collection, key=key, deleted=deleted, error=error)
        )

    def _record(self, report: CascadeReport, step: CascadeStep) -> CascadeStep:
        report.steps.append(step)
        log_audit_event(
            logger=self._scoped(report),
            action="CASCADE_STEP",
            entity_type=step.collection,
            entity_id=step.key,
            details={
                "parent_kind": str(report.kind),
                "parent_id": report.parent_id,
                "deleted": step.deleted,
                "error": step.error,
            },
        )
        return step

    def _finish(
        self,
        report: CascadeReport,
        collection: str,
        delete_parent: Callable[[], int],
    ) -> CascadeReport:
        log = self._scoped(report)
        failed = report.failed_steps
        if failed:
            log.warning(
                "Keeping %s %s: %d dependent step(s) failed; re-run to retry",
                report.kind, report.parent_id, len(failed),
            )
            return report

        step = self._run_step(report, collection, f"id={report.parent_id}", delete_parent)
        report.parent_deleted = step.ok
        if step.ok:
            log.info(
                "Cascade complete for %s %s: %d row(s) removed",
                report.kind, report.parent_id, report.total_deleted,
            )
        return report
