"""
Business Logic Services Package.

Services depend on the Repository layer for data access; none of them
touch ``db.supabase`` or ``db.sqlite`` directly (the sync service and the
object storage adapter are the infrastructure exceptions).

The ``create_services()`` factory wires every repository and service
together, returning a typed dict that the CLI (or any other front end) can
consume without knowing the internal dependency graph.
"""

from __future__ import annotations

from typing import Optional, TypedDict

from portal.config import AppConfig
from portal.database import DatabaseManager
from portal.logger import StructuredLogger, get_logger
from portal.repositories.approval_repository import ApprovalRepository
from portal.repositories.catalog_repository import (
    CatalogEntryRepository,
    CatalogFolderRepository,
)
from portal.repositories.directory_repository import (
    CustomerRepository,
    ProjectRepository,
    StaffRepository,
)
from portal.repositories.file_repository import FileRepository
from portal.repositories.message_repository import MessageRepository
from portal.repositories.read_receipt_repository import ReadReceiptRepository
from portal.services.approval_service import ApprovalService
from portal.services.cascade_delete import CascadeDeletionCoordinator
from portal.services.directory_service import DirectoryService
from portal.services.email_service import EmailService
from portal.services.file_upload_service import FileUploadService
from portal.services.message_service import MessageService
from portal.services.notification_router import NotificationRouter
from portal.services.object_storage import ObjectStorage, SupabaseObjectStorage
from portal.services.read_tracking import ReadTrackingService
from portal.services.sync_service import SyncService


class ServiceContainer(TypedDict):
    """Typed container for all engine services."""

    directory_service: DirectoryService
    approval_service: ApprovalService
    email_service: EmailService
    notification_router: NotificationRouter
    file_upload_service: FileUploadService
    message_service: MessageService
    read_tracking_service: ReadTrackingService
    cascade_coordinator: CascadeDeletionCoordinator
    sync_service: SyncService


def create_services(
    db: DatabaseManager,
    config: AppConfig,
    email_service: Optional[EmailService] = None,
    storage: Optional[ObjectStorage] = None,
    logger: Optional[StructuredLogger] = None,
) -> ServiceContainer:
    """
    Wire all repositories and services together.

    This is the single composition root for the service layer.

    Args:
        db: Initialised DatabaseManager with SQLite ready (Supabase optional).
        config: Application configuration (injected into services that need it).
        email_service: Replacement transport, e.g. a recording one in tests.
        storage: Replacement object storage; defaults to the Supabase bucket.
        logger: Shared logger; defaults to ``get_logger("services")``.

    Returns:
        ServiceContainer mapping service names to fully-wired instances.
    """
    logger = logger or get_logger("services")

    # ------------------------------------------------------------------
    # 1. Repositories (data-access layer)
    # ------------------------------------------------------------------
    project_repo = ProjectRepository(db=db, logger=logger)
    customer_repo = CustomerRepository(db=db, logger=logger)
    staff_repo = StaffRepository(db=db, logger=logger)
    file_repo = FileRepository(db=db, logger=logger)
    approval_repo = ApprovalRepository(db=db, logger=logger)
    receipt_repo = ReadReceiptRepository(db=db, logger=logger)
    message_repo = MessageRepository(db=db, logger=logger)
    folder_repo = CatalogFolderRepository(db=db, logger=logger)
    entry_repo = CatalogEntryRepository(db=db, logger=logger)

    # ------------------------------------------------------------------
    # 2. Leaf services (no service dependencies)
    # ------------------------------------------------------------------
    directory_service = DirectoryService(
        project_repo=project_repo,
        customer_repo=customer_repo,
        staff_repo=staff_repo,
        logger=logger,
    )
    approval_service = ApprovalService(
        approval_repo=approval_repo,
        project_repo=project_repo,
        customer_repo=customer_repo,
        config=config,
        logger=logger,
    )
    email_service = email_service or EmailService(config=config, logger=logger)
    read_tracking_service = ReadTrackingService(receipt_repo=receipt_repo, logger=logger)
    storage = storage or SupabaseObjectStorage(db=db, config=config, logger=logger)
    sync_service = SyncService(db=db, logger=logger)

    # ------------------------------------------------------------------
    # 3. Orchestration services (depend on other services)
    # ------------------------------------------------------------------
    notification_router = NotificationRouter(
        directory=directory_service,
        approval_service=approval_service,
        email_service=email_service,
        config=config,
        logger=logger,
    )
    file_upload_service = FileUploadService(
        file_repo=file_repo,
        directory=directory_service,
        approval_service=approval_service,
        router=notification_router,
        logger=logger,
    )
    message_service = MessageService(
        message_repo=message_repo,
        router=notification_router,
        logger=logger,
    )
    cascade_coordinator = CascadeDeletionCoordinator(
        customer_repo=customer_repo,
        project_repo=project_repo,
        file_repo=file_repo,
        approval_repo=approval_repo,
        receipt_repo=receipt_repo,
        message_repo=message_repo,
        folder_repo=folder_repo,
        entry_repo=entry_repo,
        storage=storage,
        logger=logger,
    )

    return ServiceContainer(
        directory_service=directory_service,
        approval_service=approval_service,
        email_service=email_service,
        notification_router=notification_router,
        file_upload_service=file_upload_service,
        message_service=message_service,
        read_tracking_service=read_tracking_service,
        cascade_coordinator=cascade_coordinator,
        sync_service=sync_service,
    )
