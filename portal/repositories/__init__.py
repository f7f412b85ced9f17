"""
Repository Layer Package.

Provides data-access abstractions over Supabase (cloud) and SQLite (local
mirror).  All database operations flow through repositories; services
never access db.supabase or db.sqlite directly.

Usage:
    from portal.repositories.approval_repository import ApprovalRepository
    from portal.repositories.directory_repository import ProjectRepository
"""

from portal.repositories.approval_repository import ApprovalRepository
from portal.repositories.base_repository import BaseRepository
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

__all__ = [
    "ApprovalRepository",
    "BaseRepository",
    "CatalogEntryRepository",
    "CatalogFolderRepository",
    "CustomerRepository",
    "FileRepository",
    "MessageRepository",
    "ProjectRepository",
    "ReadReceiptRepository",
    "StaffRepository",
]
