"""Shared fixtures: an offline store on a temp SQLite file, a recording
email transport and an in-memory object store."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from email.message import EmailMessage
from pathlib import Path
from typing import Iterator, Optional

import pytest

from portal.config import AppConfig
from portal.database import RECORD_SETS, DatabaseManager
from portal.logger import StructuredLogger
from portal.models.directory import Customer, Project, StaffMember
from portal.models.service_models import ServiceResult
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
from portal.schema import initialize_schema
from portal.services import ServiceContainer, create_services
from portal.services.email_service import EmailService

class RecordingEmailService(EmailService):
    """EmailService that captures messages instead of talking SMTP."""

    def __init__(self, config: AppConfig, logger: StructuredLogger) -> None:
        super().__init__(config=config, logger=logger)
        self.sent: list[EmailMessage] = []
        self.fail_with: Optional[str] = None
        self.raise_with: Optional[Exception] = None

    def _dispatch_smtp(self, msg: EmailMessage) -> ServiceResult:
        if self.raise_with is not None:
            raise self.raise_with
        if self.fail_with is not None:
            return ServiceResult(success=False, error=self.fail_with, status_code=500)
        self.sent.append(msg)
        return ServiceResult(success=True)


class InMemoryObjectStorage:
    def __init__(self) -> None:
        self.objects: set[str] = set()
        self.broken: set[str] = set()

    def delete_object(self, storage_id: str) -> bool:
        if storage_id in self.broken:
            raise RuntimeError(f"storage unavailable for {storage_id}")
        if storage_id in self.objects:
            self.objects.discard(storage_id)
            return True
        return False


class Repos:
    """Direct repository access for seeding and asserting."""

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        self.projects = ProjectRepository(db, logger)
        self.customers = CustomerRepository(db, logger)
        self.staff = StaffRepository(db, logger)
        self.files = FileRepository(db, logger)
        self.approvals = ApprovalRepository(db, logger)
        self.receipts = ReadReceiptRepository(db, logger)
        self.messages = MessageRepository(db, logger)
        self.folders = CatalogFolderRepository(db, logger)
        self.entries = CatalogEntryRepository(db, logger)


@pytest.fixture
def logger(tmp_path: Path) -> StructuredLogger:
    return StructuredLogger(name="portal.tests", log_file=str(tmp_path / "portal.log"))


@pytest.fixture
def config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        _env_file=None,
        SUPABASE_URL="",
        SQLITE_PATH=str(tmp_path / "portal.db"),
        MAIL_SERVER="smtp.example.com",
        MAIL_USERNAME="portal@example.com",
        MAIL_PASSWORD="app-password",
        MAIL_SENDER_NAME="Green Power",
        PORTAL_URL="https://portal.example.com",
        ADMIN_PANEL_URL="https://admin.example.com",
        COMPANY_NAME="Green Power",
    )


@pytest.fixture
def db(config: AppConfig, logger: StructuredLogger) -> Iterator[DatabaseManager]:
    manager = DatabaseManager(
        supabase_url="",
        supabase_key="",
        sqlite_path=config.sqlite_path,
        logger=logger,
    )
    initialize_schema(manager.sqlite, logger)
    yield manager
    manager.close()


@pytest.fixture
def mailer(config: AppConfig, logger: StructuredLogger) -> RecordingEmailService:
    return RecordingEmailService(config=config, logger=logger)


@pytest.fixture
def storage() -> InMemoryObjectStorage:
    return InMemoryObjectStorage()


@pytest.fixture
def services(
    db: DatabaseManager,
    config: AppConfig,
    mailer: RecordingEmailService,
    storage: InMemoryObjectStorage,
    logger: StructuredLogger,
) -> ServiceContainer:
    return create_services(
        db=db, config=config, email_service=mailer, storage=storage, logger=logger
    )


@pytest.fixture
def repos(db: DatabaseManager, logger: StructuredLogger) -> Repos:
    return Repos(db, logger)


@pytest.fixture
def directory(repos: Repos) -> Repos:
    """One customer with a project, two enabled staff and one disabled."""
    repos.customers.add(
        Customer(
            id="cust-1",
            customer_number="C-1001",
            name="Anna Weber",
            email="anna@example.com",
        )
    )
    repos.projects.add(
        Project(id="proj-1", customer_id="cust-1", name="Solar Roof", project_number="P-77")
    )
    repos.staff.add(StaffMember(id="s1", email="ops@example.com", full_name="Ops"))
    repos.staff.add(StaffMember(id="s2", email="lead@example.com", full_name="Lead"))
    repos.staff.add(
        StaffMember(id="s3", email="former@example.com", full_name="Former", enabled=False)
    )
    return repos


def dump_tables(conn: sqlite3.Connection) -> dict[str, list[tuple[object, ...]]]:
    """Sorted contents of every record set, for before/after comparisons."""
    return {
        table: sorted(tuple(row) for row in conn.execute(f"SELECT * FROM {table}"))
        for table in RECORD_SETS
    }


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class FakeResponse:
    def __init__(self, data=None):
        self.data = data or []


class FakeQuery:
    """Chainable stand-in for a postgrest query builder over ``FakeSupabase.tables``."""

    def __init__(self, client, table):
        self._client = client
        self._table = table
        self._calls = [("table", table)]
        self._action = None
        self._payload = None
        self._filters = []

    def _chain(self, *call):
        self._calls.append(call)
        return self

    def select(self, columns="*"):
        self._action = "select"
        return self._chain("select", columns)

    def insert(self, payload):
        self._action, self._payload = "insert", payload
        return self._chain("insert", payload)

    def upsert(self, payload):
        self._action, self._payload = "upsert", payload
        return self._chain("upsert", payload)

    def update(self, payload):
        self._action, self._payload = "update", payload
        return self._chain("update", payload)

    def delete(self):
        self._action = "delete"
        return self._chain("delete")

    def eq(self, column, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self._chain("eq", column, value)

    def in_(self, column, values):
        self._filters.append(lambda row: row.get(column) in values)
        return self._chain("in_", column, values)

    def _matches(self, row):
        return all(check(row) for check in self._filters)

    def execute(self):
        client = self._client
        if client.fail_with is not None:
            raise client.fail_with
        if (self._table, self._action) in client.failing:
            raise ConnectionError(f"{self._action} on {self._table} refused")
        client.executed.append(self._calls)

        rows = client.tables.setdefault(self._table, [])
        if self._action == "select":
            return FakeResponse([dict(r) for r in rows if self._matches(r)])
        if self._action in ("insert", "upsert"):
            rows[:] = [r for r in rows if r.get("id") != self._payload.get("id")]
            rows.append(dict(self._payload))
            return FakeResponse([dict(self._payload)])
        if self._action == "update":
            hit = [r for r in rows if self._matches(r)]
            for row in hit:
                row.update(self._payload)
            return FakeResponse([dict(r) for r in hit])
        if self._action == "delete":
            gone = [r for r in rows if self._matches(r)]
            rows[:] = [r for r in rows if not self._matches(r)]
            return FakeResponse(gone)
        return FakeResponse()


class FakeSupabase:
    """In-memory Supabase client.

    ``executed`` records every query chain that reached the server,
    ``fail_with`` makes every call raise and ``failing`` holds
    ``(table, action)`` pairs that raise ``ConnectionError``.
    """

    def __init__(self):
        self.tables: dict[str, list[dict]] = {}
        self.executed = []
        self.fail_with: Optional[Exception] = None
        self.failing: set[tuple[str, str]] = set()

    def table(self, name):
        return FakeQuery(self, name)


@pytest.fixture
def remote(db: DatabaseManager) -> FakeSupabase:
    """Switch the store online against an in-memory Supabase."""
    client = FakeSupabase()
    db._supabase = client
    return client
