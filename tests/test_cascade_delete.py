import pytest

from portal.models.approval import ApprovalRecord
from portal.models.directory import Customer, Project
from portal.models.enums import ApprovalStatus, ParentKind
from portal.models.records import (
    CatalogEntry,
    CatalogFolder,
    CustomerMessage,
    ProjectFile,
    ReadReceipt,
)
from portal.repositories.base_repository import RepositoryReadError
from portal.services import create_services

from conftest import dump_tables, utc


def add_file(repos, storage, file_id, project_id, folder, name):
    path = f"projects/{project_id}/{folder}/{name}"
    repos.files.add(
        ProjectFile(
            id=file_id, project_id=project_id, folder_path=folder,
            file_name=name, file_path=path, storage_id=path,
            uploaded_at=utc(2024, 1, 5),
        )
    )
    storage.objects.add(path)
    return path


@pytest.fixture
def populated(repos, storage):
    """Customer cust-1 with two projects, plus an unrelated customer cust-2."""
    repos.customers.add(Customer(id="cust-1", customer_number="C-1", email="a@example.com"))
    repos.customers.add(Customer(id="cust-2", customer_number="C-2", email="b@example.com"))
    repos.projects.add(Project(id="proj-1", customer_id="cust-1", name="One"))
    repos.projects.add(Project(id="proj-2", customer_id="cust-1", name="Two"))
    repos.projects.add(Project(id="proj-9", customer_id="cust-2", name="Other"))

    report = add_file(repos, storage, "f1", "proj-1", "03_Reports", "r1.pdf")
    add_file(repos, storage, "f2", "proj-1", "02_Plans", "plan.pdf")
    add_file(repos, storage, "f3", "proj-2", "03_Reports", "r2.pdf")
    other = add_file(repos, storage, "f9", "proj-9", "03_Reports", "r9.pdf")

    repos.approvals.add(ApprovalRecord(id="a1", project_id="proj-1", customer_id="cust-1", file_path=report))
    repos.approvals.add(
        ApprovalRecord(
            id="a1-dup", project_id="proj-1", customer_id="cust-1", file_path="r1.pdf",
            status=ApprovalStatus.APPROVED, approved_at=utc(2024, 1, 6),
        )
    )
    repos.approvals.add(ApprovalRecord(id="a-stray", project_id="proj-gone", customer_id="cust-1", file_path="x.pdf"))
    repos.approvals.add(ApprovalRecord(id="a9", project_id="proj-9", customer_id="cust-2", file_path=other))

    repos.receipts.add(ReadReceipt(id="rr1", project_id="proj-1", file_path=report, reader_id="cust-1", read_at=utc(2024, 1, 6)))
    repos.receipts.add(ReadReceipt(id="rr2", project_id="proj-1", file_path="r1.pdf", reader_id="staff-1", read_at=utc(2024, 1, 6)))
    repos.receipts.add(ReadReceipt(id="rr9", project_id="proj-9", file_path=other, reader_id="cust-2", read_at=utc(2024, 1, 6)))

    repos.messages.add(
        CustomerMessage(
            id="m1", project_id="proj-1", customer_id="cust-1", folder_path="03_Reports",
            file_name="r1.pdf", message="Please fix page 2", created_at=utc(2024, 1, 7),
        )
    )
    repos.messages.add(
        CustomerMessage(
            id="m2", project_id="proj-1", customer_id="cust-1", folder_path="03_Reports",
            message="General question", created_at=utc(2024, 1, 7),
        )
    )
    repos.messages.add(
        CustomerMessage(
            id="m9", project_id="proj-9", customer_id="cust-2", folder_path="02_Plans",
            message="Hello", created_at=utc(2024, 1, 7),
        )
    )
    return repos


def ids(rows):
    return sorted(r.id for r in rows)


def test_customer_cascade_removes_everything_keyed_to_the_customer(services, populated, storage):
    report = services["cascade_coordinator"].delete_customer("cust-1")

    assert report.complete
    assert report.kind is ParentKind.CUSTOMER
    assert {c.parent_id for c in report.children} == {"proj-1", "proj-2"}

    assert populated.approvals.list_by_customer("cust-1") == []
    assert populated.messages.list_by_customer("cust-1") == []
    assert populated.receipts.list_by_reader("cust-1") == []
    assert populated.projects.list_by_customer("cust-1") == []
    assert populated.customers.get_by_id("cust-1") is None
    assert populated.files.list_by_project("proj-1") == []
    assert storage.objects == {"projects/proj-9/03_Reports/r9.pdf"}

    # unrelated customer untouched
    assert ids(populated.approvals.list_all()) == ["a9"]
    assert populated.customers.get_by_id("cust-2") is not None
    assert ids(populated.messages.list_by_project("proj-9")) == ["m9"]


def test_second_customer_cascade_leaves_store_unchanged(services, populated, db):
    coordinator = services["cascade_coordinator"]
    coordinator.delete_customer("cust-1")
    after_first = dump_tables(db.sqlite)
    queued_after_first = db.get_pending_sync_count()

    second = coordinator.delete_customer("cust-1")

    assert second.complete
    assert second.total_deleted == 0
    assert dump_tables(db.sqlite) == after_first
    assert db.get_pending_sync_count() == queued_after_first


def test_unknown_customer_is_a_noop_success(services, populated, db):
    before = dump_tables(db.sqlite)
    report = services["cascade_coordinator"].delete_customer("nobody")
    assert report.complete
    assert dump_tables(db.sqlite) == before


def test_file_cascade_matches_approvals_by_basename(services, populated, storage):
    report = services["cascade_coordinator"].delete_file("proj-1", "f1")

    assert report.complete
    assert [s.collection for s in report.steps] == [
        "report_approvals",
        "file_read_status",
        "customer_messages",
        "object_storage",
        "project_files",
    ]
    assert populated.approvals.list_by_project("proj-1") == []
    assert populated.receipts.list_by_project("proj-1") == []
    # folder-level message survives, file comment is gone
    assert ids(populated.messages.list_by_project("proj-1")) == ["m2"]
    assert "projects/proj-1/03_Reports/r1.pdf" not in storage.objects
    assert ids(populated.files.list_by_project("proj-1")) == ["f2"]


def test_missing_file_is_a_noop_success(services, populated):
    report = services["cascade_coordinator"].delete_file("proj-1", "does-not-exist")
    assert report.complete
    assert report.steps == []


def test_failed_step_keeps_parent_and_rerun_converges(services, populated, storage, db):
    coordinator = services["cascade_coordinator"]
    storage.broken.add("projects/proj-1/03_Reports/r1.pdf")

    first = coordinator.delete_project("proj-1")

    assert not first.complete
    assert not first.parent_deleted
    assert [s.collection for s in first.failed_steps] == ["object_storage"]
    # other steps still ran
    assert populated.approvals.list_by_project("proj-1") == []
    assert ids(populated.files.list_by_project("proj-1")) == ["f1"]
    assert populated.projects.get_by_id("proj-1") is not None

    storage.broken.clear()
    second = coordinator.delete_project("proj-1")

    assert second.complete
    assert populated.files.list_by_project("proj-1") == []
    assert populated.projects.get_by_id("proj-1") is None

    settled = dump_tables(db.sqlite)
    assert coordinator.delete_project("proj-1").complete
    assert dump_tables(db.sqlite) == settled


def test_failed_child_project_keeps_customer(services, populated, storage):
    storage.broken.add("projects/proj-2/03_Reports/r2.pdf")
    report = services["cascade_coordinator"].delete_customer("cust-1")

    assert not report.parent_deleted
    assert populated.customers.get_by_id("cust-1") is not None
    assert populated.projects.get_by_id("proj-1") is None
    assert populated.projects.get_by_id("proj-2") is not None


def test_folder_cascade_is_depth_first(services, repos, db):
    repos.folders.add(CatalogFolder(id="root", name="Root"))
    repos.folders.add(CatalogFolder(id="mid", parent_id="root", name="Mid"))
    repos.folders.add(CatalogFolder(id="leaf", parent_id="mid", name="Leaf"))
    repos.folders.add(CatalogFolder(id="other", name="Other"))
    repos.entries.add(CatalogEntry(id="e1", folder_id="root", name="Panel"))
    repos.entries.add(CatalogEntry(id="e2", folder_id="leaf", name="Inverter"))
    repos.entries.add(CatalogEntry(id="e3", folder_id="other", name="Cable"))

    report = services["cascade_coordinator"].delete_folder("root")

    assert report.complete
    assert report.children[0].parent_id == "mid"
    assert report.children[0].children[0].parent_id == "leaf"
    remaining = [tuple(r) for r in db.sqlite.execute("SELECT id FROM catalog_folders")]
    assert remaining == [("other",)]
    assert ids(repos.entries.list_by_folder("other")) == ["e3"]
    assert repos.entries.list_by_folder("leaf") == []


def test_folder_cycle_is_reported_not_followed(services, repos):
    repos.folders.add(CatalogFolder(id="a", parent_id="b", name="A"))
    repos.folders.add(CatalogFolder(id="b", parent_id="a", name="B"))

    report = services["cascade_coordinator"].delete_folder("a")

    assert not report.complete
    assert any(s.error == "folder cycle" for s in report.failed_steps)
    assert repos.folders.get_by_id("a") is not None


def test_offline_bucket_keeps_the_file_row(db, config, logger, repos, storage):
    add_file(repos, storage, "f1", "proj-1", "03_Reports", "r1.pdf")
    offline = create_services(db=db, config=config, logger=logger)

    report = offline["cascade_coordinator"].delete_file("proj-1", "f1")

    assert not report.parent_deleted
    (failed,) = report.failed_steps
    assert failed.collection == "object_storage"
    assert "offline" in failed.error
    assert ids(repos.files.list_by_project("proj-1")) == ["f1"]


def hide_table(db, table):
    with db.write_lock:
        db.sqlite.execute(f"ALTER TABLE {table} RENAME TO {table}_hidden")
        db.sqlite.commit()


def restore_table(db, table):
    with db.write_lock:
        db.sqlite.execute(f"ALTER TABLE {table}_hidden RENAME TO {table}")
        db.sqlite.commit()


def test_unreadable_projects_keep_the_customer(services, populated, db):
    coordinator = services["cascade_coordinator"]
    hide_table(db, "projects")

    report = coordinator.delete_customer("cust-1")

    assert not report.complete
    assert not report.parent_deleted
    (failed,) = report.failed_steps
    assert failed.collection == "projects"
    assert failed.error.startswith("read failed")
    assert report.children == []
    assert populated.customers.get_by_id("cust-1") is not None

    restore_table(db, "projects")
    assert ids(populated.projects.list_by_customer("cust-1")) == ["proj-1", "proj-2"]

    rerun = coordinator.delete_customer("cust-1")

    assert rerun.complete
    assert populated.projects.list_by_customer("cust-1") == []
    assert populated.files.list_by_project("proj-1") == []
    assert populated.customers.get_by_id("cust-1") is None


def test_unreadable_files_keep_the_project(services, populated, db):
    hide_table(db, "project_files")

    report = services["cascade_coordinator"].delete_project("proj-1")

    assert not report.parent_deleted
    assert [s.collection for s in report.failed_steps] == ["project_files"]
    assert populated.projects.get_by_id("proj-1") is not None


def test_unreadable_file_metadata_is_not_treated_as_missing(services, populated, db):
    hide_table(db, "project_files")

    report = services["cascade_coordinator"].delete_file("proj-1", "f1")

    assert not report.complete
    assert [s.collection for s in report.steps] == ["project_files"]
    # nothing keyed to the file was touched
    assert ids(populated.approvals.list_by_project("proj-1")) == ["a1", "a1-dup"]


def test_unreadable_approvals_keep_the_file_row(services, populated, db):
    hide_table(db, "report_approvals")

    report = services["cascade_coordinator"].delete_file("proj-1", "f1")

    assert not report.parent_deleted
    assert [s.collection for s in report.failed_steps] == ["report_approvals"]
    assert "f1" in ids(populated.files.list_by_project("proj-1"))


def test_unreadable_subfolders_keep_the_folder(services, repos, db):
    repos.folders.add(CatalogFolder(id="root", name="Root"))
    repos.folders.add(CatalogFolder(id="leaf", parent_id="root", name="Leaf"))
    coordinator = services["cascade_coordinator"]
    coordinator._folder_repo.list_children = _raise_read_error

    report = coordinator.delete_folder("root")

    assert not report.parent_deleted
    assert [s.collection for s in report.failed_steps] == ["catalog_folders"]
    assert repos.folders.get_by_id("root") is not None


def _raise_read_error(*args, **kwargs):
    raise RepositoryReadError("Could not read list_children (catalog_folders)")
