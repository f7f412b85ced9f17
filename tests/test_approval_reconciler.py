from datetime import timedelta
from functools import reduce
from itertools import permutations

import pytest

from portal.models.approval import ApprovalRecord
from portal.models.enums import ApprovalStatus
from portal.services.approval_reconciler import (
    group_key,
    merge,
    project_effective,
    reconcile,
    reconcile_all,
)

from conftest import utc

DEADLINE = utc(2024, 1, 12, 10)


def record(record_id, status=ApprovalStatus.PENDING, path="projects/p1/03_Reports/r.pdf", **kw):
    kw.setdefault("uploaded_at", utc(2024, 1, 5, 10))
    return ApprovalRecord(
        id=record_id,
        project_id=kw.pop("project_id", "p1"),
        customer_id=kw.pop("customer_id", "c1"),
        file_path=path,
        status=status,
        **kw,
    )


@pytest.fixture
def mixed_records():
    return [
        record("a", auto_approve_deadline=DEADLINE),
        record("b", path="r.pdf", uploaded_at=utc(2024, 1, 6)),
        record("c", ApprovalStatus.APPROVED, approved_at=utc(2024, 1, 8)),
        record("d", ApprovalStatus.AUTO_APPROVED, approved_at=utc(2024, 1, 12)),
        record("e", ApprovalStatus.APPROVED, approved_at=utc(2024, 1, 12)),
    ]


def test_group_key_uses_basename():
    assert group_key(record("a")) == group_key(record("b", path="r.pdf"))
    assert group_key(record("a")) != group_key(record("b", path="other.pdf"))


def test_terminal_outranks_pending_regardless_of_time():
    pending = record("p", uploaded_at=utc(2030, 1, 1))
    approved = record("a", ApprovalStatus.APPROVED, approved_at=utc(2020, 1, 1))
    assert merge(pending, approved) is approved
    assert merge(approved, pending) is approved


def test_later_timestamp_wins_within_rank():
    early = record("x", ApprovalStatus.APPROVED, approved_at=utc(2024, 1, 8))
    late = record("y", ApprovalStatus.AUTO_APPROVED, approved_at=utc(2024, 1, 9))
    assert merge(early, late) is late
    assert merge(late, early) is late


def test_exact_ties_are_broken_by_id():
    one = record("1", uploaded_at=utc(2024, 1, 5))
    two = record("2", uploaded_at=utc(2024, 1, 5))
    assert merge(one, two) is merge(two, one)


def test_merge_is_idempotent_and_does_not_mutate():
    r = record("a", auto_approve_deadline=DEADLINE)
    before = r.model_dump()
    assert merge(r, r) is r
    assert r.model_dump() == before


def test_merge_is_commutative_and_associative(mixed_records):
    for a in mixed_records:
        for b in mixed_records:
            assert merge(a, b) is merge(b, a)
            for c in mixed_records:
                assert merge(merge(a, b), c) is merge(a, merge(b, c))


def test_reconcile_is_order_independent(mixed_records):
    now = utc(2024, 2, 1)
    results = {
        reconcile(list(order), now) for order in permutations(mixed_records)
    }
    assert len(results) == 1
    (effective,) = results
    assert effective.record_id == "e"
    assert effective.status is ApprovalStatus.APPROVED


def test_pending_flips_exactly_at_deadline():
    r = record("a", auto_approve_deadline=DEADLINE)

    before = project_effective(r, DEADLINE - timedelta(microseconds=1))
    assert before.status is ApprovalStatus.PENDING
    assert before.pending_until == DEADLINE
    assert before.derived is False

    at = project_effective(r, DEADLINE)
    assert at.status is ApprovalStatus.AUTO_APPROVED
    assert at.approved_at == DEADLINE
    assert at.derived is True


def test_pending_without_deadline_stays_pending():
    effective = project_effective(record("a"), utc(2099, 1, 1))
    assert effective.status is ApprovalStatus.PENDING
    assert effective.pending_until is None


def test_terminal_keeps_its_own_timestamp():
    r = record("a", ApprovalStatus.APPROVED, approved_at=utc(2024, 1, 9), auto_approve_deadline=DEADLINE)
    effective = project_effective(r, utc(2024, 3, 1))
    assert effective.status is ApprovalStatus.APPROVED
    assert effective.approved_at == utc(2024, 1, 9)
    assert effective.derived is False


def test_pending_and_auto_approved_reconcile_to_auto_approved():
    pending = record("p", auto_approve_deadline=DEADLINE)
    auto = record("q", ApprovalStatus.AUTO_APPROVED, approved_at=DEADLINE)
    now = utc(2024, 1, 6)
    assert reconcile([pending, auto], now).status is ApprovalStatus.AUTO_APPROVED
    assert reconcile([auto, pending], now).status is ApprovalStatus.AUTO_APPROVED


def test_naive_now_is_treated_as_utc():
    r = record("a", auto_approve_deadline=DEADLINE)
    naive = DEADLINE.replace(tzinfo=None)
    assert project_effective(r, naive).status is ApprovalStatus.AUTO_APPROVED


def test_reconcile_empty_returns_none():
    assert reconcile([], utc(2024, 1, 1)) is None


def test_reconcile_rejects_mixed_files():
    with pytest.raises(ValueError):
        reconcile([record("a"), record("b", path="other.pdf")], utc(2024, 1, 1))


def test_reconcile_all_groups_per_logical_file():
    records = [
        record("a", path="projects/p1/03_Reports/r.pdf"),
        record("b", ApprovalStatus.APPROVED, path="r.pdf", approved_at=utc(2024, 1, 7)),
        record("c", path="projects/p1/03_Reports/s.pdf"),
        record("d", path="r.pdf", customer_id="c2"),
    ]
    result = reconcile_all(records, utc(2024, 1, 8))

    assert set(result) == {("p1", "c1", "r.pdf"), ("p1", "c1", "s.pdf"), ("p1", "c2", "r.pdf")}
    assert result[("p1", "c1", "r.pdf")].status is ApprovalStatus.APPROVED
    assert result[("p1", "c2", "r.pdf")].status is ApprovalStatus.PENDING
