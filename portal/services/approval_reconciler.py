"""
Approval Reconciler.

Pure-function module that turns the raw, possibly duplicated rows of
``report_approvals`` into one effective status per logical file.

Two records describe the same file when they share project, customer and
the *basename* of their path.  Among those, :func:`merge` picks a winner
with a total order (status rank, then observation time, then record id), so
the result is independent of the order rows come back from storage.  The
winner is then projected against ``now``: a pending record whose deadline
has passed is *shown* as auto-approved without touching storage.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone
from functools import reduce
from typing import Iterable, Optional

from portal.models.approval import ApprovalRecord, EffectiveApproval, ensure_utc
from portal.models.enums import ApprovalStatus
from portal.utils.paths import basename

__all__ = [
    "ApprovalKey",
    "group_key",
    "merge",
    "project_effective",
    "reconcile",
    "reconcile_all",
]

ApprovalKey = tuple[str, str, str]

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def group_key(record: ApprovalRecord) -> ApprovalKey:
    """``(project_id, customer_id, basename(file_path))``."""
    return (record.project_id, record.customer_id, basename(record.file_path))


def _precedence(record: ApprovalRecord) -> tuple[int, datetime, str]:
    rank = 2 if record.status.is_terminal else 1
    return (rank, record.observed_at or _EPOCH, record.id)


def merge(a: ApprovalRecord, b: ApprovalRecord) -> ApprovalRecord:
    """Return whichever of *a* and *b* takes precedence.

    Terminal statuses outrank ``pending``; within a rank the later of
    ``approved_at``/``uploaded_at`` wins, and the record id settles exact
    ties.  Neither input is modified.
    """
    return a if _precedence(a) >= _precedence(b) else b


def project_effective(record: ApprovalRecord, now: datetime) -> EffectiveApproval:
    """Display-time view of a single (already merged) record."""
    now = ensure_utc(now)
    deadline = record.auto_approve_deadline
    common = {
        "project_id": record.project_id,
        "customer_id": record.customer_id,
        "file_name": record.file_name,
        "file_path": record.file_path,
        "record_id": record.id,
    }

    if record.status.is_terminal:
        return EffectiveApproval(
            status=record.status, approved_at=record.approved_at, **common
        )

    if deadline is not None and now >= deadline:
        return EffectiveApproval(
            status=ApprovalStatus.AUTO_APPROVED,
            approved_at=deadline,
            derived=True,
            **common,
        )

    return EffectiveApproval(
        status=ApprovalStatus.PENDING, pending_until=deadline, **common
    )


def reconcile(
    records: Iterable[ApprovalRecord], now: datetime
) -> Optional[EffectiveApproval]:
    """Merge all records of one logical file and project the winner.

    Returns ``None`` for an empty input; callers that know the file exists
    treat that as ``pending`` with no deadline.

    Raises:
        ValueError: If the records do not all share one :func:`group_key`.
    """
    records = list(records)
    if not records:
        return None

    keys = {group_key(r) for r in records}
    if len(keys) > 1:
        raise ValueError(
            f"reconcile() expects records of one file, got {len(keys)} distinct keys"
        )
    return project_effective(reduce(merge, records), now)


def reconcile_all(
    records: Iterable[ApprovalRecord], now: datetime
) -> dict[ApprovalKey, EffectiveApproval]:
    """Group arbitrary records by :func:`group_key` and reconcile each group."""
    groups: dict[ApprovalKey, list[ApprovalRecord]] = defaultdict(list)
    for record in records:
        groups[group_key(record)].append(record)

    result: dict[ApprovalKey, EffectiveApproval] = {}
    for key, group in groups.items():
        effective = reconcile(group, now)
        if effective is not None:
            result[key] = effective
    return result
