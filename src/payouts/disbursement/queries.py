"""Read-side queries over disbursements: filtered listing and statistics."""

from dataclasses import dataclass, field
from datetime import datetime
from math import ceil

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from payouts.disbursement.disbursement import Disbursement, DisbursementStatus, DisbursementType
from shared.clock import as_utc

SORT_FIELDS = ("created_at", "amount", "status")
MAX_PAGE_SIZE = 100


@dataclass
class DisbursementFilters:
    disbursement_type: str | None = None
    status: str | None = None
    recipient_phone: str | None = None  # substring match
    start_date: datetime | None = None
    end_date: datetime | None = None
    min_amount: float | None = None
    max_amount: float | None = None
    page: int = 1
    limit: int = 20
    sort_by: str = "created_at"
    sort_order: str = "desc"


@dataclass(frozen=True)
class DisbursementPage:
    disbursements: list[Disbursement]
    page: int
    limit: int
    total: int
    total_pages: int


@dataclass(frozen=True)
class Breakdown:
    count: int = 0
    amount: float = 0.0


@dataclass(frozen=True)
class DisbursementStats:
    total_disbursements: int
    total_amount: float
    successful_disbursements: int
    failed_disbursements: int
    pending_disbursements: int
    success_rate: float
    average_amount: float
    by_type: dict[str, Breakdown] = field(default_factory=dict)
    by_status: dict[str, Breakdown] = field(default_factory=dict)


def _check_filters(filters: DisbursementFilters) -> None:
    errors = {}
    if filters.disbursement_type and filters.disbursement_type not in {t.value for t in DisbursementType}:
        errors["type"] = [f"Unknown disbursement type '{filters.disbursement_type}'"]
    if filters.status and filters.status not in {s.value for s in DisbursementStatus}:
        errors["status"] = [f"Unknown disbursement status '{filters.status}'"]
    if filters.sort_by not in SORT_FIELDS:
        errors["sort_by"] = [f"Sort by one of: {', '.join(SORT_FIELDS)}"]
    if filters.sort_order not in ("asc", "desc"):
        errors["sort_order"] = ["Sort order must be 'asc' or 'desc'"]
    if filters.page < 1:
        errors["page"] = ["Page must be at least 1"]
    if filters.limit < 1:
        errors["limit"] = ["Limit must be at least 1"]
    if errors:
        raise ValidationError(errors)


def _in_date_range(disbursement: Disbursement, start: datetime | None, end: datetime | None) -> bool:
    created_at = as_utc(disbursement.created_at)
    if start and created_at < as_utc(start):
        return False
    if end and created_at > as_utc(end):
        return False
    return True


def _matching(filters: DisbursementFilters) -> list[Disbursement]:
    criteria = {}
    if filters.disbursement_type:
        criteria["disbursement_type"] = filters.disbursement_type
    if filters.status:
        criteria["status"] = filters.status
    candidates = current_domain.repository_for(Disbursement).matching(**criteria)

    return [
        d
        for d in candidates
        if _in_date_range(d, filters.start_date, filters.end_date)
        and (not filters.recipient_phone or filters.recipient_phone in d.recipient_phone)
        and (filters.min_amount is None or d.amount >= filters.min_amount)
        and (filters.max_amount is None or d.amount <= filters.max_amount)
    ]


def get_disbursements(filters: DisbursementFilters | None = None) -> DisbursementPage:
    filters = filters or DisbursementFilters()
    _check_filters(filters)
    limit = min(filters.limit, MAX_PAGE_SIZE)

    rows = sorted(
        _matching(filters),
        key=lambda d: (getattr(d, filters.sort_by), str(d.id)),
        reverse=filters.sort_order == "desc",
    )
    offset = (filters.page - 1) * limit
    return DisbursementPage(
        disbursements=rows[offset : offset + limit],
        page=filters.page,
        limit=limit,
        total=len(rows),
        total_pages=ceil(len(rows) / limit),
    )


def get_disbursement_stats(start_date: datetime | None = None, end_date: datetime | None = None) -> DisbursementStats:
    """Totals over disbursements created in the given range, grouped by type and by status."""
    rows = [
        d
        for d in current_domain.repository_for(Disbursement).matching()
        if _in_date_range(d, start_date, end_date)
    ]

    by_type: dict[str, list] = {}
    by_status: dict[str, list] = {}
    for d in rows:
        for group, key in ((by_type, d.disbursement_type), (by_status, d.status)):
            entry = group.setdefault(key, [0, 0.0])
            entry[0] += 1
            entry[1] += d.amount

    def _count(status: DisbursementStatus) -> int:
        return by_status.get(status.value, [0])[0]

    total = len(rows)
    total_amount = round(sum(d.amount for d in rows), 2)
    successful = _count(DisbursementStatus.COMPLETED)
    return DisbursementStats(
        total_disbursements=total,
        total_amount=total_amount,
        successful_disbursements=successful,
        failed_disbursements=_count(DisbursementStatus.FAILED),
        pending_disbursements=_count(DisbursementStatus.PENDING)
        + _count(DisbursementStatus.REQUIRES_APPROVAL)
        + _count(DisbursementStatus.APPROVED)
        + _count(DisbursementStatus.PROCESSING),
        success_rate=round(successful / total * 100, 2) if total else 0.0,
        average_amount=round(total_amount / total, 2) if total else 0.0,
        by_type={k: Breakdown(count=c, amount=round(a, 2)) for k, (c, a) in by_type.items()},
        by_status={k: Breakdown(count=c, amount=round(a, 2)) for k, (c, a) in by_status.items()},
    )
