"""Read-only drawer stats and period reports.

Nothing here writes. Every figure is recomputed from transactions with
exact ``Decimal`` sums; a drawer without shifts or transactions yields
zeros rather than an error.
"""

from __future__ import annotations

import calendar
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from caja.app.core.clock import as_utc, utcnow
from caja.app.core.exceptions import ValidationError
from caja.app.core.money import Q, ZERO, money_str
from caja.app.models.caja import (
    CashDrawer,
    CashShift,
    CashTransaction,
    DrawerStatus,
    ShiftStatus,
    TransactionDirection,
)
from caja.app.schemas.caja import (
    CashierBreakdownOut,
    DayBreakdownOut,
    DiscrepanciesOut,
    DrawerBreakdownOut,
    DrawerStatsOut,
    PeriodReportOut,
    ReportPeriodOut,
    ReportSummaryOut,
    TypeTotalOut,
)
from caja.app.services.ledger import active_shift_for_drawer, load_drawer
from caja.app.services.reconciliation import sum_transactions
from caja.app.services.serializers import shift_to_out
from caja.app.services.shifts import reconcile_shift

logger = logging.getLogger(__name__)

GROUP_BY = ("drawer", "cashier", "day", "none")

_CLOSED_STATUSES = (ShiftStatus.ENDED, ShiftStatus.HANDED_OFF)


def _day_start(d: date) -> datetime:
    return datetime.combine(d, time.min, tzinfo=timezone.utc)


def _month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    last_day = calendar.monthrange(year, month)[1]
    return _day_start(date(year, month, 1)), _day_start(date(year, month, last_day) + timedelta(days=1))


def period_bounds(
    period: str,
    start_date: date | None = None,
    end_date: date | None = None,
    now: datetime | None = None,
) -> tuple[datetime, datetime]:
    """Return the half-open UTC ``[start, end)`` range covered by *period*.

    Weeks run Monday to Sunday. ``custom`` needs both dates and spans whole
    days, inclusive of *end_date*.
    """
    today = as_utc(now or utcnow()).date()

    if period == "day":
        return _day_start(today), _day_start(today + timedelta(days=1))
    if period == "week":
        monday = today - timedelta(days=today.weekday())
        return _day_start(monday), _day_start(monday + timedelta(days=7))
    if period == "month":
        return _month_bounds(today.year, today.month)
    if period == "lastMonth":
        year, month = (today.year - 1, 12) if today.month == 1 else (today.year, today.month - 1)
        return _month_bounds(year, month)
    if period == "custom":
        if start_date is None or end_date is None:
            raise ValidationError(
                "Custom period requires start_date and end_date", code="INVALID_PERIOD"
            )
        if end_date < start_date:
            raise ValidationError("end_date precedes start_date", code="INVALID_PERIOD")
        return _day_start(start_date), _day_start(end_date + timedelta(days=1))
    raise ValidationError(f"Unknown period: {period!r}", code="INVALID_PERIOD")


# ─── Drawer stats ─────────────────────────────────────────────────────────────


def _drawer_current_balance(db: Session, drawer: CashDrawer) -> Decimal:
    """Cash that should be in *drawer* right now.

    ACTIVE shift: its live expected balance. Closed drawer: the final count.
    Otherwise the last closed shift's count (or the opening float) plus
    whatever was recorded on the drawer after it.
    """
    active = active_shift_for_drawer(db, drawer.id)
    if active is not None:
        return reconcile_shift(db, active).expected_balance
    if drawer.status == DrawerStatus.CLOSED and drawer.final_amount is not None:
        return drawer.final_amount

    last_closed = (
        db.query(CashShift)
        .filter(CashShift.drawer_id == drawer.id, CashShift.status.in_(_CLOSED_STATUSES))
        .order_by(CashShift.ended_at.desc())
        .first()
    )
    query = db.query(CashTransaction).filter(CashTransaction.drawer_id == drawer.id)
    if last_closed is not None and last_closed.ending_balance is not None:
        base = last_closed.ending_balance
        query = query.filter(CashTransaction.created_at >= as_utc(last_closed.ended_at))
    else:
        base = drawer.initial_amount
    return base + sum_transactions(query.all()).net_total


def drawer_stats(
    db: Session,
    tenant_id: UUID,
    drawer_id: UUID | None = None,
    day: date | None = None,
) -> DrawerStatsOut:
    """Income/expense totals for *day* (default today) on a drawer.

    Without *drawer_id* the tenant's current open drawer is used; with no
    open drawer every figure is zero.
    """
    if drawer_id is not None:
        drawer = load_drawer(db, tenant_id, drawer_id)
    else:
        drawer = (
            db.query(CashDrawer)
            .filter(CashDrawer.tenant_id == tenant_id, CashDrawer.status == DrawerStatus.OPEN)
            .order_by(CashDrawer.opened_at.desc())
            .first()
        )

    if drawer is None:
        return DrawerStatsOut(
            total_income=money_str(ZERO),
            total_expenses=money_str(ZERO),
            net_total=money_str(ZERO),
            transaction_count=0,
            current_balance=money_str(ZERO),
            is_drawer_open=False,
        )

    start = _day_start(day or utcnow().date())
    transactions = (
        db.query(CashTransaction)
        .filter(
            CashTransaction.drawer_id == drawer.id,
            CashTransaction.created_at >= start,
            CashTransaction.created_at < start + timedelta(days=1),
        )
        .all()
    )
    totals = sum_transactions(transactions)
    return DrawerStatsOut(
        total_income=money_str(totals.total_income),
        total_expenses=money_str(totals.total_expenses),
        net_total=money_str(totals.net_total),
        transaction_count=totals.transaction_count,
        current_balance=money_str(_drawer_current_balance(db, drawer)),
        is_drawer_open=drawer.status == DrawerStatus.OPEN,
    )


# ─── Period report ────────────────────────────────────────────────────────────


@dataclass
class _Bucket:
    income: Decimal = ZERO
    expenses: Decimal = ZERO
    transaction_count: int = 0
    shift_count: int = 0
    total_difference: Decimal = ZERO

    def add(self, txn: CashTransaction) -> None:
        if txn.type.direction is TransactionDirection.INCOME:
            self.income += txn.amount
        else:
            self.expenses += txn.amount
        self.transaction_count += 1


def _hours(shifts: list[CashShift]) -> str:
    seconds = sum(
        (as_utc(s.ended_at) - as_utc(s.started_at)).total_seconds()
        for s in shifts
        if s.ended_at is not None
    )
    hours = (Decimal(str(seconds)) / Decimal(3600)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    return str(hours)


def period_report(
    db: Session,
    tenant_id: UUID,
    *,
    period: str = "day",
    start_date: date | None = None,
    end_date: date | None = None,
    drawer_id: UUID | None = None,
    cashier_id: UUID | None = None,
    group_by: str | None = None,
    now: datetime | None = None,
) -> PeriodReportOut:
    if group_by is not None and group_by not in GROUP_BY:
        raise ValidationError(f"Unknown group_by: {group_by!r}", code="VALIDATION_ERROR")
    start, end = period_bounds(period, start_date, end_date, now)

    txn_query = (
        db.query(CashTransaction)
        .filter(
            CashTransaction.tenant_id == tenant_id,
            CashTransaction.created_at >= start,
            CashTransaction.created_at < end,
        )
    )
    if drawer_id is not None:
        txn_query = txn_query.filter(CashTransaction.drawer_id == drawer_id)
    if cashier_id is not None:
        txn_query = txn_query.join(CashShift, CashTransaction.shift_id == CashShift.id).filter(
            CashShift.cashier_id == cashier_id
        )
    transactions = txn_query.order_by(CashTransaction.created_at).all()

    shift_query = db.query(CashShift).filter(
        CashShift.tenant_id == tenant_id,
        CashShift.status.in_(_CLOSED_STATUSES),
        CashShift.started_at >= start,
        CashShift.started_at < end,
    )
    if drawer_id is not None:
        shift_query = shift_query.filter(CashShift.drawer_id == drawer_id)
    if cashier_id is not None:
        shift_query = shift_query.filter(CashShift.cashier_id == cashier_id)
    shifts = shift_query.order_by(CashShift.started_at).all()

    totals = sum_transactions(transactions)
    if totals.transaction_count:
        avg = (totals.net_total / totals.transaction_count).quantize(Q, rounding=ROUND_HALF_UP)
    else:
        avg = ZERO

    by_type: dict[str, TypeTotalOut] = {}
    type_counts: dict[str, int] = defaultdict(int)
    type_totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for txn in transactions:
        type_counts[txn.type.value] += 1
        type_totals[txn.type.value] += txn.amount
    for key, count in type_counts.items():
        by_type[key] = TypeTotalOut(count=count, total=money_str(type_totals[key]))

    worst = ZERO
    total_difference = ZERO
    with_difference = 0
    for shift in shifts:
        diff = shift.difference or ZERO
        total_difference += diff
        if diff != 0:
            with_difference += 1
        if abs(diff) > abs(worst):
            worst = diff

    report = PeriodReportOut(
        period=ReportPeriodOut(start=start.isoformat(), end=end.isoformat()),
        summary=ReportSummaryOut(
            total_income=money_str(totals.total_income),
            total_expenses=money_str(totals.total_expenses),
            net_total=money_str(totals.net_total),
            transaction_count=totals.transaction_count,
            avg_transaction_value=money_str(avg),
        ),
        by_transaction_type=by_type,
        discrepancies=DiscrepanciesOut(
            total_difference=money_str(total_difference),
            shifts_with_difference=with_difference,
            worst_discrepancy=money_str(worst),
        ),
        shifts=[shift_to_out(s) for s in shifts],
    )

    if group_by in (None, "drawer"):
        report.by_drawer = _by_drawer(db, transactions, shifts)
    if group_by in (None, "cashier"):
        report.by_cashier = _by_cashier(db, shifts)
    if group_by == "day":
        report.by_day = _by_day(transactions)

    logger.debug(
        "Period report %s [%s, %s): %d transactions, %d shifts",
        period,
        start,
        end,
        totals.transaction_count,
        len(shifts),
    )
    return report


def _by_drawer(
    db: Session, transactions: list[CashTransaction], shifts: list[CashShift]
) -> list[DrawerBreakdownOut]:
    buckets: dict[UUID, _Bucket] = {}
    for txn in transactions:
        buckets.setdefault(txn.drawer_id, _Bucket()).add(txn)
    for shift in shifts:
        bucket = buckets.setdefault(shift.drawer_id, _Bucket())
        bucket.shift_count += 1
        bucket.total_difference += shift.difference or ZERO

    if not buckets:
        return []
    locations = dict(
        db.query(CashDrawer.id, CashDrawer.location_id)
        .filter(CashDrawer.id.in_(list(buckets)))
        .all()
    )
    return [
        DrawerBreakdownOut(
            drawer_id=drawer_id,
            location_id=locations.get(drawer_id),
            income=money_str(b.income),
            expenses=money_str(b.expenses),
            net=money_str(b.income - b.expenses),
            transaction_count=b.transaction_count,
            shift_count=b.shift_count,
            total_difference=money_str(b.total_difference),
        )
        for drawer_id, b in buckets.items()
    ]


def _by_cashier(db: Session, shifts: list[CashShift]) -> list[CashierBreakdownOut]:
    if not shifts:
        return []
    txn_counts = dict(
        db.query(CashTransaction.shift_id, func.count(CashTransaction.id))
        .filter(CashTransaction.shift_id.in_([s.id for s in shifts]))
        .group_by(CashTransaction.shift_id)
        .all()
    )

    grouped: dict[UUID, list[CashShift]] = {}
    for shift in shifts:
        grouped.setdefault(shift.cashier_id, []).append(shift)

    rows = []
    for cashier_id, own in grouped.items():
        balanced = sum(1 for s in own if not s.difference)
        rows.append(
            CashierBreakdownOut(
                cashier_id=cashier_id,
                cashier_name=own[0].cashier.name,
                shift_count=len(own),
                total_hours=_hours(own),
                transaction_count=sum(txn_counts.get(s.id, 0) for s in own),
                total_difference=money_str(sum((s.difference or ZERO for s in own), ZERO)),
                accuracy=int(
                    (Decimal(balanced * 100) / len(own)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
                ),
            )
        )
    return rows


def _by_day(transactions: list[CashTransaction]) -> list[DayBreakdownOut]:
    buckets: dict[str, _Bucket] = {}
    for txn in transactions:
        key = as_utc(txn.created_at).date().isoformat()
        buckets.setdefault(key, _Bucket()).add(txn)
    return [
        DayBreakdownOut(
            date=key,
            income=money_str(b.income),
            expenses=money_str(b.expenses),
            net=money_str(b.income - b.expenses),
            transaction_count=b.transaction_count,
        )
        for key, b in sorted(buckets.items())
    ]
