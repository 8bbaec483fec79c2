"""Cash shift lifecycle: start, end, and read-side queries.

A shift moves ACTIVE → ENDED (here) or ACTIVE → HANDED_OFF (see
``services.handoff``). Both transitions are terminal. At most one ACTIVE
shift may reference a given drawer, and at most one a given cashier; the
checks below give precise errors, and the partial unique indexes on
``cash_shifts`` settle races between processes.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from caja.app.core.clock import utcnow
from caja.app.core.config import settings
from caja.app.core.exceptions import (
    CashierBusyError,
    DrawerBusyError,
    ShiftNotActiveError,
    StateError,
)
from caja.app.core.money import parse_amount
from caja.app.models.caja import CashShift, CashTransaction, DrawerStatus, ShiftStatus
from caja.app.models.staff import Staff
from caja.app.services.audit import log_action
from caja.app.services.ledger import (
    active_shift_for_cashier,
    active_shift_for_drawer,
    load_cashier,
    load_drawer,
    load_shift,
    lock_shift,
    raise_active_conflict,
    shift_transactions,
)
from caja.app.services.reconciliation import ShiftReconciliation, reconcile

logger = logging.getLogger(__name__)


def reconcile_shift(
    db: Session, shift: CashShift, as_of: datetime | None = None
) -> ShiftReconciliation:
    """Recompute the shift's totals from its transactions (never from a cached value)."""
    return reconcile(shift, shift_transactions(db, shift), as_of=as_of)


def start_shift(
    db: Session,
    *,
    tenant_id: UUID,
    drawer_id: UUID,
    cashier_id: UUID,
    starting_balance: object,
    user_id: UUID | None = None,
    ip_address: str | None = None,
) -> CashShift:
    """Open an ACTIVE shift for *cashier_id* on *drawer_id*."""
    amount = parse_amount(starting_balance, "starting_balance")

    drawer = load_drawer(db, tenant_id, drawer_id, for_update=True)
    if drawer.status != DrawerStatus.OPEN:
        raise StateError(
            f"Drawer {drawer_id} is not open", code="DRAWER_NOT_OPEN", drawer_id=str(drawer_id)
        )
    load_cashier(db, tenant_id, cashier_id)

    if active_shift_for_drawer(db, drawer_id):
        logger.warning("Start rejected: drawer %s already has an active shift", drawer_id)
        raise DrawerBusyError(str(drawer_id))
    if active_shift_for_cashier(db, cashier_id):
        logger.warning("Start rejected: cashier %s already has an active shift", cashier_id)
        raise CashierBusyError(str(cashier_id))

    shift = CashShift(
        tenant_id=tenant_id,
        drawer_id=drawer_id,
        cashier_id=cashier_id,
        status=ShiftStatus.ACTIVE,
        started_at=utcnow(),
        starting_balance=amount,
    )
    db.add(shift)
    try:
        db.flush()
        log_action(
            db,
            tenant_id=tenant_id,
            user_id=user_id,
            action="SHIFT_STARTED",
            resource_type="cash_shifts",
            resource_id=str(shift.id),
            ip_address=ip_address,
            changes={
                "drawer_id": str(drawer_id),
                "cashier_id": str(cashier_id),
                "starting_balance": str(amount),
            },
        )
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Start lost a race on drawer %s / cashier %s", drawer_id, cashier_id)
        raise_active_conflict(db, drawer_id=drawer_id, cashier_id=cashier_id)

    db.refresh(shift)
    logger.info("Shift %s started on drawer %s by cashier %s", shift.id, drawer_id, cashier_id)
    return shift


def end_shift(
    db: Session,
    *,
    tenant_id: UUID,
    shift_id: UUID,
    ending_balance: object,
    notes: str | None = None,
    user_id: UUID | None = None,
    ip_address: str | None = None,
) -> tuple[CashShift, ShiftReconciliation]:
    """Close an ACTIVE shift against a physical cash count.

    Ending is a one-time transition: a second call fails with
    ``ShiftNotActiveError`` and leaves the record untouched.
    """
    counted = parse_amount(ending_balance, "ending_balance")

    shift = lock_shift(db, tenant_id, shift_id)
    if shift.status != ShiftStatus.ACTIVE:
        logger.warning("End rejected: shift %s is %s", shift_id, shift.status.value)
        raise ShiftNotActiveError(str(shift_id), shift.status.value)

    now = utcnow()
    recon = reconcile_shift(db, shift, as_of=now)
    difference = recon.difference(counted)

    shift.status = ShiftStatus.ENDED
    shift.ended_at = now
    shift.ending_balance = counted
    shift.expected_balance = recon.expected_balance
    shift.difference = difference
    shift.notes = notes

    log_action(
        db,
        tenant_id=tenant_id,
        user_id=user_id,
        action="SHIFT_ENDED",
        resource_type="cash_shifts",
        resource_id=str(shift.id),
        ip_address=ip_address,
        changes={
            "ending_balance": str(counted),
            "expected_balance": str(recon.expected_balance),
            "difference": str(difference),
            "transaction_count": recon.transaction_count,
        },
    )

    db.commit()
    db.refresh(shift)
    logger.info("Shift %s ended with difference %s", shift.id, difference)
    return shift, recon


def get_shift(
    db: Session, tenant_id: UUID, shift_id: UUID
) -> tuple[CashShift, ShiftReconciliation, list[CashTransaction]]:
    """Return the shift, its live reconciliation, and its transactions."""
    shift = load_shift(db, tenant_id, shift_id)
    transactions = shift_transactions(db, shift)
    return shift, reconcile(shift, transactions), transactions


def _day_start(d: date) -> datetime:
    return datetime.combine(d, time.min, tzinfo=timezone.utc)


def list_shifts(
    db: Session,
    tenant_id: UUID,
    *,
    status: ShiftStatus | None = None,
    drawer_id: UUID | None = None,
    cashier_id: UUID | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    page: int = 1,
    page_size: int | None = None,
) -> tuple[list[CashShift], int, int]:
    """Return one page of shifts, most recent first, plus the total and page size."""
    size = page_size or settings.SHIFT_PAGE_SIZE
    size = max(1, min(size, settings.SHIFT_MAX_PAGE_SIZE))
    page = max(1, page)

    query = db.query(CashShift).filter(CashShift.tenant_id == tenant_id)
    if status is not None:
        query = query.filter(CashShift.status == status)
    if drawer_id is not None:
        query = query.filter(CashShift.drawer_id == drawer_id)
    if cashier_id is not None:
        query = query.filter(CashShift.cashier_id == cashier_id)
    if date_from is not None:
        query = query.filter(CashShift.started_at >= _day_start(date_from))
    if date_to is not None:
        query = query.filter(CashShift.started_at < _day_start(date_to + timedelta(days=1)))

    total = query.count()
    items = (
        query.order_by(CashShift.started_at.desc())
        .offset((page - 1) * size)
        .limit(size)
        .all()
    )
    return items, total, size


def list_available_cashiers(db: Session, tenant_id: UUID) -> list[Staff]:
    """Active staff of the tenant who are not currently running a shift."""
    busy = select(CashShift.cashier_id).where(CashShift.status == ShiftStatus.ACTIVE)
    return (
        db.query(Staff)
        .filter(
            Staff.tenant_id == tenant_id,
            Staff.is_active.is_(True),
            Staff.id.not_in(busy),
        )
        .order_by(Staff.name)
        .all()
    )
