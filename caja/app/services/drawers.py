"""Cash drawer sessions and the transaction intake that feeds them.

Closing policy: a drawer with an ACTIVE shift cannot be closed. The shift
has to be ended or handed off first, so every counted balance belongs to
exactly one custodian.
"""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from caja.app.core.clock import utcnow
from caja.app.core.exceptions import ConflictError, StateError, ValidationError
from caja.app.core.money import parse_amount
from caja.app.models.caja import (
    CashDrawer,
    CashTransaction,
    CashTransactionType,
    DrawerStatus,
)
from caja.app.services.audit import log_action
from caja.app.services.ledger import (
    active_shift_for_drawer,
    drawer_transactions,
    load_drawer,
)
from caja.app.services.reconciliation import sum_transactions

logger = logging.getLogger(__name__)


def _require_open(drawer: CashDrawer) -> None:
    if drawer.status != DrawerStatus.OPEN:
        raise StateError(
            f"Drawer {drawer.id} is not open", code="DRAWER_NOT_OPEN", drawer_id=str(drawer.id)
        )


def open_drawer(
    db: Session,
    *,
    tenant_id: UUID,
    initial_amount: object,
    location_id: UUID | None = None,
    notes: str | None = None,
    user_id: UUID | None = None,
    ip_address: str | None = None,
) -> CashDrawer:
    """Open a drawer session. Only one may be OPEN per tenant location."""
    amount = parse_amount(initial_amount, "initial_amount")

    query = db.query(CashDrawer).filter(
        CashDrawer.tenant_id == tenant_id, CashDrawer.status == DrawerStatus.OPEN
    )
    if location_id is None:
        query = query.filter(CashDrawer.location_id.is_(None))
    else:
        query = query.filter(CashDrawer.location_id == location_id)
    if query.first():
        raise ConflictError(
            "A drawer is already open for this location", code="DRAWER_ALREADY_OPEN"
        )

    drawer = CashDrawer(
        tenant_id=tenant_id,
        location_id=location_id,
        status=DrawerStatus.OPEN,
        opened_at=utcnow(),
        opened_by_id=user_id,
        initial_amount=amount,
        notes=notes,
    )
    db.add(drawer)
    db.flush()

    log_action(
        db,
        tenant_id=tenant_id,
        user_id=user_id,
        action="DRAWER_OPENED",
        resource_type="cash_drawers",
        resource_id=str(drawer.id),
        ip_address=ip_address,
        changes={
            "initial_amount": str(amount),
            "location_id": str(location_id) if location_id else None,
        },
    )

    db.commit()
    db.refresh(drawer)
    logger.info("Drawer %s opened with %s", drawer.id, amount)
    return drawer


def close_drawer(
    db: Session,
    *,
    tenant_id: UUID,
    drawer_id: UUID,
    final_amount: object,
    notes: str | None = None,
    user_id: UUID | None = None,
    ip_address: str | None = None,
) -> CashDrawer:
    """Close a drawer with a physical count; blocked while a shift is ACTIVE."""
    counted = parse_amount(final_amount, "final_amount")

    drawer = load_drawer(db, tenant_id, drawer_id, for_update=True)
    _require_open(drawer)
    active = active_shift_for_drawer(db, drawer_id)
    if active:
        logger.warning("Close rejected: drawer %s has active shift %s", drawer_id, active.id)
        raise StateError(
            f"Drawer {drawer_id} has an active shift {active.id}",
            code="DRAWER_HAS_ACTIVE_SHIFT",
            drawer_id=str(drawer_id),
            shift_id=str(active.id),
        )

    totals = sum_transactions(drawer_transactions(db, drawer))
    expected = drawer.initial_amount + totals.net_total
    difference = counted - expected

    drawer.status = DrawerStatus.CLOSED
    drawer.closed_at = utcnow()
    drawer.closed_by_id = user_id
    drawer.final_amount = counted
    drawer.expected_amount = expected
    drawer.difference = difference
    if notes is not None:
        drawer.notes = notes

    log_action(
        db,
        tenant_id=tenant_id,
        user_id=user_id,
        action="DRAWER_CLOSED",
        resource_type="cash_drawers",
        resource_id=str(drawer.id),
        ip_address=ip_address,
        changes={
            "final_amount": str(counted),
            "expected_amount": str(expected),
            "difference": str(difference),
        },
    )

    db.commit()
    db.refresh(drawer)
    logger.info("Drawer %s closed with difference %s", drawer.id, difference)
    return drawer


def get_current_drawer(
    db: Session, tenant_id: UUID, location_id: UUID | None = None
) -> CashDrawer | None:
    """Most recently opened OPEN drawer for the tenant (optionally one location)."""
    query = db.query(CashDrawer).filter(
        CashDrawer.tenant_id == tenant_id, CashDrawer.status == DrawerStatus.OPEN
    )
    if location_id is not None:
        query = query.filter(CashDrawer.location_id == location_id)
    return query.order_by(CashDrawer.opened_at.desc()).first()


def list_drawers(
    db: Session,
    tenant_id: UUID,
    *,
    status: DrawerStatus | None = None,
    location_id: UUID | None = None,
) -> list[CashDrawer]:
    query = db.query(CashDrawer).filter(CashDrawer.tenant_id == tenant_id)
    if status is not None:
        query = query.filter(CashDrawer.status == status)
    if location_id is not None:
        query = query.filter(CashDrawer.location_id == location_id)
    return query.order_by(CashDrawer.opened_at.desc()).all()


def record_transaction(
    db: Session,
    *,
    tenant_id: UUID,
    drawer_id: UUID,
    type: CashTransactionType | str,
    amount: object,
    description: str | None = None,
    related_id: str | None = None,
    related_type: str | None = None,
    user_id: UUID | None = None,
    ip_address: str | None = None,
) -> CashTransaction:
    """Record a cash movement on an OPEN drawer.

    The movement is attributed to the drawer's ACTIVE shift, if any; closed
    shifts never receive new transactions.
    """
    try:
        txn_type = CashTransactionType(type)
    except ValueError:
        raise ValidationError(f"Unknown transaction type: {type!r}", code="VALIDATION_ERROR")
    value = parse_amount(amount, "amount", positive=True)

    drawer = load_drawer(db, tenant_id, drawer_id, for_update=True)
    _require_open(drawer)
    shift = active_shift_for_drawer(db, drawer_id)

    txn = CashTransaction(
        tenant_id=tenant_id,
        drawer_id=drawer_id,
        shift_id=shift.id if shift else None,
        type=txn_type,
        amount=value,
        description=description,
        related_id=related_id,
        related_type=related_type,
        created_by_id=user_id,
        created_at=utcnow(),
    )
    db.add(txn)
    db.flush()

    log_action(
        db,
        tenant_id=tenant_id,
        user_id=user_id,
        action="CASH_TRANSACTION_RECORDED",
        resource_type="cash_transactions",
        resource_id=str(txn.id),
        ip_address=ip_address,
        changes={
            "drawer_id": str(drawer_id),
            "shift_id": str(shift.id) if shift else None,
            "type": txn_type.value,
            "amount": str(value),
        },
    )

    db.commit()
    db.refresh(txn)
    return txn


def list_transactions(db: Session, tenant_id: UUID, drawer_id: UUID) -> list[CashTransaction]:
    """Transactions of a drawer, newest first."""
    load_drawer(db, tenant_id, drawer_id)
    return (
        db.query(CashTransaction)
        .filter(CashTransaction.drawer_id == drawer_id)
        .order_by(CashTransaction.created_at.desc())
        .all()
    )
