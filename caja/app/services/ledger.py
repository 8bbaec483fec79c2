"""Tenant-scoped lookups over drawers, shifts, staff and cash transactions.

Every mutating service goes through these helpers so a record belonging to
another tenant is indistinguishable from a missing one.
"""

from __future__ import annotations

from typing import NoReturn
from uuid import UUID

from sqlalchemy.orm import Session

from caja.app.core.exceptions import CashierBusyError, ConflictError, DrawerBusyError, NotFoundError
from caja.app.models.caja import CashDrawer, CashShift, CashTransaction, ShiftStatus
from caja.app.models.staff import Staff


def load_drawer(
    db: Session, tenant_id: UUID, drawer_id: UUID, *, for_update: bool = False
) -> CashDrawer:
    query = db.query(CashDrawer).filter(
        CashDrawer.id == drawer_id, CashDrawer.tenant_id == tenant_id
    )
    if for_update:
        query = query.with_for_update().populate_existing()
    drawer = query.first()
    if not drawer:
        raise NotFoundError(
            f"Drawer {drawer_id} not found", code="DRAWER_NOT_FOUND", drawer_id=str(drawer_id)
        )
    return drawer


def load_shift(
    db: Session, tenant_id: UUID, shift_id: UUID, *, for_update: bool = False
) -> CashShift:
    query = db.query(CashShift).filter(
        CashShift.id == shift_id, CashShift.tenant_id == tenant_id
    )
    if for_update:
        query = query.with_for_update().populate_existing()
    shift = query.first()
    if not shift:
        raise NotFoundError(
            f"Shift {shift_id} not found", code="SHIFT_NOT_FOUND", shift_id=str(shift_id)
        )
    return shift


def lock_shift(db: Session, tenant_id: UUID, shift_id: UUID) -> CashShift:
    """Lock the shift's drawer, then the shift itself, and return the fresh row.

    Writers that change a shift or attach cash movements to one all lock the
    drawer first.
    """
    shift = load_shift(db, tenant_id, shift_id)
    load_drawer(db, tenant_id, shift.drawer_id, for_update=True)
    return load_shift(db, tenant_id, shift_id, for_update=True)


def load_cashier(db: Session, tenant_id: UUID, cashier_id: UUID) -> Staff:
    """Return an active staff member of the tenant, else ``NotFoundError``."""
    cashier = (
        db.query(Staff)
        .filter(
            Staff.id == cashier_id,
            Staff.tenant_id == tenant_id,
            Staff.is_active.is_(True),
        )
        .first()
    )
    if not cashier:
        raise NotFoundError(
            f"Cashier {cashier_id} not found or inactive",
            code="CASHIER_NOT_FOUND",
            cashier_id=str(cashier_id),
        )
    return cashier


def active_shift_for_drawer(db: Session, drawer_id: UUID) -> CashShift | None:
    return (
        db.query(CashShift)
        .filter(CashShift.drawer_id == drawer_id, CashShift.status == ShiftStatus.ACTIVE)
        .first()
    )


def active_shift_for_cashier(db: Session, cashier_id: UUID) -> CashShift | None:
    return (
        db.query(CashShift)
        .filter(CashShift.cashier_id == cashier_id, CashShift.status == ShiftStatus.ACTIVE)
        .first()
    )


def shift_transactions(db: Session, shift: CashShift) -> list[CashTransaction]:
    return (
        db.query(CashTransaction)
        .filter(CashTransaction.shift_id == shift.id)
        .order_by(CashTransaction.created_at)
        .all()
    )


def drawer_transactions(db: Session, drawer: CashDrawer) -> list[CashTransaction]:
    return (
        db.query(CashTransaction)
        .filter(CashTransaction.drawer_id == drawer.id)
        .order_by(CashTransaction.created_at)
        .all()
    )


def raise_active_conflict(
    db: Session, *, drawer_id: UUID | None = None, cashier_id: UUID | None = None
) -> NoReturn:
    """Translate a one-active-shift index violation into the matching ``ConflictError``.

    Call after rolling back the failed transaction; the winner of the race is
    visible by then.
    """
    if drawer_id is not None and active_shift_for_drawer(db, drawer_id):
        raise DrawerBusyError(str(drawer_id))
    if cashier_id is not None and active_shift_for_cashier(db, cashier_id):
        raise CashierBusyError(str(cashier_id))
    raise ConflictError("Concurrent shift change detected; reload and retry")
