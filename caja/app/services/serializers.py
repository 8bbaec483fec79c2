from __future__ import annotations

from caja.app.core.clock import as_utc
from caja.app.core.money import money_str
from caja.app.models.caja import CashDrawer, CashShift, CashTransaction
from caja.app.models.staff import Staff
from caja.app.schemas.caja import (
    CashierOut,
    DrawerOut,
    ShiftOut,
    ShiftSummaryOut,
    TransactionOut,
)
from caja.app.services.reconciliation import ShiftReconciliation


def _iso(value) -> str | None:
    if value is None:
        return None
    return as_utc(value).isoformat()


def cashier_to_out(staff: Staff) -> CashierOut:
    return CashierOut(id=staff.id, name=staff.name, position=staff.position)


def drawer_to_out(drawer: CashDrawer, active_shift: CashShift | None = None) -> DrawerOut:
    return DrawerOut(
        id=drawer.id,
        location_id=drawer.location_id,
        status=drawer.status.value,
        opened_at=_iso(drawer.opened_at),
        opened_by_id=drawer.opened_by_id,
        initial_amount=money_str(drawer.initial_amount),
        closed_at=_iso(drawer.closed_at),
        final_amount=money_str(drawer.final_amount),
        expected_amount=money_str(drawer.expected_amount),
        difference=money_str(drawer.difference),
        notes=drawer.notes,
        active_shift_id=active_shift.id if active_shift else None,
    )


def transaction_to_out(txn: CashTransaction) -> TransactionOut:
    return TransactionOut(
        id=txn.id,
        drawer_id=txn.drawer_id,
        shift_id=txn.shift_id,
        type=txn.type.value,
        direction=txn.type.direction.value,
        amount=money_str(txn.amount),
        description=txn.description,
        related_id=txn.related_id,
        related_type=txn.related_type,
        created_at=_iso(txn.created_at),
    )


def shift_to_out(shift: CashShift) -> ShiftOut:
    return ShiftOut(
        id=shift.id,
        drawer_id=shift.drawer_id,
        cashier=cashier_to_out(shift.cashier),
        status=shift.status.value,
        started_at=_iso(shift.started_at),
        ended_at=_iso(shift.ended_at),
        starting_balance=money_str(shift.starting_balance),
        ending_balance=money_str(shift.ending_balance),
        expected_balance=money_str(shift.expected_balance),
        difference=money_str(shift.difference),
        notes=shift.notes,
        handed_off_to_id=shift.handed_off_to_id,
    )


def summary_to_out(recon: ShiftReconciliation) -> ShiftSummaryOut:
    return ShiftSummaryOut(
        total_income=money_str(recon.total_income),
        total_expenses=money_str(recon.total_expenses),
        net_total=money_str(recon.net_total),
        expected_balance=money_str(recon.expected_balance),
        transaction_count=recon.transaction_count,
    )
