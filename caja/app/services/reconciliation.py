"""Balance reconciliation for cash shifts.

Pure computation over already-loaded records: no queries, no writes, no
module state. The same inputs give the same result whether the shift is
still ACTIVE (window ends at *as_of*, defaulting to now) or already closed
(window ends at ``ended_at``).

    expected_balance = starting_balance + Σ income − Σ expense
    difference       = counted − expected_balance
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from caja.app.core.clock import as_utc, utcnow
from caja.app.core.money import ZERO
from caja.app.models.caja import CashShift, CashTransaction, TransactionDirection


@dataclass(frozen=True)
class CashTotals:
    total_income: Decimal
    total_expenses: Decimal
    transaction_count: int

    @property
    def net_total(self) -> Decimal:
        return self.total_income - self.total_expenses


@dataclass(frozen=True)
class ShiftReconciliation:
    starting_balance: Decimal
    total_income: Decimal
    total_expenses: Decimal
    net_total: Decimal
    expected_balance: Decimal
    transaction_count: int
    window_start: datetime
    window_end: datetime

    def difference(self, counted: Decimal) -> Decimal:
        """Counted cash minus expected; negative means a shortage."""
        return counted - self.expected_balance


def sum_transactions(transactions: Iterable[CashTransaction]) -> CashTotals:
    """Split amounts into income/expense totals by transaction direction."""
    income = ZERO
    expenses = ZERO
    count = 0
    for txn in transactions:
        if txn.type.direction is TransactionDirection.INCOME:
            income += txn.amount
        else:
            expenses += txn.amount
        count += 1
    return CashTotals(total_income=income, total_expenses=expenses, transaction_count=count)


def shift_window(shift: CashShift, as_of: datetime | None = None) -> tuple[datetime, datetime]:
    """Return the ``[start, end)`` window a shift's transactions must fall in."""
    start = as_utc(shift.started_at)
    if shift.ended_at is not None:
        end = as_utc(shift.ended_at)
    else:
        end = as_utc(as_of) if as_of is not None else utcnow()
    return start, end


def reconcile(
    shift: CashShift,
    transactions: Iterable[CashTransaction],
    *,
    as_of: datetime | None = None,
) -> ShiftReconciliation:
    start, end = shift_window(shift, as_of)
    in_window = [t for t in transactions if start <= as_utc(t.created_at) < end]
    totals = sum_transactions(in_window)
    starting = shift.starting_balance
    return ShiftReconciliation(
        starting_balance=starting,
        total_income=totals.total_income,
        total_expenses=totals.total_expenses,
        net_total=totals.net_total,
        expected_balance=starting + totals.net_total,
        transaction_count=totals.transaction_count,
        window_start=start,
        window_end=end,
    )
