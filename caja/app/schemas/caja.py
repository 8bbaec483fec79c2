from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel

from caja.app.models.caja import CashTransactionType


# ─── Drawers ──────────────────────────────────────────────────────────────────


class DrawerOpenRequest(BaseModel):
    initial_amount: Decimal
    location_id: UUID | None = None
    notes: str | None = None


class DrawerCloseRequest(BaseModel):
    final_amount: Decimal
    notes: str | None = None


class DrawerOut(BaseModel):
    id: UUID
    location_id: UUID | None
    status: str
    opened_at: str
    opened_by_id: UUID | None
    initial_amount: str
    closed_at: str | None
    final_amount: str | None
    expected_amount: str | None
    difference: str | None
    notes: str | None
    active_shift_id: UUID | None = None


# ─── Transactions ─────────────────────────────────────────────────────────────


class TransactionCreate(BaseModel):
    type: CashTransactionType
    amount: Decimal
    description: str | None = None
    related_id: str | None = None
    related_type: str | None = None


class TransactionOut(BaseModel):
    id: UUID
    drawer_id: UUID
    shift_id: UUID | None
    type: str
    direction: str
    amount: str
    description: str | None
    related_id: str | None
    related_type: str | None
    created_at: str


# ─── Shifts ───────────────────────────────────────────────────────────────────


class ShiftStartRequest(BaseModel):
    drawer_id: UUID
    cashier_id: UUID
    starting_balance: Decimal


class ShiftEndRequest(BaseModel):
    ending_balance: Decimal
    notes: str | None = None


class ShiftHandoffRequest(BaseModel):
    new_cashier_id: UUID
    counted_balance: Decimal
    handoff_notes: str | None = None


class CashierOut(BaseModel):
    id: UUID
    name: str
    position: str | None


class ShiftSummaryOut(BaseModel):
    total_income: str
    total_expenses: str
    net_total: str
    expected_balance: str
    transaction_count: int


class ShiftOut(BaseModel):
    id: UUID
    drawer_id: UUID
    cashier: CashierOut
    status: str
    started_at: str
    ended_at: str | None
    starting_balance: str
    ending_balance: str | None
    # Stored when the shift closes; null while ACTIVE. The live figure is
    # ShiftSummaryOut.expected_balance.
    expected_balance: str | None
    difference: str | None
    notes: str | None
    handed_off_to_id: UUID | None


class ShiftDetailOut(BaseModel):
    shift: ShiftOut
    summary: ShiftSummaryOut
    transactions: list[TransactionOut] = []


class ShiftHandoffOut(BaseModel):
    outgoing: ShiftOut
    incoming: ShiftOut
    summary: ShiftSummaryOut


class ShiftPageOut(BaseModel):
    items: list[ShiftOut]
    total: int
    page: int
    page_size: int


# ─── Stats & reports ──────────────────────────────────────────────────────────


class DrawerStatsOut(BaseModel):
    total_income: str
    total_expenses: str
    net_total: str
    transaction_count: int
    current_balance: str
    is_drawer_open: bool


class ReportSummaryOut(BaseModel):
    total_income: str
    total_expenses: str
    net_total: str
    transaction_count: int
    avg_transaction_value: str


class TypeTotalOut(BaseModel):
    count: int
    total: str


class DiscrepanciesOut(BaseModel):
    total_difference: str
    shifts_with_difference: int
    worst_discrepancy: str


class DrawerBreakdownOut(BaseModel):
    drawer_id: UUID
    location_id: UUID | None
    income: str
    expenses: str
    net: str
    transaction_count: int
    shift_count: int
    total_difference: str


class CashierBreakdownOut(BaseModel):
    cashier_id: UUID
    cashier_name: str
    shift_count: int
    total_hours: str
    transaction_count: int
    total_difference: str
    accuracy: int


class DayBreakdownOut(BaseModel):
    date: str
    income: str
    expenses: str
    net: str
    transaction_count: int


class ReportPeriodOut(BaseModel):
    start: str
    end: str


class PeriodReportOut(BaseModel):
    period: ReportPeriodOut
    summary: ReportSummaryOut
    by_transaction_type: dict[str, TypeTotalOut]
    discrepancies: DiscrepanciesOut
    by_drawer: list[DrawerBreakdownOut] | None = None
    by_cashier: list[CashierBreakdownOut] | None = None
    by_day: list[DayBreakdownOut] | None = None
    shifts: list[ShiftOut]
