"""Tests for drawer stats and period reports."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from caja.app.core.exceptions import ValidationError
from caja.app.models.caja import CashDrawer, CashShift, CashTransactionType
from caja.app.models.staff import Staff
from caja.app.services.caja_reports import drawer_stats, period_bounds, period_report
from caja.app.services.drawers import close_drawer
from caja.app.services.handoff import handoff_shift
from caja.app.services.shifts import end_shift, start_shift
from caja.tests.conftest import add_transaction


def _start(db: Session, drawer: CashDrawer, cashier: Staff, amount: str) -> CashShift:
    return start_shift(
        db,
        tenant_id=drawer.tenant_id,
        drawer_id=drawer.id,
        cashier_id=cashier.id,
        starting_balance=Decimal(amount),
    )


@pytest.fixture()
def busy_day(
    db: Session,
    drawer: CashDrawer,
    cashier_ana: Staff,
    cashier_ben: Staff,
    cashier_cruz: Staff,
) -> CashDrawer:
    """Ana closes 50 short, Ben hands off balanced to Cruz, who is still on shift."""
    ana = _start(db, drawer, cashier_ana, "1000.00")
    add_transaction(db, drawer, CashTransactionType.SALE_CASH, "500.00")
    add_transaction(db, drawer, CashTransactionType.WITHDRAWAL, "50.00")
    end_shift(db, tenant_id=drawer.tenant_id, shift_id=ana.id, ending_balance=Decimal("1400.00"))

    ben = _start(db, drawer, cashier_ben, "1400.00")
    add_transaction(db, drawer, CashTransactionType.SALE_CASH, "100.00")
    handoff_shift(
        db,
        tenant_id=drawer.tenant_id,
        shift_id=ben.id,
        new_cashier_id=cashier_cruz.id,
        counted_balance=Decimal("1500.00"),
    )
    add_transaction(db, drawer, CashTransactionType.DEPOSIT, "20.00")
    return drawer


class TestPeriodBounds:
    def test_day(self) -> None:
        now = datetime(2026, 3, 4, 15, 30, tzinfo=timezone.utc)
        start, end = period_bounds("day", now=now)
        assert start == datetime(2026, 3, 4, tzinfo=timezone.utc)
        assert end == datetime(2026, 3, 5, tzinfo=timezone.utc)

    def test_week_starts_monday(self) -> None:
        now = datetime(2026, 3, 4, 15, 30, tzinfo=timezone.utc)  # Wednesday
        start, end = period_bounds("week", now=now)
        assert start == datetime(2026, 3, 2, tzinfo=timezone.utc)
        assert end == datetime(2026, 3, 9, tzinfo=timezone.utc)

    def test_month_handles_leap_february(self) -> None:
        start, end = period_bounds("month", now=datetime(2028, 2, 10, tzinfo=timezone.utc))
        assert start == datetime(2028, 2, 1, tzinfo=timezone.utc)
        assert end == datetime(2028, 3, 1, tzinfo=timezone.utc)

    def test_last_month_wraps_year(self) -> None:
        start, end = period_bounds("lastMonth", now=datetime(2026, 1, 15, tzinfo=timezone.utc))
        assert start == datetime(2025, 12, 1, tzinfo=timezone.utc)
        assert end == datetime(2026, 1, 1, tzinfo=timezone.utc)

    def test_custom_spans_whole_days(self) -> None:
        start, end = period_bounds("custom", date(2026, 2, 1), date(2026, 2, 3))
        assert start == datetime(2026, 2, 1, tzinfo=timezone.utc)
        assert end == datetime(2026, 2, 4, tzinfo=timezone.utc)

    def test_custom_requires_both_dates(self) -> None:
        with pytest.raises(ValidationError) as exc:
            period_bounds("custom", date(2026, 2, 1), None)
        assert exc.value.code == "INVALID_PERIOD"

    def test_custom_rejects_reversed_range(self) -> None:
        with pytest.raises(ValidationError):
            period_bounds("custom", date(2026, 2, 3), date(2026, 2, 1))

    def test_unknown_period(self) -> None:
        with pytest.raises(ValidationError) as exc:
            period_bounds("fortnight")
        assert exc.value.code == "INVALID_PERIOD"


class TestDrawerStats:
    def test_no_open_drawer_gives_zeros(self, db: Session, tenant_id: uuid.UUID) -> None:
        stats = drawer_stats(db, tenant_id)
        assert stats.is_drawer_open is False
        assert stats.transaction_count == 0
        assert Decimal(stats.current_balance) == 0

    def test_drawer_without_shifts(self, db: Session, second_drawer: CashDrawer) -> None:
        add_transaction(db, second_drawer, CashTransactionType.DEPOSIT, "10.00")
        stats = drawer_stats(db, second_drawer.tenant_id, drawer_id=second_drawer.id)
        assert stats.is_drawer_open is True
        assert stats.total_income == "10.0000"
        assert stats.current_balance == "310.0000"

    def test_active_shift_drives_current_balance(self, db: Session, busy_day: CashDrawer) -> None:
        stats = drawer_stats(db, busy_day.tenant_id)
        assert stats.total_income == "620.0000"
        assert stats.total_expenses == "50.0000"
        assert stats.net_total == "570.0000"
        assert stats.transaction_count == 4
        assert stats.current_balance == "1520.0000"

    def test_balance_after_last_closed_shift(
        self, db: Session, drawer: CashDrawer, cashier_ana: Staff
    ) -> None:
        shift = _start(db, drawer, cashier_ana, "1000.00")
        end_shift(db, tenant_id=drawer.tenant_id, shift_id=shift.id, ending_balance=Decimal("990.00"))
        add_transaction(db, drawer, CashTransactionType.DEPOSIT, "25.00")
        stats = drawer_stats(db, drawer.tenant_id, drawer_id=drawer.id)
        assert stats.current_balance == "1015.0000"

    def test_closed_drawer_reports_final_count(self, db: Session, drawer: CashDrawer) -> None:
        close_drawer(
            db, tenant_id=drawer.tenant_id, drawer_id=drawer.id, final_amount=Decimal("995.00")
        )
        stats = drawer_stats(db, drawer.tenant_id, drawer_id=drawer.id)
        assert stats.is_drawer_open is False
        assert stats.current_balance == "995.0000"


class TestPeriodReport:
    def test_summary_and_types(self, db: Session, busy_day: CashDrawer) -> None:
        report = period_report(db, busy_day.tenant_id)
        assert report.summary.total_income == "620.0000"
        assert report.summary.total_expenses == "50.0000"
        assert report.summary.net_total == "570.0000"
        assert report.summary.transaction_count == 4
        assert report.summary.avg_transaction_value == "142.5000"
        assert report.by_transaction_type["SALE_CASH"].count == 2
        assert report.by_transaction_type["SALE_CASH"].total == "600.0000"
        assert report.by_transaction_type["WITHDRAWAL"].total == "50.0000"
        assert report.by_transaction_type["DEPOSIT"].count == 1

    def test_discrepancies_cover_closed_shifts_only(
        self, db: Session, busy_day: CashDrawer
    ) -> None:
        report = period_report(db, busy_day.tenant_id)
        assert len(report.shifts) == 2
        assert report.discrepancies.total_difference == "-50.0000"
        assert report.discrepancies.shifts_with_difference == 1
        assert report.discrepancies.worst_discrepancy == "-50.0000"

    def test_default_grouping(
        self, db: Session, busy_day: CashDrawer, cashier_ana: Staff, cashier_ben: Staff
    ) -> None:
        report = period_report(db, busy_day.tenant_id)
        assert report.by_day is None

        [row] = report.by_drawer
        assert row.drawer_id == busy_day.id
        assert row.net == "570.0000"
        assert row.transaction_count == 4
        assert row.shift_count == 2
        assert row.total_difference == "-50.0000"

        by_cashier = {c.cashier_id: c for c in report.by_cashier}
        assert by_cashier[cashier_ana.id].accuracy == 0
        assert by_cashier[cashier_ana.id].transaction_count == 2
        assert by_cashier[cashier_ana.id].total_difference == "-50.0000"
        assert by_cashier[cashier_ben.id].accuracy == 100
        assert by_cashier[cashier_ben.id].transaction_count == 1
        assert by_cashier[cashier_ben.id].total_hours == "0.0"

    def test_group_by_day(self, db: Session, busy_day: CashDrawer) -> None:
        report = period_report(db, busy_day.tenant_id, group_by="day")
        assert report.by_drawer is None
        assert report.by_cashier is None
        [day] = report.by_day
        assert day.transaction_count == 4
        assert day.net == "570.0000"

    def test_cashier_filter(self, db: Session, busy_day: CashDrawer, cashier_ana: Staff) -> None:
        report = period_report(db, busy_day.tenant_id, cashier_id=cashier_ana.id)
        assert report.summary.transaction_count == 2
        assert report.summary.net_total == "450.0000"
        assert [s.cashier.id for s in report.shifts] == [cashier_ana.id]

    def test_empty_period(self, db: Session, tenant_id: uuid.UUID) -> None:
        report = period_report(db, tenant_id, period="lastMonth")
        assert report.summary.transaction_count == 0
        assert report.summary.avg_transaction_value == "0.0000"
        assert report.by_drawer == []
        assert report.by_cashier == []
        assert report.discrepancies.worst_discrepancy == "0.0000"

    def test_tenant_isolation(
        self, db: Session, busy_day: CashDrawer, other_tenant_id: uuid.UUID
    ) -> None:
        report = period_report(db, other_tenant_id)
        assert report.summary.transaction_count == 0
        assert report.shifts == []

    def test_unknown_group_by(self, db: Session, tenant_id: uuid.UUID) -> None:
        with pytest.raises(ValidationError):
            period_report(db, tenant_id, group_by="weekday")
