"""Tests for shift balance reconciliation and amount parsing (no database)."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from caja.app.core.exceptions import ValidationError
from caja.app.core.money import money_str, parse_amount
from caja.app.models.caja import (
    CashShift,
    CashTransaction,
    CashTransactionType,
    ShiftStatus,
    TransactionDirection,
)
from caja.app.services.reconciliation import reconcile, shift_window, sum_transactions

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def _shift(starting: str, *, ended_at: datetime | None = None) -> CashShift:
    return CashShift(
        status=ShiftStatus.ENDED if ended_at else ShiftStatus.ACTIVE,
        started_at=T0,
        ended_at=ended_at,
        starting_balance=Decimal(starting),
    )


def _txn(type: CashTransactionType, amount: str, minutes: int = 1) -> CashTransaction:
    return CashTransaction(
        type=type, amount=Decimal(amount), created_at=T0 + timedelta(minutes=minutes)
    )


class TestTransactionDirection:
    @pytest.mark.parametrize(
        "txn_type",
        [
            CashTransactionType.SALE_CASH,
            CashTransactionType.DEPOSIT,
            CashTransactionType.ADJUSTMENT_IN,
        ],
    )
    def test_income_types(self, txn_type: CashTransactionType) -> None:
        assert txn_type.direction is TransactionDirection.INCOME

    @pytest.mark.parametrize(
        "txn_type",
        [
            CashTransactionType.REFUND_CASH,
            CashTransactionType.WITHDRAWAL,
            CashTransactionType.ADJUSTMENT_OUT,
        ],
    )
    def test_expense_types(self, txn_type: CashTransactionType) -> None:
        assert txn_type.direction is TransactionDirection.EXPENSE


class TestReconcile:
    def test_balanced_close_arithmetic(self) -> None:
        shift = _shift("1000.00", ended_at=T0 + timedelta(hours=8))
        recon = reconcile(
            shift,
            [
                _txn(CashTransactionType.SALE_CASH, "500.00"),
                _txn(CashTransactionType.WITHDRAWAL, "50.00", minutes=2),
            ],
        )
        assert recon.total_income == Decimal("500.00")
        assert recon.total_expenses == Decimal("50.00")
        assert recon.net_total == Decimal("450.00")
        assert recon.expected_balance == Decimal("1450.00")
        assert recon.transaction_count == 2
        assert recon.difference(Decimal("1450.00")) == Decimal("0")
        assert recon.difference(Decimal("1400.00")) == Decimal("-50.00")

    def test_no_transactions(self) -> None:
        recon = reconcile(_shift("250.00"), [], as_of=T0 + timedelta(hours=1))
        assert recon.expected_balance == Decimal("250.00")
        assert recon.transaction_count == 0
        assert recon.net_total == Decimal("0")

    def test_net_may_be_negative(self) -> None:
        recon = reconcile(
            _shift("100.00"),
            [_txn(CashTransactionType.REFUND_CASH, "180.00")],
            as_of=T0 + timedelta(hours=1),
        )
        assert recon.net_total == Decimal("-180.00")
        assert recon.expected_balance == Decimal("-80.00")

    def test_no_drift_after_ten_thousand_cents(self) -> None:
        txns = [
            CashTransaction(
                type=CashTransactionType.SALE_CASH,
                amount=Decimal("0.01"),
                created_at=T0 + timedelta(seconds=i),
            )
            for i in range(10_000)
        ]
        recon = reconcile(_shift("0"), txns, as_of=T0 + timedelta(days=1))
        assert recon.total_income == Decimal("100.00")
        assert recon.expected_balance == Decimal("100.00")
        assert recon.transaction_count == 10_000

    def test_window_excludes_outside_transactions(self) -> None:
        shift = _shift("0", ended_at=T0 + timedelta(hours=1))
        recon = reconcile(
            shift,
            [
                _txn(CashTransactionType.SALE_CASH, "10.00", minutes=-5),
                _txn(CashTransactionType.SALE_CASH, "20.00", minutes=30),
                _txn(CashTransactionType.SALE_CASH, "40.00", minutes=60),
            ],
        )
        # end is exclusive
        assert recon.total_income == Decimal("20.00")
        assert recon.transaction_count == 1

    def test_live_and_closed_views_agree(self) -> None:
        end = T0 + timedelta(hours=2)
        txns = [
            _txn(CashTransactionType.SALE_CASH, "75.50"),
            _txn(CashTransactionType.ADJUSTMENT_OUT, "5.25", minutes=10),
        ]
        live = reconcile(_shift("100.00"), txns, as_of=end)
        closed = reconcile(_shift("100.00", ended_at=end), txns)
        assert live.expected_balance == closed.expected_balance == Decimal("170.25")
        assert live.window_end == closed.window_end

    def test_closed_window_ignores_as_of(self) -> None:
        end = T0 + timedelta(hours=1)
        start, window_end = shift_window(_shift("0", ended_at=end), as_of=T0 + timedelta(days=3))
        assert start == T0
        assert window_end == end

    def test_naive_datetimes_are_treated_as_utc(self) -> None:
        shift = CashShift(
            started_at=T0.replace(tzinfo=None),
            ended_at=(T0 + timedelta(hours=1)).replace(tzinfo=None),
            starting_balance=Decimal("10"),
        )
        txn = CashTransaction(
            type=CashTransactionType.DEPOSIT,
            amount=Decimal("5"),
            created_at=T0 + timedelta(minutes=5),
        )
        assert reconcile(shift, [txn]).expected_balance == Decimal("15")

    def test_sum_transactions_splits_by_direction(self) -> None:
        totals = sum_transactions(
            [
                _txn(CashTransactionType.DEPOSIT, "1.10"),
                _txn(CashTransactionType.ADJUSTMENT_IN, "2.20"),
                _txn(CashTransactionType.REFUND_CASH, "0.30"),
            ]
        )
        assert totals.total_income == Decimal("3.30")
        assert totals.total_expenses == Decimal("0.30")
        assert totals.net_total == Decimal("3.00")


class TestParseAmount:
    def test_float_keeps_decimal_value(self) -> None:
        assert parse_amount(0.1, "amount") == Decimal("0.1000")

    def test_string_is_quantized(self) -> None:
        assert parse_amount("12.34567", "amount") == Decimal("12.3457")

    def test_zero_allowed_unless_positive(self) -> None:
        assert parse_amount("0", "starting_balance") == Decimal("0")
        with pytest.raises(ValidationError) as exc:
            parse_amount("0", "amount", positive=True)
        assert exc.value.code == "NON_POSITIVE_AMOUNT"

    def test_negative_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc:
            parse_amount("-1", "ending_balance")
        assert exc.value.code == "NEGATIVE_AMOUNT"
        assert exc.value.params == {"field": "ending_balance"}

    def test_sub_precision_amount_counts_as_zero(self) -> None:
        with pytest.raises(ValidationError) as exc:
            parse_amount("0.00001", "amount", positive=True)
        assert exc.value.code == "NON_POSITIVE_AMOUNT"
        assert str(parse_amount("-0.00001", "ending_balance")) == "0.0000"

    @pytest.mark.parametrize(
        "value", ["1e16", "-1e16", "1e30", "9999999999999999.99995", Decimal("9" * 40)]
    )
    def test_out_of_range_rejected(self, value: object) -> None:
        with pytest.raises(ValidationError) as exc:
            parse_amount(value, "amount")
        assert exc.value.code == "INVALID_AMOUNT"

    def test_largest_storable_amount(self) -> None:
        assert parse_amount("9999999999999999.9999", "amount") == Decimal("9999999999999999.9999")

    @pytest.mark.parametrize("value", ["NaN", "Infinity", "abc", None, True])
    def test_invalid_values_rejected(self, value: object) -> None:
        with pytest.raises(ValidationError) as exc:
            parse_amount(value, "amount")
        assert exc.value.code == "INVALID_AMOUNT"

    def test_money_str(self) -> None:
        assert money_str(Decimal("5")) == "5.0000"
        assert money_str(None) is None
