from __future__ import annotations

import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from caja.app.core.database import Base
from caja.app.models.staff import Staff


class DrawerStatus(str, enum.Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class ShiftStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"
    HANDED_OFF = "HANDED_OFF"


class TransactionDirection(str, enum.Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class CashTransactionType(str, enum.Enum):
    SALE_CASH = "SALE_CASH"
    DEPOSIT = "DEPOSIT"
    ADJUSTMENT_IN = "ADJUSTMENT_IN"
    REFUND_CASH = "REFUND_CASH"
    WITHDRAWAL = "WITHDRAWAL"
    ADJUSTMENT_OUT = "ADJUSTMENT_OUT"

    @property
    def direction(self) -> TransactionDirection:
        if self in _INCOME_TYPES:
            return TransactionDirection.INCOME
        return TransactionDirection.EXPENSE


_INCOME_TYPES = frozenset({
    CashTransactionType.SALE_CASH,
    CashTransactionType.DEPOSIT,
    CashTransactionType.ADJUSTMENT_IN,
})

# Partial predicate shared by the one-active-shift indexes
_ACTIVE_ONLY = text("status = 'ACTIVE'")


class CashDrawer(Base):
    __tablename__ = "cash_drawers"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    location_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    status: Mapped[DrawerStatus] = mapped_column(
        Enum(DrawerStatus), nullable=False, default=DrawerStatus.OPEN
    )
    opened_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    opened_by_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    initial_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=4), nullable=False, default=Decimal("0")
    )
    closed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    closed_by_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    final_amount: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=20, scale=4), nullable=True
    )
    expected_amount: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=20, scale=4), nullable=True
    )
    difference: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=20, scale=4), nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    shifts: Mapped[list[CashShift]] = relationship(back_populates="drawer")

    __table_args__ = (
        CheckConstraint("initial_amount >= 0", name="ck_cash_drawer_initial_non_negative"),
        Index("ix_cash_drawers_tenant", "tenant_id"),
        Index("ix_cash_drawers_status", "status"),
        Index("ix_cash_drawers_opened_at", "opened_at"),
    )


class CashShift(Base):
    __tablename__ = "cash_shifts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    drawer_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("cash_drawers.id"), nullable=False
    )
    cashier_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("staff.id"), nullable=False
    )
    status: Mapped[ShiftStatus] = mapped_column(
        Enum(ShiftStatus), nullable=False, default=ShiftStatus.ACTIVE
    )
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    ended_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    starting_balance: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=4), nullable=False
    )
    ending_balance: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=20, scale=4), nullable=True
    )
    # Snapshot taken at close; reads recompute from transactions
    expected_balance: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=20, scale=4), nullable=True
    )
    difference: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=20, scale=4), nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    handed_off_to_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("cash_shifts.id"), nullable=True
    )

    drawer: Mapped[CashDrawer] = relationship(back_populates="shifts")
    cashier: Mapped[Staff] = relationship()
    transactions: Mapped[list[CashTransaction]] = relationship(
        back_populates="shift", order_by="CashTransaction.created_at"
    )

    __table_args__ = (
        CheckConstraint("starting_balance >= 0", name="ck_cash_shift_starting_non_negative"),
        CheckConstraint(
            "ending_balance IS NULL OR ending_balance >= 0",
            name="ck_cash_shift_ending_non_negative",
        ),
        Index(
            "uq_cash_shifts_active_drawer",
            "drawer_id",
            unique=True,
            postgresql_where=_ACTIVE_ONLY,
            sqlite_where=_ACTIVE_ONLY,
        ),
        Index(
            "uq_cash_shifts_active_cashier",
            "cashier_id",
            unique=True,
            postgresql_where=_ACTIVE_ONLY,
            sqlite_where=_ACTIVE_ONLY,
        ),
        Index("ix_cash_shifts_tenant", "tenant_id"),
        Index("ix_cash_shifts_status", "status"),
        Index("ix_cash_shifts_started_at", "started_at"),
    )


class CashTransaction(Base):
    __tablename__ = "cash_transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    drawer_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("cash_drawers.id"), nullable=False
    )
    shift_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("cash_shifts.id"), nullable=True
    )
    type: Mapped[CashTransactionType] = mapped_column(
        Enum(CashTransactionType), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=4), nullable=False
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    related_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    related_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_by_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    shift: Mapped[CashShift | None] = relationship(back_populates="transactions")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_cash_transaction_amount_positive"),
        Index("ix_cash_transactions_drawer", "drawer_id"),
        Index("ix_cash_transactions_shift", "shift_id"),
        Index("ix_cash_transactions_type", "type"),
        Index("ix_cash_transactions_created_at", "created_at"),
    )
