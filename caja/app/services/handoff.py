"""Atomic custody transfer of a drawer between two cashiers.

One database transaction:

    1. outgoing shift   ACTIVE → HANDED_OFF   (ending_balance = counted)
    2. incoming shift   created ACTIVE        (starting_balance = counted)
    3. outgoing.handed_off_to_id = incoming.id
    4. audit row

The outgoing row is flushed before the incoming one is inserted so the
one-active-shift-per-drawer index never sees two ACTIVE rows. Either all of
it commits or none of it does; the drawer is never left without a custodian.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from caja.app.core.clock import utcnow
from caja.app.core.exceptions import (
    AtomicityError,
    CashierBusyError,
    ConflictError,
    ShiftNotActiveError,
)
from caja.app.core.money import parse_amount
from caja.app.models.caja import CashShift, ShiftStatus
from caja.app.services.audit import log_action
from caja.app.services.ledger import (
    active_shift_for_cashier,
    load_cashier,
    lock_shift,
    raise_active_conflict,
)
from caja.app.services.reconciliation import ShiftReconciliation
from caja.app.services.shifts import reconcile_shift

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HandoffResult:
    outgoing: CashShift
    incoming: CashShift
    reconciliation: ShiftReconciliation


def handoff_shift(
    db: Session,
    *,
    tenant_id: UUID,
    shift_id: UUID,
    new_cashier_id: UUID,
    counted_balance: object,
    handoff_notes: str | None = None,
    user_id: UUID | None = None,
    ip_address: str | None = None,
) -> HandoffResult:
    """Hand the drawer of ACTIVE shift *shift_id* over to *new_cashier_id*.

    Raises ``ShiftNotActiveError`` when the shift was already ended or handed
    off (so a repeated call is rejected), ``ConflictError`` when the incoming
    cashier is the current one or is busy elsewhere, and ``AtomicityError``
    when the store failed mid-way; in that last case the outgoing shift is
    still ACTIVE and no successor exists.
    """
    counted = parse_amount(counted_balance, "counted_balance")

    outgoing = lock_shift(db, tenant_id, shift_id)
    if outgoing.status != ShiftStatus.ACTIVE:
        logger.warning("Handoff rejected: shift %s is %s", shift_id, outgoing.status.value)
        raise ShiftNotActiveError(str(shift_id), outgoing.status.value)
    if new_cashier_id == outgoing.cashier_id:
        raise ConflictError(
            "Incoming cashier must differ from the outgoing cashier",
            code="SAME_CASHIER",
            cashier_id=str(new_cashier_id),
        )
    load_cashier(db, tenant_id, new_cashier_id)
    if active_shift_for_cashier(db, new_cashier_id):
        logger.warning("Handoff rejected: cashier %s already has an active shift", new_cashier_id)
        raise CashierBusyError(str(new_cashier_id))

    now = utcnow()
    recon = reconcile_shift(db, outgoing, as_of=now)
    difference = recon.difference(counted)
    drawer_id = outgoing.drawer_id
    outgoing_cashier_id = outgoing.cashier_id
    incoming_id: UUID | None = None

    try:
        outgoing.status = ShiftStatus.HANDED_OFF
        outgoing.ended_at = now
        outgoing.ending_balance = counted
        outgoing.expected_balance = recon.expected_balance
        outgoing.difference = difference
        outgoing.notes = handoff_notes
        db.flush()

        incoming = CashShift(
            tenant_id=tenant_id,
            drawer_id=drawer_id,
            cashier_id=new_cashier_id,
            status=ShiftStatus.ACTIVE,
            started_at=now,
            starting_balance=counted,
        )
        db.add(incoming)
        db.flush()
        incoming_id = incoming.id

        outgoing.handed_off_to_id = incoming_id
        log_action(
            db,
            tenant_id=tenant_id,
            user_id=user_id,
            action="SHIFT_HANDED_OFF",
            resource_type="cash_shifts",
            resource_id=str(shift_id),
            ip_address=ip_address,
            changes={
                "from_cashier_id": str(outgoing_cashier_id),
                "to_cashier_id": str(new_cashier_id),
                "incoming_shift_id": str(incoming_id),
                "counted_balance": str(counted),
                "expected_balance": str(recon.expected_balance),
                "difference": str(difference),
            },
        )
        db.flush()
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Handoff of shift %s lost a race for cashier %s", shift_id, new_cashier_id)
        raise_active_conflict(db, cashier_id=new_cashier_id)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Handoff of shift %s failed before commit", shift_id)
        committed = _settle_partial_handoff(db, shift_id, incoming_id)
        if committed is None:
            raise AtomicityError(
                f"Handoff of shift {shift_id} was not committed", shift_id=str(shift_id)
            ) from exc
        outgoing, incoming = committed

    db.refresh(outgoing)
    db.refresh(incoming)
    logger.info(
        "Shift %s handed off to shift %s (cashier %s) with difference %s",
        outgoing.id,
        incoming.id,
        new_cashier_id,
        difference,
    )
    return HandoffResult(outgoing=outgoing, incoming=incoming, reconciliation=recon)


def _settle_partial_handoff(
    db: Session, shift_id: UUID, incoming_id: UUID | None
) -> tuple[CashShift, CashShift] | None:
    """Inspect the store after a failed handoff commit.

    Returns the (outgoing, incoming) pair if the handoff turns out to have
    been committed in full. Otherwise removes any successor that survived
    without a matching HANDED_OFF predecessor and returns ``None``.
    """
    outgoing = db.query(CashShift).filter(CashShift.id == shift_id).first()
    if outgoing is None:
        return None
    if (
        outgoing.status == ShiftStatus.HANDED_OFF
        and outgoing.handed_off_to_id is not None
        and outgoing.handed_off_to_id == incoming_id
    ):
        incoming = db.query(CashShift).filter(CashShift.id == incoming_id).first()
        if incoming is not None:
            logger.warning("Handoff of shift %s was committed despite the error", shift_id)
            return outgoing, incoming

    if incoming_id is not None:
        orphan = db.query(CashShift).filter(CashShift.id == incoming_id).first()
        if orphan is not None:
            logger.error("Removing orphan successor shift %s of shift %s", incoming_id, shift_id)
            db.delete(orphan)
            db.commit()
    return None
