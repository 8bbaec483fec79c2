from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from caja.app.api.deps import Principal, client_ip, get_current_principal
from caja.app.core.database import get_db
from caja.app.models.caja import ShiftStatus
from caja.app.schemas.caja import (
    CashierOut,
    ShiftDetailOut,
    ShiftEndRequest,
    ShiftHandoffOut,
    ShiftHandoffRequest,
    ShiftOut,
    ShiftPageOut,
    ShiftStartRequest,
)
from caja.app.services import shifts
from caja.app.services.handoff import handoff_shift
from caja.app.services.serializers import (
    cashier_to_out,
    shift_to_out,
    summary_to_out,
    transaction_to_out,
)

router = APIRouter()


@router.get("", response_model=ShiftPageOut)
def list_shifts(
    status_filter: ShiftStatus | None = Query(None, alias="status"),
    drawer_id: UUID | None = None,
    cashier_id: UUID | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> ShiftPageOut:
    items, total, size = shifts.list_shifts(
        db,
        principal.tenant_id,
        status=status_filter,
        drawer_id=drawer_id,
        cashier_id=cashier_id,
        date_from=date_from,
        date_to=date_to,
        page=page,
        page_size=page_size,
    )
    return ShiftPageOut(
        items=[shift_to_out(s) for s in items], total=total, page=page, page_size=size
    )


@router.post("", response_model=ShiftOut, status_code=status.HTTP_201_CREATED)
def start_shift(
    payload: ShiftStartRequest,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> ShiftOut:
    shift = shifts.start_shift(
        db,
        tenant_id=principal.tenant_id,
        drawer_id=payload.drawer_id,
        cashier_id=payload.cashier_id,
        starting_balance=payload.starting_balance,
        user_id=principal.user_id,
        ip_address=client_ip(request),
    )
    return shift_to_out(shift)


@router.get("/available-cashiers", response_model=list[CashierOut])
def available_cashiers(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> list[CashierOut]:
    return [cashier_to_out(s) for s in shifts.list_available_cashiers(db, principal.tenant_id)]


@router.get("/{shift_id}", response_model=ShiftDetailOut)
def get_shift(
    shift_id: UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> ShiftDetailOut:
    shift, recon, transactions = shifts.get_shift(db, principal.tenant_id, shift_id)
    return ShiftDetailOut(
        shift=shift_to_out(shift),
        summary=summary_to_out(recon),
        transactions=[transaction_to_out(t) for t in transactions],
    )


@router.post("/{shift_id}/end", response_model=ShiftDetailOut)
def end_shift(
    shift_id: UUID,
    payload: ShiftEndRequest,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> ShiftDetailOut:
    shift, recon = shifts.end_shift(
        db,
        tenant_id=principal.tenant_id,
        shift_id=shift_id,
        ending_balance=payload.ending_balance,
        notes=payload.notes,
        user_id=principal.user_id,
        ip_address=client_ip(request),
    )
    return ShiftDetailOut(shift=shift_to_out(shift), summary=summary_to_out(recon))


@router.post("/{shift_id}/handoff", response_model=ShiftHandoffOut)
def handoff(
    shift_id: UUID,
    payload: ShiftHandoffRequest,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> ShiftHandoffOut:
    result = handoff_shift(
        db,
        tenant_id=principal.tenant_id,
        shift_id=shift_id,
        new_cashier_id=payload.new_cashier_id,
        counted_balance=payload.counted_balance,
        handoff_notes=payload.handoff_notes,
        user_id=principal.user_id,
        ip_address=client_ip(request),
    )
    return ShiftHandoffOut(
        outgoing=shift_to_out(result.outgoing),
        incoming=shift_to_out(result.incoming),
        summary=summary_to_out(result.reconciliation),
    )
