from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from caja.app.api.deps import Principal, client_ip, get_current_principal
from caja.app.core.database import get_db
from caja.app.models.caja import DrawerStatus
from caja.app.schemas.caja import (
    DrawerCloseRequest,
    DrawerOpenRequest,
    DrawerOut,
    DrawerStatsOut,
    PeriodReportOut,
    ShiftOut,
    TransactionCreate,
    TransactionOut,
)
from caja.app.services import caja_reports, drawers
from caja.app.services.ledger import active_shift_for_drawer, load_drawer
from caja.app.services.serializers import drawer_to_out, shift_to_out, transaction_to_out

router = APIRouter()


# ─── Drawers ──────────────────────────────────────────────────────────────────


@router.get("/drawers", response_model=list[DrawerOut])
def list_drawers(
    status_filter: DrawerStatus | None = Query(None, alias="status"),
    location_id: UUID | None = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> list[DrawerOut]:
    rows = drawers.list_drawers(
        db, principal.tenant_id, status=status_filter, location_id=location_id
    )
    return [drawer_to_out(d, active_shift_for_drawer(db, d.id)) for d in rows]


@router.get("/drawers/current", response_model=DrawerOut | None)
def get_current_drawer(
    location_id: UUID | None = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> DrawerOut | None:
    drawer = drawers.get_current_drawer(db, principal.tenant_id, location_id)
    if drawer is None:
        return None
    return drawer_to_out(drawer, active_shift_for_drawer(db, drawer.id))


@router.post("/drawers/open", response_model=DrawerOut, status_code=status.HTTP_201_CREATED)
def open_drawer(
    payload: DrawerOpenRequest,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> DrawerOut:
    drawer = drawers.open_drawer(
        db,
        tenant_id=principal.tenant_id,
        initial_amount=payload.initial_amount,
        location_id=payload.location_id,
        notes=payload.notes,
        user_id=principal.user_id,
        ip_address=client_ip(request),
    )
    return drawer_to_out(drawer)


@router.post("/drawers/{drawer_id}/close", response_model=DrawerOut)
def close_drawer(
    drawer_id: UUID,
    payload: DrawerCloseRequest,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> DrawerOut:
    drawer = drawers.close_drawer(
        db,
        tenant_id=principal.tenant_id,
        drawer_id=drawer_id,
        final_amount=payload.final_amount,
        notes=payload.notes,
        user_id=principal.user_id,
        ip_address=client_ip(request),
    )
    return drawer_to_out(drawer)


@router.get("/drawers/{drawer_id}/active-shift", response_model=ShiftOut | None)
def get_active_shift(
    drawer_id: UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> ShiftOut | None:
    load_drawer(db, principal.tenant_id, drawer_id)
    shift = active_shift_for_drawer(db, drawer_id)
    return shift_to_out(shift) if shift else None


# ─── Transactions ─────────────────────────────────────────────────────────────


@router.get("/drawers/{drawer_id}/transactions", response_model=list[TransactionOut])
def list_transactions(
    drawer_id: UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> list[TransactionOut]:
    rows = drawers.list_transactions(db, principal.tenant_id, drawer_id)
    return [transaction_to_out(t) for t in rows]


@router.post(
    "/drawers/{drawer_id}/transactions",
    response_model=TransactionOut,
    status_code=status.HTTP_201_CREATED,
)
def record_transaction(
    drawer_id: UUID,
    payload: TransactionCreate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> TransactionOut:
    txn = drawers.record_transaction(
        db,
        tenant_id=principal.tenant_id,
        drawer_id=drawer_id,
        type=payload.type,
        amount=payload.amount,
        description=payload.description,
        related_id=payload.related_id,
        related_type=payload.related_type,
        user_id=principal.user_id,
        ip_address=client_ip(request),
    )
    return transaction_to_out(txn)


# ─── Stats & reports ──────────────────────────────────────────────────────────


@router.get("/stats", response_model=DrawerStatsOut)
def get_stats(
    drawer_id: UUID | None = None,
    day: date | None = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> DrawerStatsOut:
    return caja_reports.drawer_stats(db, principal.tenant_id, drawer_id=drawer_id, day=day)


@router.get("/reports", response_model=PeriodReportOut)
def get_report(
    period: str = "day",
    start_date: date | None = None,
    end_date: date | None = None,
    drawer_id: UUID | None = None,
    cashier_id: UUID | None = None,
    group_by: str | None = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
) -> PeriodReportOut:
    return caja_reports.period_report(
        db,
        principal.tenant_id,
        period=period,
        start_date=start_date,
        end_date=end_date,
        drawer_id=drawer_id,
        cashier_id=cashier_id,
        group_by=group_by,
    )
