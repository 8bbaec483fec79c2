"""Shared test fixtures.

Every test gets a fresh schema on an in-memory SQLite database, so services
can commit freely without leaking state between tests.
"""

from __future__ import annotations

import os
import uuid
from decimal import Decimal
from typing import Generator

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import ORMExecuteState, Session

from caja.app.core.database import Base, SessionLocal, engine, get_db
from caja.app.core.security import create_access_token
from caja.app.main import app
from caja.app.models.caja import CashDrawer, CashTransaction, CashTransactionType
from caja.app.models.staff import Staff
from caja.app.services.drawers import open_drawer, record_transaction


# ─── DB session on a fresh schema ─────────────────────────────────────────────


@pytest.fixture()
def db() -> Generator[Session, None, None]:
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db: Session) -> Generator[TestClient, None, None]:
    """FastAPI TestClient wired to the test session."""

    def _override_get_db() -> Generator[Session, None, None]:
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def locked_tables(db: Session) -> Generator[list[str], None, None]:
    """Tables the session reads with SELECT ... FOR UPDATE, in lock order.

    SQLite drops the clause, so statements are compiled for PostgreSQL.
    """
    locked: list[str] = []

    def _record(state: ORMExecuteState) -> None:
        if not state.is_select or state.bind_mapper is None:
            return
        sql = str(state.statement.compile(dialect=postgresql.dialect()))
        if "FOR UPDATE" in sql:
            locked.append(state.bind_mapper.local_table.name)

    event.listen(db, "do_orm_execute", _record)
    yield locked
    event.remove(db, "do_orm_execute", _record)


# ─── Tenancy & auth helpers ───────────────────────────────────────────────────


@pytest.fixture()
def tenant_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture()
def other_tenant_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture()
def user_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture()
def token(tenant_id: uuid.UUID, user_id: uuid.UUID) -> str:
    return create_access_token(str(user_id), tenant_id)


@pytest.fixture()
def other_tenant_token(other_tenant_id: uuid.UUID) -> str:
    return create_access_token(str(uuid.uuid4()), other_tenant_id)


def auth(token: str, lang: str | None = None) -> dict[str, str]:
    """Return Authorization header dict, optionally with Accept-Language."""
    headers = {"Authorization": f"Bearer {token}"}
    if lang:
        headers["Accept-Language"] = lang
    return headers


# ─── Staff ────────────────────────────────────────────────────────────────────


def _staff(db: Session, tenant_id: uuid.UUID, name: str, **kwargs) -> Staff:
    member = Staff(tenant_id=tenant_id, name=name, position="Recepción", **kwargs)
    db.add(member)
    db.commit()
    db.refresh(member)
    return member


@pytest.fixture()
def cashier_ana(db: Session, tenant_id: uuid.UUID) -> Staff:
    return _staff(db, tenant_id, "Ana López")


@pytest.fixture()
def cashier_ben(db: Session, tenant_id: uuid.UUID) -> Staff:
    return _staff(db, tenant_id, "Ben Ortiz")


@pytest.fixture()
def cashier_cruz(db: Session, tenant_id: uuid.UUID) -> Staff:
    return _staff(db, tenant_id, "Cruz Medina")


@pytest.fixture()
def inactive_cashier(db: Session, tenant_id: uuid.UUID) -> Staff:
    return _staff(db, tenant_id, "Inés Ruiz", is_active=False)


@pytest.fixture()
def foreign_cashier(db: Session, other_tenant_id: uuid.UUID) -> Staff:
    return _staff(db, other_tenant_id, "Otto Fremd")


# ─── Drawers ──────────────────────────────────────────────────────────────────


@pytest.fixture()
def drawer(db: Session, tenant_id: uuid.UUID, user_id: uuid.UUID) -> CashDrawer:
    return open_drawer(
        db, tenant_id=tenant_id, initial_amount=Decimal("1000.00"), user_id=user_id
    )


@pytest.fixture()
def second_drawer(db: Session, tenant_id: uuid.UUID, user_id: uuid.UUID) -> CashDrawer:
    return open_drawer(
        db,
        tenant_id=tenant_id,
        initial_amount=Decimal("300.00"),
        location_id=uuid.uuid4(),
        user_id=user_id,
    )


def add_transaction(
    db: Session,
    drawer: CashDrawer,
    type: CashTransactionType,
    amount: str,
    description: str | None = None,
) -> CashTransaction:
    """Record a cash movement through the intake service."""
    return record_transaction(
        db,
        tenant_id=drawer.tenant_id,
        drawer_id=drawer.id,
        type=type,
        amount=Decimal(amount),
        description=description,
    )
