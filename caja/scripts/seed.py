"""Seed a development tenant with cashiers and an open drawer.

Usage:
    python -m caja.scripts.seed [--tenant <uuid>]
"""

from __future__ import annotations

import argparse
import uuid
from decimal import Decimal

from caja.app.core.database import SessionLocal
from caja.app.core.security import create_access_token
from caja.app.models.caja import CashDrawer, DrawerStatus
from caja.app.models.staff import Staff
from caja.app.services.drawers import open_drawer

STAFF: list[tuple[str, str]] = [
    ("Ana López", "Recepción"),
    ("Carlos Méndez", "Recepción"),
    ("Lucía Torres", "Veterinaria"),
]

OPENING_FLOAT = Decimal("1000.00")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--tenant", type=uuid.UUID, default=None)
    args = parser.parse_args()
    tenant_id = args.tenant or uuid.uuid4()
    user_id = uuid.uuid4()

    db = SessionLocal()
    try:
        existing = {
            s.name for s in db.query(Staff).filter(Staff.tenant_id == tenant_id).all()
        }
        for name, position in STAFF:
            if name in existing:
                continue
            db.add(Staff(tenant_id=tenant_id, name=name, position=position))
        db.commit()

        drawer = (
            db.query(CashDrawer)
            .filter(CashDrawer.tenant_id == tenant_id, CashDrawer.status == DrawerStatus.OPEN)
            .first()
        )
        if drawer is None:
            drawer = open_drawer(
                db,
                tenant_id=tenant_id,
                initial_amount=OPENING_FLOAT,
                notes="Seed drawer",
                user_id=user_id,
            )

        print(f"Tenant:  {tenant_id}")
        print(f"Drawer:  {drawer.id} (initial {drawer.initial_amount})")
        for staff in db.query(Staff).filter(Staff.tenant_id == tenant_id).order_by(Staff.name):
            print(f"Cashier: {staff.id}  {staff.name}")
        print(f"Token:   {create_access_token(str(user_id), tenant_id)}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
