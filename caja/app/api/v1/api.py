from fastapi import APIRouter

from caja.app.api.v1.endpoints import caja, shifts

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(caja.router, prefix="/caja", tags=["caja"])
api_router.include_router(shifts.router, prefix="/caja/shifts", tags=["caja-shifts"])
