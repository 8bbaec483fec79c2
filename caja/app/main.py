import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from caja.app.api.errors import register_exception_handlers
from caja.app.api.v1.api import api_router
from caja.app.core.config import settings
from caja.app.middleware.language import LanguageMiddleware
from caja.app.middleware.request_id import RequestIDMiddleware

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = FastAPI(title="Caja: Cash Drawer & Shifts")

# ─── CORS: restrict to configured origins ─────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Content-Type", "Accept", "Accept-Language", "X-Request-ID"],
    expose_headers=["X-Request-ID", "Content-Language"],
)

# ─── Custom middleware (outermost executes first) ─────────────────────────────
app.add_middleware(LanguageMiddleware)
app.add_middleware(RequestIDMiddleware)

register_exception_handlers(app)

app.include_router(api_router)
