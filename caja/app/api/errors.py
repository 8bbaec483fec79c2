"""Map service errors onto HTTP responses with localized messages."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from caja.app.core.config import settings
from caja.app.core.exceptions import (
    AtomicityError,
    CajaError,
    ConflictError,
    NotFoundError,
    StateError,
    ValidationError,
)
from caja.app.core.i18n import translate

logger = logging.getLogger(__name__)

_STATUS_BY_KIND: list[tuple[type[CajaError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (StateError, status.HTTP_409_CONFLICT),
    (AtomicityError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def status_for(exc: CajaError) -> int:
    for kind, code in _STATUS_BY_KIND:
        if isinstance(exc, kind):
            return code
    return status.HTTP_400_BAD_REQUEST


def _language(request: Request) -> str:
    return getattr(request.state, "language", settings.DEFAULT_LANGUAGE)


async def caja_error_handler(request: Request, exc: CajaError) -> JSONResponse:
    http_status = status_for(exc)
    if http_status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    detail = translate(_language(request), exc.code, **exc.params)
    return JSONResponse(status_code=http_status, content={"detail": detail, "code": exc.code})


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": translate(_language(request), "VALIDATION_ERROR"),
            "code": "VALIDATION_ERROR",
            "errors": [
                {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
                for err in exc.errors()
            ],
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CajaError, caja_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
