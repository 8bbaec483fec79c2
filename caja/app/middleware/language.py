from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from caja.app.core.i18n import negotiate_language


class LanguageMiddleware(BaseHTTPMiddleware):
    """Resolve the caller's language into ``request.state.language``.

    Error handlers read it to localize ``detail``; the choice is echoed in
    ``Content-Language``.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        language = negotiate_language(request.headers.get("Accept-Language"))
        request.state.language = language
        response = await call_next(request)
        response.headers["Content-Language"] = language
        return response
