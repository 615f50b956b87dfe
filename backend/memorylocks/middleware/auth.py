"""
Memory Locks API — Worker API Key Middleware
=============================================

What:  Only the sibling workers (auth worker, core API, upload worker) may
       call this service. They send the shared key in `Worker-API-Key`.
Public: the health endpoints, the API docs and the album pages
       (/album/*, /albums/*), which are opened from QR codes.

Responses:
    no header      → 401 "Worker API key is required"
    wrong key      → 401 "Invalid Worker API key"
    WORKER_API_KEY unset on the server → every protected request gets 401
"""

import hmac
import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from memorylocks.config import settings
from memorylocks.exceptions import AuthenticationError
from memorylocks.middleware.rate_limit import API_KEY_HEADER, client_ip
from memorylocks.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

PUBLIC_PATHS = {"/", "/health", "/public/health", "/docs", "/openapi.json", "/redoc"}
PUBLIC_PREFIXES = ("/album/", "/albums/", "/docs/")


def is_public_path(path: str) -> bool:
    return path in PUBLIC_PATHS or path.startswith(PUBLIC_PREFIXES)


def _unauthorized(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=AuthenticationError.status_code,
        content={
            "Success": False,
            "Message": message,
            "Code": AuthenticationError.code,
            "RequestId": request_id_var.get(""),
        },
    )


class WorkerAPIKeyMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method == "OPTIONS" or is_public_path(request.url.path):
            return await call_next(request)

        provided = request.headers.get(API_KEY_HEADER)
        if not provided:
            return _unauthorized("Worker API key is required")

        expected = settings.worker_api_key
        if not expected or not hmac.compare_digest(provided.encode(), expected.encode()):
            logger.warning(
                "Rejected invalid Worker API key for %s %s from %s",
                request.method, request.url.path, client_ip(request),
            )
            return _unauthorized("Invalid Worker API key")

        return await call_next(request)
