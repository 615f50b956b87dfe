"""
Memory Locks API — Request ID Middleware
=========================================

What:  Gives every request a short correlation id, returned in X-Request-ID
       and in the RequestId field of error envelopes.
How:   Reuses an incoming X-Request-ID (the Cloudflare workers forward
       theirs) or generates one, then stores it in a ContextVar.

Why a ContextVar:
    Requests run concurrently on one event loop thread, so threading.local
    would leak ids between requests. Each task gets its own context copy.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]

        # ContextVar for loggers and exception handlers, request.state for routes
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
