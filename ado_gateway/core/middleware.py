"""HTTP middleware for request correlation and caller identity.

This module provides:
- request_id_middleware: accepts an incoming X-Request-ID header or generates
  a UUID, stores it in contextvars for log correlation and echoes it (plus the
  request duration) on the response
- principal_middleware: resolves the X-API-Key header into a Principal and
  records actor/client details on request.state for downstream stages (the rate
  limiter reads the principal, audit events read client_ip and user_agent)

Usage:
    app.middleware("http")(principal_middleware)
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from ado_gateway.core.auth import resolve_principal
from ado_gateway.core.config import settings
from ado_gateway.core.logging import clear_request_id, set_actor, set_request_id


async def request_id_middleware(request: Request, call_next) -> Response:
    """HTTP middleware for request ID generation and propagation.

    If the client provides the correlation header (configurable via
    LOG_REQUEST_ID_HEADER), that value is used. Otherwise, a new UUID is
    generated. The ID is propagated back in the response headers and stored
    in contextvars for log correlation.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The response from the next handler with request_id and
            duration headers added.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    request.state.request_id = request_id
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response


async def principal_middleware(request: Request, call_next) -> Response:
    """Attach the caller's identity and client details to request.state.

    Sets ``principal`` (None for anonymous or unknown keys), ``client_ip`` and
    ``user_agent``. Never rejects a request; enforcement happens in the
    ``verify_api_key`` dependency.
    """

    principal = resolve_principal(request.headers.get("X-API-Key"))
    request.state.principal = principal
    set_actor(principal.subject if principal else None)
    request.state.client_ip = request.client.host if request.client else None
    request.state.user_agent = request.headers.get("user-agent", "")
    return await call_next(request)
