"""Request logging middleware for FastAPI.

Logs every API request with:
- Request ID (echoed back as ``X-Request-ID`` and stamped on every log
  line written while the request runs)
- HTTP method and path
- Submission ID when the path targets one
- Response status
- Duration
- Client IP address
"""

import logging
import time
import uuid
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from legalflow.common.logger import request_id_var

logger = logging.getLogger(__name__)

# Paths that should not be logged (probes, docs)
EXCLUDED_PATHS = {
    "/health",
    "/health/live",
    "/health/ready",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/favicon.ico",
}

REQUEST_ID_HEADER = "X-Request-ID"


def get_client_ip(request: Request) -> str:
    """Extract client IP from request, handling proxies."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        # First entry is the original client
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host

    return "unknown"


def extract_submission_id(path: str) -> Optional[str]:
    """Return the submission id from ``/api/submissions/<id>/...`` paths."""
    parts = [p for p in path.strip("/").split("/") if p]
    if parts and parts[0] == "api":
        parts = parts[1:]
    if len(parts) < 2 or parts[0] != "submissions":
        return None
    try:
        uuid.UUID(parts[1])
    except ValueError:
        return None
    return parts[1]


def level_for_status(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Middleware that writes one log line per API request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in EXCLUDED_PATHS:
            return await call_next(request)

        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())[:8]
        token = request_id_var.set(request_id)
        try:
            start_time = time.time()
            response = await call_next(request)

            duration_ms = int((time.time() - start_time) * 1000)
            submission_id = extract_submission_id(request.url.path)
            target = f" submission={submission_id}" if submission_id else ""
            logger.log(
                level_for_status(response.status_code),
                f"{request.method} {request.url.path} -> {response.status_code} "
                f"({duration_ms}ms) client={get_client_ip(request)}{target}",
            )
        finally:
            request_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
