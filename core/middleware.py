"""
Request id, security header and rate limiting middleware.

Every request gets an id, taken from the caller's X-Request-ID header when
the web client sends one. Routers hand it to the delivery state machine so
a status change can be traced from the access log to the transition log.
"""
import time
import uuid
import logging
from typing import Dict, List, Optional
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from services.auth import verify_token

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 64


def get_request_id(request: Request) -> Optional[str]:
    """Dependency returning the id assigned by RequestLoggingMiddleware."""
    return getattr(request.state, "request_id", None)


def caller_key(request: Request) -> str:
    """Who is calling: the account behind a valid bearer token, else the client address."""
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and token:
        token_data = verify_token(token)
        if token_data is not None:
            return f"{token_data.role.value}:{token_data.user_id}"
    return f"ip:{request.client.host if request.client else 'unknown'}"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER, "").strip()[:MAX_REQUEST_ID_LENGTH] or str(uuid.uuid4())
        request.state.request_id = request_id

        started = time.time()
        logger.info(f"[{request_id}] {request.method} {request.url.path} from {caller_key(request)}")
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(f"[{request_id}] failed after {time.time() - started:.3f}s: {str(e)}")
            raise

        elapsed = time.time() - started
        logger.info(f"[{request_id}] {response.status_code} in {elapsed:.3f}s")
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Process-Time"] = f"{elapsed:.3f}"
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        # Vendors post live positions from the browser
        response.headers["Permissions-Policy"] = "geolocation=(self), microphone=(), camera=()"
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Sliding window limit per caller.

    Logged-in callers are counted per account, so customers sharing an
    office network do not exhaust each other's allowance. Anonymous calls
    (login, registration) are counted per client address.
    """

    def __init__(self, app, calls: int = 100, period: int = 60):
        super().__init__(app)
        self.calls = calls
        self.period = period
        self.windows: Dict[str, List[float]] = {}

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        key = caller_key(request)
        now = time.time()

        self.windows = {k: hits for k, hits in self.windows.items() if now - hits[-1] < self.period}
        hits = [t for t in self.windows.get(key, []) if now - t < self.period]

        if len(hits) >= self.calls:
            logger.warning(f"[{get_request_id(request)}] rate limit reached for {key}")
            return Response(
                content='{"success": false, "message": "Rate limit exceeded", "error_code": "RATE_LIMITED"}',
                status_code=429,
                media_type="application/json",
                headers={"Retry-After": str(int(self.period - (now - hits[0])) + 1)}
            )

        hits.append(now)
        self.windows[key] = hits
        return await call_next(request)
