import time
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

log = logging.getLogger("req")

# Health probes and scrapes would drown the request log
_QUIET_PATHS = frozenset({"/health", "/metrics"})


class RequestLogMiddleware(BaseHTTPMiddleware):
    """One log line per request; must sit inside RequestIdMiddleware."""

    async def dispatch(self, request: Request, call_next):
        t0 = time.perf_counter()
        response: Response = await call_next(request)
        path = request.url.path
        if path in _QUIET_PATHS:
            return response
        log.info(
            "%s %s -> %s",
            request.method,
            path,
            response.status_code,
            extra={
                "status": response.status_code,
                "duration_ms": int((time.perf_counter() - t0) * 1000),
                "client_ip": request.client.host if request.client else "unknown",
            },
        )
        return response
