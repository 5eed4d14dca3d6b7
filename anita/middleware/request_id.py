import uuid
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from anita.utils.request_ctx import bind_request_id


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Propagates X-Request-ID (or mints a UUID4) into the request context.

    Route handlers read it via ``get_request_id()`` and echo it in bodies
    (chat responses, 429 errors); the header is returned on every response.
    """

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = rid
        with bind_request_id(rid):
            response: Response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
