from __future__ import annotations
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    """Correlation id of the request being served (None outside a request)."""
    return request_id.get()


@contextmanager
def bind_request_id(rid: str) -> Iterator[str]:
    token = request_id.set(rid)
    try:
        yield rid
    finally:
        request_id.reset(token)
