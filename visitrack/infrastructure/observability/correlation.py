"""Request correlation IDs.

The ID lives in a ContextVar, so it follows a request through every await
without being passed around. Work that leaves the request (the outbox
consumer, sweeps) re-enters a scope explicitly:

    with correlation_scope(queued.correlation_id):
        await router.dispatch(queued.notification)

The HTTP middleware reads X-Correlation-ID or mints a fresh ID.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any
from uuid import uuid4

# "" means unset
_correlation_id: ContextVar[str] = ContextVar("visitrack_correlation_id", default="")


def generate_correlation_id() -> str:
    """A fresh UUID4 string."""
    return str(uuid4())


def get_correlation_id() -> str:
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> None:
    _correlation_id.set(correlation_id)


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """Run a block under `correlation_id` (or a new one), then restore.

    Yields:
        The ID in effect inside the block.
    """
    effective = correlation_id or generate_correlation_id()
    token = _correlation_id.set(effective)
    try:
        yield effective
    finally:
        _correlation_id.reset(token)


def correlation_id_processor(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor: stamp the current ID on the event, if any."""
    current = _correlation_id.get()
    if current:
        event_dict["correlation_id"] = current
    return event_dict
