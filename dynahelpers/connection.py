"""
Shared DynamoDB client management.

The process-wide client is created lazily on first use and reused for the
lifetime of the process. Creation is guarded by a lock so concurrent first
calls still build exactly one client. ``using_connection`` scopes an
override to a block of code through a ContextVar.
"""

import threading
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

import boto3

from ._logging import logger
from .config import ConnectionSettings

_client: Any | None = None
_client_lock = threading.Lock()
_client_context: ContextVar[Any | None] = ContextVar("dynahelpers_client", default=None)


def create_connection(settings: ConnectionSettings | None = None) -> Any:
    """
    Creates a new low-level boto3 DynamoDB client.

    Uses DynamoDB Local when IS_OFFLINE is "true" and FORCE_ONLINE is not.
    """
    settings = settings or ConnectionSettings.from_env()
    logger.info(
        "Creating DynamoDB client",
        extra={
            "region": settings.region,
            "endpoint": settings.endpoint_url,
            "offline": settings.offline,
        },
    )
    return boto3.client("dynamodb", **settings.client_kwargs())


def get_connection() -> Any:
    """
    Returns the DynamoDB client for the current context.

    1. A client scoped with ``using_connection`` wins.
    2. Otherwise the process-wide client, created once on first use.
    """
    ctx_client = _client_context.get()
    if ctx_client is not None:
        return ctx_client

    global _client
    if _client is None:
        with _client_lock:
            if _client is None:
                _client = create_connection()
    return _client


def set_connection(client: Any | None) -> None:
    """
    Replaces the process-wide client.
    Useful for testing or custom configurations. Passing None makes the next
    ``get_connection`` build a fresh default client.
    """
    global _client
    with _client_lock:
        _client = client


@contextmanager
def using_connection(client: Any) -> Generator[None, None, None]:
    """
    Context manager to scope a client to a block of code.
    Thread-safe and async-safe using contextvars.

    Usage:
        with using_connection(my_client):
            get_item("users", {"id": "1"})
    """
    token = _client_context.set(client)
    try:
        yield
    finally:
        _client_context.reset(token)
