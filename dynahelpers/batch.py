"""
Batch reads and writes for dynahelpers.

DynamoDB caps BatchGetItem at 100 keys and BatchWriteItem at 25 requests and
may hand back part of any batch as "unprocessed". Every operation here runs
in three steps:

1. Chunk the input (batch-get also drops duplicate keys first).
2. Send all chunks concurrently on a thread pool and wait for all of them.
3. Inside each chunk, resend the unprocessed remainder after a decorrelated
   jitter delay until nothing is left.

Retries are unbounded unless ``max_retries`` is given.
"""

import json
import threading
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from decimal import Decimal
from typing import Any, TypeVar

from ._logging import logger
from .backoff import next_delay, sleep_ms
from .connection import get_connection
from .exceptions import BatchRetryExceededError, handle_dynamo_errors
from .serializer import DynamoSerializer, default_serializer

BATCH_GET_LIMIT = 100
BATCH_WRITE_LIMIT = 25
DEFAULT_MAX_WORKERS = 16

T = TypeVar("T")
R = TypeVar("R")

Sleep = Callable[[float], None]


def _canonical(value: Any) -> Any:
    """
    Maps a key value onto a JSON-safe form in which values DynamoDB considers
    equal compare equal: 1, 1.0 and Decimal("1.00") share one number form.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return {"N": str(Decimal(str(value)).normalize())}
    if isinstance(value, dict):
        return {k: _canonical(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_canonical(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted((_canonical(v) for v in value), key=repr)
    return value


def dedupe_keys(keys: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Drops equal keys, keeping the first occurrence in order.
    Attribute order inside a key and the Python type of a number do not matter.
    """
    seen: set[str] = set()
    unique: list[dict[str, Any]] = []
    for key in keys:
        fingerprint = json.dumps(_canonical(key), sort_keys=True, default=repr)
        if fingerprint not in seen:
            seen.add(fingerprint)
            unique.append(key)
    return unique


def chunked(items: Sequence[T], size: int) -> list[list[T]]:
    """Splits ``items`` into contiguous chunks of at most ``size``."""
    if size <= 0:
        raise ValueError("size must be > 0")
    return [list(items[start : start + size]) for start in range(0, len(items), size)]


def run_chunks(
    chunks: Sequence[T],
    worker: Callable[[T, threading.Event], R],
    *,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> list[R]:
    """
    Runs ``worker`` for every chunk concurrently and waits for all of them.

    The first failure sets the abort event handed to every worker: requests
    already sent are allowed to finish, then the other workers stop retrying
    and the failure is re-raised once every worker has returned.

    Returns the worker results in chunk order.
    """
    if not chunks:
        return []

    abort = threading.Event()
    workers = max(1, min(max_workers, len(chunks)))

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(worker, chunk, abort) for chunk in chunks]
        try:
            for future in as_completed(futures):
                future.result()
        except BaseException:
            abort.set()
            raise

    return [future.result() for future in futures]


def _check_retry_budget(
    operation: str, attempts: int, max_retries: int | None, remaining: int
) -> None:
    if max_retries is not None and attempts >= max_retries:
        raise BatchRetryExceededError(operation=operation, unprocessed_count=remaining)


def _drain_get_chunk(
    client: Any,
    table: str,
    keys: list[dict[str, Any]],
    abort: threading.Event,
    *,
    base_request: dict[str, Any],
    sleep: Sleep,
    max_retries: int | None,
) -> list[dict[str, Any]]:
    """Fetches one chunk of wire-format keys, retrying UnprocessedKeys."""
    records: list[dict[str, Any]] = []
    if abort.is_set():
        return records

    pending = keys
    previous_delay = 0.0
    attempts = 0

    while True:
        request_items = {table: {**base_request, "Keys": pending}}
        with handle_dynamo_errors(table_name=table, operation="batch_get"):
            response = client.batch_get_item(RequestItems=request_items)

        records.extend(response.get("Responses", {}).get(table, []))
        pending = (response.get("UnprocessedKeys") or {}).get(table, {}).get("Keys") or []

        if not pending or abort.is_set():
            return records

        _check_retry_budget("batch_get", attempts, max_retries, len(pending))
        attempts += 1
        delay = next_delay(previous_delay)
        previous_delay = delay

        logger.debug(
            "Retrying unprocessed keys",
            extra={
                "table": table,
                "operation": "batch_get",
                "unprocessed": len(pending),
                "attempt": attempts,
                "delay_ms": delay,
            },
        )
        sleep(delay)


def _drain_write_chunk(
    client: Any,
    table: str,
    requests: list[dict[str, Any]],
    abort: threading.Event,
    *,
    operation: str,
    sleep: Sleep,
    max_retries: int | None,
) -> None:
    """Writes one chunk of Put/Delete requests, retrying UnprocessedItems."""
    if abort.is_set():
        return

    request_items: dict[str, Any] = {table: requests}
    previous_delay = 0.0
    attempts = 0

    while True:
        with handle_dynamo_errors(table_name=table, operation=operation):
            response = client.batch_write_item(RequestItems=request_items)

        unprocessed = {
            name: pending
            for name, pending in (response.get("UnprocessedItems") or {}).items()
            if pending
        }
        if not unprocessed or abort.is_set():
            return

        remaining = sum(len(pending) for pending in unprocessed.values())
        _check_retry_budget(operation, attempts, max_retries, remaining)
        attempts += 1
        delay = next_delay(previous_delay)
        previous_delay = delay

        logger.debug(
            "Retrying unprocessed items",
            extra={
                "table": table,
                "operation": operation,
                "unprocessed": remaining,
                "attempt": attempts,
                "delay_ms": delay,
            },
        )
        sleep(delay)
        request_items = unprocessed


def _write_all(
    client: Any,
    table: str,
    requests: list[dict[str, Any]],
    *,
    operation: str,
    sleep: Sleep,
    max_retries: int | None,
    max_workers: int,
) -> None:
    chunks = chunked(requests, BATCH_WRITE_LIMIT)

    logger.info(
        "Executing batch write",
        extra={
            "table": table,
            "operation": operation,
            "request_count": len(requests),
            "chunk_count": len(chunks),
        },
    )

    run_chunks(
        chunks,
        lambda chunk, abort: _drain_write_chunk(
            client,
            table,
            chunk,
            abort,
            operation=operation,
            sleep=sleep,
            max_retries=max_retries,
        ),
        max_workers=max_workers,
    )

    logger.info(
        "Batch write successful",
        extra={"table": table, "operation": operation, "request_count": len(requests)},
    )


def batch_get_items(
    table: str,
    keys: Sequence[dict[str, Any]],
    *,
    consistent_read: bool = False,
    projection: Sequence[str] | None = None,
    client: Any | None = None,
    serializer: DynamoSerializer = default_serializer,
    max_retries: int | None = None,
    sleep: Sleep = sleep_ms,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> list[dict[str, Any]]:
    """
    Fetches many items by key.

    Duplicate keys are requested once. Keys are sent in chunks of 100 and
    items come back in arbitrary order.

    Args:
        table: Table name
        keys: Keys of the items to fetch, as Python dicts
        consistent_read: Use strongly consistent reads
        projection: Attribute names to return
        client: DynamoDB client (defaults to the shared connection)
        max_retries: Give up after this many retries per chunk (unbounded when None)
        sleep: Called with the delay in milliseconds between retries
        max_workers: Maximum number of chunks in flight

    Usage:
        users = batch_get_items("users", [{"id": "1"}, {"id": "2"}])
    """
    if not keys:
        return []

    client = client or get_connection()
    unique = dedupe_keys(keys)
    wire_keys = [serializer.to_dynamo(key) for key in unique]
    chunks = chunked(wire_keys, BATCH_GET_LIMIT)

    base_request: dict[str, Any] = {}
    if consistent_read:
        base_request["ConsistentRead"] = True
    if projection:
        base_request["ProjectionExpression"] = ",".join(projection)

    logger.info(
        "Executing batch get",
        extra={
            "table": table,
            "operation": "batch_get",
            "key_count": len(keys),
            "unique_key_count": len(unique),
            "chunk_count": len(chunks),
        },
    )

    results = run_chunks(
        chunks,
        lambda chunk, abort: _drain_get_chunk(
            client,
            table,
            chunk,
            abort,
            base_request=base_request,
            sleep=sleep,
            max_retries=max_retries,
        ),
        max_workers=max_workers,
    )

    records = [serializer.from_dynamo(item) for chunk_items in results for item in chunk_items]
    logger.info(
        "Batch get successful",
        extra={"table": table, "operation": "batch_get", "item_count": len(records)},
    )
    return records


def batch_put_items(
    table: str,
    items: Sequence[dict[str, Any]],
    *,
    client: Any | None = None,
    serializer: DynamoSerializer = default_serializer,
    max_retries: int | None = None,
    sleep: Sleep = sleep_ms,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> list[dict[str, Any]]:
    """
    Writes many items, 25 per request, retrying unprocessed items.

    Returns the input items once every chunk has been fully written.

    Usage:
        batch_put_items("users", [{"id": "1", "name": "Alice"}, ...])
    """
    if not items:
        return list(items)

    client = client or get_connection()
    requests = [{"PutRequest": {"Item": serializer.to_dynamo(item)}} for item in items]
    _write_all(
        client,
        table,
        requests,
        operation="batch_put",
        sleep=sleep,
        max_retries=max_retries,
        max_workers=max_workers,
    )
    return list(items)


def batch_delete_items(
    table: str,
    keys: Sequence[dict[str, Any]],
    *,
    client: Any | None = None,
    serializer: DynamoSerializer = default_serializer,
    max_retries: int | None = None,
    sleep: Sleep = sleep_ms,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> bool:
    """
    Deletes many items by key, 25 per request, retrying unprocessed items.

    Returns True once every chunk has been fully processed.
    """
    if not keys:
        return True

    client = client or get_connection()
    requests = [{"DeleteRequest": {"Key": serializer.to_dynamo(key)}} for key in keys]
    _write_all(
        client,
        table,
        requests,
        operation="batch_delete",
        sleep=sleep,
        max_retries=max_retries,
        max_workers=max_workers,
    )
    return True
