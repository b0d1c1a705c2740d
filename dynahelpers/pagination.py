"""
Pagination support for dynahelpers.

``paginate`` drives a Query or Scan until DynamoDB stops returning a
LastEvaluatedKey (or a caller supplied limit is reached). ``PageResult``
represents one page with a cursor, for callers that page through results
themselves.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from ._logging import logger

T = TypeVar("T")

FetchPage = Callable[[dict[str, Any] | None], dict[str, Any]]


@dataclass
class PageResult(Generic[T]):
    """
    Represents a single page of results with pagination cursor.

    Attributes:
        items: Records for this page
        last_evaluated_key: Cursor for the next page (None if no more pages)
        count: Number of items in this page
    """

    items: list[T]
    last_evaluated_key: dict[str, Any] | None
    count: int

    @property
    def has_more(self) -> bool:
        """Returns True if there are more pages available."""
        return self.last_evaluated_key is not None


def paginate(
    fetch_page: FetchPage,
    *,
    limit: int | None = None,
    start_key: dict[str, Any] | None = None,
) -> list[dict[str, Any]]:
    """
    Fetches pages until the results are exhausted.

    Only the absence of LastEvaluatedKey ends the loop: an empty page with a
    cursor is followed. When ``limit`` is set, no further page is requested
    once at least ``limit`` items are collected, but the last page is kept
    whole so the result may exceed ``limit``.

    Args:
        fetch_page: Callable issuing one request for the given ExclusiveStartKey
        limit: Stop fetching once this many items are collected
        start_key: Wire-format ExclusiveStartKey for the first request

    Returns:
        Wire-format items of every fetched page, in page order.
    """
    items: list[dict[str, Any]] = []
    last_key = start_key
    pages = 0

    while True:
        response = fetch_page(last_key)
        pages += 1
        items.extend(response.get("Items", []))
        last_key = response.get("LastEvaluatedKey") or None

        logger.debug(
            "Fetched page",
            extra={"page": pages, "item_count": len(items), "has_more": last_key is not None},
        )

        if last_key is None:
            break
        if limit and len(items) >= limit:
            break

    return items
