"""Multi-page range scans under a result budget.

The store answers a range query one page at a time and hands back an
opaque continuation token.  :class:`PaginationCursor` keeps requesting
pages until its budget is spent or the token runs out, asking each page
for no more than it still needs.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterator, TypeVar

from redimo.core.exceptions import StoreError
from redimo.core.models import Item, QueryRequest
from redimo.storage.base import StoreProtocol

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PaginationCursor:
    """Iterate the items matched by *request* across pages.

    Parameters
    ----------
    store:
        Backend to query.
    request:
        Template request; ``limit`` and ``start_key`` are managed by the
        cursor.
    offset:
        Number of matches to skip before yielding.
    count:
        Maximum number of items to yield after the offset; ``0`` or less
        means all.
    page_size:
        Page limit to request when *count* is unbounded.
    """

    def __init__(
        self,
        store: StoreProtocol,
        request: QueryRequest,
        *,
        offset: int = 0,
        count: int = 0,
        page_size: int | None = None,
    ) -> None:
        self._store = store
        self._request = request
        self._offset = max(offset, 0)
        self._count = count
        self._page_size = page_size

    def __iter__(self) -> Iterator[Item]:
        seen = 0
        yielded = 0
        token = None
        while True:
            limit = self._page_size
            if self._count > 0:
                limit = self._count + self._offset - seen
            page = self._store.query(
                self._request.model_copy(update={"limit": limit, "start_key": token})
            )
            logger.debug(
                "page of %d items from %s (seen=%d)",
                len(page.items),
                self._request.partition,
                seen,
            )
            for item in page.items:
                seen += 1
                if seen <= self._offset:
                    continue
                yield item
                yielded += 1
                if 0 < self._count <= yielded:
                    return
            token = page.last_key
            if token is None:
                return

    def collect(self, decode: Callable[[Item], tuple[str, T]]) -> dict[str, T]:
        """Decode every item into an insertion-ordered mapping.

        Raises
        ------
        StoreError
            If a page fails; ``exc.partial`` holds the mapping built so far.
        """
        results: dict[str, T] = {}
        try:
            for item in self:
                name, value = decode(item)
                results[name] = value
        except StoreError as exc:
            exc.partial = results
            raise
        return results

    def count(self) -> int:
        """Count all matches across pages without fetching the items.

        Raises
        ------
        StoreError
            If a page fails; ``exc.partial`` holds the count so far.
        """
        total = 0
        token = None
        request = self._request.model_copy(update={"select_count": True})
        while True:
            try:
                page = self._store.query(
                    request.model_copy(update={"limit": self._page_size, "start_key": token})
                )
            except StoreError as exc:
                exc.partial = total
                raise
            total += page.count
            token = page.last_key
            if token is None:
                return total
