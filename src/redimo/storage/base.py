"""Abstract protocol definition for redimo storage backends.

Every backend models one wide-column table whose items are addressed by
(partition key, sort key) and may carry secondary sort attributes, each
served by its own local secondary index.  The protocol is the whole query
surface the engines are allowed to use:

- point reads and conditional single-item writes/deletes,
- range queries within one partition, over the primary sort key or one
  secondary sort attribute, in either direction, paged by an opaque
  continuation token.

The protocol is marked ``@runtime_checkable`` so that ``isinstance``
checks work at runtime, but the primary enforcement mechanism is static
type-checking (mypy / pyright).
"""

from __future__ import annotations

from typing import Iterable, Mapping, Protocol, runtime_checkable

from redimo.core.models import Condition, Item, ItemKey, QueryPage, QueryRequest
from redimo.core.values import AttributeValue


@runtime_checkable
class StoreProtocol(Protocol):
    """Protocol for wide-column key-value store backends."""

    def get_item(
        self,
        key: ItemKey,
        attributes: list[str] | None = None,
    ) -> Item | None:
        """Fetch one item.

        Parameters
        ----------
        key:
            The item's primary key.
        attributes:
            Attribute names to project, or ``None`` for all.

        Returns
        -------
        Item | None
            The item if it exists, otherwise ``None``.
        """
        ...

    def update_item(
        self,
        key: ItemKey,
        updates: Mapping[str, AttributeValue],
        conditions: Iterable[Condition] = (),
    ) -> None:
        """Create or update an item by assigning *updates*.

        Parameters
        ----------
        key:
            The item's primary key.
        updates:
            Attribute assignments.
        conditions:
            Conditions that must all hold on the current item.

        Raises
        ------
        ConditionFailedError
            If any condition does not hold.  Nothing is written.
        StoreError
            On any other failure.
        """
        ...

    def delete_item(
        self,
        key: ItemKey,
        conditions: Iterable[Condition] = (),
    ) -> None:
        """Delete an item, optionally conditioned.

        Raises
        ------
        ConditionFailedError
            If any condition does not hold.
        StoreError
            On any other failure.
        """
        ...

    def query(self, request: QueryRequest) -> QueryPage:
        """Fetch one page of items from a partition.

        Parameters
        ----------
        request:
            Partition, optional index and key range, direction, page
            limit and continuation token.

        Returns
        -------
        QueryPage
            The items (or only their count when ``request.select_count``)
            and the token to resume from, ``None`` when exhausted.
        """
        ...
