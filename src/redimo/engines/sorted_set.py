"""Sorted sets emulated on a wide-column store.

Each member of a sorted set is one item: the collection key is the
partition key, the member name is the sort key, and the score is kept in
a secondary sort attribute as an order-preserving string.  Score-ordered
operations range over that attribute's index; lexicographic operations
range over the primary sort key.

Everything is built from single-item conditional writes and paged range
queries, so multi-step commands (pops, range removals) are not atomic.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Mapping, Union

from redimo.codec.score import decode_score, encode_score
from redimo.core.config import Settings
from redimo.core.exceptions import (
    ConditionFailedError,
    ContentionError,
    InvalidScoreError,
    StoreError,
    UnsupportedOperationError,
)
from redimo.core.models import (
    KEY_ATTRIBUTE,
    AddFlag,
    Condition,
    Item,
    ItemKey,
    QueryRequest,
)
from redimo.core.values import StringValue
from redimo.query.cursor import PaginationCursor
from redimo.storage.base import StoreProtocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Success:
    score: float


@dataclass(frozen=True)
class _Conflict:
    pass


_IncrementAttempt = Union[_Success, _Conflict]


class SortedSetEngine:
    """Redis sorted-set commands over a :class:`StoreProtocol` backend.

    Parameters
    ----------
    store:
        Backend owned by this engine.
    settings:
        Attribute names and retry budget.  Defaults to :class:`Settings`.
    """

    def __init__(self, store: StoreProtocol, settings: Settings | None = None) -> None:
        self._store = store
        self._settings = settings or Settings()
        self._score_attribute = self._settings.score_attribute
        self._member_attribute = self._settings.sort_attribute

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add(
        self,
        key: str,
        members: Mapping[str, float],
        flags: AddFlag = AddFlag.NONE,
    ) -> int:
        """Set the score of each member (ZADD).

        Parameters
        ----------
        key:
            Collection key.
        members:
            Member name to score.
        flags:
            ``IF_NOT_EXISTS`` only creates new members, ``IF_EXISTS`` only
            updates existing ones.  Members failing the flag are skipped.

        Returns
        -------
        int
            Number of members written.

        Raises
        ------
        InvalidScoreError
            If any score is NaN; nothing is written.
        """
        conditions: list[Condition] = []
        if AddFlag.IF_NOT_EXISTS in flags:
            conditions.append(Condition.not_exists(KEY_ATTRIBUTE))
        if AddFlag.IF_EXISTS in flags:
            conditions.append(Condition.exists(KEY_ATTRIBUTE))

        encoded = {member: encode_score(score) for member, score in members.items()}

        saved = 0
        for member, text in encoded.items():
            try:
                self._store.update_item(
                    ItemKey(partition=key, member=member),
                    {self._score_attribute: StringValue(value=text)},
                    conditions,
                )
            except ConditionFailedError:
                logger.debug("zadd %s: skipped %s (%s)", key, member, flags)
                continue
            except StoreError as exc:
                exc.partial = saved
                raise
            saved += 1
        return saved

    def increment_by(self, key: str, member: str, delta: float) -> float:
        """Add *delta* to a member's score, creating it if missing (ZINCRBY).

        The write is conditioned on the score read just before it, and
        retried on conflict.

        Raises
        ------
        ContentionError
            If every attempt lost a race with another writer.
        """
        if math.isnan(delta):
            raise InvalidScoreError("increment must not be NaN")

        attempts = self._settings.max_increment_attempts
        for attempt in range(1, attempts + 1):
            outcome = self._try_increment(key, member, delta)
            if isinstance(outcome, _Success):
                return outcome.score
            logger.debug("zincrby %s / %s: conflict on attempt %d", key, member, attempt)
        raise ContentionError(key, member, attempts)

    def _try_increment(self, key: str, member: str, delta: float) -> _IncrementAttempt:
        old_score, found = self.score(key, member)
        new_score = old_score + delta
        if found:
            guard = Condition.eq(self._score_attribute, StringValue(value=encode_score(old_score)))
        else:
            guard = Condition.not_exists(self._score_attribute)

        try:
            self._store.update_item(
                ItemKey(partition=key, member=member),
                {self._score_attribute: StringValue(value=encode_score(new_score))},
                [guard],
            )
        except ConditionFailedError:
            return _Conflict()
        return _Success(new_score)

    def remove(self, key: str, *members: str) -> int:
        """Delete members (ZREM); returns how many existed."""
        removed = 0
        for member in members:
            try:
                self._store.delete_item(
                    ItemKey(partition=key, member=member),
                    [Condition.exists(KEY_ATTRIBUTE)],
                )
            except ConditionFailedError:
                continue
            except StoreError as exc:
                exc.partial = removed
                raise
            removed += 1
        return removed

    def pop_min(self, key: str, count: int = 1) -> dict[str, float]:
        """Remove and return the *count* lowest-scored members (ZPOPMIN)."""
        return self._pop(key, count, forward=True)

    def pop_max(self, key: str, count: int = 1) -> dict[str, float]:
        """Remove and return the *count* highest-scored members (ZPOPMAX)."""
        return self._pop(key, count, forward=False)

    def _pop(self, key: str, count: int, forward: bool) -> dict[str, float]:
        # Fetch then delete: a concurrent writer can change or re-add a
        # member in between, and two poppers can both return it.
        if count <= 0:
            return {}
        members = self._range(key, None, None, 0, count, forward, by_score=True)
        self._remove_fetched(key, members)
        return members

    def remove_range_by_score(
        self,
        key: str,
        min: float | None = None,
        max: float | None = None,
    ) -> int:
        """ZREMRANGEBYSCORE; same non-atomic fetch-then-delete as pops."""
        return self._remove_fetched(key, self.range_by_score(key, min, max))

    def remove_range_by_lex(self, key: str, min: str = "", max: str = "") -> int:
        """ZREMRANGEBYLEX."""
        return self._remove_fetched(key, self.range_by_lex(key, min, max))

    def remove_range_by_rank(self, key: str, start: int, stop: int) -> int:
        """ZREMRANGEBYRANK."""
        return self._remove_fetched(key, self.range_by_rank(key, start, stop))

    def _remove_fetched(self, key: str, members: dict[str, float]) -> int:
        try:
            return self.remove(key, *members)
        except StoreError as exc:
            exc.partial = members
            raise

    # ------------------------------------------------------------------
    # Point reads and counts
    # ------------------------------------------------------------------

    def score(self, key: str, member: str) -> tuple[float, bool]:
        """Return ``(score, found)`` for one member (ZSCORE)."""
        item = self._store.get_item(
            ItemKey(partition=key, member=member), [self._score_attribute]
        )
        value = item.get(self._score_attribute) if item is not None else None
        if not isinstance(value, StringValue):
            return 0.0, False
        return decode_score(value.value), True

    def cardinality(self, key: str) -> int:
        """Number of members (ZCARD)."""
        return PaginationCursor(self._store, QueryRequest(partition=key)).count()

    def count_by_score(
        self,
        key: str,
        min: float | None = None,
        max: float | None = None,
    ) -> int:
        """Members with ``min <= score <= max`` (ZCOUNT); ``None`` is unbounded."""
        request = QueryRequest(
            partition=key,
            index=self._score_attribute,
            key_range=Condition.range(
                self._score_attribute, self._score_value(min), self._score_value(max)
            ),
        )
        return PaginationCursor(self._store, request).count()

    def count_by_lex(self, key: str, min: str = "", max: str = "") -> int:
        """Members whose name lies in ``[min, max]`` (ZLEXCOUNT); ``""`` is unbounded."""
        request = QueryRequest(
            partition=key,
            key_range=Condition.range(
                self._member_attribute, self._lex_value(min), self._lex_value(max)
            ),
        )
        return PaginationCursor(self._store, request).count()

    def rank(self, key: str, member: str) -> tuple[int, bool]:
        """Zero-based position by ascending score (ZRANK)."""
        return self._rank(key, member, forward=True)

    def reverse_rank(self, key: str, member: str) -> tuple[int, bool]:
        """Zero-based position by descending score (ZREVRANK)."""
        return self._rank(key, member, forward=False)

    def _rank(self, key: str, member: str, forward: bool) -> tuple[int, bool]:
        score, found = self.score(key, member)
        if not found:
            return 0, False
        # members tied on score all count as before this one
        if forward:
            count = self.count_by_score(key, max=score)
        else:
            count = self.count_by_score(key, min=score)
        return count - 1, True

    # ------------------------------------------------------------------
    # Ranges
    # ------------------------------------------------------------------

    def range_by_score(
        self,
        key: str,
        min: float | None = None,
        max: float | None = None,
        offset: int = 0,
        count: int = 0,
    ) -> dict[str, float]:
        """Members in ``[min, max]`` by ascending score (ZRANGEBYSCORE)."""
        return self._range(key, min, max, offset, count, forward=True, by_score=True)

    def reverse_range_by_score(
        self,
        key: str,
        max: float | None = None,
        min: float | None = None,
        offset: int = 0,
        count: int = 0,
    ) -> dict[str, float]:
        """Members in ``[min, max]`` by descending score (ZREVRANGEBYSCORE)."""
        return self._range(key, min, max, offset, count, forward=False, by_score=True)

    def range_by_lex(
        self,
        key: str,
        min: str = "",
        max: str = "",
        offset: int = 0,
        count: int = 0,
    ) -> dict[str, float]:
        """Members named within ``[min, max]`` in name order (ZRANGEBYLEX)."""
        return self._range(key, min, max, offset, count, forward=True, by_score=False)

    def reverse_range_by_lex(
        self,
        key: str,
        max: str = "",
        min: str = "",
        offset: int = 0,
        count: int = 0,
    ) -> dict[str, float]:
        """ZREVRANGEBYLEX."""
        return self._range(key, min, max, offset, count, forward=False, by_score=False)

    def range_by_rank(self, key: str, start: int, stop: int) -> dict[str, float]:
        """Members ranked ``start..stop`` inclusive by ascending score (ZRANGE).

        Negative positions count from the highest score, ``-1`` being the
        highest.
        """
        return self._range_by_rank(key, start, stop, forward=True)

    def reverse_range_by_rank(self, key: str, start: int, stop: int) -> dict[str, float]:
        """ZREVRANGE: like :meth:`range_by_rank` from the highest score down."""
        return self._range_by_rank(key, start, stop, forward=False)

    def _range_by_rank(self, key: str, start: int, stop: int, forward: bool) -> dict[str, float]:
        if start < 0 <= stop:
            start = max(self.cardinality(key) + start, 0)

        if start < 0 and stop < 0:
            if stop < start:
                return {}
            # read the tail from the other end, then restore the order
            tail = self._range(
                key, None, None, -stop - 1, stop - start + 1, not forward, by_score=True
            )
            return dict(reversed(list(tail.items())))

        if stop < 0:
            boundary = self._range(key, None, None, -stop - 1, 1, not forward, by_score=True)
            if not boundary:
                return {}
            (edge,) = boundary.values()
            low, high = (None, edge) if forward else (edge, None)
            return self._range(key, low, high, start, 0, forward, by_score=True)

        if stop < start:
            return {}
        return self._range(key, None, None, start, stop - start + 1, forward, by_score=True)

    def _range(
        self,
        key: str,
        low: float | str | None,
        high: float | str | None,
        offset: int,
        count: int,
        forward: bool,
        *,
        by_score: bool,
    ) -> dict[str, float]:
        if by_score:
            request = QueryRequest(
                partition=key,
                index=self._score_attribute,
                key_range=Condition.range(
                    self._score_attribute, self._score_value(low), self._score_value(high)
                ),
                forward=forward,
            )
        else:
            request = QueryRequest(
                partition=key,
                key_range=Condition.range(
                    self._member_attribute, self._lex_value(low), self._lex_value(high)
                ),
                forward=forward,
            )
        cursor = PaginationCursor(self._store, request, offset=offset, count=count)
        return cursor.collect(self._decode)

    # ------------------------------------------------------------------
    # Cross-key aggregates
    # ------------------------------------------------------------------

    def union_store(
        self,
        destination: str,
        keys: Iterable[str],
        weights: Mapping[str, float] | None = None,
    ) -> int:
        """ZUNIONSTORE is not supported."""
        raise UnsupportedOperationError(
            "ZUNIONSTORE needs aggregation across partitions, which the store cannot do"
        )

    def intersection_store(
        self,
        destination: str,
        keys: Iterable[str],
        weights: Mapping[str, float] | None = None,
    ) -> int:
        """ZINTERSTORE is not supported."""
        raise UnsupportedOperationError(
            "ZINTERSTORE needs aggregation across partitions, which the store cannot do"
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _decode(self, item: Item) -> tuple[str, float]:
        value = item.get(self._score_attribute)
        if not isinstance(value, StringValue):
            raise StoreError(f"member {item.key.member!r} of {item.key.partition!r} has no score")
        return item.key.member, decode_score(value.value)

    @staticmethod
    def _score_value(score: float | str | None) -> StringValue | None:
        if score is None:
            return None
        return StringValue(value=encode_score(float(score)))

    @staticmethod
    def _lex_value(name: float | str | None) -> StringValue | None:
        if name is None or name == "":
            return None
        return StringValue(value=str(name))
