"""Redis-flavoured facade over the sorted-set and geo engines.

Provides the familiar command vocabulary (``zadd``, ``zrange``,
``georadius``, ...) on top of one store backend, so calling code never
touches storage or encoding details.
"""

from __future__ import annotations

from typing import Iterable, Mapping

from redimo.core.config import Settings
from redimo.core.models import AddFlag, Location, Unit
from redimo.engines.geo import GeoEngine
from redimo.engines.sorted_set import SortedSetEngine
from redimo.storage.base import StoreProtocol
from redimo.storage.factory import build_store


class Client:
    """High-level client for sorted sets and geo indexes.

    Parameters
    ----------
    store:
        Backend to use.  When ``None`` one is built from *settings*.
    settings:
        Configuration.  When ``None`` a default :class:`Settings`
        instance is created.
    """

    def __init__(
        self,
        store: StoreProtocol | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._store = store if store is not None else build_store(self._settings)
        self._zsets = SortedSetEngine(self._store, self._settings)
        self._geo = GeoEngine(self._store, self._settings)

    @property
    def sorted_sets(self) -> SortedSetEngine:
        return self._zsets

    @property
    def geo(self) -> GeoEngine:
        return self._geo

    # ------------------------------------------------------------------
    # Sorted sets
    # ------------------------------------------------------------------

    def zadd(self, key: str, members: Mapping[str, float], flags: AddFlag = AddFlag.NONE) -> int:
        return self._zsets.add(key, members, flags)

    def zscore(self, key: str, member: str) -> tuple[float, bool]:
        return self._zsets.score(key, member)

    def zcard(self, key: str) -> int:
        return self._zsets.cardinality(key)

    def zcount(self, key: str, min: float | None = None, max: float | None = None) -> int:
        return self._zsets.count_by_score(key, min, max)

    def zlexcount(self, key: str, min: str = "", max: str = "") -> int:
        return self._zsets.count_by_lex(key, min, max)

    def zincrby(self, key: str, member: str, delta: float) -> float:
        return self._zsets.increment_by(key, member, delta)

    def zrank(self, key: str, member: str) -> tuple[int, bool]:
        return self._zsets.rank(key, member)

    def zrevrank(self, key: str, member: str) -> tuple[int, bool]:
        return self._zsets.reverse_rank(key, member)

    def zrange(self, key: str, start: int, stop: int) -> dict[str, float]:
        return self._zsets.range_by_rank(key, start, stop)

    def zrevrange(self, key: str, start: int, stop: int) -> dict[str, float]:
        return self._zsets.reverse_range_by_rank(key, start, stop)

    def zrangebyscore(
        self,
        key: str,
        min: float | None = None,
        max: float | None = None,
        offset: int = 0,
        count: int = 0,
    ) -> dict[str, float]:
        return self._zsets.range_by_score(key, min, max, offset, count)

    def zrevrangebyscore(
        self,
        key: str,
        max: float | None = None,
        min: float | None = None,
        offset: int = 0,
        count: int = 0,
    ) -> dict[str, float]:
        return self._zsets.reverse_range_by_score(key, max, min, offset, count)

    def zrangebylex(
        self, key: str, min: str = "", max: str = "", offset: int = 0, count: int = 0
    ) -> dict[str, float]:
        return self._zsets.range_by_lex(key, min, max, offset, count)

    def zrevrangebylex(
        self, key: str, max: str = "", min: str = "", offset: int = 0, count: int = 0
    ) -> dict[str, float]:
        return self._zsets.reverse_range_by_lex(key, max, min, offset, count)

    def zrem(self, key: str, *members: str) -> int:
        return self._zsets.remove(key, *members)

    def zremrangebyscore(self, key: str, min: float | None = None, max: float | None = None) -> int:
        return self._zsets.remove_range_by_score(key, min, max)

    def zremrangebylex(self, key: str, min: str = "", max: str = "") -> int:
        return self._zsets.remove_range_by_lex(key, min, max)

    def zremrangebyrank(self, key: str, start: int, stop: int) -> int:
        return self._zsets.remove_range_by_rank(key, start, stop)

    def zpopmin(self, key: str, count: int = 1) -> dict[str, float]:
        return self._zsets.pop_min(key, count)

    def zpopmax(self, key: str, count: int = 1) -> dict[str, float]:
        return self._zsets.pop_max(key, count)

    def zunionstore(
        self, destination: str, keys: Iterable[str], weights: Mapping[str, float] | None = None
    ) -> int:
        return self._zsets.union_store(destination, keys, weights)

    def zinterstore(
        self, destination: str, keys: Iterable[str], weights: Mapping[str, float] | None = None
    ) -> int:
        return self._zsets.intersection_store(destination, keys, weights)

    # ------------------------------------------------------------------
    # Geo
    # ------------------------------------------------------------------

    def geoadd(self, key: str, members: Mapping[str, Location]) -> int:
        return self._geo.add(key, members)

    def geopos(self, key: str, *members: str) -> dict[str, Location]:
        return self._geo.position(key, *members)

    def geodist(
        self, key: str, member1: str, member2: str, unit: Unit = Unit.METERS
    ) -> tuple[float, bool]:
        return self._geo.distance(key, member1, member2, unit)

    def geohash(self, key: str, *members: str) -> list[str]:
        return self._geo.hash(key, *members)

    def georadius(
        self,
        key: str,
        center: Location,
        radius: float,
        unit: Unit = Unit.METERS,
        count: int = 0,
    ) -> dict[str, Location]:
        return self._geo.radius(key, center, radius, unit, count)

    def georadiusbymember(
        self,
        key: str,
        member: str,
        radius: float,
        unit: Unit = Unit.METERS,
        count: int = 0,
    ) -> dict[str, Location]:
        return self._geo.radius_by_member(key, member, radius, unit, count)
