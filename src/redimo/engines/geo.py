"""Geo indexes emulated on a wide-column store.

Each geo member is one item whose location attribute holds the leaf S2
cell id of its position.  Radius searches cover the search disc with a
handful of S2 cells, range-query the location index once per cell and
keep the candidates whose exact great-circle distance is within the
radius.  Results are not sorted by distance.
"""

from __future__ import annotations

import logging
from typing import Mapping

from redimo.codec import cells
from redimo.core.config import Settings
from redimo.core.exceptions import StoreError
from redimo.core.models import Condition, Item, ItemKey, Location, QueryRequest, Unit
from redimo.core.values import NumberValue
from redimo.query.cursor import PaginationCursor
from redimo.storage.base import StoreProtocol

logger = logging.getLogger(__name__)


class GeoEngine:
    """Redis geo commands over a :class:`StoreProtocol` backend.

    Parameters
    ----------
    store:
        Backend owned by this engine.
    settings:
        Attribute names, geohash precision and covering size.
    """

    def __init__(self, store: StoreProtocol, settings: Settings | None = None) -> None:
        self._store = store
        self._settings = settings or Settings()
        self._location_attribute = self._settings.location_attribute

    def add(self, key: str, members: Mapping[str, Location]) -> int:
        """Store the position of each member (GEOADD); returns the count written."""
        added = 0
        for member, location in members.items():
            try:
                self._store.update_item(
                    ItemKey(partition=key, member=member),
                    {self._location_attribute: NumberValue.of(cells.cell_id(location))},
                )
            except StoreError as exc:
                exc.partial = added
                raise
            added += 1
        return added

    def position(self, key: str, *members: str) -> dict[str, Location]:
        """Stored positions (GEOPOS); unknown members are left out.

        Positions come back as S2 leaf-cell centres, not the exact
        coordinates that were added.
        """
        locations: dict[str, Location] = {}
        for member in members:
            try:
                item = self._store.get_item(
                    ItemKey(partition=key, member=member), [self._location_attribute]
                )
            except StoreError as exc:
                exc.partial = locations
                raise
            location = self._location(item) if item is not None else None
            if location is not None:
                locations[member] = location
        return locations

    def distance(
        self,
        key: str,
        member1: str,
        member2: str,
        unit: Unit = Unit.METERS,
    ) -> tuple[float, bool]:
        """Distance between two members (GEODIST); ``(0.0, False)`` if either is unknown."""
        locations = self.position(key, member1, member2)
        if member1 not in locations or member2 not in locations:
            return 0.0, False
        return cells.distance(locations[member1], locations[member2], unit), True

    def hash(self, key: str, *members: str) -> list[str]:
        """Geohash per member in argument order (GEOHASH); ``""`` if unknown."""
        locations = self.position(key, *members)
        precision = self._settings.geohash_precision
        return [
            cells.geohash(locations[member], precision) if member in locations else ""
            for member in members
        ]

    def radius(
        self,
        key: str,
        center: Location,
        radius: float,
        unit: Unit = Unit.METERS,
        count: int = 0,
    ) -> dict[str, Location]:
        """Members within *radius* of *center* (GEORADIUS).

        Parameters
        ----------
        key:
            Collection key.
        center:
            Centre of the search disc.
        radius:
            Search radius, in *unit*.
        unit:
            Unit of *radius*.
        count:
            Stop after this many matches; ``0`` or less returns all.

        Returns
        -------
        dict[str, Location]
            Matching members, in covering-cell order rather than by
            distance.

        Raises
        ------
        ValueError
            If *radius* is negative.
        """
        if radius < 0:
            raise ValueError(f"radius must not be negative, got {radius}")
        ranges = cells.covering_ranges(
            center, unit.to_meters(radius), self._settings.max_covering_cells
        )
        logger.debug("georadius %s: %d covering cells", key, len(ranges))

        found: dict[str, Location] = {}
        try:
            for range_min, range_max in ranges:
                request = QueryRequest(
                    partition=key,
                    index=self._location_attribute,
                    key_range=Condition.between(
                        self._location_attribute,
                        NumberValue.of(range_min),
                        NumberValue.of(range_max),
                    ),
                )
                page_size = count - len(found) if count > 0 else None
                for item in PaginationCursor(self._store, request, page_size=page_size):
                    location = self._location(item)
                    # covering cells overshoot the disc; check the real distance
                    if location is None or cells.distance(center, location, unit) > radius:
                        continue
                    found[item.key.member] = location
                    if 0 < count <= len(found):
                        return found
        except StoreError as exc:
            exc.partial = found
            raise
        return found

    def radius_by_member(
        self,
        key: str,
        member: str,
        radius: float,
        unit: Unit = Unit.METERS,
        count: int = 0,
    ) -> dict[str, Location]:
        """GEORADIUSBYMEMBER; an unknown *member* matches nothing."""
        locations = self.position(key, member)
        if member not in locations:
            return {}
        return self.radius(key, locations[member], radius, unit, count)

    def _location(self, item: Item) -> Location | None:
        value = item.get(self._location_attribute)
        if not isinstance(value, NumberValue):
            return None
        return cells.location_of(value.as_int())
