"""Spatial cell codec for geo members.

Positions are stored as leaf-level S2 cell ids: a 64-bit integer along
a Hilbert curve over the six faces of a cube projected onto the sphere.
Nearby points share id prefixes, so any S2 cell at a coarser level maps to
one contiguous ``[range_min, range_max]`` interval of leaf ids, which the
location index can answer with a single range query.
"""

from __future__ import annotations

import math

import pygeohash
import s2sphere

from redimo.core.models import Location, Unit

EARTH_RADIUS_METERS = 6372797.560856


def cell_id(location: Location) -> int:
    """Return the leaf S2 cell id containing *location*."""
    latlng = s2sphere.LatLng.from_degrees(location.lat, location.lon)
    return s2sphere.CellId.from_lat_lng(latlng).id()


def location_of(cell: int) -> Location:
    """Return the centre of leaf cell *cell*.

    This is the cell's representative point, not the coordinates that were
    added; the difference is bounded by the leaf cell size
    (about a centimetre).
    """
    latlng = s2sphere.CellId(cell).to_lat_lng()
    return Location(lat=latlng.lat().degrees, lon=latlng.lng().degrees)


def covering_ranges(
    center: Location,
    radius_meters: float,
    max_cells: int = 8,
) -> list[tuple[int, int]]:
    """Cover the disc around *center* with at most *max_cells* cells.

    Returns
    -------
    list[tuple[int, int]]
        ``(range_min, range_max)`` leaf-id intervals, one per covering
        cell.  The union is a superset of the disc; callers must filter
        candidates by exact distance.

    Raises
    ------
    ValueError
        If *radius_meters* is negative.
    """
    if radius_meters < 0:
        raise ValueError(f"radius must not be negative, got {radius_meters}")
    axis = s2sphere.LatLng.from_degrees(center.lat, center.lon).to_point()
    angle = s2sphere.Angle.from_radians(radius_meters / EARTH_RADIUS_METERS)
    cap = s2sphere.Cap.from_axis_angle(axis, angle)

    coverer = s2sphere.RegionCoverer()
    coverer.max_cells = max_cells
    return [
        (cell.range_min().id(), cell.range_max().id())
        for cell in coverer.get_covering(cap)
    ]


def distance_meters(a: Location, b: Location) -> float:
    """Great-circle distance by the spherical law of cosines."""
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    delta_lambda = math.radians(b.lon - a.lon)
    cos_angle = math.sin(phi1) * math.sin(phi2) + math.cos(phi1) * math.cos(
        phi2
    ) * math.cos(delta_lambda)
    # rounding can push coincident points just past 1.0
    return math.acos(max(-1.0, min(1.0, cos_angle))) * EARTH_RADIUS_METERS


def distance(a: Location, b: Location, unit: Unit = Unit.METERS) -> float:
    return unit.from_meters(distance_meters(a, b))


def geohash(location: Location, precision: int = 12) -> str:
    return pygeohash.encode(location.lat, location.lon, precision=precision)
