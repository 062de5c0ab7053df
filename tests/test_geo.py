import math

import pytest

from redimo.codec import cells
from redimo.core.exceptions import StoreError
from redimo.core.models import Location, Unit
from redimo.engines.geo import GeoEngine

PALERMO = Location(lat=38.115556, lon=13.361389)
CATANIA = Location(lat=37.502669, lon=15.087269)


@pytest.fixture
def sicily(geo):
    geo.add("Sicily", {"Palermo": PALERMO, "Catania": CATANIA})
    return geo


def test_add_counts_members(geo):
    assert geo.add("Sicily", {"Palermo": PALERMO, "Catania": CATANIA}) == 2


def test_position_is_close_to_added_coordinates(sicily):
    positions = sicily.position("Sicily", "Palermo", "Catania", "Nowhere")

    assert set(positions) == {"Palermo", "Catania"}
    assert positions["Palermo"].lat == pytest.approx(PALERMO.lat, abs=1e-6)
    assert positions["Palermo"].lon == pytest.approx(PALERMO.lon, abs=1e-6)


def test_distance(sicily):
    meters, found = sicily.distance("Sicily", "Palermo", "Catania")
    assert found
    assert meters == pytest.approx(166274.15, rel=1e-4)

    km, _ = sicily.distance("Sicily", "Palermo", "Catania", Unit.KILOMETERS)
    assert km == pytest.approx(166.274, rel=1e-4)

    miles, _ = sicily.distance("Sicily", "Palermo", "Catania", Unit.MILES)
    assert miles == pytest.approx(103.318, rel=1e-3)

    assert sicily.distance("Sicily", "Palermo", "Atlantis") == (0.0, False)


def test_hash(sicily):
    hashes = sicily.hash("Sicily", "Palermo", "Atlantis", "Catania")

    assert len(hashes) == 3
    assert hashes[0].startswith("sqc8b49rn")
    assert hashes[1] == ""
    assert hashes[2].startswith("sqdtr74hy")
    assert len(hashes[0]) == 12


def test_radius(sicily):
    center = Location(lat=37, lon=15)

    assert set(sicily.radius("Sicily", center, 200, Unit.KILOMETERS)) == {"Palermo", "Catania"}
    assert set(sicily.radius("Sicily", center, 100, Unit.KILOMETERS)) == {"Catania"}
    assert sicily.radius("Sicily", center, 10, Unit.KILOMETERS) == {}


def test_radius_respects_count(sicily):
    center = Location(lat=37, lon=15)
    assert len(sicily.radius("Sicily", center, 200, Unit.KILOMETERS, count=1)) == 1
    assert len(sicily.radius("Sicily", center, 200, Unit.KILOMETERS, count=0)) == 2


def test_radius_by_member(sicily):
    assert set(sicily.radius_by_member("Sicily", "Palermo", 200, Unit.KILOMETERS)) == {
        "Palermo",
        "Catania",
    }
    assert set(sicily.radius_by_member("Sicily", "Catania", 50, Unit.KILOMETERS)) == {"Catania"}
    assert sicily.radius_by_member("Sicily", "Atlantis", 500, Unit.KILOMETERS) == {}


def _offset(center, meters, bearing):
    """Point *meters* from *center* along *bearing* (degrees), small distances only."""
    per_degree = cells.EARTH_RADIUS_METERS * math.pi / 180
    theta = math.radians(bearing)
    return Location(
        lat=center.lat + meters * math.cos(theta) / per_degree,
        lon=center.lon + meters * math.sin(theta) / (per_degree * math.cos(math.radians(center.lat))),
    )


def test_radius_filters_candidates_from_covering_cells(geo):
    center = Location(lat=48.8566, lon=2.3522)
    radius = 1000.0

    inside = {f"in{b}": _offset(center, 0.8 * radius, b) for b in range(0, 360, 45)}
    outside = {f"out{b}": _offset(center, 1.1 * radius, b) for b in range(0, 360, 15)}
    geo.add("paris", {**inside, **outside})

    # at least one outside point shares a covering cell with the disc
    ranges = cells.covering_ranges(center, radius)
    overlapping = [
        name
        for name, loc in outside.items()
        if any(low <= cells.cell_id(loc) <= high for low, high in ranges)
    ]
    assert overlapping

    found = geo.radius("paris", center, radius)
    assert set(found) == set(inside)
    for location in found.values():
        assert cells.distance(center, location) <= radius


def test_geo_members_share_the_sorted_set_client(client):
    client.geoadd("places", {"home": Location(lat=1, lon=1)})
    assert client.geopos("places", "home")["home"].lat == pytest.approx(1, abs=1e-6)
    assert client.zscore("places", "home") == (0.0, False)


def test_negative_radius_is_rejected(sicily):
    with pytest.raises(ValueError):
        sicily.radius("Sicily", PALERMO, -5, Unit.KILOMETERS)
    with pytest.raises(ValueError):
        cells.covering_ranges(PALERMO, -1.0)


class FlakyStore:
    """Fails the *fail_on*-th call of *operation*, passing everything else through."""

    def __init__(self, inner, operation, fail_on):
        self.inner = inner
        self.operation = operation
        self.fail_on = fail_on
        self.calls = 0

    def __getattr__(self, name):
        method = getattr(self.inner, name)
        if name != self.operation:
            return method

        def call(*args, **kwargs):
            self.calls += 1
            if self.calls == self.fail_on:
                raise StoreError("service unavailable")
            return method(*args, **kwargs)

        return call


def test_add_stops_at_first_store_error(geo, store, settings):
    engine = GeoEngine(FlakyStore(store, "update_item", fail_on=2), settings)

    with pytest.raises(StoreError) as info:
        engine.add("Sicily", {"Palermo": PALERMO, "Catania": CATANIA})

    assert info.value.partial == 1
    assert set(geo.position("Sicily", "Palermo", "Catania")) == {"Palermo"}


def test_position_failure_keeps_earlier_results(sicily, store, settings):
    engine = GeoEngine(FlakyStore(store, "get_item", fail_on=2), settings)

    with pytest.raises(StoreError) as info:
        engine.position("Sicily", "Palermo", "Catania")

    assert list(info.value.partial) == ["Palermo"]
