import math

import pytest

from redimo.core.exceptions import (
    ConditionFailedError,
    ContentionError,
    InvalidScoreError,
    StoreError,
    UnsupportedOperationError,
)
from redimo.core.models import AddFlag
from redimo.engines.sorted_set import SortedSetEngine


def test_basic_sorted_set(zsets):
    count = zsets.add("z1", {"m1": 1, "m2": 2, "m3": 3, "m4": math.inf})
    assert count == 4

    assert zsets.score("z1", "m2") == (2.0, True)
    assert zsets.score("z1", "nosuchmember") == (0.0, False)
    assert zsets.cardinality("z1") == 4

    assert zsets.count_by_score("z1", 2, 3) == 2
    assert zsets.count_by_score("z1", 2, math.inf) == 3
    assert zsets.count_by_score("z1", -math.inf, math.inf) == 4
    assert zsets.count_by_score("z1") == 4

    assert zsets.increment_by("z1", "m2", 0.5) == pytest.approx(2.5)
    assert zsets.score("z1", "m2") == (2.5, True)

    assert zsets.remove("z1", "m2", "m3", "nosuchmember") == 2
    assert zsets.cardinality("z1") == 2
    assert zsets.score("z1", "m2") == (0.0, False)
    assert zsets.score("z1", "m3") == (0.0, False)


def test_increment_creates_missing_member(zsets):
    assert zsets.increment_by("zNew", "mNew", 0.5) == pytest.approx(0.5)
    assert zsets.score("zNew", "mNew") == (0.5, True)


def test_readding_same_score_is_idempotent(zsets):
    zsets.add("z1", {"m1": 1.25})
    zsets.add("z1", {"m1": 1.25})
    assert zsets.score("z1", "m1") == (1.25, True)
    assert zsets.cardinality("z1") == 1


def test_readding_overwrites_score(zsets):
    zsets.add("z1", {"m1": 1, "m2": 2})
    zsets.add("z1", {"m1": 3})
    assert list(zsets.range_by_rank("z1", 0, -1)) == ["m2", "m1"]


def test_add_flags(zsets):
    zsets.add("z1", {"old": 1})

    assert zsets.add("z1", {"old": 5, "new": 2}, AddFlag.IF_NOT_EXISTS) == 1
    assert zsets.score("z1", "old") == (1.0, True)
    assert zsets.score("z1", "new") == (2.0, True)

    assert zsets.add("z1", {"old": 7, "ghost": 3}, AddFlag.IF_EXISTS) == 1
    assert zsets.score("z1", "old") == (7.0, True)
    assert zsets.score("z1", "ghost") == (0.0, False)


def test_nan_is_rejected_before_writing(zsets):
    with pytest.raises(InvalidScoreError):
        zsets.add("z1", {"ok": 1, "bad": math.nan})
    assert zsets.cardinality("z1") == 0

    with pytest.raises(InvalidScoreError):
        zsets.increment_by("z1", "ok", math.nan)


def test_negative_scores_sort_below_positive(zsets):
    zsets.add("z1", {"a": -10.5, "b": -2, "c": 0, "d": 0.25, "e": 3e10, "f": -math.inf})
    assert list(zsets.range_by_score("z1")) == ["f", "a", "b", "c", "d", "e"]
    assert zsets.count_by_score("z1", -3, 0) == 2


def test_pops(nine):
    assert nine.cardinality("z1") == 9

    assert nine.pop_max("z1", 2) == {"m9": 9, "m8": 8}
    assert nine.cardinality("z1") == 7
    assert nine.score("z1", "m9") == (0.0, False)
    assert nine.score("z1", "m8") == (0.0, False)

    assert nine.pop_min("z1", 2) == {"m1": 1, "m2": 2}
    assert nine.cardinality("z1") == 5
    assert nine.score("z1", "m1") == (0.0, False)

    assert nine.pop_min("z1", 0) == {}
    assert nine.pop_max("empty") == {}


def test_range_by_rank(nine):
    assert list(nine.range_by_rank("z1", 0, 2)) == ["m1", "m2", "m3"]
    assert list(nine.range_by_rank("z1", 0, -1)) == [f"m{i}" for i in range(1, 10)]
    assert list(nine.range_by_rank("z1", -3, -1)) == ["m7", "m8", "m9"]
    assert list(nine.range_by_rank("z1", -3, -2)) == ["m7", "m8"]
    assert list(nine.range_by_rank("z1", 2, -3)) == ["m3", "m4", "m5", "m6", "m7"]
    assert list(nine.range_by_rank("z1", -4, 5)) == ["m6"]
    assert nine.range_by_rank("z1", 5, 2) == {}
    assert nine.range_by_rank("z1", -1, -3) == {}
    assert list(nine.range_by_rank("z1", -100, -8)) == ["m1", "m2"]


def test_reverse_range_by_rank(nine):
    assert list(nine.reverse_range_by_rank("z1", 0, 1)) == ["m9", "m8"]
    assert list(nine.reverse_range_by_rank("z1", -2, -1)) == ["m2", "m1"]
    assert list(nine.reverse_range_by_rank("z1", 1, -7)) == ["m8", "m7"]
    assert list(nine.reverse_range_by_rank("z1", 1, -3)) == ["m8", "m7", "m6", "m5", "m4", "m3"]


def test_negative_rank_range_is_top_k_by_score(nine):
    top = nine.range_by_rank("z1", -3, -1)
    by_score = nine.reverse_range_by_score("z1", count=3)
    assert top == by_score


def test_range_by_score_with_offset_and_count(nine):
    assert nine.range_by_score("z1", 3, 7) == {"m3": 3, "m4": 4, "m5": 5, "m6": 6, "m7": 7}
    assert list(nine.range_by_score("z1", 3, 7, offset=1, count=2)) == ["m4", "m5"]
    assert list(nine.reverse_range_by_score("z1", 7, 3, count=2)) == ["m7", "m6"]
    assert list(nine.range_by_score("z1", min=8)) == ["m8", "m9"]


def test_lex_ranges(zsets):
    zsets.add("z1", {name: 0 for name in "abcde"})

    assert list(zsets.range_by_lex("z1", "b", "d")) == ["b", "c", "d"]
    assert list(zsets.reverse_range_by_lex("z1", "d", "b")) == ["d", "c", "b"]
    assert list(zsets.range_by_lex("z1", "", "b")) == ["a", "b"]
    assert zsets.count_by_lex("z1", "b", "") == 4
    assert zsets.count_by_lex("z1") == 5


def test_rank(nine):
    assert nine.rank("z1", "m1") == (0, True)
    assert nine.rank("z1", "m4") == (3, True)
    assert nine.reverse_rank("z1", "m1") == (8, True)
    assert nine.reverse_rank("z1", "m9") == (0, True)
    assert nine.rank("z1", "nosuch") == (0, False)


def test_remove_ranges(nine):
    assert nine.remove_range_by_score("z1", 2, 4) == 3
    assert nine.remove_range_by_rank("z1", -2, -1) == 2
    assert list(nine.range_by_rank("z1", 0, -1)) == ["m1", "m5", "m6", "m7"]
    assert nine.remove_range_by_lex("z1", "m5", "m6") == 2
    assert list(nine.range_by_rank("z1", 0, -1)) == ["m1", "m7"]


def test_cross_key_aggregates_are_unsupported(zsets):
    with pytest.raises(UnsupportedOperationError):
        zsets.union_store("dest", ["a", "b"])
    with pytest.raises(UnsupportedOperationError):
        zsets.intersection_store("dest", ["a", "b"])


class ContendedStore:
    """Lets reads through and fails the first *conflicts* conditional updates."""

    def __init__(self, inner, conflicts):
        self.inner = inner
        self.conflicts = conflicts
        self.updates = 0

    def get_item(self, key, attributes=None):
        return self.inner.get_item(key, attributes)

    def update_item(self, key, updates, conditions=()):
        self.updates += 1
        if self.updates <= self.conflicts:
            raise ConditionFailedError("lost the race")
        return self.inner.update_item(key, updates, conditions)


def test_increment_retries_on_conflict(store, settings):
    store_wrapper = ContendedStore(store, conflicts=2)
    engine = SortedSetEngine(store_wrapper, settings)

    assert engine.increment_by("z1", "m1", 4) == 4
    assert store_wrapper.updates == 3


def test_increment_gives_up_after_three_attempts(store, settings):
    store_wrapper = ContendedStore(store, conflicts=10)
    engine = SortedSetEngine(store_wrapper, settings)

    with pytest.raises(ContentionError) as info:
        engine.increment_by("z1", "m1", 4)
    assert info.value.key == "z1"
    assert info.value.member == "m1"
    assert "z1" in str(info.value) and "m1" in str(info.value)
    assert store_wrapper.updates == 3


class FailingStore:
    """Passes everything through but fails the *fail_on*-th write."""

    def __init__(self, inner, fail_on):
        self.inner = inner
        self.fail_on = fail_on
        self.writes = 0

    def _write(self):
        self.writes += 1
        if self.writes == self.fail_on:
            raise StoreError("service unavailable")

    def get_item(self, key, attributes=None):
        return self.inner.get_item(key, attributes)

    def query(self, request):
        return self.inner.query(request)

    def update_item(self, key, updates, conditions=()):
        self._write()
        return self.inner.update_item(key, updates, conditions)

    def delete_item(self, key, conditions=()):
        self._write()
        return self.inner.delete_item(key, conditions)


def test_add_stops_at_first_store_error(zsets, store, settings):
    engine = SortedSetEngine(FailingStore(store, fail_on=3), settings)

    with pytest.raises(StoreError) as info:
        engine.add("z", {"a": 1, "b": 2, "c": 3, "d": 4})

    assert info.value.partial == 2
    assert zsets.cardinality("z") == 2
    assert zsets.score("z", "b") == (2.0, True)
    assert zsets.score("z", "d") == (0.0, False)


def test_remove_stops_at_first_store_error(nine, store, settings):
    engine = SortedSetEngine(FailingStore(store, fail_on=2), settings)

    with pytest.raises(StoreError) as info:
        engine.remove("z1", "m1", "m2", "m3")

    assert info.value.partial == 1
    assert nine.score("z1", "m1") == (0.0, False)
    assert nine.score("z1", "m2") == (2.0, True)
    assert nine.score("z1", "m3") == (3.0, True)


def test_pop_failure_reports_fetched_members(nine, store, settings):
    engine = SortedSetEngine(FailingStore(store, fail_on=2), settings)

    with pytest.raises(StoreError) as info:
        engine.pop_min("z1", 3)

    assert info.value.partial == {"m1": 1, "m2": 2, "m3": 3}
    assert nine.cardinality("z1") == 8
    assert nine.score("z1", "m2") == (2.0, True)
