import pytest

from redimo.core.exceptions import StoreError
from redimo.core.values import (
    BinarySetValue,
    MapValue,
    NullValue,
    NumberSetValue,
    NumberValue,
    StringSetValue,
    StringValue,
    attributes_adapter,
    from_wire,
    to_wire,
)


def test_nested_map_to_wire():
    value = MapValue(
        value={
            "name": StringValue(value="x"),
            "tags": StringSetValue(values=frozenset({"b", "a"})),
            "gone": NullValue(),
        }
    )
    assert to_wire(value) == {
        "M": {"name": {"S": "x"}, "tags": {"SS": ["a", "b"]}, "gone": {"NULL": True}}
    }


def test_from_wire_picks_variant():
    assert from_wire({"N": "18446744073709551615"}).as_int() == 2**64 - 1
    assert from_wire({"NS": ["1", "2"]}) == NumberSetValue(values=frozenset({"1", "2"}))
    assert from_wire({"BS": [b"\x01"]}) == BinarySetValue(values=frozenset({b"\x01"}))


@pytest.mark.parametrize("raw", [{"BOOL": True}, {"L": []}, {"S": "a", "N": "1"}])
def test_unsupported_shapes_are_store_errors(raw):
    with pytest.raises(StoreError):
        from_wire(raw)


def test_json_keeps_binary_values():
    attributes = {
        "n": NumberValue.of(42),
        "bs": BinarySetValue(values=frozenset({b"\xff\x00", b"\x01"})),
    }
    restored = attributes_adapter.validate_json(attributes_adapter.dump_json(attributes))
    assert restored == attributes
