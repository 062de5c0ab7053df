import math
import sys
from decimal import Decimal

import pytest

from redimo.codec.score import decode_decimal, decode_score, encode_decimal, encode_score
from redimo.core.exceptions import InvalidScoreError

ORDERED = [
    -math.inf,
    -sys.float_info.max,
    -1e100,
    -12345.678,
    -100.0,
    -10.5,
    -10.0,
    -2.0,
    -1.5,
    -1.0,
    -0.5,
    -1e-300,
    -5e-324,
    0.0,
    5e-324,
    1e-300,
    0.1,
    0.5,
    1.0,
    1.5,
    2.0,
    10.0,
    10.5,
    100.0,
    12345.678,
    1e100,
    sys.float_info.max,
    math.inf,
]


def test_encoding_preserves_order():
    encoded = [encode_score(x) for x in ORDERED]
    assert encoded == sorted(encoded)
    assert len(set(encoded)) == len(encoded)


def test_byte_order_matches_string_order():
    encoded = [encode_score(x).encode("utf-8") for x in ORDERED]
    assert encoded == sorted(encoded)


@pytest.mark.parametrize("score", ORDERED)
def test_round_trip(score):
    assert decode_score(encode_score(score)) == score


def test_negative_zero_encodes_as_zero():
    assert encode_score(-0.0) == encode_score(0.0)
    assert decode_score(encode_score(-0.0)) == 0.0


def test_nan_is_rejected():
    with pytest.raises(InvalidScoreError):
        encode_score(math.nan)


@pytest.mark.parametrize("text", ["", "9", "3x", "1000~", "1123"])
def test_malformed_encodings_are_rejected(text):
    with pytest.raises(InvalidScoreError):
        decode_score(text)


def test_decimal_encoding_orders_large_integers():
    values = [Decimal(0), Decimal(2**62), Decimal(2**63), Decimal(2**64 - 1)]
    encoded = [encode_decimal(v) for v in values]
    assert encoded == sorted(encoded)
    assert [decode_decimal(e) for e in encoded] == values
