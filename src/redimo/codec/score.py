"""Order-preserving string encoding for sorted-set scores.

The store can only order the score index by byte-wise string comparison,
so every score is written in a form whose string order equals its numeric
order::

    -inf  <  negatives  <  zero  <  positives  <  +inf
     "0"      "1..."       "2"      "3..."       "4"

A finite non-zero value ``d.ddd x 10**e`` is written as a three-digit
biased exponent followed by its significant digits (trailing zeros
stripped).  Negative values complement the exponent and every digit, and
end with ``~`` so that a shorter digit string (smaller magnitude) sorts
after a longer one sharing its prefix.  Decimal formatting is exact, so a
``float`` always survives the round trip.
"""

from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation

from redimo.core.exceptions import InvalidScoreError

NEGATIVE_INFINITY = "0"
NEGATIVE = "1"
ZERO = "2"
POSITIVE = "3"
POSITIVE_INFINITY = "4"

_EXPONENT_BIAS = 500
_EXPONENT_WIDTH = 3
_EXPONENT_LIMIT = 10**_EXPONENT_WIDTH - 1
_NEGATIVE_TERMINATOR = "~"

_COMPLEMENT = str.maketrans("0123456789", "9876543210")


def encode_score(score: float) -> str:
    """Encode *score* as an order-preserving string.

    Raises
    ------
    InvalidScoreError
        If *score* is NaN.
    """
    if math.isnan(score):
        raise InvalidScoreError("score must not be NaN")
    if math.isinf(score):
        return POSITIVE_INFINITY if score > 0 else NEGATIVE_INFINITY
    return encode_decimal(Decimal(score))


def decode_score(text: str) -> float:
    """Inverse of :func:`encode_score`."""
    if text == POSITIVE_INFINITY:
        return math.inf
    if text == NEGATIVE_INFINITY:
        return -math.inf
    return float(decode_decimal(text))


def encode_decimal(value: Decimal) -> str:
    """Encode a finite decimal as an order-preserving string."""
    if not value.is_finite():
        raise InvalidScoreError(f"cannot encode non-finite decimal {value}")
    if value.is_zero():
        return ZERO

    # as_tuple() rather than normalize(): normalize rounds to the context precision
    sign, digits, exponent = value.as_tuple()
    mantissa = "".join(str(d) for d in digits).lstrip("0")
    stripped = mantissa.rstrip("0")
    exponent += len(mantissa) - len(stripped)
    mantissa = stripped
    # adjusted exponent of d.ddd x 10**e
    biased = exponent + len(mantissa) - 1 + _EXPONENT_BIAS
    if not 0 <= biased <= _EXPONENT_LIMIT:
        raise InvalidScoreError(f"exponent of {value} is out of range")

    body = f"{biased:0{_EXPONENT_WIDTH}d}{mantissa}"
    if sign:
        return NEGATIVE + body.translate(_COMPLEMENT) + _NEGATIVE_TERMINATOR
    return POSITIVE + body


def decode_decimal(text: str) -> Decimal:
    """Inverse of :func:`encode_decimal`."""
    if text == ZERO:
        return Decimal(0)

    prefix, body = text[:1], text[1:]
    if prefix == NEGATIVE:
        if not body.endswith(_NEGATIVE_TERMINATOR):
            raise InvalidScoreError(f"malformed score encoding {text!r}")
        body = body[: -len(_NEGATIVE_TERMINATOR)].translate(_COMPLEMENT)
        sign = "-"
    elif prefix == POSITIVE:
        sign = ""
    else:
        raise InvalidScoreError(f"malformed score encoding {text!r}")

    exponent, mantissa = body[:_EXPONENT_WIDTH], body[_EXPONENT_WIDTH:]
    if not (exponent.isdigit() and mantissa.isdigit()):
        raise InvalidScoreError(f"malformed score encoding {text!r}")

    adjusted = int(exponent) - _EXPONENT_BIAS
    try:
        return Decimal(f"{sign}{mantissa[0]}.{mantissa[1:] or '0'}E{adjusted}")
    except InvalidOperation as exc:
        raise InvalidScoreError(f"malformed score encoding {text!r}") from exc
