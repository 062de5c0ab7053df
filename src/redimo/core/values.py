"""Tagged attribute values for items held by the store.

Every attribute stored on an item is one of a closed set of variants,
mirroring the DynamoDB attribute-value shapes the engines rely on:

- :class:`StringValue` (``S``)
- :class:`NumberValue` (``N``, kept as exact decimal text)
- :class:`BinaryValue` (``B``)
- set values: :class:`StringSetValue` (``SS``), :class:`NumberSetValue` (``NS``),
  :class:`BinarySetValue` (``BS``)
- :class:`MapValue` (``M``)
- :class:`NullValue` (``NULL``)

:func:`to_wire` and :func:`from_wire` convert to and from the low-level
``{"S": "..."}`` dictionaries that ``boto3`` clients speak.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Any, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from redimo.core.exceptions import StoreError


class StringValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["S"] = "S"
    value: str


class NumberValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["N"] = "N"
    value: str

    @classmethod
    def of(cls, number: int | Decimal) -> NumberValue:
        return cls(value=str(number))

    def as_decimal(self) -> Decimal:
        return Decimal(self.value)

    def as_int(self) -> int:
        return int(self.as_decimal())


class BinaryValue(BaseModel):
    model_config = ConfigDict(
        frozen=True, ser_json_bytes="base64", val_json_bytes="base64"
    )

    kind: Literal["B"] = "B"
    value: bytes


class StringSetValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["SS"] = "SS"
    values: frozenset[str] = frozenset()


class NumberSetValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["NS"] = "NS"
    values: frozenset[str] = frozenset()


class BinarySetValue(BaseModel):
    model_config = ConfigDict(
        frozen=True, ser_json_bytes="base64", val_json_bytes="base64"
    )

    kind: Literal["BS"] = "BS"
    values: frozenset[bytes] = frozenset()


SetValue = Union[StringSetValue, NumberSetValue, BinarySetValue]


class MapValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["M"] = "M"
    value: dict[str, AttributeValue] = Field(default_factory=dict)


class NullValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["NULL"] = "NULL"


AttributeValue = Annotated[
    Union[
        StringValue,
        NumberValue,
        BinaryValue,
        StringSetValue,
        NumberSetValue,
        BinarySetValue,
        MapValue,
        NullValue,
    ],
    Field(discriminator="kind"),
]

MapValue.model_rebuild()

Attributes = dict[str, AttributeValue]

attributes_adapter: TypeAdapter[Attributes] = TypeAdapter(Attributes)


# ---------------------------------------------------------------------------
# Wire conversion
# ---------------------------------------------------------------------------


def to_wire(value: AttributeValue) -> dict[str, Any]:
    """Convert *value* to a low-level DynamoDB attribute-value dict."""
    if isinstance(value, StringValue):
        return {"S": value.value}
    if isinstance(value, NumberValue):
        return {"N": value.value}
    if isinstance(value, BinaryValue):
        return {"B": value.value}
    if isinstance(value, (StringSetValue, NumberSetValue, BinarySetValue)):
        return {value.kind: sorted(value.values)}
    if isinstance(value, MapValue):
        return {"M": {name: to_wire(v) for name, v in value.value.items()}}
    if isinstance(value, NullValue):
        return {"NULL": True}
    raise TypeError(f"not an attribute value: {value!r}")


def from_wire(raw: Mapping[str, Any]) -> AttributeValue:
    """Convert a low-level DynamoDB attribute-value dict to a tagged value.

    Raises
    ------
    StoreError
        If *raw* uses a shape outside the supported variants (``L``,
        ``BOOL``).
    """
    if len(raw) != 1:
        raise StoreError(f"malformed attribute value: {raw!r}")
    ((tag, payload),) = raw.items()
    if tag == "S":
        return StringValue(value=payload)
    if tag == "N":
        return NumberValue(value=payload)
    if tag == "B":
        return BinaryValue(value=payload)
    if tag == "SS":
        return StringSetValue(values=frozenset(payload))
    if tag == "NS":
        return NumberSetValue(values=frozenset(payload))
    if tag == "BS":
        return BinarySetValue(values=frozenset(payload))
    if tag == "M":
        return MapValue(value={name: from_wire(v) for name, v in payload.items()})
    if tag == "NULL":
        return NullValue()
    raise StoreError(f"unsupported attribute value type {tag!r}")


def attributes_to_wire(attributes: Mapping[str, AttributeValue]) -> dict[str, dict[str, Any]]:
    return {name: to_wire(value) for name, value in attributes.items()}


def attributes_from_wire(raw: Mapping[str, Mapping[str, Any]]) -> Attributes:
    return {name: from_wire(value) for name, value in raw.items()}
