"""Pydantic domain models for redimo."""

from __future__ import annotations

import enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from redimo.core.values import AttributeValue, Attributes


class ItemKey(BaseModel):
    """Primary key of one item: collection key plus member name."""

    model_config = ConfigDict(frozen=True)

    partition: str
    member: str


class Item(BaseModel):
    """An item returned by the store."""

    key: ItemKey
    attributes: Attributes = Field(default_factory=dict)

    def get(self, name: str) -> AttributeValue | None:
        return self.attributes.get(name)


ConditionOp = Literal["eq", "between", "ge", "le", "exists", "not_exists"]


class Condition(BaseModel):
    """A comparison on one named attribute.

    ``values`` holds one operand for ``eq``/``ge``/``le``, two for
    ``between`` and none for ``exists``/``not_exists``.  The primary key
    attributes are addressed through the store's key names, so
    ``Condition.exists(KEY_ATTRIBUTE)`` tests whether the item exists.
    """

    model_config = ConfigDict(frozen=True)

    attribute: str
    op: ConditionOp
    values: tuple[AttributeValue, ...] = ()

    @classmethod
    def eq(cls, attribute: str, value: AttributeValue) -> Condition:
        return cls(attribute=attribute, op="eq", values=(value,))

    @classmethod
    def between(cls, attribute: str, low: AttributeValue, high: AttributeValue) -> Condition:
        return cls(attribute=attribute, op="between", values=(low, high))

    @classmethod
    def ge(cls, attribute: str, value: AttributeValue) -> Condition:
        return cls(attribute=attribute, op="ge", values=(value,))

    @classmethod
    def le(cls, attribute: str, value: AttributeValue) -> Condition:
        return cls(attribute=attribute, op="le", values=(value,))

    @classmethod
    def exists(cls, attribute: str) -> Condition:
        return cls(attribute=attribute, op="exists")

    @classmethod
    def not_exists(cls, attribute: str) -> Condition:
        return cls(attribute=attribute, op="not_exists")

    @classmethod
    def range(
        cls,
        attribute: str,
        low: AttributeValue | None,
        high: AttributeValue | None,
    ) -> Condition | None:
        """Build the tightest key condition for an optional inclusive range."""
        if low is not None and high is not None:
            return cls.between(attribute, low, high)
        if low is not None:
            return cls.ge(attribute, low)
        if high is not None:
            return cls.le(attribute, high)
        return None


# Pseudo-attribute naming the item's own key in conditions.
KEY_ATTRIBUTE = "@key"

ContinuationToken = dict[str, Any]


class QueryRequest(BaseModel):
    """One page request against a partition.

    ``index`` names the secondary sort attribute to range over, or
    ``None`` for the primary sort key (member names).  ``key_range`` must
    address the same attribute.
    """

    model_config = ConfigDict(frozen=True)

    partition: str
    index: str | None = None
    key_range: Condition | None = None
    forward: bool = True
    limit: int | None = None
    start_key: ContinuationToken | None = None
    select_count: bool = False


class QueryPage(BaseModel):
    """One page of query results."""

    items: list[Item] = Field(default_factory=list)
    count: int = 0
    last_key: ContinuationToken | None = None


class AddFlag(enum.Flag):
    """Conditional behaviour for ZADD."""

    NONE = 0
    IF_NOT_EXISTS = enum.auto()  # NX
    IF_EXISTS = enum.auto()  # XX


class Unit(float, enum.Enum):
    """Distance units, valued in meters."""

    METERS = 1.0
    KILOMETERS = 1000.0
    MILES = 1609.34
    FEET = 0.3048

    @classmethod
    def parse(cls, name: str) -> Unit:
        aliases = {"m": cls.METERS, "km": cls.KILOMETERS, "mi": cls.MILES, "ft": cls.FEET}
        try:
            return aliases.get(name.lower()) or cls[name.upper()]
        except KeyError:
            raise ValueError(f"unknown distance unit {name!r}") from None

    def from_meters(self, meters: float) -> float:
        return meters / self.value

    def to_meters(self, distance: float) -> float:
        return distance * self.value


class Location(BaseModel):
    """A point on the globe in degrees."""

    model_config = ConfigDict(frozen=True)

    lat: float
    lon: float
