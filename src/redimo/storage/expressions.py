"""DynamoDB expression assembly.

Turns :class:`~redimo.core.models.Condition` objects and attribute
assignments into the expression strings and placeholder maps that
DynamoDB requests take.  Attribute names always go through ``#n``
placeholders and values through ``:v`` placeholders, so reserved words
never need special handling.
"""

from __future__ import annotations

from typing import Any

from redimo.core.models import Condition
from redimo.core.values import AttributeValue, to_wire

_COMPARISONS = {"eq": "=", "ge": ">=", "le": "<="}


class ExpressionBuilder:
    """Accumulates conditions and ``SET`` clauses for one request."""

    def __init__(self) -> None:
        self._conditions: list[str] = []
        self._assignments: list[str] = []
        self._names: dict[str, str] = {}
        self._values: dict[str, dict[str, Any]] = {}

    # -- placeholders -------------------------------------------------------

    def name(self, attribute: str) -> str:
        for placeholder, existing in self._names.items():
            if existing == attribute:
                return placeholder
        placeholder = f"#n{len(self._names)}"
        self._names[placeholder] = attribute
        return placeholder

    def value(self, value: AttributeValue) -> str:
        placeholder = f":v{len(self._values)}"
        self._values[placeholder] = to_wire(value)
        return placeholder

    # -- clauses ------------------------------------------------------------

    def condition(self, condition: Condition, attribute: str | None = None) -> ExpressionBuilder:
        """Add *condition*, optionally addressing a renamed *attribute*."""
        name = self.name(attribute or condition.attribute)
        op = condition.op
        if op in _COMPARISONS:
            clause = f"{name} {_COMPARISONS[op]} {self.value(condition.values[0])}"
        elif op == "between":
            low, high = condition.values
            clause = f"{name} BETWEEN {self.value(low)} AND {self.value(high)}"
        elif op == "exists":
            clause = f"attribute_exists({name})"
        elif op == "not_exists":
            clause = f"attribute_not_exists({name})"
        else:
            raise ValueError(f"unsupported condition operator {op!r}")
        self._conditions.append(clause)
        return self

    def set(self, attribute: str, value: AttributeValue) -> ExpressionBuilder:
        self._assignments.append(f"{self.name(attribute)} = {self.value(value)}")
        return self

    # -- output -------------------------------------------------------------

    def condition_expression(self) -> str | None:
        return " AND ".join(self._conditions) or None

    def update_expression(self) -> str | None:
        if not self._assignments:
            return None
        return "SET " + ", ".join(self._assignments)

    def build(self, condition_field: str = "ConditionExpression") -> dict[str, Any]:
        """Return request keyword arguments, omitting empty parts.

        Parameters
        ----------
        condition_field:
            Request field receiving the condition expression, e.g.
            ``"KeyConditionExpression"`` for queries.
        """
        params: dict[str, Any] = {}
        condition = self.condition_expression()
        if condition is not None:
            params[condition_field] = condition
        update = self.update_expression()
        if update is not None:
            params["UpdateExpression"] = update
        if self._names:
            params["ExpressionAttributeNames"] = dict(self._names)
        if self._values:
            params["ExpressionAttributeValues"] = dict(self._values)
        return params
