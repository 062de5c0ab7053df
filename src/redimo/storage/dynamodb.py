"""DynamoDB-backed store.

Implements :class:`~redimo.storage.base.StoreProtocol` with a low-level
``boto3`` DynamoDB client.  The table is expected to have a string
partition key, a string sort key and one local secondary index per
secondary sort attribute, named ``<index_prefix><attribute>``.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from redimo.core.config import Settings
from redimo.core.exceptions import ConditionFailedError, ConfigError, StoreError
from redimo.core.models import (
    KEY_ATTRIBUTE,
    Condition,
    Item,
    ItemKey,
    QueryPage,
    QueryRequest,
)
from redimo.core.values import AttributeValue, StringValue, attributes_from_wire
from redimo.storage.expressions import ExpressionBuilder

logger = logging.getLogger(__name__)

_CONDITION_FAILED = "ConditionalCheckFailedException"


class DynamoDBStore:
    """DynamoDB implementation of :class:`StoreProtocol`.

    Parameters
    ----------
    client:
        A ``boto3`` DynamoDB client (``boto3.client("dynamodb")``).
    table_name:
        Name of the backing table.
    partition_attribute, sort_attribute:
        Names of the table's key attributes.
    index_prefix:
        Prefix joined with a secondary attribute name to form its index
        name.
    consistent_reads:
        Whether reads and queries request strong consistency.
    """

    def __init__(
        self,
        client: Any,
        table_name: str,
        *,
        partition_attribute: str = "pk",
        sort_attribute: str = "sk",
        index_prefix: str = "lsi_",
        consistent_reads: bool = True,
    ) -> None:
        self._client = client
        self._table_name = table_name
        self._pk = partition_attribute
        self._sk = sort_attribute
        self._index_prefix = index_prefix
        self._consistent_reads = consistent_reads

    @classmethod
    def from_settings(cls, settings: Settings) -> DynamoDBStore:
        if not settings.table_name:
            raise ConfigError("table_name must be set for the dynamodb backend")
        client = boto3.client(
            "dynamodb",
            region_name=settings.region_name,
            endpoint_url=settings.endpoint_url,
        )
        return cls(
            client,
            settings.table_name,
            partition_attribute=settings.partition_attribute,
            sort_attribute=settings.sort_attribute,
            index_prefix=settings.index_prefix,
            consistent_reads=settings.consistent_reads,
        )

    # -- reads --------------------------------------------------------------

    def get_item(
        self,
        key: ItemKey,
        attributes: list[str] | None = None,
    ) -> Item | None:
        params: dict[str, Any] = {
            "TableName": self._table_name,
            "Key": self._key(key),
            "ConsistentRead": self._consistent_reads,
        }
        if attributes:
            builder = ExpressionBuilder()
            params["ProjectionExpression"] = ", ".join(
                builder.name(a) for a in [self._pk, self._sk, *attributes]
            )
            params.update(builder.build())

        resp = self._call("get_item", **params)
        raw = resp.get("Item")
        return self._to_item(raw) if raw else None

    def query(self, request: QueryRequest) -> QueryPage:
        builder = ExpressionBuilder()
        builder.condition(Condition.eq(self._pk, StringValue(value=request.partition)))
        if request.key_range is not None:
            builder.condition(request.key_range)

        params: dict[str, Any] = {
            "TableName": self._table_name,
            "ConsistentRead": self._consistent_reads,
            "ScanIndexForward": request.forward,
            **builder.build("KeyConditionExpression"),
        }
        if request.index is not None:
            params["IndexName"] = f"{self._index_prefix}{request.index}"
        if request.limit is not None:
            params["Limit"] = request.limit
        if request.start_key:
            params["ExclusiveStartKey"] = request.start_key
        if request.select_count:
            params["Select"] = "COUNT"

        resp = self._call("query", **params)
        return QueryPage(
            items=[self._to_item(raw) for raw in resp.get("Items", [])],
            count=resp.get("Count", 0),
            last_key=resp.get("LastEvaluatedKey") or None,
        )

    # -- writes -------------------------------------------------------------

    def update_item(
        self,
        key: ItemKey,
        updates: Mapping[str, AttributeValue],
        conditions: Iterable[Condition] = (),
    ) -> None:
        builder = ExpressionBuilder()
        for attribute, value in updates.items():
            builder.set(attribute, value)
        for condition in conditions:
            builder.condition(condition, self._resolve(condition.attribute))

        self._call(
            "update_item",
            TableName=self._table_name,
            Key=self._key(key),
            **builder.build(),
        )

    def delete_item(
        self,
        key: ItemKey,
        conditions: Iterable[Condition] = (),
    ) -> None:
        builder = ExpressionBuilder()
        for condition in conditions:
            builder.condition(condition, self._resolve(condition.attribute))

        self._call(
            "delete_item",
            TableName=self._table_name,
            Key=self._key(key),
            **builder.build(),
        )

    # -- helpers ------------------------------------------------------------

    def _call(self, operation: str, **params: Any) -> dict[str, Any]:
        """Invoke a client operation, translating botocore failures."""
        logger.debug("%s %s", operation, params.get("Key") or params.get("KeyConditionExpression"))
        try:
            return getattr(self._client, operation)(**params)
        except ClientError as exc:
            code = exc.response.get("Error", {}).get("Code")
            if code == _CONDITION_FAILED:
                raise ConditionFailedError(f"{operation}: condition failed") from exc
            raise StoreError(f"{operation} failed: {code}") from exc
        except BotoCoreError as exc:
            raise StoreError(f"{operation} failed: {exc}") from exc

    def _key(self, key: ItemKey) -> dict[str, dict[str, str]]:
        return {self._pk: {"S": key.partition}, self._sk: {"S": key.member}}

    def _resolve(self, attribute: str) -> str:
        return self._pk if attribute == KEY_ATTRIBUTE else attribute

    def _to_item(self, raw: Mapping[str, Any]) -> Item:
        attributes = attributes_from_wire(raw)
        partition = attributes.pop(self._pk, None)
        member = attributes.pop(self._sk, None)
        if not isinstance(partition, StringValue) or not isinstance(member, StringValue):
            raise StoreError(f"item without string key attributes: {raw!r}")
        return Item(
            key=ItemKey(partition=partition.value, member=member.value),
            attributes=attributes,
        )
