"""SQLite-backed store for local use and tests.

Implements :class:`~redimo.storage.base.StoreProtocol` with the Python
standard-library ``sqlite3`` module, reproducing the DynamoDB query
surface rather than exposing SQL's: items are only reachable by key or
by range within one partition, pages are capped and resumed through an
opaque continuation token, and writes are conditioned per item.

Attributes are serialised as JSON.  Each indexed secondary attribute is
mirrored into ``sort_keys`` as a byte-wise sortable string; numbers go
through the score codec so that text order equals numeric order.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Iterable, Mapping

from redimo.codec.score import encode_decimal
from redimo.core.config import Settings
from redimo.core.exceptions import ConditionFailedError, StoreError
from redimo.core.models import (
    KEY_ATTRIBUTE,
    Condition,
    ContinuationToken,
    Item,
    ItemKey,
    QueryPage,
    QueryRequest,
)
from redimo.core.values import (
    AttributeValue,
    Attributes,
    BinaryValue,
    NumberValue,
    StringValue,
    attributes_adapter,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# SQL constants
# ---------------------------------------------------------------------------

_CREATE_ITEMS = """
CREATE TABLE IF NOT EXISTS items (
    pk          TEXT NOT NULL,
    sk          TEXT NOT NULL,
    attributes  TEXT NOT NULL DEFAULT '{}',
    PRIMARY KEY (pk, sk)
)
"""

_CREATE_SORT_KEYS = """
CREATE TABLE IF NOT EXISTS sort_keys (
    pk          TEXT NOT NULL,
    attribute   TEXT NOT NULL,
    sort_value  TEXT NOT NULL,
    sk          TEXT NOT NULL,
    PRIMARY KEY (pk, attribute, sk)
)
"""

_CREATE_SORT_INDEX = """
CREATE INDEX IF NOT EXISTS sort_keys_order
ON sort_keys (pk, attribute, sort_value, sk)
"""

_UPSERT_ITEM = """
INSERT INTO items (pk, sk, attributes) VALUES (?, ?, ?)
ON CONFLICT(pk, sk) DO UPDATE SET attributes = excluded.attributes
"""

_UPSERT_SORT_KEY = """
INSERT INTO sort_keys (pk, attribute, sort_value, sk) VALUES (?, ?, ?, ?)
ON CONFLICT(pk, attribute, sk) DO UPDATE SET sort_value = excluded.sort_value
"""

_COMPARISONS = {"ge": ">=", "le": "<="}


def sortable(value: AttributeValue) -> str:
    """Byte-wise sortable text for a scalar key value."""
    if isinstance(value, StringValue):
        return value.value
    if isinstance(value, NumberValue):
        return encode_decimal(value.as_decimal())
    if isinstance(value, BinaryValue):
        return value.value.hex()
    raise StoreError(f"{value.kind} values cannot be used as sort keys")


# ---------------------------------------------------------------------------
# Implementation
# ---------------------------------------------------------------------------


class SQLiteStore:
    """SQLite implementation of :class:`StoreProtocol`.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file.  Parent directories are **not**
        created automatically.  Use ``:memory:`` for an in-memory store.
    indexed_attributes:
        Secondary sort attributes that get an index.
    partition_attribute, sort_attribute:
        Names under which conditions address the key attributes.
    page_size:
        Maximum number of items per query page, or ``None`` for no cap.
    """

    def __init__(
        self,
        db_path: Path | str,
        *,
        indexed_attributes: Iterable[str] = ("sk2", "sk3"),
        partition_attribute: str = "pk",
        sort_attribute: str = "sk",
        page_size: int | None = None,
    ) -> None:
        self._db_path = db_path
        self._indexed = frozenset(indexed_attributes)
        self._pk = partition_attribute
        self._sk = sort_attribute
        self._page_size = page_size
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute(_CREATE_ITEMS)
        self._conn.execute(_CREATE_SORT_KEYS)
        self._conn.execute(_CREATE_SORT_INDEX)
        self._conn.commit()

    @classmethod
    def from_settings(cls, settings: Settings) -> SQLiteStore:
        path = settings.sqlite_path
        if str(path) != ":memory:":
            path.parent.mkdir(parents=True, exist_ok=True)
        return cls(
            path,
            indexed_attributes=settings.indexed_attributes,
            partition_attribute=settings.partition_attribute,
            sort_attribute=settings.sort_attribute,
            page_size=settings.page_size,
        )

    def close(self) -> None:
        self._conn.close()

    # -- reads --------------------------------------------------------------

    def get_item(
        self,
        key: ItemKey,
        attributes: list[str] | None = None,
    ) -> Item | None:
        with self._lock:
            current = self._load(key)
        if current is None:
            return None
        if attributes is not None:
            current = {name: v for name, v in current.items() if name in attributes}
        return Item(key=key, attributes=current)

    def query(self, request: QueryRequest) -> QueryPage:
        if request.index is None:
            sql, params, order = self._primary_query(request)
        else:
            if request.index not in self._indexed:
                raise StoreError(f"no index on attribute {request.index!r}")
            sql, params, order = self._index_query(request)

        direction = "ASC" if request.forward else "DESC"
        sql += " ORDER BY " + ", ".join(f"{col} {direction}" for col in order)

        limit = request.limit
        if self._page_size is not None:
            limit = self._page_size if limit is None else min(limit, self._page_size)
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        with self._lock:
            rows = self._conn.execute(sql, params).fetchall()

        last_key: ContinuationToken | None = None
        if limit is not None and len(rows) == limit and rows:
            sk, _, sort_value = rows[-1]
            last_key = {"sk": sk, "sort_value": sort_value}

        logger.debug(
            "query %s index=%s -> %d rows, more=%s",
            request.partition,
            request.index,
            len(rows),
            last_key is not None,
        )
        if request.select_count:
            return QueryPage(count=len(rows), last_key=last_key)

        items = [
            Item(
                key=ItemKey(partition=request.partition, member=sk),
                attributes=attributes_adapter.validate_json(raw),
            )
            for sk, raw, _ in rows
        ]
        return QueryPage(items=items, count=len(items), last_key=last_key)

    # -- writes -------------------------------------------------------------

    def update_item(
        self,
        key: ItemKey,
        updates: Mapping[str, AttributeValue],
        conditions: Iterable[Condition] = (),
    ) -> None:
        with self._lock, self._conn:
            current = self._load(key)
            self._check(key, current, conditions)
            merged: Attributes = dict(current or {})
            merged.update(updates)
            self._conn.execute(
                _UPSERT_ITEM,
                (key.partition, key.member, attributes_adapter.dump_json(merged).decode()),
            )
            for attribute, value in updates.items():
                if attribute in self._indexed:
                    self._conn.execute(
                        _UPSERT_SORT_KEY,
                        (key.partition, attribute, sortable(value), key.member),
                    )

    def delete_item(
        self,
        key: ItemKey,
        conditions: Iterable[Condition] = (),
    ) -> None:
        with self._lock, self._conn:
            current = self._load(key)
            self._check(key, current, conditions)
            self._conn.execute(
                "DELETE FROM items WHERE pk = ? AND sk = ?", (key.partition, key.member)
            )
            self._conn.execute(
                "DELETE FROM sort_keys WHERE pk = ? AND sk = ?",
                (key.partition, key.member),
            )

    # -- helpers ------------------------------------------------------------

    def _load(self, key: ItemKey) -> Attributes | None:
        row = self._conn.execute(
            "SELECT attributes FROM items WHERE pk = ? AND sk = ?",
            (key.partition, key.member),
        ).fetchone()
        return attributes_adapter.validate_json(row[0]) if row else None

    def _primary_query(self, request: QueryRequest) -> tuple[str, list[object], list[str]]:
        sql = "SELECT sk, attributes, sk FROM items WHERE pk = ?"
        params: list[object] = [request.partition]
        if request.key_range is not None:
            clause, values = self._range_clause("sk", request.key_range)
            sql += clause
            params.extend(values)
        if request.start_key:
            sql += f" AND sk {'>' if request.forward else '<'} ?"
            params.append(request.start_key["sk"])
        return sql, params, ["sk"]

    def _index_query(self, request: QueryRequest) -> tuple[str, list[object], list[str]]:
        sql = (
            "SELECT s.sk, i.attributes, s.sort_value FROM sort_keys s "
            "JOIN items i ON i.pk = s.pk AND i.sk = s.sk "
            "WHERE s.pk = ? AND s.attribute = ?"
        )
        params: list[object] = [request.partition, request.index]
        if request.key_range is not None:
            clause, values = self._range_clause("s.sort_value", request.key_range)
            sql += clause
            params.extend(values)
        if request.start_key:
            op = ">" if request.forward else "<"
            sql += f" AND (s.sort_value {op} ? OR (s.sort_value = ? AND s.sk {op} ?))"
            token = request.start_key
            params.extend([token["sort_value"], token["sort_value"], token["sk"]])
        return sql, params, ["s.sort_value", "s.sk"]

    @staticmethod
    def _range_clause(column: str, condition: Condition) -> tuple[str, list[object]]:
        operands = [sortable(v) for v in condition.values]
        if condition.op == "between":
            return f" AND {column} BETWEEN ? AND ?", operands
        if condition.op == "eq":
            return f" AND {column} = ?", operands
        if condition.op in _COMPARISONS:
            return f" AND {column} {_COMPARISONS[condition.op]} ?", operands
        raise StoreError(f"{condition.op} is not a key condition")

    def _check(
        self,
        key: ItemKey,
        current: Attributes | None,
        conditions: Iterable[Condition],
    ) -> None:
        for condition in conditions:
            if not self._holds(key, current, condition):
                raise ConditionFailedError(
                    f"condition {condition.op} on {condition.attribute} failed "
                    f"for {key.partition} / {key.member}"
                )

    def _holds(self, key: ItemKey, current: Attributes | None, condition: Condition) -> bool:
        attribute = condition.attribute
        value: AttributeValue | None
        if current is None:
            value = None
        elif attribute in (KEY_ATTRIBUTE, self._pk):
            value = StringValue(value=key.partition)
        elif attribute == self._sk:
            value = StringValue(value=key.member)
        else:
            value = current.get(attribute)

        if condition.op == "exists":
            return value is not None
        if condition.op == "not_exists":
            return value is None
        if value is None:
            return False
        if condition.op == "eq":
            return value == condition.values[0]

        if type(value) is not type(condition.values[0]):
            return False
        current_key = sortable(value)
        operands = [sortable(v) for v in condition.values]
        if condition.op == "ge":
            return current_key >= operands[0]
        if condition.op == "le":
            return current_key <= operands[0]
        return operands[0] <= current_key <= operands[1]
