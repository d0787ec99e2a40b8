from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from botocore.exceptions import ClientError

from .aws_errors import map_client_error
from .codec import encode, is_empty
from .errors import ValidationError
from .expressions import (
    Filters,
    build_filter,
    build_scan_filter,
    is_multi_value,
    merge_bindings,
    name_ref,
    select_key_condition,
    value_ref,
)
from .model import ID_FIELD, EntityDescriptor, default_index_name, validate_field_name
from .query import Page, QueryOptions, collect_pages
from .record import Record
from .session import Session
from .transaction import TransactDelete, TransactPut, TransactUpdate, TransactWriteAction

logger = logging.getLogger(__name__)

_WRITE_METHODS: dict[type, str] = {
    TransactPut: "put_item",
    TransactUpdate: "update_item",
    TransactDelete: "delete_item",
}


def _references(expression: str, placeholder: str) -> bool:
    return re.search(rf"{re.escape(placeholder)}\b", expression) is not None


def _filter_bindings(expression: str, filter_values: Mapping[str, Any]) -> tuple[dict[str, str], dict[str, Any]]:
    """Bind ``filter_values`` for a caller-written filter expression.

    Keys may be bare field names or ``:field`` placeholders. ``#field`` is
    bound as well when the expression references it.
    """
    names: dict[str, str] = {}
    values: dict[str, Any] = {}
    for key, value in filter_values.items():
        field_name = key[1:] if key.startswith(":") else key
        ref = value_ref(field_name)
        values[ref] = encode(value)
        name = name_ref(field_name)
        if _references(expression, name):
            names[name] = field_name
    return names, values


class Table[R: Record]:
    def __init__(
        self,
        descriptor: EntityDescriptor,
        *,
        session: Session,
        record_type: type[R] = Record,  # type: ignore[assignment]
    ) -> None:
        self._descriptor = descriptor
        self._session = session
        self._record_type = record_type

    @property
    def descriptor(self) -> EntityDescriptor:
        return self._descriptor

    @property
    def table_name(self) -> str:
        return self._descriptor.table_name

    @property
    def session(self) -> Session:
        return self._session

    def new(self, attributes: Mapping[str, Any] | None = None, **fields: Any) -> R:
        merged = dict(attributes or {})
        merged.update(fields)
        return self._record_type(self, merged)

    def from_item(self, item: Mapping[str, Any] | None) -> R | None:
        if not item:
            return None
        return self._load(item)

    def key_for(self, record_id: Any) -> dict[str, Any]:
        if is_empty(record_id):
            raise ValidationError("id is required")
        return {ID_FIELD: encode(record_id)}

    def write(self, action: TransactWriteAction) -> None:
        """Run ``action`` now, or queue it while the session is in a transaction."""
        if self._session.in_transaction:
            self._session.enqueue(action)
            return
        self._call(_WRITE_METHODS[type(action)], action.to_request())

    def get_by_id(self, record_id: Any) -> R | None:
        resp = self._call(
            "get_item",
            {"TableName": self.table_name, "Key": self.key_for(record_id), "ConsistentRead": True},
        )
        return self.from_item(resp.get("Item"))

    def query(
        self,
        hash_key_field: str,
        hash_key_value: Any,
        options: QueryOptions | None = None,
        **overrides: Any,
    ) -> list[R]:
        """Query every item whose ``hash_key_field`` equals ``hash_key_value``.

        The index defaults to ``<hash_key_field>-idx``; a query on ``id``
        reads the base table. Results are newest first unless
        ``scan_index_forward`` is set. All pages are read, in order, until
        the store runs out or ``limit`` records are collected.
        """
        opts = options or QueryOptions()
        if overrides:
            opts = replace(opts, **overrides)

        validate_field_name(hash_key_field)
        if is_empty(hash_key_value):
            raise ValidationError(f"hash key value is required: {hash_key_field}")
        if is_multi_value(hash_key_value):
            raise ValidationError(f"hash key requires a single value: {hash_key_field}")

        index_name = opts.index_name
        if index_name is None and hash_key_field != ID_FIELD:
            index_name = default_index_name(hash_key_field)

        names: dict[str, str] = {}
        values: dict[str, Any] = {}
        key_name, key_value = name_ref(hash_key_field), value_ref(hash_key_field)
        key_expr = opts.key_condition_expression or f"{key_name} = {key_value}"
        if _references(key_expr, key_name):
            names[key_name] = hash_key_field
        if _references(key_expr, key_value):
            values[key_value] = encode(hash_key_value)

        req: dict[str, Any] = {
            "TableName": self.table_name,
            "KeyConditionExpression": key_expr,
            "ScanIndexForward": opts.scan_index_forward,
        }
        if index_name is not None:
            req["IndexName"] = index_name

        if opts.filter_expression:
            req["FilterExpression"] = opts.filter_expression
            bound_names, bound_values = _filter_bindings(opts.filter_expression, opts.filter_values)
            merge_bindings(names, values, bound_names, bound_values)
        elif opts.filters:
            built = build_filter(opts.resolved_filters(), key_field=hash_key_field)
            if built is not None:
                req["FilterExpression"] = built.expression
                merge_bindings(names, values, built.names, built.values)

        merge_bindings(
            names,
            values,
            opts.expression_attribute_names or {},
            {k: encode(v) for k, v in (opts.expression_attribute_values or {}).items()},
        )
        if names:
            req["ExpressionAttributeNames"] = names
        if values:
            req["ExpressionAttributeValues"] = values

        return self._collect("query", req, limit=opts.limit)

    def find(
        self,
        filters: Filters,
        *,
        index_name: str | None = None,
        limit: int | None = None,
        scan_index_forward: bool = False,
    ) -> list[R]:
        """Look records up by field values, through an index when one applies.

        Scalars match by equality and lists by membership. The first filter
        field (in the given order) that is a declared index partition key
        becomes the key condition; without one the table is scanned.
        """
        if index_name is not None:
            idx = self._descriptor.find_index(index_name)
            if idx is None:
                raise ValidationError(f"unknown index: {index_name}")
            if idx.partition not in filters:
                raise ValidationError(f"index {index_name} requires a filter on {idx.partition}")
            if is_multi_value(filters[idx.partition]):
                raise ValidationError(f"index {index_name} requires a single value for {idx.partition}")
            key = select_key_condition({idx.partition: filters[idx.partition]}, [idx])
        else:
            key = select_key_condition(filters, self._descriptor.indexes)

        if key is None:
            return self.scan(filters, limit=limit)

        names = dict(key.names)
        values = dict(key.values)
        req: dict[str, Any] = {
            "TableName": self.table_name,
            "IndexName": key.index_name,
            "KeyConditionExpression": key.expression,
            "ScanIndexForward": scan_index_forward,
        }
        built = build_filter(filters, key_field=key.field)
        if built is not None:
            req["FilterExpression"] = built.expression
            merge_bindings(names, values, built.names, built.values)
        req["ExpressionAttributeNames"] = names
        req["ExpressionAttributeValues"] = values

        return self._collect("query", req, limit=limit)

    def scan(
        self,
        filters: Filters | None = None,
        *,
        limit: int | None = None,
        structured: bool = False,
    ) -> list[R]:
        req: dict[str, Any] = {"TableName": self.table_name}
        if filters:
            if structured:
                req["ScanFilter"] = build_scan_filter(filters)
            else:
                built = build_filter(filters)
                if built is not None:
                    req["FilterExpression"] = built.expression
                    req["ExpressionAttributeNames"] = built.names
                    req["ExpressionAttributeValues"] = built.values

        return self._collect("scan", req, limit=limit)

    def _collect(self, operation: str, base: Mapping[str, Any], *, limit: int | None) -> list[R]:
        def fetch(start_key: dict[str, Any] | None, remaining: int | None) -> Page:
            req = dict(base)
            if remaining is not None:
                req["Limit"] = remaining
            if start_key is not None:
                req["ExclusiveStartKey"] = start_key
            resp = self._call(operation, req)
            return Page(items=list(resp.get("Items") or []), last_key=resp.get("LastEvaluatedKey") or None)

        return [self._load(item) for item in collect_pages(fetch, limit=limit)]

    def _load(self, item: Mapping[str, Any]) -> R:
        return self._record_type.from_item(self, item)  # type: ignore[return-value]

    def _call(self, method: str, req: dict[str, Any]) -> Mapping[str, Any]:
        logger.debug("%s on %s (index=%s)", method, self.table_name, req.get("IndexName"))
        try:
            resp = getattr(self._session.client, method)(**req)
        except ClientError as err:
            raise map_client_error(err) from err
        return resp or {}
