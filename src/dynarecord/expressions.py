from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from .codec import encode
from .errors import ValidationError
from .model import IndexDefinition, validate_field_name

type Filters = Mapping[str, Any]
type Indexes = Mapping[str, str] | Sequence[IndexDefinition]

# Mirrors the store's own cap on IN operands.
MAX_IN_VALUES = 100


@dataclass(frozen=True)
class KeyCondition:
    index_name: str
    field: str
    expression: str
    names: dict[str, str] = field(default_factory=dict)
    values: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FilterExpression:
    expression: str
    names: dict[str, str] = field(default_factory=dict)
    values: dict[str, Any] = field(default_factory=dict)


def is_multi_value(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


def name_ref(field_name: str) -> str:
    return f"#{validate_field_name(field_name)}"


def value_ref(field_name: str, position: int | None = None) -> str:
    validate_field_name(field_name)
    if position is None:
        return f":{field_name}"
    return f":{field_name}{position}"


def _index_lookup(indexes: Indexes) -> dict[str, str]:
    if isinstance(indexes, Mapping):
        pairs = [(partition, name) for name, partition in indexes.items()]
    else:
        pairs = [(idx.partition, idx.name) for idx in indexes]

    lookup: dict[str, str] = {}
    for partition, name in pairs:
        lookup.setdefault(partition, name)
    return lookup


def _check_value(field_name: str, value: Any) -> None:
    if value is None:
        raise ValidationError(f"filter value is null: {field_name}")
    if is_multi_value(value):
        if len(value) == 0:
            raise ValidationError(f"filter value list is empty: {field_name}")
        if len(value) > MAX_IN_VALUES:
            raise ValidationError(f"IN supports maximum {MAX_IN_VALUES} values: {field_name}")


def select_key_condition(filters: Filters, indexes: Indexes) -> KeyCondition | None:
    """Pick the key condition for a query over ``filters``.

    Fields are walked in the caller's order and the first one that is the
    partition key of a declared index and holds a scalar value wins. The
    query API takes a single equality key condition, so at most one field
    is ever selected. ``None`` means no index applies and the caller has to
    fall back to a scan.
    """
    lookup = _index_lookup(indexes)
    for field_name, value in filters.items():
        index_name = lookup.get(field_name)
        if index_name is None or is_multi_value(value):
            continue
        _check_value(field_name, value)

        name = name_ref(field_name)
        ref = value_ref(field_name)
        return KeyCondition(
            index_name=index_name,
            field=field_name,
            expression=f"{name} = {ref}",
            names={name: field_name},
            values={ref: encode(value)},
        )
    return None


def build_filter(filters: Filters, key_field: str | None = None) -> FilterExpression | None:
    names: dict[str, str] = {}
    values: dict[str, Any] = {}
    clauses: list[str] = []

    for field_name, value in filters.items():
        if field_name == key_field:
            continue
        _check_value(field_name, value)

        name = name_ref(field_name)
        names[name] = field_name
        if is_multi_value(value):
            refs: list[str] = []
            for position, elem in enumerate(value):
                ref = value_ref(field_name, position)
                if ref in values:
                    raise ValidationError(f"expression attribute value collision: {ref}")
                values[ref] = encode(elem)
                refs.append(ref)
            clauses.append(f"{name} IN (" + ", ".join(refs) + ")")
        else:
            ref = value_ref(field_name)
            if ref in values:
                raise ValidationError(f"expression attribute value collision: {ref}")
            values[ref] = encode(value)
            clauses.append(f"{name} = {ref}")

    if not clauses:
        return None
    return FilterExpression(expression=" AND ".join(clauses), names=names, values=values)


def build_scan_filter(filters: Filters, key_field: str | None = None) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for field_name, value in filters.items():
        if field_name == key_field:
            continue
        _check_value(field_name, value)
        validate_field_name(field_name)

        if is_multi_value(value):
            out[field_name] = {
                "ComparisonOperator": "IN",
                "AttributeValueList": [encode(v) for v in value],
            }
        else:
            out[field_name] = {
                "ComparisonOperator": "EQ",
                "AttributeValueList": [encode(value)],
            }
    return out


def merge_bindings(
    target_names: dict[str, str],
    target_values: dict[str, Any],
    names: Mapping[str, str],
    values: Mapping[str, Any],
) -> None:
    for k, v in names.items():
        existing = target_names.get(k)
        if existing is not None and existing != v:
            raise ValidationError(f"expression attribute name collision: {k}")
        target_names[k] = v
    for k, v in values.items():
        if k in target_values and target_values[k] != v:
            raise ValidationError(f"expression attribute value collision: {k}")
        target_values[k] = v
