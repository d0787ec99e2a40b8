from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from boto3.dynamodb.types import Binary, TypeDeserializer, TypeSerializer

from .errors import ValidationError

_serializer = TypeSerializer()
_deserializer = TypeDeserializer()


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, bytes, bytearray)) and len(value) == 0:
        return True
    if isinstance(value, (list, tuple, set, frozenset, dict)) and len(value) == 0:
        return True
    return False


def sanitize(value: Any) -> Any:
    """Recursively drop null, empty-string and empty-collection values.

    Mapping keys and list elements holding such values are removed; the
    check runs after the nested value has itself been sanitized, so a map
    that only held empty values disappears too. ``0`` and ``False`` are
    real values and are kept.
    """
    if isinstance(value, Mapping):
        out: dict[str, Any] = {}
        for key, inner in value.items():
            cleaned = sanitize(inner)
            if not is_empty(cleaned):
                out[key] = cleaned
        return out
    if isinstance(value, (list, tuple)):
        cleaned_items = [sanitize(v) for v in value]
        return [v for v in cleaned_items if not is_empty(v)]
    if isinstance(value, (set, frozenset)):
        return {v for v in value if not is_empty(v)}
    return value


def _to_wire_native(value: Any, path: str) -> Any:
    if value is None:
        raise ValidationError(f"null values must be stripped before encoding: {path}")
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, Mapping):
        return {str(k): _to_wire_native(v, f"{path}.{k}") for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_wire_native(v, f"{path}[{i}]") for i, v in enumerate(value)]
    if isinstance(value, (set, frozenset)):
        return {_to_wire_native(v, path) for v in value}
    return value


def _from_wire_native(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, Decimal):
        if value == value.to_integral_value():
            return int(value)
        as_float = float(value)
        # Only hand back a float that re-encodes to the same digits.
        if Decimal(str(as_float)) == value:
            return as_float
        return value
    if isinstance(value, Binary):
        return bytes(value.value)
    if isinstance(value, dict):
        return {k: _from_wire_native(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_wire_native(v) for v in value]
    if isinstance(value, set):
        return {_from_wire_native(v) for v in value}
    return value


def encode(value: Any) -> dict[str, Any]:
    return _serializer.serialize(_to_wire_native(value, "value"))


def decode(wire: Mapping[str, Any]) -> Any:
    return _from_wire_native(_deserializer.deserialize(dict(wire)))


def encode_item(attributes: Mapping[str, Any]) -> dict[str, Any]:
    return {str(name): encode(value) for name, value in attributes.items()}


def decode_item(item: Mapping[str, Any]) -> dict[str, Any]:
    return {name: decode(wire) for name, wire in item.items()}
