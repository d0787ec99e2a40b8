from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .codec import decode, decode_item, encode, encode_item, sanitize
from .errors import (
    AwsError,
    ConditionFailedError,
    DynarecordError,
    NotFoundError,
    TransactionCanceledError,
    UnknownEntityError,
    ValidationError,
)
from .expressions import (
    FilterExpression,
    KeyCondition,
    build_filter,
    build_scan_filter,
    select_key_condition,
)
from .model import EntityDescriptor, IndexDefinition, gsi
from .query import QueryOptions
from .record import Record, records_to_dicts
from .session import Session
from .table import Table
from .transaction import PendingTransaction, TransactDelete, TransactPut, TransactUpdate

if TYPE_CHECKING:
    from .config import StoreConfig, create_boto3_config, create_client, load_schema

__version__ = "0.1.0"


def __getattr__(name: str) -> Any:
    if name in {"StoreConfig", "create_boto3_config", "create_client", "load_schema"}:
        from . import config

        return getattr(config, name)
    raise AttributeError(name)


__all__ = [
    "AwsError",
    "build_filter",
    "build_scan_filter",
    "ConditionFailedError",
    "create_boto3_config",
    "create_client",
    "decode",
    "decode_item",
    "DynarecordError",
    "encode",
    "encode_item",
    "EntityDescriptor",
    "FilterExpression",
    "gsi",
    "IndexDefinition",
    "KeyCondition",
    "load_schema",
    "NotFoundError",
    "PendingTransaction",
    "QueryOptions",
    "Record",
    "records_to_dicts",
    "sanitize",
    "select_key_condition",
    "Session",
    "StoreConfig",
    "Table",
    "TransactDelete",
    "TransactionCanceledError",
    "TransactPut",
    "TransactUpdate",
    "UnknownEntityError",
    "ValidationError",
    "__version__",
]
