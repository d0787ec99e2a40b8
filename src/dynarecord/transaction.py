from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .errors import ValidationError

# Store-side limit on items in one TransactWriteItems call.
MAX_TRANSACT_ITEMS = 100


@dataclass(frozen=True)
class TransactPut:
    table_name: str
    item: Mapping[str, Any]
    condition_expression: str | None = None

    def to_request(self) -> dict[str, Any]:
        req: dict[str, Any] = {"TableName": self.table_name, "Item": dict(self.item)}
        if self.condition_expression:
            req["ConditionExpression"] = self.condition_expression
        return req

    def to_transact_item(self) -> dict[str, Any]:
        return {"Put": self.to_request()}


@dataclass(frozen=True)
class TransactUpdate:
    table_name: str
    key: Mapping[str, Any]
    update_expression: str
    expression_attribute_names: Mapping[str, str]
    expression_attribute_values: Mapping[str, Any] | None = None
    condition_expression: str | None = None

    def to_request(self) -> dict[str, Any]:
        req: dict[str, Any] = {
            "TableName": self.table_name,
            "Key": dict(self.key),
            "UpdateExpression": self.update_expression,
            "ExpressionAttributeNames": dict(self.expression_attribute_names),
        }
        if self.expression_attribute_values:
            req["ExpressionAttributeValues"] = dict(self.expression_attribute_values)
        if self.condition_expression:
            req["ConditionExpression"] = self.condition_expression
        return req

    def to_transact_item(self) -> dict[str, Any]:
        return {"Update": self.to_request()}


@dataclass(frozen=True)
class TransactDelete:
    table_name: str
    key: Mapping[str, Any]
    condition_expression: str | None = None

    def to_request(self) -> dict[str, Any]:
        req: dict[str, Any] = {"TableName": self.table_name, "Key": dict(self.key)}
        if self.condition_expression:
            req["ConditionExpression"] = self.condition_expression
        return req

    def to_transact_item(self) -> dict[str, Any]:
        return {"Delete": self.to_request()}


type TransactWriteAction = TransactPut | TransactUpdate | TransactDelete


class PendingTransaction:
    """Write actions held back until the owning session commits.

    Not thread-safe: one logical transaction has one writer.
    """

    def __init__(self) -> None:
        self.active = False
        self._actions: list[TransactWriteAction] = []

    def __len__(self) -> int:
        return len(self._actions)

    @property
    def actions(self) -> tuple[TransactWriteAction, ...]:
        return tuple(self._actions)

    def begin(self) -> None:
        self.active = True

    def append(self, action: TransactWriteAction) -> None:
        if not self.active:
            raise ValidationError("no transaction in progress")
        if len(self._actions) >= MAX_TRANSACT_ITEMS:
            raise ValidationError(f"a transaction supports at most {MAX_TRANSACT_ITEMS} actions")
        self._actions.append(action)

    def reset(self) -> None:
        self.active = False
        self._actions.clear()

    def to_transact_items(self) -> list[dict[str, Any]]:
        return [action.to_transact_item() for action in self._actions]
