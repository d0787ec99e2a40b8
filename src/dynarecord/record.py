from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from .codec import decode_item, encode, encode_item, is_empty, sanitize
from .errors import ValidationError
from .model import CREATED_FIELD, ID_FIELD, MODIFIED_FIELD, RESERVED_FIELDS, validate_field_name
from .transaction import TransactDelete, TransactPut, TransactUpdate

if TYPE_CHECKING:
    from .table import Table

CREATE_CONDITION = f"attribute_not_exists({ID_FIELD})"
UPDATE_CONDITION = f"attribute_exists({ID_FIELD})"


class Record:
    """One item of an entity type, with change tracking.

    Fields are read with :meth:`get` and written with :meth:`set` (or the
    mapping forms ``record[name]`` / ``record[name] = value``). Assigning
    ``None``, an empty string or an empty collection drops the field.

    A new record is written with a create-only put on the first
    :meth:`save`. After that, only fields assigned since the last save are
    sent, as a conditional update.
    """

    def __init__(self, table: Table[Any], attributes: Mapping[str, Any] | None = None) -> None:
        self._table = table
        self._attributes: dict[str, Any] = {}
        self._dirty: dict[str, None] = {}
        self._removed: dict[str, None] = {}
        self._is_new = True
        self._deleted = False

        for name, value in (attributes or {}).items():
            self.set(name, value)

    @classmethod
    def from_item(cls, table: Table[Any], item: Mapping[str, Any]) -> Record:
        record = cls(table)
        record._attributes = decode_item(item)
        record._is_new = False
        return record

    def __repr__(self) -> str:
        state = "new" if self._is_new else "persisted"
        return f"{type(self).__name__}({self._table.descriptor.name}, id={self.id!r}, {state})"

    def __getitem__(self, name: str) -> Any:
        return self._attributes[name]

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    def __delitem__(self, name: str) -> None:
        self.unset(name)

    def __contains__(self, name: object) -> bool:
        return name in self._attributes

    @property
    def table(self) -> Table[Any]:
        return self._table

    @property
    def id(self) -> Any:
        return self._attributes.get(ID_FIELD)

    @id.setter
    def id(self, value: Any) -> None:
        self.set(ID_FIELD, value)

    @property
    def created(self) -> int | None:
        return self._attributes.get(CREATED_FIELD)

    @property
    def modified(self) -> int | None:
        return self._attributes.get(MODIFIED_FIELD)

    @property
    def is_new(self) -> bool:
        return self._is_new

    @property
    def is_deleted(self) -> bool:
        return self._deleted

    @property
    def dirty_fields(self) -> tuple[str, ...]:
        return tuple(self._dirty)

    @property
    def removed_fields(self) -> tuple[str, ...]:
        return tuple(self._removed)

    @property
    def is_modified(self) -> bool:
        return bool(self._dirty or self._removed)

    def get(self, name: str, default: Any = None) -> Any:
        return self._attributes.get(name, default)

    def set(self, name: str, value: Any) -> Record:
        validate_field_name(name)
        if name == ID_FIELD and not self._is_new and value != self.id:
            raise ValidationError("id is immutable once persisted")

        if is_empty(value):
            self._attributes.pop(name, None)
        else:
            self._attributes[name] = value

        self._removed.pop(name, None)
        if not self._is_new:
            self._dirty[name] = None
        return self

    def unset(self, name: str) -> Record:
        """Remove ``name`` locally and, for persisted records, in the store."""
        validate_field_name(name)
        if name in RESERVED_FIELDS:
            raise ValidationError(f"{name} cannot be removed")

        self._attributes.pop(name, None)
        self._dirty.pop(name, None)
        if not self._is_new:
            self._removed[name] = None
        return self

    def to_dict(self) -> dict[str, Any]:
        return dict(self._attributes)

    def save(self) -> Record:
        if self._deleted:
            raise ValidationError("record has been deleted")

        self._attributes = sanitize(self._attributes)
        if self._is_new:
            return self._create()
        if not self.is_modified:
            return self
        return self._update()

    def delete(self) -> bool:
        if self._deleted:
            raise ValidationError("record has already been deleted")

        key = self._table.key_for(self.id)
        self._table.write(TransactDelete(table_name=self._table.table_name, key=key))
        self._deleted = True
        return True

    def _create(self) -> Record:
        if is_empty(self.id):
            raise ValidationError("id is required")

        now = self._table.session.now()
        self._attributes[CREATED_FIELD] = now
        self._attributes[MODIFIED_FIELD] = now

        self._table.write(
            TransactPut(
                table_name=self._table.table_name,
                item=encode_item(self._attributes),
                condition_expression=CREATE_CONDITION,
            )
        )

        self._is_new = False
        self._dirty.clear()
        self._removed.clear()
        return self

    def _update(self) -> Record:
        self._attributes[MODIFIED_FIELD] = self._table.session.now()
        fields = [name for name in self._dirty if name != MODIFIED_FIELD] + [MODIFIED_FIELD]

        names: dict[str, str] = {}
        values: dict[str, Any] = {}
        set_parts: list[str] = []
        for name in fields:
            # the key cannot be rewritten, and emptied fields have nothing to set
            if name == ID_FIELD or name not in self._attributes:
                continue
            names[f"#{name}"] = name
            values[f":{name}"] = encode(self._attributes[name])
            set_parts.append(f"#{name} = :{name}")

        remove_parts: list[str] = []
        for name in self._removed:
            names[f"#{name}"] = name
            remove_parts.append(f"#{name}")

        expression = "SET " + ", ".join(set_parts)
        if remove_parts:
            expression += " REMOVE " + ", ".join(remove_parts)

        self._table.write(
            TransactUpdate(
                table_name=self._table.table_name,
                key=self._table.key_for(self.id),
                update_expression=expression,
                expression_attribute_names=names,
                expression_attribute_values=values,
                condition_expression=UPDATE_CONDITION,
            )
        )

        for name in fields:
            self._dirty.pop(name, None)
        self._removed.clear()
        return self


def records_to_dicts(records: Iterable[Record]) -> list[dict[str, Any]]:
    return [record.to_dict() for record in records]
