from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from .errors import ValidationError

ID_FIELD = "id"
CREATED_FIELD = "created"
MODIFIED_FIELD = "modified"
RESERVED_FIELDS = frozenset({ID_FIELD, CREATED_FIELD, MODIFIED_FIELD})

INDEX_SUFFIX = "-idx"

_FIELD_NAME_RE = re.compile(r"^[A-Za-z0-9_]+$")


def validate_field_name(name: str) -> str:
    if not isinstance(name, str) or not _FIELD_NAME_RE.match(name):
        raise ValidationError(f"invalid field name: {name!r}")
    return name


def default_index_name(field_name: str) -> str:
    return f"{field_name}{INDEX_SUFFIX}"


@dataclass(frozen=True)
class IndexDefinition:
    name: str
    partition: str


def gsi(field_name: str, *, name: str | None = None) -> IndexDefinition:
    return IndexDefinition(name=name or default_index_name(field_name), partition=field_name)


@dataclass(frozen=True)
class EntityDescriptor:
    name: str
    table_name: str
    indexes: tuple[IndexDefinition, ...] = ()

    def __post_init__(self) -> None:
        if not self.name:
            raise ValidationError("entity name is required")
        if not self.table_name:
            raise ValidationError(f"entity {self.name}: table_name is required")

        seen: set[str] = set()
        for idx in self.indexes:
            if idx.name in seen:
                raise ValidationError(f"entity {self.name}: duplicate index name: {idx.name}")
            seen.add(idx.name)
            validate_field_name(idx.partition)

    @classmethod
    def build(
        cls,
        name: str,
        table_name: str,
        indexes: Mapping[str, str] | Sequence[IndexDefinition] = (),
    ) -> EntityDescriptor:
        if isinstance(indexes, Mapping):
            resolved = tuple(IndexDefinition(name=k, partition=v) for k, v in indexes.items())
        else:
            resolved = tuple(indexes)
        return cls(name=name, table_name=table_name, indexes=resolved)

    @property
    def index_map(self) -> dict[str, str]:
        return {idx.name: idx.partition for idx in self.indexes}

    def find_index(self, index_name: str) -> IndexDefinition | None:
        for idx in self.indexes:
            if idx.name == index_name:
                return idx
        return None
