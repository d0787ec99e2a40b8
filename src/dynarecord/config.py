from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, cast

import boto3
import yaml
from botocore.config import Config

from .errors import ValidationError
from .model import EntityDescriptor, IndexDefinition, default_index_name

DEFAULT_REGION = "us-west-1"


@dataclass(frozen=True)
class StoreConfig:
    region: str = DEFAULT_REGION
    endpoint_url: str | None = None
    connect_timeout: float = 2.0
    read_timeout: float = 5.0
    max_attempts: int = 3

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = os.environ) -> StoreConfig:
        max_attempts_raw = environ.get("DYNAMODB_MAX_ATTEMPTS")
        try:
            max_attempts = int(max_attempts_raw) if max_attempts_raw else cls.max_attempts
        except ValueError as err:
            raise ValidationError(f"invalid DYNAMODB_MAX_ATTEMPTS: {max_attempts_raw!r}") from err

        return cls(
            region=environ.get("AWS_REGION") or environ.get("AWS_DEFAULT_REGION") or DEFAULT_REGION,
            endpoint_url=environ.get("DYNAMODB_ENDPOINT") or None,
            max_attempts=max_attempts,
        )


def create_boto3_config(config: StoreConfig) -> Config:
    return Config(
        region_name=config.region,
        connect_timeout=config.connect_timeout,
        read_timeout=config.read_timeout,
        retries={"max_attempts": config.max_attempts, "mode": "standard"},
    )


def create_client(config: StoreConfig, *, session: Any | None = None) -> Any:
    sess = session or boto3.session.Session(region_name=config.region)
    return cast(Any, sess).client(
        "dynamodb",
        region_name=config.region,
        endpoint_url=config.endpoint_url,
        config=create_boto3_config(config),
    )


def load_schema(raw: str) -> list[EntityDescriptor]:
    """Parse an entity schema document (YAML or JSON).

    Expected shape::

        entities:
          - name: user
            table: users
            indexes:
              - partition: tenantId          # index name defaults to tenantId-idx
              - name: by-email
                partition: email
    """
    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError as err:
        raise ValidationError("invalid schema YAML/JSON") from err

    if not isinstance(parsed, dict):
        raise ValidationError("schema document must be a map/object")

    entities = parsed.get("entities")
    if not isinstance(entities, list) or len(entities) == 0:
        raise ValidationError("schema document must include entities[]")

    descriptors: list[EntityDescriptor] = []
    seen: set[str] = set()
    for pos, entity in enumerate(entities):
        descriptor = _parse_entity(entity, path=f"entities[{pos}]")
        if descriptor.name in seen:
            raise ValidationError(f"duplicate entity name: {descriptor.name}")
        seen.add(descriptor.name)
        descriptors.append(descriptor)
    return descriptors


def _parse_entity(entity: Any, *, path: str) -> EntityDescriptor:
    if not isinstance(entity, dict):
        raise ValidationError(f"{path}: entity must be a map")

    name = entity.get("name")
    table = entity.get("table")
    if not isinstance(name, str) or not name:
        raise ValidationError(f"{path}: missing name")
    if not isinstance(table, str) or not table:
        raise ValidationError(f"{path}: missing table")

    indexes_raw = entity.get("indexes") or []
    if not isinstance(indexes_raw, list):
        raise ValidationError(f"{path}: indexes must be a list")

    indexes: list[IndexDefinition] = []
    for pos, idx in enumerate(indexes_raw):
        if isinstance(idx, str):
            idx = {"partition": idx}
        if not isinstance(idx, dict):
            raise ValidationError(f"{path}.indexes[{pos}]: index must be a map or field name")
        partition = idx.get("partition")
        if not isinstance(partition, str) or not partition:
            raise ValidationError(f"{path}.indexes[{pos}]: missing partition")
        index_name = idx.get("name") or default_index_name(partition)
        if not isinstance(index_name, str):
            raise ValidationError(f"{path}.indexes[{pos}]: name must be a string")
        indexes.append(IndexDefinition(name=index_name, partition=partition))

    return EntityDescriptor(name=name, table_name=table, indexes=tuple(indexes))
