from __future__ import annotations

import pytest

from dynarecord import EntityDescriptor, Session, UnknownEntityError, ValidationError, gsi
from dynarecord.mocks import FakeDynamoDBClient
from dynarecord.testkit import fixed_clock


def test_registry_lookup_by_name() -> None:
    users = EntityDescriptor.build("user", "users", {"tenantId-idx": "tenantId"})
    session = Session(client=FakeDynamoDBClient(), descriptors=[users])

    assert session.descriptor("user") is users
    assert session.table("user") is session.table("user")
    assert session.table("user").descriptor.index_map == {"tenantId-idx": "tenantId"}

    with pytest.raises(UnknownEntityError, match="unknown entity: nope") as excinfo:
        session.table("nope")
    assert excinfo.value.name == "nope"
    assert isinstance(excinfo.value, ValidationError)


def test_register_is_idempotent_but_rejects_conflicts() -> None:
    session = Session(client=FakeDynamoDBClient())
    users = EntityDescriptor(name="user", table_name="users")

    session.register(users)
    session.register(EntityDescriptor(name="user", table_name="users"))

    with pytest.raises(ValidationError, match="already registered"):
        session.register(EntityDescriptor(name="user", table_name="people"))


def test_descriptor_validation() -> None:
    with pytest.raises(ValidationError, match="table_name is required"):
        EntityDescriptor(name="user", table_name="")
    with pytest.raises(ValidationError, match="entity name is required"):
        EntityDescriptor(name="", table_name="users")
    with pytest.raises(ValidationError, match="duplicate index name"):
        EntityDescriptor(name="user", table_name="users", indexes=(gsi("a", name="x"), gsi("b", name="x")))


def test_gsi_default_name() -> None:
    idx = gsi("tenantId")
    assert idx.name == "tenantId-idx"
    assert idx.partition == "tenantId"


def test_session_clock_is_injectable() -> None:
    session = Session(client=FakeDynamoDBClient(), clock=fixed_clock(10, step=5))
    assert [session.now(), session.now(), session.now()] == [10, 15, 20]
