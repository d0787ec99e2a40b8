from __future__ import annotations

from typing import Any

import pytest
from botocore.exceptions import ClientError

from dynarecord import (
    ConditionFailedError,
    EntityDescriptor,
    Session,
    TransactionCanceledError,
    ValidationError,
)
from dynarecord.testkit import ANY, FakeDynamoDBClient, fixed_clock

USERS = EntityDescriptor(name="user", table_name="users")
ORGS = EntityDescriptor(name="org", table_name="orgs")


def _session() -> tuple[FakeDynamoDBClient, Session]:
    client = FakeDynamoDBClient()
    return client, Session(client=client, descriptors=[USERS, ORGS], clock=fixed_clock(500))


def _canceled(*codes: str) -> ClientError:
    return ClientError(
        {
            "Error": {"Code": "TransactionCanceledException", "Message": "Transaction cancelled"},
            "CancellationReasons": [{"Code": code} for code in codes],
        },
        "TransactWriteItems",
    )


def test_saves_are_buffered_until_commit() -> None:
    client, session = _session()
    users = session.table("user")

    client.expect("get_item", response={"Item": {"id": {"S": "u1"}, "name": {"S": "Ada"}}})
    existing = users.get_by_id("u1")
    assert existing is not None

    session.use_transaction()
    assert session.in_transaction is True

    created = users.new(id="u2", name="Grace").save()
    existing["name"] = "Ada L."
    existing.save()

    assert len(session.pending) == 2
    assert client.calls_for("put_item") == []
    assert client.calls_for("update_item") == []
    assert created.is_new is False
    assert existing.dirty_fields == ()

    def validate(req: dict[str, Any]) -> None:
        items = req["TransactItems"]
        assert [next(iter(item)) for item in items] == ["Put", "Update"]
        assert items[0]["Put"]["ConditionExpression"] == "attribute_not_exists(id)"
        assert items[0]["Put"]["Item"]["id"] == {"S": "u2"}
        assert items[1]["Update"]["ConditionExpression"] == "attribute_exists(id)"
        assert items[1]["Update"]["UpdateExpression"] == "SET #name = :name, #modified = :modified"

    client.expect("transact_write_items", validate, response={"ConsumedCapacity": []})

    assert session.commit() == {"ConsumedCapacity": []}
    assert session.in_transaction is False
    assert len(session.pending) == 0
    client.assert_no_pending()


def test_buffer_is_shared_by_tables_of_one_session() -> None:
    client, session = _session()
    client.expect(
        "transact_write_items",
        {
            "TransactItems": [
                {"Put": {"TableName": "users", "Item": ANY, "ConditionExpression": ANY}},
                {"Put": {"TableName": "orgs", "Item": ANY, "ConditionExpression": ANY}},
                {"Delete": {"TableName": "users", "Key": {"id": {"S": "u9"}}}},
            ]
        },
    )

    with session.transaction():
        session.table("user").new(id="u1").save()
        session.table("org").new(id="o1").save()
        session.table("user").new(id="u9").delete()

    assert len(client.calls) == 1
    client.assert_no_pending()


def test_commit_failure_resets_buffer_and_raises_conflict() -> None:
    client, session = _session()
    client.expect("transact_write_items", error=_canceled("None", "ConditionalCheckFailed"))

    session.use_transaction()
    session.table("user").new(id="u1").save()
    session.table("user").new(id="u2").save()

    with pytest.raises(ConditionFailedError):
        session.commit()

    assert session.in_transaction is False
    assert len(session.pending) == 0


def test_commit_failure_carries_cancellation_reasons() -> None:
    client, session = _session()
    client.expect("transact_write_items", error=_canceled("TransactionConflict"))

    session.use_transaction()
    session.table("user").new(id="u1").save()

    with pytest.raises(TransactionCanceledError) as excinfo:
        session.commit()
    assert excinfo.value.reason_codes == ("TransactionConflict",)
    assert session.in_transaction is False


def test_commit_resets_buffer_on_transport_error() -> None:
    client, session = _session()
    boom = TimeoutError("read timeout")
    client.expect("transact_write_items", error=boom)

    session.use_transaction()
    session.table("user").new(id="u1").save()

    with pytest.raises(TimeoutError):
        session.commit()
    assert session.in_transaction is False
    assert len(session.pending) == 0


def test_transaction_context_discards_on_error() -> None:
    client, session = _session()

    with pytest.raises(RuntimeError, match="abort"):
        with session.transaction():
            session.table("user").new(id="u1").save()
            raise RuntimeError("abort")

    assert client.calls == []
    assert session.in_transaction is False
    assert len(session.pending) == 0


def test_transaction_state_errors() -> None:
    client, session = _session()

    with pytest.raises(ValidationError, match="no transaction in progress"):
        session.commit()

    session.use_transaction()
    with pytest.raises(ValidationError, match="already in progress"):
        session.use_transaction()

    assert session.commit() == {}
    assert client.calls == []


def test_discard_drops_pending_writes() -> None:
    client, session = _session()
    session.use_transaction()
    session.table("user").new(id="u1").save()

    session.discard()

    assert session.in_transaction is False
    assert len(session.pending) == 0
    assert client.calls == []
