from __future__ import annotations

import logging
import os
import uuid

import boto3

from dynarecord import EntityDescriptor, Session, gsi


def _client():
    return boto3.client(
        "dynamodb",
        endpoint_url=os.environ.get("DYNAMODB_ENDPOINT", "http://localhost:8000"),
        region_name=os.environ.get("AWS_REGION", "us-east-1"),
        aws_access_key_id=os.environ.get("AWS_ACCESS_KEY_ID", "dummy"),
        aws_secret_access_key=os.environ.get("AWS_SECRET_ACCESS_KEY", "dummy"),
    )


def main() -> None:
    logging.basicConfig(level=logging.DEBUG)
    client = _client()
    table_name = f"dynarecord_example_{uuid.uuid4().hex[:12]}"

    client.create_table(
        TableName=table_name,
        KeySchema=[{"AttributeName": "id", "KeyType": "HASH"}],
        AttributeDefinitions=[
            {"AttributeName": "id", "AttributeType": "S"},
            {"AttributeName": "tenantId", "AttributeType": "S"},
        ],
        GlobalSecondaryIndexes=[
            {
                "IndexName": "tenantId-idx",
                "KeySchema": [{"AttributeName": "tenantId", "KeyType": "HASH"}],
                "Projection": {"ProjectionType": "ALL"},
            }
        ],
        BillingMode="PAY_PER_REQUEST",
    )
    client.get_waiter("table_exists").wait(TableName=table_name)

    try:
        session = Session(
            client=client,
            descriptors=[EntityDescriptor(name="user", table_name=table_name, indexes=(gsi("tenantId"),))],
        )
        users = session.table("user")

        user = users.new(id="u1", tenantId="t1", name="Ada")
        user.save()
        user["email"] = "ada@example.com"
        user.save()

        with session.transaction():
            users.new(id="u2", tenantId="t1", name="Grace").save()
            users.new(id="u3", tenantId="t2", name="Edsger").save()

        print("get:", users.get_by_id("u1"))
        print("query tenantId=t1:", [r.to_dict() for r in users.query("tenantId", "t1")])
    finally:
        client.delete_table(TableName=table_name)


if __name__ == "__main__":
    main()
