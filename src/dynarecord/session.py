from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from botocore.exceptions import ClientError

from .aws_errors import map_transaction_error
from .errors import UnknownEntityError, ValidationError
from .model import EntityDescriptor
from .transaction import PendingTransaction, TransactWriteAction

if TYPE_CHECKING:
    from .config import StoreConfig
    from .table import Table

logger = logging.getLogger(__name__)


def _epoch_seconds() -> int:
    return int(time.time())


class Session:
    """Store client handle, entity registry and transaction buffer.

    Every :class:`~dynarecord.table.Table` created from a session shares its
    client and its pending transaction, so switching the session into
    transaction mode defers writes for all of them.
    """

    def __init__(
        self,
        *,
        client: Any | None = None,
        descriptors: Iterable[EntityDescriptor] = (),
        clock: Callable[[], int] | None = None,
    ) -> None:
        if client is None:
            from .config import StoreConfig, create_client

            client = create_client(StoreConfig.from_env())

        self._client: Any = client
        self._clock = clock or _epoch_seconds
        self._registry: dict[str, EntityDescriptor] = {}
        self._tables: dict[str, Table] = {}
        self._pending = PendingTransaction()

        for descriptor in descriptors:
            self.register(descriptor)

    @classmethod
    def from_config(
        cls,
        config: StoreConfig | None = None,
        *,
        schema: str | None = None,
        client: Any | None = None,
        clock: Callable[[], int] | None = None,
    ) -> Session:
        from .config import StoreConfig, create_client, load_schema

        if client is None:
            client = create_client(config or StoreConfig.from_env())
        descriptors = load_schema(schema) if schema is not None else []
        return cls(client=client, descriptors=descriptors, clock=clock)

    @property
    def client(self) -> Any:
        return self._client

    @property
    def pending(self) -> PendingTransaction:
        return self._pending

    @property
    def in_transaction(self) -> bool:
        return self._pending.active

    def now(self) -> int:
        return self._clock()

    def register(self, descriptor: EntityDescriptor) -> EntityDescriptor:
        existing = self._registry.get(descriptor.name)
        if existing is not None and existing != descriptor:
            raise ValidationError(f"entity already registered: {descriptor.name}")
        self._registry[descriptor.name] = descriptor
        return descriptor

    def descriptor(self, name: str) -> EntityDescriptor:
        try:
            return self._registry[name]
        except KeyError:
            raise UnknownEntityError(name) from None

    @property
    def entities(self) -> tuple[str, ...]:
        return tuple(self._registry)

    def table(self, name: str) -> Table:
        table = self._tables.get(name)
        if table is None:
            from .table import Table

            table = Table(self.descriptor(name), session=self)
            self._tables[name] = table
        return table

    def use_transaction(self) -> None:
        if self._pending.active:
            raise ValidationError("transaction already in progress")
        self._pending.begin()
        logger.info("transaction started")

    def enqueue(self, action: TransactWriteAction) -> None:
        self._pending.append(action)
        logger.debug("queued %s for %s", type(action).__name__, action.table_name)

    def discard(self) -> None:
        if self._pending.active:
            logger.info("transaction discarded with %d pending actions", len(self._pending))
        self._pending.reset()

    def commit(self) -> dict[str, Any]:
        """Write every pending action in one atomic call.

        The buffer is reset whether the write succeeds or not; store errors
        are re-raised once it is cleared.
        """
        if not self._pending.active:
            raise ValidationError("no transaction in progress")

        try:
            items = self._pending.to_transact_items()
            if not items:
                logger.info("transaction committed with no actions")
                return {}

            logger.info("committing transaction with %d actions", len(items))
            try:
                resp = self._client.transact_write_items(TransactItems=items)
            except ClientError as err:
                logger.warning("transaction commit failed: %s", err)
                raise map_transaction_error(err) from err
            return dict(resp or {})
        finally:
            self._pending.reset()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        self.use_transaction()
        try:
            yield self
        except BaseException:
            self.discard()
            raise
        self.commit()
