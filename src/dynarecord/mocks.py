from __future__ import annotations

from collections import deque
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

type RequestCheck = Mapping[str, Any] | Callable[[Mapping[str, Any]], None]


class _Wildcard:
    def __repr__(self) -> str:  # pragma: no cover
        return "ANY"


ANY: Any = _Wildcard()


def _mismatch(expected: Any, actual: Any, path: str) -> str | None:
    """Describe the first place ``actual`` departs from ``expected``.

    Mappings match on the expected keys only; every other value, lists
    included, must match in full.
    """
    if expected is ANY:
        return None

    if isinstance(expected, Mapping):
        if not isinstance(actual, Mapping):
            return f"{path}: expected a map, got {actual!r}"
        for key, sub in expected.items():
            if key not in actual:
                return f"{path}: missing key {key!r}"
            found = _mismatch(sub, actual[key], f"{path}.{key}")
            if found:
                return found
        return None

    if isinstance(expected, list) and isinstance(actual, list) and len(expected) == len(actual):
        for pos, (e, a) in enumerate(zip(expected, actual, strict=True)):
            found = _mismatch(e, a, f"{path}[{pos}]")
            if found:
                return found
        return None

    if expected != actual:
        return f"{path}: expected {expected!r}, got {actual!r}"
    return None


def page_response(items: Sequence[Mapping[str, Any]], last_key: Mapping[str, Any] | None = None) -> dict[str, Any]:
    resp: dict[str, Any] = {"Items": [dict(i) for i in items], "Count": len(items)}
    if last_key:
        resp["LastEvaluatedKey"] = dict(last_key)
    return resp


@dataclass(frozen=True)
class _Expectation:
    method: str
    check: RequestCheck | None
    response: Mapping[str, Any] | None
    error: Exception | None

    def verify(self, method: str, req: dict[str, Any]) -> None:
        if method != self.method:
            raise AssertionError(f"expected {self.method}, got {method}")
        if callable(self.check):
            self.check(req)
        elif self.check is not None:
            found = _mismatch(self.check, req, method)
            if found:
                raise AssertionError(found)


def _operation(method: str) -> Callable[..., Mapping[str, Any]]:
    def call(self: FakeDynamoDBClient, **kwargs: Any) -> Mapping[str, Any]:
        return self._respond(method, kwargs)

    call.__name__ = method
    return call


class FakeDynamoDBClient:
    """Store client double that answers queued expectations in order.

    Each request is recorded in :attr:`calls` and checked against the next
    expectation, either a partial request (with :data:`ANY` wildcards) or
    a callable. The expectation's error is raised, or its response returned.
    """

    get_item = _operation("get_item")
    put_item = _operation("put_item")
    update_item = _operation("update_item")
    delete_item = _operation("delete_item")
    query = _operation("query")
    scan = _operation("scan")
    transact_write_items = _operation("transact_write_items")

    def __init__(self) -> None:
        self._queue: deque[_Expectation] = deque()
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def expect(
        self,
        method: str,
        expected: RequestCheck | None = None,
        *,
        response: Mapping[str, Any] | None = None,
        error: Exception | None = None,
    ) -> None:
        self._queue.append(_Expectation(method, expected, response, error))

    def expect_pages(
        self,
        method: str,
        pages: Sequence[Sequence[Mapping[str, Any]]],
        expected: RequestCheck | None = None,
    ) -> None:
        """Queue one response per page, chained by synthetic continuation keys."""
        last = len(pages) - 1
        for pos, items in enumerate(pages):
            key = {"id": {"S": f"page-{pos}"}} if pos < last else None
            self.expect(method, expected, response=page_response(items, key))

    def assert_no_pending(self) -> None:
        if self._queue:
            raise AssertionError(f"pending expected calls: {list(self._queue)!r}")

    def calls_for(self, method: str) -> list[dict[str, Any]]:
        return [req for name, req in self.calls if name == method]

    def _respond(self, method: str, req: dict[str, Any]) -> Mapping[str, Any]:
        self.calls.append((method, dict(req)))
        if not self._queue:
            raise AssertionError(f"unexpected call: {method}")

        expectation = self._queue.popleft()
        expectation.verify(method, req)
        if expectation.error is not None:
            raise expectation.error
        return dict(expectation.response or {})
