from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from .errors import ValidationError


@dataclass(frozen=True)
class QueryOptions:
    index_name: str | None = None
    filters: Sequence[str] = ()
    filter_values: Mapping[str, Any] = field(default_factory=dict)
    key_condition_expression: str | None = None
    filter_expression: str | None = None
    expression_attribute_names: Mapping[str, str] | None = None
    expression_attribute_values: Mapping[str, Any] | None = None
    scan_index_forward: bool = False
    limit: int | None = None

    def resolved_filters(self) -> dict[str, Any]:
        """Pair each name in ``filters`` with its bound value.

        Bindings may be keyed by the bare field name or by its ``:field``
        placeholder.
        """
        out: dict[str, Any] = {}
        for name in self.filters:
            if name in self.filter_values:
                out[name] = self.filter_values[name]
            elif f":{name}" in self.filter_values:
                out[name] = self.filter_values[f":{name}"]
            else:
                raise ValidationError(f"missing filter value: {name}")
        return out


@dataclass(frozen=True)
class Page:
    items: list[dict[str, Any]]
    last_key: dict[str, Any] | None


type PageFetcher = Callable[[dict[str, Any] | None, int | None], Page]


def validate_limit(limit: int | None) -> None:
    if limit is not None and limit <= 0:
        raise ValidationError("limit must be > 0")


def collect_pages(fetch: PageFetcher, *, limit: int | None = None) -> list[dict[str, Any]]:
    """Drain ``fetch`` page by page, strictly in order.

    ``fetch`` receives the previous page's continuation key and the number of
    items still wanted. Paging stops once the store stops returning a
    continuation key or ``limit`` items have been gathered.
    """
    validate_limit(limit)

    out: list[dict[str, Any]] = []
    start_key: dict[str, Any] | None = None
    while True:
        remaining = None if limit is None else limit - len(out)
        page = fetch(start_key, remaining)
        out.extend(page.items)

        if limit is not None and len(out) >= limit:
            return out[:limit]
        if not page.last_key:
            return out
        start_key = page.last_key
