"""Shared test helpers: a scripted in-memory connection factory.

Responses are keyed by the logical query name each catalog operation
passes to ``fetch_all(query=...)``.  A response may be a list of rows, an
exception instance (raised), or a callable taking the bound params.
``delay`` makes every query sleep first, for timeout and cancel tests.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

import pytest


@dataclass
class RecordedQuery:
    query: str
    sql: str
    params: dict[str, Any]
    target: str | None


class FakeConnection:
    def __init__(self, factory: "FakeConnectionFactory") -> None:
        self._factory = factory

    async def fetch_all(
        self,
        sql: str,
        params: dict[str, Any] | None = None,
        *,
        query: str,
        target: str | None = None,
    ) -> list[tuple]:
        self._factory.calls.append(RecordedQuery(query, sql, dict(params or {}), target))
        if self._factory.delay:
            await asyncio.sleep(self._factory.delay)
        response = self._factory.responses.get(query, [])
        if isinstance(response, Exception):
            raise response
        if callable(response):
            response = response(params or {})
        return list(response)


@dataclass
class FakeConnectionFactory:
    responses: dict[str, Any] = field(default_factory=dict)
    calls: list[RecordedQuery] = field(default_factory=list)
    opened: int = 0
    closed: int = 0
    connect_error: Exception | None = None
    delay: float = 0.0

    @asynccontextmanager
    async def connection(self):
        if self.connect_error is not None:
            raise self.connect_error
        self.opened += 1
        try:
            yield FakeConnection(self)
        finally:
            self.closed += 1

    def queries(self) -> list[str]:
        return [call.query for call in self.calls]

    def call(self, query: str) -> RecordedQuery:
        for recorded in self.calls:
            if recorded.query == query:
                return recorded
        raise AssertionError(f"query {query!r} was not run; ran {self.queries()}")


@pytest.fixture
def fake_factory() -> FakeConnectionFactory:
    return FakeConnectionFactory()
