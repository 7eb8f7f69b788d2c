"""Backend protocol and the result shapes shared by both backends.

Defines DatabaseBackend -- the contract the embedded and remote
backends satisfy. The gateway talks only to this protocol, so the
backend choice is made once at construction and never branched on again.

The protocol uses @runtime_checkable so callers can validate
implementations via isinstance() without importing concrete classes.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

Params = Sequence[Any]


@dataclass(frozen=True)
class QueryResult:
    """One result set: column names plus positionally aligned row tuples."""

    columns: list[str] = field(default_factory=list)
    values: list[tuple[Any, ...]] = field(default_factory=list)

    def rows_as_dicts(self) -> list[dict[str, Any]]:
        return [dict(zip(self.columns, row)) for row in self.values]


@dataclass(frozen=True)
class ExecutionResult:
    """Metadata from a statement executed for its side effects."""

    rows_affected: int
    last_insert_id: int | None = None


@runtime_checkable
class DatabaseBackend(Protocol):
    """Contract for persistence backends.

    - initialize: ensure tables and seed rows exist
    - run: execute a statement for its side effects
    - exec: execute a statement and return its rows
    - persist: make the current state durable (no-op where the
      backend owns its own durability)
    - handle: the live native handle, bypassing result normalization
    - close: release connections
    """

    name: str

    async def initialize(self) -> None:
        ...

    async def run(self, statement: str, params: Params = ()) -> ExecutionResult:
        ...

    async def exec(self, statement: str, params: Params = ()) -> list[QueryResult]:
        ...

    async def persist(self) -> None:
        ...

    def handle(self) -> Any:
        ...

    async def close(self) -> None:
        ...


def bind_params(params: Params | None) -> tuple[Any, ...]:
    """Normalize caller parameters to a positional tuple.

    A list would be read as a batch by SQLAlchemy's driver-level execute,
    so every sequence is frozen into a single tuple.
    """
    if params is None:
        return ()
    if isinstance(params, (str, bytes)):
        raise TypeError("params must be a sequence of values, not a string")
    return tuple(params)
