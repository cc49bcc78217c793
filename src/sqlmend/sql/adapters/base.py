# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Base adapter class for async pooled database backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ..results import WriteInfo


class DbAdapter(ABC):
    """Abstract base class for async database adapters.

    Provides the three capabilities the executor relies on:
    - acquire(): Returns a connection from the pool
    - query(conn, sql, params): Runs one statement on that connection
    - release(conn): Returns the connection to the pool
    plus shutdown() for application teardown.

    Error contract:
    - acquire() raises ConnectionAcquisitionError when no connection can be
      handed out (server unreachable, pool closed).
    - query() raises QueryError carrying the server message for any statement
      the server rejects.
    Other exceptions are programming errors and propagate.

    Statements use ``?`` placeholders; subclasses convert them to the driver's
    own parameter style.
    """

    @abstractmethod
    async def acquire(self) -> Any:
        """Acquire a connection from the pool.

        The pool is opened on first use. Callers suspend while the pool is
        exhausted until another caller releases a connection.

        Returns:
            Database connection object.
        """
        ...

    @abstractmethod
    async def release(self, conn: Any) -> None:
        """Return a connection to the pool."""
        ...

    @abstractmethod
    async def shutdown(self) -> None:
        """Close the pool (application shutdown).

        After shutdown the adapter never reopens; acquire() fails.
        """
        ...

    @abstractmethod
    async def query(
        self, conn: Any, sql: str, params: Sequence[Any] | None = None
    ) -> list[dict[str, Any]] | WriteInfo:
        """Run a statement on a connection.

        Returns:
            Row dicts for statements producing a result set, otherwise a
            WriteInfo with the generated id and the affected row count.
        """
        ...
