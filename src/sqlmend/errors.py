# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Exception hierarchy for sqlmend.

Adapters raise these; the executor converts ConnectionAcquisitionError and
QueryError into failed ExecutionResults, so they never reach RecordDb callers.
ConfigError is a programmer error and propagates.
"""

from __future__ import annotations


class SqlMendError(Exception):
    """Base exception for sqlmend errors."""


class ConfigError(SqlMendError, ValueError):
    """Invalid configuration option."""


class ConnectionAcquisitionError(SqlMendError):
    """The pool could not hand out a connection (unreachable, exhausted, closed)."""


class QueryError(SqlMendError):
    """The server rejected a statement.

    Attributes:
        message: Server error text, e.g. "Data too long for column 'name' at row 1".
        code: Server error number, when the driver reports one.
    """

    def __init__(self, message: str, code: int | None = None):
        self.message = message
        self.code = code
        super().__init__(message)


__all__ = [
    "SqlMendError",
    "ConfigError",
    "ConnectionAcquisitionError",
    "QueryError",
]
