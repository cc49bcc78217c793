# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Value types shared by the statement builder, executor and record API."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple


class Statement(NamedTuple):
    """SQL text and its bound parameters, one per ``?`` left to right."""

    sql: str
    params: list[Any]


@dataclass(frozen=True)
class WriteInfo:
    """Outcome of a statement that returns no rows."""

    insert_id: int | None = None
    affected_rows: int = 0


class FailureKind(str, Enum):
    ACQUIRE = "acquire"
    QUERY = "query"


@dataclass
class ExecutionResult:
    """Uniform success/failure envelope returned by every execution.

    On success ``data`` holds a list of row dicts (SELECT, SHOW) or a
    WriteInfo (INSERT, UPDATE, DDL). On failure ``message`` holds the error
    text and ``sql``/``params`` the statement that failed, which is what the
    classifier needs to attempt a repair.
    """

    ok: bool
    data: list[dict[str, Any]] | WriteInfo | None = None
    message: str = ""
    kind: FailureKind | None = None
    sql: str = ""
    params: list[Any] = field(default_factory=list)

    @classmethod
    def success(cls, data: list[dict[str, Any]] | WriteInfo) -> ExecutionResult:
        return cls(ok=True, data=data)

    @classmethod
    def failure(
        cls,
        message: str,
        kind: FailureKind,
        sql: str = "",
        params: list[Any] | None = None,
    ) -> ExecutionResult:
        return cls(ok=False, message=message, kind=kind, sql=sql, params=list(params or []))

    @property
    def rows(self) -> list[dict[str, Any]]:
        """Result rows, or an empty list for failures and write statements."""
        if self.ok and isinstance(self.data, list):
            return self.data
        return []

    @property
    def write_info(self) -> WriteInfo | None:
        """WriteInfo for successful write statements, None otherwise."""
        if self.ok and isinstance(self.data, WriteInfo):
            return self.data
        return None

    def __bool__(self) -> bool:
        return self.ok


__all__ = ["Statement", "WriteInfo", "FailureKind", "ExecutionResult"]
