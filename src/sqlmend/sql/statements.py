# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Statement builder: condition/entity maps to SQL text with ``?`` parameters.

All functions are pure. Only values are bound as parameters; table names,
column names, field lists, limit clauses and raw string conditions are
interpolated verbatim and must come from trusted code, never from user input.

Condition forms:
    {"status": "active", "kind": 2}  →  "status=? and kind=?", ["active", 2]
    "id > 10 and deleted_at is null" →  used as-is, no parameters
    None / {} / ""                   →  no WHERE clause
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any, Union

from .results import Statement

Condition = Union[str, Mapping[str, Any], None]

_SELECT_ALL_PREFIX = re.compile(r"select\s+\*\s+from\s+")
_NUMERIC_LIMIT = re.compile(r"\s+limit\s+\d+\s*,\s*\d+", re.IGNORECASE)


def build_where(condition: Condition) -> tuple[str, list[Any]]:
    """Build a WHERE clause body (without the keyword) and its parameters.

    Args:
        condition: Raw SQL fragment, equality mapping, or None.

    Returns:
        (clause, params). Mapping entries are AND-ed in iteration order.
    """
    if not condition:
        return "", []
    if isinstance(condition, str):
        return condition, []

    parts = []
    params: list[Any] = []
    for column, value in condition.items():
        parts.append(f"{column}=?")
        params.append(value)
    return " and ".join(parts), params


def build_insert(table: str, entity: Mapping[str, Any]) -> Statement:
    """Build ``insert into <table> (<cols>) value (<?,...>)``."""
    columns = list(entity.keys())
    params = [entity[c] for c in columns]
    placeholders = ",".join("?" for _ in columns)
    sql = f"insert into {table} ({','.join(columns)}) value ({placeholders})"
    return Statement(sql, params)


def build_update(table: str, entity: Mapping[str, Any], condition: Condition) -> Statement:
    """Build ``update <table> set c=?,... where <clause>``.

    Parameters are the entity values followed by the condition values.
    """
    assignments = []
    params: list[Any] = []
    for column, value in entity.items():
        assignments.append(f"{column}=?")
        params.append(value)
    where_sql, where_params = build_where(condition)
    sql = f"update {table} set {','.join(assignments)} where {where_sql}"
    return Statement(sql, params + where_params)


def build_select(
    table: str,
    condition: Condition = None,
    fields: str | Sequence[str] = "*",
    limit: str | None = None,
) -> Statement:
    """Build a SELECT statement.

    Args:
        table: Table name (trusted).
        condition: Raw fragment or equality mapping; omitted when empty.
        fields: ``"*"``, a comma separated string, or an ordered list of columns.
        limit: Raw limit clause appended verbatim, e.g. ``"0,1"``.
    """
    if not isinstance(fields, str):
        fields = ",".join(fields)
    where_sql, params = build_where(condition)
    sql = f"select {fields} from {table}"
    if where_sql:
        sql = f"{sql} where {where_sql}"
    if limit:
        sql = f"{sql} limit {limit}"
    return Statement(sql, params)


def build_count(table: str, condition: Condition = None) -> Statement:
    """Build ``select count(*) as amount from <table> [where ...]``.

    Derived from the default ``select * from`` output of build_select, so it
    never accepts a field list.
    """
    sql, params = build_select(table, condition)
    sql = _SELECT_ALL_PREFIX.sub("select count(*) as amount from ", sql, count=1)
    return Statement(sql, params)


def ensure_limit(sql: str) -> str:
    """Append ``limit 0,1`` unless a numeric ``limit a,b`` clause is present."""
    if _NUMERIC_LIMIT.search(sql):
        return sql
    return f"{sql} limit 0,1"


__all__ = [
    "Condition",
    "build_where",
    "build_insert",
    "build_update",
    "build_select",
    "build_count",
    "ensure_limit",
]
