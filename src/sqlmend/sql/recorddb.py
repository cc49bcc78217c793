# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Async record access API over a pooled MySQL connection."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from ..config import AccessConfig
from .adapters import MysqlAdapter
from .executor import Executor
from .statements import (
    Condition,
    build_count,
    build_insert,
    build_select,
    build_update,
    ensure_limit,
)

if TYPE_CHECKING:
    from .adapters import DbAdapter
    from .results import ExecutionResult

logger = logging.getLogger(__name__)


class RecordDb:
    """Async CRUD and schema-introspection facade with optional self-repair.

    Every method resolves to a plain value and never raises for database
    failures: reads return an empty equivalent ([] / None / 0 / False),
    writes return False or None. Use execute() to see the failure message.

    Connection model:
    - Each statement acquires a pooled connection and releases it before the
      call returns (autocommit, no multi-statement transactions)
    - The pool opens on first use and is closed by shutdown(); a shut-down
      RecordDb stays closed
    - With ``auto_repair_table`` enabled, an INSERT/UPDATE failing with
      "Data too long" or "Row size too large" triggers one ALTER and one retry

    Table and column names, field lists, limit clauses and raw string
    conditions are interpolated as-is. They must not carry user input.

    Usage:
        db = RecordDb(AccessConfig.from_options({
            "autoRepairTable": True,
            "mysql": {"host": "db", "user": "app", "password": "pw", "database": "shop"},
        }))

        user_id = await db.save("users", {"name": "Ada", "email": "ada@example.com"})
        user = await db.first("users", {"id": user_id})
        await db.update("users", {"name": "Ada L."}, {"id": user_id})
        total = await db.amount("users", "created_at > '2024-01-01'")

        await db.shutdown()
    """

    def __init__(self, config: AccessConfig | None = None, adapter: DbAdapter | None = None):
        """Initialize record access.

        Args:
            config: AccessConfig instance. If None, creates default.
            adapter: Pool adapter. If None, a MysqlAdapter is built from
                ``config.mysql``.
        """
        self.config = config or AccessConfig()
        self.adapter: DbAdapter = adapter or MysqlAdapter(self.config.mysql)
        self.executor = Executor(
            self.adapter,
            auto_repair=self.config.auto_repair_table,
            database=self.config.mysql.database,
            widen_threshold=self.config.widen_threshold,
        )

    @classmethod
    def from_options(
        cls, options: Mapping[str, Any] | None = None, adapter: DbAdapter | None = None
    ) -> RecordDb:
        """Create a RecordDb from a plain options mapping merged over defaults."""
        return cls(AccessConfig.from_options(options), adapter=adapter)

    @property
    def database(self) -> str:
        return self.config.mysql.database

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def shutdown(self) -> None:
        """Close connection pool (application shutdown)."""
        await self.adapter.shutdown()

    async def __aenter__(self) -> RecordDb:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.shutdown()

    # -------------------------------------------------------------------------
    # Raw execution
    # -------------------------------------------------------------------------

    async def execute(
        self, sql: str, params: Sequence[Any] | None = None
    ) -> ExecutionResult:
        """Execute a statement with ``?`` placeholders.

        Returns:
            ExecutionResult with rows or WriteInfo on success, message on failure.
        """
        return await self.executor.execute(sql, params)

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    async def has(self, table: str, condition: Condition) -> bool:
        """True if at least one row of ``table`` matches ``condition``."""
        sql, params = build_select(table, condition, limit="0,1")
        return await self.has_by_sql(sql, params)

    async def has_by_sql(self, sql: str, params: Sequence[Any] | None = None) -> bool:
        result = await self.execute(sql, params)
        return bool(result.rows)

    async def save(self, table: str, entity: Mapping[str, Any]) -> int | None:
        """Insert ``entity`` into ``table``.

        Returns:
            Generated auto-increment id (0 for tables without one), or None
            on failure.
        """
        sql, params = build_insert(table, entity)
        return await self.save_by_sql(sql, params)

    async def save_by_sql(self, sql: str, params: Sequence[Any] | None = None) -> int | None:
        result = await self.execute(sql, params)
        info = result.write_info
        return info.insert_id if info is not None else None

    async def update(
        self, table: str, entity: Mapping[str, Any], condition: Condition
    ) -> bool:
        """Update rows of ``table`` matching ``condition`` with ``entity`` values."""
        sql, params = build_update(table, entity, condition)
        return await self.update_by_sql(sql, params)

    async def update_by_sql(self, sql: str, params: Sequence[Any] | None = None) -> bool:
        result = await self.execute(sql, params)
        return result.ok

    async def save_or_update(
        self, table: str, entity: Mapping[str, Any], condition: Mapping[str, Any]
    ) -> bool | int | None:
        """Update the row matching ``condition`` if one exists, otherwise insert.

        The existence check and the write are two separate statements, so two
        concurrent callers may both insert.

        Args:
            table: Table name.
            entity: Column values to write.
            condition: Non-empty equality mapping identifying the row.

        Returns:
            update() result if the row existed, save() result otherwise, or
            False without touching the database when ``condition`` is not a
            non-empty mapping.
        """
        if not isinstance(condition, Mapping) or not condition:
            logger.debug("save_or_update on %s skipped: condition must be a non-empty mapping", table)
            return False
        if await self.has(table, condition):
            return await self.update(table, entity, condition)
        return await self.save(table, entity)

    async def all(
        self,
        table: str,
        condition: Condition = None,
        fields: str | Sequence[str] = "*",
        limit: str | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch all matching rows ([] on failure)."""
        sql, params = build_select(table, condition, fields, limit)
        return await self.all_by_sql(sql, params)

    async def all_by_sql(
        self, sql: str, params: Sequence[Any] | None = None
    ) -> list[dict[str, Any]]:
        result = await self.execute(sql, params)
        return result.rows

    async def first(
        self,
        table: str,
        condition: Condition = None,
        fields: str | Sequence[str] = "*",
    ) -> dict[str, Any] | None:
        """Fetch the first matching row, or None."""
        sql, params = build_select(table, condition, fields, "0,1")
        return await self.first_by_sql(sql, params)

    async def first_by_sql(
        self, sql: str, params: Sequence[Any] | None = None
    ) -> dict[str, Any] | None:
        """Fetch the first row of ``sql``, adding ``limit 0,1`` when no numeric limit is present."""
        result = await self.execute(ensure_limit(sql), params)
        rows = result.rows
        return rows[0] if rows else None

    async def amount(self, table: str, condition: Condition = None) -> int:
        """Count matching rows (0 on failure)."""
        sql, params = build_count(table, condition)
        return await self.amount_by_sql(sql, params)

    async def amount_by_sql(self, sql: str, params: Sequence[Any] | None = None) -> int:
        """Run a query selecting ``... as amount`` and return that value (0 on failure)."""
        result = await self.execute(sql, params)
        rows = result.rows
        if not rows:
            return 0
        return int(rows[0].get("amount") or 0)

    # -------------------------------------------------------------------------
    # Schema introspection
    # -------------------------------------------------------------------------

    async def _introspect(
        self, sql: str, params: Sequence[Any] | None = None
    ) -> ExecutionResult:
        return await self.executor.execute(sql, params, repair=False)

    async def rename_table(self, original_name: str, new_name: str) -> bool:
        result = await self._introspect(f"rename table {original_name} to {new_name}")
        return result.ok

    async def has_table(self, table: str) -> bool:
        """True if ``table`` is a base table of the configured database."""
        result = await self._introspect(
            "select count(*) as amount from information_schema.tables "
            "where table_schema = ? and table_type = 'BASE TABLE' and table_name = ?",
            [self.database, table],
        )
        return _amount(result) > 0

    async def has_field(self, table: str, field: str) -> bool:
        """True if ``table`` has a column named ``field``."""
        result = await self._introspect(
            "select count(*) as amount from information_schema.columns "
            "where table_schema = ? and table_name = ? and column_name = ?",
            [self.database, table, field],
        )
        return _amount(result) > 0

    async def get_table_comment(self, table: str) -> str | None:
        """Return the table comment, or None if the table does not exist."""
        result = await self._introspect(
            "select i.table_comment as comment from information_schema.tables i "
            "where i.table_schema = ? and i.table_name = ? limit 0,1",
            [self.database, table],
        )
        rows = result.rows
        return rows[0]["comment"] if rows else None

    async def field_comment_to_name_map(self, table: str) -> dict[str, str]:
        """Map column comment to column name for every commented column."""
        result = await self._introspect(f"show full columns from {table}")
        return {
            row["Comment"]: row["Field"]
            for row in result.rows
            if row.get("Comment") and row.get("Field")
        }

    async def field_name_to_comment_map(self, table: str) -> dict[str, str]:
        """Map column name to column comment for every commented column."""
        comment_to_name = await self.field_comment_to_name_map(table)
        return {name: comment for comment, name in comment_to_name.items()}


def _amount(result: ExecutionResult) -> int:
    rows = result.rows
    return int(rows[0].get("amount") or 0) if rows else 0


__all__ = ["RecordDb"]
