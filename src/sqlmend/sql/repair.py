# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Schema repair: widen columns or move row data off-page after write failures.

Two strategies, selected by the classification of the failed statement:

    DATA_TOO_LONG  → widen_column(): look up the column definition in
                     information_schema and ALTER it one step wider.
    ROW_TOO_LARGE  → reduce_row_size(): convert the widest varchar column of
                     the table to text.

Widening decision table (plan_widening):

    varchar/char, size >= threshold  → text
    text                             → mediumtext
    mediumtext                       → longtext
    anything else with a known size  → varchar(size * 2)

The column comment is carried over into the ALTER, since MODIFY would drop it.
It is escaped the way the server reads string literals (quotes and backslashes).
Every statement issued here runs with repair disabled, so a failing ALTER
simply reports False.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pymysql.converters import escape_string

from .classifier import Classification, FailureSignature

if TYPE_CHECKING:
    from .executor import Executor

logger = logging.getLogger(__name__)

DEFAULT_WIDEN_THRESHOLD = 1024

_COLUMN_INFO_SQL = (
    "select data_type as field_type, character_maximum_length as field_size, "
    "column_comment as field_comment from information_schema.columns "
    "where table_schema = ? and table_name = ? and column_name = ?"
)

_WIDEST_VARCHAR_SQL = (
    "select column_name as field_name, column_comment as field_comment "
    "from information_schema.columns "
    "where table_schema = ? and table_name = ? and data_type = 'varchar' "
    "order by character_maximum_length desc limit 0, 1"
)


@dataclass(frozen=True)
class ColumnWideningPlan:
    table: str
    column: str
    field_type: str
    field_size: int | None
    comment: str
    new_type: str

    def alter_sql(self) -> str:
        return _alter_sql(self.table, self.column, self.new_type, self.comment)


def plan_widening(
    table: str,
    column: str,
    field_type: str,
    field_size: int | None,
    comment: str = "",
    threshold: int = DEFAULT_WIDEN_THRESHOLD,
) -> ColumnWideningPlan | None:
    """Decide the next wider type for a column.

    Returns:
        The plan, or None when the column cannot be widened (longtext, or a
        type without a known size).
    """
    field_type = (field_type or "").lower()
    if field_type in ("varchar", "char") and field_size is not None and field_size >= threshold:
        new_type = "text"
    elif field_type == "text":
        new_type = "mediumtext"
    elif field_type == "mediumtext":
        new_type = "longtext"
    elif field_type == "longtext" or not field_size:
        return None
    else:
        new_type = f"varchar({int(field_size) * 2})"
    return ColumnWideningPlan(
        table=table,
        column=column,
        field_type=field_type,
        field_size=field_size,
        comment=comment or "",
        new_type=new_type,
    )


def _alter_sql(table: str, column: str, new_type: str, comment: str) -> str:
    comment = escape_string(comment or "")
    return f"alter table {table} modify {column} {new_type} comment '{comment}'"


class SchemaRepair:
    """Applies repairs for classified write failures.

    Args:
        executor: Executor used for metadata lookups and ALTER statements.
        database: Schema name that scopes information_schema lookups.
        threshold: varchar/char size at which widening switches to text.
    """

    def __init__(
        self,
        executor: Executor,
        database: str,
        threshold: int = DEFAULT_WIDEN_THRESHOLD,
    ):
        self.executor = executor
        self.database = database
        self.threshold = threshold

    async def repair(self, classification: Classification) -> bool:
        """Run the strategy matching the classification. True if the ALTER succeeded."""
        if classification.kind is FailureSignature.DATA_TOO_LONG and classification.column:
            return await self.widen_column(classification.table, classification.column)
        if classification.kind is FailureSignature.ROW_TOO_LARGE:
            return await self.reduce_row_size(classification.table)
        return False

    async def widen_column(self, table: str, column: str) -> bool:
        """Widen one column after a "Data too long" failure."""
        result = await self.executor.execute(
            _COLUMN_INFO_SQL, [self.database, table, column], repair=False
        )
        if not result.rows:
            logger.warning("No column metadata for %s.%s, cannot widen", table, column)
            return False

        info = result.rows[0]
        plan = plan_widening(
            table,
            column,
            info["field_type"],
            info["field_size"],
            info["field_comment"],
            threshold=self.threshold,
        )
        if plan is None:
            logger.warning(
                "Column %s.%s (%s) cannot be widened further", table, column, info["field_type"]
            )
            return False

        altered = await self.executor.execute(plan.alter_sql(), repair=False)
        if altered.ok:
            logger.info(
                "Widened %s.%s from %s(%s) to %s",
                table,
                column,
                plan.field_type,
                plan.field_size,
                plan.new_type,
            )
        return altered.ok

    async def reduce_row_size(self, table: str) -> bool:
        """Convert the widest varchar column of ``table`` to text."""
        result = await self.executor.execute(
            _WIDEST_VARCHAR_SQL, [self.database, table], repair=False
        )
        if not result.rows:
            logger.warning("No varchar column left on %s, cannot reduce row size", table)
            return False

        record = result.rows[0]
        column = record["field_name"]
        altered = await self.executor.execute(
            _alter_sql(table, column, "text", record["field_comment"]), repair=False
        )
        if altered.ok:
            logger.info("Converted %s.%s to text to reduce row size", table, column)
        return altered.ok


__all__ = ["ColumnWideningPlan", "SchemaRepair", "plan_widening", "DEFAULT_WIDEN_THRESHOLD"]
