# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Statement execution with guaranteed connection release and repair-then-retry.

Each call walks a small state machine:

    IDLE → ACQUIRING ─┬─ no connection ────────────────────────────────→ DONE
                      └─ RUNNING ─┬─ ok / unrecognized / repair off ───→ DONE
                                  └─ recognized → REPAIRING ─┬─ failed → DONE
                                                             └─ repaired → RETRYING
    RETRYING → ACQUIRING → RUNNING → DONE

A retried statement goes straight from RUNNING to DONE, so it is retried at
most once even if the retry fails with another repairable error. RUNNING
releases the connection acquired by ACQUIRING on every exit path.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..errors import ConnectionAcquisitionError, QueryError
from .classifier import Classification, classify
from .repair import DEFAULT_WIDEN_THRESHOLD, SchemaRepair
from .results import ExecutionResult, FailureKind

if TYPE_CHECKING:
    from .adapters import DbAdapter

logger = logging.getLogger(__name__)


class ExecState(str, Enum):
    IDLE = "idle"
    ACQUIRING = "acquiring"
    RUNNING = "running"
    REPAIRING = "repairing"
    RETRYING = "retrying"
    DONE = "done"


class Executor:
    """Runs statements on pooled connections.

    Args:
        adapter: Pool adapter providing acquire/query/release.
        auto_repair: Global switch for classification and schema repair.
        database: Schema name used by the repair engine's metadata lookups.
        widen_threshold: Size at which varchar/char columns become text.
    """

    def __init__(
        self,
        adapter: DbAdapter,
        auto_repair: bool = False,
        database: str = "",
        widen_threshold: int = DEFAULT_WIDEN_THRESHOLD,
    ):
        self.adapter = adapter
        self.auto_repair = auto_repair
        self.repairer = SchemaRepair(self, database, threshold=widen_threshold)

    async def execute(
        self,
        sql: str,
        params: Sequence[Any] | None = None,
        repair: bool = True,
    ) -> ExecutionResult:
        """Execute one statement, repairing the schema and retrying once if possible.

        Args:
            sql: Statement with ``?`` placeholders.
            params: Values bound to the placeholders, in order.
            repair: Set False to skip classification for this call even when
                auto repair is enabled.

        Returns:
            ExecutionResult of the last attempt, or of the original attempt
            when the repair did not succeed.
        """
        params = list(params or [])
        can_repair = repair and self.auto_repair
        state = ExecState.IDLE
        result = ExecutionResult.failure("not executed", FailureKind.QUERY, sql, params)
        classification: Classification | None = None
        conn: Any = None
        retried = False

        while state is not ExecState.DONE:
            if state is ExecState.IDLE:
                state = ExecState.ACQUIRING

            elif state is ExecState.ACQUIRING:
                try:
                    conn = await self.adapter.acquire()
                except ConnectionAcquisitionError as e:
                    logger.warning("Could not acquire connection: %s", e)
                    result = ExecutionResult.failure(str(e), FailureKind.ACQUIRE, sql, params)
                    state = ExecState.DONE
                else:
                    state = ExecState.RUNNING

            elif state is ExecState.RUNNING:
                result = await self._run(conn, sql, params)
                conn = None
                classification = None
                if can_repair and not retried:
                    classification = self._classify(result)
                state = ExecState.REPAIRING if classification else ExecState.DONE

            elif state is ExecState.REPAIRING:
                if classification is None:
                    state = ExecState.DONE
                else:
                    logger.warning(
                        "Attempting %s repair on %s after: %s",
                        classification.kind.value,
                        classification.table,
                        result.message,
                    )
                    repaired = await self.repairer.repair(classification)
                    state = ExecState.RETRYING if repaired else ExecState.DONE

            elif state is ExecState.RETRYING:
                logger.debug("Retrying after repair: %s", sql)
                retried = True
                state = ExecState.ACQUIRING

        return result

    def _classify(self, result: ExecutionResult) -> Classification | None:
        if result.ok or result.kind is not FailureKind.QUERY:
            return None
        return classify(result.message, result.sql)

    async def _run(self, conn: Any, sql: str, params: list[Any]) -> ExecutionResult:
        try:
            logger.debug("Executing: %s %r", sql, params)
            data = await self.adapter.query(conn, sql, params)
        except QueryError as e:
            logger.warning("Statement failed: %s [%s]", e.message, sql)
            return ExecutionResult.failure(e.message, FailureKind.QUERY, sql, params)
        finally:
            await self.adapter.release(conn)
        return ExecutionResult.success(data)


__all__ = ["ExecState", "Executor"]
