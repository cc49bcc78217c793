# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Async SQL layer: statement builder, self-repairing executor, record API.

Components:
    RecordDb: CRUD and introspection facade (has, save, update, first, ...).
    Executor: Runs statements on pooled connections, repairs and retries once.
    SchemaRepair: Widens columns after "Data too long" / "Row size too large".
    classify: Maps a server error message to a repairable signature.
    build_*: Pure builders turning condition/entity maps into Statements.
    DbAdapter, MysqlAdapter: Pool adapters (acquire / query / release).

Pipeline:
    RecordDb.save() → build_insert() → Executor.execute()
        → failure + auto repair → classify() → SchemaRepair.repair()
        → Executor retries the original statement once

Example:
    db = RecordDb(config_from_env())
    if not await db.has("users", {"email": "ada@example.com"}):
        await db.save("users", {"email": "ada@example.com", "name": "Ada"})
    await db.shutdown()
"""

from .adapters import DbAdapter, MysqlAdapter
from .classifier import Classification, ErrorSignature, FailureSignature, classify
from .executor import ExecState, Executor
from .recorddb import RecordDb
from .repair import ColumnWideningPlan, SchemaRepair, plan_widening
from .results import ExecutionResult, FailureKind, Statement, WriteInfo
from .statements import (
    build_count,
    build_insert,
    build_select,
    build_update,
    build_where,
    ensure_limit,
)

__all__ = [
    # Main classes
    "RecordDb",
    "Executor",
    "ExecState",
    "SchemaRepair",
    # Results
    "ExecutionResult",
    "FailureKind",
    "Statement",
    "WriteInfo",
    # Classification and repair planning
    "Classification",
    "ErrorSignature",
    "FailureSignature",
    "ColumnWideningPlan",
    "classify",
    "plan_widening",
    # Statement builders
    "build_where",
    "build_insert",
    "build_update",
    "build_select",
    "build_count",
    "ensure_limit",
    # Adapters
    "DbAdapter",
    "MysqlAdapter",
]
