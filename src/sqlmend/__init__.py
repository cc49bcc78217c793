# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""sqlmend: async MySQL record access with self-healing column widening."""

from .config import AccessConfig, MysqlOptions, config_from_env
from .sql import ExecutionResult, RecordDb

__version__ = "0.1.0"

__all__ = ["RecordDb", "ExecutionResult", "AccessConfig", "MysqlOptions", "config_from_env"]
