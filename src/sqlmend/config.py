# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Configuration dataclasses for sqlmend.

This module defines:
- MysqlOptions: connection and pool settings handed to the MySQL adapter
- AccessConfig: top-level settings (auto repair switch, widening threshold)
- config_from_env(): Factory to build config from SQLMEND_* env vars

Configuration via environment variables:
    SQLMEND_HOST: MySQL host (default: localhost)
    SQLMEND_USER: MySQL user
    SQLMEND_PASSWORD: MySQL password
    SQLMEND_DATABASE: Schema name (also used for information_schema lookups)
    SQLMEND_PORT: Server port (default: 3306)
    SQLMEND_POOL_SIZE: Maximum pooled connections (default: 50)
    SQLMEND_CHARSET: Connection charset (default: utf8mb4)
    SQLMEND_TIMEZONE: Session time zone (default: +00:00)
    SQLMEND_AUTO_REPAIR: Enable automatic schema repair (default: false)
    SQLMEND_WIDEN_THRESHOLD: Column size at which varchar becomes text (default: 1024)

Usage:
    # From environment (Docker/production):
    db = RecordDb(config_from_env())

    # From a plain options mapping:
    config = AccessConfig.from_options({
        "autoRepairTable": True,
        "mysql": {"host": "db", "user": "app", "database": "shop"},
    })
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any

from .errors import ConfigError

_TRUE_VALUES = ("1", "true", "yes")


@dataclass
class MysqlOptions:
    """Connection options for the MySQL pool.

    Attributes:
        host: Server host name.
        user: Login user.
        password: Login password.
        database: Default schema; information_schema lookups are scoped to it.
        port: Server port.
        pool_size: Maximum number of concurrently open connections.
        charset: Connection character set.
        timezone: Session time zone applied to every pooled connection.
        date_strings: Column types returned as strings instead of date objects.
        multiple_statements: Allow several statements in one query string.
    """

    host: str = "localhost"
    user: str = ""
    password: str = ""
    database: str = ""
    port: int = 3306
    pool_size: int = 50
    charset: str = "utf8mb4"
    timezone: str = "+00:00"
    date_strings: tuple[str, ...] = ("DATE", "DATETIME")
    multiple_statements: bool = True

    def __post_init__(self) -> None:
        self.port = int(self.port)
        self.pool_size = int(self.pool_size)
        if self.pool_size < 1:
            raise ConfigError("pool_size must be >= 1")
        self.date_strings = tuple(t.upper() for t in self.date_strings)

    @property
    def time_zone_offset(self) -> str:
        """Session time zone as a MySQL offset literal ("UTC" -> "+00:00")."""
        if self.timezone.upper() in ("UTC", "Z"):
            return "+00:00"
        return self.timezone


@dataclass
class AccessConfig:
    """Top-level configuration for RecordDb.

    Attributes:
        auto_repair_table: When True, recognized write failures trigger a
            schema repair followed by a single retry.
        widen_threshold: varchar/char columns at or above this size are
            converted to text instead of doubled.
        mysql: Connection and pool settings.
    """

    auto_repair_table: bool = False
    widen_threshold: int = 1024
    mysql: MysqlOptions = field(default_factory=MysqlOptions)

    @classmethod
    def from_options(cls, options: Mapping[str, Any] | None = None) -> AccessConfig:
        """Merge a plain options mapping over the defaults.

        Keys may be snake_case or the camelCase names used by older
        configuration files (autoRepairTable, connectionLimit, ...).

        Raises:
            ConfigError: If the mapping contains unknown keys.
        """
        options = dict(options or {})
        mysql_options = options.pop("mysql", None) or {}
        top = _normalize_keys(options, cls, _TOP_ALIASES)
        mysql = _normalize_keys(mysql_options, MysqlOptions, _MYSQL_ALIASES)
        return cls(mysql=MysqlOptions(**mysql), **top)


_TOP_ALIASES = {
    "autoRepairTable": "auto_repair_table",
    "widenThreshold": "widen_threshold",
}

_MYSQL_ALIASES = {
    "connectionLimit": "pool_size",
    "dateStrings": "date_strings",
    "multipleStatements": "multiple_statements",
}


def _normalize_keys(
    options: Mapping[str, Any], target: type, aliases: dict[str, str]
) -> dict[str, Any]:
    allowed = {f.name for f in fields(target)} - {"mysql"}
    result: dict[str, Any] = {}
    for key, value in options.items():
        name = aliases.get(key) or _snake_case(key)
        if name not in allowed:
            raise ConfigError(f"Unknown {target.__name__} option: '{key}'")
        result[name] = value
    return result


def _snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def config_from_env() -> AccessConfig:
    """Build AccessConfig from SQLMEND_* environment variables.

    Returns:
        AccessConfig instance populated from environment.
    """
    mysql = MysqlOptions(
        host=os.environ.get("SQLMEND_HOST", "localhost"),
        user=os.environ.get("SQLMEND_USER", ""),
        password=os.environ.get("SQLMEND_PASSWORD", ""),
        database=os.environ.get("SQLMEND_DATABASE", ""),
        port=int(os.environ.get("SQLMEND_PORT", "3306")),
        pool_size=int(os.environ.get("SQLMEND_POOL_SIZE", "50")),
        charset=os.environ.get("SQLMEND_CHARSET", "utf8mb4"),
        timezone=os.environ.get("SQLMEND_TIMEZONE", "+00:00"),
    )
    return AccessConfig(
        auto_repair_table=os.environ.get("SQLMEND_AUTO_REPAIR", "").lower() in _TRUE_VALUES,
        widen_threshold=int(os.environ.get("SQLMEND_WIDEN_THRESHOLD", "1024")),
        mysql=mysql,
    )


__all__ = ["AccessConfig", "MysqlOptions", "config_from_env"]
