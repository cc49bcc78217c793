# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""MySQL async adapter using aiomysql with connection pooling.

Uses connection-per-statement model: acquire() gets from pool,
release() returns to pool. Connections run in autocommit mode.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import TYPE_CHECKING, Any

import aiomysql
import pymysql
from pymysql.constants import CLIENT, FIELD_TYPE
from pymysql.converters import decoders

from ...errors import ConnectionAcquisitionError, QueryError
from ..results import WriteInfo
from .base import DbAdapter

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ...config import MysqlOptions

logger = logging.getLogger(__name__)


class MysqlAdapter(DbAdapter):
    """MySQL async adapter with connection pooling.

    Uses ``?`` placeholders converted to ``%s``. Every pooled connection is
    switched to the configured session time zone (UTC by default) when it is
    opened, and DATE/DATETIME values listed in ``date_strings`` are returned
    as strings.

    Pool is initialized lazily on first acquire() and is never reopened after
    shutdown().
    """

    def __init__(self, options: MysqlOptions, connect_timeout: float = 10.0):
        self.options = options
        self.connect_timeout = connect_timeout
        self._pool: aiomysql.Pool | None = None
        self._closed = False
        self._open_lock = asyncio.Lock()

    def _convert_placeholders(self, sql: str) -> str:
        """Convert ``?`` placeholders to ``%s``, doubling literal percent signs.

        A ``?`` inside a quoted string or a backquoted identifier is text, not
        a placeholder, and is left alone.
        """
        return _to_format_style(sql)[0]

    def _decoders(self) -> dict[int, Any]:
        conv = dict(decoders)
        for type_name in self.options.date_strings:
            field_type = getattr(FIELD_TYPE, type_name, None)
            if field_type is not None:
                conv[field_type] = str
        return conv

    async def _ensure_pool(self) -> aiomysql.Pool:
        """Open the connection pool if not already open."""
        if self._closed:
            raise ConnectionAcquisitionError("Connection pool has been shut down")
        if self._pool is not None:
            return self._pool

        async with self._open_lock:
            if self._pool is not None:
                return self._pool
            opts = self.options
            client_flag = CLIENT.MULTI_STATEMENTS if opts.multiple_statements else 0
            try:
                self._pool = await aiomysql.create_pool(
                    minsize=1,
                    maxsize=opts.pool_size,
                    host=opts.host,
                    port=opts.port,
                    user=opts.user,
                    password=opts.password,
                    db=opts.database or None,
                    charset=opts.charset,
                    autocommit=True,
                    conv=self._decoders(),
                    client_flag=client_flag,
                    init_command=f"SET time_zone='{opts.time_zone_offset}'",
                    connect_timeout=self.connect_timeout,
                )
            except (pymysql.err.MySQLError, OSError, asyncio.TimeoutError) as e:
                raise ConnectionAcquisitionError(f"MySQL connection failed: {e}") from e
            logger.info(
                "Opened MySQL pool to %s:%s/%s (max %d connections)",
                opts.host,
                opts.port,
                opts.database,
                opts.pool_size,
            )
            return self._pool

    async def acquire(self) -> aiomysql.Connection:
        """Acquire connection from pool."""
        pool = await self._ensure_pool()
        try:
            return await pool.acquire()
        except (pymysql.err.MySQLError, OSError, asyncio.TimeoutError) as e:
            raise ConnectionAcquisitionError(f"MySQL connection failed: {e}") from e

    async def release(self, conn: aiomysql.Connection) -> None:
        """Return connection to pool."""
        if self._pool is not None:
            await self._pool.release(conn)

    async def shutdown(self) -> None:
        """Close connection pool (application shutdown)."""
        self._closed = True
        if self._pool is not None:
            self._pool.close()
            await self._pool.wait_closed()
            self._pool = None
            logger.info("Closed MySQL pool")

    async def query(
        self,
        conn: aiomysql.Connection,
        sql: str,
        params: Sequence[Any] | None = None,
    ) -> list[dict[str, Any]] | WriteInfo:
        """Execute a statement, return rows as dicts or a WriteInfo."""
        args = None
        if params:
            sql, expected = _to_format_style(sql)
            if expected != len(params):
                raise QueryError(
                    f"Statement has {expected} placeholders but {len(params)} "
                    "parameters were bound"
                )
            args = tuple(params)
        try:
            async with conn.cursor(aiomysql.DictCursor) as cur:
                await cur.execute(sql, args)
                if cur.description is None:
                    return WriteInfo(insert_id=cur.lastrowid, affected_rows=cur.rowcount)
                return list(await cur.fetchall())
        except pymysql.err.MySQLError as e:
            raise _query_error(e) from e


_TOKEN_RE = re.compile(
    r"'(?:[^'\\]|\\.|'')*'"
    r'|"(?:[^"\\]|\\.|"")*"'
    r"|`(?:[^`]|``)*`"
    r"|[?%]",
    re.DOTALL,
)


def _to_format_style(sql: str) -> tuple[str, int]:
    """Rewrite ``?`` placeholders outside quoted text as ``%s``.

    Returns the rewritten statement and the number of placeholders found.
    Percent signs are doubled everywhere, quoted text included, because
    pyformat substitution runs over the whole string.
    """
    count = 0

    def replace(match: re.Match[str]) -> str:
        nonlocal count
        token = match.group(0)
        if token == "?":
            count += 1
            return "%s"
        return token.replace("%", "%%")

    return _TOKEN_RE.sub(replace, sql), count


def _query_error(exc: pymysql.err.MySQLError) -> QueryError:
    """Wrap a driver error, keeping the bare server message for classification."""
    if len(exc.args) >= 2 and isinstance(exc.args[0], int):
        return QueryError(str(exc.args[1]), code=exc.args[0])
    return QueryError(str(exc))
