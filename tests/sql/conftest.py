# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Scripted adapter and MySQL fixtures for SQL layer tests.

Unit tests run against ScriptedAdapter, an in-memory DbAdapter that replays
queued responses and counts acquire/release pairs.

Live tests are marked ``mysql`` and connect to the server described by the
SQLMEND_TEST_MYSQL_* variables (default: test_user/test_password@127.0.0.1:3306/test_db).
Start one with: docker run -e MYSQL_ROOT_PASSWORD=root -e MYSQL_DATABASE=test_db
-e MYSQL_USER=test_user -e MYSQL_PASSWORD=test_password -p 3306:3306 mysql:8
"""

from __future__ import annotations

import contextlib
import os
import socket
import uuid
from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest
import pytest_asyncio

from sqlmend.config import AccessConfig, MysqlOptions
from sqlmend.errors import ConnectionAcquisitionError
from sqlmend.sql import RecordDb
from sqlmend.sql.adapters import DbAdapter

MYSQL_HOST = os.environ.get("SQLMEND_TEST_MYSQL_HOST", "127.0.0.1")
MYSQL_PORT = int(os.environ.get("SQLMEND_TEST_MYSQL_PORT", "3306"))


class ScriptedAdapter(DbAdapter):
    """DbAdapter replaying queued responses.

    Each queued response is returned by the next query() call: a list of row
    dicts, a WriteInfo, an exception instance (raised), or a callable
    ``(sql, params) -> response``. With the queue empty, query() returns [].
    """

    def __init__(self, responses: list[Any] | None = None):
        self.responses: list[Any] = list(responses or [])
        self.queries: list[tuple[str, list[Any]]] = []
        self.acquired = 0
        self.released = 0
        self.fail_acquire = False
        self.is_shut_down = False

    def queue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    @property
    def sqls(self) -> list[str]:
        return [sql for sql, _ in self.queries]

    async def acquire(self) -> object:
        if self.fail_acquire or self.is_shut_down:
            raise ConnectionAcquisitionError("pool unavailable")
        self.acquired += 1
        return object()

    async def release(self, conn: Any) -> None:
        self.released += 1

    async def shutdown(self) -> None:
        self.is_shut_down = True

    async def query(self, conn: Any, sql: str, params: Any = None) -> Any:
        self.queries.append((sql, list(params or [])))
        response = self.responses.pop(0) if self.responses else []
        if callable(response):
            response = response(sql, params)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def adapter() -> ScriptedAdapter:
    return ScriptedAdapter()


@pytest.fixture
def make_db(adapter: ScriptedAdapter) -> Callable[..., RecordDb]:
    """Factory for RecordDb instances bound to the scripted adapter."""

    def _make(auto_repair: bool = False, database: str = "shop", threshold: int = 1024) -> RecordDb:
        config = AccessConfig(
            auto_repair_table=auto_repair,
            widen_threshold=threshold,
            mysql=MysqlOptions(database=database),
        )
        return RecordDb(config, adapter=adapter)

    return _make


def pytest_configure(config):
    """Register mysql marker."""
    config.addinivalue_line("markers", "mysql: marks tests requiring a MySQL server")


def _is_mysql_available() -> bool:
    """Check if MySQL is listening on the configured port."""
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(1)
        result = sock.connect_ex((MYSQL_HOST, MYSQL_PORT))
        sock.close()
        return result == 0
    except OSError:
        return False


@pytest.fixture(autouse=True)
def skip_if_mysql_unavailable(request):
    """Auto-skip mysql-marked tests if MySQL is not available."""
    if request.node.get_closest_marker("mysql"):
        if not _is_mysql_available():
            pytest.skip(f"MySQL not available at {MYSQL_HOST}:{MYSQL_PORT}")


@pytest.fixture(scope="session")
def mysql_options() -> MysqlOptions:
    return MysqlOptions(
        host=MYSQL_HOST,
        port=MYSQL_PORT,
        user=os.environ.get("SQLMEND_TEST_MYSQL_USER", "test_user"),
        password=os.environ.get("SQLMEND_TEST_MYSQL_PASSWORD", "test_password"),
        database=os.environ.get("SQLMEND_TEST_MYSQL_DATABASE", "test_db"),
        pool_size=5,
    )


@pytest_asyncio.fixture
async def mysql_db(mysql_options: MysqlOptions) -> AsyncGenerator[RecordDb, None]:
    """RecordDb with auto repair against a live server, pool closed afterwards."""
    db = RecordDb(AccessConfig(auto_repair_table=True, mysql=mysql_options))
    yield db
    await db.shutdown()


@pytest_asyncio.fixture
async def mysql_table(mysql_db: RecordDb) -> AsyncGenerator[str, None]:
    """Per-test InnoDB table with a short commented varchar column."""
    table = f"t_{uuid.uuid4().hex[:12]}"
    result = await mysql_db.execute(
        f"create table {table} ("
        "id int auto_increment primary key, "
        "name varchar(8) comment 'display name', "
        "score int not null default 0"
        ") engine=InnoDB comment='scratch table'"
    )
    assert result.ok, result.message
    yield table
    with contextlib.suppress(Exception):
        await mysql_db.execute(f"drop table if exists {table}")
