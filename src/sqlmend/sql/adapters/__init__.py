# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Database adapters with pooled, per-statement connections.

Components:
    DbAdapter: Abstract base class defining the adapter interface.
    MysqlAdapter: MySQL adapter using aiomysql with connection pooling.

Connection Model:
    - acquire(): Returns a connection from the pool (opens the pool lazily)
    - query(conn, sql, params): Runs one statement, returns rows or WriteInfo
    - release(conn): Returns the connection to the pool
    - shutdown(): Closes the pool for good

Example:
    Using the adapter directly::

        adapter = MysqlAdapter(MysqlOptions(host="db", user="app", database="shop"))
        conn = await adapter.acquire()
        try:
            rows = await adapter.query(conn, "select * from users where id=?", [1])
        finally:
            await adapter.release(conn)
        await adapter.shutdown()
"""

from .base import DbAdapter
from .mysql import MysqlAdapter

__all__ = ["DbAdapter", "MysqlAdapter"]
