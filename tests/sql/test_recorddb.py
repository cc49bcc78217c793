# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Tests for sql.recorddb module - RecordDb record access API."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from sqlmend.config import AccessConfig
from sqlmend.errors import QueryError
from sqlmend.sql import RecordDb
from sqlmend.sql.adapters import MysqlAdapter
from sqlmend.sql.results import WriteInfo

FAILURE = QueryError("Table 'shop.users' doesn't exist", code=1146)


class TestRecordDbInit:
    """Tests for RecordDb construction and lifecycle."""

    def test_default_adapter_is_mysql(self):
        """Without an adapter, a MysqlAdapter is built from config.mysql."""
        db = RecordDb()
        assert isinstance(db.adapter, MysqlAdapter)
        assert db.adapter.options is db.config.mysql

    def test_config_drives_executor(self, adapter):
        db = RecordDb(AccessConfig(auto_repair_table=True, widen_threshold=64), adapter=adapter)
        assert db.executor.auto_repair is True
        assert db.executor.repairer.threshold == 64

    def test_from_options(self, adapter):
        db = RecordDb.from_options(
            {"autoRepairTable": True, "mysql": {"database": "shop", "connectionLimit": 5}},
            adapter=adapter,
        )
        assert db.config.auto_repair_table is True
        assert db.database == "shop"
        assert db.config.mysql.pool_size == 5
        assert db.executor.repairer.database == "shop"

    async def test_shutdown_closes_adapter(self, adapter, make_db):
        db = make_db()
        await db.shutdown()
        assert adapter.is_shut_down is True

    async def test_calls_after_shutdown_fail_softly(self, adapter, make_db):
        """A shut-down RecordDb is not reopened; reads return empty values."""
        db = make_db()
        await db.shutdown()
        assert await db.first("users", {"id": 1}) is None
        result = await db.execute("select 1")
        assert result.ok is False

    async def test_async_context_manager(self, adapter, make_db):
        async with make_db() as db:
            await db.has("users", {"id": 1})
        assert adapter.is_shut_down is True


class TestExecute:
    """Tests for RecordDb.execute."""

    async def test_success(self, adapter, make_db):
        adapter.queue([{"one": 1}])
        result = await make_db().execute("select 1 as one")
        assert result.ok is True
        assert result.rows == [{"one": 1}]

    async def test_failure_carries_message(self, adapter, make_db):
        adapter.queue(FAILURE)
        result = await make_db().execute("select * from users")
        assert result.ok is False
        assert result.message == "Table 'shop.users' doesn't exist"


class TestHas:
    """Tests for has / has_by_sql."""

    async def test_has_true_when_rows(self, adapter, make_db):
        adapter.queue([{"id": 1}])
        assert await make_db().has("users", {"email": "ada@example.com"}) is True
        assert adapter.queries == [
            ("select * from users where email=? limit 0,1", ["ada@example.com"])
        ]

    async def test_has_false_when_empty(self, adapter, make_db):
        adapter.queue([])
        assert await make_db().has("users", {"id": 9}) is False

    async def test_has_false_on_failure(self, adapter, make_db):
        adapter.queue(FAILURE)
        assert await make_db().has("users", {"id": 9}) is False

    async def test_has_by_sql(self, adapter, make_db):
        adapter.queue([{"id": 1}])
        assert await make_db().has_by_sql("select id from users where id=?", [1]) is True


class TestSave:
    """Tests for save / save_by_sql."""

    async def test_save_returns_insert_id(self, adapter, make_db):
        adapter.queue(WriteInfo(insert_id=42, affected_rows=1))
        assert await make_db().save("users", {"name": "Ada"}) == 42
        assert adapter.queries == [("insert into users (name) value (?)", ["Ada"])]

    async def test_save_failure_returns_none(self, adapter, make_db):
        adapter.queue(FAILURE)
        assert await make_db().save("users", {"name": "Ada"}) is None

    async def test_save_by_sql(self, adapter, make_db):
        adapter.queue(WriteInfo(insert_id=5, affected_rows=1))
        assert await make_db().save_by_sql("insert into t (a) values (?)", [1]) == 5


class TestUpdate:
    """Tests for update / update_by_sql."""

    async def test_update_success(self, adapter, make_db):
        adapter.queue(WriteInfo(affected_rows=1))
        assert await make_db().update("users", {"name": "Ada"}, {"id": 1}) is True
        assert adapter.queries == [("update users set name=? where id=?", ["Ada", 1])]

    async def test_update_failure(self, adapter, make_db):
        adapter.queue(FAILURE)
        assert await make_db().update("users", {"name": "Ada"}, {"id": 1}) is False


class TestSaveOrUpdate:
    """Tests for save_or_update."""

    async def test_existing_row_is_updated(self, adapter, make_db):
        db = make_db()
        db.has = AsyncMock(return_value=True)
        db.update = AsyncMock(return_value=True)
        db.save = AsyncMock(return_value=10)

        result = await db.save_or_update("T", {"x": 1}, {"id": 5})

        assert result is True
        db.has.assert_awaited_once_with("T", {"id": 5})
        db.update.assert_awaited_once_with("T", {"x": 1}, {"id": 5})
        db.save.assert_not_awaited()

    async def test_missing_row_is_saved(self, adapter, make_db):
        db = make_db()
        db.has = AsyncMock(return_value=False)
        db.update = AsyncMock(return_value=True)
        db.save = AsyncMock(return_value=10)

        result = await db.save_or_update("T", {"x": 1}, {"id": 5})

        assert result == 10
        db.save.assert_awaited_once_with("T", {"x": 1})
        db.update.assert_not_awaited()

    async def test_statements_issued(self, adapter, make_db):
        """Existence check then a single write statement."""
        adapter.queue([{"id": 5}], WriteInfo(affected_rows=1))

        await make_db().save_or_update("T", {"x": 1}, {"id": 5})

        assert adapter.sqls == [
            "select * from T where id=? limit 0,1",
            "update T set x=? where id=?",
        ]

    @pytest.mark.parametrize("condition", [{}, "id=5", None])
    async def test_condition_must_be_non_empty_mapping(self, adapter, make_db, condition):
        assert await make_db().save_or_update("T", {"x": 1}, condition) is False
        assert adapter.queries == []


class TestAllAndFirst:
    """Tests for all / first and their *_by_sql variants."""

    async def test_all_returns_rows(self, adapter, make_db):
        adapter.queue([{"id": 1}, {"id": 2}])
        rows = await make_db().all("users", {"active": 1}, ["id"], "0,10")
        assert rows == [{"id": 1}, {"id": 2}]
        assert adapter.queries == [("select id from users where active=? limit 0,10", [1])]

    async def test_all_failure_returns_empty_list(self, adapter, make_db):
        adapter.queue(FAILURE)
        assert await make_db().all("users") == []

    async def test_first_returns_first_row(self, adapter, make_db):
        adapter.queue([{"id": 1, "name": "Ada"}])
        assert await make_db().first("users", {"id": 1}) == {"id": 1, "name": "Ada"}
        assert adapter.queries == [("select * from users where id=? limit 0,1", [1])]

    async def test_first_none_when_empty(self, adapter, make_db):
        adapter.queue([])
        assert await make_db().first("users", {"id": 1}) is None

    async def test_first_by_sql_adds_limit(self, adapter, make_db):
        adapter.queue([{"id": 3}])
        await make_db().first_by_sql("select * from users order by id desc")
        assert adapter.sqls == ["select * from users order by id desc limit 0,1"]

    async def test_first_by_sql_keeps_existing_limit(self, adapter, make_db):
        adapter.queue([{"id": 3}])
        await make_db().first_by_sql("select * from users limit 5,1")
        assert adapter.sqls == ["select * from users limit 5,1"]


class TestAmount:
    """Tests for amount / amount_by_sql."""

    async def test_amount(self, adapter, make_db):
        adapter.queue([{"amount": 12}])
        assert await make_db().amount("users", {"active": 1}) == 12
        assert adapter.queries == [
            ("select count(*) as amount from users where active=?", [1])
        ]

    async def test_amount_zero_on_failure(self, adapter, make_db):
        adapter.queue(FAILURE)
        assert await make_db().amount("users") == 0

    async def test_amount_zero_on_empty_result(self, adapter, make_db):
        adapter.queue([])
        assert await make_db().amount_by_sql("select count(*) as amount from users") == 0


class TestIntrospection:
    """Tests for schema introspection helpers."""

    async def test_has_table(self, adapter, make_db):
        adapter.queue([{"amount": 1}])
        assert await make_db().has_table("users") is True
        sql, params = adapter.queries[0]
        assert "information_schema.tables" in sql
        assert "table_type = 'BASE TABLE'" in sql
        assert params == ["shop", "users"]

    async def test_has_table_false_on_failure(self, adapter, make_db):
        adapter.queue(FAILURE)
        assert await make_db().has_table("users") is False

    async def test_has_field(self, adapter, make_db):
        adapter.queue([{"amount": 0}])
        assert await make_db().has_field("users", "nickname") is False
        assert adapter.queries[0][1] == ["shop", "users", "nickname"]

    async def test_get_table_comment(self, adapter, make_db):
        adapter.queue([{"comment": "registered users"}])
        assert await make_db().get_table_comment("users") == "registered users"

    async def test_get_table_comment_missing(self, adapter, make_db):
        adapter.queue([])
        assert await make_db().get_table_comment("ghost") is None

    async def test_rename_table(self, adapter, make_db):
        adapter.queue(WriteInfo())
        assert await make_db().rename_table("users", "members") is True
        assert adapter.sqls == ["rename table users to members"]

    async def test_field_maps(self, adapter, make_db):
        columns = [
            {"Field": "id", "Type": "int", "Comment": ""},
            {"Field": "name", "Type": "varchar(8)", "Comment": "display name"},
            {"Field": "email", "Type": "varchar(64)", "Comment": "contact"},
        ]
        adapter.queue(columns, columns)
        db = make_db()

        assert await db.field_comment_to_name_map("users") == {
            "display name": "name",
            "contact": "email",
        }
        assert await db.field_name_to_comment_map("users") == {
            "name": "display name",
            "email": "contact",
        }
        assert adapter.sqls == ["show full columns from users"] * 2

    async def test_introspection_never_repairs(self, adapter, make_db):
        db = make_db(auto_repair=True)
        db.executor.repairer.repair = AsyncMock(return_value=True)
        adapter.queue(QueryError("Data too long for column 'x'"))

        assert await db.rename_table("users", "members") is False
        db.executor.repairer.repair.assert_not_awaited()


class TestAutoRepairThroughApi:
    """End-to-end repair flow through the record API."""

    async def test_save_widens_column_and_retries(self, adapter, make_db):
        adapter.queue(
            QueryError("Data too long for column 'name' at row 1", code=1406),
            [{"field_type": "varchar", "field_size": 8, "field_comment": "display name"}],
            WriteInfo(),
            WriteInfo(insert_id=11, affected_rows=1),
        )

        user_id = await make_db(auto_repair=True).save("users", {"name": "Ada Lovelace"})

        assert user_id == 11
        assert "alter table users modify name varchar(16) comment 'display name'" in adapter.sqls
        assert adapter.acquired == adapter.released

    async def test_save_without_auto_repair_fails(self, adapter, make_db):
        adapter.queue(QueryError("Data too long for column 'name' at row 1", code=1406))
        assert await make_db(auto_repair=False).save("users", {"name": "Ada Lovelace"}) is None
        assert len(adapter.queries) == 1
