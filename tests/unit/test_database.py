"""Unit tests for database pool and migration helpers."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from account_service import database
from account_service.errors import InternalError


class TestGetPool:
    async def test_uninitialized_pool_is_internal_error(self):
        with patch.object(database, "_pool", None):
            with pytest.raises(InternalError, match="Database unavailable") as exc_info:
                await database.get_pool()

        assert exc_info.value.status_code == 500


class TestInitDatabase:
    async def test_pool_sized_from_settings(self):
        settings = MagicMock(
            postgres_url="postgresql://u:p@db/accounts",
            db_pool_min_size=1,
            db_pool_max_size=4,
            db_command_timeout=5,
        )
        pool = MagicMock()

        with (
            patch.object(database, "_pool", None),
            patch.object(database, "get_settings", return_value=settings),
            patch.object(database.asyncpg, "create_pool", new_callable=AsyncMock, return_value=pool) as create,
        ):
            assert await database.init_database() is pool

        create.assert_awaited_once_with(
            "postgresql://u:p@db/accounts", min_size=1, max_size=4, command_timeout=5
        )


class TestRunMigrations:
    async def test_applies_pending_files_in_order(self, mock_pool, tmp_path):
        pool, conn = mock_pool
        conn.fetch.return_value = []
        (tmp_path / "002_second.sql").write_text("SELECT 2;")
        (tmp_path / "001_first.sql").write_text("SELECT 1;")

        with patch.object(database, "get_pool", new_callable=AsyncMock, return_value=pool):
            applied = await database.run_migrations(tmp_path)

        assert applied == ["001_first.sql", "002_second.sql"]
        executed = [call.args[0] for call in conn.execute.await_args_list]
        assert "CREATE TABLE IF NOT EXISTS schema_migrations" in executed[0]
        assert executed[1] == "SELECT 1;"
        assert executed[3] == "SELECT 2;"
        assert conn.execute.await_args_list[2].args[1] == "001_first.sql"
        assert conn.transactions == 2

    async def test_skips_recorded_files(self, mock_pool, tmp_path):
        pool, conn = mock_pool
        conn.fetch.return_value = [{"filename": "001_first.sql"}]
        (tmp_path / "001_first.sql").write_text("SELECT 1;")
        (tmp_path / "002_second.sql").write_text("SELECT 2;")

        with patch.object(database, "get_pool", new_callable=AsyncMock, return_value=pool):
            applied = await database.run_migrations(tmp_path)

        assert applied == ["002_second.sql"]
        executed = [call.args[0] for call in conn.execute.await_args_list]
        assert "SELECT 1;" not in executed

    async def test_missing_directory_is_skipped(self, mock_pool, tmp_path):
        pool, conn = mock_pool

        with patch.object(database, "get_pool", new_callable=AsyncMock, return_value=pool):
            assert await database.run_migrations(tmp_path / "missing") == []

        conn.execute.assert_not_awaited()

    async def test_bundled_migration_creates_users_table(self):
        sql = (database.MIGRATIONS_DIR / "001_create_users.sql").read_text()
        assert "CREATE TABLE IF NOT EXISTS users" in sql
        assert "refresh_token TEXT" in sql
