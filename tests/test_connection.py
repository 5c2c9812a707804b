"""Tests for database URL handling."""

import pytest

from transcribe_usage.db.connection import get_database_url


class TestGetDatabaseUrl:
    """Tests for get_database_url."""

    def test_missing_url(self, monkeypatch):
        """An unset DATABASE_URL is an error."""
        monkeypatch.delenv("DATABASE_URL", raising=False)
        with pytest.raises(ValueError, match="DATABASE_URL"):
            get_database_url()

    def test_pyodbc_upgraded_to_aioodbc(self, monkeypatch):
        """Sync SQL Server URLs use the async driver."""
        monkeypatch.setenv("DATABASE_URL", "mssql+pyodbc://user:pw@host/db")
        assert get_database_url() == "mssql+aioodbc://user:pw@host/db"

    def test_sqlite_upgraded_to_aiosqlite(self, monkeypatch):
        """Plain SQLite URLs use aiosqlite."""
        monkeypatch.setenv("DATABASE_URL", "sqlite:///usage.db")
        assert get_database_url() == "sqlite+aiosqlite:///usage.db"

    def test_async_url_unchanged(self, monkeypatch):
        """URLs already naming an async driver pass through."""
        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
        assert get_database_url() == "sqlite+aiosqlite:///:memory:"


class TestDatabaseConnection:
    """Tests for DatabaseConnection against SQLite."""

    @pytest.mark.asyncio
    async def test_connect_and_close(self, db):
        """The connectivity check succeeds and close disposes the engine."""
        await db.connect()
        await db.close()
        assert db._engine is None
