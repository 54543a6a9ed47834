"""
Unit tests for the command-line entry point
"""

import pytest

from main import QuoteSharingSystem

MEMORY_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.mark.unit
class TestQuoteSharingSystem:

    async def test_init_database_and_status(self, capsys):
        system = QuoteSharingSystem(MEMORY_DATABASE_URL)
        try:
            await system.init_database()
            await system.show_system_status()
        finally:
            await system.shutdown()

        output = capsys.readouterr().out
        assert "Database schema is ready." in output
        assert "Connected: True" in output
        assert "Quotes: 0" in output

    async def test_init_database_reset(self):
        system = QuoteSharingSystem(MEMORY_DATABASE_URL)
        try:
            await system.init_database()
            await system.init_database(reset=True)
            stats = await system.db_ops.get_database_statistics()
        finally:
            await system.shutdown()

        assert stats['quotes'] == 0
