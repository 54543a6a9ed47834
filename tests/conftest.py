"""
pytest configuration and fixtures for Quote Sharing System tests
"""

import random
import sys
from pathlib import Path

import pytest

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from auth_service import AuthService
from database.connection import DatabaseManager
from database.operations import DatabaseOperations
from quote_engine import QuoteEngine
from utils.config_manager import AuthConfig

MEMORY_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def auth_config():
    """Fast bcrypt and fixed secret for tests"""
    return AuthConfig(
        jwt_secret="test-secret-key-for-quote-sharing-tests",
        jwt_algorithm="HS256",
        token_expire_minutes=30,
        bcrypt_rounds=4
    )


@pytest.fixture
async def db_manager():
    """In-memory database with all tables"""
    manager = DatabaseManager(MEMORY_DATABASE_URL)
    manager.initialize()
    await manager.create_tables()

    yield manager

    await manager.close()


@pytest.fixture
async def db_ops(db_manager):
    ops = DatabaseOperations(db_manager)
    await ops.initialize(create_tables=False)
    return ops


@pytest.fixture
def engine(db_ops):
    """Quote engine with a seeded random source"""
    return QuoteEngine(db_ops, rng=random.Random(1234))


@pytest.fixture
def auth_service(db_ops, auth_config):
    return AuthService(db_ops, auth_config)
