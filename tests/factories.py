"""
Test data factories for Quote Sharing System tests
Provides factories for creating realistic users and quotes, plus store seeding helpers
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from faker import Faker

from auth_service import hash_password
from database.models import QuoteDB, UserDB
from database.operations import DatabaseOperations

# Initialize faker
fake = Faker()

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)
TEST_PASSWORD = "correct-horse-battery"


class UserFactory:
    """Factory for creating test user data"""

    @staticmethod
    def create_user(name: str = None, email: str = None, password: str = TEST_PASSWORD) -> Dict[str, Any]:
        return {
            'name': name or fake.name(),
            'email': email or fake.unique.email(),
            'password': password,
        }

    @staticmethod
    def create_users(count: int = 3) -> List[Dict[str, Any]]:
        return [UserFactory.create_user() for _ in range(count)]


class QuoteFactory:
    """Factory for creating test quote data"""

    @staticmethod
    def create_quote(quote_id: int, content: str = None, author: str = None,
                     created_at: datetime = None, **aggregates) -> Dict[str, Any]:
        """created_at 默认随 id 递增，便于断言排序"""
        data = {
            'id': quote_id,
            'content': content or fake.sentence(nb_words=12),
            'author': author or fake.name(),
            'created_at': created_at or BASE_TIME + timedelta(minutes=quote_id),
        }
        data.update(aggregates)
        return data

    @staticmethod
    def create_quotes(count: int = 10, start_id: int = 1, **overrides) -> List[Dict[str, Any]]:
        return [QuoteFactory.create_quote(quote_id, **overrides)
                for quote_id in range(start_id, start_id + count)]


async def seed_users(db_ops: DatabaseOperations, count: int = 1) -> List[UserDB]:
    """Insert users directly through the store"""
    users = []
    async with db_ops.transaction() as session:
        for data in UserFactory.create_users(count):
            users.append(await db_ops.create_user(
                session, data['name'], data['email'].lower(), hash_password(data['password'], 4)
            ))
    return users


async def seed_quotes(db_ops: DatabaseOperations, quotes: Optional[List[Dict[str, Any]]] = None,
                      count: int = 5) -> List[QuoteDB]:
    """Insert quotes; default is `count` factory quotes with ids 1..count"""
    if quotes is None:
        quotes = QuoteFactory.create_quotes(count)
    rows = [QuoteDB(**data) for data in quotes]
    async with db_ops.transaction() as session:
        session.add_all(rows)
    return rows
