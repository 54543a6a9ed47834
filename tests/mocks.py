"""
Mock objects and utilities for Quote Sharing System tests
"""

import random
from typing import Any, Dict, List
from unittest.mock import AsyncMock, Mock

from quote_engine import QuoteEngine
from auth_service import AuthService


class FixedRandom(random.Random):
    """random() 返回固定值，randrange 仍按种子产生"""

    def __init__(self, value: float, seed: int = 42):
        super().__init__(seed)
        self.value = value
        self.random_calls = 0

    def random(self):
        self.random_calls += 1
        return self.value

    # 保证 randrange 走 getrandbits 而不是被固定的 random()
    def getrandbits(self, k):
        return super().getrandbits(k)


def make_quote(quote_id: int = 1, **overrides) -> Dict[str, Any]:
    """Engine-shaped quote dict"""
    data = {
        'id': quote_id,
        'content': f'Quote number {quote_id}',
        'author': 'Test Author',
        'total_likes': 0,
        'total_ratings': 0,
        'average_rating': 0.0,
        'created_at': '2024-01-01T00:00:00+00:00',
        'liked': False,
        'user_rating': 0,
    }
    data.update(overrides)
    return data


def make_page(quotes: List[Dict[str, Any]], page: int = 1, total_count: int = None) -> Dict[str, Any]:
    total_count = len(quotes) if total_count is None else total_count
    return {
        'quotes': quotes,
        'pagination': {
            'current_page': page,
            'total_pages': -(-total_count // 10),
            'total_count': total_count,
        }
    }


def create_mock_engine() -> Mock:
    mock = Mock(spec=QuoteEngine)
    mock.get_random_quote = AsyncMock(return_value=make_quote(liked=None, user_rating=None))
    mock.like_quote = AsyncMock()
    mock.rate_quote = AsyncMock()
    mock.search_quotes = AsyncMock(return_value=make_page([]))
    mock.get_liked_quotes = AsyncMock(return_value=make_page([]))
    return mock


def create_mock_auth_service(auth_config) -> AuthService:
    """真实的令牌逻辑，数据库访问被替换"""
    service = AuthService(Mock(), auth_config)
    service.register = AsyncMock()
    service.login = AsyncMock()
    return service
