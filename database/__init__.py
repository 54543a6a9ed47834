"""
Database module for the quote sharing system.
Provides async SQLAlchemy models, connection management and store operations.
"""

from .connection import DatabaseManager, session_scope
from .operations import DatabaseOperations
from .models import Base, UserDB, QuoteDB, QuoteLikeDB, QuoteRatingDB

__all__ = [
    'DatabaseManager', 'session_scope', 'DatabaseOperations',
    'Base', 'UserDB', 'QuoteDB', 'QuoteLikeDB', 'QuoteRatingDB',
]
