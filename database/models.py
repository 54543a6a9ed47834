"""
database models for the quote sharing system.
Four related tables: users, quotes, quote_likes, quote_ratings.
"""

import uuid

from sqlalchemy import (
    Column, Integer, String, Text, DateTime, Numeric, ForeignKey,
    Index, UniqueConstraint, CheckConstraint
)
from sqlalchemy.orm import declarative_base, relationship

from utils.date_utils import get_utc_time

Base = declarative_base()


def _new_user_id() -> str:
    return str(uuid.uuid4())


class UserDB(Base):
    """registered user"""
    __tablename__ = 'users'

    id = Column(String(36), primary_key=True, default=_new_user_id)
    name = Column(String(128), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=get_utc_time, nullable=False)

    likes = relationship("QuoteLikeDB", back_populates="user", cascade="all, delete-orphan")
    ratings = relationship("QuoteRatingDB", back_populates="user", cascade="all, delete-orphan")


class QuoteDB(Base):
    """quote with denormalized engagement aggregates"""
    __tablename__ = 'quotes'

    # 外部数据源的ID，不自增
    id = Column(Integer, primary_key=True, autoincrement=False)
    content = Column(Text, nullable=False)
    author = Column(String(255), nullable=False)

    # 冗余聚合字段，与 quote_likes / quote_ratings 在同一事务中维护
    total_likes = Column(Integer, nullable=False, default=0)
    total_ratings = Column(Integer, nullable=False, default=0)
    average_rating = Column(Numeric(3, 2, asdecimal=False), nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=get_utc_time, nullable=False)

    likes = relationship("QuoteLikeDB", back_populates="quote")
    ratings = relationship("QuoteRatingDB", back_populates="quote")

    __table_args__ = (
        Index('idx_quotes_rating_pool', 'average_rating', 'total_ratings'),
        Index('idx_quotes_created_at', 'created_at'),
        CheckConstraint('total_likes >= 0', name='ck_quotes_total_likes_non_negative'),
        CheckConstraint('total_ratings >= 0', name='ck_quotes_total_ratings_non_negative'),
    )


class QuoteLikeDB(Base):
    """like relationship, existence means liked"""
    __tablename__ = 'quote_likes'

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    quote_id = Column(Integer, ForeignKey('quotes.id', ondelete='CASCADE'), nullable=False)
    created_at = Column(DateTime(timezone=True), default=get_utc_time, nullable=False)

    user = relationship("UserDB", back_populates="likes")
    quote = relationship("QuoteDB", back_populates="likes")

    __table_args__ = (
        UniqueConstraint('user_id', 'quote_id', name='uq_quote_likes_user_quote'),
        Index('idx_quote_likes_user', 'user_id'),
        Index('idx_quote_likes_quote', 'quote_id'),
    )


class QuoteRatingDB(Base):
    """one rating (1-5) per user and quote"""
    __tablename__ = 'quote_ratings'

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    quote_id = Column(Integer, ForeignKey('quotes.id', ondelete='CASCADE'), nullable=False)
    rating = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=get_utc_time, nullable=False)

    user = relationship("UserDB", back_populates="ratings")
    quote = relationship("QuoteDB", back_populates="ratings")

    __table_args__ = (
        UniqueConstraint('user_id', 'quote_id', name='uq_quote_ratings_user_quote'),
        CheckConstraint('rating >= 1 AND rating <= 5', name='ck_quote_ratings_range'),
        Index('idx_quote_ratings_user', 'user_id'),
        Index('idx_quote_ratings_quote', 'quote_id'),
    )
