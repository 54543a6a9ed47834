"""
database operations for the quote sharing system.
Store layer: every method takes the caller's session so that several steps can
share one transaction.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy import and_, case, delete, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from utils import db_logger, database_metrics, ConflictError, ErrorCodes
from .connection import DatabaseManager, session_scope
from .models import UserDB, QuoteDB, QuoteLikeDB, QuoteRatingDB


LIKE_ESCAPE_CHAR = '\\'


def escape_like(term: str) -> str:
    """转义 LIKE 通配符，使搜索词按字面匹配"""
    return (term.replace(LIKE_ESCAPE_CHAR, LIKE_ESCAPE_CHAR * 2)
                .replace('%', LIKE_ESCAPE_CHAR + '%')
                .replace('_', LIKE_ESCAPE_CHAR + '_'))


class DatabaseOperations:
    """database operations over users, quotes, likes and ratings"""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager
        self.db_logger = db_logger

    async def initialize(self, create_tables: bool = True):
        """初始化数据库操作"""
        try:
            self.db_logger.info("Initializing DatabaseOperations...")
            self.db.initialize()
            if create_tables:
                await self.db.create_tables()
            self.db_logger.info("DatabaseOperations initialized successfully")
        except Exception as e:
            self.db_logger.error(f"Failed to initialize DatabaseOperations: {e}")
            raise

    async def close(self):
        await self.db.close()

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """单个数据库事务，退出时提交，异常时回滚"""
        try:
            async with session_scope(self.db) as session:
                yield session
        except Exception:
            database_metrics.increment("transaction_rollbacks")
            raise

    @property
    def dialect_name(self) -> str:
        return self.db.async_engine.dialect.name

    # === User Operations ===

    async def get_user_by_email(self, session: AsyncSession, email: str) -> Optional[UserDB]:
        """根据邮箱获取用户"""
        result = await session.execute(select(UserDB).where(UserDB.email == email))
        return result.scalar_one_or_none()

    async def get_user_by_id(self, session: AsyncSession, user_id: str) -> Optional[UserDB]:
        return await session.get(UserDB, user_id)

    async def create_user(self, session: AsyncSession, name: str, email: str,
                          password_hash: str) -> UserDB:
        """创建用户，邮箱重复时抛出 ConflictError"""
        user = UserDB(name=name, email=email, password_hash=password_hash)
        session.add(user)
        try:
            await session.flush()
        except IntegrityError as e:
            raise ConflictError(
                'User with this email already exists',
                ErrorCodes.AUTH_EMAIL_EXISTS,
                {'email': email}
            ) from e
        return user

    # === Quote Operations ===

    async def get_quote(self, session: AsyncSession, quote_id: int,
                        for_update: bool = False) -> Optional[QuoteDB]:
        """根据ID获取语录，for_update 时对该行加锁（SQLite 忽略）"""
        stmt = select(QuoteDB).where(QuoteDB.id == quote_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def count_quotes(self, session: AsyncSession, *criteria) -> int:
        """统计满足条件的语录数量"""
        stmt = select(func.count()).select_from(QuoteDB).where(*criteria)
        return (await session.execute(stmt)).scalar_one()

    async def get_quote_at(self, session: AsyncSession, index: int, *criteria) -> Optional[QuoteDB]:
        """按ID排序后取第 index 条满足条件的语录"""
        stmt = (select(QuoteDB).where(*criteria)
                .order_by(QuoteDB.id)
                .offset(index)
                .limit(1))
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def adjust_total_likes(self, session: AsyncSession, quote_id: int, delta: int):
        """原子地增减点赞计数，减少时不低于0"""
        if delta >= 0:
            new_value = QuoteDB.total_likes + delta
        else:
            new_value = case(
                (QuoteDB.total_likes + delta > 0, QuoteDB.total_likes + delta),
                else_=0
            )
        stmt = (update(QuoteDB)
                .where(QuoteDB.id == quote_id)
                .values(total_likes=new_value)
                .execution_options(synchronize_session=False))
        await session.execute(stmt)

    async def update_rating_aggregate(self, session: AsyncSession, quote_id: int,
                                      average_rating: float, total_ratings: int):
        """写回评分聚合字段"""
        stmt = (update(QuoteDB)
                .where(QuoteDB.id == quote_id)
                .values(average_rating=average_rating, total_ratings=total_ratings)
                .execution_options(synchronize_session=False))
        await session.execute(stmt)

    async def search_quotes(self, session: AsyncSession, term: str,
                            limit: int, offset: int) -> Tuple[int, List[QuoteDB]]:
        """内容或作者的大小写不敏感子串匹配，返回(总数, 当前页)"""
        pattern = f"%{escape_like(term)}%"
        criteria = or_(
            QuoteDB.content.ilike(pattern, escape=LIKE_ESCAPE_CHAR),
            QuoteDB.author.ilike(pattern, escape=LIKE_ESCAPE_CHAR),
        )

        total = await self.count_quotes(session, criteria)
        if total == 0:
            return 0, []

        stmt = (select(QuoteDB).where(criteria)
                .order_by(QuoteDB.id)
                .limit(limit)
                .offset(offset))
        rows = (await session.execute(stmt)).scalars().all()
        return total, list(rows)

    async def get_liked_quotes(self, session: AsyncSession, user_id: str,
                               limit: int, offset: int) -> Tuple[int, List[Tuple[QuoteDB, Optional[int]]]]:
        """用户点赞过的语录及其评分，返回(总数, [(语录, 评分或None)])"""
        count_stmt = (select(func.count())
                      .select_from(QuoteLikeDB)
                      .where(QuoteLikeDB.user_id == user_id))
        total = (await session.execute(count_stmt)).scalar_one()
        if total == 0:
            return 0, []

        stmt = (select(QuoteDB, QuoteRatingDB.rating)
                .join(QuoteLikeDB, and_(QuoteLikeDB.quote_id == QuoteDB.id,
                                        QuoteLikeDB.user_id == user_id))
                .outerjoin(QuoteRatingDB, and_(QuoteRatingDB.quote_id == QuoteDB.id,
                                               QuoteRatingDB.user_id == user_id))
                .order_by(QuoteDB.created_at.desc(), QuoteDB.id.desc())
                .limit(limit)
                .offset(offset))
        rows = (await session.execute(stmt)).all()
        return total, [(quote, rating) for quote, rating in rows]

    # === Like Operations ===

    async def delete_like(self, session: AsyncSession, user_id: str, quote_id: int) -> bool:
        """删除点赞记录，返回是否确实删除了一行"""
        stmt = delete(QuoteLikeDB).where(
            QuoteLikeDB.user_id == user_id,
            QuoteLikeDB.quote_id == quote_id
        ).execution_options(synchronize_session=False)
        result = await session.execute(stmt)
        return result.rowcount > 0

    async def add_like(self, session: AsyncSession, user_id: str, quote_id: int):
        await session.execute(insert(QuoteLikeDB).values(user_id=user_id, quote_id=quote_id))

    async def has_liked(self, session: AsyncSession, user_id: str, quote_id: int) -> bool:
        stmt = select(QuoteLikeDB.id).where(
            QuoteLikeDB.user_id == user_id,
            QuoteLikeDB.quote_id == quote_id
        )
        return (await session.execute(stmt)).first() is not None

    async def count_likes(self, session: AsyncSession, quote_id: int) -> int:
        stmt = select(func.count()).select_from(QuoteLikeDB).where(QuoteLikeDB.quote_id == quote_id)
        return (await session.execute(stmt)).scalar_one()

    # === Rating Operations ===

    async def upsert_rating(self, session: AsyncSession, user_id: str, quote_id: int, rating: int):
        """插入或覆盖 (user_id, quote_id) 的评分"""
        dialect_insert = self._dialect_insert()
        if dialect_insert is not None:
            stmt = dialect_insert(QuoteRatingDB).values(
                user_id=user_id, quote_id=quote_id, rating=rating
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[QuoteRatingDB.user_id, QuoteRatingDB.quote_id],
                set_={'rating': stmt.excluded.rating}
            )
            await session.execute(stmt)
            return

        # 其他数据库：先查后写
        existing = await session.execute(
            select(QuoteRatingDB).where(
                QuoteRatingDB.user_id == user_id,
                QuoteRatingDB.quote_id == quote_id
            ).with_for_update()
        )
        row = existing.scalar_one_or_none()
        if row is None:
            await session.execute(insert(QuoteRatingDB).values(
                user_id=user_id, quote_id=quote_id, rating=rating
            ))
        else:
            await session.execute(
                update(QuoteRatingDB)
                .where(QuoteRatingDB.id == row.id)
                .values(rating=rating)
                .execution_options(synchronize_session=False)
            )

    def _dialect_insert(self):
        if self.dialect_name == 'postgresql':
            from sqlalchemy.dialects.postgresql import insert as pg_insert
            return pg_insert
        if self.dialect_name == 'sqlite':
            from sqlalchemy.dialects.sqlite import insert as sqlite_insert
            return sqlite_insert
        return None

    async def get_rating_stats(self, session: AsyncSession, quote_id: int) -> Tuple[Optional[float], int]:
        """直接从评分表聚合 (平均分, 评分数)"""
        stmt = select(
            func.avg(QuoteRatingDB.rating),
            func.count(QuoteRatingDB.id)
        ).where(QuoteRatingDB.quote_id == quote_id)
        average, count = (await session.execute(stmt)).one()
        return (float(average) if average is not None else None), int(count)

    async def get_user_rating(self, session: AsyncSession, user_id: str, quote_id: int) -> Optional[int]:
        stmt = select(QuoteRatingDB.rating).where(
            QuoteRatingDB.user_id == user_id,
            QuoteRatingDB.quote_id == quote_id
        )
        return (await session.execute(stmt)).scalar_one_or_none()

    async def count_ratings_for_user_quote(self, session: AsyncSession, user_id: str, quote_id: int) -> int:
        stmt = select(func.count()).select_from(QuoteRatingDB).where(
            QuoteRatingDB.user_id == user_id,
            QuoteRatingDB.quote_id == quote_id
        )
        return (await session.execute(stmt)).scalar_one()

    # === Per-user annotation ===

    async def count_user_engagement(self, session: AsyncSession, user_id: str) -> int:
        """用户的点赞数 + 评分数"""
        likes = select(func.count()).select_from(QuoteLikeDB).where(
            QuoteLikeDB.user_id == user_id).scalar_subquery()
        ratings = select(func.count()).select_from(QuoteRatingDB).where(
            QuoteRatingDB.user_id == user_id).scalar_subquery()
        return (await session.execute(select(likes + ratings))).scalar_one()

    async def get_user_annotations(self, session: AsyncSession, user_id: str,
                                   quote_ids: Iterable[int]) -> Tuple[Set[int], Dict[int, int]]:
        """批量查询用户对一组语录的点赞与评分，避免逐条查询"""
        ids = list(quote_ids)
        if not ids:
            return set(), {}

        like_rows = await session.execute(
            select(QuoteLikeDB.quote_id).where(
                QuoteLikeDB.user_id == user_id,
                QuoteLikeDB.quote_id.in_(ids)
            )
        )
        rating_rows = await session.execute(
            select(QuoteRatingDB.quote_id, QuoteRatingDB.rating).where(
                QuoteRatingDB.user_id == user_id,
                QuoteRatingDB.quote_id.in_(ids)
            )
        )
        liked_ids = set(like_rows.scalars().all())
        ratings = {quote_id: rating for quote_id, rating in rating_rows.all()}
        return liked_ids, ratings

    # === Statistics ===

    async def get_database_statistics(self) -> Dict[str, int]:
        """各表记录数"""
        async with self.transaction() as session:
            stats = {}
            for name, model in (('users', UserDB), ('quotes', QuoteDB),
                                ('quote_likes', QuoteLikeDB), ('quote_ratings', QuoteRatingDB)):
                stats[name] = (await session.execute(
                    select(func.count()).select_from(model))).scalar_one()
            return stats
