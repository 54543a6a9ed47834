"""
Quote Engine for the quote sharing system.
Random quote selection, like/rating aggregate maintenance and paginated,
per-user annotated listings. Holds no state besides the injected store handle
and random source, so one instance can serve concurrent requests.
"""

import math
import random
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Set

from sqlalchemy.exc import IntegrityError

from utils import (
    engine_logger, engine_metrics, log_execution, log_performance, handle_exception,
    ValidationError, UnauthorizedError, NotFoundError, ConflictError, ErrorCodes, to_isoformat
)
from database.operations import DatabaseOperations
from database.models import QuoteDB

PAGE_SIZE = 10
# 偏移量需落在 SQLite 64 位整数范围内
MAX_PAGE = 100000

# 低参与度用户的偏向选择
ENGAGEMENT_THRESHOLD = 5
BIAS_PROBABILITY = 0.5
TOP_RATED_MIN_AVERAGE = 4.0
TOP_RATED_MIN_RATINGS = 2

MIN_RATING = 1
MAX_RATING = 5
MIN_SEARCH_TERM_LENGTH = 2


def top_rated_criteria() -> tuple:
    """偏向池：平均分 >= 4.0 且至少 2 个评分"""
    return (
        QuoteDB.average_rating >= TOP_RATED_MIN_AVERAGE,
        QuoteDB.total_ratings >= TOP_RATED_MIN_RATINGS,
    )


def round_rating(average: Optional[float]) -> float:
    """平均分保留两位小数（四舍五入），无评分时为 0"""
    if average is None:
        return 0.0
    return float(Decimal(str(average)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP))


def serialize_quote(quote: QuoteDB) -> Dict[str, Any]:
    """语录的计数视图，不含用户标注"""
    return {
        'id': quote.id,
        'content': quote.content,
        'author': quote.author,
        'total_likes': quote.total_likes,
        'total_ratings': quote.total_ratings,
        'average_rating': round_rating(quote.average_rating),
        'created_at': to_isoformat(quote.created_at),
    }


def annotate_quote(quote: QuoteDB, liked: bool, user_rating: Optional[int]) -> Dict[str, Any]:
    data = serialize_quote(quote)
    data['liked'] = liked
    data['user_rating'] = user_rating or 0
    return data


def build_pagination(page: int, total_count: int) -> Dict[str, int]:
    return {
        'current_page': page,
        'total_pages': math.ceil(total_count / PAGE_SIZE),
        'total_count': total_count,
    }


def validate_page(page: Any) -> int:
    if isinstance(page, bool) or not isinstance(page, int) or not 1 <= page <= MAX_PAGE:
        raise ValidationError(
            f'Page must be an integer between 1 and {MAX_PAGE}',
            ErrorCodes.VALIDATION_INVALID_PAGE,
            {'page': page}
        )
    return page


def validate_rating(rating: Any) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(
            f'Rating must be an integer between {MIN_RATING} and {MAX_RATING}',
            ErrorCodes.VALIDATION_INVALID_RATING,
            {'rating': rating}
        )
    return rating


def normalize_search_term(search_term: Optional[str]) -> str:
    term = (search_term or '').strip()
    if len(term) < MIN_SEARCH_TERM_LENGTH:
        raise ValidationError(
            f'Search term must be at least {MIN_SEARCH_TERM_LENGTH} characters long.',
            ErrorCodes.VALIDATION_SEARCH_TERM_TOO_SHORT,
            {'term': search_term}
        )
    return term


def require_identity(user_id: Optional[str]) -> str:
    if not user_id:
        raise UnauthorizedError('Authentication required', ErrorCodes.AUTH_REQUIRED)
    return user_id


class QuoteEngine:
    """语录业务核心"""

    def __init__(self, db_ops: DatabaseOperations, rng: Optional[random.Random] = None):
        self.db_ops = db_ops
        self._rng = rng or random.Random()

    # === Random selection ===

    @handle_exception
    @log_execution("QuoteEngine", "get_random_quote")
    async def get_random_quote(self, user_id: Optional[str] = None) -> Dict[str, Any]:
        """随机获取一条语录；低参与度用户有一半概率从高分语录中选取"""
        async with self.db_ops.transaction() as session:
            quote = None

            if user_id is not None:
                engagement = await self.db_ops.count_user_engagement(session, user_id)
                if engagement < ENGAGEMENT_THRESHOLD and self._rng.random() < BIAS_PROBABILITY:
                    quote = await self._pick_uniform(session, *top_rated_criteria())
                    if quote is not None:
                        engine_metrics.increment("random_quote_biased")

            if quote is None:
                quote = await self._pick_uniform(session)

            if quote is None:
                raise NotFoundError('No quotes found in the database.', ErrorCodes.QUOTE_TABLE_EMPTY)

            liked, user_rating = False, 0
            if user_id is not None:
                liked_ids, ratings = await self.db_ops.get_user_annotations(session, user_id, [quote.id])
                liked = quote.id in liked_ids
                user_rating = ratings.get(quote.id, 0)

            return annotate_quote(quote, liked, user_rating)

    async def _pick_uniform(self, session, *criteria) -> Optional[QuoteDB]:
        total = await self.db_ops.count_quotes(session, *criteria)
        if total == 0:
            return None
        return await self.db_ops.get_quote_at(session, self._rng.randrange(total), *criteria)

    # === Mutations ===

    @handle_exception
    @log_execution("QuoteEngine", "like_quote")
    async def like_quote(self, user_id: str, quote_id: int) -> Dict[str, Any]:
        """切换点赞状态，返回更新后的语录计数"""
        require_identity(user_id)

        try:
            async with self.db_ops.transaction() as session:
                quote = await self._get_quote_or_raise(session, quote_id)

                if await self.db_ops.delete_like(session, user_id, quote_id):
                    await self.db_ops.adjust_total_likes(session, quote_id, -1)
                    engine_metrics.increment("quote_unliked")
                else:
                    await self.db_ops.add_like(session, user_id, quote_id)
                    await self.db_ops.adjust_total_likes(session, quote_id, 1)
                    engine_metrics.increment("quote_liked")

                await session.refresh(quote)
                return serialize_quote(quote)
        except IntegrityError as e:
            # 同一用户对同一语录的并发点赞请求
            raise ConflictError(
                'Concurrent like request for the same quote, please retry',
                ErrorCodes.DB_INTEGRITY_ERROR,
                {'quote_id': quote_id}
            ) from e

    @handle_exception
    @log_execution("QuoteEngine", "rate_quote")
    async def rate_quote(self, user_id: str, quote_id: int, rating: int) -> Dict[str, Any]:
        """评分（覆盖旧评分），并从评分表重新计算聚合"""
        require_identity(user_id)
        validate_rating(rating)

        async with self.db_ops.transaction() as session:
            quote = await self._get_quote_or_raise(session, quote_id)

            await self.db_ops.upsert_rating(session, user_id, quote_id, rating)

            average, count = await self.db_ops.get_rating_stats(session, quote_id)
            await self.db_ops.update_rating_aggregate(session, quote_id, round_rating(average), count)

            liked = await self.db_ops.has_liked(session, user_id, quote_id)
            await session.refresh(quote)
            engine_metrics.increment("quote_rated")

            return annotate_quote(quote, liked, rating)

    async def _get_quote_or_raise(self, session, quote_id: int) -> QuoteDB:
        quote = await self.db_ops.get_quote(session, quote_id, for_update=True)
        if quote is None:
            raise NotFoundError('Quote not found', ErrorCodes.QUOTE_NOT_FOUND, {'quote_id': quote_id})
        return quote

    # === Listings ===

    @handle_exception
    @log_performance("QuoteEngine", threshold=0.5)
    async def search_quotes(self, search_term: str, user_id: Optional[str] = None,
                            page: int = 1) -> Dict[str, Any]:
        """按内容或作者搜索，每页10条"""
        term = normalize_search_term(search_term)
        page = validate_page(page)

        async with self.db_ops.transaction() as session:
            total, quotes = await self.db_ops.search_quotes(
                session, term, PAGE_SIZE, (page - 1) * PAGE_SIZE
            )

            liked_ids: Set[int] = set()
            ratings: Dict[int, int] = {}
            if user_id is not None and quotes:
                liked_ids, ratings = await self.db_ops.get_user_annotations(
                    session, user_id, [q.id for q in quotes]
                )

            results = [annotate_quote(q, q.id in liked_ids, ratings.get(q.id)) for q in quotes]

        engine_logger.debug(f"[QuoteEngine] search '{term}' page {page}: {len(results)}/{total}")
        return {'quotes': results, 'pagination': build_pagination(page, total)}

    @handle_exception
    @log_performance("QuoteEngine", threshold=0.5)
    async def get_liked_quotes(self, user_id: str, page: int = 1) -> Dict[str, Any]:
        """用户点赞过的语录，按语录创建时间倒序"""
        require_identity(user_id)
        page = validate_page(page)

        async with self.db_ops.transaction() as session:
            total, rows = await self.db_ops.get_liked_quotes(
                session, user_id, PAGE_SIZE, (page - 1) * PAGE_SIZE
            )
            results: List[Dict[str, Any]] = [
                annotate_quote(quote, True, rating) for quote, rating in rows
            ]

        return {'quotes': results, 'pagination': build_pagination(page, total)}
