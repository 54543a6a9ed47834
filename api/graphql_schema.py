"""
GraphQL schema for the quote sharing system.
Strawberry types and resolvers over the same quote engine and auth service
used by the REST routes, mounted at /graphql.
"""

import functools
from typing import Any, Callable, Dict, List, Optional

import strawberry
from fastapi import Depends, Request
from graphql import GraphQLError
from strawberry.fastapi import BaseContext, GraphQLRouter
from strawberry.types import Info

from auth_service import AuthService
from quote_engine import QuoteEngine
from utils import graphql_logger, QuoteAppError, UnauthorizedError, ErrorCodes
from .dependencies import get_auth_service, get_quote_engine, resolve_identity
from .middleware import status_code_for


@strawberry.type
class Quote:
    id: int
    content: str
    author: str
    total_likes: int
    total_ratings: int
    average_rating: float
    created_at: str
    liked: Optional[bool] = None
    user_rating: Optional[int] = None


@strawberry.type
class User:
    id: strawberry.ID
    name: str
    email: str
    created_at: Optional[str] = None


@strawberry.type
class AuthPayload:
    token: str
    user: User


@strawberry.type
class PaginationInfo:
    current_page: int
    total_pages: int
    total_count: int


@strawberry.type
class PaginatedQuotes:
    quotes: List[Quote]
    pagination: PaginationInfo


def _to_paginated(data: Dict[str, Any]) -> PaginatedQuotes:
    return PaginatedQuotes(
        quotes=[Quote(**quote) for quote in data['quotes']],
        pagination=PaginationInfo(**data['pagination'])
    )


class GraphQLContext(BaseContext):
    """每个请求的上下文：服务句柄与调用者身份"""

    def __init__(self, quote_engine: QuoteEngine, auth_service: AuthService,
                 user: Optional[Dict[str, Any]] = None, auth_error: Optional[QuoteAppError] = None):
        super().__init__()
        self.quote_engine = quote_engine
        self.auth_service = auth_service
        self.user = user
        self.auth_error = auth_error

    def user_id(self, required: bool = False) -> Optional[str]:
        if self.auth_error is not None:
            raise self.auth_error
        if self.user is None:
            if required:
                raise UnauthorizedError('Authentication required.', ErrorCodes.AUTH_REQUIRED)
            return None
        return self.user['id']


async def get_context(
    request: Request,
    quote_engine: QuoteEngine = Depends(get_quote_engine),
    auth_service: AuthService = Depends(get_auth_service),
) -> GraphQLContext:
    user, auth_error = None, None
    try:
        user = resolve_identity(auth_service, request.headers.get('authorization'))
    except UnauthorizedError as e:
        # 令牌错误在解析器中以 GraphQL 错误返回
        auth_error = e
    return GraphQLContext(quote_engine, auth_service, user, auth_error)


def graphql_errors(func: Callable) -> Callable:
    """将系统异常转换为带错误码的 GraphQL 错误"""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except QuoteAppError as e:
            if status_code_for(e) >= 500:
                graphql_logger.error(f"[GraphQL] {func.__name__} failed: {e}")
                message = 'Internal server error'
            else:
                graphql_logger.warning(f"[GraphQL] {func.__name__}: {e}")
                message = e.message
            raise GraphQLError(
                message,
                extensions={'code': e.error_code, 'error': e.__class__.__name__}
            ) from e

    return wrapper


@strawberry.type
class Query:

    @strawberry.field
    @graphql_errors
    async def random_quote(self, info: Info) -> Optional[Quote]:
        ctx: GraphQLContext = info.context
        data = await ctx.quote_engine.get_random_quote(ctx.user_id())
        return Quote(**data)

    @strawberry.field
    @graphql_errors
    async def liked_quotes(self, info: Info, page: int = 1) -> PaginatedQuotes:
        ctx: GraphQLContext = info.context
        data = await ctx.quote_engine.get_liked_quotes(ctx.user_id(required=True), page)
        return _to_paginated(data)

    @strawberry.field
    @graphql_errors
    async def search_quotes(self, info: Info, term: str, page: int = 1) -> PaginatedQuotes:
        ctx: GraphQLContext = info.context
        data = await ctx.quote_engine.search_quotes(term, ctx.user_id(), page)
        return _to_paginated(data)


@strawberry.type
class Mutation:

    @strawberry.mutation
    @graphql_errors
    async def register(self, info: Info, name: str, email: str, password: str) -> User:
        ctx: GraphQLContext = info.context
        data = await ctx.auth_service.register(name, email, password)
        return User(**data)

    @strawberry.mutation
    @graphql_errors
    async def login(self, info: Info, email: str, password: str) -> AuthPayload:
        ctx: GraphQLContext = info.context
        data = await ctx.auth_service.login(email, password)
        return AuthPayload(token=data['token'], user=User(**data['user']))

    @strawberry.mutation
    @graphql_errors
    async def like_quote(self, info: Info, quote_id: int) -> Quote:
        ctx: GraphQLContext = info.context
        data = await ctx.quote_engine.like_quote(ctx.user_id(required=True), quote_id)
        return Quote(**data)

    @strawberry.mutation
    @graphql_errors
    async def rate_quote(self, info: Info, quote_id: int, rating: int) -> Quote:
        ctx: GraphQLContext = info.context
        data = await ctx.quote_engine.rate_quote(ctx.user_id(required=True), quote_id, rating)
        return Quote(**data)


schema = strawberry.Schema(query=Query, mutation=Mutation)


def create_graphql_router(graphiql: bool = True) -> GraphQLRouter:
    return GraphQLRouter(schema, context_getter=get_context, graphql_ide="graphiql" if graphiql else None)
