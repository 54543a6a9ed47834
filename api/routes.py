"""
API routes for the quote sharing system.
REST endpoints for authentication, random quotes, likes, ratings and listings.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Path, Query

from auth_service import AuthService
from quote_engine import MAX_PAGE, QuoteEngine
from .dependencies import get_auth_service, get_current_user, get_current_user_optional, get_quote_engine
from .models import (
    AuthResponse, ErrorResponse, LoginRequest, PaginatedQuotesResponse, QuoteResponse, RateQuoteRequest,
    RegisterRequest, UserResponse
)

# 所有接口共用的错误响应文档
ERROR_RESPONSES = {
    status_code: {"model": ErrorResponse, "description": description}
    for status_code, description in (
        (400, "Invalid input"),
        (401, "Missing or invalid token"),
        (404, "Quote not found"),
        (409, "Conflict"),
        (500, "Unexpected error"),
    )
}

router = APIRouter(responses=ERROR_RESPONSES)


def _user_id(user: Optional[Dict[str, Any]]) -> Optional[str]:
    return user['id'] if user else None


# Authentication
@router.post("/auth/register", response_model=UserResponse, status_code=201, tags=["Auth"])
async def register(
    request: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """注册新用户"""
    return await auth_service.register(request.name, request.email, request.password)


@router.post("/auth/login", response_model=AuthResponse, tags=["Auth"])
async def login(
    request: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """登录并获取访问令牌"""
    return await auth_service.login(request.email, request.password)


# Quotes
@router.get("/quotes/random", response_model=QuoteResponse, tags=["Quotes"])
async def get_random_quote(
    user: Optional[Dict[str, Any]] = Depends(get_current_user_optional),
    engine: QuoteEngine = Depends(get_quote_engine)
):
    """随机获取一条语录"""
    return await engine.get_random_quote(_user_id(user))


@router.get("/quotes/liked", response_model=PaginatedQuotesResponse, tags=["Quotes"])
async def get_liked_quotes(
    page: int = Query(1, ge=1, le=MAX_PAGE, description="页码"),
    user: Dict[str, Any] = Depends(get_current_user),
    engine: QuoteEngine = Depends(get_quote_engine)
):
    """当前用户点赞过的语录"""
    return await engine.get_liked_quotes(user['id'], page)


@router.get("/quotes/search", response_model=PaginatedQuotesResponse, tags=["Quotes"])
async def search_quotes(
    q: Optional[str] = Query(None, description="搜索词（内容或作者）"),
    term: Optional[str] = Query(None, description="q 的别名"),
    page: int = Query(1, ge=1, le=MAX_PAGE, description="页码"),
    user: Optional[Dict[str, Any]] = Depends(get_current_user_optional),
    engine: QuoteEngine = Depends(get_quote_engine)
):
    """搜索语录"""
    return await engine.search_quotes(q if q is not None else term, _user_id(user), page)


@router.post("/quotes/{quote_id}/like", response_model=QuoteResponse,
             response_model_exclude_none=True, tags=["Quotes"])
async def like_quote(
    quote_id: int = Path(..., description="语录ID"),
    user: Dict[str, Any] = Depends(get_current_user),
    engine: QuoteEngine = Depends(get_quote_engine)
):
    """切换点赞状态"""
    return await engine.like_quote(user['id'], quote_id)


@router.post("/quotes/{quote_id}/rate", response_model=QuoteResponse, tags=["Quotes"])
async def rate_quote(
    request: RateQuoteRequest,
    quote_id: int = Path(..., description="语录ID"),
    user: Dict[str, Any] = Depends(get_current_user),
    engine: QuoteEngine = Depends(get_quote_engine)
):
    """为语录评分（1-5），重复评分覆盖旧值"""
    return await engine.rate_quote(user['id'], quote_id, request.rating)
