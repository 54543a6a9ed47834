"""
FastAPI dependencies: service handles from application state and bearer-token identity.
"""

from typing import Any, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from auth_service import AuthService
from quote_engine import QuoteEngine
from utils import UnauthorizedError, ErrorCodes

bearer_scheme = HTTPBearer(auto_error=False)


def get_quote_engine(request: Request) -> QuoteEngine:
    return request.app.state.quote_engine


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> Optional[Dict[str, Any]]:
    """无令牌时为匿名；令牌无效时拒绝请求"""
    if credentials is None:
        return None
    return auth_service.verify_token(credentials.credentials)


async def get_current_user(
    user: Optional[Dict[str, Any]] = Depends(get_current_user_optional),
) -> Dict[str, Any]:
    if user is None:
        raise UnauthorizedError('Authentication required', ErrorCodes.AUTH_REQUIRED)
    return user


def resolve_identity(auth_service: AuthService, authorization: Optional[str]) -> Optional[Dict[str, Any]]:
    """从 Authorization 头解析身份（GraphQL 上下文使用）"""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(' ')
    if scheme.lower() != 'bearer' or not token:
        raise UnauthorizedError('Invalid authorization header', ErrorCodes.AUTH_INVALID_TOKEN)
    return auth_service.verify_token(token.strip())
