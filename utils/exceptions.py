"""
统一异常定义模块
提供项目特定的异常类和错误处理机制
"""

import asyncio
import functools
from typing import Optional, Dict, Any


class QuoteAppError(Exception):
    """语录系统基础异常类"""

    def __init__(self, message: str, error_code: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


class ConfigurationError(QuoteAppError):
    """配置相关错误"""
    pass


class ValidationError(QuoteAppError):
    """输入验证错误"""
    pass


class UnauthorizedError(QuoteAppError):
    """缺少或无效的身份"""
    pass


class NotFoundError(QuoteAppError):
    """资源不存在"""
    pass


class ConflictError(QuoteAppError):
    """唯一性冲突（如重复注册邮箱）"""
    pass


class DatabaseError(QuoteAppError):
    """数据库相关错误"""
    pass


# 错误代码常量
class ErrorCodes:
    """错误代码常量"""

    # 配置错误
    CONFIG_NOT_FOUND = "CONFIG_001"
    CONFIG_INVALID_FORMAT = "CONFIG_002"
    CONFIG_MISSING_KEY = "CONFIG_003"

    # 验证错误
    VALIDATION_INVALID_RATING = "VAL_001"
    VALIDATION_INVALID_PAGE = "VAL_002"
    VALIDATION_SEARCH_TERM_TOO_SHORT = "VAL_003"
    VALIDATION_MISSING_REQUIRED_FIELD = "VAL_004"
    VALIDATION_INVALID_FORMAT = "VAL_005"

    # 认证错误
    AUTH_REQUIRED = "AUTH_001"
    AUTH_INVALID_CREDENTIALS = "AUTH_002"
    AUTH_INVALID_TOKEN = "AUTH_003"
    AUTH_EMAIL_EXISTS = "AUTH_004"

    # 资源错误
    QUOTE_NOT_FOUND = "QUOTE_001"
    QUOTE_TABLE_EMPTY = "QUOTE_002"

    # 数据库错误
    DB_CONNECTION_FAILED = "DB_001"
    DB_QUERY_FAILED = "DB_002"
    DB_TRANSACTION_FAILED = "DB_003"
    DB_INTEGRITY_ERROR = "DB_004"

    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"


def create_error_response(error: QuoteAppError,
                          include_traceback: bool = False) -> Dict[str, Any]:
    """创建标准化的错误响应"""
    response = {
        "error": error.__class__.__name__,
        "error_code": error.error_code,
        "message": error.message,
        "details": error.context
    }

    if include_traceback:
        import traceback
        response["traceback"] = traceback.format_exc()

    return response


def handle_exception(func):
    """统一异常处理装饰器（同时支持同步与协程函数）"""

    def _wrap(e: Exception) -> QuoteAppError:
        return DatabaseError(
            f"Unexpected error in {func.__name__}: {str(e)}",
            error_code=ErrorCodes.UNEXPECTED_ERROR
        )

    if asyncio.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except QuoteAppError:
                # 已经是系统异常，直接重新抛出
                raise
            except Exception as e:
                raise _wrap(e) from e

        return async_wrapper

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except QuoteAppError:
            raise
        except Exception as e:
            raise _wrap(e) from e

    return wrapper
