"""
Middleware for the quote sharing API.
Provides CORS, logging, error mapping, rate limiting and security headers.
"""

import time
import uuid
from typing import Callable, Dict, List, Type

from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware

from utils import (
    api_logger, api_metrics, config_manager, create_error_response, ErrorCodes,
    QuoteAppError, ValidationError, UnauthorizedError, NotFoundError, ConflictError
)

# 异常类型到 HTTP 状态码的映射，未列出的为 500
ERROR_STATUS_CODES: Dict[Type[QuoteAppError], int] = {
    ValidationError: 400,
    UnauthorizedError: 401,
    NotFoundError: 404,
    ConflictError: 409,
}

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"


def status_code_for(error: QuoteAppError) -> int:
    for error_class, status_code in ERROR_STATUS_CODES.items():
        if isinstance(error, error_class):
            return status_code
    return 500


class LoggingMiddleware(BaseHTTPMiddleware):
    """日志中间件"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex

        api_logger.info(f"[API] {request.method} {request.url.path} request_id={request_id}")

        try:
            response = await call_next(request)

            process_time = time.time() - start_time
            api_logger.info(f"[API] {request.method} {request.url.path} - {response.status_code} - {process_time:.3f}s")
            api_metrics.increment("requests_total")
            api_metrics.timing("request", process_time)

            response.headers["X-Process-Time"] = f"{process_time:.6f}"
            response.headers["X-Request-ID"] = request_id

            return response

        except Exception as e:
            process_time = time.time() - start_time
            api_logger.error(f"[API] {request.method} {request.url.path} - ERROR - {process_time:.3f}s - {str(e)}")
            raise


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """兜底错误处理：未被异常处理器映射的错误一律返回 500"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)

        except QuoteAppError as e:
            return _error_response(e)

        except Exception as e:
            api_logger.error(f"[API] Unexpected error: {str(e)}", exc_info=True)
            api_metrics.increment("errors_unexpected")
            return JSONResponse(
                status_code=500,
                content={
                    "error": "InternalServerError",
                    "error_code": ErrorCodes.UNEXPECTED_ERROR,
                    "message": UNEXPECTED_ERROR_MESSAGE,
                    "details": {}
                }
            )


class RateLimitMiddleware(BaseHTTPMiddleware):
    """简单的限流中间件"""

    def __init__(self, app, requests_per_minute: int = 60):
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.request_counts: Dict[str, List[float]] = {}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        client_ip = request.client.host if request.client else "unknown"
        current_time = time.time()
        minute_ago = current_time - 60

        # 清理过期的记录
        self.request_counts = {
            ip: timestamps
            for ip, timestamps in self.request_counts.items()
            if timestamps and timestamps[-1] > minute_ago
        }

        timestamps = [t for t in self.request_counts.get(client_ip, []) if t > minute_ago]

        if len(timestamps) >= self.requests_per_minute:
            api_logger.warning(f"[API] Rate limit exceeded for IP: {client_ip}")
            api_metrics.increment("rate_limited")
            return JSONResponse(
                status_code=429,
                content={
                    "error": "RateLimitExceeded",
                    "error_code": "RATE_LIMIT_EXCEEDED",
                    "message": f"Too many requests. Limit is {self.requests_per_minute} requests per minute.",
                    "details": {"limit": self.requests_per_minute, "window": "60 seconds"}
                }
            )

        timestamps.append(current_time)
        self.request_counts[client_ip] = timestamps

        return await call_next(request)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """安全头中间件"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response


def _error_response(error: QuoteAppError) -> JSONResponse:
    status_code = status_code_for(error)
    content = create_error_response(error)
    if status_code >= 500:
        api_logger.error(f"[API] {error}")
        # 内部错误细节只写日志
        content["message"] = UNEXPECTED_ERROR_MESSAGE
        content["details"] = {}
    else:
        api_logger.warning(f"[API] {error}")
    api_metrics.increment(f"errors_{status_code}")
    return JSONResponse(status_code=status_code, content=content)


async def quote_app_error_handler(request: Request, exc: QuoteAppError) -> JSONResponse:
    return _error_response(exc)


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """请求参数校验失败统一返回 400"""
    errors = [
        {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg")}
        for err in exc.errors()
    ]
    message = errors[0]["message"] if errors else "Invalid request"
    return _error_response(ValidationError(
        message,
        ErrorCodes.VALIDATION_INVALID_FORMAT,
        {"errors": errors}
    ))


def setup_cors(app, cors_origins: List[str] = None):
    """设置CORS"""
    if cors_origins is None:
        cors_origins = config_manager.get_api_config().cors_origins

    if "*" in cors_origins:
        api_logger.warning("[CORS] Using wildcard origin is not recommended for production")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials="*" not in cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def setup_exception_handlers(app):
    app.add_exception_handler(QuoteAppError, quote_app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)


def setup_middleware(app, rate_limit_per_minute: int = None, cors_origins: List[str] = None):
    """设置所有中间件"""
    if rate_limit_per_minute is None:
        rate_limit_per_minute = config_manager.get_api_config().rate_limit_per_minute

    setup_exception_handlers(app)
    setup_cors(app, cors_origins)

    # 后添加的中间件位于外层
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RateLimitMiddleware, requests_per_minute=rate_limit_per_minute)
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(LoggingMiddleware)

    api_logger.info("[API] Middleware setup completed")
