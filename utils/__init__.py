"""
工具模块包
提供项目所需的通用工具和功能
"""

# 导出核心工具
from .config_manager import config_manager, UnifiedConfigManager
from .exceptions import (
    QuoteAppError,
    ConfigurationError,
    ValidationError,
    UnauthorizedError,
    NotFoundError,
    ConflictError,
    DatabaseError,
    ErrorCodes,
    create_error_response,
    handle_exception
)
from .logging_manager import (
    LogContext,
    log_execution,
    log_performance,
    MetricsLogger,
    logging_manager,
    logger,
    engine_metrics,
    database_metrics,
    api_metrics,
    LogConfig,
    initialize_logging,
    ModuleLoggers,
    engine_logger,
    auth_logger,
    db_logger,
    api_logger,
    graphql_logger,
    config_logger
)
from .date_utils import get_utc_time, ensure_utc, to_isoformat
from .path_utils import BASE_DIR, CONFIG_DIR, LOG_DIR

# 版本信息
__version__ = "1.0.0"

__all__ = [
    # 配置管理
    "config_manager",
    "UnifiedConfigManager",

    # 异常处理
    "QuoteAppError",
    "ConfigurationError",
    "ValidationError",
    "UnauthorizedError",
    "NotFoundError",
    "ConflictError",
    "DatabaseError",
    "ErrorCodes",
    "create_error_response",
    "handle_exception",

    # 日志工具
    "LogContext",
    "log_execution",
    "log_performance",
    "MetricsLogger",
    "logging_manager",
    "logger",
    "engine_metrics",
    "database_metrics",
    "api_metrics",
    "LogConfig",
    "initialize_logging",
    "ModuleLoggers",
    "engine_logger",
    "auth_logger",
    "db_logger",
    "api_logger",
    "graphql_logger",
    "config_logger",

    # 时间工具
    "get_utc_time",
    "ensure_utc",
    "to_isoformat",

    # 路径工具
    "BASE_DIR",
    "CONFIG_DIR",
    "LOG_DIR",
]
