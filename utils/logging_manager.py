"""
统一的日志管理模块
整合基础日志配置和高级日志功能
"""

import asyncio
import functools
import inspect
import logging
import os
import sys
import threading
import time
import traceback
from collections import defaultdict, deque
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from pathlib import Path
from typing import Optional, Dict, Any, Callable

from .exceptions import QuoteAppError, ErrorCodes
from .config_manager import config_manager
from .path_utils import BASE_DIR, LOG_DIR

# 获取 logging_manager 模块的专用日志器
logger = logging.getLogger("LoggingManager")

# 可从函数参数中提取的上下文字段
CONTEXT_FIELDS = ('user_id', 'quote_id', 'page', 'request_id')


@dataclass
class LogConfig:
    """日志配置"""
    level: str = "INFO"
    format: str = "[%(levelname)s][%(asctime)s][%(filename)s:%(lineno)d] - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    file_max_bytes: int = 10 * 1024 * 1024  # 10MB
    file_backup_count: int = 5
    enable_console: bool = True
    enable_file: bool = True
    log_directory: Optional[str] = None
    log_filename: str = "sys.log"
    rotation_type: str = "size"  # "size" or "time"


class LoggingManager:
    """统一的日志管理器"""

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if hasattr(self, '_initialized'):
            return

        self._initialized = True
        self._loggers: Dict[str, logging.Logger] = {}
        self._config = LogConfig()
        self._metrics = defaultdict(int)

    def configure(self, config: LogConfig = None):
        """配置日志系统"""
        if config:
            self._config = config

        if self._config.log_directory is None:
            self._config.log_directory = str(LOG_DIR)

        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, self._config.level.upper(), logging.INFO))

        self._clear_handlers(root_logger)

        if self._config.enable_console:
            self._add_console_handler(root_logger)

        if self._config.enable_file:
            Path(self._config.log_directory).mkdir(parents=True, exist_ok=True)
            self._add_file_handler(root_logger)

    def configure_from_config_file(self):
        """从配置文件加载日志配置"""
        try:
            logging_config = config_manager.get_logging_config()

            # 相对路径以项目根目录为基准
            log_directory = logging_config.file_config.directory
            if not os.path.isabs(log_directory):
                log_directory = str(BASE_DIR / log_directory)

            rotation = logging_config.file_config.rotation or {}

            config = LogConfig(
                level=logging_config.level,
                format=logging_config.format,
                date_format=logging_config.date_format,
                file_max_bytes=rotation.get('max_bytes_mb', 10) * 1024 * 1024,
                file_backup_count=rotation.get('backup_count', 5),
                enable_console=logging_config.console_config.enabled,
                enable_file=logging_config.file_config.enabled,
                log_directory=log_directory,
                log_filename=logging_config.file_config.filename,
                rotation_type=rotation.get('type', 'size')
            )

            self.configure(config)
            self._configure_module_loggers(logging_config.modules)

            return logging_config

        except Exception as e:
            raise QuoteAppError(
                f"Failed to configure logging from config file: {str(e)}",
                ErrorCodes.CONFIG_INVALID_FORMAT
            ) from e

    def _configure_module_loggers(self, modules_config: Dict[str, Any]):
        """配置模块特定的日志器，禁用的模块提升到 CRITICAL"""
        for module_name, module_config in modules_config.items():
            module_logger = self.get_logger(module_name)
            if module_config.enabled:
                module_logger.setLevel(getattr(logging, module_config.level.upper(), logging.INFO))
            else:
                module_logger.setLevel(logging.CRITICAL)

    def _clear_handlers(self, logger: logging.Logger):
        """清除现有处理器"""
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)

    def _formatter(self) -> logging.Formatter:
        return logging.Formatter(self._config.format, datefmt=self._config.date_format)

    def _add_console_handler(self, logger: logging.Logger):
        """添加控制台处理器"""
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(self._formatter())
        logger.addHandler(console_handler)

    def _add_file_handler(self, logger: logging.Logger):
        """添加文件处理器"""
        log_file_path = Path(self._config.log_directory) / self._config.log_filename

        if self._config.rotation_type == "size":
            file_handler = RotatingFileHandler(
                filename=log_file_path,
                maxBytes=self._config.file_max_bytes,
                backupCount=self._config.file_backup_count,
                encoding="utf-8"
            )
        else:  # time rotation
            file_handler = TimedRotatingFileHandler(
                filename=log_file_path,
                when="midnight",
                interval=1,
                backupCount=self._config.file_backup_count,
                encoding="utf-8"
            )

        file_handler.setFormatter(self._formatter())
        logger.addHandler(file_handler)

    def get_logger(self, name: str = None) -> logging.Logger:
        """获取日志记录器"""
        if name is None:
            name = "quoteshare"

        if name not in self._loggers:
            self._loggers[name] = logging.getLogger(name)

        return self._loggers[name]

    def set_level(self, level: str, logger_name: str = None):
        """设置日志级别"""
        log_level = getattr(logging, level.upper(), logging.INFO)

        if logger_name:
            self.get_logger(logger_name).setLevel(log_level)
        else:
            logging.getLogger().setLevel(log_level)

    def get_metrics(self) -> Dict[str, int]:
        """获取日志统计指标"""
        return dict(self._metrics)

    def reset_metrics(self):
        """重置统计指标"""
        self._metrics.clear()


class LogContext:
    """日志上下文管理器"""

    def __init__(self, module: str, operation: str = None,
                 extra_context: Dict[str, Any] = None, **kwargs):
        self.module = module
        self.operation = operation
        self.extra_context = {k: v for k, v in (extra_context or {}).items()
                              if not k.startswith('_')}
        self.extra_context.update({k: v for k, v in kwargs.items() if k in CONTEXT_FIELDS})
        self.start_time = None
        self.logger = logging_manager.get_logger(module)

    def __enter__(self):
        self.start_time = time.time()
        self._log_start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration = time.time() - self.start_time
        if exc_type is not None:
            self._log_error(exc_val, duration, exc_tb)
        else:
            self._log_success(duration)

    def _get_context_str(self) -> str:
        """获取上下文字符串"""
        parts = [self.module]

        if self.operation:
            parts.append(self.operation)

        for key, value in self.extra_context.items():
            parts.append(f"{key}:{value}")

        return ".".join(parts)

    def _log_start(self):
        context = self._get_context_str()
        self.logger.debug(f"[{context}] Starting operation")
        logging_manager._metrics[f"{self.module}.{self.operation}_started"] += 1

    def _log_success(self, duration: float):
        context = self._get_context_str()
        self.logger.info(f"[{context}] Operation completed in {duration:.3f}s")
        logging_manager._metrics[f"{self.module}.{self.operation}_completed"] += 1

    def _log_error(self, error: Exception, duration: float, tb):
        context = self._get_context_str()
        # 业务异常（未找到、未授权等）属于预期结果，不输出堆栈
        if isinstance(error, QuoteAppError):
            self.logger.warning(f"[{context}] Operation failed in {duration:.3f}s: {error}")
        else:
            self.logger.error(f"[{context}] Operation failed in {duration:.3f}s: {error}")
            self.logger.debug(f"[{context}] Traceback: {''.join(traceback.format_tb(tb))}")

        logging_manager._metrics[f"{self.module}.{self.operation}_failed"] += 1


def _extract_context_from_args(func: Callable, args: tuple, kwargs: dict) -> Dict[str, Any]:
    """从函数参数中提取上下文信息"""
    try:
        bound = inspect.signature(func).bind_partial(*args, **kwargs)
    except TypeError:
        return {}
    return {k: v for k, v in bound.arguments.items() if k in CONTEXT_FIELDS and v is not None}


def log_execution(module: str, operation: str = None, extra_context: Dict[str, Any] = None):
    """日志装饰器"""
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            context = _extract_context_from_args(func, args, kwargs)
            with LogContext(module, operation or func.__name__, extra_context, **context):
                return func(*args, **kwargs)

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            context = _extract_context_from_args(func, args, kwargs)
            with LogContext(module, operation or func.__name__, extra_context, **context):
                return await func(*args, **kwargs)

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


def log_performance(module: str, threshold: float = 1.0):
    """性能监控日志装饰器"""
    def decorator(func: Callable) -> Callable:
        def _report(duration: float):
            perf_logger = logging_manager.get_logger(module)
            if duration > threshold:
                perf_logger.warning(f"[{module}] Slow operation: {func.__name__} took {duration:.2f}s")
            else:
                perf_logger.debug(f"[{module}] {func.__name__} completed in {duration:.3f}s")

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                return func(*args, **kwargs)
            finally:
                _report(time.time() - start_time)

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                return await func(*args, **kwargs)
            finally:
                _report(time.time() - start_time)

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


class MetricsLogger:
    """指标记录器"""

    def __init__(self, module: str):
        self.module = module
        self.metrics = defaultdict(lambda: deque(maxlen=1000))

    def increment(self, metric_name: str, value: int = 1):
        """增加计数器"""
        key = f"{self.module}.{metric_name}"
        self.metrics[key].append(value)
        logging_manager._metrics[key] = logging_manager._metrics.get(key, 0) + value

        logging_manager.get_logger(self.module).debug(
            f"[Metrics] {key}: {logging_manager._metrics[key]}")

    def timing(self, metric_name: str, duration: float):
        """记录时间"""
        key = f"{self.module}.{metric_name}_duration"
        self.metrics[key].append(duration)

        logging_manager.get_logger(self.module).debug(f"[Metrics] {key}: {duration:.3f}s")

    def get_metrics(self) -> dict:
        """获取所有指标"""
        result = {}
        for key, values in self.metrics.items():
            if values:
                result[key] = {
                    'count': len(values),
                    'latest': values[-1],
                    'sum': sum(values)
                }
        return result

    def reset(self):
        """重置指标"""
        self.metrics.clear()


# 全局日志管理器实例
logging_manager = LoggingManager()

logger = logging_manager.get_logger()

# 预定义的指标记录器实例
engine_metrics = MetricsLogger("QuoteEngine")
database_metrics = MetricsLogger("Database")
api_metrics = MetricsLogger("API")


class ModuleLoggers:
    """模块专用日志器集合"""

    QuoteEngine = logging_manager.get_logger("QuoteEngine")
    Auth = logging_manager.get_logger("Auth")
    Database = logging_manager.get_logger("Database")
    API = logging_manager.get_logger("API")
    GraphQL = logging_manager.get_logger("GraphQL")
    Config = logging_manager.get_logger("Config")

    @classmethod
    def get_logger(cls, module_name: str):
        """获取指定模块的日志器"""
        return logging_manager.get_logger(module_name)


# 便捷的模块日志器别名
engine_logger = ModuleLoggers.QuoteEngine
auth_logger = ModuleLoggers.Auth
db_logger = ModuleLoggers.Database
api_logger = ModuleLoggers.API
graphql_logger = ModuleLoggers.GraphQL
config_logger = ModuleLoggers.Config


def initialize_logging(use_config_file: bool = True):
    """初始化日志系统"""
    try:
        if use_config_file:
            logging_config = logging_manager.configure_from_config_file()
            logger.info(f"Logging system initialized from config file (level={logging_config.level})")
        else:
            logging_manager.configure()
            logger.info("Logging system initialized with default config")
        return True

    except Exception as e:
        # 配置文件初始化失败时回退到默认配置
        if use_config_file:
            print(f"Failed to initialize logging from config file: {e}, falling back to defaults")
            logging_manager.configure(LogConfig(enable_file=False))
            logger.warning("Logging system initialized with fallback config")
            return True

        raise QuoteAppError(
            f"Failed to initialize logging: {str(e)}",
            ErrorCodes.CONFIG_INVALID_FORMAT
        ) from e
