"""
统一的配置管理模块
整合底层配置操作和应用层类型安全访问
"""

import json
import logging
import os
from typing import Any, Optional, Dict, List, TypeVar
from dataclasses import dataclass, field
from pathlib import Path

from .exceptions import ConfigurationError, ErrorCodes
from .path_utils import CONFIG_DIR

# 获取配置专用日志器
config_logger = logging.getLogger("Config")

# 为泛型类型定义一个TypeVar
T = TypeVar('T')

# 环境变量覆盖项（环境变量名 -> 配置路径）
ENV_OVERRIDES = {
    'QUOTES_DATABASE_URL': 'database_config.url',
    'QUOTES_JWT_SECRET': 'auth_config.jwt_secret',
    'QUOTES_LOG_LEVEL': 'logging_config.level',
}

# ============================================================================
# 配置数据类型定义
# ============================================================================

@dataclass
class LoggingModuleConfig:
    """模块日志配置"""
    level: str = "INFO"
    enabled: bool = True

@dataclass
class FileLoggingConfig:
    """文件日志配置"""
    enabled: bool = True
    directory: str = "log"
    filename: str = "sys.log"
    rotation: Optional[Dict[str, Any]] = None

@dataclass
class ConsoleLoggingConfig:
    """控制台日志配置"""
    enabled: bool = True

@dataclass
class LoggingConfig:
    """完整日志配置"""
    level: str = "INFO"
    format: str = "[%(levelname)s][%(asctime)s][%(filename)s:%(lineno)d] - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    file_config: FileLoggingConfig = field(default_factory=FileLoggingConfig)
    console_config: ConsoleLoggingConfig = field(default_factory=ConsoleLoggingConfig)
    modules: Dict[str, LoggingModuleConfig] = field(default_factory=dict)

@dataclass
class DatabaseConfig:
    """数据库配置"""
    url: str = "sqlite+aiosqlite:///data/quotes.db"
    echo: bool = False
    isolation_level: Optional[str] = None

@dataclass
class ApiConfig:
    """API配置"""
    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 1
    reload: bool = False
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    rate_limit_per_minute: int = 100
    graphiql: bool = True

@dataclass
class AuthConfig:
    """认证配置"""
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    token_expire_minutes: int = 60 * 24
    bcrypt_rounds: int = 12


# ============================================================================
# 统一配置管理器
# ============================================================================

class UnifiedConfigManager:
    """统一配置管理器 - 整合底层操作和应用层抽象"""

    def __init__(self, config_dir: Optional[str] = None):
        self._config_dir = Path(config_dir or os.getenv('QUOTES_CONFIG_DIR') or CONFIG_DIR)
        self._config_data: Dict[str, Any] = {}

        # 类型化配置缓存
        self._typed_cache: Dict[str, Any] = {}

        # 初始化配置
        self._load_config()

    def _load_config(self) -> None:
        """加载配置文件"""
        merged_config = {}
        try:
            config_logger.info(f"Loading configuration from directory: {self._config_dir}")

            if not self._config_dir.is_dir():
                raise ConfigurationError(
                    f"Configuration path is not a directory: {self._config_dir}",
                    ErrorCodes.CONFIG_NOT_FOUND
                )

            # 按文件名排序加载，确保加载顺序一致
            config_files = sorted(self._config_dir.glob('*.json'))
            if not config_files:
                raise ConfigurationError(
                    f"No configuration files (.json) found in: {self._config_dir}",
                    ErrorCodes.CONFIG_NOT_FOUND
                )

            for config_file in config_files:
                try:
                    with open(config_file, 'r', encoding='utf-8') as f:
                        data = json.load(f)
                        merged_config.update(data)
                    config_logger.debug(f"Loaded and merged: {config_file.name}")
                except json.JSONDecodeError as e:
                    raise ConfigurationError(
                        f"Invalid JSON in configuration file {config_file.name}: {e}",
                        ErrorCodes.CONFIG_INVALID_FORMAT
                    ) from e

            self._config_data = merged_config
            self._apply_env_overrides()
            config_logger.info(f"Configuration loaded and merged from {len(config_files)} files.")
            # 清除类型化缓存
            self._typed_cache.clear()

        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(
                f"Failed to load configuration: {e}",
                ErrorCodes.CONFIG_INVALID_FORMAT
            ) from e

    def _apply_env_overrides(self) -> None:
        """应用环境变量覆盖"""
        for env_name, path in ENV_OVERRIDES.items():
            value = os.getenv(env_name)
            if value:
                self.set_nested(path, value)
                config_logger.debug(f"Config {path} overridden by {env_name}")

    # ========================================================================
    # 底层访问方法
    # ========================================================================

    def get(self, key: str, default: Optional[T] = None) -> Optional[T]:
        """获取配置值"""
        return self._config_data.get(key, default)

    def get_nested(self, path: str, default: Optional[T] = None) -> Optional[T]:
        """获取嵌套配置值，支持点分隔路径"""
        keys = path.split('.')
        current = self._config_data

        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default

        return current

    def set(self, key: str, value: Any) -> None:
        """设置配置值"""
        self._config_data[key] = value
        self._typed_cache.pop(key, None)

    def set_nested(self, path: str, value: Any) -> None:
        """设置嵌套配置值"""
        keys = path.split('.')
        current = self._config_data

        for key in keys[:-1]:
            if key not in current:
                current[key] = {}
            current = current[key]

        current[keys[-1]] = value
        self._typed_cache.pop(keys[0], None)

    def __contains__(self, key: str) -> bool:
        """支持 'in' 操作符"""
        return key in self._config_data

    def __getitem__(self, key: str) -> Any:
        """支持字典式访问"""
        return self._config_data[key]

    # ========================================================================
    # 类型安全访问方法
    # ========================================================================

    def get_logging_config(self) -> LoggingConfig:
        """获取日志配置（类型安全）"""
        if 'logging_config' not in self._typed_cache:
            try:
                logging_data = self.get_nested('logging_config', {})

                # 解析文件日志配置
                file_data = logging_data.get('file_config', {})
                file_config = FileLoggingConfig(
                    enabled=file_data.get('enabled', True),
                    directory=file_data.get('directory', 'log'),
                    filename=file_data.get('filename', 'sys.log'),
                    rotation=file_data.get('rotation')
                )

                console_data = logging_data.get('console_config', {})
                console_config = ConsoleLoggingConfig(
                    enabled=console_data.get('enabled', True)
                )

                # 解析模块配置
                modules = {}
                for module_name, module_data in logging_data.get('modules', {}).items():
                    modules[module_name] = LoggingModuleConfig(
                        level=module_data.get('level', 'INFO'),
                        enabled=module_data.get('enabled', True)
                    )

                self._typed_cache['logging_config'] = LoggingConfig(
                    level=logging_data.get('level', 'INFO'),
                    file_config=file_config,
                    console_config=console_config,
                    modules=modules
                )
            except Exception as e:
                config_logger.error(f"Failed to parse logging config: {e}")
                self._typed_cache['logging_config'] = LoggingConfig()

        return self._typed_cache['logging_config']

    def get_database_config(self) -> DatabaseConfig:
        """获取数据库配置（类型安全）"""
        if 'database_config' not in self._typed_cache:
            try:
                db_data = self.get_nested('database_config', {})
                self._typed_cache['database_config'] = DatabaseConfig(
                    url=db_data.get('url', DatabaseConfig.url),
                    echo=db_data.get('echo', False),
                    isolation_level=db_data.get('isolation_level')
                )
            except Exception as e:
                config_logger.error(f"Failed to parse database config: {e}")
                self._typed_cache['database_config'] = DatabaseConfig()

        return self._typed_cache['database_config']

    def get_api_config(self) -> ApiConfig:
        """获取API配置（类型安全）"""
        if 'api_config' not in self._typed_cache:
            try:
                api_data = self.get_nested('api_config', {})
                self._typed_cache['api_config'] = ApiConfig(
                    enabled=api_data.get('enabled', True),
                    host=api_data.get('host', '0.0.0.0'),
                    port=api_data.get('port', 8000),
                    workers=api_data.get('workers', 1),
                    reload=api_data.get('reload', False),
                    cors_origins=api_data.get('cors_origins', ['*']),
                    rate_limit_per_minute=api_data.get('rate_limit_per_minute', 100),
                    graphiql=api_data.get('graphiql', True)
                )
            except Exception as e:
                config_logger.error(f"Failed to parse api config: {e}")
                self._typed_cache['api_config'] = ApiConfig()

        return self._typed_cache['api_config']

    def get_auth_config(self) -> AuthConfig:
        """获取认证配置（类型安全）"""
        if 'auth_config' not in self._typed_cache:
            try:
                auth_data = self.get_nested('auth_config', {})
                jwt_secret = auth_data.get('jwt_secret', AuthConfig.jwt_secret)

                # 记录时遮蔽敏感信息
                config_logger.debug(f"Loading auth config - JWT secret: {'*' * len(jwt_secret)}")

                self._typed_cache['auth_config'] = AuthConfig(
                    jwt_secret=jwt_secret,
                    jwt_algorithm=auth_data.get('jwt_algorithm', 'HS256'),
                    token_expire_minutes=int(auth_data.get('token_expire_minutes', 60 * 24)),
                    bcrypt_rounds=int(auth_data.get('bcrypt_rounds', 12))
                )
            except Exception as e:
                config_logger.error(f"Failed to parse auth config: {e}")
                self._typed_cache['auth_config'] = AuthConfig()

        return self._typed_cache['auth_config']

    # ========================================================================
    # 便捷方法
    # ========================================================================

    def to_dict(self) -> Dict[str, Any]:
        """返回配置数据的字典副本"""
        return self._config_data.copy()

    def update_from_dict(self, config_dict: Dict[str, Any]) -> None:
        """从字典更新配置"""
        self._config_data.update(config_dict)
        self._typed_cache.clear()
        config_logger.info("Configuration updated from dict")

    def clear_cache(self) -> None:
        """清除类型化配置缓存"""
        self._typed_cache.clear()
        config_logger.debug("Configuration cache cleared")


# ============================================================================
# 全局单例实例
# ============================================================================

config_manager = UnifiedConfigManager()
