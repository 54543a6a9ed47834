"""
Unit tests for configuration manager
"""

import json

import pytest

from utils.config_manager import UnifiedConfigManager, DatabaseConfig
from utils.exceptions import ConfigurationError


@pytest.mark.unit
class TestConfigManager:
    """Test cases for UnifiedConfigManager class"""

    @pytest.fixture
    def config_dir(self, tmp_path):
        """Config directory with two files merged in name order"""
        (tmp_path / "api_config.json").write_text(json.dumps({
            "api_config": {"host": "127.0.0.1", "port": 8001, "cors_origins": ["http://localhost:3000"],
                           "rate_limit_per_minute": 30}
        }))
        (tmp_path / "database_config.json").write_text(json.dumps({
            "database_config": {"url": "sqlite+aiosqlite:///:memory:", "echo": True}
        }))
        (tmp_path / "auth_config.json").write_text(json.dumps({
            "auth_config": {"jwt_secret": "from-file", "token_expire_minutes": 15, "bcrypt_rounds": 4}
        }))
        return tmp_path

    @pytest.fixture
    def config_manager(self, config_dir, monkeypatch):
        for env_name in ("QUOTES_DATABASE_URL", "QUOTES_JWT_SECRET", "QUOTES_LOG_LEVEL"):
            monkeypatch.delenv(env_name, raising=False)
        return UnifiedConfigManager(str(config_dir))

    def test_get_nested(self, config_manager):
        assert config_manager.get_nested("api_config.host") == "127.0.0.1"
        assert config_manager.get_nested("api_config.missing", "default") == "default"
        assert config_manager.get_nested("nope.nope") is None
        assert "database_config" in config_manager

    def test_typed_configs(self, config_manager):
        api = config_manager.get_api_config()
        assert api.port == 8001
        assert api.rate_limit_per_minute == 30
        assert api.workers == 1

        db = config_manager.get_database_config()
        assert db.url == "sqlite+aiosqlite:///:memory:"
        assert db.echo is True

        auth = config_manager.get_auth_config()
        assert auth.jwt_secret == "from-file"
        assert auth.jwt_algorithm == "HS256"
        assert auth.token_expire_minutes == 15

    def test_defaults_for_missing_sections(self, config_manager):
        logging_config = config_manager.get_logging_config()
        assert logging_config.level == "INFO"
        assert logging_config.modules == {}

    def test_set_nested_clears_typed_cache(self, config_manager):
        assert config_manager.get_api_config().port == 8001

        config_manager.set_nested("api_config.port", 9000)

        assert config_manager.get_api_config().port == 9000

    def test_env_overrides(self, config_dir, monkeypatch):
        monkeypatch.setenv("QUOTES_DATABASE_URL", "postgresql+asyncpg://u:p@db/quotes")
        monkeypatch.setenv("QUOTES_JWT_SECRET", "from-env")

        manager = UnifiedConfigManager(str(config_dir))

        assert manager.get_database_config().url == "postgresql+asyncpg://u:p@db/quotes"
        assert manager.get_auth_config().jwt_secret == "from-env"

    def test_update_from_dict(self, config_manager):
        config_manager.update_from_dict({"database_config": {"url": "sqlite+aiosqlite:///other.db"}})
        assert config_manager.get_database_config().url == "sqlite+aiosqlite:///other.db"
        assert config_manager.get_database_config().echo is False

    def test_missing_directory(self, tmp_path):
        with pytest.raises(ConfigurationError):
            UnifiedConfigManager(str(tmp_path / "does-not-exist"))

    def test_empty_directory(self, tmp_path):
        with pytest.raises(ConfigurationError):
            UnifiedConfigManager(str(tmp_path))

    def test_invalid_json(self, tmp_path):
        (tmp_path / "broken.json").write_text("{not json")
        with pytest.raises(ConfigurationError):
            UnifiedConfigManager(str(tmp_path))

    def test_shipped_config_loads(self):
        from utils.path_utils import CONFIG_DIR

        manager = UnifiedConfigManager(str(CONFIG_DIR))
        assert manager.get_database_config().url.startswith("sqlite+aiosqlite")
        assert isinstance(manager.get_database_config(), DatabaseConfig)
        assert "QuoteEngine" in manager.get_logging_config().modules
