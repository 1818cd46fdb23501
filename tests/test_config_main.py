"""
Test suite for configuration and main application
"""
import pytest
from pivot_explorer.config import ExplorerConfig, ConfigManager, get_config
from pivot_explorer import main as main_module


def test_explorer_config_creation():
    """Test creation of ExplorerConfig"""
    config = ExplorerConfig()

    # Verify default values are set
    assert config.default_aggregator == "avg"
    assert config.column_separator == "/"
    assert config.placeholder_label == "N/A"
    assert config.auto_refresh is True
    assert config.store_type == "memory"
    assert config.link_path == "/pivot"


def test_explorer_config_validation():
    """Test configuration validation"""
    config = ExplorerConfig()

    # Valid config should not raise an error
    config.validate()

    # Unknown aggregator
    with pytest.raises(ValueError):
        ExplorerConfig(default_aggregator="mode").validate()

    # Unknown store type
    with pytest.raises(ValueError):
        ExplorerConfig(store_type="sqlite").validate()


def test_validation_reports_all_problems():
    """All problems end up in one error message"""
    config = ExplorerConfig(column_separator="", api_port=0, saved_query_ttl=-5)

    with pytest.raises(ValueError) as excinfo:
        config.validate()

    message = str(excinfo.value)
    assert "column_separator" in message
    assert "api_port" in message
    assert "saved_query_ttl" in message


def test_config_from_env(monkeypatch):
    """Test loading configuration from environment variables"""
    monkeypatch.setenv("PIVOT_DEFAULT_AGGREGATOR", "max")
    monkeypatch.setenv("PIVOT_AUTO_REFRESH", "false")
    monkeypatch.setenv("PIVOT_STORE_TYPE", "redis")
    monkeypatch.setenv("REDIS_HOST", "cache.local")
    monkeypatch.setenv("REDIS_PORT", "6380")
    monkeypatch.setenv("PIVOT_SAVED_QUERY_TTL", "3600")
    monkeypatch.setenv("PIVOT_API_PORT", "9000")
    monkeypatch.setenv("PIVOT_LOG_LEVEL", "debug")

    config = ExplorerConfig().from_env()

    assert config.default_aggregator == "max"
    assert config.auto_refresh is False
    assert config.store_type == "redis"
    assert config.redis_config["host"] == "cache.local"
    assert config.redis_config["port"] == 6380
    assert config.saved_query_ttl == 3600
    assert config.api_port == 9000
    assert config.log_level == "DEBUG"


def test_config_manager():
    """Test configuration manager functionality"""
    manager = ConfigManager()

    # Get default config
    config1 = manager.get_config()
    assert isinstance(config1, ExplorerConfig)

    # Get config again (should return same instance)
    config2 = manager.get_config()
    assert config1 is config2


def test_config_manager_rejects_invalid_env(monkeypatch):
    monkeypatch.setenv("PIVOT_STORE_TYPE", "sqlite")

    with pytest.raises(ValueError):
        ConfigManager().load_config("env")


def test_global_config():
    """Test global configuration access"""
    config = get_config()
    assert isinstance(config, ExplorerConfig)


def test_main_starts_server(monkeypatch):
    """main() builds the app from the environment and hands it to uvicorn"""
    calls = {}

    def fake_run(app, host, port):
        calls["app"] = app
        calls["host"] = host
        calls["port"] = port

    monkeypatch.setenv("PIVOT_API_PORT", "8123")
    monkeypatch.setattr(main_module.uvicorn, "run", fake_run)

    main_module.main()

    assert calls["port"] == 8123
    assert calls["host"] == "0.0.0.0"
    assert any(getattr(route, "path", None) == "/health" for route in calls["app"].routes)
