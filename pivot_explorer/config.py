"""
config.py - Configuration for the pivot explorer
"""
import os
from typing import Dict, Any, Optional
from dataclasses import dataclass, field

from .types.pivot_field import AGGREGATORS


@dataclass
class ExplorerConfig:
    """Configuration for the pivot explorer"""

    # Field defaults
    default_aggregator: str = "avg"

    # Result column naming convention
    column_separator: str = "/"
    placeholder_label: str = "N/A"
    fallback_aggregator_label: str = "value"

    # Session behaviour
    auto_refresh: bool = True

    # Saved query storage
    store_type: str = "memory"  # memory or redis
    redis_config: Dict[str, Any] = field(default_factory=dict)
    saved_query_prefix: str = "saved_query:"
    saved_query_ttl: Optional[int] = None  # None keeps saved queries forever

    # REST API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    link_path: str = "/pivot"

    log_level: str = "INFO"

    def from_env(self) -> 'ExplorerConfig':
        """Load configuration from environment variables"""
        config = ExplorerConfig()

        config.default_aggregator = os.getenv('PIVOT_DEFAULT_AGGREGATOR', config.default_aggregator)
        config.column_separator = os.getenv('PIVOT_COLUMN_SEPARATOR', config.column_separator)
        config.auto_refresh = os.getenv('PIVOT_AUTO_REFRESH', str(config.auto_refresh)).lower() in ('1', 'true', 'yes')

        config.store_type = os.getenv('PIVOT_STORE_TYPE', config.store_type)
        if config.store_type == 'redis':
            config.redis_config = {
                'host': os.getenv('REDIS_HOST', 'localhost'),
                'port': int(os.getenv('REDIS_PORT', '6379')),
                'db': int(os.getenv('REDIS_DB', '0')),
                'password': os.getenv('REDIS_PASSWORD', None)
            }
        ttl = os.getenv('PIVOT_SAVED_QUERY_TTL')
        if ttl:
            config.saved_query_ttl = int(ttl)

        config.api_host = os.getenv('PIVOT_API_HOST', config.api_host)
        config.api_port = int(os.getenv('PIVOT_API_PORT', str(config.api_port)))
        config.log_level = os.getenv('PIVOT_LOG_LEVEL', config.log_level).upper()

        return config

    def validate(self) -> None:
        """Validate configuration settings"""
        errors = []

        if self.default_aggregator not in AGGREGATORS:
            errors.append(f"default_aggregator must be one of {', '.join(AGGREGATORS)}")

        if not self.column_separator:
            errors.append("column_separator must not be empty")

        if self.store_type not in ('memory', 'redis'):
            errors.append("store_type must be 'memory' or 'redis'")

        if self.saved_query_ttl is not None and self.saved_query_ttl <= 0:
            errors.append("saved_query_ttl must be positive")

        if not 0 < self.api_port < 65536:
            errors.append("api_port must be a valid port number")

        if errors:
            raise ValueError(f"Configuration validation errors: {'; '.join(errors)}")


class ConfigManager:
    """Manager for configuration loading and validation"""

    def __init__(self):
        self.config: Optional[ExplorerConfig] = None

    def load_config(self, config_source: Optional[str] = None) -> ExplorerConfig:
        """Load configuration from various sources"""
        if config_source == 'env':
            self.config = ExplorerConfig().from_env()
        else:
            self.config = ExplorerConfig()

        self.config.validate()
        return self.config

    def get_config(self) -> ExplorerConfig:
        """Get the loaded configuration"""
        if self.config is None:
            self.config = self.load_config()
        return self.config


# Global configuration manager
config_manager = ConfigManager()


def get_config() -> ExplorerConfig:
    """Get the global configuration"""
    return config_manager.get_config()
