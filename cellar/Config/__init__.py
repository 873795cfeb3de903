"""
Cellar configuration.

Every setting is declared in schema.py. Values come from the process
environment first, then the .env file, then the schema default; secrets
are masked whenever values are listed.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from cellar.Config.schema import (
    CONFIG_SCHEMA,
    ConfigField,
    ConfigType,
    ConfigCategory,
)
from cellar.shared.gate import GateLogger

_log = GateLogger.get("Config")


ENV_FILE = Path.cwd() / ".env"


class ConfigManager:
    """
    Manages Cellar configuration.

    Priority order:
    1. Environment variables
    2. .env file (loaded without overriding the environment)
    3. Schema defaults
    """

    def __init__(self, env_file: Optional[Path] = None):
        self._env_file = Path(env_file) if env_file else ENV_FILE
        self._cache: Dict[str, Any] = {}
        self._defaulted: List[str] = []
        self._loaded = False
        self._load()

    def _load(self):
        """Load configuration from all sources."""
        load_dotenv(self._env_file, override=False)

        self._cache = {}
        self._defaulted = []
        for field in CONFIG_SCHEMA:
            value = os.environ.get(field.env_var)

            if value is None or value == "":
                value = field.default
                self._defaulted.append(field.key)

            self._cache[field.key] = self._convert_type(value, field.config_type)

        self._loaded = True

    def _convert_type(self, value: Any, config_type: ConfigType) -> Any:
        """Convert value to appropriate type."""
        if value is None:
            return None

        try:
            if config_type == ConfigType.INTEGER:
                return int(value)
            elif config_type == ConfigType.BOOLEAN:
                if isinstance(value, bool):
                    return value
                return str(value).lower() in ("true", "1", "yes", "on")
            elif config_type == ConfigType.LIST:
                if isinstance(value, list):
                    return value
                return [v.strip() for v in str(value).split(",") if v.strip()]
            else:
                return str(value) if value else None
        except (ValueError, TypeError):
            _log.warning(f"Could not convert config value to {config_type.value}; using raw value")
            return value

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        if not self._loaded:
            self._load()
        return self._cache.get(key, default)

    def is_default(self, key: str) -> bool:
        """True when the value came from the schema default."""
        return key in self._defaulted

    def get_all(self, include_secrets: bool = False) -> Dict[str, Any]:
        """Get all configuration values."""
        result = {}
        for field in CONFIG_SCHEMA:
            value = self._cache.get(field.key)
            if field.sensitive and not include_secrets:
                result[field.key] = "****" if value else None
            else:
                result[field.key] = value
        return result

    def get_warnings(self) -> List[str]:
        """Keys that should be set explicitly but are running on defaults."""
        return [
            field.key
            for field in CONFIG_SCHEMA
            if field.warn_on_default and self.is_default(field.key)
        ]

    def validate(self) -> List[str]:
        """Return a list of validation errors (empty when valid)."""
        errors = []
        for field in CONFIG_SCHEMA:
            value = self._cache.get(field.key)
            if field.required and (value is None or value == ""):
                errors.append(f"Required config missing: {field.key}")
                continue
            if value and field.options and str(value).upper() not in field.options:
                errors.append(f"Invalid option for {field.key}: {value}")
            if field.config_type == ConfigType.INTEGER and not isinstance(value, int):
                errors.append(f"Invalid integer for {field.key}: {value}")
        return errors


# Global instance
_manager: Optional[ConfigManager] = None


def get_manager() -> ConfigManager:
    """Get or create the global ConfigManager."""
    global _manager
    if _manager is None:
        _manager = ConfigManager()
    return _manager


def reload(env_file: Optional[Path] = None) -> ConfigManager:
    """Reload configuration from the environment and .env file."""
    global _manager
    _manager = ConfigManager(env_file)
    return _manager


# Convenience functions
def get(key: str, default: Any = None) -> Any:
    """Get a config value."""
    return get_manager().get(key, default)


def is_default(key: str) -> bool:
    """Check whether a key is running on its schema default."""
    return get_manager().is_default(key)


def get_all(include_secrets: bool = False) -> Dict:
    """Get all config values."""
    return get_manager().get_all(include_secrets)


__all__ = [
    "ConfigManager",
    "ConfigField",
    "ConfigType",
    "ConfigCategory",
    "get_manager",
    "reload",
    "get",
    "is_default",
    "get_all",
]
