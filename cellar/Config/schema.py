"""
Configuration schema for Cellar.

Defines all configurable options with metadata for validation,
documentation, and defaults.
"""

from enum import Enum
from typing import List, Any
from dataclasses import dataclass


class ConfigType(Enum):
    """Configuration value types."""
    STRING = "string"
    SECRET = "secret"      # Masked in output, never logged
    INTEGER = "integer"
    BOOLEAN = "boolean"
    PATH = "path"          # File system path
    LIST = "list"          # Comma-separated values


class ConfigCategory(Enum):
    """Configuration categories for grouping."""
    STORAGE = "storage"
    SERVER = "server"
    SECURITY = "security"


@dataclass
class ConfigField:
    """Definition of a configuration field."""
    key: str
    description: str
    config_type: ConfigType
    category: ConfigCategory
    required: bool = False
    default: Any = None
    env_var: str = None          # Override env var name (defaults to key)
    options: List[str] = None    # For enumerated types
    sensitive: bool = False
    warn_on_default: bool = False  # Log a warning when the default is in use

    def __post_init__(self):
        if self.env_var is None:
            self.env_var = self.key
        if self.config_type == ConfigType.SECRET:
            self.sensitive = True


DEFAULT_JWT_SECRET = "your-secret-key-change-in-production"
DEFAULT_ADMIN_PASSWORD = "admin123"


# ==================== Schema Definition ====================

CONFIG_SCHEMA: List[ConfigField] = [
    # === Storage ===
    ConfigField(
        key="SERVE_DIR",
        description="Directory tree exposed through the API (the sandbox root)",
        config_type=ConfigType.PATH,
        category=ConfigCategory.STORAGE,
        default="./data",
    ),
    ConfigField(
        key="DB_PATH",
        description="SQLite file holding user accounts",
        config_type=ConfigType.PATH,
        category=ConfigCategory.STORAGE,
        default="cellar.db",
    ),

    # === Server ===
    ConfigField(
        key="HOST",
        description="Interface the HTTP server binds to",
        config_type=ConfigType.STRING,
        category=ConfigCategory.SERVER,
        default="0.0.0.0",
    ),
    ConfigField(
        key="PORT",
        description="Port the HTTP server listens on",
        config_type=ConfigType.INTEGER,
        category=ConfigCategory.SERVER,
        default=8080,
    ),
    ConfigField(
        key="CORS_ORIGINS",
        description="Comma-separated list of allowed CORS origins",
        config_type=ConfigType.LIST,
        category=ConfigCategory.SERVER,
        default="*",
    ),
    ConfigField(
        key="LOG_LEVEL",
        description="Logging level for the cellar loggers",
        config_type=ConfigType.STRING,
        category=ConfigCategory.SERVER,
        default="INFO",
        options=["DEBUG", "INFO", "WARNING", "ERROR"],
    ),

    # === Security ===
    ConfigField(
        key="JWT_SECRET",
        description="Secret used to sign bearer tokens",
        config_type=ConfigType.SECRET,
        category=ConfigCategory.SECURITY,
        default=DEFAULT_JWT_SECRET,
        warn_on_default=True,
    ),
    ConfigField(
        key="ADMIN_PASSWORD",
        description="Password of the admin account created on first start",
        config_type=ConfigType.SECRET,
        category=ConfigCategory.SECURITY,
        default=DEFAULT_ADMIN_PASSWORD,
        warn_on_default=True,
    ),
]
