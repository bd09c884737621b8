import copy
import os
import secrets
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging
from dotenv import load_dotenv
from print_analytics.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

SUPPORTED_BACKENDS = ("sqlite", "json")
SUPPORTED_ENVIRONMENTS = ("development", "production", "testing")

def get_project_root() -> Path:
    """Get the project root directory (two levels up from this file)"""
    return Path(__file__).parent.parent.parent

def get_config_path() -> Path:
    """Get the configuration directory path"""
    return get_project_root() / "config"

def get_default_config() -> Dict[str, Any]:
    """Get default configuration values"""
    return {
        "server": {
            "host": "0.0.0.0",
            "port": 3000,
            "title": "3D Printing Analytics API",
            "description": "Job, feedback and project tracking for the 3D printing lab",
            "environment": "production",
        },
        "storage": {
            "backend": "sqlite",
            "data_dir": "data",
            "database_url": None,
            "auth_log_limit": 100,
            "backup_on_write": False,
        },
        "auth": {
            "jwt_secret": None,
            "jwt_algorithm": "HS256",
            "token_ttl_seconds": 3600,
            "admin_password_hash": None,
        },
        "rate_limits": {
            "api": {"max_calls": 100, "window_seconds": 900},
            "auth": {"max_calls": 5, "window_seconds": 900},
        },
        "cors": {
            "allow_origins": ["*"],
        },
        "logging": {
            "level": "INFO",
            "log_dir": "logs",
            "file_name": "print-analytics.log",
            "max_megabytes": 10,
            "backup_count": 5,
        },
        "client": {
            "api_base_url": "http://localhost:3000/api",
            "cache_dir": "client_cache",
            "sync_interval_seconds": 30,
            "request_timeout": 10.0,
        },
    }

# Environment variable -> (section, key, converter)
ENV_OVERRIDES = {
    "HOST": ("server", "host", str),
    "PORT": ("server", "port", int),
    "APP_ENV": ("server", "environment", str),
    "STORAGE_BACKEND": ("storage", "backend", str),
    "DATA_DIR": ("storage", "data_dir", str),
    "DATABASE_URL": ("storage", "database_url", str),
    "JWT_SECRET": ("auth", "jwt_secret", str),
    "ADMIN_PASSWORD_HASH": ("auth", "admin_password_hash", str),
    "LOG_LEVEL": ("logging", "level", str),
    "LOG_DIR": ("logging", "log_dir", str),
}

def merge_config(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``overrides`` into a copy of ``base``"""
    merged = copy.deepcopy(base)
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged

def apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides on top of file configuration"""
    for env_name, (section, key, converter) in ENV_OVERRIDES.items():
        raw = os.environ.get(env_name)
        if raw is None or raw == "":
            continue
        try:
            config.setdefault(section, {})[key] = converter(raw)
        except ValueError:
            raise ConfigurationError(f"Invalid value for {env_name}: {raw!r}")
    return config

def load_config(config_file: Optional[Path] = None, use_env: bool = True) -> Dict[str, Any]:
    """Load configuration from YAML and environment with fallbacks"""
    if use_env:
        env_path = get_project_root() / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            logger.info("Loaded environment variables from .env file")

    if config_file is None:
        config_file = get_config_path() / "config.yaml"

    # Start with default configuration
    config = get_default_config()

    try:
        if config_file.exists():
            with open(config_file, 'r', encoding='utf-8') as f:
                file_config = yaml.safe_load(f) or {}

            config = merge_config(config, file_config)
            logger.info(f"Loaded configuration from {config_file}")
        else:
            logger.warning(f"Configuration file not found at {config_file}, using defaults")

    except yaml.YAMLError as e:
        logger.error(f"Error parsing configuration file: {e}")
        raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
    except OSError as e:
        logger.error(f"Error loading configuration: {e}")
        raise ConfigurationError(f"Failed to load configuration: {e}")

    if use_env:
        config = apply_env_overrides(config)

    return finalize_config(config)

def build_config(overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Build a validated configuration from defaults plus explicit overrides"""
    return finalize_config(merge_config(get_default_config(), overrides or {}))

def finalize_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Validate configuration and fill in generated values"""
    try:
        validate_config(config)
    except ValueError as e:
        raise ConfigurationError(f"Invalid configuration: {e}")

    if not config["auth"].get("jwt_secret"):
        logger.warning("JWT_SECRET not configured, using a random per-process secret")
        config["auth"]["jwt_secret"] = secrets.token_urlsafe(48)

    if not config["auth"].get("admin_password_hash"):
        logger.warning("ADMIN_PASSWORD_HASH not configured, admin login is disabled")

    return config

def validate_config(config: Dict[str, Any]) -> None:
    """Validate configuration structure and values"""
    for section in ("server", "storage", "auth", "rate_limits"):
        if section not in config:
            raise ValueError(f"Missing '{section}' section in configuration")

    server_config = config["server"]
    if "host" not in server_config:
        raise ValueError("Missing 'host' in server configuration")

    port = server_config.get("port")
    if not isinstance(port, int) or port < 1 or port > 65535:
        raise ValueError(f"Invalid port number: {port}")

    environment = server_config.get("environment")
    if environment not in SUPPORTED_ENVIRONMENTS:
        raise ValueError(f"Invalid environment: {environment}")

    backend = config["storage"].get("backend")
    if backend not in SUPPORTED_BACKENDS:
        raise ValueError(f"Unsupported storage backend: {backend}")

    auth_log_limit = config["storage"].get("auth_log_limit")
    if not isinstance(auth_log_limit, int) or auth_log_limit < 1:
        raise ValueError(f"Invalid auth_log_limit: {auth_log_limit}")

    ttl = config["auth"].get("token_ttl_seconds")
    if not isinstance(ttl, int) or ttl < 1:
        raise ValueError(f"Invalid token_ttl_seconds: {ttl}")

    for name, limit in config["rate_limits"].items():
        if not isinstance(limit, dict):
            raise ValueError(f"Rate limit '{name}' must be a mapping")
        for field in ("max_calls", "window_seconds"):
            value = limit.get(field)
            if not isinstance(value, int) or value < 1:
                raise ValueError(f"Invalid {field} for rate limit '{name}': {value}")
