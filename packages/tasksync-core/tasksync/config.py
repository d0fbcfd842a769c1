"""
Tasksync Configuration

Loads settings from ~/.tasksync/config.yaml with environment variable overrides.
Covers the local cache, the remote API, and the sync engine's retry policy.
"""

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit, urlunsplit
import os
import logging

logger = logging.getLogger(__name__)

try:
    import yaml
    HAS_YAML = True
except ImportError:
    HAS_YAML = False

CONFIG_DIR = Path.home() / ".tasksync"
CONFIG_FILE = CONFIG_DIR / "config.yaml"


@dataclass
class CacheConfig:
    """Local cache settings."""

    type: str = "sqlite"  # "sqlite" or "memory"
    sqlite_path: str = "~/.tasksync/cache.db"


@dataclass
class ApiConfig:
    """Remote task service settings."""

    base_url: str = "http://localhost:3000/api"
    request_timeout: float = 15.0


@dataclass
class SyncConfig:
    """Reconciliation retry policy."""

    retry_delay: float = 10.0
    max_retries: int = 3


@dataclass
class ConnectivityConfig:
    """Connectivity probe settings."""

    enabled: bool = True
    probe_interval: float = 30.0


@dataclass
class TasksyncConfig:
    """
    Complete Tasksync configuration.

    Loaded from ~/.tasksync/config.yaml with environment variable overrides.
    """

    cache: CacheConfig = field(default_factory=CacheConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    connectivity: ConnectivityConfig = field(default_factory=ConnectivityConfig)

    # Convenience accessors
    @property
    def base_url(self) -> str:
        return self.api.base_url

    @property
    def retry_delay(self) -> float:
        return self.sync.retry_delay

    @property
    def max_retries(self) -> int:
        return self.sync.max_retries

    def to_dict(self) -> dict:
        """Convert to dictionary for display (masks credentials in the API URL)."""
        result = asdict(self)

        parts = urlsplit(result["api"]["base_url"])
        if parts.password:
            netloc = f"{parts.username}:***@{parts.hostname}"
            if parts.port:
                netloc += f":{parts.port}"
            result["api"]["base_url"] = urlunsplit(parts._replace(netloc=netloc))

        return result


def _parse_cache_config(data: dict) -> CacheConfig:
    """Parse cache configuration from YAML data."""
    cache_data = data.get("cache", {})

    sqlite_config = cache_data.get("sqlite", {})

    return CacheConfig(
        type=cache_data.get("type", "sqlite"),
        sqlite_path=sqlite_config.get("path", "~/.tasksync/cache.db"),
    )


def _parse_api_config(data: dict) -> ApiConfig:
    """Parse API configuration from YAML data."""
    api_data = data.get("api", {})

    base_url = api_data.get("base_url", "http://localhost:3000/api")

    # Check for URL from environment variable reference
    url_env = api_data.get("base_url_env")
    if url_env and os.environ.get(url_env):
        base_url = os.environ[url_env]

    return ApiConfig(
        base_url=base_url.rstrip("/"),
        request_timeout=float(api_data.get("request_timeout", 15.0)),
    )


def _parse_sync_config(data: dict) -> SyncConfig:
    """Parse sync configuration from YAML data."""
    sync_data = data.get("sync", {})

    return SyncConfig(
        retry_delay=float(sync_data.get("retry_delay", 10.0)),
        max_retries=int(sync_data.get("max_retries", 3)),
    )


def _parse_connectivity_config(data: dict) -> ConnectivityConfig:
    connectivity_data = data.get("connectivity", {})

    return ConnectivityConfig(
        enabled=bool(connectivity_data.get("enabled", True)),
        probe_interval=float(connectivity_data.get("probe_interval", 30.0)),
    )


def load_config(config_path: Optional[Path] = None) -> TasksyncConfig:
    """
    Load configuration from file with environment variable overrides.

    Args:
        config_path: Optional path to config file. Defaults to ~/.tasksync/config.yaml

    Returns:
        TasksyncConfig instance
    """
    config_file = config_path or CONFIG_FILE
    config = TasksyncConfig()

    # Load from YAML if available
    if HAS_YAML and config_file.exists():
        try:
            with open(config_file, 'r') as f:
                data = yaml.safe_load(f) or {}

            config.cache = _parse_cache_config(data)
            config.api = _parse_api_config(data)
            config.sync = _parse_sync_config(data)
            config.connectivity = _parse_connectivity_config(data)

        except yaml.YAMLError as e:
            logger.warning(f"Could not parse config file at {config_file}: {e}")
        except (TypeError, ValueError) as e:
            logger.warning(f"Invalid value in config file {config_file}: {e}")

    # Environment variable overrides
    if os.environ.get("TASKSYNC_API_URL"):
        config.api.base_url = os.environ["TASKSYNC_API_URL"].rstrip("/")

    if os.environ.get("TASKSYNC_CACHE_TYPE"):
        config.cache.type = os.environ["TASKSYNC_CACHE_TYPE"]

    if os.environ.get("TASKSYNC_CACHE_PATH"):
        config.cache.type = "sqlite"
        config.cache.sqlite_path = os.environ["TASKSYNC_CACHE_PATH"]

    if os.environ.get("TASKSYNC_REQUEST_TIMEOUT"):
        config.api.request_timeout = float(os.environ["TASKSYNC_REQUEST_TIMEOUT"])

    if os.environ.get("TASKSYNC_RETRY_DELAY"):
        config.sync.retry_delay = float(os.environ["TASKSYNC_RETRY_DELAY"])

    if os.environ.get("TASKSYNC_MAX_RETRIES"):
        config.sync.max_retries = int(os.environ["TASKSYNC_MAX_RETRIES"])

    return config


def save_config(config: TasksyncConfig, config_path: Optional[Path] = None) -> None:
    """
    Save configuration to file.

    Args:
        config: TasksyncConfig instance to save
        config_path: Optional path to config file. Defaults to ~/.tasksync/config.yaml
    """
    if not HAS_YAML:
        raise RuntimeError("PyYAML not installed. Run: pip install pyyaml")

    config_file = config_path or CONFIG_FILE

    # Ensure config directory exists
    config_file.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "cache": {
            "type": config.cache.type,
        },
        "api": {
            "base_url": config.api.base_url,
            "request_timeout": config.api.request_timeout,
        },
        "sync": {
            "retry_delay": config.sync.retry_delay,
            "max_retries": config.sync.max_retries,
        },
        "connectivity": {
            "enabled": config.connectivity.enabled,
            "probe_interval": config.connectivity.probe_interval,
        },
    }

    if config.cache.type == "sqlite":
        data["cache"]["sqlite"] = {"path": config.cache.sqlite_path}

    with open(config_file, 'w') as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    # Secure permissions (readable only by owner)
    config_file.chmod(0o600)

    logger.info(f"Configuration saved to {config_file}")


def ensure_config_dir() -> Path:
    """Ensure config directory exists and return its path."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    return CONFIG_DIR


# Cached config instance
_config: Optional[TasksyncConfig] = None


def get_config() -> TasksyncConfig:
    """Get cached config instance, loading if needed."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> TasksyncConfig:
    """Force reload config from file."""
    global _config
    _config = load_config()
    return _config
