"""
Cache adapter factory.

Creates the appropriate adapter based on configuration.
"""

import logging

from tasksync.db.interface import CacheAdapter

logger = logging.getLogger(__name__)

# Global adapter instance (singleton pattern)
_adapter: CacheAdapter | None = None


def get_adapter(config=None) -> CacheAdapter:
    """
    Get or create the cache adapter based on configuration.

    Uses singleton pattern - returns same adapter instance on subsequent calls.

    Args:
        config: Optional TasksyncConfig. If not provided, loads from default location.

    Returns:
        CacheAdapter instance (SQLiteCache or MemoryCache)

    Raises:
        ValueError: If cache configuration is invalid
    """
    global _adapter

    if _adapter is not None:
        return _adapter

    # Load config if not provided
    if config is None:
        from tasksync.config import load_config
        config = load_config()

    cache_type = config.cache.type.lower()

    if cache_type == "sqlite":
        from tasksync.db.sqlite import SQLiteCache

        path = config.cache.sqlite_path
        _adapter = SQLiteCache(path)
        logger.info(f"Using SQLite cache: {path}")

    elif cache_type == "memory":
        from tasksync.db.memory import MemoryCache

        _adapter = MemoryCache()
        logger.info("Using in-memory cache (nothing survives restarts)")

    else:
        raise ValueError(
            f"Unknown cache type: {cache_type}. "
            "Use 'sqlite' or 'memory'."
        )

    return _adapter


async def init_adapter(config=None) -> CacheAdapter:
    """
    Initialize the cache adapter and connect.

    Args:
        config: Optional TasksyncConfig

    Returns:
        Connected CacheAdapter instance
    """
    adapter = get_adapter(config)
    await adapter.connect()
    return adapter


async def close_adapter() -> None:
    """Close the global adapter connection."""
    global _adapter

    if _adapter is not None:
        await _adapter.close()
        _adapter = None


def reset_adapter() -> None:
    """
    Reset the global adapter instance.

    Useful for testing or when configuration changes.
    """
    global _adapter
    _adapter = None
