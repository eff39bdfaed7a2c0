"""
Core module - Configuration, database, auth context, and utilities.
"""

from seniorhelp.core.config import get_settings, settings
from seniorhelp.core.database import Base, close_db, get_db, init_db
from seniorhelp.core.redis import close_redis, init_redis, is_redis_available
from seniorhelp.core.security import decode_token

__all__ = [
    # Config
    "settings",
    "get_settings",
    # Database
    "Base",
    "get_db",
    "init_db",
    "close_db",
    # Redis
    "init_redis",
    "close_redis",
    "is_redis_available",
    # Security
    "decode_token",
]
