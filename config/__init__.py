"""
Configuration module.

Exports:
    settings: Application settings instance
    get_settings: Function to get settings (cached)
    get_supabase_client: Cached Supabase client
    check_connection: Health check used by /health and at startup
    reset_connection: Drop the cached client
"""

from config.settings import settings, get_settings, Settings
from config.database import (
    get_supabase_client,
    check_connection,
    reset_connection,
    ConnectionError
)

__all__ = [
    "settings",
    "get_settings",
    "Settings",
    "get_supabase_client",
    "check_connection",
    "reset_connection",
    "ConnectionError",
]
