"""Configuration for CopySync: process settings and session config."""

from copysync.config.settings import CopySyncSettings, get_settings
from copysync.config.sync_config import SyncConfig, normalize_address

__all__ = [
    "CopySyncSettings",
    "SyncConfig",
    "get_settings",
    "normalize_address",
]
