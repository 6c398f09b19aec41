"""Centralized environment-based settings for CopySync.

Reads process-level configuration from environment variables with
sensible defaults. Session parameters (accounts, budget, intervals) live
in SyncConfig; this module covers logging, storage and file locations.

Usage:
    from copysync.config.settings import get_settings
    settings = get_settings()
"""

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class CopySyncSettings:
    """Immutable application settings loaded from environment."""

    # Logging
    log_level: str = "INFO"
    json_logs: bool = True

    # Storage
    data_dir: Path = Path("data")
    persist_runs: bool = True

    # Session config file
    config_path: Path = Path("config/copysync.yaml")

    @property
    def runs_path(self) -> Path:
        return self.data_dir / "sync_runs.jsonl"


def get_settings() -> CopySyncSettings:
    """Load settings from environment variables.

    Environment variables (all optional):
        COPYSYNC_LOG_LEVEL: Logging level (default: INFO)
        COPYSYNC_JSON_LOGS: Render logs as JSON (default: true)
        COPYSYNC_DATA_DIR: Storage directory (default: data)
        COPYSYNC_PERSIST_RUNS: Append cycle reports to JSONL (default: true)
        COPYSYNC_CONFIG_PATH: Session YAML file (default: config/copysync.yaml)
    """
    def _bool(key: str, default: bool = False) -> bool:
        val = os.environ.get(key, "").lower()
        if val in ("1", "true", "yes"):
            return True
        if val in ("0", "false", "no"):
            return False
        return default

    return CopySyncSettings(
        log_level=os.environ.get("COPYSYNC_LOG_LEVEL", "INFO").upper(),
        json_logs=_bool("COPYSYNC_JSON_LOGS", True),
        data_dir=Path(os.environ.get("COPYSYNC_DATA_DIR", "data")),
        persist_runs=_bool("COPYSYNC_PERSIST_RUNS", True),
        config_path=Path(
            os.environ.get("COPYSYNC_CONFIG_PATH", "config/copysync.yaml")
        ),
    )
