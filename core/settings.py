"""Centralized application configuration."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional
import os
import sys


def get_default_data_dir(
    app_name: str,
    *,
    platform: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
) -> Path:
    """Return an OS-specific user data directory for ``app_name``."""

    platform_id = (platform or sys.platform).lower()
    environ = dict(env or os.environ)
    home_dir = Path(home or Path.home())
    sanitized = app_name.strip() or "app"
    sanitized = sanitized.replace("/", "-").replace("\\", "-")

    if environ.get("TASKBOARD_HOME"):
        return Path(environ["TASKBOARD_HOME"]).expanduser()

    if platform_id.startswith("win"):
        base = Path(environ.get("APPDATA") or home_dir / "AppData" / "Roaming")
    elif platform_id == "darwin":
        base = Path(environ.get("APPDATA") or home_dir / "Library" / "Application Support")
    else:
        base = Path(environ.get("XDG_DATA_HOME") or home_dir / ".local" / "share")

    return (base.expanduser() / sanitized)


APP_NAME = "Taskboard"


DATA_DIR = get_default_data_dir(APP_NAME)
LOG_DIR = DATA_DIR / "logs"
BACKUP_DIR = DATA_DIR / "backups"

DB_PATH = DATA_DIR / "taskboard.db"
CONFIG_PATH = DATA_DIR / "config.json"
LOG_PATH = LOG_DIR / "taskboard.log"


@dataclass(frozen=True)
class StorageSettings:
    url: str = f"sqlite:///{DB_PATH.as_posix()}"
    timeout_sec: float = 5.0
    read_retries: int = 1
    echo: bool = False


STORAGE = StorageSettings()


@dataclass(frozen=True)
class RetentionSettings:
    window_days: int = 5
    sweep_on_archive: bool = True
    sweep_interval_sec: int = 3600


RETENTION = RetentionSettings()


@dataclass(frozen=True)
class CalendarSettings:
    # Canonical calendar for date comparisons; naive datetimes are read in this zone.
    timezone: str = "UTC"


CALENDAR = CalendarSettings()


@dataclass(frozen=True)
class ProfileSettings:
    default_visibility: str = "public"
    default_avatar_color: str = "#9C27B0"
    username_max_length: int = 50
    title_max_length: int = 200


PROFILE = ProfileSettings()


@dataclass(frozen=True)
class LogSettings:
    path: Path = LOG_PATH
    level: str = "INFO"
    max_bytes: int = 1_000_000
    backup_count: int = 3


LOGGING = LogSettings()


@dataclass(frozen=True)
class BackupSettings:
    enabled: bool = True
    directory: Path = BACKUP_DIR
    keep_days: int = 7


BACKUP = BackupSettings()


__all__ = [
    "APP_NAME",
    "BACKUP",
    "BACKUP_DIR",
    "CALENDAR",
    "CONFIG_PATH",
    "DATA_DIR",
    "DB_PATH",
    "LOGGING",
    "LOG_DIR",
    "LOG_PATH",
    "PROFILE",
    "RETENTION",
    "STORAGE",
    "get_default_data_dir",
]
