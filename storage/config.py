"""JSON overrides for the runtime settings in ``core.settings``."""
from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

from core.logs import get_logger
from core.settings import CALENDAR, CONFIG_PATH, LOGGING, RETENTION, STORAGE

logger = get_logger("config")


@dataclass
class AppConfig:
    """Overrides persisted to ``config.json``; unset keys fall back to ``core.settings``."""

    database_url: str = STORAGE.url
    storage_timeout_sec: float = STORAGE.timeout_sec
    retention_days: int = RETENTION.window_days
    calendar_timezone: str = CALENDAR.timezone
    log_level: str = LOGGING.level


_CASTS = {"str": str, "float": float, "int": int}


def _coerce(cfg: AppConfig, values: Dict[str, Any]) -> AppConfig:
    known = {f.name: f for f in fields(cfg)}
    for key, value in values.items():
        field = known.get(key)
        if field is None or value is None:
            continue
        cast = _CASTS[field.type if isinstance(field.type, str) else field.type.__name__]
        try:
            setattr(cfg, key, cast(value))
        except (TypeError, ValueError):
            logger.warning("Ignoring config value %s=%r", key, value)
    if cfg.retention_days < 0:
        cfg.retention_days = RETENTION.window_days
    if cfg.storage_timeout_sec <= 0:
        cfg.storage_timeout_sec = STORAGE.timeout_sec
    return cfg


def _load_raw(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return {}
    return data if isinstance(data, dict) else {}


def load_config(path: Optional[Path] = None) -> AppConfig:
    return _coerce(AppConfig(), _load_raw(path or CONFIG_PATH))


def save_config(config: AppConfig, path: Optional[Path] = None) -> None:
    target = path or CONFIG_PATH
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(asdict(config), ensure_ascii=False, indent=2, sort_keys=True)
    tmp = target.with_suffix(".tmp")
    try:
        tmp.write_text(payload, encoding="utf-8")
        tmp.replace(target)
    finally:
        if tmp.exists():
            try:
                tmp.unlink()
            except OSError:
                pass


def update_config(path: Optional[Path] = None, **changes: Any) -> AppConfig:
    target = path or CONFIG_PATH
    cfg = _coerce(load_config(target), changes)
    save_config(cfg, target)
    return cfg


__all__ = ["AppConfig", "load_config", "save_config", "update_config"]
