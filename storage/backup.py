"""Daily snapshots of the SQLite task database."""
from __future__ import annotations

import sqlite3
from contextlib import closing
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Optional

from core.logs import get_logger

logger = get_logger("backup")


def _snapshot_date(path: Path, prefix: str) -> Optional[date]:
    stem = path.stem
    if not stem.startswith(prefix):
        return None
    try:
        return datetime.strptime(stem[len(prefix) :], "%Y-%m-%d").date()
    except ValueError:
        return None


def _copy_database(source: Path, destination: Path) -> None:
    # The online backup API yields a consistent copy even while writers are active.
    with closing(sqlite3.connect(str(source))) as src, closing(sqlite3.connect(str(destination))) as dst:
        src.backup(dst)


def ensure_daily_backup(
    db_path: str | Path,
    backup_dir: str | Path,
    *,
    keep_days: int = 7,
) -> Path | None:
    """Snapshot ``db_path`` once per day and drop snapshots older than ``keep_days``."""

    db_file = Path(db_path)
    if not db_file.exists():
        return None

    backups = Path(backup_dir)
    backups.mkdir(parents=True, exist_ok=True)

    today = datetime.now().date()
    prefix = f"{db_file.stem}_"
    destination = backups / f"{prefix}{today.isoformat()}{db_file.suffix}"

    created: Path | None = None
    if not destination.exists():
        _copy_database(db_file, destination)
        created = destination
        logger.info("Backup written to %s", destination)

    if keep_days > 0:
        cutoff = today - timedelta(days=keep_days - 1)
        for file in backups.glob(f"{prefix}*{db_file.suffix}"):
            taken_on = _snapshot_date(file, prefix)
            if taken_on and taken_on < cutoff:
                try:
                    file.unlink()
                except OSError as exc:
                    logger.warning("Could not remove old backup %s: %s", file, exc)

    return created


__all__ = ["ensure_daily_backup"]
