from datetime import datetime, timedelta
from pathlib import Path
import sqlite3
from contextlib import closing

from core import settings
from storage import backup as backup_module
from storage.backup import ensure_daily_backup
from storage.config import load_config, update_config


def test_linux_data_dir_with_xdg():
    result = settings.get_default_data_dir(
        settings.APP_NAME,
        platform="linux",
        env={"XDG_DATA_HOME": "/tmp/xdg"},
        home=Path("/home/test"),
    )
    assert result == Path("/tmp/xdg") / settings.APP_NAME


def test_linux_data_dir_default_home():
    result = settings.get_default_data_dir(settings.APP_NAME, platform="linux", env={}, home=Path("/home/test"))
    assert result == Path("/home/test/.local/share") / settings.APP_NAME


def test_macos_data_dir():
    result = settings.get_default_data_dir(settings.APP_NAME, platform="darwin", env={}, home=Path("/Users/test"))
    assert result == Path("/Users/test/Library/Application Support") / settings.APP_NAME


def test_windows_data_dir_appdata():
    env = {"APPDATA": "C:/Users/test/AppData/Roaming"}
    result = settings.get_default_data_dir(settings.APP_NAME, platform="win32", env=env, home=Path("C:/Users/test"))
    assert result == Path(env["APPDATA"]) / settings.APP_NAME


def test_taskboard_home_overrides_platform_default():
    env = {"TASKBOARD_HOME": "/srv/taskboard", "XDG_DATA_HOME": "/tmp/xdg"}
    result = settings.get_default_data_dir(settings.APP_NAME, platform="linux", env=env)
    assert result == Path("/srv/taskboard")


def test_runtime_paths_inside_data_dir():
    assert settings.DB_PATH.parent == settings.DATA_DIR
    assert settings.CONFIG_PATH.parent == settings.DATA_DIR
    assert settings.LOG_PATH.parent == settings.LOG_DIR
    assert settings.BACKUP.directory == settings.BACKUP_DIR
    assert settings.STORAGE.url.endswith("taskboard.db")


def _write_marker(db_path: Path, value: str) -> None:
    with closing(sqlite3.connect(str(db_path))) as conn:
        conn.execute("CREATE TABLE IF NOT EXISTS marker (value TEXT)")
        conn.execute("DELETE FROM marker")
        conn.execute("INSERT INTO marker VALUES (?)", (value,))
        conn.commit()


def test_backup_rotation(monkeypatch, tmp_path):
    db_path = tmp_path / "app.db"
    backup_dir = tmp_path / "backups"
    base = datetime(2024, 1, 1)

    for offset in range(5):
        _write_marker(db_path, f"content-{offset}")

        class FakeDateTime(datetime):
            @classmethod
            def now(cls, tz=None):
                return base + timedelta(days=offset)

        monkeypatch.setattr(backup_module, "datetime", FakeDateTime)
        ensure_daily_backup(db_path, backup_dir, keep_days=3)

    monkeypatch.setattr(backup_module, "datetime", datetime)

    backups = sorted(p.name for p in backup_dir.iterdir())
    assert backups == [
        "app_2024-01-03.db",
        "app_2024-01-04.db",
        "app_2024-01-05.db",
    ]
    with closing(sqlite3.connect(str(backup_dir / "app_2024-01-05.db"))) as conn:
        assert conn.execute("SELECT value FROM marker").fetchone() == ("content-4",)


def test_backup_skips_missing_database(tmp_path):
    assert ensure_daily_backup(tmp_path / "absent.db", tmp_path / "backups") is None


def test_config_overrides(tmp_path):
    path = tmp_path / "config.json"
    assert load_config(path).retention_days == settings.RETENTION.window_days

    update_config(path, retention_days=9, log_level="DEBUG", unknown="ignored")
    cfg = load_config(path)
    assert cfg.retention_days == 9
    assert cfg.log_level == "DEBUG"

    path.write_text('{"retention_days": -1}', encoding="utf-8")
    assert load_config(path).retention_days == settings.RETENTION.window_days

    path.write_text('{"retention_days": "7", "storage_timeout_sec": "soon"}', encoding="utf-8")
    cfg = load_config(path)
    assert cfg.retention_days == 7
    assert cfg.storage_timeout_sec == settings.STORAGE.timeout_sec

    path.write_text("not json", encoding="utf-8")
    assert load_config(path).database_url == settings.STORAGE.url
