"""Ad-hoc database migrations for Taskboard."""

from __future__ import annotations

from sqlalchemy import text


def _column_exists(conn, table: str, column: str) -> bool:
    result = conn.execute(text(f"PRAGMA table_info('{table}')"))
    return any(row[1] == column for row in result)


def ensure_task_columns(conn) -> None:
    # Columns added after the first release of the tasks table.
    columns = {
        "owner_email": "TEXT NOT NULL DEFAULT ''",
        "start_minutes": "INTEGER NOT NULL DEFAULT 0",
        "recurring": "TEXT",
        "deleted_at": "TEXT",
        "updated_at": "TEXT",
    }
    for name, ddl_type in columns.items():
        if not _column_exists(conn, "tasks", name):
            conn.execute(text(f"ALTER TABLE tasks ADD COLUMN {name} {ddl_type}"))

    conn.execute(
        text(
            """
            UPDATE tasks
            SET start_minutes = (start_hour % 12) * 60 + start_minute
                + CASE WHEN start_period = 'PM' THEN 720 ELSE 0 END
            WHERE start_minutes = 0 AND NOT (start_hour = 12 AND start_minute = 0 AND start_period = 'AM')
            """
        )
    )
    conn.execute(
        text(
            """
            UPDATE tasks
            SET updated_at = created_at
            WHERE updated_at IS NULL
            """
        )
    )


def ensure_user_columns(conn) -> None:
    columns = {
        "visibility": "TEXT NOT NULL DEFAULT 'public'",
        "avatar_color": "TEXT NOT NULL DEFAULT '#9C27B0'",
        "avatar_image": "TEXT",
    }
    for name, ddl_type in columns.items():
        if not _column_exists(conn, "users", name):
            conn.execute(text(f"ALTER TABLE users ADD COLUMN {name} {ddl_type}"))


def ensure_indexes(conn) -> None:
    conn.execute(text("CREATE INDEX IF NOT EXISTS ix_task_collaborators_email ON task_collaborators(email)"))
    conn.execute(text("CREATE INDEX IF NOT EXISTS ix_tasks_owner_status ON tasks(owner_id, status)"))
    conn.execute(text("CREATE INDEX IF NOT EXISTS ix_tasks_schedule ON tasks(scheduled_date, start_minutes)"))
    conn.execute(text("CREATE INDEX IF NOT EXISTS ix_tasks_deleted_at ON tasks(deleted_at)"))


def run_all(engine) -> None:
    if engine.dialect.name != "sqlite":
        return
    with engine.begin() as conn:
        ensure_task_columns(conn)
        ensure_user_columns(conn)
        ensure_indexes(conn)


__all__ = ["run_all"]
