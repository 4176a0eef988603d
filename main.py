# taskboard/main.py
import os, sys
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
import argparse
from datetime import timedelta
from pathlib import Path
from typing import Optional

from core.logs import get_logger, setup_logging
from core.settings import APP_NAME, CONFIG_PATH
from services.credentials import Identity
from services.retention import RetentionJob, RetentionSweeper
from services.task_repository import TaskRepository
from services.users import UserDirectory
from storage.config import AppConfig, load_config
from storage.db import Database
from utils.datetime_utils import calendar_date, calendar_zone, parse_date, utc_now

logger = get_logger("main")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=APP_NAME.lower(), description=f"{APP_NAME} maintenance commands")
    parser.add_argument("--config", default=None, help=f"config file (default: {CONFIG_PATH})")
    parser.add_argument("--db", default=None, help="database URL overriding the config file")
    parser.add_argument("--quiet", action="store_true", help="log to file only")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="create tables and apply migrations")

    sweep = commands.add_parser("sweep", help="purge tasks deleted longer than the retention window")
    sweep.add_argument("--every", type=int, default=None, metavar="SECONDS",
                       help="keep running and sweep on this interval")

    agenda = commands.add_parser("agenda", help="print a user's tasks for one day")
    agenda.add_argument("email")
    agenda.add_argument("date", nargs="?", default=None, help="YYYY-MM-DD (default: today)")

    commands.add_parser("public-users", help="list users that can be added as collaborators")
    return parser


def run_sweep(db: Database, config: AppConfig, every: Optional[int]) -> None:
    sweeper = RetentionSweeper(db, window=timedelta(days=config.retention_days))
    if not every:
        print(f"Removed {sweeper.sweep_all()} expired task(s)")
        return
    job = RetentionJob(sweeper, interval_sec=every)
    job.start()
    logger.info("Retention job running every %ss", every)
    try:
        while not job.wait(3600):
            pass
    except KeyboardInterrupt:
        job.stop()


def print_agenda(db: Database, config: AppConfig, email: str, day: Optional[str]) -> None:
    directory = UserDirectory(db)
    user = directory.get_user(email)
    if user is None:
        raise SystemExit(f"No user with email {email}")
    repository = TaskRepository(db, directory, timezone=config.calendar_timezone)
    if day:
        when = parse_date(day)
    else:
        when = calendar_date(utc_now(), calendar_zone(config.calendar_timezone))
    for view in repository.list_for_day(Identity(user.id, user.email), when):
        task = view.task
        end = f"-{task.end_time.label()}" if task.end_time else ""
        print(f"{task.start_time.label()}{end}\t{view.display_status}\t{task.title}")


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config(Path(args.config) if args.config else None)
    setup_logging(level=config.log_level, console=not args.quiet)

    db = Database(args.db or config.database_url, timeout_sec=config.storage_timeout_sec)
    db.open()
    try:
        if args.command == "init-db":
            print(f"Database ready at {db.url}")
        elif args.command == "sweep":
            run_sweep(db, config, args.every)
        elif args.command == "agenda":
            print_agenda(db, config, args.email, args.date)
        elif args.command == "public-users":
            for user in UserDirectory(db).list_public_users():
                print(f"{user.email}\t{user.username}")
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
