from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path

from .config import Settings, configure_logging
from .db import PomoflowDB
from .insights import InsightsService
from .timer_engine import DEFAULT_HISTORY_LIMIT, MAX_HISTORY_LIMIT, TimerEngine


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pomoflow",
        description="Pomoflow: pomodoro timer phases, schedules and run insights over HTTP",
    )
    parser.add_argument(
        "--db",
        default=None,
        help="SQLite database path (default: POMOFLOW_DB_PATH or pomoflow/data/pomoflow.sqlite)",
    )
    parser.add_argument("--log-level", default=None, help="logging level (default: POMOFLOW_LOG_LEVEL or INFO)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="bind port")

    subparsers.add_parser("init-db", help="create or migrate the database schema")

    history_parser = subparsers.add_parser("history", help="print a user's timer phases, newest first")
    history_parser.add_argument("--user", required=True, help="user id")
    history_parser.add_argument("--limit", type=int, default=DEFAULT_HISTORY_LIMIT, help="rows to show")

    runs_parser = subparsers.add_parser("runs", help="print a user's completed runs")
    runs_parser.add_argument("--user", required=True, help="user id")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    if args.db:
        settings = replace(settings, db_path=Path(args.db))
    configure_logging(args.log_level or settings.log_level)

    if args.command == "serve":
        return _handle_serve(args, settings)

    db = PomoflowDB(settings.db_path, journal_mode=settings.journal_mode)

    if args.command == "init-db":
        print(f"Database ready: {db.db_path}")
        return 0
    if args.command == "history":
        return _handle_history(args, db, parser)
    if args.command == "runs":
        return _handle_runs(args, db)

    parser.print_help()
    return 2


def _handle_serve(args: argparse.Namespace, settings: Settings) -> int:
    import uvicorn

    from .api.app import create_app

    app = create_app(settings=settings)
    uvicorn.run(app, host=args.host, port=args.port, log_level=settings.log_level.lower())
    return 0


def _handle_history(args: argparse.Namespace, db: PomoflowDB, parser: argparse.ArgumentParser) -> int:
    if not 1 <= args.limit <= MAX_HISTORY_LIMIT:
        parser.error(f"--limit must be between 1 and {MAX_HISTORY_LIMIT}")

    rows = TimerEngine(db).get_history(args.user, args.limit)
    if not rows:
        print("No timer sessions.")
        return 0

    for row in rows:
        start_text = row.start_time.strftime("%Y-%m-%d %H:%M:%S")
        if row.completed:
            state_text = "done"
        else:
            state_text = "paused" if row.paused else "active"
        print(
            f"{row.id} | {start_text} | {row.phase} | {row.duration_minutes:g} min | "
            f"cycle {row.current_cycle}/{row.target_cycles} | {state_text} | group: {row.session_group_id or '-'}"
        )
    return 0


def _handle_runs(args: argparse.Namespace, db: PomoflowDB) -> int:
    views = InsightsService(db).list_completed_sessions(args.user)
    if not views:
        print("No completed runs.")
        return 0

    for view in views:
        date_text = view.date.strftime("%Y-%m-%d %H:%M") if view.date else "-"
        sentiment_text = view.sentiment["label"] if view.sentiment else "-"
        print(
            f"{view.id} | {date_text} | {view.title} | {view.duration:g} min | "
            f"{view.focus_blocks}/{view.target_cycles} blocks | sentiment: {sentiment_text}"
        )
    return 0
