#!/usr/bin/env python3
"""
TaskFlow command line

Usage:
    # Run the API server
    taskflow serve --port 8000

    # Snapshot metrics of one board (for cron or another scheduler)
    taskflow report --board-id <id>

    # Snapshot metrics of every board
    taskflow report --all
"""

import argparse
import json
import logging
import sys

from .config import get_settings
from .main import configure_logging
from .services.database import Database
from .services.workload import BoardNotFoundError, WorkloadEngine

logger = logging.getLogger("taskflow")


def run_serve(args) -> int:
    import uvicorn

    uvicorn.run(
        "taskflow.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )
    return 0


def run_report(args) -> int:
    """Generate board reports; exits non-zero if any board failed"""
    settings = get_settings()
    db = Database(settings.database_path)
    db.initialize()
    engine = WorkloadEngine(db)

    try:
        if args.all:
            board_ids = [b["id"] for b in db.boards.all()]
        else:
            board_ids = [args.board_id]

        failures = 0
        for board_id in board_ids:
            try:
                report = engine.generate_board_report(board_id)
            except BoardNotFoundError:
                logger.error(f"Board not found: {board_id}")
                failures += 1
                continue
            print(json.dumps(report))

        logger.info(f"Generated {len(board_ids) - failures}/{len(board_ids)} reports")
        return 1 if failures else 0
    finally:
        db.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="taskflow",
        description="TaskFlow Kanban API"
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    report_parser = subparsers.add_parser("report", help="Generate board reports")
    target = report_parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--board-id", help="Board to report on")
    target.add_argument("--all", action="store_true", help="Report on every board")

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(get_settings())

    if args.command == "serve":
        return run_serve(args)
    elif args.command == "report":
        return run_report(args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
