"""Command-line interface for the Super Budget service."""

from __future__ import annotations
import argparse
import logging
import sys
from typing import Sequence

from superbudget.config import load_database_path
from superbudget.database import Database, resolve_database_path
from superbudget.seed import DEFAULT_PROJECT_COUNT, seed_projects

logger = logging.getLogger("superbudget.main")

_DEFAULT_PORT = 8001


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Super Budget project tracker")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-db", help="Initialise the application database")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP API")
    serve_parser.add_argument("--host", default="0.0.0.0", help="Bind address for the API")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=_DEFAULT_PORT,
        help=f"Port for the HTTP API (default: {_DEFAULT_PORT})",
    )

    seed_parser = subparsers.add_parser("seed", help="Replace all projects with demo data")
    seed_parser.add_argument(
        "--count",
        type=int,
        default=DEFAULT_PROJECT_COUNT,
        help=f"Number of projects to generate (default: {DEFAULT_PROJECT_COUNT})",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "init-db", "seed"}

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _initialise_database() -> Database:
    configured = load_database_path()
    db_path = resolve_database_path(str(configured) if configured else None)
    database = Database(db_path)
    database.initialize()
    logger.info("Database initialised at %s (%d users)", db_path, database.count_users())
    return database


def _serve(*, database: Database, host: str, port: int) -> None:
    from superbudget.application import create_application
    import uvicorn

    logger.info("Starting Super Budget API on http://%s:%s", host, port)
    app = create_application(database_path=str(database.path))
    uvicorn.run(app, host=host, port=port, log_level="info")


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    database = _initialise_database()

    if args.command == "serve":
        _serve(database=database, host=args.host, port=args.port)
    elif args.command == "seed":
        if args.count < 0:
            raise SystemExit("--count must not be negative.")
        created = seed_projects(database, args.count)
        print(f"Created {created} projects.")
    elif args.command == "init-db":
        print("Database initialisation complete.")


if __name__ == "__main__":
    main()
