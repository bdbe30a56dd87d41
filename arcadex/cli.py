"""Command line front end for the migration runner."""

from __future__ import annotations

import argparse
import logging
import sys

from . import migrator
from .client import close_pools
from .config import ClientConfig, load_config
from .errors import ArcadexError
from .result import Err

LOG = logging.getLogger(__name__)


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="arcadex", description="Run ArcadeDB schema migrations.")
    parser.add_argument("--profile", help="Server profile from config.toml (defaults to the active one)")
    parser.add_argument(
        "--registry",
        help="Migration registry as 'package.module:ATTRIBUTE' (defaults to the configured one)",
    )
    parser.add_argument("--database", help="Override the profile's database name")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=sorted(logging.getLevelNamesMapping()),
        help="Logging level (defaults to the configured one)",
    )
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("migrate", help="Apply all pending migrations")
    rollback = commands.add_parser("rollback", help="Revert applied migrations")
    target = rollback.add_mutually_exclusive_group()
    target.add_argument("--steps", type=int, default=1, help="Number of migrations to revert")
    target.add_argument("--to", type=int, dest="target", help="Revert everything above this version")
    commands.add_parser("status", help="List migrations and whether they are applied")
    commands.add_parser("reset", help="Revert all migrations, then apply them again")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    config = load_config()
    level = (args.log_level or config.log_level).upper()
    if level not in logging.getLevelNamesMapping():
        print(f"error: unknown log level '{level}' in configuration", file=sys.stderr)
        return 2
    logging.basicConfig(level=level)
    try:
        return _run(args, config)
    finally:
        close_pools()


def _run(args: argparse.Namespace, config: ClientConfig) -> int:
    try:
        profile = config.profile(args.profile)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    conn = profile.to_conn()
    if args.database:
        conn = conn.with_database(args.database)
    registry = args.registry or config.migrations

    if args.command == "migrate":
        outcome = migrator.migrate(conn, registry)
    elif args.command == "rollback":
        if args.target is not None:
            outcome = migrator.rollback_to(conn, args.target, registry)
        else:
            outcome = migrator.rollback(conn, registry, args.steps)
    elif args.command == "reset":
        outcome = migrator.reset(conn, registry)
    else:
        outcome = migrator.status(conn, registry)

    if isinstance(outcome, Err):
        _report(outcome)
        return 1
    if args.command == "status":
        for entry in outcome.value:
            print(f"{entry.version:>6}  {entry.state.value:<8}  {entry.name}")
    elif outcome.value:
        verb = "Applied" if args.command in {"migrate", "reset"} else "Reverted"
        print(f"{verb} {', '.join(str(version) for version in outcome.value)}")
    else:
        print("Nothing to do.")
    return 0


def _report(outcome: Err) -> None:
    error = outcome.error
    kind = error.kind.value if isinstance(error, ArcadexError) else type(error).__name__
    print(f"error [{kind}]: {error}", file=sys.stderr)
    if outcome.secondary is not None:
        print(f"  also: {outcome.secondary}", file=sys.stderr)


if __name__ == "__main__":
    raise SystemExit(main())
