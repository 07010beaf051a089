from __future__ import annotations

import argparse
from collections.abc import Sequence

from tasktrail.db.bootstrap import initialize_database, seed_database
from tasktrail.db.migrations import current_revision, head_revision, upgrade_to_head


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tasktrail-db",
        description="TaskTrail database management commands.",
    )
    # Every command accepts --database-url; the configured DATABASE_URL is the fallback.
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--database-url", default=None)
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser(
        "init",
        parents=[common],
        help="Apply migrations, then seed reference data and sample tasks.",
    )
    init_parser.add_argument("--skip-seed", action="store_true")

    subparsers.add_parser(
        "migrate",
        parents=[common],
        help="Apply database migrations to the latest revision.",
    )

    seed_parser = subparsers.add_parser(
        "seed",
        parents=[common],
        help="Load reference data and sample tasks with their activity history.",
    )
    seed_parser.add_argument(
        "--reference-only",
        action="store_true",
        help="Only users, projects and tags; no sample tasks.",
    )

    subparsers.add_parser(
        "status",
        parents=[common],
        help="Show the applied revision; exits 1 when migrations are pending.",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "init":
        initialize_database(args.database_url, seed=not args.skip_seed)
        print("Database initialized.")
    elif args.command == "migrate":
        upgrade_to_head(args.database_url)
        print("Database migrations applied.")
    elif args.command == "seed":
        seed_database(args.database_url, with_tasks=not args.reference_only)
        print("Database seeded.")
    elif args.command == "status":
        current = current_revision(args.database_url)
        head = head_revision(args.database_url)
        print(f"Current revision: {current or 'none'} (head: {head})")
        return 0 if current == head else 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
