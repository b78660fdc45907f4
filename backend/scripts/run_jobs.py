"""Run catalog maintenance jobs from the command line or a cron entry."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from tutor_catalog.db.models import EntityType
from tutor_catalog.db.session import init_db
from tutor_catalog.jobs import process_cache_rebuild, process_content_refresh
from tutor_catalog.logging_config import configure_logging
from tutor_catalog.services.cache import cleanup_expired_cache

logger = logging.getLogger("tutor.jobs")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run tutor catalog maintenance jobs.")
    commands = parser.add_subparsers(dest="command", required=True)

    refresh = commands.add_parser("refresh", help="Refresh stale universities, courses, semesters and subjects.")
    refresh.add_argument(
        "--entity-type",
        type=lambda value: EntityType(value.upper()),
        choices=list(EntityType),
        default=None,
        help="Only refresh this entity type.",
    )
    refresh.add_argument("--limit", type=int, default=None, help="Maximum entities per type.")

    commands.add_parser("rebuild", help="Drop expired cache rows and prewarm popular searches.")
    commands.add_parser("cleanup", help="Drop expired cache rows only.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    args = parse_args(argv)
    try:
        init_db()
        if args.command == "refresh":
            result = process_content_refresh(args.entity_type, args.limit).model_dump()
        elif args.command == "rebuild":
            result = process_cache_rebuild().model_dump()
        else:
            result = {"removed": cleanup_expired_cache()}
    except Exception as exc:  # noqa: BLE001
        logger.exception("Job %s failed: %s", args.command, exc)
        return 1
    print(json.dumps({"job": args.command, **result}))
    return 0


if __name__ == "__main__":
    sys.exit(main())
