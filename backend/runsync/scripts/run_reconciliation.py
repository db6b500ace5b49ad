"""Run one activity maintenance job against the configured database.

    python -m runsync.scripts.run_reconciliation status
    python -m runsync.scripts.run_reconciliation backfill-source
    python -m runsync.scripts.run_reconciliation cleanup-consistency
    python -m runsync.scripts.run_reconciliation dedup --keep-source fitness-network
"""

from __future__ import annotations

import argparse
import logging

from runsync.core.config import get_settings
from runsync.core.enums import ActivitySource
from runsync.database import session_scope
from runsync.services.duplicates import MatchRules
from runsync.services.migrations import (
    automated_dedup,
    backfill_source,
    cleanup_consistency,
    migration_status,
)

JOBS = ("status", "backfill-source", "cleanup-consistency", "dedup")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("job", choices=JOBS)
    parser.add_argument(
        "--keep-source",
        choices=[source.value for source in ActivitySource],
        default=None,
        help="Source that survives automated dedup (defaults to DEFAULT_KEEP_SOURCE).",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    with session_scope() as db:
        if args.job == "status":
            result = migration_status(db)
        elif args.job == "backfill-source":
            result = backfill_source(db)
        elif args.job == "cleanup-consistency":
            result = cleanup_consistency(db)
        else:
            keep_source = ActivitySource(args.keep_source) if args.keep_source else settings.default_keep_source
            result = automated_dedup(db, keep_source, MatchRules.from_settings(settings))
    print(result.model_dump_json(indent=2))


if __name__ == "__main__":
    main()
