#!/usr/bin/env python3
"""Run family resolution once and print the run summary.

Usage:
    python scripts/resolve_families.py
    python scripts/resolve_families.py --initiated-by ops --report
    python scripts/resolve_families.py --release-lock   # clear a lock left by a crashed run
"""
from __future__ import annotations

import argparse
import json
import logging

from households.core.logging import setup_logging
from households.core.settings import get_settings
from households.db.repositories import ResolutionRunRepository, VoterRepository
from households.db.session import session_scope
from households.families.report import family_report
from households.families.runner import run_family_resolution

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--initiated-by", default="cli")
    parser.add_argument("--report", action="store_true", help="print the family size report afterwards")
    parser.add_argument("--release-lock", action="store_true", help="release a stale writer lock and exit")
    parser.add_argument("--log-level", default=None, help="override LOG_LEVEL for this run")
    args = parser.parse_args(argv)

    setup_logging(args.log_level)
    settings = get_settings()

    with session_scope() as db:
        if args.release_lock:
            released = ResolutionRunRepository(db).release_lock()
            db.commit()
            logger.info("Writer lock %s", "released" if released else "was not held")
            return 0

        run, summary = run_family_resolution(db, initiated_by=args.initiated_by, settings=settings)
        print(json.dumps({"run_id": str(run.id), "status": run.status, **summary.to_dict()}, indent=2))

        if args.report:
            report = family_report(
                VoterRepository(db).list_voters(),
                top=settings.family_report_top,
                street_aliases=settings.street_aliases,
            )
            print(
                f"Families: {report.total_families} "
                f"(1 member: {report.single_member}, 2 members: {report.two_members}, "
                f"3+ members: {report.three_plus_members}); "
                f"voters without family: {report.voters_without_family}"
            )
            for idx, fam in enumerate(report.largest, start=1):
                print(f"  {idx}. {fam.family_id}: {fam.size} members, head {fam.head_name} ({fam.address or 'Unknown'})")

    return 1 if summary.failed_voter_ids else 0


if __name__ == "__main__":
    raise SystemExit(main())
