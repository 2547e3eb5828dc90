"""Database-backed family resolution job.

Wraps ``resolve_families`` with the store's single-writer lock and the
``resolution_runs`` log.  Transaction boundaries:

1. lock row + ``running`` run row are committed before any voter is read,
   so a concurrent run fails fast with ``ResolutionInProgressError``;
2. family id writes, the run summary and the lock release commit together;
3. on failure, uncommitted writes are rolled back, the run is marked
   ``failed``, the lock is released, and the error is re-raised.

Writes that failed on the last finished run are handed back to
``resolve_families`` as retries.  When the store is gone the failure
bookkeeping cannot be written either; the original error is still the one
raised, and the lock left behind expires after ``RESOLUTION_LOCK_TTL_SECONDS``.
"""
from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from households.core.errors import categorize
from households.core.settings import Settings, get_settings
from households.db.models import ResolutionRun
from households.db.repositories import ResolutionRunRepository, VoterRepository
from households.families.resolver import ResolutionSummary, resolve_families

logger = logging.getLogger(__name__)


def run_family_resolution(
    db: Session,
    initiated_by: str = "system",
    settings: Settings | None = None,
) -> tuple[ResolutionRun, ResolutionSummary]:
    settings = settings or get_settings()
    runs = ResolutionRunRepository(db)
    runs.acquire_lock(initiated_by, ttl_seconds=settings.resolution_lock_ttl_seconds)
    retry = runs.pending_retries()
    run = runs.start(initiated_by)
    db.commit()
    logger.info("Family resolution run %s started by %s", run.id, initiated_by)

    try:
        summary = resolve_families(VoterRepository(db), settings, retry=retry)
    except Exception as exc:
        category = categorize(exc).value
        logger.error("Family resolution run %s failed (%s)", run.id, category)
        _record_failure(db, runs, run, f"{category}: {exc}")
        raise

    runs.finish(run, summary)
    runs.release_lock()
    db.commit()
    logger.info("Family resolution run %s finished with status %s", run.id, run.status)
    return run, summary


def _record_failure(db: Session, runs: ResolutionRunRepository, run: ResolutionRun, error_summary: str) -> None:
    try:
        db.rollback()
        runs.fail(run, error_summary)
        runs.release_lock()
        db.commit()
    except SQLAlchemyError:
        # returns the connection to the pool, which discards it if broken
        db.close()
        logger.exception("Could not record failure of run %s; lock left to expire", run.id)
