from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Generic, TypeVar

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from households.core.errors import PersistenceError, ResolutionInProgressError, StoreUnavailableError
from households.db import models
from households.families.resolver import ResolutionSummary
from households.records import SurveyFormRecord, SurveyResponseRecord, VoterRecord

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")

FAMILY_RESOLUTION_LOCK = "family_resolution"
FINISHED_STATUSES = ("completed", "completed_with_errors")


def _is_stale(acquired_at: datetime, now: datetime, ttl_seconds: int) -> bool:
    if acquired_at.tzinfo is None:
        acquired_at = acquired_at.replace(tzinfo=timezone.utc)
    return acquired_at < now - timedelta(seconds=ttl_seconds)


class BaseRepository(Generic[ModelT]):
    model: type[ModelT]

    def __init__(self, db: Session):
        self.db = db

    def create(self, **kwargs) -> ModelT:
        entity = self.model(**kwargs)
        self.db.add(entity)
        self.db.flush()
        return entity

    def update(self, entity: ModelT, **kwargs) -> ModelT:
        for key, value in kwargs.items():
            setattr(entity, key, value)
        self.db.flush()
        return entity

    def _scalars(self, stmt) -> list:
        """Run a read, reporting connection-level failures as store unavailability."""
        try:
            return list(self.db.execute(stmt.execution_options(populate_existing=True)).scalars().all())
        except OperationalError as exc:
            raise StoreUnavailableError(f"{self.model.__tablename__} read failed") from exc


class VoterRepository(BaseRepository[models.Voter]):
    """Voter store backed by the ``voters`` table."""

    model = models.Voter

    def get_by_voter_id(self, voter_id: str) -> models.Voter | None:
        stmt = select(models.Voter).where(models.Voter.voter_id == voter_id)
        rows = self._scalars(stmt)
        return rows[0] if rows else None

    def list_voters(
        self,
        *,
        aci_id: int | None = None,
        booth_id: str | None = None,
    ) -> list[VoterRecord]:
        stmt = select(models.Voter)
        if aci_id is not None:
            stmt = stmt.where(models.Voter.aci_id == aci_id)
        if booth_id is not None:
            stmt = stmt.where(models.Voter.booth_id == booth_id)
        stmt = stmt.order_by(models.Voter.created_at.asc(), models.Voter.voter_id.asc())
        return [voter.to_record() for voter in self._scalars(stmt)]

    def set_family_id_if_empty(self, voter_id: str, family_id: str) -> bool:
        """Write *family_id* inside a savepoint unless the voter already has one."""
        stmt = (
            select(models.Voter)
            .where(models.Voter.voter_id == voter_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        try:
            with self.db.begin_nested():
                voter = self.db.execute(stmt).scalar_one_or_none()
                if voter is None:
                    raise PersistenceError(voter_id, "voter not found")
                if voter.family_id and voter.family_id.strip():
                    return False
                voter.family_id = family_id
                self.db.flush()
        except OperationalError as exc:
            raise StoreUnavailableError("voters write failed") from exc
        except SQLAlchemyError as exc:
            raise PersistenceError(voter_id, type(exc).__name__) from exc
        return True


class SurveyFormRepository(BaseRepository[models.SurveyForm]):
    model = models.SurveyForm

    def list_forms(self) -> list[SurveyFormRecord]:
        stmt = select(models.SurveyForm).order_by(models.SurveyForm.created_at.asc(), models.SurveyForm.form_id.asc())
        return [form.to_record() for form in self._scalars(stmt)]


class SurveyResponseRepository(BaseRepository[models.SurveyResponse]):
    model = models.SurveyResponse

    def list_responses(
        self,
        form_id: str | None = None,
        *,
        complete_only: bool = True,
    ) -> list[SurveyResponseRecord]:
        stmt = select(models.SurveyResponse)
        if form_id is not None:
            stmt = stmt.where(models.SurveyResponse.form_id == form_id)
        if complete_only:
            stmt = stmt.where(models.SurveyResponse.is_complete.is_(True))
        return [response.to_record() for response in self._scalars(stmt)]


class SqlSurveyStore:
    """Survey store over the form and response tables."""

    def __init__(self, db: Session):
        self.forms = SurveyFormRepository(db)
        self.responses = SurveyResponseRepository(db)

    def list_forms(self) -> list[SurveyFormRecord]:
        return self.forms.list_forms()

    def list_responses(
        self,
        form_id: str | None = None,
        *,
        complete_only: bool = True,
    ) -> list[SurveyResponseRecord]:
        return self.responses.list_responses(form_id, complete_only=complete_only)


class ResolutionRunRepository(BaseRepository[models.ResolutionRun]):
    """Run log plus the single-writer lock that serialises resolution runs."""

    model = models.ResolutionRun

    def acquire_lock(
        self,
        holder: str,
        name: str = FAMILY_RESOLUTION_LOCK,
        ttl_seconds: int | None = None,
    ) -> models.ResolutionLock:
        """Insert the lock row; raise ``ResolutionInProgressError`` if it is held.

        A lock older than *ttl_seconds* was left behind by a run that died
        before releasing it and is taken over.  Flushes but does **not**
        commit; commit before starting work so other writers can see the lock.
        """
        now = datetime.now(timezone.utc)
        existing = self.db.get(models.ResolutionLock, name, populate_existing=True)
        if existing is not None:
            if ttl_seconds is None or not _is_stale(existing.acquired_at, now, ttl_seconds):
                raise ResolutionInProgressError(f"lock {name!r} held by {existing.holder!r}")
            return self._take_over(existing, holder, now, ttl_seconds)

        lock = models.ResolutionLock(name=name, holder=holder, acquired_at=now)
        try:
            with self.db.begin_nested():
                self.db.add(lock)
        except IntegrityError as exc:
            raise ResolutionInProgressError(f"lock {name!r} taken concurrently") from exc
        return lock

    def _take_over(
        self,
        lock: models.ResolutionLock,
        holder: str,
        now: datetime,
        ttl_seconds: int,
    ) -> models.ResolutionLock:
        previous = lock.holder
        stmt = (
            update(models.ResolutionLock)
            .where(
                models.ResolutionLock.name == lock.name,
                models.ResolutionLock.acquired_at < now - timedelta(seconds=ttl_seconds),
            )
            .values(holder=holder, acquired_at=now)
            .execution_options(synchronize_session=False)
        )
        if self.db.execute(stmt).rowcount != 1:
            raise ResolutionInProgressError(f"lock {lock.name!r} taken over concurrently")
        self.db.refresh(lock)
        logger.warning("Took over stale lock %r from %r", lock.name, previous)
        return lock

    def release_lock(self, name: str = FAMILY_RESOLUTION_LOCK) -> bool:
        lock = self.db.get(models.ResolutionLock, name)
        if lock is None:
            return False
        self.db.delete(lock)
        self.db.flush()
        return True

    def start(self, initiated_by: str) -> models.ResolutionRun:
        return self.create(
            initiated_by=initiated_by,
            status="running",
            started_at=datetime.now(timezone.utc),
        )

    def finish(self, run: models.ResolutionRun, summary: ResolutionSummary) -> models.ResolutionRun:
        return self.update(
            run,
            status="completed_with_errors" if summary.failed_voter_ids else "completed",
            families_created=summary.families_created,
            voters_updated=summary.voters_updated,
            voters_unkeyed=summary.voters_unkeyed,
            voters_unassigned=summary.voters_unassigned,
            failed_voter_ids=list(summary.failed_voter_ids),
            failed_assignments=dict(summary.failed_assignments),
            completed_at=datetime.now(timezone.utc),
        )

    def fail(self, run: models.ResolutionRun, error_summary: str) -> models.ResolutionRun:
        return self.update(
            run,
            status="failed",
            error_summary=error_summary,
            completed_at=datetime.now(timezone.utc),
        )

    def latest(self) -> models.ResolutionRun | None:
        stmt = select(models.ResolutionRun).order_by(models.ResolutionRun.started_at.desc()).limit(1)
        rows = self._scalars(stmt)
        return rows[0] if rows else None

    def pending_retries(self) -> dict[str, str]:
        """Failed writes recorded by the most recent finished run."""
        stmt = (
            select(models.ResolutionRun)
            .where(models.ResolutionRun.status.in_(FINISHED_STATUSES))
            .order_by(models.ResolutionRun.started_at.desc())
            .limit(1)
        )
        rows = self._scalars(stmt)
        return dict(rows[0].failed_assignments or {}) if rows else {}
