"""Tests for households.families.runner.run_family_resolution."""
from __future__ import annotations

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from households.core.errors import PersistenceError, ResolutionInProgressError, StoreUnavailableError
from households.core.settings import Settings
from households.db import models
from households.db.base import Base
from households.db.repositories import FAMILY_RESOLUTION_LOCK, ResolutionRunRepository, VoterRepository
from households.families import runner
from households.families.runner import run_family_resolution


@pytest.fixture()
def db():
    engine = create_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    session_factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    with session_factory() as session:
        voters = VoterRepository(session)
        voters.create(voter_id="V1", address_fields={"HouseNo": "12", "Street": "Main"})
        voters.create(voter_id="V2", address_fields={"HouseNo": "12", "Street": "Main"})
        voters.create(voter_id="V3", address_fields={"HouseNo": "5", "Street": "Main"}, family_id="FAM0001")
        session.commit()
        yield session


class TestRunFamilyResolution:
    def test_successful_run(self, db) -> None:
        run, summary = run_family_resolution(db, initiated_by="tester")

        assert run.status == "completed"
        assert run.initiated_by == "tester"
        assert run.families_created == 1
        assert run.voters_updated == 2
        assert summary.assignment == {"FAM0001": {"V3"}, "FAM0002": {"V1", "V2"}}
        assert db.get(models.ResolutionLock, FAMILY_RESOLUTION_LOCK) is None

        voters = VoterRepository(db)
        assert voters.get_by_voter_id("V1").family_id == "FAM0002"
        assert voters.get_by_voter_id("V2").family_id == "FAM0002"

    def test_second_run_writes_nothing(self, db) -> None:
        run_family_resolution(db)
        run, summary = run_family_resolution(db)

        assert run.families_created == 0
        assert summary.voters_updated == 0

    def test_held_lock_rejects_run(self, db) -> None:
        ResolutionRunRepository(db).acquire_lock("someone-else")
        db.commit()

        with pytest.raises(ResolutionInProgressError):
            run_family_resolution(db)

        assert ResolutionRunRepository(db).latest() is None

    def test_failure_marks_run_and_releases_lock(self, db, monkeypatch) -> None:
        def _unavailable(store, settings=None, retry=None):
            raise StoreUnavailableError("voters read failed")

        monkeypatch.setattr(runner, "resolve_families", _unavailable)

        with pytest.raises(StoreUnavailableError):
            run_family_resolution(db, initiated_by="tester")

        latest = ResolutionRunRepository(db).latest()
        assert latest.status == "failed"
        assert latest.error_summary.startswith("store_unavailable")
        assert db.get(models.ResolutionLock, FAMILY_RESOLUTION_LOCK) is None

    def test_failed_write_retried_with_same_id(self, db, monkeypatch) -> None:
        original = VoterRepository.set_family_id_if_empty

        def _flaky(self, voter_id, family_id):
            if voter_id == "V2":
                raise PersistenceError(voter_id, "lock timeout")
            return original(self, voter_id, family_id)

        monkeypatch.setattr(VoterRepository, "set_family_id_if_empty", _flaky)
        run, _ = run_family_resolution(db)
        assert run.status == "completed_with_errors"
        assert run.failed_assignments == {"V2": "FAM0002"}

        monkeypatch.setattr(VoterRepository, "set_family_id_if_empty", original)
        run, summary = run_family_resolution(db)

        assert run.status == "completed"
        assert summary.voters_retried == 1
        assert VoterRepository(db).get_by_voter_id("V2").family_id == "FAM0002"
        assert summary.assignment == {"FAM0001": {"V3"}, "FAM0002": {"V1", "V2"}}

    def test_cleanup_failure_keeps_original_error(self, db, monkeypatch) -> None:
        def _unavailable(store, settings=None, retry=None):
            raise StoreUnavailableError("voters read failed")

        def _broken(self, run, error_summary):
            raise OperationalError("UPDATE resolution_runs", {}, Exception("connection lost"))

        monkeypatch.setattr(runner, "resolve_families", _unavailable)
        monkeypatch.setattr(ResolutionRunRepository, "fail", _broken)

        with pytest.raises(StoreUnavailableError):
            run_family_resolution(db)

        assert db.get(models.ResolutionLock, FAMILY_RESOLUTION_LOCK) is not None

    def test_expired_lock_does_not_block_next_run(self, db) -> None:
        ResolutionRunRepository(db).acquire_lock("crashed-run")
        db.commit()

        run, _ = run_family_resolution(db, settings=Settings(RESOLUTION_LOCK_TTL_SECONDS=-1))

        assert run.status == "completed"
        assert db.get(models.ResolutionLock, FAMILY_RESOLUTION_LOCK) is None
