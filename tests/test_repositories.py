"""Tests for households.db.repositories against in-memory SQLite."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from households.core.errors import PersistenceError, ResolutionInProgressError, StoreUnavailableError
from households.db import models
from households.db.base import Base
from households.db.repositories import (
    FAMILY_RESOLUTION_LOCK,
    ResolutionRunRepository,
    SqlSurveyStore,
    SurveyFormRepository,
    SurveyResponseRepository,
    VoterRepository,
)
from households.families.resolver import ResolutionSummary


@pytest.fixture()
def db():
    engine = create_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    session_factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    with session_factory() as session:
        yield session


@pytest.fixture()
def bare_db():
    """Session over a database with no tables."""
    engine = create_engine("sqlite+pysqlite:///:memory:")
    session_factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    with session_factory() as session:
        yield session


def _seed_voters(db) -> VoterRepository:
    voters = VoterRepository(db)
    voters.create(voter_id="V1", name="Ravi", aci_id=111, booth_id="B1", address_fields={"HouseNo": "12", "Street": "Main"})
    voters.create(voter_id="V2", name="Lakshmi", aci_id=111, booth_id="B1", address_fields={"Door_No": 12, "Street": "Main"})
    voters.create(voter_id="V3", name="Arun", aci_id=111, booth_id="B2", family_id="FAM0003")
    db.commit()
    return voters


class TestVoterRepository:
    def test_list_voters_returns_records(self, db) -> None:
        voters = _seed_voters(db)
        records = voters.list_voters()

        assert [r.voter_id for r in records] == ["V1", "V2", "V3"]
        assert records[1].address_fields == {"Door_No": 12, "Street": "Main"}
        assert records[2].family_id == "FAM0003"

    def test_list_voters_filters_polling_unit(self, db) -> None:
        voters = _seed_voters(db)
        assert [r.voter_id for r in voters.list_voters(aci_id=111, booth_id="B2")] == ["V3"]
        assert voters.list_voters(aci_id=999) == []

    def test_set_family_id_if_empty_writes_once(self, db) -> None:
        voters = _seed_voters(db)

        assert voters.set_family_id_if_empty("V1", "FAM0004") is True
        assert voters.set_family_id_if_empty("V1", "FAM0005") is False
        assert voters.get_by_voter_id("V1").family_id == "FAM0004"

    def test_manual_id_not_overwritten(self, db) -> None:
        voters = _seed_voters(db)
        assert voters.set_family_id_if_empty("V3", "FAM0009") is False
        assert voters.get_by_voter_id("V3").family_id == "FAM0003"

    def test_unknown_voter_is_persistence_error(self, db) -> None:
        voters = _seed_voters(db)
        with pytest.raises(PersistenceError) as excinfo:
            voters.set_family_id_if_empty("V404", "FAM0001")
        assert excinfo.value.voter_id == "V404"

    def test_missing_table_is_store_unavailable(self, bare_db) -> None:
        voters = VoterRepository(bare_db)
        with pytest.raises(StoreUnavailableError):
            voters.list_voters()
        with pytest.raises(StoreUnavailableError):
            voters.set_family_id_if_empty("V1", "FAM0001")


class TestSurveyStore:
    def test_forms_and_responses(self, db) -> None:
        SurveyFormRepository(db).create(form_id="A", title="Welfare", status="Active", assigned_acs=[111])
        SurveyFormRepository(db).create(form_id="B", title="Pilot", status="Inactive")
        responses = SurveyResponseRepository(db)
        responses.create(form_id="A", respondent_voter_id="V1", is_complete=True)
        responses.create(form_id="A", respondent_id="V2", is_complete=False)
        responses.create(form_id="B", respondent_voter_id="V1", is_complete=True)
        db.commit()

        store = SqlSurveyStore(db)
        forms = {f.form_id: f for f in store.list_forms()}
        assert forms["A"].assigned_acs == (111,)
        assert forms["A"].is_active
        assert not forms["B"].is_active

        assert [r.respondent for r in store.list_responses("A")] == ["V1"]
        assert len(store.list_responses("A", complete_only=False)) == 2
        assert len(store.list_responses()) == 2


class TestResolutionRunRepository:
    def test_lock_is_exclusive(self, db) -> None:
        runs = ResolutionRunRepository(db)
        runs.acquire_lock("first")
        db.commit()

        with pytest.raises(ResolutionInProgressError):
            runs.acquire_lock("second")

        assert runs.release_lock() is True
        db.commit()
        assert db.get(models.ResolutionLock, FAMILY_RESOLUTION_LOCK) is None
        runs.acquire_lock("second")

    def test_stale_lock_taken_over(self, db) -> None:
        db.add(models.ResolutionLock(
            name=FAMILY_RESOLUTION_LOCK,
            holder="crashed-run",
            acquired_at=datetime.now(timezone.utc) - timedelta(hours=2),
        ))
        db.commit()

        lock = ResolutionRunRepository(db).acquire_lock("next-run", ttl_seconds=3600)
        db.commit()

        assert lock.holder == "next-run"
        assert db.get(models.ResolutionLock, FAMILY_RESOLUTION_LOCK, populate_existing=True).holder == "next-run"

    def test_fresh_lock_not_taken_over(self, db) -> None:
        runs = ResolutionRunRepository(db)
        runs.acquire_lock("first", ttl_seconds=3600)
        db.commit()

        with pytest.raises(ResolutionInProgressError):
            runs.acquire_lock("second", ttl_seconds=3600)

    def test_release_without_lock(self, db) -> None:
        assert ResolutionRunRepository(db).release_lock() is False

    def test_run_lifecycle(self, db) -> None:
        runs = ResolutionRunRepository(db)
        run = runs.start("tester")
        assert run.status == "running"

        summary = ResolutionSummary(families_created=2, voters_updated=5, voters_unkeyed=1, failed_voter_ids=["V9"])
        runs.finish(run, summary)
        db.commit()

        latest = runs.latest()
        assert latest.id == run.id
        assert latest.status == "completed_with_errors"
        assert latest.families_created == 2
        assert latest.failed_voter_ids == ["V9"]
        assert latest.completed_at is not None

    def test_pending_retries_from_last_finished_run(self, db) -> None:
        runs = ResolutionRunRepository(db)
        assert runs.pending_retries() == {}

        runs.finish(runs.start("tester"), ResolutionSummary(failed_voter_ids=["V2"], failed_assignments={"V2": "FAM0001"}))
        runs.fail(runs.start("tester"), "store_unavailable: down")
        db.commit()

        assert runs.pending_retries() == {"V2": "FAM0001"}

    def test_fail_records_summary(self, db) -> None:
        runs = ResolutionRunRepository(db)
        run = runs.fail(runs.start("tester"), "store_unavailable: down")
        assert run.status == "failed"
        assert run.error_summary == "store_unavailable: down"


class TestSchema:
    def test_voter_columns(self) -> None:
        assert set(models.Voter.__table__.columns.keys()) == {
            "id",
            "voter_id",
            "name",
            "age",
            "aci_id",
            "booth_id",
            "address_fields",
            "family_id",
            "surveyed",
            "surveyed_at",
            "created_at",
            "updated_at",
        }
