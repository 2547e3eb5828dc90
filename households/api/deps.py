"""FastAPI dependency injection: database sessions and store factories."""
from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from households.db.repositories import SqlSurveyStore, VoterRepository
from households.db.session import get_session_factory


def get_db() -> Generator[Session, None, None]:
    """Yield a SQLAlchemy session; commit on success, rollback on error."""
    db = get_session_factory()()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_voter_store(db: Session = Depends(get_db)) -> VoterRepository:
    return VoterRepository(db)


def get_survey_store(db: Session = Depends(get_db)) -> SqlSurveyStore:
    return SqlSurveyStore(db)
