from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text, func, text as sql_text
from sqlalchemy.orm import Mapped, mapped_column

from households.db.base import Base
from households.records import SurveyFormRecord, SurveyResponseRecord, VoterRecord


class Voter(Base):
    """One row per person on the roll.

    ``address_fields`` keeps the imported address fragments under whatever
    names the source file used; the normalizer picks from them by alias.
    """

    __tablename__ = "voters"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    voter_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    aci_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    booth_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    address_fields: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    family_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    surveyed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=sql_text("false"))
    surveyed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    def to_record(self) -> VoterRecord:
        return VoterRecord(
            voter_id=self.voter_id,
            name=self.name,
            address_fields=dict(self.address_fields or {}),
            family_id=self.family_id,
            surveyed=bool(self.surveyed),
            age=self.age,
            aci_id=self.aci_id,
            booth_id=self.booth_id,
        )


class SurveyForm(Base):
    __tablename__ = "survey_forms"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    form_id: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="Active", server_default=sql_text("'Active'"))
    assigned_acs: Mapped[list | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def to_record(self) -> SurveyFormRecord:
        return SurveyFormRecord(
            form_id=self.form_id,
            title=self.title,
            status=self.status,
            assigned_acs=tuple(int(ac) for ac in (self.assigned_acs or [])),
        )


class SurveyResponse(Base):
    __tablename__ = "survey_responses"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    form_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    respondent_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    respondent_voter_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    respondent_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    answers: Mapped[list | None] = mapped_column(JSON, nullable=True)
    is_complete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=sql_text("false"))
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def to_record(self) -> SurveyResponseRecord:
        return SurveyResponseRecord(
            form_id=self.form_id,
            respondent_voter_id=self.respondent_voter_id,
            respondent_id=self.respondent_id,
            is_complete=bool(self.is_complete),
            submitted_at=self.submitted_at,
        )


class ResolutionRun(Base):
    """One row per family resolution batch run, with its summary counts."""

    __tablename__ = "resolution_runs"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    initiated_by: Mapped[str] = mapped_column(String(128), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="running", server_default=sql_text("'running'"))
    families_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=sql_text("0"))
    voters_updated: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=sql_text("0"))
    voters_unkeyed: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=sql_text("0"))
    voters_unassigned: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=sql_text("0"))
    failed_voter_ids: Mapped[list | None] = mapped_column(JSON, nullable=True)
    # voter id -> family id still to be written; retried by the next run
    failed_assignments: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    error_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class ResolutionLock(Base):
    """Single-writer lock: at most one row per lock name."""

    __tablename__ = "resolution_locks"

    name: Mapped[str] = mapped_column(String(64), primary_key=True)
    holder: Mapped[str] = mapped_column(String(128), nullable=False)
    acquired_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
