"""Plain snapshot records exchanged between the store and the core.

The core never touches ORM objects: stores hand out these frozen records and
accept writes by voter identifier.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class VoterRecord:
    """One person on the roll, as imported."""

    voter_id: str
    name: str | None = None
    address_fields: Mapping[str, object] = field(default_factory=dict)
    family_id: str | None = None
    surveyed: bool = False
    age: int | None = None
    aci_id: int | None = None
    booth_id: str | None = None

    @property
    def has_family(self) -> bool:
        return bool(self.family_id and self.family_id.strip())


@dataclass(frozen=True)
class SurveyFormRecord:
    form_id: str
    title: str = ""
    status: str | None = None
    assigned_acs: tuple[int, ...] = ()

    @property
    def is_active(self) -> bool:
        return (self.status or "").lower() == "active"


@dataclass(frozen=True)
class SurveyResponseRecord:
    form_id: str
    respondent_voter_id: str | None = None
    respondent_id: str | None = None
    is_complete: bool = False
    submitted_at: datetime | None = None

    @property
    def respondent(self) -> str | None:
        """Voter id of the respondent, falling back to the generic respondent id."""
        return self.respondent_voter_id or self.respondent_id or None
