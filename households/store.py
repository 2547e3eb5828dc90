"""Collaborator interfaces consumed by the core.

``households.db.repositories`` provides the SQLAlchemy implementations; any
object with the same methods can stand in for them.
"""
from __future__ import annotations

from typing import Protocol

from households.records import SurveyFormRecord, SurveyResponseRecord, VoterRecord


class VoterStore(Protocol):
    def list_voters(
        self,
        *,
        aci_id: int | None = None,
        booth_id: str | None = None,
    ) -> list[VoterRecord]:
        """Return a snapshot of voters, optionally limited to one polling unit."""
        ...

    def set_family_id_if_empty(self, voter_id: str, family_id: str) -> bool:
        """Write *family_id* only if the voter has none.

        Returns True when written, False when the voter already carried an
        identifier.  Raises ``PersistenceError`` for a per-record failure and
        ``StoreUnavailableError`` when the store cannot be reached.
        """
        ...


class SurveyStore(Protocol):
    def list_forms(self) -> list[SurveyFormRecord]:
        ...

    def list_responses(
        self,
        form_id: str | None = None,
        *,
        complete_only: bool = True,
    ) -> list[SurveyResponseRecord]:
        ...
