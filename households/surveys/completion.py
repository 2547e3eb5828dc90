"""Survey completion resolver and polling-unit survey stats.

Both functions are pure: they take snapshots and return new values.
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from households.records import SurveyFormRecord, SurveyResponseRecord, VoterRecord


def completion_for(
    form_id: str,
    population: Iterable[VoterRecord],
    responses: Iterable[SurveyResponseRecord],
) -> set[str]:
    """Return ids of voters in *population* with a complete response to *form_id*."""
    voter_ids = {v.voter_id for v in population}
    return {
        r.respondent
        for r in responses
        if r.form_id == form_id and r.is_complete and r.respondent in voter_ids
    }


def completions_by_form(
    forms: Iterable[SurveyFormRecord],
    population: Sequence[VoterRecord],
    responses: Sequence[SurveyResponseRecord],
) -> dict[str, set[str]]:
    """Return ``{form_id: completion set}`` for every form in *forms*."""
    return {f.form_id: completion_for(f.form_id, population, responses) for f in forms}


# ---------------------------------------------------------------------------
# Polling-unit stats
# ---------------------------------------------------------------------------

@dataclass
class FormResponseCount:
    form_id: str
    title: str
    response_count: int


@dataclass
class BoothSurveyStats:
    active_surveys: int = 0
    total_responses: int = 0
    surveys: list[FormResponseCount] = field(default_factory=list)


def forms_for_constituency(
    forms: Iterable[SurveyFormRecord],
    aci_id: int | None,
) -> list[SurveyFormRecord]:
    """Active forms assigned to *aci_id*, or to no constituency at all."""
    return [
        f for f in forms
        if f.is_active and (not f.assigned_acs or aci_id is None or aci_id in f.assigned_acs)
    ]


def booth_survey_stats(
    forms: Iterable[SurveyFormRecord],
    population: Sequence[VoterRecord],
    responses: Sequence[SurveyResponseRecord],
    aci_id: int | None,
) -> BoothSurveyStats:
    """Count complete responses per active form among one booth's voters."""
    active = forms_for_constituency(forms, aci_id)
    counts = [
        FormResponseCount(
            form_id=f.form_id,
            title=f.title,
            response_count=len(completion_for(f.form_id, population, responses)),
        )
        for f in active
    ]
    return BoothSurveyStats(
        active_surveys=len(active),
        total_responses=sum(c.response_count for c in counts),
        surveys=counts,
    )
