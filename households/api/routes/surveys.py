"""Per-form survey completion routes.

Completion always comes from the form's own complete responses, never from
the voter's legacy ``surveyed`` flag.
"""
from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query

from households.api.deps import get_survey_store, get_voter_store
from households.db.repositories import SqlSurveyStore, VoterRepository
from households.surveys.completion import booth_survey_stats, completion_for

router = APIRouter(prefix="/surveys", tags=["surveys"])


@router.get("/booth-stats", summary="Complete responses per active form for one booth")
def booth_stats(
    aci_id: int = Query(...),
    booth_id: str = Query(...),
    voters: VoterRepository = Depends(get_voter_store),
    surveys: SqlSurveyStore = Depends(get_survey_store),
) -> dict:
    population = voters.list_voters(aci_id=aci_id, booth_id=booth_id)
    stats = booth_survey_stats(
        surveys.list_forms(),
        population,
        surveys.list_responses(complete_only=True),
        aci_id,
    )
    return asdict(stats)


@router.get("/{form_id}/completed-voters", summary="Voters who completed this form")
def completed_voters(
    form_id: str,
    aci_id: int | None = Query(default=None),
    booth_id: str | None = Query(default=None),
    voters: VoterRepository = Depends(get_voter_store),
    surveys: SqlSurveyStore = Depends(get_survey_store),
) -> dict:
    if not any(f.form_id == form_id for f in surveys.list_forms()):
        raise HTTPException(status_code=404, detail=f"Survey form not found: {form_id!r}")

    population = voters.list_voters(aci_id=aci_id, booth_id=booth_id)
    completed = completion_for(form_id, population, surveys.list_responses(form_id, complete_only=True))
    return {
        "form_id": form_id,
        "completed_voter_ids": sorted(completed),
        "completed_count": len(completed),
    }
