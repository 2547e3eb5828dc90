"""GET /dashboard/metrics: recomputed on every call, never cached."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from households.api.deps import get_survey_store, get_voter_store
from households.dashboard.metrics import load_dashboard_metrics
from households.db.repositories import SqlSurveyStore, VoterRepository

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/metrics", summary="Voter, family and survey roll-up metrics")
def metrics(
    aci_id: int | None = Query(default=None),
    booth_id: str | None = Query(default=None),
    voters: VoterRepository = Depends(get_voter_store),
    surveys: SqlSurveyStore = Depends(get_survey_store),
) -> dict[str, int]:
    return load_dashboard_metrics(voters, surveys, aci_id=aci_id, booth_id=booth_id).to_dict()
