"""Family resolution routes.

POST /families/resolve runs the batch job in-request; a second concurrent
call gets 409 from the store's writer lock.
"""
from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from households.api.deps import get_db, get_voter_store
from households.core.settings import get_settings
from households.db.repositories import ResolutionRunRepository, VoterRepository
from households.families.report import family_report
from households.families.runner import run_family_resolution

router = APIRouter(prefix="/families", tags=["families"])


class ResolveBody(BaseModel):
    initiated_by: str = "api"


def _serialize_run(run) -> dict:
    return {
        "run_id": str(run.id),
        "status": run.status,
        "initiated_by": run.initiated_by,
        "families_created": run.families_created,
        "voters_updated": run.voters_updated,
        "voters_unkeyed": run.voters_unkeyed,
        "voters_unassigned": run.voters_unassigned,
        "failed_voter_ids": list(run.failed_voter_ids or []),
        "failed_assignments": dict(run.failed_assignments or {}),
        "error_summary": run.error_summary,
        "started_at": run.started_at.isoformat() if run.started_at else None,
        "completed_at": run.completed_at.isoformat() if run.completed_at else None,
    }


@router.post("/resolve", summary="Cluster unassigned voters and persist family ids")
def resolve(body: ResolveBody | None = None, db: Session = Depends(get_db)) -> dict:
    initiated_by = body.initiated_by if body else "api"
    run, summary = run_family_resolution(db, initiated_by=initiated_by)
    return {"run_id": str(run.id), "status": run.status, **summary.to_dict()}


@router.get("/runs/latest", summary="Most recent resolution run")
def latest_run(db: Session = Depends(get_db)) -> dict:
    run = ResolutionRunRepository(db).latest()
    if run is None:
        raise HTTPException(status_code=404, detail="No resolution run recorded")
    return _serialize_run(run)


@router.get("/report", summary="Family size distribution and largest families")
def report(
    aci_id: int | None = Query(default=None),
    booth_id: str | None = Query(default=None),
    top: int | None = Query(default=None, ge=1, le=500),
    voters: VoterRepository = Depends(get_voter_store),
) -> dict:
    settings = get_settings()
    population = voters.list_voters(aci_id=aci_id, booth_id=booth_id)
    result = family_report(
        population,
        top=top or settings.family_report_top,
        street_aliases=settings.street_aliases,
    )
    return asdict(result)
