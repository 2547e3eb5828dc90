"""Dashboard metrics aggregator.

Metric formulas::

    total_responses_needed = total_voters * active_surveys
    completed_responses    = sum over active forms of |completion set|
    visits_pending         = max(0, total_responses_needed - completed_responses)

A voter who completed two active forms counts twice in
``completed_responses``.  Nothing here is stored; every call recomputes from
the snapshot it is given.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass

from households.families.resolver import family_assignments
from households.records import SurveyFormRecord, SurveyResponseRecord, VoterRecord
from households.store import SurveyStore, VoterStore
from households.surveys.completion import completions_by_form

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardMetrics:
    total_voters: int
    total_families: int
    active_surveys: int
    total_responses_needed: int
    completed_responses: int
    visits_pending: int

    @classmethod
    def from_counts(
        cls,
        total_voters: int,
        total_families: int,
        active_surveys: int,
        completed_responses: int,
    ) -> DashboardMetrics:
        needed = total_voters * active_surveys
        return cls(
            total_voters=total_voters,
            total_families=total_families,
            active_surveys=active_surveys,
            total_responses_needed=needed,
            completed_responses=completed_responses,
            visits_pending=max(0, needed - completed_responses),
        )

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def aggregate_metrics(
    population: Sequence[VoterRecord],
    assignment: Mapping[str, set[str]],
    forms: Sequence[SurveyFormRecord],
    completions: Mapping[str, set[str]],
) -> DashboardMetrics:
    """Combine precomputed family assignment and completion sets into metrics.

    *completions* maps form id to completion set; forms missing from it count
    as having no completions.
    """
    active = [f for f in forms if f.is_active]
    completed = sum(len(completions.get(f.form_id, ())) for f in active)
    return DashboardMetrics.from_counts(
        total_voters=len(population),
        total_families=len(assignment),
        active_surveys=len(active),
        completed_responses=completed,
    )


def compute_metrics(
    population: Sequence[VoterRecord],
    forms: Sequence[SurveyFormRecord],
    responses: Sequence[SurveyResponseRecord],
) -> DashboardMetrics:
    """Compute dashboard metrics for *population* from raw snapshots."""
    active = [f for f in forms if f.is_active]
    return aggregate_metrics(
        population,
        family_assignments(population),
        forms,
        completions_by_form(active, population, responses),
    )


def load_dashboard_metrics(
    voter_store: VoterStore,
    survey_store: SurveyStore,
    *,
    aci_id: int | None = None,
    booth_id: str | None = None,
) -> DashboardMetrics:
    """Read a fresh snapshot from the stores and compute metrics for it."""
    population = voter_store.list_voters(aci_id=aci_id, booth_id=booth_id)
    forms = survey_store.list_forms()
    responses = survey_store.list_responses(complete_only=True)
    metrics = compute_metrics(population, forms, responses)
    logger.info(
        "Dashboard metrics: %d voters, %d families, %d active surveys, %d pending",
        metrics.total_voters,
        metrics.total_families,
        metrics.active_surveys,
        metrics.visits_pending,
    )
    return metrics
