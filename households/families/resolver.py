"""Family resolution run: cluster, allocate, persist, summarise.

``resolve_families`` is the batch entry point.  It first retries writes an
earlier run failed, then reads one snapshot from the voter store, leaves
every voter that already has a family id untouched, and writes new ids for
the rest.  Callers are responsible for making sure
two runs never overlap on the same roll (see ``households.families.runner``).
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace

from households.core.errors import ErrorCategory
from households.core.settings import Settings, get_settings
from households.families.clusterer import cluster_households
from households.families.identity import (
    AssignmentOutcome,
    FamilyIdFormat,
    apply_families,
    plan_families,
    plan_retries,
    seed_counter,
)
from households.records import VoterRecord
from households.store import VoterStore

logger = logging.getLogger(__name__)


@dataclass
class ResolutionSummary:
    """Outcome of one resolution run, returned to callers as-is."""

    families_created: int = 0
    voters_updated: int = 0
    voters_unkeyed: int = 0
    voters_unassigned: int = 0
    voters_already_assigned: int = 0
    voters_retried: int = 0
    failed_voter_ids: list[str] = field(default_factory=list)
    failed_assignments: dict[str, str] = field(default_factory=dict)
    skipped_voter_ids: list[str] = field(default_factory=list)
    assignment: dict[str, set[str]] = field(default_factory=dict)

    @property
    def total_families(self) -> int:
        return len(self.assignment)

    def to_dict(self) -> dict:
        return {
            "families_created": self.families_created,
            "voters_updated": self.voters_updated,
            "voters_unkeyed": self.voters_unkeyed,
            "voters_unassigned": self.voters_unassigned,
            "voters_already_assigned": self.voters_already_assigned,
            "voters_retried": self.voters_retried,
            "failed_voter_ids": list(self.failed_voter_ids),
            "failed_assignments": dict(self.failed_assignments),
            "skipped_voter_ids": list(self.skipped_voter_ids),
            "total_families": self.total_families,
        }


def family_assignments(voters: Iterable[VoterRecord]) -> dict[str, set[str]]:
    """Return ``{family_id: {voter_id, ...}}`` for voters that carry an id."""
    assignment: dict[str, set[str]] = {}
    for voter in voters:
        if voter.has_family:
            assignment.setdefault(voter.family_id.strip(), set()).add(voter.voter_id)
    return assignment


def resolve_families(
    store: VoterStore,
    settings: Settings | None = None,
    retry: Mapping[str, str] | None = None,
) -> ResolutionSummary:
    """Cluster unassigned voters by address and persist new family ids.

    *retry* maps voter id to the family id a previous run failed to write;
    those pairs are written first so the voter rejoins the household its
    housemates already carry.
    """
    settings = settings or get_settings()
    fmt = FamilyIdFormat(prefix=settings.family_id_prefix, width=settings.family_id_width)

    snapshot = store.list_voters()

    retried = AssignmentOutcome()
    retries = plan_retries(retry or {}, snapshot)
    if retries:
        retried = apply_families(store, retries)
        logger.info(
            "Retried %d earlier failed writes, %d succeeded",
            sum(len(f.voter_ids) for f in retries),
            retried.voters_updated,
        )
        snapshot = store.list_voters()

    # a voter whose retry failed again keeps waiting for its household id
    voters = [v for v in snapshot if v.voter_id not in retried.failed_families]
    plan = cluster_households(
        voters,
        house_aliases=settings.house_number_aliases,
        street_aliases=settings.street_aliases,
    )

    # ids still owed to voters whose retry failed are never reissued
    existing_ids = {v.family_id.strip() for v in plan.manual} | set(retried.failed_families.values())
    next_number = seed_counter(existing_ids, fmt)
    planned, _ = plan_families(
        plan,
        next_number,
        existing_ids,
        fmt,
        assign_singletons=settings.assign_singleton_families,
    )

    logger.info(
        "Family resolution: %d voters, %d already assigned, %d clusters, "
        "%d singletons, %d without household key (%s), counter seeded at %d",
        len(voters),
        len(plan.manual),
        len(plan.clusters),
        len(plan.singletons),
        len(plan.unkeyed),
        ErrorCategory.INPUT_DEFECT.value,
        next_number,
    )

    outcome = apply_families(store, planned)

    # writes lost to concurrent assignments leave ids the snapshot never saw
    final = store.list_voters() if outcome.skipped or retried.skipped else _voters_after(snapshot, outcome)

    failed_families = {**retried.failed_families, **outcome.failed_families}
    summary = ResolutionSummary(
        families_created=outcome.families_created,
        voters_updated=outcome.voters_updated + retried.voters_updated,
        voters_unkeyed=len(plan.unkeyed),
        voters_unassigned=sum(1 for v in final if not v.has_family),
        voters_already_assigned=len(plan.manual) - retried.voters_updated,
        voters_retried=retried.voters_updated,
        failed_voter_ids=retried.failed + outcome.failed,
        failed_assignments=failed_families,
        skipped_voter_ids=retried.skipped + outcome.skipped,
        assignment=family_assignments(final),
    )

    if summary.failed_voter_ids:
        logger.warning(
            "Family resolution finished with %d failed writes", len(summary.failed_voter_ids)
        )
    logger.info(
        "Family resolution: %d families created, %d voters updated",
        summary.families_created,
        summary.voters_updated,
    )
    return summary


def _voters_after(voters: Iterable[VoterRecord], outcome: AssignmentOutcome) -> list[VoterRecord]:
    """Apply the ids written in *outcome* to a snapshot without re-reading the store."""
    written = {vid: fid for fid, ids in outcome.written.items() for vid in ids}
    return [replace(v, family_id=written[v.voter_id]) if v.voter_id in written else v for v in voters]
