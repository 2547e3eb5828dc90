"""Family identity assigner.

Mints ``FAM####`` identifiers for the clusters produced by
``households.families.clusterer`` and writes them onto voter records.

Counter rule: the next number is ``max(existing generated number) + 1`` (or 1
when none exist), read once per run and passed explicitly through every
allocation.  Re-running over an unchanged roll therefore allocates nothing,
because every voter already carries an id after the first run.

Write rule: ids are written with the store's set-if-empty operation, one
voter at a time.  A failed write is recorded together with the id it was
meant to receive and the run carries on; the next run retries that pair
with the same id before clustering, so the household stays whole.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from households.core.errors import ErrorCategory, PersistenceError
from households.families.clusterer import ClusterPlan
from households.records import VoterRecord
from households.store import VoterStore

logger = logging.getLogger(__name__)

SOURCE_CLUSTER = "cluster"
SOURCE_SINGLETON = "singleton"
SOURCE_UNKEYED = "unkeyed"
SOURCE_RETRY = "retry"


# ---------------------------------------------------------------------------
# Identifier format
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FamilyIdFormat:
    prefix: str = "FAM"
    width: int = 4

    def format(self, number: int) -> str:
        return f"{self.prefix}{number:0{self.width}d}"

    def parse(self, family_id: str) -> int | None:
        """Return the sequence number of a generated id, or None for any other id."""
        m = re.fullmatch(re.escape(self.prefix) + r"(\d+)", family_id.strip())
        return int(m.group(1)) if m else None


def seed_counter(existing_ids: Iterable[str], fmt: FamilyIdFormat) -> int:
    """Return the first sequence number after the highest generated id in use."""
    numbers = [n for n in (fmt.parse(fid) for fid in existing_ids if fid) if n is not None]
    return max(numbers, default=0) + 1


def allocate_family_id(
    next_number: int,
    in_use: set[str],
    fmt: FamilyIdFormat,
) -> tuple[str, int]:
    """Return ``(family_id, next_number)`` for the first free id at or after *next_number*.

    A candidate already present in *in_use* is skipped, never reused.
    """
    while True:
        candidate = fmt.format(next_number)
        next_number += 1
        if candidate in in_use:
            logger.warning(
                "Family id %s already in use (%s); trying next number",
                candidate,
                ErrorCategory.IDENTIFIER_COLLISION.value,
            )
            continue
        return candidate, next_number


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------

@dataclass
class PlannedFamily:
    family_id: str
    voter_ids: list[str]
    source: str
    household_key: str | None = None


def plan_families(
    plan: ClusterPlan,
    next_number: int,
    in_use: Iterable[str],
    fmt: FamilyIdFormat,
    assign_singletons: bool = True,
) -> tuple[list[PlannedFamily], int]:
    """Allocate one new id per cluster, and per singleton/unkeyed voter if enabled.

    Allocation order is clusters, then singletons, then unkeyed voters.
    Returns the planned families and the counter value after the last
    allocation.
    """
    taken = set(in_use)
    planned: list[PlannedFamily] = []

    def _allocate(voter_ids: list[str], source: str, key: str | None) -> None:
        nonlocal next_number
        family_id, next_number = allocate_family_id(next_number, taken, fmt)
        taken.add(family_id)
        planned.append(PlannedFamily(family_id, voter_ids, source, key))

    for cluster in plan.clusters:
        _allocate(cluster.voter_ids, SOURCE_CLUSTER, cluster.key)

    if assign_singletons:
        for single in plan.singletons:
            _allocate(single.voter_ids, SOURCE_SINGLETON, single.key)
        for voter in plan.unkeyed:
            _allocate([voter.voter_id], SOURCE_UNKEYED, None)

    return planned, next_number


def plan_retries(
    pending: Mapping[str, str],
    voters: Iterable[VoterRecord],
) -> list[PlannedFamily]:
    """Re-plan writes that failed on an earlier run, keeping their family id.

    Only voters still on the roll and still without an id are retried.
    """
    waiting = {v.voter_id for v in voters if not v.has_family}
    grouped: dict[str, list[str]] = {}
    for voter_id, family_id in pending.items():
        if voter_id in waiting:
            grouped.setdefault(family_id, []).append(voter_id)
    return [PlannedFamily(family_id, ids, SOURCE_RETRY) for family_id, ids in grouped.items()]


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

@dataclass
class AssignmentOutcome:
    written: dict[str, list[str]] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    # voter id -> family id the failed write was meant to set
    failed_families: dict[str, str] = field(default_factory=dict)

    @property
    def voters_updated(self) -> int:
        return sum(len(ids) for ids in self.written.values())

    @property
    def families_created(self) -> int:
        return len(self.written)


def apply_families(store: VoterStore, planned: list[PlannedFamily]) -> AssignmentOutcome:
    """Write each planned id onto its members.

    ``PersistenceError`` for one voter is recorded in ``failed``; a voter that
    already had an id by the time of the write lands in ``skipped``.
    ``StoreUnavailableError`` propagates and ends the run.
    """
    outcome = AssignmentOutcome()

    for family in planned:
        for voter_id in family.voter_ids:
            try:
                written = store.set_family_id_if_empty(voter_id, family.family_id)
            except PersistenceError as exc:
                logger.warning(
                    "Family id write failed for a member of %s (%s): %s",
                    family.family_id,
                    exc.category.value,
                    exc.reason,
                )
                outcome.failed.append(voter_id)
                outcome.failed_families[voter_id] = family.family_id
                continue

            if written:
                outcome.written.setdefault(family.family_id, []).append(voter_id)
            else:
                outcome.skipped.append(voter_id)

    return outcome
