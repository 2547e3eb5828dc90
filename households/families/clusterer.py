"""Household clusterer.

Splits a voter snapshot into four partitions:

* ``manual``     voters already carrying a family id (never re-clustered)
* ``clusters``   household keys shared by two or more voters
* ``singletons`` household keys held by exactly one voter
* ``unkeyed``    voters whose address yields no household key

Clusters are ordered by member count (descending) and then by the position
of their first member in the input, so identifier allocation downstream is
deterministic for a stable input order.
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from households.core.settings import DEFAULT_HOUSE_NUMBER_ALIASES, DEFAULT_STREET_ALIASES
from households.normalization.address_normalizer import household_key
from households.records import VoterRecord


# ---------------------------------------------------------------------------
# Output dataclasses
# ---------------------------------------------------------------------------

@dataclass
class HouseholdCluster:
    """Voters sharing one household key."""

    key: str
    first_seen: int
    members: list[VoterRecord] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.members)

    @property
    def voter_ids(self) -> list[str]:
        return [m.voter_id for m in self.members]


@dataclass
class ClusterPlan:
    manual: list[VoterRecord] = field(default_factory=list)
    clusters: list[HouseholdCluster] = field(default_factory=list)
    singletons: list[HouseholdCluster] = field(default_factory=list)
    unkeyed: list[VoterRecord] = field(default_factory=list)

    @property
    def unassigned_count(self) -> int:
        """Voters that need an identifier from this run."""
        return (
            sum(c.size for c in self.clusters)
            + len(self.singletons)
            + len(self.unkeyed)
        )


# ---------------------------------------------------------------------------
# Clustering
# ---------------------------------------------------------------------------

def cluster_households(
    voters: Iterable[VoterRecord],
    house_aliases: Sequence[str] = DEFAULT_HOUSE_NUMBER_ALIASES,
    street_aliases: Sequence[str] = DEFAULT_STREET_ALIASES,
) -> ClusterPlan:
    """Group *voters* without a family id by household key."""
    plan = ClusterPlan()
    groups: dict[str, HouseholdCluster] = {}

    for position, voter in enumerate(voters):
        if voter.has_family:
            plan.manual.append(voter)
            continue

        key = household_key(voter.address_fields, house_aliases, street_aliases)
        if key is None:
            plan.unkeyed.append(voter)
            continue

        group = groups.get(key)
        if group is None:
            group = groups[key] = HouseholdCluster(key=key, first_seen=position)
        group.members.append(voter)

    # dicts keep insertion order, which is first-seen order
    for group in groups.values():
        if group.size >= 2:
            plan.clusters.append(group)
        else:
            plan.singletons.append(group)

    plan.clusters.sort(key=lambda c: (-c.size, c.first_seen))
    return plan
