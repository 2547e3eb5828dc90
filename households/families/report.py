"""Family size report.

Read-only diagnostics over a voter snapshot: how many families exist, how
their sizes are distributed, and which families are largest.  Used to check
whether address grouping actually found shared households.
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from households.core.settings import DEFAULT_STREET_ALIASES
from households.families.resolver import family_assignments
from households.normalization.address_normalizer import first_present
from households.records import VoterRecord


@dataclass
class FamilySummary:
    family_id: str
    size: int
    head_name: str | None
    address: str | None


@dataclass
class FamilyReport:
    total_families: int = 0
    voters_with_family: int = 0
    voters_without_family: int = 0
    single_member: int = 0
    two_members: int = 0
    three_plus_members: int = 0
    largest: list[FamilySummary] = field(default_factory=list)


def _head_of(members: list[VoterRecord]) -> VoterRecord:
    """Oldest member; unknown ages sort last, ties keep input order."""
    return max(members, key=lambda v: v.age if v.age is not None else -1)


def family_report(
    voters: Sequence[VoterRecord],
    top: int = 20,
    street_aliases: Sequence[str] = DEFAULT_STREET_ALIASES,
) -> FamilyReport:
    assignment = family_assignments(voters)

    sizes = {fid: len(ids) for fid, ids in assignment.items()}
    report = FamilyReport(
        total_families=len(assignment),
        voters_with_family=sum(sizes.values()),
        voters_without_family=sum(1 for v in voters if not v.has_family),
        single_member=sum(1 for s in sizes.values() if s == 1),
        two_members=sum(1 for s in sizes.values() if s == 2),
        three_plus_members=sum(1 for s in sizes.values() if s >= 3),
    )

    ranked = sorted(sizes.items(), key=lambda item: (-item[1], item[0]))
    for family_id, size in ranked[:top]:
        # keep the snapshot's order so the age tie-break is stable
        members = [v for v in voters if v.voter_id in assignment[family_id]]
        head = _head_of(members)
        address = first_present(head.address_fields, street_aliases)
        report.largest.append(
            FamilySummary(
                family_id=family_id,
                size=size,
                head_name=head.name,
                address=address or None,
            )
        )
    return report
