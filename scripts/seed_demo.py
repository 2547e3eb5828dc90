#!/usr/bin/env python3
"""Seed demo data: one booth of voters, two survey forms, a few responses.

Usage:
    python scripts/seed_demo.py          # uses DATABASE_URL from env / .env
    DATABASE_URL=... python scripts/seed_demo.py
"""
from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.orm import Session

from households.db.base import Base
from households.db.models import SurveyForm, SurveyResponse, Voter
from households.db.session import get_engine, session_scope

ACI_ID = 111
BOOTH_ID = "BOOTH001"


def seed(session: Session) -> None:
    """Insert demo voters with mixed address field names, forms and responses."""

    now = datetime.now(timezone.utc)

    demo_voters = [
        # (voter_id, name, age, address fragments, family_id, surveyed)
        ("TNX0000001", "Murugan K", 62, {"Door_No": 12, "Anubhag_name": "Main Road"}, None, True),
        ("TNX0000002", "Lakshmi M", 58, {"Door_No": 12, "Anubhag_name": "Main Road"}, None, False),
        ("TNX0000003", "Senthil M", 31, {"HouseNo": "12", "Street": "Main Road"}, None, False),
        ("TNX0000004", "Kavitha R", 45, {"Address-House no": "4/2", "Address-Street": "Temple St"}, None, True),
        ("TNX0000005", "Ravi R", 49, {"Address-House no": "4/2", "Address-Street": "Temple St"}, None, False),
        ("TNX0000006", "Anitha S", 27, {"door_no": "7", "address": "Lake View"}, None, False),
        ("TNX0000007", "Prakash V", 39, {}, None, False),
        ("TNX0000008", "Meena V", 36, {"Door_No": 3}, None, False),
        ("TNX0000009", "Selvi P", 70, {"doornumber": "88", "address": "Market Lane"}, "FAM0005", False),
    ]

    for voter_id, name, age, fields, family_id, surveyed in demo_voters:
        session.add(
            Voter(
                voter_id=voter_id,
                name=name,
                age=age,
                aci_id=ACI_ID,
                booth_id=BOOTH_ID,
                address_fields=fields,
                family_id=family_id,
                surveyed=surveyed,
                surveyed_at=now if surveyed else None,
            )
        )

    session.add(SurveyForm(form_id="welfare-2026", title="Household welfare", status="Active", assigned_acs=[ACI_ID]))
    session.add(SurveyForm(form_id="issues-2026", title="Local issues", status="active", assigned_acs=[]))
    session.add(SurveyForm(form_id="pilot-2025", title="Pilot questionnaire", status="Inactive"))

    for form_id, voter_id, complete in [
        ("welfare-2026", "TNX0000001", True),
        ("welfare-2026", "TNX0000004", True),
        ("issues-2026", "TNX0000004", True),
        ("issues-2026", "TNX0000002", False),
    ]:
        session.add(
            SurveyResponse(
                form_id=form_id,
                respondent_voter_id=voter_id,
                is_complete=complete,
                submitted_at=now,
            )
        )

    session.commit()
    print(f"Seeded {len(demo_voters)} voters, 3 survey forms, 4 responses")


def main() -> None:
    Base.metadata.create_all(bind=get_engine())

    with session_scope() as session:
        seed(session)


if __name__ == "__main__":
    main()
