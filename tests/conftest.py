import os
from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from households.core.errors import PersistenceError, StoreUnavailableError


class InMemoryVoterStore:
    """Voter store over a list of records; simulates per-voter write failures."""

    def __init__(self, voters, fail_on=(), unavailable_on=(), assigned_elsewhere=None):
        self.voters = {v.voter_id: v for v in voters}
        self.fail_on = set(fail_on)
        self.unavailable_on = set(unavailable_on)
        # voter id -> family id another writer sets just before our write
        self.assigned_elsewhere = dict(assigned_elsewhere or {})
        self.writes: list[tuple[str, str]] = []

    def list_voters(self, *, aci_id=None, booth_id=None):
        return [
            v for v in self.voters.values()
            if (aci_id is None or v.aci_id == aci_id) and (booth_id is None or v.booth_id == booth_id)
        ]

    def set_family_id_if_empty(self, voter_id: str, family_id: str) -> bool:
        if voter_id in self.unavailable_on:
            raise StoreUnavailableError("voters write failed")
        if voter_id in self.fail_on:
            raise PersistenceError(voter_id, "simulated failure")
        if voter_id in self.assigned_elsewhere:
            self.voters[voter_id] = replace(self.voters[voter_id], family_id=self.assigned_elsewhere.pop(voter_id))
        voter = self.voters[voter_id]
        if voter.has_family:
            return False
        self.voters[voter_id] = replace(voter, family_id=family_id)
        self.writes.append((voter_id, family_id))
        return True


@pytest.fixture
def make_store():
    return InMemoryVoterStore


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch) -> TestClient:
    monkeypatch.setenv("DATABASE_URL", "sqlite+pysqlite:///:memory:")

    from households.core.settings import get_settings

    get_settings.cache_clear()

    from households.main import app

    with TestClient(app) as test_client:
        yield test_client

    get_settings.cache_clear()
    os.environ.pop("DATABASE_URL", None)
