"""
Tests for candidate management.
"""

from datetime import datetime, timedelta, timezone

import pytest

from core.exceptions import ReasonCode
from models.candidate import Candidate
from models.election import ElectionStatus
from services.candidate_service import CandidateService

NOW = datetime(2026, 5, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
async def upcoming(make_election):
    return await make_election(
        status=ElectionStatus.UPCOMING,
        start_time=NOW + timedelta(days=1),
        end_time=NOW + timedelta(days=2),
    )


@pytest.mark.unit
class TestCandidateService:
    """Test candidate registration and maintenance."""

    async def test_create_candidate(self, db_session, upcoming) -> None:
        candidate = await CandidateService(db_session).create_candidate(
            str(upcoming.id), "Alice", party="Blue", platform="Parks"
        )

        assert isinstance(candidate, Candidate)
        assert candidate.vote_count == 0
        assert candidate.is_active is True
        assert candidate.party == "Blue"

    async def test_duplicate_name_conflicts(self, db_session, upcoming) -> None:
        svc = CandidateService(db_session)
        await svc.create_candidate(str(upcoming.id), "Alice")

        result = await svc.create_candidate(str(upcoming.id), "Alice")

        assert result.reason == ReasonCode.DUPLICATE_CANDIDATE
        assert result.status_code == 409

    async def test_same_name_in_other_election(self, db_session, upcoming, make_election) -> None:
        other = await make_election(
            title="Other",
            status=ElectionStatus.UPCOMING,
            start_time=NOW + timedelta(days=1),
            end_time=NOW + timedelta(days=2),
        )
        svc = CandidateService(db_session)
        await svc.create_candidate(str(upcoming.id), "Alice")

        assert isinstance(await svc.create_candidate(str(other.id), "Alice"), Candidate)

    async def test_registration_closed_once_started(self, db_session, make_election) -> None:
        election = await make_election()

        result = await CandidateService(db_session).create_candidate(str(election.id), "Late")

        assert result.reason == ReasonCode.REGISTRATION_CLOSED

    async def test_registration_allowed_when_enabled(self, db_session, make_election) -> None:
        election = await make_election(allow_candidate_registration=True)

        result = await CandidateService(db_session).create_candidate(str(election.id), "Late")

        assert isinstance(result, Candidate)

    async def test_unknown_election(self, db_session) -> None:
        result = await CandidateService(db_session).create_candidate("9d2f7e3c-0000-4000-8000-000000000000", "A")
        assert result.reason == ReasonCode.ELECTION_NOT_FOUND

    async def test_update_ignores_vote_count(self, db_session, upcoming, make_candidate) -> None:
        candidate = await make_candidate(str(upcoming.id), "Alice")

        updated = await CandidateService(db_session).update_candidate(
            str(candidate.id), {"description": "Former mayor", "vote_count": 500}
        )

        assert updated.description == "Former mayor"
        assert updated.vote_count == 0

    async def test_rename_to_taken_name(self, db_session, upcoming, make_candidate) -> None:
        await make_candidate(str(upcoming.id), "Alice")
        bob = await make_candidate(str(upcoming.id), "Bob")

        result = await CandidateService(db_session).update_candidate(str(bob.id), {"name": "Alice"})

        assert result.reason == ReasonCode.DUPLICATE_CANDIDATE

    async def test_set_active_and_listing(self, db_session, upcoming, make_candidate) -> None:
        alice = await make_candidate(str(upcoming.id), "Alice")
        await make_candidate(str(upcoming.id), "Bob")
        svc = CandidateService(db_session)

        withdrawn = await svc.set_candidate_active(str(alice.id), False)

        assert withdrawn.is_active is False
        assert [c.name for c in await svc.list_candidates(str(upcoming.id))] == ["Bob"]
        assert [c.name for c in await svc.list_candidates(str(upcoming.id), active_only=False)] == ["Alice", "Bob"]

    async def test_mutations_locked_after_start(self, db_session, make_election, make_candidate) -> None:
        election = await make_election()
        candidate = await make_candidate(str(election.id), "Alice")
        svc = CandidateService(db_session)

        assert (await svc.update_candidate(str(candidate.id), {"name": "A"})).reason == ReasonCode.ELECTION_LOCKED
        assert (await svc.set_candidate_active(str(candidate.id), False)).reason == ReasonCode.ELECTION_LOCKED
        assert (await svc.delete_candidate(str(candidate.id))).reason == ReasonCode.ELECTION_LOCKED

    async def test_delete_candidate(self, db_session, upcoming, make_candidate) -> None:
        candidate = await make_candidate(str(upcoming.id), "Alice")
        svc = CandidateService(db_session)

        assert await svc.delete_candidate(str(candidate.id)) is True
        db_session.expunge_all()
        assert await svc.get_candidate(str(candidate.id)) is None

    async def test_missing_candidate(self, db_session) -> None:
        result = await CandidateService(db_session).delete_candidate("9d2f7e3c-0000-4000-8000-000000000000")
        assert result.reason == ReasonCode.CANDIDATE_NOT_FOUND

    async def test_list_all_candidates(self, db_session, upcoming, make_election, make_candidate) -> None:
        other = await make_election(title="Referendum")
        alice = await make_candidate(str(upcoming.id), "Alice")
        await make_candidate(str(other.id), "Bob")
        svc = CandidateService(db_session)
        await svc.set_candidate_active(str(alice.id), False)

        assert {c.name for c in await svc.list_all_candidates()} == {"Alice", "Bob"}
        assert [c.name for c in await svc.list_all_candidates(str(other.id))] == ["Bob"]

    async def test_hidden_tally_elections(self, db_session, make_election, make_candidate) -> None:
        live = await make_election(title="Live")
        sealed = await make_election(title="Sealed", show_real_time_results=False)
        closed = await make_election(title="Closed", status=ElectionStatus.ENDED, show_real_time_results=False)
        candidates = [await make_candidate(str(e.id), "Alice") for e in (live, sealed, closed)]
        svc = CandidateService(db_session)

        assert await svc.hidden_tally_elections(candidates) == {str(sealed.id)}
        assert await svc.hidden_tally_elections(candidates, requestor_is_admin=True) == set()
