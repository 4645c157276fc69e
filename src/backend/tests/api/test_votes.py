"""
Tests for vote API endpoints.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from models.election import ElectionStatus


def open_window() -> dict:
    now = datetime.now(timezone.utc)
    return {"start_time": now - timedelta(hours=1), "end_time": now + timedelta(hours=1)}


@pytest.mark.unit
class TestVoteEndpoints:
    """Test vote-related endpoints."""

    async def test_vote_requires_authentication(self, client: AsyncClient) -> None:
        """Test that voting requires authentication."""
        response = await client.post(
            "/api/v1/votes",
            json={"election_id": str(uuid.uuid4()), "candidate_id": str(uuid.uuid4())},
        )
        assert response.status_code in [401, 403]

    async def test_invalid_token_rejected(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/votes",
            json={"election_id": str(uuid.uuid4()), "candidate_id": str(uuid.uuid4())},
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert response.status_code == 401

    async def test_missing_fields_fail_validation(self, client: AsyncClient, auth_headers) -> None:
        response = await client.post("/api/v1/votes", json={"election_id": str(uuid.uuid4())}, headers=auth_headers)
        assert response.status_code == 422

    async def test_cast_vote(self, client: AsyncClient, auth_headers, make_election, make_candidate) -> None:
        election = await make_election(**open_window())
        candidate = await make_candidate(str(election.id), "A")

        response = await client.post(
            "/api/v1/votes",
            json={"election_id": str(election.id), "candidate_id": str(candidate.id)},
            headers={**auth_headers, "X-Forwarded-For": "203.0.113.5, 10.0.0.1", "User-Agent": "pytest-client"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["candidate_id"] == str(candidate.id)

        status_response = await client.get(f"/api/v1/votes/status/{election.id}", headers=auth_headers)
        assert status_response.json()["has_voted"] is True
        assert status_response.json()["vote_id"] == data["vote_id"]

    async def test_second_vote_conflicts(self, client: AsyncClient, auth_headers, make_election, make_candidate) -> None:
        election = await make_election(**open_window())
        candidate = await make_candidate(str(election.id), "A")
        body = {"election_id": str(election.id), "candidate_id": str(candidate.id)}

        await client.post("/api/v1/votes", json=body, headers=auth_headers)
        response = await client.post("/api/v1/votes", json=body, headers=auth_headers)

        assert response.status_code == 409
        assert response.json()["code"] == "ALREADY_VOTED"

    async def test_upcoming_election_rejected(
        self, client: AsyncClient, auth_headers, make_election, make_candidate
    ) -> None:
        now = datetime.now(timezone.utc)
        election = await make_election(
            status=ElectionStatus.UPCOMING,
            start_time=now + timedelta(days=1),
            end_time=now + timedelta(days=2),
        )
        candidate = await make_candidate(str(election.id), "A")

        response = await client.post(
            "/api/v1/votes",
            json={"election_id": str(election.id), "candidate_id": str(candidate.id)},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json() == {"detail": "Election is not active for voting", "code": "ELECTION_NOT_ACTIVE"}

    async def test_unknown_election_not_found(self, client: AsyncClient, auth_headers) -> None:
        response = await client.post(
            "/api/v1/votes",
            json={"election_id": str(uuid.uuid4()), "candidate_id": str(uuid.uuid4())},
            headers=auth_headers,
        )
        assert response.status_code == 404
        assert response.json()["code"] == "ELECTION_NOT_FOUND"

    async def test_check_vote_status_requires_auth(self, client: AsyncClient) -> None:
        """Test that checking vote status requires auth."""
        response = await client.get(f"/api/v1/votes/status/{uuid.uuid4()}")
        assert response.status_code in [401, 403]


@pytest.mark.unit
class TestResultsEndpoints:
    """Test results visibility over HTTP."""

    async def test_results_public_when_real_time_enabled(
        self, client: AsyncClient, make_election, make_candidate
    ) -> None:
        election = await make_election(**open_window())
        await make_candidate(str(election.id), "A")

        response = await client.get(f"/api/v1/votes/results/{election.id}")

        assert response.status_code == 200
        assert response.json()["candidates"][0]["vote_percentage"] == "0.00"

    async def test_results_hidden_from_voter(
        self, client: AsyncClient, auth_headers, admin_headers, make_election, make_candidate
    ) -> None:
        election = await make_election(show_real_time_results=False, **open_window())
        await make_candidate(str(election.id), "A")

        voter = await client.get(f"/api/v1/votes/results/{election.id}", headers=auth_headers)
        admin = await client.get(f"/api/v1/votes/results/{election.id}", headers=admin_headers)

        assert voter.status_code == 403
        assert voter.json()["code"] == "RESULTS_NOT_AVAILABLE"
        assert admin.status_code == 200
        assert admin.json()["candidates"][0]["name"] == "A"


@pytest.mark.unit
class TestAdminVoteEndpoints:
    """Test admin-only vote operations."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/v1/votes/stats/{id}"),
            ("GET", "/api/v1/votes/election/{id}"),
            ("DELETE", "/api/v1/votes/{id}"),
            ("POST", "/api/v1/votes/reconcile/{id}"),
        ],
    )
    async def test_voter_forbidden(self, client: AsyncClient, auth_headers, method: str, path: str) -> None:
        response = await client.request(method, path.format(id=uuid.uuid4()), headers=auth_headers)
        assert response.status_code == 403

    async def test_stats_and_ballot_listing(
        self, client: AsyncClient, auth_headers, admin_headers, make_election, make_candidate
    ) -> None:
        election = await make_election(total_voters=2, **open_window())
        candidate = await make_candidate(str(election.id), "A")
        await client.post(
            "/api/v1/votes",
            json={"election_id": str(election.id), "candidate_id": str(candidate.id)},
            headers={**auth_headers, "X-Forwarded-For": "203.0.113.5"},
        )

        stats = await client.get(f"/api/v1/votes/stats/{election.id}", headers=admin_headers)
        ballots = await client.get(f"/api/v1/votes/election/{election.id}", headers=admin_headers)

        assert stats.status_code == 200
        assert stats.json()["turnout_percentage"] == "50.00"
        assert stats.json()["verified_votes"] == 1
        assert ballots.status_code == 200
        assert ballots.json()[0]["ip_address"] == "203.0.113.5"
        assert ballots.json()[0]["candidate_name"] == "A"

    async def test_verify_and_delete(
        self, client: AsyncClient, auth_headers, admin_headers, make_election, make_candidate
    ) -> None:
        election = await make_election(**open_window())
        candidate = await make_candidate(str(election.id), "A")
        cast = await client.post(
            "/api/v1/votes",
            json={"election_id": str(election.id), "candidate_id": str(candidate.id)},
            headers=auth_headers,
        )
        vote_id = cast.json()["vote_id"]

        verify = await client.patch(
            f"/api/v1/votes/{vote_id}/verify", json={"is_verified": False}, headers=admin_headers
        )
        assert verify.status_code == 200

        deleted = await client.delete(f"/api/v1/votes/{vote_id}", headers=admin_headers)
        assert deleted.status_code == 200

        results = await client.get(f"/api/v1/votes/results/{election.id}", headers=admin_headers)
        assert results.json()["total_votes_cast"] == 0
        assert results.json()["candidates"][0]["vote_count"] == 0

        missing = await client.delete(f"/api/v1/votes/{vote_id}", headers=admin_headers)
        assert missing.status_code == 404

    async def test_reconcile(self, client: AsyncClient, admin_headers, make_election, make_candidate) -> None:
        election = await make_election(**open_window())
        await make_candidate(str(election.id), "A", vote_count=3)

        response = await client.post(f"/api/v1/votes/reconcile/{election.id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["candidates_corrected"] == 1
        assert response.json()["changed"] is True


@pytest.mark.unit
class TestMalformedIdentifiers:
    """Identifiers that are not UUIDs are rejected before any database access."""

    async def test_results_with_malformed_election_id(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/votes/results/not-a-uuid")
        assert response.status_code == 422

    async def test_cast_with_malformed_ids(self, client: AsyncClient, auth_headers) -> None:
        response = await client.post(
            "/api/v1/votes",
            json={"election_id": "not-a-uuid", "candidate_id": "42"},
            headers=auth_headers,
        )
        assert response.status_code == 422

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/v1/votes/stats/not-a-uuid"),
            ("GET", "/api/v1/votes/election/not-a-uuid"),
            ("DELETE", "/api/v1/votes/not-a-uuid"),
            ("POST", "/api/v1/votes/reconcile/not-a-uuid"),
        ],
    )
    async def test_admin_routes_with_malformed_ids(
        self, client: AsyncClient, admin_headers, method: str, path: str
    ) -> None:
        response = await client.request(method, path, headers=admin_headers)
        assert response.status_code == 422
