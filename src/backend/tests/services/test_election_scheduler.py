"""
Tests for the election status scheduler.
"""

from datetime import datetime, timedelta, timezone

import pytest

from models.election import ElectionStatus
from services.election_scheduler import ElectionScheduler

NOW = datetime(2026, 5, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.mark.unit
class TestElectionScheduler:
    """Test time-driven status transitions."""

    async def test_activates_started_election(self, db_session, make_election) -> None:
        election = await make_election(
            status=ElectionStatus.UPCOMING,
            start_time=NOW - timedelta(minutes=1),
            end_time=NOW + timedelta(hours=1),
        )

        result = await ElectionScheduler(db_session).run_status_cycle(NOW)

        await db_session.refresh(election)
        assert election.status == "active"
        assert result["activated_count"] == 1
        assert result["ended_count"] == 0

    async def test_leaves_future_election_alone(self, db_session, make_election) -> None:
        election = await make_election(
            status=ElectionStatus.UPCOMING,
            start_time=NOW + timedelta(minutes=1),
            end_time=NOW + timedelta(hours=1),
        )

        result = await ElectionScheduler(db_session).run_status_cycle(NOW)

        await db_session.refresh(election)
        assert election.status == "upcoming"
        assert result["activated_count"] == 0

    async def test_ends_expired_election(self, db_session, make_election) -> None:
        election = await make_election(start_time=NOW - timedelta(hours=2), end_time=NOW - timedelta(seconds=1))

        result = await ElectionScheduler(db_session).run_status_cycle(NOW)

        await db_session.refresh(election)
        assert election.status == "ended"
        assert result["ended_ids"] == [str(election.id)]

    async def test_end_time_itself_is_still_open(self, db_session, make_election) -> None:
        election = await make_election(start_time=NOW - timedelta(hours=2), end_time=NOW)

        await ElectionScheduler(db_session).run_status_cycle(NOW)

        await db_session.refresh(election)
        assert election.status == "active"

    async def test_missed_window_goes_straight_through(self, db_session, make_election) -> None:
        election = await make_election(
            status=ElectionStatus.UPCOMING,
            start_time=NOW - timedelta(hours=2),
            end_time=NOW - timedelta(hours=1),
        )

        result = await ElectionScheduler(db_session).run_status_cycle(NOW)

        await db_session.refresh(election)
        assert election.status == "ended"
        assert result == {
            "activated_count": 1,
            "ended_count": 1,
            "activated_ids": [str(election.id)],
            "ended_ids": [str(election.id)],
        }

    async def test_ended_elections_are_not_touched(self, db_session, make_election) -> None:
        await make_election(
            status=ElectionStatus.ENDED,
            start_time=NOW - timedelta(hours=2),
            end_time=NOW - timedelta(hours=1),
        )

        result = await ElectionScheduler(db_session).run_status_cycle(NOW)

        assert result["activated_count"] == 0
        assert result["ended_count"] == 0
