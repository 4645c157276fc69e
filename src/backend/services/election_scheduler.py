"""
Election status scheduler.

Moves elections through their lifecycle as the clock passes their window:
- Activates upcoming elections whose start time has arrived
- Ends active elections whose end time has passed

Run periodically by the background scheduler.
"""

from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from models.election import ElectionStatus
from repositories.election_repository import ElectionRepository

logger = structlog.get_logger(__name__)


class ElectionScheduler:
    """Applies time-driven status transitions."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.elections = ElectionRepository(db_session)

    async def activate_started_elections(self, now: datetime) -> list[str]:
        """Open voting for upcoming elections whose start time has arrived."""
        activated = []
        for election in await self.elections.get_elections_to_activate(now):
            # Conditional update: a manual transition may have got there first
            if await self.elections.update_status(
                str(election.id), ElectionStatus.ACTIVE, expected=ElectionStatus.UPCOMING
            ):
                activated.append(str(election.id))
                logger.info(
                    "election_status_changed",
                    election_id=str(election.id),
                    old_status=ElectionStatus.UPCOMING.value,
                    new_status=ElectionStatus.ACTIVE.value,
                )

        if activated:
            await self.db.commit()
        return activated

    async def end_expired_elections(self, now: datetime) -> list[str]:
        """Close active elections whose end time has passed."""
        ended = []
        for election in await self.elections.get_elections_to_end(now):
            if await self.elections.update_status(
                str(election.id), ElectionStatus.ENDED, expected=ElectionStatus.ACTIVE
            ):
                ended.append(str(election.id))
                logger.info(
                    "election_status_changed",
                    election_id=str(election.id),
                    old_status=ElectionStatus.ACTIVE.value,
                    new_status=ElectionStatus.ENDED.value,
                    total_votes=election.total_votes_cast,
                )

        if ended:
            await self.db.commit()
        return ended

    async def run_status_cycle(self, now: Optional[datetime] = None) -> dict:
        """
        Run one scheduling pass.

        Activation runs first, so an election whose whole window has passed
        since the last pass goes upcoming -> active -> ended in one cycle.

        Returns:
            Summary of transitions applied
        """
        now = now or datetime.now(timezone.utc)

        activated = await self.activate_started_elections(now)
        ended = await self.end_expired_elections(now)

        return {
            "activated_count": len(activated),
            "ended_count": len(ended),
            "activated_ids": activated,
            "ended_ids": ended,
        }
