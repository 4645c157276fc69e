"""
Election repository for database operations.
"""

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from sqlalchemy import and_, case, delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models.candidate import Candidate
from models.election import Election, ElectionStatus, ElectionType

# Fields an administrator may change while the election is upcoming
EDITABLE_FIELDS = frozenset(
    {
        "title",
        "description",
        "type",
        "start_time",
        "end_time",
        "max_votes_per_voter",
        "allow_candidate_registration",
        "show_real_time_results",
        "total_voters",
    }
)


class ElectionRepository:
    """Repository for election database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _get_rowcount(self, result: Any) -> int:
        """Safely get rowcount from result."""
        return getattr(result, "rowcount", 0) or 0

    async def get_by_id(self, election_id: str) -> Optional[Election]:
        """Get an election by ID."""
        result = await self.db.execute(select(Election).where(Election.id == election_id))
        return result.scalar_one_or_none()

    async def get_for_update(self, election_id: str) -> Optional[Election]:
        """
        Get an election and lock its row until the transaction ends.

        Every writer of the vote counters takes this lock first, so counter
        writes for one election never interleave.
        """
        result = await self.db.execute(
            select(Election)
            .where(Election.id == election_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_elections(self, status: Optional[ElectionStatus] = None) -> list[Election]:
        """
        List elections.

        Without a status filter the newest start time comes first; filtered
        listings (active, upcoming) come soonest first.
        """
        query = select(Election)
        if status is not None:
            query = query.where(Election.status == status.value).order_by(Election.start_time.asc())
        else:
            query = query.order_by(Election.start_time.desc())

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def create(
        self,
        title: str,
        start_time: datetime,
        end_time: datetime,
        status: ElectionStatus,
        description: Optional[str] = None,
        type: ElectionType = ElectionType.GENERAL,
        max_votes_per_voter: int = 1,
        allow_candidate_registration: bool = False,
        show_real_time_results: bool = True,
        total_voters: int = 0,
    ) -> Election:
        """Create a new election with zeroed counters."""
        election = Election(
            id=str(uuid4()),
            title=title,
            description=description,
            type=type.value,
            status=status.value,
            start_time=start_time,
            end_time=end_time,
            max_votes_per_voter=max_votes_per_voter,
            allow_candidate_registration=allow_candidate_registration,
            show_real_time_results=show_real_time_results,
            total_votes_cast=0,
            total_voters=total_voters,
            created_at=datetime.now(timezone.utc),
        )

        self.db.add(election)
        await self.db.flush()
        await self.db.refresh(election)

        return election

    async def update_fields(self, election_id: str, values: dict[str, Any]) -> bool:
        """Update editable fields. Counters and status are never touched here."""
        clean = {k: (v.value if hasattr(v, "value") else v) for k, v in values.items() if k in EDITABLE_FIELDS}
        if not clean:
            return False
        result = await self.db.execute(update(Election).where(Election.id == election_id).values(**clean))
        return self._get_rowcount(result) > 0

    async def delete(self, election_id: str) -> bool:
        """Delete an election together with its candidates."""
        await self.db.execute(delete(Candidate).where(Candidate.election_id == election_id))
        result = await self.db.execute(delete(Election).where(Election.id == election_id))
        return self._get_rowcount(result) > 0

    async def update_status(
        self,
        election_id: str,
        status: ElectionStatus,
        expected: Optional[ElectionStatus] = None,
    ) -> bool:
        """
        Update election status.

        When ``expected`` is given the update only applies if the row is still
        in that status, so two concurrent transitions cannot both win.
        """
        query = update(Election).where(Election.id == election_id)
        if expected is not None:
            query = query.where(Election.status == expected.value)
        result = await self.db.execute(query.values(status=status.value))
        return self._get_rowcount(result) > 0

    async def increment_total_votes(self, election_id: str) -> bool:
        """Increment the election's total votes cast by one."""
        result = await self.db.execute(
            update(Election)
            .where(Election.id == election_id)
            .values(total_votes_cast=Election.total_votes_cast + 1)
        )
        return self._get_rowcount(result) > 0

    async def decrement_total_votes(self, election_id: str) -> bool:
        """Decrement the election's total votes cast by one (never below zero)."""
        result = await self.db.execute(
            update(Election)
            .where(Election.id == election_id)
            .values(
                total_votes_cast=case(
                    (Election.total_votes_cast > 0, Election.total_votes_cast - 1),
                    else_=0,
                )
            )
        )
        return self._get_rowcount(result) > 0

    async def set_total_votes(self, election_id: str, total: int) -> bool:
        """Overwrite the cached total (counter reconciliation only)."""
        result = await self.db.execute(
            update(Election).where(Election.id == election_id).values(total_votes_cast=total)
        )
        return self._get_rowcount(result) > 0

    async def get_elections_to_activate(self, now: datetime) -> list[Election]:
        """Upcoming elections whose voting window has opened."""
        result = await self.db.execute(
            select(Election).where(
                and_(
                    Election.status == ElectionStatus.UPCOMING.value,
                    Election.start_time <= now,
                )
            )
        )
        return list(result.scalars().all())

    async def get_elections_to_end(self, now: datetime) -> list[Election]:
        """Active elections whose voting window has closed."""
        result = await self.db.execute(
            select(Election).where(
                and_(
                    Election.status == ElectionStatus.ACTIVE.value,
                    Election.end_time < now,
                )
            )
        )
        return list(result.scalars().all())
