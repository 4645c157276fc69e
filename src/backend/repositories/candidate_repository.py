"""
Candidate repository for database operations.
"""

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from sqlalchemy import and_, case, delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models.candidate import Candidate

# vote_count is deliberately absent: only the vote path may change it
EDITABLE_FIELDS = frozenset({"name", "description", "party", "platform", "photo_url"})


class CandidateRepository:
    """Repository for candidate database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _get_rowcount(self, result: Any) -> int:
        """Safely get rowcount from result."""
        return getattr(result, "rowcount", 0) or 0

    async def get_by_id(self, candidate_id: str) -> Optional[Candidate]:
        """Get a candidate by ID."""
        result = await self.db.execute(select(Candidate).where(Candidate.id == candidate_id))
        return result.scalar_one_or_none()

    async def get_by_name(self, election_id: str, name: str) -> Optional[Candidate]:
        """Get a candidate by name within an election."""
        result = await self.db.execute(
            select(Candidate).where(
                and_(
                    Candidate.election_id == election_id,
                    Candidate.name == name,
                )
            )
        )
        return result.scalar_one_or_none()

    async def list_by_election(self, election_id: str, active_only: bool = True) -> list[Candidate]:
        """List candidates for an election in registration order."""
        query = select(Candidate).where(Candidate.election_id == election_id)
        if active_only:
            query = query.where(Candidate.is_active == True)  # noqa: E712
        query = query.order_by(Candidate.created_at.asc(), Candidate.id.asc())

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_all(self, election_id: Optional[str] = None) -> list[Candidate]:
        """List candidates across elections, or within one, in registration order."""
        query = select(Candidate)
        if election_id is not None:
            query = query.where(Candidate.election_id == election_id)
        query = query.order_by(Candidate.created_at.asc(), Candidate.id.asc())

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def create(
        self,
        election_id: str,
        name: str,
        description: Optional[str] = None,
        party: Optional[str] = None,
        platform: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> Candidate:
        """Create an active candidate with a zero vote count."""
        candidate = Candidate(
            id=str(uuid4()),
            election_id=election_id,
            name=name,
            description=description,
            party=party,
            platform=platform,
            photo_url=photo_url,
            vote_count=0,
            is_active=True,
            created_at=datetime.now(timezone.utc),
        )

        self.db.add(candidate)
        await self.db.flush()
        await self.db.refresh(candidate)

        return candidate

    async def update_fields(self, candidate_id: str, values: dict[str, Any]) -> bool:
        """Update descriptive fields."""
        clean = {k: v for k, v in values.items() if k in EDITABLE_FIELDS}
        if not clean:
            return False
        result = await self.db.execute(update(Candidate).where(Candidate.id == candidate_id).values(**clean))
        return self._get_rowcount(result) > 0

    async def set_active(self, candidate_id: str, is_active: bool) -> bool:
        """Activate or deactivate a candidate."""
        result = await self.db.execute(
            update(Candidate).where(Candidate.id == candidate_id).values(is_active=is_active)
        )
        return self._get_rowcount(result) > 0

    async def delete(self, candidate_id: str) -> bool:
        """Delete a candidate."""
        result = await self.db.execute(delete(Candidate).where(Candidate.id == candidate_id))
        return self._get_rowcount(result) > 0

    async def increment_vote_count(self, candidate_id: str) -> bool:
        """Increment a candidate's vote count by one."""
        result = await self.db.execute(
            update(Candidate)
            .where(Candidate.id == candidate_id)
            .values(vote_count=Candidate.vote_count + 1)
        )
        return self._get_rowcount(result) > 0

    async def decrement_vote_count(self, candidate_id: str) -> bool:
        """Decrement a candidate's vote count by one (never below zero)."""
        result = await self.db.execute(
            update(Candidate)
            .where(Candidate.id == candidate_id)
            .values(
                vote_count=case(
                    (Candidate.vote_count > 0, Candidate.vote_count - 1),
                    else_=0,
                )
            )
        )
        return self._get_rowcount(result) > 0

    async def set_vote_count(self, candidate_id: str, vote_count: int) -> bool:
        """Overwrite the cached count (counter reconciliation only)."""
        result = await self.db.execute(
            update(Candidate).where(Candidate.id == candidate_id).values(vote_count=vote_count)
        )
        return self._get_rowcount(result) > 0
