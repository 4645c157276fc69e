"""
Vote repository for database operations.

Data access for the vote ledger. Uniqueness of (user_id, election_id) is
enforced by the database; ``create`` flushes immediately so a duplicate
surfaces as ``IntegrityError`` at the point of insert.
"""

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from sqlalchemy import and_, delete, extract, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models.candidate import Candidate
from models.vote import Vote


class VoteRepository:
    """Repository for vote database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _get_rowcount(self, result: Any) -> int:
        """Safely get rowcount from result."""
        return getattr(result, "rowcount", 0) or 0

    async def get_by_id(self, vote_id: str) -> Optional[Vote]:
        """Get a vote by ID."""
        result = await self.db.execute(select(Vote).where(Vote.id == vote_id))
        return result.scalar_one_or_none()

    async def get_by_user_and_election(self, user_id: str, election_id: str) -> Optional[Vote]:
        """Get a voter's ballot for an election."""
        result = await self.db.execute(
            select(Vote).where(
                and_(
                    Vote.user_id == user_id,
                    Vote.election_id == election_id,
                )
            )
        )
        return result.scalar_one_or_none()

    async def exists_for_user(self, user_id: str, election_id: str) -> bool:
        """Check if a voter already has a ballot in an election."""
        result = await self.db.execute(
            select(func.count(Vote.id)).where(
                and_(
                    Vote.user_id == user_id,
                    Vote.election_id == election_id,
                )
            )
        )
        count = result.scalar() or 0
        return count > 0

    async def create(
        self,
        user_id: str,
        election_id: str,
        candidate_id: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        voted_at: Optional[datetime] = None,
    ) -> Vote:
        """
        Insert a ballot.

        Raises IntegrityError if the voter already has a ballot in this election.
        """
        vote = Vote(
            id=str(uuid4()),
            election_id=election_id,
            candidate_id=candidate_id,
            user_id=user_id,
            voted_at=voted_at or datetime.now(timezone.utc),
            ip_address=ip_address,
            user_agent=user_agent,
            is_verified=True,
        )

        self.db.add(vote)
        await self.db.flush()

        return vote

    async def delete_by_id(self, vote_id: str) -> bool:
        """Delete a ballot row."""
        result = await self.db.execute(delete(Vote).where(Vote.id == vote_id))
        return self._get_rowcount(result) > 0

    async def set_verified(self, vote_id: str, is_verified: bool) -> bool:
        """Set the audit flag. Touches nothing else on the row."""
        result = await self.db.execute(update(Vote).where(Vote.id == vote_id).values(is_verified=is_verified))
        return self._get_rowcount(result) > 0

    async def count_by_election(self, election_id: str) -> int:
        """Get total vote count for an election."""
        result = await self.db.execute(select(func.count(Vote.id)).where(Vote.election_id == election_id))
        return result.scalar() or 0

    async def count_by_verification(self, election_id: str, is_verified: bool) -> int:
        """Count verified or unverified ballots in an election."""
        result = await self.db.execute(
            select(func.count(Vote.id)).where(
                and_(
                    Vote.election_id == election_id,
                    Vote.is_verified == is_verified,
                )
            )
        )
        return result.scalar() or 0

    async def count_by_candidate_for_election(self, election_id: str) -> dict[str, int]:
        """
        Get ledger counts per candidate.

        Returns: {"<candidate_id>": 42, ...} (candidates without votes are absent)
        """
        result = await self.db.execute(
            select(Vote.candidate_id, func.count(Vote.id).label("count"))
            .where(Vote.election_id == election_id)
            .group_by(Vote.candidate_id)
        )
        return {str(row.candidate_id): int(row[1]) for row in result.all()}

    async def get_timeline(self, election_id: str) -> list[dict[str, Any]]:
        """
        Get vote counts bucketed by date and hour.

        Returns: [{"date": "2026-05-15", "hour": 9, "vote_count": 12}, ...]
        ordered by date then hour.
        """
        day = func.date(Vote.voted_at).label("day")
        hour = extract("hour", Vote.voted_at).label("hour")

        result = await self.db.execute(
            select(day, hour, func.count(Vote.id).label("vote_count"))
            .where(Vote.election_id == election_id)
            .group_by(day, hour)
            .order_by(day, hour)
        )

        return [
            {"date": str(row.day), "hour": int(row.hour), "vote_count": int(row.vote_count)}
            for row in result.all()
        ]

    async def get_votes_by_hour(self, election_id: str) -> list[dict[str, int]]:
        """
        Get vote counts bucketed by hour of day.

        Returns: [{"hour": 9, "vote_count": 40}, ...] ordered by hour.
        """
        hour = extract("hour", Vote.voted_at).label("hour")

        result = await self.db.execute(
            select(hour, func.count(Vote.id).label("vote_count"))
            .where(Vote.election_id == election_id)
            .group_by(hour)
            .order_by(hour)
        )

        return [{"hour": int(row.hour), "vote_count": int(row.vote_count)} for row in result.all()]

    async def list_by_election(self, election_id: str) -> list[tuple[Vote, Optional[str], Optional[str]]]:
        """List ballots newest first with the candidate's name and party."""
        result = await self.db.execute(
            select(Vote, Candidate.name, Candidate.party)
            .outerjoin(Candidate, Candidate.id == Vote.candidate_id)
            .where(Vote.election_id == election_id)
            .order_by(Vote.voted_at.desc())
        )
        return [(row[0], row[1], row[2]) for row in result.all()]

