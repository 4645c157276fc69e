"""
Vote casting service.

The write path for ballots. A successful cast is one transaction containing
the ledger insert and both counter increments; a successful delete is one
transaction containing the ledger delete and both counter decrements.
Business refusals come back as ``Rejection`` values; only storage faults
raise.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional, Union

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ReasonCode, Rejection, StorageError
from repositories.candidate_repository import CandidateRepository
from repositories.election_repository import ElectionRepository
from repositories.vote_repository import VoteRepository
from services.eligibility import check_eligibility

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]

# Name of the ledger's (user_id, election_id) unique constraint
UNIQUE_VOTE_CONSTRAINT = "uq_votes_user_election"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def is_duplicate_vote_error(exc: IntegrityError) -> bool:
    """Tell a one-vote-per-election violation apart from other integrity failures."""
    message = str(exc.orig) if exc.orig is not None else str(exc)
    if UNIQUE_VOTE_CONSTRAINT in message:
        return True
    # SQLite reports the columns instead of the constraint name
    return "UNIQUE constraint failed" in message and "votes.user_id" in message


@dataclass(frozen=True)
class CastVoteResult:
    """Receipt for an accepted ballot."""

    vote_id: str
    election_id: str
    candidate_id: str
    voted_at: datetime


@dataclass(frozen=True)
class VoteStatusView:
    """Whether a voter has a ballot in an election (choice not included)."""

    election_id: str
    has_voted: bool
    vote_id: Optional[str] = None
    voted_at: Optional[datetime] = None


@dataclass
class ReconcileReport:
    """Counter corrections applied by a reconciliation run."""

    election_id: str
    total_votes_before: int
    total_votes_after: int
    # candidate_id -> (cached count before, ledger count after)
    candidate_corrections: dict[str, tuple[int, int]] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return self.total_votes_before != self.total_votes_after or bool(self.candidate_corrections)


class VoteService:
    """Casts, inspects and administratively removes ballots."""

    def __init__(self, db: AsyncSession, clock: Optional[Clock] = None):
        self.db = db
        self.elections = ElectionRepository(db)
        self.candidates = CandidateRepository(db)
        self.votes = VoteRepository(db)
        self._clock = clock or utc_now

    async def cast_vote(
        self,
        user_id: str,
        election_id: str,
        candidate_id: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Union[CastVoteResult, Rejection]:
        """
        Cast a ballot for a candidate.

        Steps:
        1. Lock the election row, load candidate and prior-ballot snapshots
        2. Run the eligibility gate
        3. Insert ledger row, increment candidate and election counters
        4. Commit all three writes together

        A unique-constraint violation at insert time means a concurrent
        request for the same voter won the race; it is reported as
        ALREADY_VOTED and nothing is written.
        """
        if not user_id or not election_id or not candidate_id:
            return Rejection(ReasonCode.VALIDATION_FAILED, "Election ID and candidate ID are required")

        election = await self.elections.get_for_update(election_id)
        candidate = None
        already_voted = False
        if election is not None:
            candidate = await self.candidates.get_by_id(candidate_id)
            already_voted = await self.votes.exists_for_user(user_id, election_id)

        now = self._clock()
        decision = check_eligibility(election, candidate, already_voted, now)
        if isinstance(decision, Rejection):
            logger.info(
                "vote_rejected",
                election_id=election_id,
                candidate_id=candidate_id,
                reason=decision.reason.value,
            )
            return decision

        try:
            vote = await self.votes.create(
                user_id=user_id,
                election_id=election_id,
                candidate_id=candidate_id,
                ip_address=ip_address,
                user_agent=user_agent,
                voted_at=now,
            )
            vote_id = str(vote.id)

            if not await self.candidates.increment_vote_count(candidate_id):
                raise StorageError("Candidate counter row missing")
            if not await self.elections.increment_total_votes(election_id):
                raise StorageError("Election counter row missing")

            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if is_duplicate_vote_error(e):
                logger.warning("duplicate_vote_blocked", election_id=election_id)
                return Rejection(ReasonCode.ALREADY_VOTED, "You have already voted in this election")
            logger.error("storage_error", operation="cast_vote", error=str(e))
            raise StorageError("Failed to cast vote") from e
        except StorageError:
            await self.db.rollback()
            logger.error("storage_error", operation="cast_vote", election_id=election_id)
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("storage_error", operation="cast_vote", error=str(e))
            raise StorageError("Failed to cast vote") from e

        logger.info(
            "vote_cast",
            vote_id=vote_id,
            election_id=election_id,
            candidate_id=candidate_id,
        )

        return CastVoteResult(
            vote_id=vote_id,
            election_id=election_id,
            candidate_id=candidate_id,
            voted_at=now,
        )

    async def has_voted(self, user_id: str, election_id: str) -> bool:
        """Check if a voter already has a ballot in an election."""
        return await self.votes.exists_for_user(user_id, election_id)

    async def get_vote_status(self, user_id: str, election_id: str) -> Union[VoteStatusView, Rejection]:
        """Voting status for a voter, with ballot id and time when present."""
        election = await self.elections.get_by_id(election_id)
        if election is None:
            return Rejection(ReasonCode.ELECTION_NOT_FOUND, "Election not found")

        vote = await self.votes.get_by_user_and_election(user_id, election_id)
        if vote is None:
            return VoteStatusView(election_id=election_id, has_voted=False)

        return VoteStatusView(
            election_id=election_id,
            has_voted=True,
            vote_id=str(vote.id),
            voted_at=vote.voted_at,
        )

    async def delete_vote(self, vote_id: str) -> bool:
        """
        Remove a ballot (administrative override).

        The ledger delete and both counter decrements commit together.
        Returns False when the ballot does not exist.
        """
        vote = await self.votes.get_by_id(vote_id)
        if vote is None:
            return False

        election_id = str(vote.election_id)
        candidate_id = str(vote.candidate_id)

        try:
            await self.elections.get_for_update(election_id)
            if not await self.votes.delete_by_id(vote_id):
                # Removed concurrently; its decrements belong to that request
                await self.db.rollback()
                return False
            await self.candidates.decrement_vote_count(candidate_id)
            await self.elections.decrement_total_votes(election_id)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("storage_error", operation="delete_vote", error=str(e))
            raise StorageError("Failed to delete vote") from e

        logger.info(
            "vote_deleted",
            vote_id=vote_id,
            election_id=election_id,
            candidate_id=candidate_id,
        )
        return True

    async def set_vote_verified(self, vote_id: str, is_verified: bool) -> bool:
        """
        Toggle a ballot's audit flag.

        Verification is advisory: unverified ballots still count.
        """
        try:
            updated = await self.votes.set_verified(vote_id, is_verified)
            if not updated:
                return False
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("storage_error", operation="set_vote_verified", error=str(e))
            raise StorageError("Failed to update vote verification") from e

        logger.info("vote_verification_changed", vote_id=vote_id, is_verified=is_verified)
        return True

    async def reconcile_counters(self, election_id: str) -> Union[ReconcileReport, Rejection]:
        """
        Rewrite the election and candidate counters from the ledger.

        Repairs drift left by out-of-band changes to the votes table. The
        election row lock is held from before the ledger is counted until
        commit, so a concurrent cast or delete lands entirely before or after.
        """
        election = await self.elections.get_for_update(election_id)
        if election is None:
            return Rejection(ReasonCode.ELECTION_NOT_FOUND, "Election not found")

        candidates = await self.candidates.list_by_election(election_id, active_only=False)
        ledger_counts = await self.votes.count_by_candidate_for_election(election_id)
        ledger_total = await self.votes.count_by_election(election_id)

        report = ReconcileReport(
            election_id=election_id,
            total_votes_before=election.total_votes_cast or 0,
            total_votes_after=ledger_total,
        )

        try:
            for candidate in candidates:
                actual = ledger_counts.get(str(candidate.id), 0)
                cached = candidate.vote_count or 0
                if cached != actual:
                    await self.candidates.set_vote_count(str(candidate.id), actual)
                    report.candidate_corrections[str(candidate.id)] = (cached, actual)

            if report.total_votes_before != ledger_total:
                await self.elections.set_total_votes(election_id, ledger_total)

            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("storage_error", operation="reconcile_counters", error=str(e))
            raise StorageError("Failed to reconcile counters") from e

        if report.changed:
            logger.warning(
                "counter_reconciled",
                election_id=election_id,
                total_before=report.total_votes_before,
                total_after=report.total_votes_after,
                candidates_corrected=len(report.candidate_corrections),
            )
        return report
