"""
Results and statistics aggregation.

Read-side computations over the denormalized counters and the vote ledger:
percentages, rankings, turnout, hourly timelines. Results before an
election ends are only shown when the election enables real-time results or
the requestor is an administrator.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional, Sequence, Union

from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ReasonCode, Rejection
from models.candidate import Candidate
from models.election import Election, ElectionStatus, as_utc
from repositories.candidate_repository import CandidateRepository
from repositories.election_repository import ElectionRepository
from repositories.vote_repository import VoteRepository

INDEPENDENT_PARTY = "Independent"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def format_percentage(part: int, whole: int) -> str:
    """Percentage of ``part`` in ``whole`` with two decimals, "0.00" when whole is 0."""
    if not whole:
        return "0.00"
    value = (Decimal(part) * 100 / Decimal(whole)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{value}"


def rank_candidates(candidates: Sequence[Candidate]) -> list[Candidate]:
    """
    Order candidates for ranking.

    Highest vote count first; ties go to the earlier registration, then the
    lower id, so the order never depends on storage order.
    """
    return sorted(
        candidates,
        key=lambda c: (
            -(c.vote_count or 0),
            as_utc(c.created_at) or _EPOCH,
            str(c.id),
        ),
    )


def results_visible(election: Election, requestor_is_admin: bool) -> bool:
    """Final results always; live results only when enabled or for admins."""
    if requestor_is_admin:
        return True
    if election.status == ElectionStatus.ENDED.value:
        return True
    return bool(election.show_real_time_results)


@dataclass(frozen=True)
class CandidateResult:
    candidate_id: str
    name: str
    party: Optional[str]
    vote_count: int
    vote_percentage: str
    rank: int


@dataclass
class ResultsView:
    election_id: str
    title: str
    status: str
    total_votes_cast: int
    total_voters: int
    show_real_time_results: bool
    candidates: list[CandidateResult]
    last_updated: datetime


@dataclass
class VotingStats:
    election_id: str
    title: str
    status: str
    start_time: datetime
    end_time: datetime
    total_voters: int
    total_votes_cast: int
    turnout_percentage: str
    candidates_count: int
    verified_votes: int
    unverified_votes: int
    candidates: list[CandidateResult]
    timeline: list[dict[str, Any]] = field(default_factory=list)
    hourly: list[dict[str, int]] = field(default_factory=list)


@dataclass(frozen=True)
class CandidateStats:
    candidate_id: str
    name: str
    party: Optional[str]
    description: Optional[str]
    total_votes: int
    vote_percentage: str
    # None when the candidate is inactive and therefore unranked
    rank: Optional[int]
    total_candidates: int
    election_id: str
    election_title: str
    election_status: str
    election_total_votes: int


@dataclass
class PartyResult:
    party: str
    total_votes: int
    vote_percentage: str
    candidates: list[CandidateResult]


@dataclass(frozen=True)
class ElectionVoteEntry:
    vote_id: str
    user_id: str
    candidate_id: str
    candidate_name: Optional[str]
    candidate_party: Optional[str]
    voted_at: datetime
    ip_address: Optional[str]
    user_agent: Optional[str]
    is_verified: bool


class ResultsService:
    """Builds results, statistics and audit views for elections."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.elections = ElectionRepository(db)
        self.candidates = CandidateRepository(db)
        self.votes = VoteRepository(db)

    def _build_candidate_results(self, election: Election, candidates: Sequence[Candidate]) -> list[CandidateResult]:
        total = election.total_votes_cast or 0
        return [
            CandidateResult(
                candidate_id=str(candidate.id),
                name=candidate.name,
                party=candidate.party,
                vote_count=candidate.vote_count or 0,
                vote_percentage=format_percentage(candidate.vote_count or 0, total),
                rank=position,
            )
            for position, candidate in enumerate(rank_candidates(candidates), start=1)
        ]

    async def _load_visible(
        self, election_id: str, requestor_is_admin: bool
    ) -> Union[Election, Rejection]:
        election = await self.elections.get_by_id(election_id)
        if election is None:
            return Rejection(ReasonCode.ELECTION_NOT_FOUND, "Election not found")
        if not results_visible(election, requestor_is_admin):
            return Rejection(
                ReasonCode.RESULTS_NOT_AVAILABLE,
                "Real-time results are not enabled for this election",
            )
        return election

    async def get_results(self, election_id: str, requestor_is_admin: bool = False) -> Union[ResultsView, Rejection]:
        """Ranked tallies for an election's active candidates."""
        election = await self._load_visible(election_id, requestor_is_admin)
        if isinstance(election, Rejection):
            return election

        candidates = await self.candidates.list_by_election(election_id, active_only=True)

        return ResultsView(
            election_id=str(election.id),
            title=election.title,
            status=election.status,
            total_votes_cast=election.total_votes_cast or 0,
            total_voters=election.total_voters or 0,
            show_real_time_results=bool(election.show_real_time_results),
            candidates=self._build_candidate_results(election, candidates),
            last_updated=datetime.now(timezone.utc),
        )

    async def get_top_candidates(
        self, election_id: str, limit: int = 5, requestor_is_admin: bool = False
    ) -> Union[list[CandidateResult], Rejection]:
        """The leading active candidates, in rank order."""
        election = await self._load_visible(election_id, requestor_is_admin)
        if isinstance(election, Rejection):
            return election

        candidates = await self.candidates.list_by_election(election_id, active_only=True)
        return self._build_candidate_results(election, candidates)[:limit]

    async def get_voting_stats(self, election_id: str) -> Union[VotingStats, Rejection]:
        """Turnout, per-candidate tallies and ledger timelines (administrators)."""
        election = await self.elections.get_by_id(election_id)
        if election is None:
            return Rejection(ReasonCode.ELECTION_NOT_FOUND, "Election not found")

        candidates = await self.candidates.list_by_election(election_id, active_only=True)
        total_votes = election.total_votes_cast or 0
        total_voters = election.total_voters or 0

        return VotingStats(
            election_id=str(election.id),
            title=election.title,
            status=election.status,
            start_time=as_utc(election.start_time),
            end_time=as_utc(election.end_time),
            total_voters=total_voters,
            total_votes_cast=total_votes,
            turnout_percentage=format_percentage(total_votes, total_voters),
            candidates_count=len(candidates),
            verified_votes=await self.votes.count_by_verification(election_id, True),
            unverified_votes=await self.votes.count_by_verification(election_id, False),
            candidates=self._build_candidate_results(election, candidates),
            timeline=await self.votes.get_timeline(election_id),
            hourly=await self.votes.get_votes_by_hour(election_id),
        )

    async def get_candidate_stats(
        self, candidate_id: str, requestor_is_admin: bool = False
    ) -> Union[CandidateStats, Rejection]:
        """One candidate's tally, share and rank among active candidates."""
        candidate = await self.candidates.get_by_id(candidate_id)
        if candidate is None:
            return Rejection(ReasonCode.CANDIDATE_NOT_FOUND, "Candidate not found")

        election = await self._load_visible(str(candidate.election_id), requestor_is_admin)
        if isinstance(election, Rejection):
            return election

        active = await self.candidates.list_by_election(str(election.id), active_only=True)
        rank = None
        for position, other in enumerate(rank_candidates(active), start=1):
            if str(other.id) == str(candidate.id):
                rank = position
                break

        total_election_votes = election.total_votes_cast or 0
        return CandidateStats(
            candidate_id=str(candidate.id),
            name=candidate.name,
            party=candidate.party,
            description=candidate.description,
            total_votes=candidate.vote_count or 0,
            vote_percentage=format_percentage(candidate.vote_count or 0, total_election_votes),
            rank=rank,
            total_candidates=len(active),
            election_id=str(election.id),
            election_title=election.title,
            election_status=election.status,
            election_total_votes=total_election_votes,
        )

    async def get_party_breakdown(
        self, election_id: str, requestor_is_admin: bool = False
    ) -> Union[list[PartyResult], Rejection]:
        """Active candidates grouped by party, most votes first."""
        election = await self._load_visible(election_id, requestor_is_admin)
        if isinstance(election, Rejection):
            return election

        candidates = await self.candidates.list_by_election(election_id, active_only=True)
        results = self._build_candidate_results(election, candidates)

        groups: dict[str, PartyResult] = {}
        for result in results:
            party = (result.party or "").strip() or INDEPENDENT_PARTY
            if party not in groups:
                groups[party] = PartyResult(party=party, total_votes=0, vote_percentage="0.00", candidates=[])
            groups[party].candidates.append(result)
            groups[party].total_votes += result.vote_count

        total = election.total_votes_cast or 0
        for group in groups.values():
            group.vote_percentage = format_percentage(group.total_votes, total)

        # sorted() is stable: equal totals keep the order of their best-ranked candidate
        return sorted(groups.values(), key=lambda g: -g.total_votes)

    async def list_election_votes(self, election_id: str) -> Union[list[ElectionVoteEntry], Rejection]:
        """Ballots for an election, newest first, with audit metadata."""
        election = await self.elections.get_by_id(election_id)
        if election is None:
            return Rejection(ReasonCode.ELECTION_NOT_FOUND, "Election not found")

        rows = await self.votes.list_by_election(election_id)
        return [
            ElectionVoteEntry(
                vote_id=str(vote.id),
                user_id=vote.user_id,
                candidate_id=str(vote.candidate_id),
                candidate_name=name,
                candidate_party=party,
                voted_at=as_utc(vote.voted_at),
                ip_address=vote.ip_address,
                user_agent=vote.user_agent,
                is_verified=bool(vote.is_verified),
            )
            for vote, name, party in rows
        ]
