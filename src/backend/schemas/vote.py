"""
Vote-related Pydantic schemas.

Covers ballot casting, per-voter status and the results views built from
the vote counters and ledger.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class VoteCreate(BaseModel):
    """Schema for casting a vote."""

    election_id: UUID
    candidate_id: UUID


class VoteResponse(BaseModel):
    """Response after successfully casting a vote."""

    success: bool
    message: str
    vote_id: str
    election_id: str
    candidate_id: str
    voted_at: datetime


class VoteStatus(BaseModel):
    """Check if user has voted in an election (without revealing choice)."""

    election_id: str
    has_voted: bool
    vote_id: Optional[str] = None
    voted_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class VoteVerifyRequest(BaseModel):
    """Set a ballot's audit flag."""

    is_verified: bool


class CandidateResult(BaseModel):
    """Aggregated vote result for a candidate."""

    candidate_id: str
    name: str
    party: Optional[str] = None
    vote_count: int
    vote_percentage: str
    rank: int

    model_config = {"from_attributes": True}


class ElectionResults(BaseModel):
    """Ranked results for an election."""

    election_id: str
    title: str
    status: str
    total_votes_cast: int
    total_voters: int
    show_real_time_results: bool
    candidates: list[CandidateResult]
    last_updated: datetime

    model_config = {"from_attributes": True}


class TimelineBucket(BaseModel):
    date: str
    hour: int
    vote_count: int


class HourlyBucket(BaseModel):
    hour: int
    vote_count: int


class VotingStats(BaseModel):
    """Administrative statistics for an election."""

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
    timeline: list[TimelineBucket] = []
    hourly: list[HourlyBucket] = []

    model_config = {"from_attributes": True}


class PartyResult(BaseModel):
    """Votes aggregated by party."""

    party: str
    total_votes: int
    vote_percentage: str
    candidates: list[CandidateResult]

    model_config = {"from_attributes": True}


class ElectionVoteRecord(BaseModel):
    """A ballot with its audit metadata (administrators only)."""

    vote_id: str
    user_id: str
    candidate_id: str
    candidate_name: Optional[str] = None
    candidate_party: Optional[str] = None
    voted_at: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    is_verified: bool

    model_config = {"from_attributes": True}


class ReconcileResponse(BaseModel):
    """Counter corrections applied by reconciliation."""

    election_id: str
    total_votes_before: int
    total_votes_after: int
    candidates_corrected: int
    changed: bool
