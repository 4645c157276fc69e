"""
Eligibility and voting-window gate.

A pure decision over snapshots loaded by the caller. It never touches the
database, so the storage-level unique constraint on (user_id, election_id)
remains the final word on duplicates.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from core.exceptions import ReasonCode, Rejection
from models.candidate import Candidate
from models.election import Election, ElectionStatus, as_utc


@dataclass(frozen=True)
class Admit:
    """The vote attempt may proceed."""


ADMIT = Admit()

GateDecision = Union[Admit, Rejection]


def check_eligibility(
    election: Optional[Election],
    candidate: Optional[Candidate],
    already_voted: bool,
    now: datetime,
) -> GateDecision:
    """
    Decide whether a vote attempt may proceed.

    Checks run in order and stop at the first failure:
    election exists, election is active, ``now`` is inside
    [start_time, end_time] (both ends inclusive), candidate is an active
    member of this election, voter has no ballot yet.
    """
    if election is None:
        return Rejection(ReasonCode.ELECTION_NOT_FOUND, "Election not found")

    if election.status != ElectionStatus.ACTIVE.value:
        return Rejection(ReasonCode.ELECTION_NOT_ACTIVE, "Election is not active for voting")

    now = as_utc(now)
    if now < as_utc(election.start_time):
        return Rejection(ReasonCode.VOTING_NOT_STARTED, "Voting has not started yet")
    if now > as_utc(election.end_time):
        return Rejection(ReasonCode.VOTING_ENDED, "Voting has ended")

    if candidate is None or str(candidate.election_id) != str(election.id) or not candidate.is_active:
        return Rejection(ReasonCode.CANDIDATE_UNAVAILABLE, "Candidate not found or not active")

    if already_voted:
        return Rejection(ReasonCode.ALREADY_VOTED, "You have already voted in this election")

    return ADMIT
