"""
Vote management endpoints.

Voters cast one ballot per election and may check whether they have voted.
Results follow the election's visibility rules. Ballot inspection,
verification, deletion and counter reconciliation are admin-only.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import (
    CurrentUser,
    get_client_ip,
    get_current_admin_user,
    get_current_user,
    get_current_user_optional,
    get_user_agent,
)
from core.exceptions import Rejection, raise_for_rejection
from db.session import get_db
from schemas.vote import (
    ElectionResults,
    ElectionVoteRecord,
    ReconcileResponse,
    VoteCreate,
    VoteResponse,
    VoteStatus,
    VoteVerifyRequest,
    VotingStats,
)
from services.results_service import ResultsService
from services.vote_service import VoteService

router = APIRouter()


@router.post("", response_model=VoteResponse, status_code=status.HTTP_201_CREATED)
async def cast_vote(
    vote_data: VoteCreate,
    request: Request,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> VoteResponse:
    """
    Cast a vote in an election.

    Requirements:
    - User must be authenticated (enforced by dependency)
    - Election must be active and inside its voting window
    - Candidate must be an active candidate of the election
    - User cannot vote twice in the same election
    """
    service = VoteService(db)
    result = await service.cast_vote(
        user_id=current_user.id,
        election_id=str(vote_data.election_id),
        candidate_id=str(vote_data.candidate_id),
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
    )
    if isinstance(result, Rejection):
        raise_for_rejection(result)

    return VoteResponse(
        success=True,
        message="Vote cast successfully",
        vote_id=result.vote_id,
        election_id=result.election_id,
        candidate_id=result.candidate_id,
        voted_at=result.voted_at,
    )


@router.get("/status/{election_id}", response_model=VoteStatus)
async def check_vote_status(
    election_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: AsyncSession = Depends(get_db),
) -> VoteStatus:
    """Check if the current user has voted in an election (choice not revealed)."""
    result = await VoteService(db).get_vote_status(current_user.id, str(election_id))
    if isinstance(result, Rejection):
        raise_for_rejection(result)
    return VoteStatus.model_validate(result, from_attributes=True)


@router.get("/results/{election_id}", response_model=ElectionResults)
async def get_election_results(
    election_id: UUID,
    current_user: Annotated[CurrentUser | None, Depends(get_current_user_optional)],
    db: AsyncSession = Depends(get_db),
) -> ElectionResults:
    """
    Get ranked results for an election.

    Before the election ends, results are only visible when real-time
    results are enabled or the caller is an admin.
    """
    is_admin = current_user is not None and current_user.is_admin
    result = await ResultsService(db).get_results(str(election_id), requestor_is_admin=is_admin)
    if isinstance(result, Rejection):
        raise_for_rejection(result)
    return ElectionResults.model_validate(result, from_attributes=True)


@router.get("/stats/{election_id}", response_model=VotingStats)
async def get_voting_stats(
    election_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
) -> VotingStats:
    """Turnout, verification counts and hourly timeline (admin only)."""
    result = await ResultsService(db).get_voting_stats(str(election_id))
    if isinstance(result, Rejection):
        raise_for_rejection(result)
    return VotingStats.model_validate(result, from_attributes=True)


@router.get("/election/{election_id}", response_model=list[ElectionVoteRecord])
async def list_election_votes(
    election_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
) -> list[ElectionVoteRecord]:
    """List every ballot in an election with audit metadata (admin only)."""
    result = await ResultsService(db).list_election_votes(str(election_id))
    if isinstance(result, Rejection):
        raise_for_rejection(result)
    return [ElectionVoteRecord.model_validate(entry, from_attributes=True) for entry in result]


@router.patch("/{vote_id}/verify")
async def verify_vote(
    vote_id: UUID,
    body: VoteVerifyRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Set a ballot's verification flag (admin only). Tallies are unaffected."""
    updated = await VoteService(db).set_vote_verified(str(vote_id), body.is_verified)
    if not updated:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Vote not found",
        )
    return {"message": "Vote verification updated", "vote_id": str(vote_id), "is_verified": body.is_verified}


@router.delete("/{vote_id}")
async def delete_vote(
    vote_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Delete a ballot and reverse its counter increments (admin only)."""
    deleted = await VoteService(db).delete_vote(str(vote_id))
    if not deleted:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Vote not found",
        )
    return {"message": "Vote deleted successfully", "vote_id": str(vote_id)}


@router.post("/reconcile/{election_id}", response_model=ReconcileResponse)
async def reconcile_counters(
    election_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
) -> ReconcileResponse:
    """Rebuild an election's vote counters from the ballot ledger (admin only)."""
    report = await VoteService(db).reconcile_counters(str(election_id))
    if isinstance(report, Rejection):
        raise_for_rejection(report)
    return ReconcileResponse(
        election_id=report.election_id,
        total_votes_before=report.total_votes_before,
        total_votes_after=report.total_votes_after,
        candidates_corrected=len(report.candidate_corrections),
        changed=report.changed,
    )
