"""
Candidate endpoints.

Listings hide vote counts while the owning election's live results are
hidden from the caller.
"""

from typing import Annotated, Iterable, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import CurrentUser, get_current_admin_user, get_current_user_optional
from core.exceptions import Rejection, raise_for_rejection
from db.session import get_db
from models.candidate import Candidate
from schemas.candidate import (
    CandidateCreate,
    CandidateResponse,
    CandidateStatsResponse,
    CandidateStatusUpdate,
    CandidateUpdate,
)
from schemas.vote import CandidateResult
from services.candidate_service import CandidateService
from services.results_service import ResultsService

router = APIRouter()


async def _public_view(
    service: CandidateService, candidates: Iterable[Candidate], current_user: Optional[CurrentUser]
) -> list[CandidateResponse]:
    candidates = list(candidates)
    is_admin = current_user is not None and current_user.is_admin
    hidden = await service.hidden_tally_elections(candidates, requestor_is_admin=is_admin)

    views = []
    for candidate in candidates:
        view = CandidateResponse.model_validate(candidate)
        if view.election_id in hidden:
            view.vote_count = None
        views.append(view)
    return views


@router.get("", response_model=list[CandidateResponse])
async def list_all_candidates(
    current_user: Annotated[CurrentUser | None, Depends(get_current_user_optional)],
    election_id: Optional[UUID] = Query(None, description="Only candidates of this election"),
    db: AsyncSession = Depends(get_db),
) -> list[CandidateResponse]:
    """List candidates of every election (or one), inactive ones included."""
    service = CandidateService(db)
    candidates = await service.list_all_candidates(str(election_id) if election_id else None)
    return await _public_view(service, candidates, current_user)


@router.get("/election/{election_id}", response_model=list[CandidateResponse])
async def list_candidates(
    election_id: UUID,
    current_user: Annotated[CurrentUser | None, Depends(get_current_user_optional)],
    db: AsyncSession = Depends(get_db),
) -> list[CandidateResponse]:
    """List an election's active candidates in registration order."""
    service = CandidateService(db)
    result = await service.list_candidates(str(election_id))
    if isinstance(result, Rejection):
        raise_for_rejection(result)
    return await _public_view(service, result, current_user)


@router.get("/election/{election_id}/top", response_model=list[CandidateResult])
async def list_top_candidates(
    election_id: UUID,
    current_user: Annotated[CurrentUser | None, Depends(get_current_user_optional)],
    limit: int = Query(5, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> list[CandidateResult]:
    """Leading candidates by votes, subject to results visibility."""
    is_admin = current_user is not None and current_user.is_admin
    result = await ResultsService(db).get_top_candidates(
        str(election_id), limit=limit, requestor_is_admin=is_admin
    )
    if isinstance(result, Rejection):
        raise_for_rejection(result)
    return [CandidateResult.model_validate(entry, from_attributes=True) for entry in result]


@router.get("/{candidate_id}", response_model=CandidateResponse)
async def get_candidate(
    candidate_id: UUID,
    current_user: Annotated[CurrentUser | None, Depends(get_current_user_optional)],
    db: AsyncSession = Depends(get_db),
) -> CandidateResponse:
    """Get a specific candidate by ID."""
    service = CandidateService(db)
    candidate = await service.get_candidate(str(candidate_id))
    if not candidate:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Candidate not found",
        )
    return (await _public_view(service, [candidate], current_user))[0]


@router.get("/{candidate_id}/stats", response_model=CandidateStatsResponse)
async def get_candidate_stats(
    candidate_id: UUID,
    current_user: Annotated[CurrentUser | None, Depends(get_current_user_optional)],
    db: AsyncSession = Depends(get_db),
) -> CandidateStatsResponse:
    """A candidate's tally, share and rank, subject to results visibility."""
    is_admin = current_user is not None and current_user.is_admin
    result = await ResultsService(db).get_candidate_stats(str(candidate_id), requestor_is_admin=is_admin)
    if isinstance(result, Rejection):
        raise_for_rejection(result)
    return CandidateStatsResponse.model_validate(result, from_attributes=True)


@router.post("", response_model=CandidateResponse, status_code=status.HTTP_201_CREATED)
async def create_candidate(
    candidate_data: CandidateCreate,
    current_user: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
) -> CandidateResponse:
    """Register a candidate (admin only)."""
    result = await CandidateService(db).create_candidate(**candidate_data.model_dump(mode="json"))
    if isinstance(result, Rejection):
        raise_for_rejection(result)
    return CandidateResponse.model_validate(result)


@router.put("/{candidate_id}", response_model=CandidateResponse)
async def update_candidate(
    candidate_id: UUID,
    candidate_data: CandidateUpdate,
    current_user: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
) -> CandidateResponse:
    """Edit a candidate of an upcoming election (admin only)."""
    result = await CandidateService(db).update_candidate(
        str(candidate_id), candidate_data.model_dump(exclude_unset=True)
    )
    if isinstance(result, Rejection):
        raise_for_rejection(result)
    return CandidateResponse.model_validate(result)


@router.patch("/{candidate_id}/status", response_model=CandidateResponse)
async def set_candidate_status(
    candidate_id: UUID,
    status_data: CandidateStatusUpdate,
    current_user: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
) -> CandidateResponse:
    """Enable or withdraw a candidate (admin only)."""
    result = await CandidateService(db).set_candidate_active(str(candidate_id), status_data.is_active)
    if isinstance(result, Rejection):
        raise_for_rejection(result)
    return CandidateResponse.model_validate(result)


@router.delete("/{candidate_id}")
async def delete_candidate(
    candidate_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Remove a candidate from an upcoming election (admin only)."""
    result = await CandidateService(db).delete_candidate(str(candidate_id))
    if isinstance(result, Rejection):
        raise_for_rejection(result)
    return {"message": "Candidate deleted successfully", "candidate_id": str(candidate_id)}
