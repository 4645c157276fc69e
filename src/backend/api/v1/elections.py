"""
Election endpoints.

Public listing and results; creation, editing, deletion, manual status
transitions and on-demand scheduling passes are admin-only.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import CurrentUser, get_current_admin_user, get_current_user_optional
from core.exceptions import Rejection, raise_for_rejection
from db.session import get_db
from models.election import ElectionStatus
from schemas.election import (
    ElectionCreate,
    ElectionResponse,
    ElectionStatusUpdate,
    ElectionUpdate,
    StatusCycleResponse,
)
from schemas.vote import ElectionResults, PartyResult
from services.election_scheduler import ElectionScheduler
from services.election_service import ElectionService
from services.results_service import ResultsService

router = APIRouter()


@router.get("", response_model=list[ElectionResponse])
async def list_elections(
    db: AsyncSession = Depends(get_db),
) -> list[ElectionResponse]:
    """List all elections, most recent start first."""
    elections = await ElectionService(db).list_elections()
    return [ElectionResponse.model_validate(e) for e in elections]


@router.get("/active", response_model=list[ElectionResponse])
async def list_active_elections(
    db: AsyncSession = Depends(get_db),
) -> list[ElectionResponse]:
    """List elections currently accepting votes."""
    elections = await ElectionService(db).list_elections(status=ElectionStatus.ACTIVE)
    return [ElectionResponse.model_validate(e) for e in elections]


@router.get("/upcoming", response_model=list[ElectionResponse])
async def list_upcoming_elections(
    db: AsyncSession = Depends(get_db),
) -> list[ElectionResponse]:
    """List elections that have not opened yet, soonest first."""
    elections = await ElectionService(db).list_elections(status=ElectionStatus.UPCOMING)
    return [ElectionResponse.model_validate(e) for e in elections]


@router.post("/status-cycle", response_model=StatusCycleResponse)
async def run_status_cycle(
    current_user: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
) -> StatusCycleResponse:
    """
    Apply due time-based transitions now (admin only).

    Same pass the background scheduler runs on its interval; useful when
    automatic transitions are disabled.
    """
    result = await ElectionScheduler(db).run_status_cycle()
    return StatusCycleResponse(**result)


@router.get("/{election_id}", response_model=ElectionResponse)
async def get_election(
    election_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> ElectionResponse:
    """Get a specific election by ID."""
    election = await ElectionService(db).get_election(str(election_id))
    if not election:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Election not found",
        )
    return ElectionResponse.model_validate(election)


@router.get("/{election_id}/results", response_model=ElectionResults)
async def get_election_results(
    election_id: UUID,
    current_user: Annotated[CurrentUser | None, Depends(get_current_user_optional)],
    db: AsyncSession = Depends(get_db),
) -> ElectionResults:
    """Ranked results, subject to the election's visibility rules."""
    is_admin = current_user is not None and current_user.is_admin
    result = await ResultsService(db).get_results(str(election_id), requestor_is_admin=is_admin)
    if isinstance(result, Rejection):
        raise_for_rejection(result)
    return ElectionResults.model_validate(result, from_attributes=True)


@router.get("/{election_id}/parties", response_model=list[PartyResult])
async def get_party_breakdown(
    election_id: UUID,
    current_user: Annotated[CurrentUser | None, Depends(get_current_user_optional)],
    db: AsyncSession = Depends(get_db),
) -> list[PartyResult]:
    """Votes grouped by party, subject to the same visibility rules as results."""
    is_admin = current_user is not None and current_user.is_admin
    result = await ResultsService(db).get_party_breakdown(str(election_id), requestor_is_admin=is_admin)
    if isinstance(result, Rejection):
        raise_for_rejection(result)
    return [PartyResult.model_validate(group, from_attributes=True) for group in result]


@router.post("", response_model=ElectionResponse, status_code=status.HTTP_201_CREATED)
async def create_election(
    election_data: ElectionCreate,
    current_user: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
) -> ElectionResponse:
    """Create an election (admin only)."""
    result = await ElectionService(db).create_election(**election_data.model_dump())
    if isinstance(result, Rejection):
        raise_for_rejection(result)
    return ElectionResponse.model_validate(result)


@router.put("/{election_id}", response_model=ElectionResponse)
async def update_election(
    election_id: UUID,
    election_data: ElectionUpdate,
    current_user: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
) -> ElectionResponse:
    """Edit an upcoming election (admin only)."""
    result = await ElectionService(db).update_election(
        str(election_id), election_data.model_dump(exclude_unset=True)
    )
    if isinstance(result, Rejection):
        raise_for_rejection(result)
    return ElectionResponse.model_validate(result)


@router.delete("/{election_id}")
async def delete_election(
    election_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Delete an upcoming election and its candidates (admin only)."""
    result = await ElectionService(db).delete_election(str(election_id))
    if isinstance(result, Rejection):
        raise_for_rejection(result)
    return {"message": "Election deleted successfully", "election_id": str(election_id)}


@router.post("/{election_id}/status", response_model=ElectionResponse)
async def change_election_status(
    election_id: UUID,
    status_data: ElectionStatusUpdate,
    current_user: Annotated[CurrentUser, Depends(get_current_admin_user)],
    db: AsyncSession = Depends(get_db),
) -> ElectionResponse:
    """Move an election forward in its lifecycle (admin only)."""
    result = await ElectionService(db).transition_status(str(election_id), status_data.status)
    if isinstance(result, Rejection):
        raise_for_rejection(result)
    return ElectionResponse.model_validate(result)
