"""
Candidate-related Pydantic schemas.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class CandidateBase(BaseModel):
    """Base candidate schema."""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    party: Optional[str] = Field(None, max_length=255)
    platform: Optional[str] = None
    photo_url: Optional[str] = Field(None, max_length=500)


class CandidateCreate(CandidateBase):
    """Schema for registering a candidate."""

    election_id: UUID


class CandidateUpdate(BaseModel):
    """Partial update of descriptive fields. vote_count is not accepted."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    party: Optional[str] = Field(None, max_length=255)
    platform: Optional[str] = None
    photo_url: Optional[str] = Field(None, max_length=500)


class CandidateStatusUpdate(BaseModel):
    """Enable or withdraw a candidate."""

    is_active: bool


class CandidateResponse(CandidateBase):
    """Schema for candidate responses."""

    id: str
    election_id: str
    vote_count: Optional[int] = Field(0, description="None while the election's live results are hidden")
    is_active: bool = True
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CandidateStatsResponse(BaseModel):
    """A candidate's standing within its election."""

    candidate_id: str
    name: str
    party: Optional[str] = None
    description: Optional[str] = None
    total_votes: int
    vote_percentage: str = Field(..., description="Share of election votes, two decimals")
    rank: Optional[int] = Field(None, description="Position among active candidates (None if inactive)")
    total_candidates: int
    election_id: str
    election_title: str
    election_status: str
    election_total_votes: int

    model_config = {"from_attributes": True}
