"""
Election-related Pydantic schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from models.election import ElectionStatus, ElectionType, as_utc


class ElectionBase(BaseModel):
    """Base election schema."""

    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    type: ElectionType = ElectionType.GENERAL
    start_time: datetime
    end_time: datetime
    max_votes_per_voter: int = Field(1, ge=1)
    allow_candidate_registration: bool = False
    show_real_time_results: bool = True
    total_voters: int = Field(0, ge=0, description="Eligible voters, used as the turnout denominator")


class ElectionCreate(ElectionBase):
    """Schema for creating an election. Status is derived from the start time."""


class ElectionUpdate(BaseModel):
    """Partial update of an upcoming election. Counters are not editable."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    type: Optional[ElectionType] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    max_votes_per_voter: Optional[int] = Field(None, ge=1)
    allow_candidate_registration: Optional[bool] = None
    show_real_time_results: Optional[bool] = None
    total_voters: Optional[int] = Field(None, ge=0)


class ElectionStatusUpdate(BaseModel):
    """Manual lifecycle transition."""

    status: ElectionStatus


class StatusCycleResponse(BaseModel):
    """Transitions applied by one scheduling pass."""

    activated_count: int
    ended_count: int
    activated_ids: list[str]
    ended_ids: list[str]


class ElectionResponse(ElectionBase):
    """Schema for election responses."""

    id: str
    status: ElectionStatus
    total_votes_cast: int = 0
    time_remaining_seconds: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @field_validator("start_time", "end_time", "created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)
