"""Schemas module initialization."""

from schemas.candidate import CandidateCreate, CandidateResponse, CandidateUpdate
from schemas.election import ElectionCreate, ElectionResponse, ElectionUpdate
from schemas.vote import ElectionResults, VoteCreate, VoteResponse, VoteStatus

__all__ = [
    "ElectionCreate",
    "ElectionUpdate",
    "ElectionResponse",
    "CandidateCreate",
    "CandidateUpdate",
    "CandidateResponse",
    "VoteCreate",
    "VoteResponse",
    "VoteStatus",
    "ElectionResults",
]
