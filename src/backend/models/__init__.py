"""Database models module."""

from models.candidate import Candidate
from models.election import Election, ElectionStatus, ElectionType
from models.vote import Vote

__all__ = [
    "Election",
    "ElectionStatus",
    "ElectionType",
    "Candidate",
    "Vote",
]
