"""Repository modules for database access."""

from repositories.candidate_repository import CandidateRepository
from repositories.election_repository import ElectionRepository
from repositories.vote_repository import VoteRepository

__all__ = [
    "ElectionRepository",
    "CandidateRepository",
    "VoteRepository",
]
