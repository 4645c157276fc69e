"""
Candidate management service.
"""

from typing import Any, Iterable, Optional, Union

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ReasonCode, Rejection, StorageError
from models.candidate import Candidate
from models.election import Election
from repositories.candidate_repository import EDITABLE_FIELDS, CandidateRepository
from repositories.election_repository import ElectionRepository
from services.results_service import results_visible

logger = structlog.get_logger(__name__)

# Name of the (election_id, name) unique constraint
UNIQUE_NAME_CONSTRAINT = "uq_candidates_election_name"


def _duplicate_name(name: str) -> Rejection:
    return Rejection(
        ReasonCode.DUPLICATE_CANDIDATE,
        f"Candidate '{name}' already exists in this election",
    )


def _locked(election: Election) -> Optional[Rejection]:
    if not election.is_upcoming:
        return Rejection(ReasonCode.ELECTION_LOCKED, "Cannot modify candidates after the election has started")
    return None


class CandidateService:
    """Registers and maintains the candidates of an election."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.elections = ElectionRepository(db)
        self.candidates = CandidateRepository(db)

    async def _load(self, candidate_id: str) -> Union[tuple[Candidate, Election], Rejection]:
        candidate = await self.candidates.get_by_id(candidate_id)
        if candidate is None:
            return Rejection(ReasonCode.CANDIDATE_NOT_FOUND, "Candidate not found")
        election = await self.elections.get_by_id(str(candidate.election_id))
        if election is None:
            return Rejection(ReasonCode.ELECTION_NOT_FOUND, "Election not found")
        return candidate, election

    async def get_candidate(self, candidate_id: str) -> Optional[Candidate]:
        return await self.candidates.get_by_id(candidate_id)

    async def list_candidates(
        self, election_id: str, active_only: bool = True
    ) -> Union[list[Candidate], Rejection]:
        if await self.elections.get_by_id(election_id) is None:
            return Rejection(ReasonCode.ELECTION_NOT_FOUND, "Election not found")
        return await self.candidates.list_by_election(election_id, active_only=active_only)

    async def list_all_candidates(self, election_id: Optional[str] = None) -> list[Candidate]:
        """Every candidate, optionally narrowed to one election, inactive ones included."""
        return await self.candidates.list_all(election_id)

    async def hidden_tally_elections(
        self, candidates: Iterable[Candidate], requestor_is_admin: bool = False
    ) -> set[str]:
        """Ids of the candidates' elections whose live tallies the requestor may not see."""
        hidden = set()
        for election_id in {str(c.election_id) for c in candidates}:
            election = await self.elections.get_by_id(election_id)
            if election is not None and not results_visible(election, requestor_is_admin):
                hidden.add(election_id)
        return hidden

    async def create_candidate(
        self,
        election_id: str,
        name: str,
        description: Optional[str] = None,
        party: Optional[str] = None,
        platform: Optional[str] = None,
        photo_url: Optional[str] = None,
    ) -> Union[Candidate, Rejection]:
        """
        Register a candidate.

        Allowed while the election is upcoming, or later if the election
        accepts candidate registration. Names are unique per election.
        """
        election = await self.elections.get_by_id(election_id)
        if election is None:
            return Rejection(ReasonCode.ELECTION_NOT_FOUND, "Election not found")
        if not election.is_upcoming and not election.allow_candidate_registration:
            return Rejection(ReasonCode.REGISTRATION_CLOSED, "Candidate registration is closed for this election")

        if await self.candidates.get_by_name(election_id, name) is not None:
            return _duplicate_name(name)

        try:
            candidate = await self.candidates.create(
                election_id=election_id,
                name=name,
                description=description,
                party=party,
                platform=platform,
                photo_url=photo_url,
            )
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if UNIQUE_NAME_CONSTRAINT in str(e.orig) or "candidates.name" in str(e.orig):
                return _duplicate_name(name)
            logger.error("storage_error", operation="create_candidate", error=str(e))
            raise StorageError("Failed to create candidate") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("storage_error", operation="create_candidate", error=str(e))
            raise StorageError("Failed to create candidate") from e

        logger.info("candidate_created", candidate_id=str(candidate.id), election_id=election_id)
        return candidate

    async def update_candidate(self, candidate_id: str, values: dict[str, Any]) -> Union[Candidate, Rejection]:
        """Edit descriptive fields. The vote counter is never editable."""
        loaded = await self._load(candidate_id)
        if isinstance(loaded, Rejection):
            return loaded
        candidate, election = loaded

        locked = _locked(election)
        if locked is not None:
            return locked

        changes = {k: v for k, v in values.items() if k in EDITABLE_FIELDS and v is not None}
        if not changes:
            return candidate

        new_name = changes.get("name")
        if new_name and new_name != candidate.name:
            if await self.candidates.get_by_name(str(election.id), new_name) is not None:
                return _duplicate_name(new_name)

        try:
            await self.candidates.update_fields(candidate_id, changes)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            return _duplicate_name(new_name or candidate.name)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("storage_error", operation="update_candidate", error=str(e))
            raise StorageError("Failed to update candidate") from e
        await self.db.refresh(candidate)

        logger.info("candidate_updated", candidate_id=candidate_id, fields=sorted(changes))
        return candidate

    async def set_candidate_active(self, candidate_id: str, is_active: bool) -> Union[Candidate, Rejection]:
        """Enable or withdraw a candidate."""
        loaded = await self._load(candidate_id)
        if isinstance(loaded, Rejection):
            return loaded
        candidate, election = loaded

        locked = _locked(election)
        if locked is not None:
            return locked

        try:
            await self.candidates.set_active(candidate_id, is_active)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("storage_error", operation="set_candidate_active", error=str(e))
            raise StorageError("Failed to update candidate status") from e
        await self.db.refresh(candidate)

        logger.info("candidate_status_changed", candidate_id=candidate_id, is_active=is_active)
        return candidate

    async def delete_candidate(self, candidate_id: str) -> Union[bool, Rejection]:
        """Remove a candidate from an upcoming election."""
        loaded = await self._load(candidate_id)
        if isinstance(loaded, Rejection):
            return loaded
        _, election = loaded

        locked = _locked(election)
        if locked is not None:
            return locked

        try:
            deleted = await self.candidates.delete(candidate_id)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("storage_error", operation="delete_candidate", error=str(e))
            raise StorageError("Failed to delete candidate") from e

        logger.info("candidate_deleted", candidate_id=candidate_id)
        return deleted
