"""
Election management service.

Administrative CRUD and lifecycle transitions. Elections can only be edited
or deleted while upcoming; status only ever moves forward.
"""

from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ReasonCode, Rejection, StorageError
from models.election import Election, ElectionStatus, ElectionType, as_utc
from repositories.election_repository import EDITABLE_FIELDS, ElectionRepository

logger = structlog.get_logger(__name__)


def validate_window(start_time: datetime, end_time: datetime, now: datetime) -> Optional[Rejection]:
    """Start must precede end, and the window must not already be over."""
    start_time, end_time, now = as_utc(start_time), as_utc(end_time), as_utc(now)
    if start_time >= end_time:
        return Rejection(ReasonCode.INVALID_TIME_WINDOW, "End time must be after start time")
    if end_time <= now:
        return Rejection(ReasonCode.INVALID_TIME_WINDOW, "End time must be in the future")
    return None


def initial_status(start_time: datetime, now: datetime) -> ElectionStatus:
    """New elections open immediately when their start time has already passed."""
    if as_utc(start_time) > as_utc(now):
        return ElectionStatus.UPCOMING
    return ElectionStatus.ACTIVE


class ElectionService:
    """Creates, edits and transitions elections."""

    def __init__(self, db: AsyncSession, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.elections = ElectionRepository(db)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def _commit(self, operation: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("storage_error", operation=operation, error=str(e))
            raise StorageError(f"Failed to {operation.replace('_', ' ')}") from e

    async def get_election(self, election_id: str) -> Optional[Election]:
        return await self.elections.get_by_id(election_id)

    async def list_elections(self, status: Optional[ElectionStatus] = None) -> list[Election]:
        return await self.elections.list_elections(status=status)

    async def create_election(
        self,
        title: str,
        start_time: datetime,
        end_time: datetime,
        description: Optional[str] = None,
        type: ElectionType = ElectionType.GENERAL,
        max_votes_per_voter: int = 1,
        allow_candidate_registration: bool = False,
        show_real_time_results: bool = True,
        total_voters: int = 0,
    ) -> Union[Election, Rejection]:
        """Create an election; its status follows from the start time."""
        now = self._clock()
        invalid = validate_window(start_time, end_time, now)
        if invalid is not None:
            return invalid

        status = initial_status(start_time, now)
        try:
            election = await self.elections.create(
                title=title,
                start_time=start_time,
                end_time=end_time,
                status=status,
                description=description,
                type=type,
                max_votes_per_voter=max_votes_per_voter,
                allow_candidate_registration=allow_candidate_registration,
                show_real_time_results=show_real_time_results,
                total_voters=total_voters,
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("storage_error", operation="create_election", error=str(e))
            raise StorageError("Failed to create election") from e
        await self._commit("create_election")

        logger.info("election_created", election_id=str(election.id), status=status.value)
        return election

    async def update_election(self, election_id: str, values: dict[str, Any]) -> Union[Election, Rejection]:
        """
        Edit an upcoming election.

        Counters and status are not editable here. A changed window is
        re-validated against the merged start and end times.
        """
        election = await self.elections.get_by_id(election_id)
        if election is None:
            return Rejection(ReasonCode.ELECTION_NOT_FOUND, "Election not found")
        if not election.is_upcoming:
            return Rejection(ReasonCode.ELECTION_LOCKED, "Cannot modify election that has started")

        changes = {k: v for k, v in values.items() if k in EDITABLE_FIELDS and v is not None}
        if not changes:
            return election

        if "start_time" in changes or "end_time" in changes:
            invalid = validate_window(
                changes.get("start_time", election.start_time),
                changes.get("end_time", election.end_time),
                self._clock(),
            )
            if invalid is not None:
                return invalid

        try:
            await self.elections.update_fields(election_id, changes)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("storage_error", operation="update_election", error=str(e))
            raise StorageError("Failed to update election") from e
        await self._commit("update_election")
        await self.db.refresh(election)

        logger.info("election_updated", election_id=election_id, fields=sorted(changes))
        return election

    async def delete_election(self, election_id: str) -> Union[bool, Rejection]:
        """Delete an upcoming election and its candidates."""
        election = await self.elections.get_by_id(election_id)
        if election is None:
            return Rejection(ReasonCode.ELECTION_NOT_FOUND, "Election not found")
        if not election.is_upcoming:
            return Rejection(ReasonCode.ELECTION_LOCKED, "Cannot delete election that has started")

        try:
            deleted = await self.elections.delete(election_id)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("storage_error", operation="delete_election", error=str(e))
            raise StorageError("Failed to delete election") from e
        await self._commit("delete_election")

        logger.info("election_deleted", election_id=election_id)
        return deleted

    async def transition_status(
        self, election_id: str, new_status: ElectionStatus
    ) -> Union[Election, Rejection]:
        """
        Move an election forward in its lifecycle.

        The update is conditional on the status read here, so a concurrent
        transition (e.g. the scheduler) makes this one fail cleanly.
        """
        election = await self.elections.get_by_id(election_id)
        if election is None:
            return Rejection(ReasonCode.ELECTION_NOT_FOUND, "Election not found")

        current = election.status_enum
        if not current.can_transition_to(new_status):
            return Rejection(
                ReasonCode.INVALID_STATUS_TRANSITION,
                f"Cannot change status from {current.value} to {new_status.value}",
            )

        try:
            updated = await self.elections.update_status(election_id, new_status, expected=current)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("storage_error", operation="transition_status", error=str(e))
            raise StorageError("Failed to change election status") from e
        if not updated:
            await self.db.rollback()
            return Rejection(
                ReasonCode.INVALID_STATUS_TRANSITION,
                "Election status changed concurrently",
            )
        await self._commit("transition_status")
        await self.db.refresh(election)

        logger.info(
            "election_status_changed",
            election_id=election_id,
            old_status=current.value,
            new_status=new_status.value,
        )
        return election
