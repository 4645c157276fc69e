"""
Election model.

Holds election definitions and the denormalized total of votes cast.
Individual ballots live in the votes table; ``total_votes_cast`` is a cache
of that table's row count for the election and is only ever changed in the
same transaction as a ledger insert or delete.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class ElectionStatus(str, Enum):
    """Election lifecycle status. Transitions only move forward."""

    UPCOMING = "upcoming"  # Created, editable, not accepting votes
    ACTIVE = "active"  # Accepting votes within the time window
    ENDED = "ended"  # Closed, final results visible

    @property
    def order(self) -> int:
        return _STATUS_ORDER[self]

    def can_transition_to(self, target: "ElectionStatus") -> bool:
        """Only forward moves are allowed (upcoming -> active -> ended)."""
        return target.order > self.order


_STATUS_ORDER = {
    ElectionStatus.UPCOMING: 0,
    ElectionStatus.ACTIVE: 1,
    ElectionStatus.ENDED: 2,
}


class ElectionType(str, Enum):
    """Kind of election."""

    GENERAL = "general"
    LOCAL = "local"
    SPECIAL = "special"


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive timestamps read back from the store."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class Election(Base):
    """
    Election definition with aggregated vote total.

    Mutation (edit/delete) is only permitted while the election is upcoming.
    """

    __tablename__ = "elections"

    __table_args__ = (
        # Scheduler query: "upcoming elections whose window has opened"
        Index("ix_elections_status_start_time", "status", "start_time"),
        CheckConstraint("start_time < end_time", name="ck_elections_window"),
        CheckConstraint("total_votes_cast >= 0", name="ck_elections_total_votes_cast"),
        CheckConstraint("max_votes_per_voter >= 1", name="ck_elections_max_votes"),
    )

    id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    title: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(20), default=ElectionType.GENERAL.value)

    status: Mapped[str] = mapped_column(
        String(20),
        default=ElectionStatus.UPCOMING.value,
        index=True,
    )

    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    max_votes_per_voter: Mapped[int] = mapped_column(Integer, default=1)
    allow_candidate_registration: Mapped[bool] = mapped_column(Boolean, default=False)
    show_real_time_results: Mapped[bool] = mapped_column(Boolean, default=True)

    # Aggregated results (updated together with the votes table)
    total_votes_cast: Mapped[int] = mapped_column(Integer, default=0)
    # Turnout denominator
    total_voters: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        onupdate=func.now(),
    )

    @property
    def status_enum(self) -> ElectionStatus:
        return ElectionStatus(self.status)

    @property
    def is_upcoming(self) -> bool:
        return self.status == ElectionStatus.UPCOMING.value

    @property
    def is_ended(self) -> bool:
        return self.status == ElectionStatus.ENDED.value

    @property
    def time_remaining_seconds(self) -> int:
        """Seconds until voting closes (0 once closed)."""
        end_time = as_utc(self.end_time)
        if end_time is None:
            return 0
        remaining = (end_time - datetime.now(timezone.utc)).total_seconds()
        return max(0, int(remaining))
