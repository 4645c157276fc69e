"""
Candidate model.

Stores candidate definitions per election and a denormalized vote counter.
``vote_count`` is written exclusively by the vote casting path.
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class Candidate(Base):
    """A candidate standing in one election."""

    __tablename__ = "candidates"

    __table_args__ = (
        # Name is unique within an election
        UniqueConstraint("election_id", "name", name="uq_candidates_election_name"),
        Index("ix_candidates_election_active", "election_id", "is_active"),
        CheckConstraint("vote_count >= 0", name="ck_candidates_vote_count"),
    )

    id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    election_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("elections.id", ondelete="CASCADE"),
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    party: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    platform: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    photo_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Aggregated vote count
    vote_count: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
