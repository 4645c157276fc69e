"""
Vote ledger model.

One row per ballot. The ledger is the source of truth for "has this voter
voted"; the counters on elections and candidates are derived from it.
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class Vote(Base):
    """
    Ballot record.

    INTEGRITY:
    - At most one row per (user_id, election_id), enforced by the database
    - Immutable after insert except for the is_verified audit flag
    - voted_at is assigned by the server, never by the client
    """

    __tablename__ = "votes"

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
    candidate_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("candidates.id", ondelete="CASCADE"),
        index=True,
    )

    # Voter identity as issued by the identity provider (JWT subject)
    user_id: Mapped[str] = mapped_column(String(64), index=True)

    voted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    # Audit metadata, recorded verbatim
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Advisory audit flag; does not affect counts
    is_verified: Mapped[bool] = mapped_column(Boolean, default=True)

    __table_args__ = (
        UniqueConstraint("user_id", "election_id", name="uq_votes_user_election"),
        Index("ix_votes_election_candidate", "election_id", "candidate_id"),
        Index("ix_votes_election_voted_at", "election_id", "voted_at"),
    )
