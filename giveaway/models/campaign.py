"""Database models for campaigns and their applicant pools."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from ..db.utils import dt_iso
from .base import Base

if TYPE_CHECKING:
    from .draw_request import DrawRequest


class Campaign(Base):
    """Per-campaign state: pool size and the (optional) decided winner.

    Rows are created lazily the first time an applicant is added, so callers
    never register a campaign explicitly.
    """

    __tablename__ = "campaigns"

    campaign_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    """Caller-chosen identifier."""

    pool_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    """Number of applicants; also the ``position`` the next applicant receives."""

    winner: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    """Selected applicant. ``None`` while undecided; immutable once set."""

    winner_index: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """Pool position of the winner."""

    winning_request_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    """Request identifier whose fulfillment decided the campaign."""

    random_value: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    """Random value (``0x`` hex string) that decided the campaign."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    decided_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __init__(self, *, campaign_id: str, created_at: Optional[datetime] = None) -> None:
        self.campaign_id = campaign_id
        self.pool_size = 0
        if created_at is not None:
            self.created_at = created_at

    @property
    def is_decided(self) -> bool:
        return self.winner is not None

    @classmethod
    def get(cls, session: Session, campaign_id: str) -> Optional["Campaign"]:
        """Return the campaign row for ``campaign_id`` if it exists."""

        return session.get(cls, campaign_id)

    def applicant_values(self, session: Session) -> list[str]:
        """Return the applicant pool in insertion order."""

        stmt = (
            select(Applicant.value)
            .where(Applicant.campaign_id == self.campaign_id)
            .order_by(Applicant.position.asc())
        )
        return list(session.scalars(stmt).all())

    def applicant_at(self, session: Session, position: int) -> Optional[str]:
        """Return the applicant stored at ``position`` or ``None``."""

        return session.scalar(
            select(Applicant.value).where(
                Applicant.campaign_id == self.campaign_id,
                Applicant.position == position,
            )
        )

    def pending_requests(self, session: Session) -> list["DrawRequest"]:
        """Return outstanding draw requests, oldest first."""

        from .draw_request import DrawRequest

        stmt = (
            select(DrawRequest)
            .where(DrawRequest.campaign_id == self.campaign_id)
            .order_by(DrawRequest.requested_at.asc(), DrawRequest.request_id.asc())
        )
        return list(session.scalars(stmt).all())

    def to_json(self) -> dict[str, Any]:
        """Serialize the campaign's scalar state into JSON-friendly types."""

        return {
            "campaign_id": self.campaign_id,
            "pool_size": self.pool_size,
            "winner": self.winner,
            "winner_index": self.winner_index,
            "winning_request_id": self.winning_request_id,
            "random_value": self.random_value,
            "created_at": dt_iso(self.created_at),
            "decided_at": dt_iso(self.decided_at),
        }

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<Campaign(campaign_id={self.campaign_id!r}, pool_size={self.pool_size}, "
            f"winner={self.winner!r})>"
        )


class Applicant(Base):
    """One entry in a campaign's applicant pool.

    Duplicate values within a campaign are allowed; inserting the same value
    several times is how an entity gets more than one chance to win.
    """

    __tablename__ = "applicants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    campaign_id: Mapped[str] = mapped_column(
        ForeignKey("campaigns.campaign_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    position: Mapped[int] = mapped_column(Integer, nullable=False)
    """Dense 0-based insertion index within the campaign."""

    value: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    campaign: Mapped["Campaign"] = relationship()

    __table_args__ = (
        UniqueConstraint("campaign_id", "position", name="uq_applicant_position"),
    )

    def __init__(self, *, campaign_id: str, position: int, value: str) -> None:
        self.campaign_id = campaign_id
        self.position = position
        self.value = value

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<Applicant(campaign_id={self.campaign_id!r}, position={self.position}, "
            f"value={self.value!r})>"
        )


__all__ = ["Campaign", "Applicant"]
