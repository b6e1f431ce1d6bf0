"""Correlation table routing randomness callbacks back to their campaign."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from ..db.utils import dt_iso
from .base import Base
from .campaign import Campaign


class DrawRequest(Base):
    """Outstanding randomness request for a campaign.

    A row exists from the moment a draw is issued until the first fulfillment
    for its ``request_id`` consumes it, after which the row is deleted.
    """

    __tablename__ = "draw_requests"

    request_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    """Opaque identifier issued by the randomness provider."""

    campaign_id: Mapped[str] = mapped_column(
        ForeignKey("campaigns.campaign_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    pool_size: Mapped[int] = mapped_column(Integer, nullable=False)
    """Pool size observed when the draw was issued."""

    requested_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    campaign: Mapped["Campaign"] = relationship()

    def __init__(
        self,
        *,
        request_id: str,
        campaign_id: str,
        pool_size: int,
        requested_by: Optional[str] = None,
        requested_at: Optional[datetime] = None,
    ) -> None:
        self.request_id = request_id
        self.campaign_id = campaign_id
        self.pool_size = pool_size
        self.requested_by = requested_by
        if requested_at is not None:
            self.requested_at = requested_at

    @classmethod
    def get(cls, session: Session, request_id: str) -> Optional["DrawRequest"]:
        return session.get(cls, request_id)

    def to_json(self) -> dict:
        return {
            "request_id": self.request_id,
            "campaign_id": self.campaign_id,
            "pool_size": self.pool_size,
            "requested_by": self.requested_by,
            "requested_at": dt_iso(self.requested_at),
        }

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            f"<DrawRequest(request_id={self.request_id!r}, "
            f"campaign_id={self.campaign_id!r}, pool_size={self.pool_size})>"
        )


__all__ = ["DrawRequest"]
