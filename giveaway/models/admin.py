from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Integer, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column, validates

from .base import Base


class Admin(Base):
    """Caller allowed to manage campaigns when :class:`AdminAccessPolicy` is used."""

    __tablename__ = "admins"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    identifier: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __init__(
        self,
        *,
        identifier: str,
        name: Optional[str] = None,
        active: bool = True,
        created_at: Optional[datetime] = None,
    ) -> None:
        self.identifier = identifier
        self.name = name
        self.active = active
        if created_at is not None:
            self.created_at = created_at

    @validates("identifier")
    def _normalize_identifier(self, _key: str, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Admin identifier must not be empty")
        return normalized

    @classmethod
    def get_by_identifier(cls, session: Session, identifier: str) -> Optional["Admin"]:
        """Get admin by their caller identifier."""
        return session.scalar(select(cls).where(cls.identifier == identifier.strip()))

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return f"<Admin(id={self.id}, identifier={self.identifier!r}, active={self.active})>"
