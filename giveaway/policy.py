"""Authorization and pause gates consulted before mutating operations."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Iterable, Optional

from sqlalchemy.orm import Session, sessionmaker

from .exceptions import AuthorizationError, PausedError
from .models import Admin

if TYPE_CHECKING:
    from .config import Settings


class AccessPolicy:
    """Base policy: decides who may mutate campaigns and holds the pause switch.

    Subclasses implement :meth:`is_privileged`. The pause switch only gates
    mutating entry points; fulfillment of an already issued draw keeps working
    while paused.
    """

    def __init__(self) -> None:
        self._paused = threading.Event()

    def is_privileged(self, caller: Optional[str]) -> bool:
        raise NotImplementedError

    def pause(self) -> None:
        self._paused.set()

    def resume(self) -> None:
        self._paused.clear()

    def is_paused(self) -> bool:
        return self._paused.is_set()

    def check(self, caller: Optional[str]) -> None:
        """Raise unless ``caller`` may run a mutating operation right now.

        Raises
        ------
        AuthorizationError
            If ``caller`` is not privileged.
        PausedError
            If the policy is paused.
        """
        if not self.is_privileged(caller):
            raise AuthorizationError(caller)
        if self.is_paused():
            raise PausedError("Giveaway operations are paused")


class AllowAllPolicy(AccessPolicy):
    """Grants every caller; used for development and single-tenant setups."""

    def is_privileged(self, caller: Optional[str]) -> bool:
        return True


class StaticAccessPolicy(AccessPolicy):
    """Grants a fixed set of caller identifiers."""

    def __init__(self, allowed: Iterable[str]) -> None:
        super().__init__()
        self._allowed = frozenset(a.strip() for a in allowed if a and a.strip())

    @classmethod
    def from_settings(cls, settings: "Settings") -> "StaticAccessPolicy":
        """Build the allow list from ``GIVEAWAY_ADMINS`` (``Settings.admins``)."""
        return cls(settings.admins)

    def is_privileged(self, caller: Optional[str]) -> bool:
        return caller is not None and caller.strip() in self._allowed


class AdminAccessPolicy(AccessPolicy):
    """Grants callers registered as active rows in the ``admins`` table."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        super().__init__()
        self._session_factory = session_factory

    def is_privileged(self, caller: Optional[str]) -> bool:
        if caller is None or not caller.strip():
            return False
        with self._session_factory() as session:
            admin = Admin.get_by_identifier(session, caller)
            return admin is not None and admin.active


__all__ = [
    "AccessPolicy",
    "AdminAccessPolicy",
    "AllowAllPolicy",
    "StaticAccessPolicy",
]
