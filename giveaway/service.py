"""Thread-safe entry points tying the engine to sessions, locks and a provider."""

from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Mapping
from typing import Any, Iterable, Optional, Set

from sqlalchemy.orm import Session, sessionmaker

from .config import Settings
from .draw.engine import (
    CampaignStatus,
    DrawOutcome,
    GiveawayEngine,
    validate_campaign_id,
)
from .draw.locks import CampaignLockRegistry
from .draw.selection import RandomValue
from .events import EventBus
from .models import DrawRequest
from .policy import AccessPolicy, AllowAllPolicy
from .randomness.base import RandomnessProvider

logger = logging.getLogger(__name__)


class GiveawayService:
    """Concurrent facade over :class:`~giveaway.draw.engine.GiveawayEngine`.

    Each call runs in its own transaction while holding the campaign's lock,
    so operations on one campaign are serialized and different campaigns
    proceed in parallel.

    A provider exposing ``bind(callback)`` (such as
    :class:`~giveaway.randomness.local.LocalRandomnessProvider`) is bound to
    :meth:`fulfill` on construction. Remote providers deliver through
    :meth:`handle_callback`. Providers must not call back on the thread that
    issued the request.
    """

    callback_wait_timeout: float = 30.0
    """Seconds a callback for an unknown request waits for open draws to commit."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        provider: RandomnessProvider,
        *,
        policy: Optional[AccessPolicy] = None,
        events: Optional[EventBus] = None,
        settings: Optional[Settings] = None,
        locks: Optional[CampaignLockRegistry] = None,
    ) -> None:
        self._session_factory = session_factory
        self._provider = provider
        self.policy = policy or AllowAllPolicy()
        self.events = events or EventBus()
        self.settings = settings or Settings()
        self._locks = locks or CampaignLockRegistry()

        # Draws whose transaction has not finished yet, by ticket.
        self._draws = threading.Condition()
        self._open_draws: Set[int] = set()
        self._tickets = itertools.count()

        bind = getattr(provider, "bind", None)
        if callable(bind):
            bind(self.fulfill)

    def _engine(self, session: Session) -> GiveawayEngine:
        return GiveawayEngine(
            session, policy=self.policy, events=self.events, settings=self.settings
        )

    # -------- mutations --------
    def add_applicant(
        self, campaign_id: str, applicant: str, *, caller: Optional[str] = None
    ) -> None:
        self._precheck(campaign_id, caller)
        with self._locks.hold(campaign_id):
            with self._session_factory.begin() as session:
                self._engine(session).add_applicant(campaign_id, applicant, caller=caller)

    def batch_add_applicants(
        self,
        campaign_id: str,
        applicants: Iterable[str],
        *,
        caller: Optional[str] = None,
    ) -> int:
        """Add all ``applicants`` atomically and return how many were added."""
        self._precheck(campaign_id, caller)
        with self._locks.hold(campaign_id):
            with self._session_factory.begin() as session:
                added = self._engine(session).batch_add_applicants(
                    campaign_id, applicants, caller=caller
                )
                return len(added)

    def draw_winner(self, campaign_id: str, *, caller: Optional[str] = None) -> str:
        """Issue a draw and return the provider's request id."""
        self._precheck(campaign_id, caller)
        with self._draws:
            ticket = next(self._tickets)
            self._open_draws.add(ticket)
        try:
            with self._locks.hold(campaign_id):
                with self._session_factory.begin() as session:
                    draw = self._engine(session).draw_winner(
                        campaign_id, self._provider, caller=caller
                    )
                    return draw.request_id
        finally:
            with self._draws:
                self._open_draws.discard(ticket)
                self._draws.notify_all()

    def fulfill(self, request_id: str, random_value: RandomValue) -> Optional[DrawOutcome]:
        """Provider callback. Never raises; every rejection is a logged no-op."""
        try:
            campaign_id = self._resolve_campaign(request_id)
            if campaign_id is None:
                logger.debug("Ignoring fulfillment for unknown request %r", request_id)
                return None
            with self._locks.hold(campaign_id):
                with self._session_factory.begin() as session:
                    return self._engine(session).fulfill(request_id, random_value)
        except Exception:
            # Rolled back, so the correlation row stays for a redelivery.
            logger.exception("Fulfillment of request %r failed", request_id)
            return None

    def handle_callback(self, payload: Any) -> Optional[DrawOutcome]:
        """Fulfill from a decoded provider callback body.

        Expected shape: ``{"request_id": str, "random_value": int | str}``.
        Malformed payloads are logged and ignored.
        """
        if not isinstance(payload, Mapping):
            logger.warning("Ignoring randomness callback with non-object payload")
            return None
        request_id = payload.get("request_id")
        if not isinstance(request_id, str) or not request_id:
            logger.warning("Ignoring randomness callback without a request_id")
            return None
        if "random_value" not in payload:
            logger.warning(
                "Ignoring randomness callback for %s without a random_value", request_id
            )
            return None
        return self.fulfill(request_id, payload["random_value"])

    # -------- queries --------
    def applicant_pool(self, campaign_id: str) -> list[str]:
        with self._session_factory() as session:
            return self._engine(session).applicant_pool(campaign_id)

    def winner(self, campaign_id: str) -> Optional[str]:
        with self._session_factory() as session:
            return self._engine(session).winner(campaign_id)

    def status(self, campaign_id: str) -> CampaignStatus:
        with self._session_factory() as session:
            return self._engine(session).status(campaign_id)

    def pending_requests(self, campaign_id: str) -> list[DrawRequest]:
        with self._session_factory() as session:
            return self._engine(session).pending_requests(campaign_id)

    # -------- internals --------
    def _precheck(self, campaign_id: str, caller: Optional[str]) -> None:
        # Rejected calls must not take a lock; the engine repeats both checks.
        self.policy.check(caller)
        validate_campaign_id(campaign_id)

    def _lookup_campaign(self, request_id: str) -> Optional[str]:
        with self._session_factory() as session:
            draw = DrawRequest.get(session, request_id)
            return draw.campaign_id if draw is not None else None

    def _resolve_campaign(self, request_id: str) -> Optional[str]:
        if not isinstance(request_id, str) or not request_id:
            return None
        campaign_id = self._lookup_campaign(request_id)
        if campaign_id is not None:
            return campaign_id

        # A callback can outrun the commit of the draw that issued it; wait
        # for the draws open right now to finish, then look again.
        with self._draws:
            waiting_on = set(self._open_draws)
            if not waiting_on:
                return None
            finished = self._draws.wait_for(
                lambda: not (waiting_on & self._open_draws),
                timeout=self.callback_wait_timeout,
            )
        if not finished:
            logger.warning(
                "Timed out waiting for open draws while resolving request %r", request_id
            )
        return self._lookup_campaign(request_id)


__all__ = ["GiveawayService"]
