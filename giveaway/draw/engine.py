"""Session-bound engine implementing the applicant pool and draw protocol."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Iterable, Optional

from sqlalchemy.orm import Session

from ..config import Settings
from ..events import DrawRequested, EventBus, GiveawayEvent, WinnerAnnounced
from ..exceptions import PreconditionError, StateError, ValidationError
from ..models import Applicant, Campaign, DrawRequest
from .locks import with_campaign_lock
from .selection import RandomValue, normalize_random_value, select_winner_index

if TYPE_CHECKING:
    from ..policy import AccessPolicy
    from ..randomness.base import RandomnessProvider

logger = logging.getLogger(__name__)

MAX_CAMPAIGN_ID_LENGTH = 255


class CampaignStatus(str, enum.Enum):
    """Lifecycle stage of a campaign."""

    EMPTY = "empty"
    OPEN = "open"
    PENDING = "pending"
    DECIDED = "decided"


@dataclass(frozen=True)
class DrawOutcome:
    """Value object describing a fulfillment that decided a campaign.

    Attributes
    ----------
    campaign_id : str
        Campaign that was decided.
    request_id : str
        Correlation identifier consumed by the fulfillment.
    random_value : int
        Provider value used for the selection.
    pool_size : int
        Pool length the value was reduced against.
    winner_index : int
        ``random_value mod pool_size``.
    winner : str
        Applicant stored at ``winner_index``.
    """

    campaign_id: str
    request_id: str
    random_value: int
    pool_size: int
    winner_index: int
    winner: str


class GiveawayEngine:
    """Engine that validates, persists and decides campaigns.

    The engine works inside the caller's transaction and never commits. It
    assumes the caller already serializes operations on the same campaign
    (see :class:`~giveaway.service.GiveawayService`); it additionally row-locks
    the campaign for the duration of the transaction.
    """

    def __init__(
        self,
        session: Session,
        *,
        policy: Optional["AccessPolicy"] = None,
        events: Optional[EventBus] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        """Create an engine bound to a SQLAlchemy session.

        Parameters
        ----------
        session : Session
            Active session; the caller owns the transaction.
        policy : Optional[AccessPolicy], default: None
            Authorization/pause gate consulted before every mutating entry
            point. When omitted no gate is applied.
        events : Optional[EventBus], default: None
            Bus receiving :class:`DrawRequested` and :class:`WinnerAnnounced`.
        settings : Optional[Settings], default: None
            Behaviour switches; defaults to :class:`Settings` defaults.
        """

        self._session = session
        self._policy = policy
        self._events = events
        self._settings = settings or Settings()

    # -------- pool --------
    def add_applicant(
        self, campaign_id: str, applicant: str, *, caller: Optional[str] = None
    ) -> Applicant:
        """Append ``applicant`` to the campaign's pool.

        Raises
        ------
        AuthorizationError, PausedError
            If the policy rejects ``caller``.
        ValidationError
            If ``applicant`` is empty or not a string.
        StateError
            If the campaign already has a winner.
        """
        (added,) = self.batch_add_applicants(campaign_id, [applicant], caller=caller)
        return added

    def batch_add_applicants(
        self,
        campaign_id: str,
        applicants: Iterable[str],
        *,
        caller: Optional[str] = None,
    ) -> list[Applicant]:
        """Append every item of ``applicants`` in order, or none of them.

        All items are validated and the campaign state is checked before any
        row is written, so a failure leaves the pool untouched. A bare string
        is rejected rather than split into characters.

        Returns
        -------
        list[Applicant]
            The persisted rows, in pool order. Empty for an empty batch.
        """
        self._gate(caller)
        validate_campaign_id(campaign_id)
        if isinstance(applicants, (str, bytes)):
            raise ValidationError(
                "applicants must be a collection of strings, not a string"
            )
        values = [_validate_applicant(item) for item in applicants]

        campaign = self._lock_campaign(campaign_id)
        if campaign is not None and campaign.is_decided:
            raise StateError(campaign_id, "winner already decided, pool is closed")
        if not values:
            return []

        if campaign is None:
            campaign = Campaign(campaign_id=campaign_id)
            self._session.add(campaign)

        added: list[Applicant] = []
        for value in values:
            applicant = Applicant(
                campaign_id=campaign_id,
                position=campaign.pool_size,
                value=value,
            )
            self._session.add(applicant)
            added.append(applicant)
            campaign.pool_size += 1

        self._session.flush()
        logger.debug(
            "Added %d applicant(s) to campaign %r (pool size %d)",
            len(values),
            campaign_id,
            campaign.pool_size,
        )
        return added

    # -------- draw --------
    def draw_winner(
        self,
        campaign_id: str,
        provider: "RandomnessProvider",
        *,
        caller: Optional[str] = None,
    ) -> DrawRequest:
        """Request randomness for the campaign and record the correlation.

        The call returns as soon as the provider acknowledges the request; the
        winner is decided later by :meth:`fulfill`.

        Raises
        ------
        AuthorizationError, PausedError
            If the policy rejects ``caller``.
        PreconditionError
            If the pool is empty.
        StateError
            If the campaign is decided, if a draw is already pending while
            ``reject_pending_draws`` is enabled, or if the provider hands out a
            request id that is already in use.
        """
        self._gate(caller)
        validate_campaign_id(campaign_id)

        campaign = self._lock_campaign(campaign_id)
        if campaign is not None and campaign.is_decided:
            raise StateError(campaign_id, "winner already decided")
        if campaign is None or campaign.pool_size == 0:
            raise PreconditionError(campaign_id)
        if self._settings.reject_pending_draws and campaign.pending_requests(
            self._session
        ):
            raise StateError(campaign_id, "a draw is already pending")

        request_id = provider.request_randomness(campaign_id)
        if not isinstance(request_id, str) or not request_id:
            raise RuntimeError(
                f"Unexpected request id from randomness provider: {request_id!r}"
            )
        if DrawRequest.get(self._session, request_id) is not None:
            raise StateError(
                campaign_id,
                f"randomness provider reused request id {request_id!r}",
            )

        draw = DrawRequest(
            request_id=request_id,
            campaign_id=campaign_id,
            pool_size=campaign.pool_size,
            requested_by=caller,
        )
        self._session.add(draw)
        self._session.flush()

        logger.info(
            "Draw requested for campaign %r (request %s, pool size %d)",
            campaign_id,
            request_id,
            campaign.pool_size,
        )
        self._publish(DrawRequested(campaign_id=campaign_id, request_id=request_id))
        return draw

    # -------- fulfillment --------
    def fulfill(self, request_id: str, random_value: RandomValue) -> Optional[DrawOutcome]:
        """Consume a provider callback and decide the correlated campaign.

        Every rejection is a logged no-op and ``None`` is returned, because
        the provider has no way to act on an error:

        1. unknown ``request_id``;
        2. malformed ``random_value`` (the correlation is kept so a corrected
           redelivery can still succeed);
        3. campaign already decided;
        4. empty pool.

        In cases 3 and 4 the correlation is evicted, as it is after a
        successful fulfillment.
        """
        draw = None
        if isinstance(request_id, str) and request_id:
            draw = DrawRequest.get(self._session, request_id)
        if draw is None:
            logger.debug("Ignoring fulfillment for unknown request %r", request_id)
            return None

        try:
            value = normalize_random_value(random_value)
        except (TypeError, ValueError) as exc:
            logger.warning(
                "Ignoring fulfillment for request %s with invalid random value: %s",
                request_id,
                exc,
            )
            return None

        campaign_id = draw.campaign_id
        campaign = self._lock_campaign(campaign_id)
        if campaign is None or campaign.is_decided:
            logger.info(
                "Ignoring fulfillment for request %s: campaign %r already decided",
                request_id,
                campaign_id,
            )
            self._evict(draw)
            return None

        pool_size = (
            draw.pool_size if self._settings.snapshot_pool_on_draw else campaign.pool_size
        )
        if pool_size <= 0:
            logger.warning(
                "Ignoring fulfillment for request %s: campaign %r has no applicants",
                request_id,
                campaign_id,
            )
            self._evict(draw)
            return None

        index = select_winner_index(value, pool_size)
        winner = campaign.applicant_at(self._session, index)
        if winner is None:
            logger.error(
                "Campaign %r has no applicant at position %d (pool size %d)",
                campaign_id,
                index,
                pool_size,
            )
            self._evict(draw)
            return None

        campaign.winner = winner
        campaign.winner_index = index
        campaign.winning_request_id = request_id
        campaign.random_value = format(value, "#x")
        campaign.decided_at = datetime.now(timezone.utc)
        self._evict(draw)

        logger.info(
            "Campaign %r decided by request %s: index %d of %d",
            campaign_id,
            request_id,
            index,
            pool_size,
        )
        self._publish(
            WinnerAnnounced(
                campaign_id=campaign_id,
                winner=winner,
                winner_index=index,
                request_id=request_id,
            )
        )
        return DrawOutcome(
            campaign_id=campaign_id,
            request_id=request_id,
            random_value=value,
            pool_size=pool_size,
            winner_index=index,
            winner=winner,
        )

    # -------- queries --------
    def applicant_pool(self, campaign_id: str) -> list[str]:
        campaign = Campaign.get(self._session, campaign_id)
        if campaign is None:
            return []
        return campaign.applicant_values(self._session)

    def winner(self, campaign_id: str) -> Optional[str]:
        campaign = Campaign.get(self._session, campaign_id)
        return campaign.winner if campaign is not None else None

    def status(self, campaign_id: str) -> CampaignStatus:
        campaign = Campaign.get(self._session, campaign_id)
        if campaign is None or campaign.pool_size == 0:
            return CampaignStatus.EMPTY
        if campaign.is_decided:
            return CampaignStatus.DECIDED
        if campaign.pending_requests(self._session):
            return CampaignStatus.PENDING
        return CampaignStatus.OPEN

    def pending_requests(self, campaign_id: str) -> list[DrawRequest]:
        campaign = Campaign.get(self._session, campaign_id)
        if campaign is None:
            return []
        return campaign.pending_requests(self._session)

    # -------- internals --------
    def _gate(self, caller: Optional[str]) -> None:
        if self._policy is not None:
            self._policy.check(caller)

    def _lock_campaign(self, campaign_id: str) -> Optional[Campaign]:
        return self._session.scalar(with_campaign_lock(campaign_id))

    def _evict(self, draw: DrawRequest) -> None:
        self._session.delete(draw)
        self._session.flush()

    def _publish(self, event: GiveawayEvent) -> None:
        if self._events is not None:
            self._events.publish(event)


def validate_campaign_id(campaign_id: str) -> None:
    if not isinstance(campaign_id, str) or not campaign_id:
        raise ValidationError("campaign id must be a non-empty string")
    if len(campaign_id) > MAX_CAMPAIGN_ID_LENGTH:
        raise ValidationError(
            f"campaign id must be at most {MAX_CAMPAIGN_ID_LENGTH} characters"
        )


def _validate_applicant(applicant: str) -> str:
    if not isinstance(applicant, str):
        raise ValidationError(f"applicant must be a string, got {type(applicant).__name__}")
    if not applicant:
        raise ValidationError("applicant must not be empty")
    return applicant


__all__ = [
    "CampaignStatus",
    "DrawOutcome",
    "GiveawayEngine",
    "validate_campaign_id",
]
