from typing import TYPE_CHECKING, Iterable, Optional

from sqlalchemy.orm import Session

from .config import Settings
from .draw.engine import CampaignStatus, DrawOutcome, GiveawayEngine
from .draw.selection import RandomValue
from .events import EventBus
from .models import Applicant, DrawRequest

if TYPE_CHECKING:
    from .policy import AccessPolicy
    from .randomness.base import RandomnessProvider


def add_applicant(
    session: Session,
    campaign_id: str,
    applicant: str,
    *,
    caller: Optional[str] = None,
    policy: Optional["AccessPolicy"] = None,
) -> Applicant:
    """Append one applicant to ``campaign_id``'s pool.

    The campaign row is created on first use. Duplicates are allowed.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session; the caller commits.
    campaign_id : str
        Caller-chosen campaign key.
    applicant : str
        Non-empty applicant identifier.
    caller : Optional[str]
        Identity checked by ``policy``.
    policy : Optional[AccessPolicy]
        Authorization/pause gate. Omit to skip the gate.

    Returns
    -------
    Applicant
        The persisted pool entry.

    Raises
    ------
    ValidationError
        If ``applicant`` is empty.
    StateError
        If the campaign already has a winner.
    AuthorizationError, PausedError
        If ``policy`` rejects the call.
    """

    engine = GiveawayEngine(session, policy=policy)
    return engine.add_applicant(campaign_id, applicant, caller=caller)


def batch_add_applicants(
    session: Session,
    campaign_id: str,
    applicants: Iterable[str],
    *,
    caller: Optional[str] = None,
    policy: Optional["AccessPolicy"] = None,
) -> list[Applicant]:
    """Append ``applicants`` in order; an invalid item rejects the whole batch."""

    engine = GiveawayEngine(session, policy=policy)
    return engine.batch_add_applicants(campaign_id, applicants, caller=caller)


def draw_winner(
    session: Session,
    campaign_id: str,
    provider: "RandomnessProvider",
    *,
    caller: Optional[str] = None,
    policy: Optional["AccessPolicy"] = None,
    events: Optional[EventBus] = None,
    settings: Optional[Settings] = None,
) -> DrawRequest:
    """Issue a randomness request for ``campaign_id`` and store the correlation.

    This only registers the request; the winner is decided when the provider
    later calls back into :func:`fulfill_randomness`.

    Raises
    ------
    PreconditionError
        If the pool is empty.
    StateError
        If the campaign is already decided.
    AuthorizationError, PausedError
        If ``policy`` rejects the call.
    """

    engine = GiveawayEngine(session, policy=policy, events=events, settings=settings)
    return engine.draw_winner(campaign_id, provider, caller=caller)


def fulfill_randomness(
    session: Session,
    request_id: str,
    random_value: RandomValue,
    *,
    events: Optional[EventBus] = None,
    settings: Optional[Settings] = None,
) -> Optional[DrawOutcome]:
    """Decide the campaign correlated with ``request_id``.

    Unknown ids, already decided campaigns, empty pools and malformed values
    are silent no-ops that return ``None``.
    """

    engine = GiveawayEngine(session, events=events, settings=settings)
    return engine.fulfill(request_id, random_value)


def get_applicant_pool(session: Session, campaign_id: str) -> list[str]:
    """Return the applicant pool in insertion order (empty for unknown ids)."""

    return GiveawayEngine(session).applicant_pool(campaign_id)


def get_winner(session: Session, campaign_id: str) -> Optional[str]:
    """Return the winner, or ``None`` while the campaign is undecided."""

    return GiveawayEngine(session).winner(campaign_id)


def get_campaign_status(session: Session, campaign_id: str) -> CampaignStatus:
    return GiveawayEngine(session).status(campaign_id)


def list_pending_requests(session: Session, campaign_id: str) -> list[DrawRequest]:
    return GiveawayEngine(session).pending_requests(campaign_id)
