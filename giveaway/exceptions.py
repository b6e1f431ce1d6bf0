"""Errors raised synchronously by the giveaway entry points.

Every check behind these errors runs before any write, so a rejected call
never leaves partial state behind. The fulfillment path never raises them.
"""


class GiveawayError(Exception):
    """Base class for all giveaway errors."""


class ValidationError(GiveawayError):
    """An argument is malformed, e.g. an empty applicant."""


class StateError(GiveawayError):
    """The campaign is in a state that forbids the operation."""

    def __init__(self, campaign_id: str, message: str):
        self.campaign_id = campaign_id
        super().__init__(f"Campaign {campaign_id!r}: {message}")


class PreconditionError(GiveawayError):
    """A draw was requested for a campaign with no applicants."""

    def __init__(self, campaign_id: str):
        self.campaign_id = campaign_id
        super().__init__(f"Campaign {campaign_id!r} has no applicants to draw from")


class AuthorizationError(GiveawayError):
    """The caller is not privileged to perform the operation."""

    def __init__(self, caller: object):
        self.caller = caller
        super().__init__(f"Caller {caller!r} is not authorized")


class PausedError(GiveawayError):
    """Mutating operations are disabled by an administrator."""
