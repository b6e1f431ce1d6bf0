"""Applicant pools, draw requests and fulfillment."""

from .engine import CampaignStatus, DrawOutcome, GiveawayEngine
from .locks import CampaignLockRegistry, with_campaign_lock
from .selection import normalize_random_value, select_winner_index

__all__ = [
    "CampaignLockRegistry",
    "CampaignStatus",
    "DrawOutcome",
    "GiveawayEngine",
    "normalize_random_value",
    "select_winner_index",
    "with_campaign_lock",
]
