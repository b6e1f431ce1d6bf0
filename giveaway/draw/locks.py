"""Per-campaign mutual exclusion.

Two layers are used: an in-process lock per campaign id, and a row-level
``SELECT ... FOR UPDATE`` on the campaign row so that several processes
sharing one PostgreSQL database are serialized as well. SQLite ignores the
row lock, which is fine for single-process deployments.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from sqlalchemy import Select, select

from ..models import Campaign


def with_campaign_lock(campaign_id: str) -> Select:
    """Return a statement that loads and row-locks a campaign.

    Usage::

        campaign = session.scalar(with_campaign_lock(campaign_id))

    Attributes of an already loaded instance are refreshed so checks run
    against the locked row. Must be executed inside a transaction.
    """
    return (
        select(Campaign)
        .where(Campaign.campaign_id == campaign_id)
        .with_for_update(nowait=False)
        .execution_options(populate_existing=True)
    )


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class CampaignLockRegistry:
    """``threading.Lock`` per campaign id, kept only while someone needs it.

    Operations on different campaigns never contend; operations on the same
    campaign are serialized. An entry is dropped as soon as no thread holds or
    waits for it, so the map stays bounded by the number of in-flight calls.
    Locks are not reentrant.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: Dict[str, _Entry] = {}

    @contextmanager
    def hold(self, campaign_id: str) -> Iterator[None]:
        with self._guard:
            entry = self._entries.get(campaign_id)
            if entry is None:
                entry = self._entries[campaign_id] = _Entry()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._entries[campaign_id]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)


__all__ = ["CampaignLockRegistry", "with_campaign_lock"]
