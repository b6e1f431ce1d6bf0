"""In-process randomness provider for development and tests."""

from __future__ import annotations

import logging
import queue
import secrets
import threading
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

from .base import FulfillCallback

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingRandomness:
    request_id: str
    campaign_id: str


class LocalRandomnessProvider:
    """Provider that queues requests and delivers values through a callback.

    Requests are never fulfilled on the thread that issued them. Delivery
    happens either on demand via :meth:`deliver_pending` or from a background
    worker started with :meth:`start`.
    """

    def __init__(
        self,
        *,
        callback: Optional[FulfillCallback] = None,
        value_source: Optional[Callable[[], int]] = None,
        bits: int = 256,
    ) -> None:
        self._callback = callback
        self._value_source = value_source or (lambda: secrets.randbits(bits))
        self._queue: "queue.Queue[PendingRandomness]" = queue.Queue()
        self._stop = threading.Event()
        self._worker: Optional[threading.Thread] = None

    def bind(self, callback: FulfillCallback) -> None:
        """Register the fulfillment callback invoked for every delivery."""
        self._callback = callback

    def request_randomness(self, campaign_id: str) -> str:
        request_id = uuid.uuid4().hex
        self._queue.put(PendingRandomness(request_id=request_id, campaign_id=campaign_id))
        logger.debug("Queued randomness request %s for campaign %r", request_id, campaign_id)
        return request_id

    @property
    def pending_count(self) -> int:
        return self._queue.qsize()

    def deliver_pending(self) -> int:
        """Deliver every queued request on the calling thread.

        Returns
        -------
        int
            Number of requests delivered.
        """
        delivered = 0
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return delivered
            self._deliver(item)
            delivered += 1

    def start(self, *, poll_interval: float = 0.1) -> None:
        """Start a daemon thread that delivers requests as they are queued."""
        if self._worker is not None and self._worker.is_alive():
            return
        self._stop.clear()
        self._worker = threading.Thread(
            target=self._run,
            args=(poll_interval,),
            name="local-randomness",
            daemon=True,
        )
        self._worker.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._worker is not None:
            self._worker.join(timeout)
            self._worker = None

    def _run(self, poll_interval: float) -> None:
        while not self._stop.is_set():
            try:
                item = self._queue.get(timeout=poll_interval)
            except queue.Empty:
                continue
            try:
                self._deliver(item)
            except Exception:
                # Keep the worker alive; the request is dropped like a lost callback.
                logger.exception("Delivery of randomness request %s failed", item.request_id)

    def _deliver(self, item: PendingRandomness) -> None:
        if self._callback is None:
            raise RuntimeError("No fulfillment callback bound to LocalRandomnessProvider")
        value = self._value_source()
        logger.debug("Delivering randomness for request %s", item.request_id)
        self._callback(item.request_id, value)


__all__ = ["LocalRandomnessProvider", "PendingRandomness"]
