from typing import Callable, Protocol, runtime_checkable

FulfillCallback = Callable[[str, int], object]
"""Signature of the callback a provider invokes with ``(request_id, random_value)``."""


@runtime_checkable
class RandomnessProvider(Protocol):
    """Issues randomness requests; values arrive later through a callback.

    ``request_randomness`` must return promptly with an opaque, unique request
    id and must not invoke the fulfillment callback on the calling thread.
    """

    def request_randomness(self, campaign_id: str) -> str: ...
