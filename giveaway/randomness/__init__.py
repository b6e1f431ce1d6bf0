"""Randomness providers that issue request ids and deliver values later."""

from .base import FulfillCallback, RandomnessProvider
from .local import LocalRandomnessProvider

__all__ = [
    "FulfillCallback",
    "LocalRandomnessProvider",
    "RandomnessProvider",
]
