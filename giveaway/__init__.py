"""Giveaway campaigns with externally sourced randomness for winner selection."""

from .exceptions import (
    AuthorizationError,
    GiveawayError,
    PausedError,
    PreconditionError,
    StateError,
    ValidationError,
)

__all__ = [
    "AuthorizationError",
    "GiveawayError",
    "PausedError",
    "PreconditionError",
    "StateError",
    "ValidationError",
]
