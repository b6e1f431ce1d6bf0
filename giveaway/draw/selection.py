"""Helpers for turning a provider random value into a pool index."""

from __future__ import annotations

from typing import Union

RandomValue = Union[int, str]


def normalize_random_value(value: RandomValue) -> int:
    """Coerce a provider random value into a non-negative integer.

    Parameters
    ----------
    value : int | str
        Integer, decimal string, or ``0x``-prefixed hex string as delivered by
        the randomness provider.

    Raises
    ------
    TypeError
        If ``value`` is neither an ``int`` nor a ``str`` (``bool`` is rejected).
    ValueError
        If ``value`` cannot be parsed or is negative.
    """

    if isinstance(value, bool):
        raise TypeError("random value must be an integer, not bool")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str):
        text = value.strip().lower()
        if not text:
            raise ValueError("random value must not be empty")
        parsed = int(text, 16) if text.startswith("0x") else int(text, 10)
    else:
        raise TypeError("random value must be an int or a numeric string")
    if parsed < 0:
        raise ValueError("random value must be non-negative")
    return parsed


def select_winner_index(random_value: int, pool_size: int) -> int:
    """Return ``random_value mod pool_size``.

    The modulo reduction carries a small bias whenever ``pool_size`` does not
    divide the provider's value range evenly; that is accepted.
    """

    if pool_size <= 0:
        raise ValueError("pool_size must be positive")
    if random_value < 0:
        raise ValueError("random value must be non-negative")
    return random_value % pool_size


__all__ = ["RandomValue", "normalize_random_value", "select_winner_index"]
