"""Core schema helpers for sf6rank."""

from .keys import *  # noqa: F401,F403 re-export stable keys

__all__ = [name for name in globals() if name.startswith("K_")] + [
    "cache_key",
    "cooldown_key",
    "COOLDOWN_SCOPES",
]
