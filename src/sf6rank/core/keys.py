"""Shared cache and cooldown keys to avoid magic strings across sf6rank modules."""

from __future__ import annotations

from typing import Mapping, Optional

# Cache partitions (one TTLCache per kind)
K_RANK = "rank"
K_WINRATE = "winrate"
K_SEARCH = "search"
K_SCREENSHOT = "screenshot"
K_WINRATE_SCREENSHOT = "winrate_screenshot"
K_BATTLELOG_SCREENSHOT = "battlelog_screenshot"
K_SEARCH_SCREENSHOT = "search_screenshot"

K_CACHE_KINDS = (
    K_RANK,
    K_WINRATE,
    K_SEARCH,
    K_SCREENSHOT,
    K_WINRATE_SCREENSHOT,
    K_BATTLELOG_SCREENSHOT,
    K_SEARCH_SCREENSHOT,
)

# Cooldown command kinds
K_CMD_RANK = "rank"
K_CMD_WINRATE = "winrate"
K_CMD_BATTLELOG = "battlelog"
K_CMD_SEARCH = "search"

# Scope values for the cooldown policy
K_SCOPE_CALLER = "caller"
K_SCOPE_COMMAND = "command"

COOLDOWN_SCOPES: Mapping[str, str] = {
    K_CMD_RANK: K_SCOPE_CALLER,
    K_CMD_WINRATE: K_SCOPE_COMMAND,
    K_CMD_BATTLELOG: K_SCOPE_COMMAND,
    K_CMD_SEARCH: K_SCOPE_COMMAND,
}


def cache_key(kind: str, ident: str) -> str:
    if kind not in K_CACHE_KINDS:
        raise ValueError(f"Unknown cache kind: {kind}")
    return f"{kind}:{ident}"


def cooldown_key(
    kind: str,
    user_id: Optional[str],
    target: Optional[str] = None,
    channel_id: Optional[str] = None,
    scopes: Mapping[str, str] = COOLDOWN_SCOPES,
) -> str:
    """Build the cooldown key for a command invocation.

    ``caller`` scope gates every invocation from the same channel (or user
    when no channel is known). ``command`` scope gates per command kind,
    user and target.
    """

    user = user_id or "anon"
    scope = scopes.get(kind, K_SCOPE_COMMAND)
    if scope == K_SCOPE_CALLER:
        return f"c:{channel_id}" if channel_id else f"u:{user}"
    return f"{kind}:{user}:{target or ''}"
