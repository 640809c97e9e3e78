"""Upstream URL builders for Buckler profile, play, battle log and search pages."""

from __future__ import annotations

from urllib.parse import quote, urlparse

from .settings import ProfileConfig


def _locale_root(config: ProfileConfig) -> str:
    return f"{config.base_url}/{config.locale}"


def profile_url(config: ProfileConfig, player_id: str) -> str:
    return f"{_locale_root(config)}/profile/{player_id}"


def play_url(config: ProfileConfig, player_id: str) -> str:
    return f"{profile_url(config, player_id)}/play"


def battlelog_url(config: ProfileConfig, player_id: str) -> str:
    return f"{profile_url(config, player_id)}/battlelog"


def search_url(config: ProfileConfig, player_name: str) -> str:
    encoded = quote(player_name, safe="")
    return f"{_locale_root(config)}/fighterslist/search/result?fighter_id={encoded}&page=1"


def referer_url(config: ProfileConfig) -> str:
    return f"{_locale_root(config)}/"


def site_origin(config: ProfileConfig) -> str:
    """Scheme and host of the base URL; search links on the page are root-relative."""

    parsed = urlparse(config.base_url)
    return f"{parsed.scheme}://{parsed.netloc}"


__all__ = [
    "profile_url",
    "play_url",
    "battlelog_url",
    "search_url",
    "referer_url",
    "site_origin",
]
