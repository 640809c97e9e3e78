"""Runtime configuration for the Buckler retrieval engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .profile_config import (
    ACCEPT_LANGUAGE,
    BASE_URL,
    BINDINGS_PATH,
    CACHE_TTL,
    COOKIE_DOMAIN,
    COOLDOWN_SECONDS,
    DEFAULT_LOCALE,
    HTTP_TIMEOUT,
    SUPPORTED_LOCALES,
    USER_AGENT,
)


def _env_int(name: str, default: int = 0) -> int:
    try:
        raw = os.getenv(name, "")
        return int(raw) if raw.strip() else default
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float = 0.0) -> float:
    try:
        raw = os.getenv(name, "")
        return float(raw) if raw.strip() else default
    except (TypeError, ValueError):
        return default


def _env_bool(name: str, default: str = "0") -> bool:
    raw = os.getenv(name, default)
    return str(raw).strip().lower() not in {"0", "false", "no", "off", ""}


@dataclass(frozen=True, slots=True)
class ProfileConfig:
    base_url: str = BASE_URL
    locale: str = DEFAULT_LOCALE
    user_agent: str = USER_AGENT
    cookie: str = ""
    cookie_domain: str = COOKIE_DOMAIN
    http_timeout: float = HTTP_TIMEOUT
    cache_ttl: float = CACHE_TTL
    cooldown_seconds: float = COOLDOWN_SECONDS
    enable_text_output: bool = True
    enable_screenshot_output: bool = True
    strict_search_pairing: bool = False
    headless: bool = True
    bindings_path: Path = BINDINGS_PATH
    debug: bool = False

    def __post_init__(self) -> None:
        if self.locale not in SUPPORTED_LOCALES:
            raise ValueError(
                f"Unsupported locale {self.locale!r}; expected one of {', '.join(SUPPORTED_LOCALES)}"
            )
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))
        object.__setattr__(self, "cookie", (self.cookie or "").strip())

    @property
    def accept_language(self) -> str:
        return ACCEPT_LANGUAGE[self.locale]

    @property
    def has_cookie(self) -> bool:
        return bool(self.cookie)


DEFAULT_CONFIG = ProfileConfig()


def env_locale() -> str:
    return (os.getenv("SF6_LOCALE") or DEFAULT_LOCALE).strip().lower()


def load_config_from_env(env_file: Optional[Path] = None, locale: Optional[str] = None) -> ProfileConfig:
    """Build a ProfileConfig from ``SF6_*`` environment variables (and .env).

    ``locale`` replaces ``SF6_LOCALE`` when given. An unsupported locale
    raises ``ValueError``.
    """

    load_dotenv(env_file, override=False)
    return ProfileConfig(
        base_url=os.getenv("SF6_BASE_URL") or BASE_URL,
        locale=locale or env_locale(),
        user_agent=os.getenv("SF6_USER_AGENT") or USER_AGENT,
        cookie=os.getenv("SF6_COOKIE", ""),
        http_timeout=max(1.0, _env_float("SF6_HTTP_TIMEOUT", HTTP_TIMEOUT)),
        cache_ttl=max(0.0, _env_float("SF6_CACHE_TTL", CACHE_TTL)),
        cooldown_seconds=max(0.0, _env_float("SF6_COOLDOWN_SECONDS", COOLDOWN_SECONDS)),
        enable_text_output=_env_bool("SF6_ENABLE_TEXT", "1"),
        enable_screenshot_output=_env_bool("SF6_ENABLE_SCREENSHOT", "1"),
        strict_search_pairing=_env_bool("SF6_STRICT_SEARCH_PAIRING", "0"),
        headless=not _env_bool("SF6_PLAYWRIGHT_HEADED", "0"),
        bindings_path=Path(os.getenv("SF6_BINDINGS_PATH") or BINDINGS_PATH),
        debug=_env_bool("SF6_DEBUG", "0"),
    )


__all__ = ["ProfileConfig", "DEFAULT_CONFIG", "env_locale", "load_config_from_env"]
