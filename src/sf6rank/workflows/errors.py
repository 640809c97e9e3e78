"""Error taxonomy surfaced to callers of the retrieval engine."""

from __future__ import annotations

from typing import Optional


class ProfileError(Exception):
    """Base class for classified retrieval failures."""

    code = "profile_error"

    def __init__(self, message: str, *, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.url = url


class AuthRequired(ProfileError):
    """Upstream served a login wall; the session cookie is missing or stale."""

    code = "auth_required"


class AccessDenied(AuthRequired):
    """Rendered page carried denial markers (403 / blocked / ERROR)."""

    code = "access_denied"


class ExtractionFailed(ProfileError):
    """Every field fell back to its unknown sentinel."""

    code = "extraction_failed"


class TransportError(ProfileError):
    code = "transport_error"

    def __init__(self, message: str, *, url: Optional[str] = None, status: Optional[int] = None) -> None:
        super().__init__(message, url=url)
        self.status = status


class TransportTimeout(TransportError):
    code = "transport_timeout"


class CapabilityUnavailable(ProfileError):
    """Browser automation (Playwright) is not installed or could not start."""

    code = "capability_unavailable"


class OutputsDisabled(ProfileError):
    """Both the text and the screenshot outputs are switched off."""

    code = "outputs_disabled"


class InvalidPlayerId(ProfileError):
    code = "invalid_player_id"

    def __init__(self, message: str, *, reason: str = "format") -> None:
        super().__init__(message)
        self.reason = reason


class UnboundCaller(InvalidPlayerId):
    """No explicit id was given and the caller has no bound player."""

    code = "unbound"

    def __init__(self, message: str) -> None:
        super().__init__(message, reason="unbound")


__all__ = [
    "ProfileError",
    "AuthRequired",
    "AccessDenied",
    "ExtractionFailed",
    "TransportError",
    "TransportTimeout",
    "CapabilityUnavailable",
    "OutputsDisabled",
    "InvalidPlayerId",
    "UnboundCaller",
]
