"""High-level exports for the sf6rank workflows."""

from .bindings import JsonBindingStore, MemoryBindingStore, resolve_player_id, validate_player_id
from .browser import BrowserSessionController, CaptureSpec, PlaywrightPageProvider
from .errors import (
    AccessDenied,
    AuthRequired,
    CapabilityUnavailable,
    ExtractionFailed,
    InvalidPlayerId,
    OutputsDisabled,
    ProfileError,
    TransportError,
    TransportTimeout,
    UnboundCaller,
)
from .models import QueryOutcome, RankRecord, SearchResult, WinRateRecord
from .service import ProfileService
from .settings import DEFAULT_CONFIG, ProfileConfig, load_config_from_env
from .web_fetch import ProfileFetcher

__all__ = [
    "DEFAULT_CONFIG",
    "ProfileConfig",
    "load_config_from_env",
    "ProfileService",
    "ProfileFetcher",
    "BrowserSessionController",
    "CaptureSpec",
    "PlaywrightPageProvider",
    "JsonBindingStore",
    "MemoryBindingStore",
    "resolve_player_id",
    "validate_player_id",
    "QueryOutcome",
    "RankRecord",
    "SearchResult",
    "WinRateRecord",
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
