"""Immutable records produced by the extractor and cached by the service."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .errors import ProfileError


@dataclass(frozen=True)
class RankRecord:
    player_id: str
    character: str
    rank_name: str
    rank_points: int
    fighting_points: int
    title: str
    url: str
    player_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class WinRateRecord:
    player_id: str
    total_wins: int
    total_battles: int
    win_rate: float
    url: str
    player_name: Optional[str] = None

    def __post_init__(self) -> None:
        if self.total_wins > self.total_battles:
            raise ValueError(
                f"total_wins ({self.total_wins}) exceeds total_battles ({self.total_battles})"
            )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SearchResult:
    player_id: str
    player_name: str
    url: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class QueryOutcome:
    """Text and screenshot results of one query, with per-path failures."""

    record: Any = None
    screenshot: Optional[bytes] = field(default=None, repr=False)
    errors: List[Tuple[str, ProfileError]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.record is not None or self.screenshot is not None

    def to_dict(self) -> Dict[str, Any]:
        record = self.record
        if isinstance(record, list):
            payload_record: Any = [r.to_dict() for r in record]
        elif record is not None:
            payload_record = record.to_dict()
        else:
            payload_record = None
        return {
            "record": payload_record,
            "screenshot_bytes": len(self.screenshot) if self.screenshot else 0,
            "errors": [
                {"path": path, "code": err.code, "message": err.message}
                for path, err in self.errors
            ],
        }


__all__ = ["RankRecord", "WinRateRecord", "SearchResult", "QueryOutcome"]
