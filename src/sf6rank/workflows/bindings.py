"""Caller → player-id bindings and player id validation."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Dict, Optional, Protocol

from .errors import InvalidPlayerId, UnboundCaller

logger = logging.getLogger(__name__)

_PLAYER_ID_RE = re.compile(r"[0-9]{5,}")


class BindingStore(Protocol):
    def lookup(self, caller_key: str) -> Optional[str]:
        ...

    def upsert(self, caller_key: str, player_id: str) -> bool:
        ...

    def delete(self, caller_key: str) -> bool:
        ...


class MemoryBindingStore:
    def __init__(self) -> None:
        self._bindings: Dict[str, str] = {}

    def lookup(self, caller_key: str) -> Optional[str]:
        return self._bindings.get(caller_key)

    def upsert(self, caller_key: str, player_id: str) -> bool:
        self._bindings[caller_key] = player_id
        return True

    def delete(self, caller_key: str) -> bool:
        return self._bindings.pop(caller_key, None) is not None


class JsonBindingStore:
    """Bindings persisted as one JSON object ``{caller_key: player_id}``.

    The file is re-read on every call so concurrent CLI invocations see each
    other's writes; a corrupt file is treated as empty.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("bindings file %s is not valid JSON; ignoring it", self.path)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _save(self, bindings: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(bindings, ensure_ascii=False, indent=2), encoding="utf-8")

    def lookup(self, caller_key: str) -> Optional[str]:
        return self._load().get(caller_key)

    def upsert(self, caller_key: str, player_id: str) -> bool:
        bindings = self._load()
        bindings[caller_key] = player_id
        self._save(bindings)
        return True

    def delete(self, caller_key: str) -> bool:
        bindings = self._load()
        if bindings.pop(caller_key, None) is None:
            return False
        self._save(bindings)
        return True


def validate_player_id(raw: Optional[str]) -> str:
    player_id = (raw or "").strip()
    if not _PLAYER_ID_RE.fullmatch(player_id):
        raise InvalidPlayerId(f"无效的玩家ID：{player_id or '(空)'}，应为至少5位数字")
    return player_id


def resolve_player_id(explicit: Optional[str], caller_key: str, store: BindingStore) -> str:
    """Explicit id wins; otherwise the caller's bound id."""

    if explicit is not None and explicit.strip():
        return validate_player_id(explicit)
    bound = store.lookup(caller_key)
    if not bound:
        raise UnboundCaller("未绑定玩家ID，请先使用 bind 命令绑定，或直接提供玩家ID")
    return validate_player_id(bound)


__all__ = [
    "BindingStore",
    "MemoryBindingStore",
    "JsonBindingStore",
    "validate_player_id",
    "resolve_player_id",
]
