"""Login-wall detector for Buckler responses.

Navigation chrome on authenticated pages also says "login", so a single
vocabulary hit is not enough: a wall needs both login vocabulary and an
interactive login affordance, and any real profile content overrides both.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List

VERSION = "1.0.0"

CONTENT_MARKERS = [
    r"character_character_status",
    r"段位积分",
    r"league.?point",
    r"rank",
    r"profile",
]

LOGIN_VOCABULARY = [
    r"login",
    r"signin",
    r"sign in",
    r"登录",
    r"請登入",
    r"サインイン",
]

LOGIN_AFFORDANCES = [
    r"type=[\"']password[\"']",
    r"login.?form",
    r"signin.?form",
    r"oauth",
    r"auth.?button",
]

_RE_CONTENT = [re.compile(p) for p in CONTENT_MARKERS]
_RE_VOCAB = [re.compile(p) for p in LOGIN_VOCABULARY]
_RE_AFFORDANCE = [re.compile(p) for p in LOGIN_AFFORDANCES]


def _unique_hits(patterns: List[re.Pattern], text: str) -> List[str]:
    return sorted({pat.pattern for pat in patterns if pat.search(text)})


def detect_login_wall(html: str) -> Dict[str, Any]:
    """Return the evidence behind the login-wall verdict for a fetched page."""

    text = (html or "").lower()
    detection: Dict[str, Any] = {
        "version": VERSION,
        "verdict": "content",
        "indicators": {},
    }

    content_hits = _unique_hits(_RE_CONTENT, text)
    if content_hits:
        detection["indicators"]["content_markers"] = content_hits
        return detection

    vocab_hits = _unique_hits(_RE_VOCAB, text)
    affordance_hits = _unique_hits(_RE_AFFORDANCE, text)
    if vocab_hits:
        detection["indicators"]["login_vocabulary"] = vocab_hits
    if affordance_hits:
        detection["indicators"]["login_affordances"] = affordance_hits
    if vocab_hits and affordance_hits:
        detection["verdict"] = "login_wall"
    return detection


def is_login_wall(html: str) -> bool:
    return detect_login_wall(html)["verdict"] == "login_wall"


__all__ = ["detect_login_wall", "is_login_wall", "VERSION"]
