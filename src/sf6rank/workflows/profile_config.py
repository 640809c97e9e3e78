"""Buckler defaults (endpoints, headers, vocabulary, selectors, timeouts).

Centralizes static defaults so the fetch, extract and browser modules have no
embedded magic strings. ProfileConfig (settings.py) is built from these and
callers can override any of them.
"""

from __future__ import annotations

from pathlib import Path

# Endpoints
BASE_URL = "https://www.streetfighter.com/6/buckler"
COOKIE_DOMAIN = ".streetfighter.com"

SUPPORTED_LOCALES = ("zh-hans", "zh-hant", "en-us", "ja-jp", "ko-kr")
DEFAULT_LOCALE = "zh-hans"

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

ACCEPT_LANGUAGE = {
    "zh-hans": "zh-CN,zh;q=0.9,en;q=0.8",
    "zh-hant": "zh-TW,zh;q=0.9,en;q=0.8",
    "en-us": "en-US,en;q=0.9",
    "ja-jp": "ja-JP,ja;q=0.9,en;q=0.8",
    "ko-kr": "ko-KR,ko;q=0.9,en;q=0.8",
}

# Headers
HDR_ACCEPT = "Accept"
HDR_ACCEPT_LANGUAGE = "Accept-Language"
HDR_ACCEPT_ENCODING = "Accept-Encoding"
HDR_USER_AGENT = "User-Agent"
HDR_REFERER = "Referer"
HDR_COOKIE = "Cookie"

ACCEPT_HTML = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
ACCEPT_BROWSER = "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8"

# Timeouts / limits (seconds unless noted)
HTTP_TIMEOUT = 15.0
CACHE_TTL = 600.0
COOLDOWN_SECONDS = 5.0
NAV_TIMEOUT_SHORT_MS = 15_000
NAV_TIMEOUT_LONG_MS = 30_000
PROFILE_SETTLE_MS = 3_000
VIEWPORT = {"width": 1920, "height": 1080}

# Paths (project-relative)
_ROOT = Path.cwd()
BINDINGS_PATH = _ROOT / "run" / "bindings.json"

# Screenshot selector chains, tried in order
PROFILE_SELECTORS = (
    ".overview_inner__cN9HT",
    ".overview_bg__13XYX",
    ".character_character_status__5EtcB",
    'article[class*="character_status"]',
    'article[class*="character"]',
    "main",
    "body",
)
WINRATE_SELECTORS = ('[class*="winning_rate_winning_rate"]',)
BATTLELOG_SELECTORS = ('[class*="battlelog_inner"]',)
SEARCH_SELECTORS = (
    ".list_inner__hpkhV",
    '[class*="list_inner"]',
    ".fighterslist",
    "main",
    "body",
)

# Rendered-page text that means the request was refused
DENIAL_MARKERS = ("403", "ERROR", "blocked")

# Extraction vocabulary (zh-hans page copy)
UNKNOWN_CHARACTER = "未知"
UNKNOWN_RANK = "未知段位"
NO_TITLE = "无称号"

UI_CHROME_WORDS = frozenset(
    word.lower()
    for word in (
        "设置", "账号", "简介", "格斗", "排位", "退出", "登录", "资料",
        "CFN", "CAPCOM", "STREET", "FIGHTER", "UTC", "电竞", "支持",
        "包括", "服务", "独有", "ZH-HANS",
    )
)
NAME_MIN_LEN = 2
NAME_MAX_LEN = 20

SEARCH_CHUNK_CHARS = 3500
