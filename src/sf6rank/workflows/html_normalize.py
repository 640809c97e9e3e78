"""HTML normalization shared by the gateway, the login-wall detector and the extractor.

Buckler pages are mostly UTF-8 but error pages and CDN interstitials are not
always labelled, so bytes are decoded from the declared charset when there is
one and detected otherwise. Text heuristics run on ftfy-repaired text.
"""

from __future__ import annotations

import re
from typing import List, Mapping, Optional

import ftfy
from bs4 import BeautifulSoup
from charset_normalizer import from_bytes

__all__ = [
    "declared_charset",
    "decode_bytes_auto",
    "clean_text",
    "make_soup",
    "visible_text",
    "text_tokens",
]

_CHARSET_RE = re.compile(r"charset=[\"']?([\w.:-]+)", re.I)

# NUL, VT, FF and zero-width characters; they split tokens without showing.
_INVISIBLES = dict.fromkeys([0x00, 0x0B, 0x0C, 0x200B, 0x200C, 0x200D, 0x2060, 0xFEFF])


def declared_charset(headers: Optional[Mapping[str, str]]) -> Optional[str]:
    for name, value in (headers or {}).items():
        if name.lower() != "content-type":
            continue
        match = _CHARSET_RE.search(value or "")
        return match.group(1).lower() if match else None
    return None


def decode_bytes_auto(body: bytes, headers: Optional[Mapping[str, str]] = None) -> str:
    charset = declared_charset(headers)
    if charset:
        try:
            return body.decode(charset, errors="replace")
        except LookupError:
            pass  # unknown label; fall through to detection
    best = from_bytes(body).best()
    if best is None:
        return body.decode("utf-8", errors="replace")
    return str(best)


def clean_text(text: str) -> str:
    """Repair mojibake and drop invisible characters."""

    if not text:
        return ""
    return ftfy.fix_text(text, normalization="NFC").translate(_INVISIBLES)


def make_soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "lxml")


def visible_text(html: str) -> str:
    """Whitespace-collapsed page text with scripts and styles removed."""

    soup = make_soup(html)
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    text = soup.get_text(" ", strip=True)
    return re.sub(r"\s+", " ", clean_text(text)).strip()


def text_tokens(html: str) -> List[str]:
    return visible_text(html).split()
