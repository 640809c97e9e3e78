"""Field extraction for Buckler profile, play and search pages.

Every field has an ordered tuple of strategies ``(html) -> Optional[value]``.
The first strategy that yields a plausible value wins; otherwise the field
takes its sentinel. Class names carry hashed suffixes (``status_name__x1Y2``)
so every pattern matches on the stable prefix only.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar
from urllib.parse import urljoin

from .html_normalize import make_soup, text_tokens, visible_text
from .models import RankRecord, SearchResult, WinRateRecord
from .profile_config import (
    NAME_MAX_LEN,
    NAME_MIN_LEN,
    NO_TITLE,
    UI_CHROME_WORDS,
    UNKNOWN_CHARACTER,
    UNKNOWN_RANK,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
Strategy = Callable[[str], Optional[T]]
WinTriple = Tuple[int, int, float]


def _first_match(strategies: Sequence[Strategy], html: str, field: str) -> Optional[T]:
    for strategy in strategies:
        value = strategy(html)
        if value is not None:
            logger.debug("%s extracted via %s: %r", field, strategy.__name__, value)
            return value
    logger.debug("%s not found by any strategy", field)
    return None


def parse_number(raw: Optional[str]) -> Optional[int]:
    """Parse '12,345' or '12,345积分' into 12345; None when no digits."""

    clean = re.sub(r"[^\d]", "", raw or "")
    if not clean:
        return None
    return int(clean)


def parse_rate(raw: Optional[str]) -> Optional[float]:
    try:
        return float((raw or "").strip())
    except ValueError:
        return None


def is_ui_chrome(candidate: str) -> bool:
    return candidate.strip().lower() in UI_CHROME_WORDS


# --- player name -----------------------------------------------------------

_RE_STATUS_NAME = re.compile(r'<span class="status_name__[^"]*">([^<]+)</span>')
_RE_NAME_CLASS = re.compile(r'<span class="[^"]*name[^"]*">([^<]+)</span>')


def name_from_status_span(html: str) -> Optional[str]:
    match = _RE_STATUS_NAME.search(html)
    if not match:
        return None
    return match.group(1).strip() or None


def name_from_name_class(html: str) -> Optional[str]:
    # Only the first name-like span is considered; later ones are usually chrome.
    match = _RE_NAME_CLASS.search(html)
    if not match:
        return None
    candidate = match.group(1).strip()
    if not candidate or is_ui_chrome(candidate):
        return None
    return candidate


def name_from_profile_text(html: str) -> Optional[str]:
    """The profile header reads '简介 <name> 设置' once tags are stripped."""

    tokens = text_tokens(html)
    for i in range(len(tokens) - 2):
        if tokens[i] != "简介" or tokens[i + 2] != "设置":
            continue
        candidate = tokens[i + 1]
        if NAME_MIN_LEN <= len(candidate) <= NAME_MAX_LEN and not is_ui_chrome(candidate):
            return candidate
    return None


NAME_STRATEGIES: Tuple[Strategy[str], ...] = (
    name_from_status_span,
    name_from_name_class,
    name_from_profile_text,
)


def extract_player_name(html: str) -> Optional[str]:
    return _first_match(NAME_STRATEGIES, html, "player_name")


# --- character -------------------------------------------------------------

_RE_CHARACTER = re.compile(r'<p class="character_name__\w+"[^>]*>所用角色<span>([^<]+)</span></p>')


def character_from_name_paragraph(html: str) -> Optional[str]:
    match = _RE_CHARACTER.search(html)
    return match.group(1).strip() or None if match else None


def character_from_dom(html: str) -> Optional[str]:
    node = make_soup(html).select_one('p[class*="character_name__"] span')
    if node is None:
        return None
    return node.get_text(strip=True) or None


CHARACTER_STRATEGIES: Tuple[Strategy[str], ...] = (
    character_from_name_paragraph,
    character_from_dom,
)


# --- rank points -----------------------------------------------------------

_RE_RANK_POINTS = re.compile(r'<span class="character_point__\w+"[^>]*>([0-9,]+)积分</span>')
_RE_RANK_POINTS_TEXT = re.compile(r"(\d[\d,]*)\s*积分")


def rank_points_from_point_span(html: str) -> Optional[int]:
    match = _RE_RANK_POINTS.search(html)
    return parse_number(match.group(1)) if match else None


def rank_points_from_text(html: str) -> Optional[int]:
    match = _RE_RANK_POINTS_TEXT.search(visible_text(html))
    return parse_number(match.group(1)) if match else None


RANK_POINT_STRATEGIES: Tuple[Strategy[int], ...] = (
    rank_points_from_point_span,
    rank_points_from_text,
)


# --- fighting points -------------------------------------------------------

_RE_FIGHTING_POINTS = re.compile(
    r'<dt><span>格斗点</span></dt><dd class="character_point__\w+"[^>]*>([0-9,]+)</dd>'
)


def fighting_points_from_definition(html: str) -> Optional[int]:
    match = _RE_FIGHTING_POINTS.search(html)
    return parse_number(match.group(1)) if match else None


def fighting_points_from_dom(html: str) -> Optional[int]:
    for term in make_soup(html).find_all("dt"):
        if term.get_text(strip=True) != "格斗点":
            continue
        value = term.find_next_sibling("dd")
        if value is not None:
            return parse_number(value.get_text(strip=True))
    return None


FIGHTING_POINT_STRATEGIES: Tuple[Strategy[int], ...] = (
    fighting_points_from_definition,
    fighting_points_from_dom,
)


# --- rank tier -------------------------------------------------------------

_RANK_ICON = r"/rank/rank\d+_s\.png"
_RE_RANK_IMG = re.compile(r'<img alt="([^"]+)"[^>]*src="[^"]*' + _RANK_ICON + '"')


def rank_name_from_icon_alt(html: str) -> Optional[str]:
    match = _RE_RANK_IMG.search(html)
    return match.group(1).strip() or None if match else None


def rank_name_from_dom(html: str) -> Optional[str]:
    img = make_soup(html).find("img", src=re.compile(_RANK_ICON))
    if img is None:
        return None
    return (img.get("alt") or "").strip() or None


RANK_NAME_STRATEGIES: Tuple[Strategy[str], ...] = (
    rank_name_from_icon_alt,
    rank_name_from_dom,
)


# --- title -----------------------------------------------------------------

_RE_TITLE = re.compile(r'<span class="character_text__\w+"[^>]*>([^<]+)</span>')


def title_from_text_span(html: str) -> Optional[str]:
    match = _RE_TITLE.search(html)
    return match.group(1).strip() or None if match else None


def title_from_dom(html: str) -> Optional[str]:
    node = make_soup(html).select_one('span[class*="character_text__"]')
    if node is None:
        return None
    return node.get_text(strip=True) or None


TITLE_STRATEGIES: Tuple[Strategy[str], ...] = (
    title_from_text_span,
    title_from_dom,
)


# --- win rate --------------------------------------------------------------

# Wins and battles may be split by React comment nodes: 37胜<!-- -->/<!-- -->对战：54
_COMMENTS = r"(?:<!--[^>]*-->)*"
_RE_WINRATE_BLOCK = re.compile(
    r'<div class="winning_rate_inner__[^"]*">[\s\S]*?<li>[\s\S]*?'
    r'<p class="winning_rate_name__[^"]*">全部</p>[\s\S]*?'
    r'<p class="winning_rate_rate__[^"]*">(\d+)胜' + _COMMENTS + r"/?" + _COMMENTS + r"对战：(\d+)</p>"
    r"[\s\S]*?<span>([0-9.]+)</span>%"
)
_RE_WINS_LOOSE = re.compile(r"(\d+)胜" + _COMMENTS + r"/?" + _COMMENTS + r"对战：(\d+)")
_RE_RATE_LOOSE = re.compile(r"<span>([0-9.]+)</span>%")
_RE_WINS_TEXT = re.compile(r"(\d[\d,]*)\s*胜\s*/?\s*对战[:：]\s*(\d[\d,]*)")
_RE_RATE_TEXT = re.compile(r"(\d+(?:\.\d+)?)\s*%")


def _plausible_win_triple(wins: Optional[int], battles: Optional[int], rate: Optional[float]) -> Optional[WinTriple]:
    if wins is None or battles is None or rate is None:
        return None
    if wins > battles or not 0.0 <= rate <= 100.0:
        return None
    return wins, battles, rate


def win_rate_from_overall_block(html: str) -> Optional[WinTriple]:
    match = _RE_WINRATE_BLOCK.search(html)
    if not match:
        return None
    return _plausible_win_triple(int(match.group(1)), int(match.group(2)), parse_rate(match.group(3)))


def win_rate_from_loose_markup(html: str) -> Optional[WinTriple]:
    wins = _RE_WINS_LOOSE.search(html)
    rate = _RE_RATE_LOOSE.search(html)
    if not wins or not rate:
        return None
    return _plausible_win_triple(int(wins.group(1)), int(wins.group(2)), parse_rate(rate.group(1)))


def win_rate_from_text(html: str) -> Optional[WinTriple]:
    text = visible_text(html)
    wins = _RE_WINS_TEXT.search(text)
    if not wins:
        return None
    rate = _RE_RATE_TEXT.search(text, wins.end())
    if not rate:
        return None
    return _plausible_win_triple(parse_number(wins.group(1)), parse_number(wins.group(2)), parse_rate(rate.group(1)))


WIN_RATE_STRATEGIES: Tuple[Strategy[WinTriple], ...] = (
    win_rate_from_overall_block,
    win_rate_from_loose_markup,
    win_rate_from_text,
)


# --- records ---------------------------------------------------------------


def parse_rank_record(html: str, player_id: str, url: str) -> RankRecord:
    rank_points = _first_match(RANK_POINT_STRATEGIES, html, "rank_points")
    fighting_points = _first_match(FIGHTING_POINT_STRATEGIES, html, "fighting_points")
    return RankRecord(
        player_id=player_id,
        player_name=extract_player_name(html),
        character=_first_match(CHARACTER_STRATEGIES, html, "character") or UNKNOWN_CHARACTER,
        rank_name=_first_match(RANK_NAME_STRATEGIES, html, "rank_name") or UNKNOWN_RANK,
        rank_points=rank_points if rank_points is not None else 0,
        fighting_points=fighting_points if fighting_points is not None else 0,
        title=_first_match(TITLE_STRATEGIES, html, "title") or NO_TITLE,
        url=url,
    )


def parse_win_rate_record(html: str, player_id: str, url: str) -> WinRateRecord:
    # The play page shares the profile header, so only the status span is trusted.
    player_name = name_from_status_span(html)
    triple = _first_match(WIN_RATE_STRATEGIES, html, "win_rate")
    wins, battles, rate = triple if triple is not None else (0, 0, 0.0)
    return WinRateRecord(
        player_id=player_id,
        player_name=player_name,
        total_wins=wins,
        total_battles=battles,
        win_rate=rate,
        url=url,
    )


def rank_extraction_failed(record: RankRecord) -> bool:
    return record.character == UNKNOWN_CHARACTER and record.rank_points == 0


def win_rate_extraction_failed(record: WinRateRecord) -> bool:
    return record.total_battles == 0 and record.win_rate == 0


# --- search ----------------------------------------------------------------

_RE_FIGHTER_LIST = re.compile(r'<ul class="list_fighter_list__[^"]*"[^>]*>([\s\S]*?)</ul>')
_RE_LIST_ITEM = re.compile(r"<li[^>]*>[\s\S]*?</li>")
_RE_PROFILE_HREF = re.compile(r'href="(/6/buckler/[^/"]+/profile/(\d+))"')
_RE_PROFILE_HREF_LOOSE = re.compile(r'href="([^"]*/profile/(\d+)[^"]*)"')
_RE_LIST_NAME = re.compile(r'<span class="list_name__[^"]*">([^<]+)</span>')
_LP_HEADER_MARKERS = ("list_lp__", "---积分", 'class="list_lp')


def _absolute(path: str, origin: str) -> str:
    if path.startswith("http"):
        return path
    return urljoin(origin.rstrip("/") + "/", path)


def search_results_from_list(html: str, origin: str) -> List[SearchResult]:
    """Scan each ``li`` inside the fighter list container."""

    container = _RE_FIGHTER_LIST.search(html)
    if not container:
        logger.debug("fighter list container not found")
        return []
    results: List[SearchResult] = []
    for index, item in enumerate(_RE_LIST_ITEM.findall(container.group(1)), 1):
        if any(marker in item for marker in _LP_HEADER_MARKERS):
            continue
        href = _RE_PROFILE_HREF.search(item) or _RE_PROFILE_HREF_LOOSE.search(item)
        name = _RE_LIST_NAME.search(item)
        if not href or not name:
            logger.debug("list item %d skipped: href=%s name=%s", index, bool(href), bool(name))
            continue
        player_name = name.group(1).strip()
        if not player_name:
            continue
        results.append(
            SearchResult(
                player_id=href.group(2),
                player_name=player_name,
                url=_absolute(href.group(1), origin),
            )
        )
    return results


def search_results_from_links(html: str, origin: str, strict: bool = False) -> List[SearchResult]:
    """Pair every profile link with every name span by document position.

    Positional pairing misaligns when a link or name lacks its counterpart;
    ``strict`` refuses to pair when the counts differ.
    """

    links: List[Tuple[str, str]] = []
    seen_ids = set()
    for pattern in (_RE_PROFILE_HREF, _RE_PROFILE_HREF_LOOSE):
        for match in pattern.finditer(html):
            path, player_id = match.group(1), match.group(2)
            if player_id in seen_ids:
                continue
            seen_ids.add(player_id)
            links.append((player_id, _absolute(path, origin)))
    names = [m.group(1).strip() for m in _RE_LIST_NAME.finditer(html)]
    if len(links) != len(names):
        if strict:
            logger.warning(
                "search pairing refused: %d profile links vs %d names", len(links), len(names)
            )
            return []
        logger.warning(
            "search pairing may misalign: %d profile links vs %d names", len(links), len(names)
        )
    return [
        SearchResult(player_id=player_id, player_name=name, url=url)
        for (player_id, url), name in zip(links, names)
        if name
    ]


def _dedupe(results: Sequence[SearchResult]) -> List[SearchResult]:
    seen = set()
    out: List[SearchResult] = []
    for result in results:
        if result.player_id in seen:
            continue
        seen.add(result.player_id)
        out.append(result)
    return out


def parse_search_results(html: str, origin: str, strict: bool = False) -> List[SearchResult]:
    structured = search_results_from_list(html, origin)
    if structured:
        logger.debug("search parsed %d results from list container", len(structured))
        return _dedupe(structured)
    flat = search_results_from_links(html, origin, strict=strict)
    logger.debug("search parsed %d results from flat link pairing", len(flat))
    return _dedupe(flat)


__all__ = [
    "NAME_STRATEGIES",
    "CHARACTER_STRATEGIES",
    "RANK_POINT_STRATEGIES",
    "FIGHTING_POINT_STRATEGIES",
    "RANK_NAME_STRATEGIES",
    "TITLE_STRATEGIES",
    "WIN_RATE_STRATEGIES",
    "parse_number",
    "parse_rate",
    "is_ui_chrome",
    "extract_player_name",
    "parse_rank_record",
    "parse_win_rate_record",
    "rank_extraction_failed",
    "win_rate_extraction_failed",
    "search_results_from_list",
    "search_results_from_links",
    "parse_search_results",
]
