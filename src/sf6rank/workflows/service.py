"""Retrieval orchestration: cache, fetch, auth-wall check, extract, store.

``ProfileService`` owns the per-kind TTL caches, the cooldown limiter, the
fetch gateway and the browser controller. ``close()`` clears every cache and
releases the HTTP session and the browser.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..core import (
    K_BATTLELOG_SCREENSHOT,
    K_CACHE_KINDS,
    K_RANK,
    K_SCREENSHOT,
    K_SEARCH,
    K_SEARCH_SCREENSHOT,
    K_WINRATE,
    K_WINRATE_SCREENSHOT,
    cache_key,
)
from .auth_wall import detect_login_wall
from .browser import (
    BrowserSessionController,
    CaptureSpec,
    battlelog_capture_spec,
    profile_capture_spec,
    search_capture_spec,
    win_rate_capture_spec,
)
from .cache import Clock, CooldownLimiter, TTLCache
from .errors import AuthRequired, ExtractionFailed, OutputsDisabled, ProfileError
from .extract import (
    parse_rank_record,
    parse_search_results,
    parse_win_rate_record,
    rank_extraction_failed,
    win_rate_extraction_failed,
)
from .models import QueryOutcome, RankRecord, SearchResult, WinRateRecord
from .settings import DEFAULT_CONFIG, ProfileConfig
from .urls import play_url, profile_url, search_url, site_origin
from .web_fetch import ProfileFetcher

logger = logging.getLogger(__name__)

PATH_TEXT = "text"
PATH_SCREENSHOT = "screenshot"


class ProfileService:
    def __init__(
        self,
        config: ProfileConfig = DEFAULT_CONFIG,
        fetcher: Optional[Any] = None,
        browser: Optional[Any] = None,
        clock: Clock = time.time,
    ) -> None:
        self.config = config
        self.fetcher = fetcher or ProfileFetcher(config)
        self.browser = browser or BrowserSessionController(config)
        self.caches: Dict[str, TTLCache[Any]] = {
            kind: TTLCache(config.cache_ttl, clock=clock) for kind in K_CACHE_KINDS
        }
        self.cooldown = CooldownLimiter(config.cooldown_seconds, clock=clock)

    # --- cooldown ----------------------------------------------------------

    def admit(self, key: str) -> bool:
        admitted = self.cooldown.try_admit(key)
        if not admitted:
            logger.info("cooldown active for %s (%.1fs left)", key, self.cooldown.remaining(key))
        return admitted

    def cooldown_remaining(self, key: str) -> float:
        return self.cooldown.remaining(key)

    # --- text path ---------------------------------------------------------

    async def _fetch_page(self, url: str) -> str:
        html = await self.fetcher.fetch_html(url)
        detection = detect_login_wall(html)
        if self.config.debug:
            logger.debug("login wall check for %s: %s", url, detection)
        if detection["verdict"] == "login_wall":
            logger.warning("login wall served for %s", url)
            raise AuthRequired("需要登录：Cookie 缺失或已过期，请更新 SF6_COOKIE", url=url)
        return html

    async def get_or_fetch_rank(self, player_id: str) -> RankRecord:
        cache = self.caches[K_RANK]
        key = cache_key(K_RANK, player_id)
        cached = cache.get(key)
        if cached is not None:
            logger.debug("rank cache hit for %s", player_id)
            return cached

        url = profile_url(self.config, player_id)
        html = await self._fetch_page(url)
        record = parse_rank_record(html, player_id, url)
        if rank_extraction_failed(record):
            raise ExtractionFailed("无法解析玩家段位信息，页面结构可能已变化", url=url)
        cache.set(key, record)
        return record

    async def get_or_fetch_win_rate(self, player_id: str) -> WinRateRecord:
        cache = self.caches[K_WINRATE]
        key = cache_key(K_WINRATE, player_id)
        cached = cache.get(key)
        if cached is not None:
            logger.debug("win rate cache hit for %s", player_id)
            return cached

        url = play_url(self.config, player_id)
        html = await self._fetch_page(url)
        record = parse_win_rate_record(html, player_id, url)
        if win_rate_extraction_failed(record):
            raise ExtractionFailed("无法解析玩家胜率信息，页面结构可能已变化", url=url)
        cache.set(key, record)
        return record

    async def search_players(self, player_name: str) -> List[SearchResult]:
        name = player_name.strip()
        cache = self.caches[K_SEARCH]
        key = cache_key(K_SEARCH, name)
        cached = cache.get(key)
        if cached is not None:
            logger.debug("search cache hit for %r", name)
            return cached

        html = await self._fetch_page(search_url(self.config, name))
        results = parse_search_results(
            html, site_origin(self.config), strict=self.config.strict_search_pairing
        )
        cache.set(key, results)
        return results

    # --- screenshot path ---------------------------------------------------

    async def _cached_capture(self, kind: str, ident: str, spec: CaptureSpec) -> bytes:
        cache = self.caches[kind]
        key = cache_key(kind, ident)
        cached = cache.get(key)
        if cached is not None:
            logger.debug("%s cache hit for %s", kind, ident)
            return cached
        image = await self.browser.capture(spec)
        logger.debug("%s captured for %s (%d bytes)", kind, ident, len(image))
        cache.set(key, image)
        return image

    async def capture_profile_screenshot(self, player_id: str) -> bytes:
        return await self._cached_capture(
            K_SCREENSHOT, player_id, profile_capture_spec(self.config, player_id)
        )

    async def capture_win_rate_screenshot(self, player_id: str) -> bytes:
        return await self._cached_capture(
            K_WINRATE_SCREENSHOT, player_id, win_rate_capture_spec(self.config, player_id)
        )

    async def capture_battlelog_screenshot(self, player_id: str) -> bytes:
        return await self._cached_capture(
            K_BATTLELOG_SCREENSHOT, player_id, battlelog_capture_spec(self.config, player_id)
        )

    async def capture_search_screenshot(self, player_name: str) -> bytes:
        name = player_name.strip()
        return await self._cached_capture(
            K_SEARCH_SCREENSHOT, name, search_capture_spec(self.config, name)
        )

    # --- composed queries --------------------------------------------------

    async def _compose(
        self,
        label: str,
        text: Optional[Callable[[], Awaitable[Any]]],
        screenshot: Optional[Callable[[], Awaitable[bytes]]],
    ) -> QueryOutcome:
        run_text = text is not None and self.config.enable_text_output
        run_shot = screenshot is not None and self.config.enable_screenshot_output
        if not run_text and not run_shot:
            raise OutputsDisabled("文字与截图输出均已关闭")

        outcome = QueryOutcome()
        if run_text:
            try:
                outcome.record = await text()  # type: ignore[misc]
            except ProfileError as exc:
                logger.warning("%s text path failed: %s", label, exc.message)
                outcome.errors.append((PATH_TEXT, exc))
        if run_shot:
            try:
                outcome.screenshot = await screenshot()  # type: ignore[misc]
            except ProfileError as exc:
                logger.warning("%s screenshot path failed: %s", label, exc.message)
                outcome.errors.append((PATH_SCREENSHOT, exc))
        return outcome

    async def query_rank(self, player_id: str) -> QueryOutcome:
        return await self._compose(
            f"rank {player_id}",
            lambda: self.get_or_fetch_rank(player_id),
            lambda: self.capture_profile_screenshot(player_id),
        )

    async def query_win_rate(self, player_id: str) -> QueryOutcome:
        return await self._compose(
            f"winrate {player_id}",
            lambda: self.get_or_fetch_win_rate(player_id),
            lambda: self.capture_win_rate_screenshot(player_id),
        )

    async def query_battlelog(self, player_id: str) -> QueryOutcome:
        return await self._compose(
            f"battlelog {player_id}",
            None,
            lambda: self.capture_battlelog_screenshot(player_id),
        )

    async def query_search(self, player_name: str) -> QueryOutcome:
        return await self._compose(
            f"search {player_name!r}",
            lambda: self.search_players(player_name),
            lambda: self.capture_search_screenshot(player_name),
        )

    # --- lifecycle ---------------------------------------------------------

    def clear_caches(self) -> None:
        for cache in self.caches.values():
            cache.clear()
        self.cooldown.clear()

    async def close(self) -> None:
        self.clear_caches()
        try:
            await self.fetcher.close()
        finally:
            await self.browser.close()

    async def __aenter__(self) -> "ProfileService":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


__all__ = ["ProfileService", "PATH_TEXT", "PATH_SCREENSHOT"]
