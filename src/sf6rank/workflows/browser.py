"""Browser session controller: one ephemeral Playwright page per screenshot.

The page is opened with the configured user agent, sized to a desktop
viewport, given the session cookie, navigated, and then the first selector
of the capture chain that appears is screenshotted. The page is closed
exactly once on every exit path after it was opened.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from .errors import (
    AccessDenied,
    CapabilityUnavailable,
    ProfileError,
    TransportError,
    TransportTimeout,
)
from .profile_config import (
    ACCEPT_BROWSER,
    BATTLELOG_SELECTORS,
    DENIAL_MARKERS,
    NAV_TIMEOUT_LONG_MS,
    NAV_TIMEOUT_SHORT_MS,
    PROFILE_SELECTORS,
    PROFILE_SETTLE_MS,
    SEARCH_SELECTORS,
    VIEWPORT,
    WINRATE_SELECTORS,
)
from .settings import ProfileConfig
from .urls import battlelog_url, play_url, profile_url, search_url

logger = logging.getLogger(__name__)

try:  # Playwright is optional; screenshot paths report CapabilityUnavailable
    from playwright.async_api import async_playwright  # type: ignore
    from playwright.async_api import TimeoutError as PlaywrightTimeoutError  # type: ignore
except Exception:  # pragma: no cover - handled at runtime
    async_playwright = None  # type: ignore
    PlaywrightTimeoutError = None  # type: ignore


@dataclass(frozen=True)
class CaptureSpec:
    kind: str
    url: str
    selectors: Tuple[str, ...]
    selector_timeout_ms: int
    nav_timeout_ms: int = NAV_TIMEOUT_SHORT_MS
    settle_ms: int = 0
    check_denial: bool = False
    full_page_fallback: bool = True
    headers: Dict[str, str] = field(default_factory=dict)


def parse_cookie_string(cookie: str, domain: str) -> List[Dict[str, str]]:
    """Split a ``Cookie`` header value into Playwright cookie dicts.

    Pairs are split on ``;`` and then on the first ``=``; pairs with an empty
    name or value are skipped.
    """

    cookies: List[Dict[str, str]] = []
    for pair in (cookie or "").split(";"):
        name, sep, value = pair.partition("=")
        name, value = name.strip(), value.strip()
        if not sep or not name or not value:
            continue
        cookies.append({"name": name, "value": value, "domain": domain, "path": "/"})
    return cookies


def _is_timeout(exc: BaseException) -> bool:
    if isinstance(exc, asyncio.TimeoutError):
        return True
    return PlaywrightTimeoutError is not None and isinstance(exc, PlaywrightTimeoutError)


def _browser_headers(config: ProfileConfig) -> Dict[str, str]:
    return {
        "Accept": ACCEPT_BROWSER,
        "Accept-Language": config.accept_language,
        "Accept-Encoding": "gzip, deflate, br",
        "DNT": "1",
        "Connection": "keep-alive",
        "Upgrade-Insecure-Requests": "1",
    }


def profile_capture_spec(config: ProfileConfig, player_id: str) -> CaptureSpec:
    return CaptureSpec(
        kind="profile",
        url=profile_url(config, player_id),
        selectors=PROFILE_SELECTORS,
        selector_timeout_ms=3_000,
        nav_timeout_ms=NAV_TIMEOUT_SHORT_MS,
        settle_ms=PROFILE_SETTLE_MS,
        check_denial=True,
        full_page_fallback=False,
        headers=_browser_headers(config),
    )


def _sub_page_headers(config: ProfileConfig, player_id: str) -> Dict[str, str]:
    headers = _browser_headers(config)
    headers["Cache-Control"] = "no-cache"
    headers["Referer"] = profile_url(config, player_id)
    return headers


def win_rate_capture_spec(config: ProfileConfig, player_id: str) -> CaptureSpec:
    return CaptureSpec(
        kind="winrate",
        url=play_url(config, player_id),
        selectors=WINRATE_SELECTORS,
        selector_timeout_ms=15_000,
        nav_timeout_ms=NAV_TIMEOUT_LONG_MS,
        headers=_sub_page_headers(config, player_id),
    )


def battlelog_capture_spec(config: ProfileConfig, player_id: str) -> CaptureSpec:
    return CaptureSpec(
        kind="battlelog",
        url=battlelog_url(config, player_id),
        selectors=BATTLELOG_SELECTORS,
        selector_timeout_ms=15_000,
        nav_timeout_ms=NAV_TIMEOUT_LONG_MS,
        headers=_sub_page_headers(config, player_id),
    )


def search_capture_spec(config: ProfileConfig, player_name: str) -> CaptureSpec:
    return CaptureSpec(
        kind="search",
        url=search_url(config, player_name),
        selectors=SEARCH_SELECTORS,
        selector_timeout_ms=5_000,
        nav_timeout_ms=NAV_TIMEOUT_SHORT_MS,
        headers=_browser_headers(config),
    )


class PlaywrightPageProvider:
    """Lazily launches one Chromium instance and hands out fresh pages."""

    def __init__(self, headless: bool = True) -> None:
        self.headless = headless
        self._playwright: Any = None
        self._browser: Any = None
        self._lock = asyncio.Lock()

    @staticmethod
    def available() -> bool:
        return async_playwright is not None

    async def _ensure_browser(self) -> Any:
        if async_playwright is None:
            raise CapabilityUnavailable("截图功能不可用：未安装 Playwright")
        async with self._lock:
            if self._browser is None:
                try:
                    self._playwright = await async_playwright().start()  # type: ignore
                    self._browser = await self._playwright.chromium.launch(headless=self.headless)
                except Exception as exc:
                    await self._stop_playwright()
                    raise CapabilityUnavailable(f"浏览器启动失败: {exc}") from exc
        return self._browser

    async def new_page(self, user_agent: str) -> Any:
        browser = await self._ensure_browser()
        # Pages created from the browser own their context; page.close() releases both.
        return await browser.new_page(user_agent=user_agent)

    async def _stop_playwright(self) -> None:
        if self._playwright is not None:
            await self._playwright.stop()
        self._playwright = None

    async def close(self) -> None:
        if self._browser is not None:
            try:
                await self._browser.close()
            finally:
                self._browser = None
                await self._stop_playwright()


class BrowserSessionController:
    def __init__(self, config: ProfileConfig, provider: Optional[Any] = None) -> None:
        self.config = config
        self.provider = provider or PlaywrightPageProvider(headless=config.headless)

    @asynccontextmanager
    async def open_page(self) -> AsyncIterator[Any]:
        page = await self.provider.new_page(self.config.user_agent)
        try:
            yield page
        finally:
            try:
                await page.close()
            except Exception as exc:  # pragma: no cover - browser already gone
                logger.debug("page close failed: %s", exc)

    async def _prepare(self, page: Any, spec: CaptureSpec) -> None:
        await page.set_viewport_size(dict(VIEWPORT))
        if spec.headers:
            await page.set_extra_http_headers(dict(spec.headers))
        cookies = parse_cookie_string(self.config.cookie, self.config.cookie_domain)
        if cookies:
            await page.context.add_cookies(cookies)
        logger.debug("%s capture: %d cookies injected", spec.kind, len(cookies))

    async def _check_denial(self, page: Any, spec: CaptureSpec) -> None:
        text = await page.evaluate("() => document.body ? document.body.innerText : ''")
        for marker in DENIAL_MARKERS:
            if marker in (text or ""):
                logger.warning("%s capture denied (marker %r) for %s", spec.kind, marker, spec.url)
                raise AccessDenied("访问被拒绝，可能需要更新 Cookie", url=spec.url)

    async def _locate(self, page: Any, spec: CaptureSpec) -> Optional[Any]:
        for selector in spec.selectors:
            try:
                await page.wait_for_selector(selector, timeout=spec.selector_timeout_ms)
            except ProfileError:
                raise
            except Exception as exc:
                if _is_timeout(exc):
                    logger.debug("%s capture: selector %s not found", spec.kind, selector)
                else:
                    logger.debug("%s capture: selector %s failed: %s", spec.kind, selector, exc)
                continue
            element = await page.query_selector(selector)
            if element is not None:
                logger.debug("%s capture: using selector %s", spec.kind, selector)
                return element
        return None

    async def capture(self, spec: CaptureSpec) -> bytes:
        try:
            return await self._capture(spec)
        except ProfileError:
            raise
        except Exception as exc:
            raise TransportError(f"截图失败: {exc}", url=spec.url) from exc

    async def _capture(self, spec: CaptureSpec) -> bytes:
        async with self.open_page() as page:
            await self._prepare(page, spec)
            try:
                await page.goto(spec.url, wait_until="domcontentloaded", timeout=spec.nav_timeout_ms)
            except Exception as exc:
                if _is_timeout(exc):
                    raise TransportTimeout(
                        f"页面加载超时（{spec.nav_timeout_ms // 1000}秒）", url=spec.url
                    ) from exc
                raise
            if spec.settle_ms:
                await asyncio.sleep(spec.settle_ms / 1000)
            if spec.check_denial:
                await self._check_denial(page, spec)

            element = await self._locate(page, spec)
            if element is not None:
                try:
                    return await element.screenshot(type="png")
                except Exception as exc:
                    logger.warning("%s element screenshot failed, using page: %s", spec.kind, exc)
            return await page.screenshot(type="png", full_page=spec.full_page_fallback)

    async def close(self) -> None:
        await self.provider.close()


__all__ = [
    "CaptureSpec",
    "parse_cookie_string",
    "profile_capture_spec",
    "win_rate_capture_spec",
    "battlelog_capture_spec",
    "search_capture_spec",
    "PlaywrightPageProvider",
    "BrowserSessionController",
]
