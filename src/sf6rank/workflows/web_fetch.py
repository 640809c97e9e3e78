"""Fetch gateway: one HTTP GET per call against Buckler with session headers."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from .errors import TransportError, TransportTimeout
from .html_normalize import decode_bytes_auto
from .profile_config import (
    ACCEPT_HTML,
    HDR_ACCEPT,
    HDR_ACCEPT_LANGUAGE,
    HDR_COOKIE,
    HDR_REFERER,
    HDR_USER_AGENT,
)
from .settings import ProfileConfig
from .urls import referer_url

logger = logging.getLogger(__name__)


class ProfileFetcher:
    """Thin aiohttp wrapper. No retries; a failed call fails the operation.

    When no session is injected one is created lazily and owned (closed) by
    this fetcher.
    """

    def __init__(self, config: ProfileConfig, session: Optional[Any] = None) -> None:
        self.config = config
        self._session = session
        self._owns_session = session is None

    def build_headers(self) -> Dict[str, str]:
        headers = {
            HDR_USER_AGENT: self.config.user_agent,
            HDR_ACCEPT: ACCEPT_HTML,
            HDR_ACCEPT_LANGUAGE: self.config.accept_language,
            HDR_REFERER: referer_url(self.config),
        }
        if self.config.has_cookie:
            headers[HDR_COOKIE] = self.config.cookie
        return headers

    def _get_session(self) -> Any:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    async def fetch_html(self, url: str) -> str:
        session = self._get_session()
        timeout = aiohttp.ClientTimeout(total=self.config.http_timeout)
        try:
            async with session.get(url, headers=self.build_headers(), timeout=timeout) as resp:
                status = resp.status
                raw_bytes = await resp.read()
                headers = dict(resp.headers or {})
        except asyncio.TimeoutError as exc:
            raise TransportTimeout(
                f"请求超时（{self.config.http_timeout:g}秒）", url=url
            ) from exc
        except aiohttp.ClientError as exc:
            raise TransportError(f"网络请求失败: {exc}", url=url) from exc

        html = decode_bytes_auto(raw_bytes or b"", headers)
        logger.debug("GET %s -> %s (%d chars)", url, status, len(html))
        if 200 <= status < 300:
            return html
        if html.strip():
            # Error pages still carry the login wall or profile markup.
            logger.warning("GET %s returned HTTP %s; using response body", url, status)
            return html
        raise TransportError(f"HTTP {status}，响应为空", url=url, status=status)

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None


__all__ = ["ProfileFetcher"]
