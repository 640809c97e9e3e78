import asyncio

import pytest

from sf6rank.workflows.errors import (
    AuthRequired,
    CapabilityUnavailable,
    ExtractionFailed,
    OutputsDisabled,
    TransportTimeout,
)
from sf6rank.workflows.service import PATH_SCREENSHOT, PATH_TEXT, ProfileService
from sf6rank.workflows.settings import ProfileConfig
from sf6rank.workflows.urls import play_url, profile_url, search_url

PID = "1234567890"

PROFILE_HTML = """
<div class="character_character_status__5EtcB">
<span class="status_name__z5KnP">Daigo</span>
<p class="character_name__Xy12">所用角色<span>隆</span></p>
<span class="character_point__ab12">12,345积分</span>
<img alt="白金 3" src="/rank/rank15_s.png">
</div>
"""

PLAY_HTML = """
<div class="winning_rate_inner__a1"><ul><li>
<p class="winning_rate_name__b2">全部</p>
<p class="winning_rate_rate__c3">37胜<!-- -->/<!-- -->对战：54</p>
<p><span>68.51</span>%</p></li></ul></div>
"""

LOGIN_HTML = '<h1>登录</h1><form><input type="password"></form>'


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class FakeFetcher:
    def __init__(self, pages) -> None:
        self.pages = pages
        self.calls = []
        self.closed = False

    async def fetch_html(self, url: str) -> str:
        self.calls.append(url)
        value = self.pages[url]
        if isinstance(value, Exception):
            raise value
        return value

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    def __init__(self, image: bytes = b"png", exc=None) -> None:
        self.image = image
        self.exc = exc
        self.specs = []
        self.closed = False

    async def capture(self, spec) -> bytes:
        self.specs.append(spec)
        if self.exc is not None:
            raise self.exc
        return self.image

    async def close(self) -> None:
        self.closed = True


def _service(pages, config=None, browser=None, clock=None):
    config = config or ProfileConfig()
    fetcher = FakeFetcher(pages)
    service = ProfileService(
        config,
        fetcher=fetcher,
        browser=browser or FakeBrowser(),
        clock=clock or FakeClock(),
    )
    return service, fetcher


def test_rank_is_fetched_once_then_cached() -> None:
    config = ProfileConfig()
    service, fetcher = _service({profile_url(config, PID): PROFILE_HTML}, config)

    async def run():
        first = await service.get_or_fetch_rank(PID)
        second = await service.get_or_fetch_rank(PID)
        return first, second

    first, second = asyncio.run(run())

    assert first is second
    assert first.character == "隆"
    assert first.rank_points == 12345
    assert len(fetcher.calls) == 1


def test_rank_cache_expires_after_ttl() -> None:
    config = ProfileConfig(cache_ttl=600)
    clock = FakeClock()
    service, fetcher = _service({profile_url(config, PID): PROFILE_HTML}, config, clock=clock)

    asyncio.run(service.get_or_fetch_rank(PID))
    clock.now = 601
    asyncio.run(service.get_or_fetch_rank(PID))

    assert len(fetcher.calls) == 2


def test_login_wall_raises_auth_required_and_is_not_cached() -> None:
    config = ProfileConfig()
    service, fetcher = _service({profile_url(config, PID): LOGIN_HTML}, config)

    for _ in range(2):
        with pytest.raises(AuthRequired) as info:
            asyncio.run(service.get_or_fetch_rank(PID))
    assert info.value.code == "auth_required"
    assert len(fetcher.calls) == 2


def test_all_unknown_fields_raise_extraction_failed() -> None:
    config = ProfileConfig()
    service, _ = _service({profile_url(config, PID): "<div>profile maintenance</div>"}, config)

    with pytest.raises(ExtractionFailed):
        asyncio.run(service.get_or_fetch_rank(PID))
    assert len(service.caches["rank"]) == 0


def test_win_rate_lookup() -> None:
    config = ProfileConfig()
    service, _ = _service({play_url(config, PID): PLAY_HTML}, config)

    record = asyncio.run(service.get_or_fetch_win_rate(PID))

    assert (record.total_wins, record.total_battles, record.win_rate) == (37, 54, 68.51)
    assert record.url == play_url(config, PID)


def test_empty_search_results_are_cached() -> None:
    config = ProfileConfig()
    service, fetcher = _service({search_url(config, "nobody"): "<div>profile search</div>"}, config)

    async def run():
        return await service.search_players(" nobody "), await service.search_players("nobody")

    first, second = asyncio.run(run())

    assert first == [] and second == []
    assert len(fetcher.calls) == 1


def test_screenshots_are_cached_per_kind() -> None:
    browser = FakeBrowser(b"img")
    service, _ = _service({}, browser=browser)

    async def run():
        await service.capture_profile_screenshot(PID)
        await service.capture_profile_screenshot(PID)
        await service.capture_win_rate_screenshot(PID)
        await service.capture_battlelog_screenshot(PID)
        await service.capture_search_screenshot("Daigo")

    asyncio.run(run())

    assert [spec.kind for spec in browser.specs] == ["profile", "winrate", "battlelog", "search"]


def test_query_collects_text_failure_and_keeps_screenshot() -> None:
    config = ProfileConfig()
    url = profile_url(config, PID)
    service, _ = _service({url: TransportTimeout("请求超时", url=url)}, config, browser=FakeBrowser(b"png"))

    outcome = asyncio.run(service.query_rank(PID))

    assert outcome.ok is True
    assert outcome.record is None
    assert outcome.screenshot == b"png"
    assert [(path, err.code) for path, err in outcome.errors] == [(PATH_TEXT, "transport_timeout")]


def test_query_collects_both_failures() -> None:
    config = ProfileConfig()
    browser = FakeBrowser(exc=CapabilityUnavailable("no playwright"))
    service, _ = _service({play_url(config, PID): LOGIN_HTML}, config, browser=browser)

    outcome = asyncio.run(service.query_win_rate(PID))

    assert outcome.ok is False
    assert [(path, err.code) for path, err in outcome.errors] == [
        (PATH_TEXT, "auth_required"),
        (PATH_SCREENSHOT, "capability_unavailable"),
    ]
    payload = outcome.to_dict()
    assert payload["record"] is None
    assert payload["errors"][1]["code"] == "capability_unavailable"


def test_query_respects_output_toggles() -> None:
    config = ProfileConfig(enable_text_output=False)
    service, fetcher = _service({}, config)

    outcome = asyncio.run(service.query_rank(PID))

    assert fetcher.calls == []
    assert outcome.screenshot == b"png"

    service, _ = _service({}, ProfileConfig(enable_screenshot_output=False))
    with pytest.raises(OutputsDisabled):
        asyncio.run(service.query_battlelog(PID))


def test_query_search_returns_list_record() -> None:
    config = ProfileConfig()
    html = (
        '<ul class="list_fighter_list__abc"><li>'
        '<a href="/6/buckler/zh-hans/profile/1234567890"><span class="list_name__q">Daigo</span></a>'
        "</li></ul>"
    )
    service, _ = _service({search_url(config, "Daigo"): html}, config)

    outcome = asyncio.run(service.query_search("Daigo"))

    assert [r.player_id for r in outcome.record] == [PID]
    assert outcome.to_dict()["record"][0]["player_name"] == "Daigo"


def test_admit_applies_cooldown_window() -> None:
    clock = FakeClock()
    service, _ = _service({}, ProfileConfig(cooldown_seconds=5), clock=clock)

    assert service.admit("u:alice") is True
    assert service.admit("u:alice") is False
    assert service.cooldown_remaining("u:alice") == 5
    clock.now = 5
    assert service.admit("u:alice") is True


def test_close_clears_caches_and_releases_collaborators() -> None:
    config = ProfileConfig()
    browser = FakeBrowser()
    service, fetcher = _service({profile_url(config, PID): PROFILE_HTML}, config, browser=browser)

    async def run():
        async with service:
            await service.get_or_fetch_rank(PID)
            assert len(service.caches["rank"]) == 1

    asyncio.run(run())

    assert len(service.caches["rank"]) == 0
    assert fetcher.closed is True
    assert browser.closed is True
