from pathlib import Path

import pytest

from sf6rank.workflows import urls
from sf6rank.workflows.settings import ProfileConfig, env_locale, load_config_from_env

_ENV_NAMES = (
    "SF6_BASE_URL",
    "SF6_LOCALE",
    "SF6_COOKIE",
    "SF6_HTTP_TIMEOUT",
    "SF6_CACHE_TTL",
    "SF6_COOLDOWN_SECONDS",
    "SF6_ENABLE_TEXT",
    "SF6_ENABLE_SCREENSHOT",
    "SF6_STRICT_SEARCH_PAIRING",
    "SF6_PLAYWRIGHT_HEADED",
    "SF6_BINDINGS_PATH",
    "SF6_DEBUG",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    # setenv first so teardown also removes values written by load_dotenv
    for name in _ENV_NAMES:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def test_defaults() -> None:
    config = load_config_from_env()
    assert config.locale == "zh-hans"
    assert config.http_timeout == 15.0
    assert config.cache_ttl == 600.0
    assert config.cooldown_seconds == 5.0
    assert config.enable_text_output is True
    assert config.enable_screenshot_output is True
    assert config.has_cookie is False
    assert config.headless is True


def test_env_overrides(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("SF6_LOCALE", "EN-US")
    monkeypatch.setenv("SF6_COOKIE", "  buckler_id=abc  ")
    monkeypatch.setenv("SF6_CACHE_TTL", "30")
    monkeypatch.setenv("SF6_COOLDOWN_SECONDS", "not-a-number")
    monkeypatch.setenv("SF6_ENABLE_SCREENSHOT", "off")
    monkeypatch.setenv("SF6_PLAYWRIGHT_HEADED", "1")
    monkeypatch.setenv("SF6_BINDINGS_PATH", str(tmp_path / "b.json"))

    config = load_config_from_env()

    assert config.locale == "en-us"
    assert config.cookie == "buckler_id=abc"
    assert config.cache_ttl == 30.0
    assert config.cooldown_seconds == 5.0
    assert config.enable_screenshot_output is False
    assert config.headless is False
    assert config.bindings_path == tmp_path / "b.json"
    assert config.accept_language.startswith("en-US")


def test_dotenv_file_is_read(monkeypatch, tmp_path) -> None:
    env_file = tmp_path / "custom.env"
    env_file.write_text("SF6_COOKIE=from_file=1\n", encoding="utf-8")

    config = load_config_from_env(env_file)

    assert config.cookie == "from_file=1"


def test_unsupported_locale_rejected() -> None:
    with pytest.raises(ValueError):
        ProfileConfig(locale="fr-fr")


def test_unsupported_env_locale_raises_unless_overridden(monkeypatch) -> None:
    monkeypatch.setenv("SF6_LOCALE", " FR-FR ")

    assert env_locale() == "fr-fr"
    with pytest.raises(ValueError):
        load_config_from_env()
    assert load_config_from_env(locale="zh-hans").locale == "zh-hans"


def test_url_builders() -> None:
    config = ProfileConfig(base_url="https://www.streetfighter.com/6/buckler/")
    assert urls.profile_url(config, "1234567") == "https://www.streetfighter.com/6/buckler/zh-hans/profile/1234567"
    assert urls.play_url(config, "1234567").endswith("/profile/1234567/play")
    assert urls.battlelog_url(config, "1234567").endswith("/profile/1234567/battlelog")
    assert urls.search_url(config, "春丽 fan").endswith(
        "/zh-hans/fighterslist/search/result?fighter_id=%E6%98%A5%E4%B8%BD%20fan&page=1"
    )
    assert urls.referer_url(config) == "https://www.streetfighter.com/6/buckler/zh-hans/"
    assert urls.site_origin(config) == "https://www.streetfighter.com"
