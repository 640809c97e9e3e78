import json

import pytest
from typer.testing import CliRunner

from sf6rank import cli
from sf6rank.workflows.errors import TransportTimeout
from sf6rank.workflows.models import QueryOutcome, RankRecord, SearchResult

runner = CliRunner()

RECORD = RankRecord(
    player_id="1234567890",
    player_name="Daigo",
    character="隆",
    rank_name="大师",
    rank_points=25123,
    fighting_points=1000,
    title="无称号",
    url="https://www.streetfighter.com/6/buckler/zh-hans/profile/1234567890",
)


class FakeService:
    outcome = QueryOutcome(record=RECORD, screenshot=b"\x89PNG")
    calls = []

    def __init__(self, config) -> None:
        self.config = config

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return None

    async def query_rank(self, player_id):
        FakeService.calls.append(("rank", player_id))
        return FakeService.outcome

    async def query_search(self, name):
        FakeService.calls.append(("search", name))
        return FakeService.outcome


@pytest.fixture(autouse=True)
def _env(monkeypatch, tmp_path):
    monkeypatch.setenv("SF6_BINDINGS_PATH", str(tmp_path / "bindings.json"))
    monkeypatch.setenv("SF6_COOKIE", "")
    monkeypatch.setenv("SF6_LOCALE", "zh-hans")
    monkeypatch.setenv("SF6_COOLDOWN_SECONDS", "5")
    monkeypatch.setattr(cli, "ProfileService", FakeService)
    FakeService.outcome = QueryOutcome(record=RECORD, screenshot=b"\x89PNG")
    FakeService.calls = []


def _cooldown_keys(tmp_path):
    return set(json.loads((tmp_path / "cooldowns.json").read_text(encoding="utf-8")))


def test_bind_then_rank_uses_bound_id(tmp_path) -> None:
    result = runner.invoke(cli.app, ["bind", "1234567890", "--user", "alice"])
    assert result.exit_code == 0
    assert "1234567890" in result.output

    out_dir = tmp_path / "shots"
    result = runner.invoke(cli.app, ["rank", "--user", "alice", "--out", str(out_dir)])

    assert result.exit_code == 0
    assert "使用角色：隆" in result.output
    assert "排位积分：25,123" in result.output
    assert ("rank", "1234567890") in FakeService.calls
    assert _cooldown_keys(tmp_path) == {"u:alice"}
    assert (out_dir / "rank-1234567890.png").read_bytes() == b"\x89PNG"


def test_rank_channel_scopes_cooldown(tmp_path) -> None:
    result = runner.invoke(cli.app, ["rank", "1234567890", "--channel", "room"])
    assert result.exit_code == 0
    assert _cooldown_keys(tmp_path) == {"c:room"}


def test_rank_without_binding_exits_2() -> None:
    result = runner.invoke(cli.app, ["rank", "--user", "nobody"])
    assert result.exit_code == 2
    assert FakeService.calls == []


def test_rank_invalid_id_exits_2() -> None:
    result = runner.invoke(cli.app, ["rank", "12ab"])
    assert result.exit_code == 2


def test_cooldown_persists_between_runs() -> None:
    assert runner.invoke(cli.app, ["rank", "1234567890"]).exit_code == 0

    result = runner.invoke(cli.app, ["rank", "1234567890"])

    assert result.exit_code == 2
    assert "操作过于频繁" in result.output
    assert FakeService.calls == [("rank", "1234567890")]


def test_all_outputs_disabled_exits_2_before_cooldown(tmp_path) -> None:
    result = runner.invoke(cli.app, ["rank", "1234567890", "--no-text", "--no-screenshot"])
    assert result.exit_code == 2
    assert FakeService.calls == []
    assert not (tmp_path / "cooldowns.json").exists()


def test_unsupported_locale_exits_2(monkeypatch) -> None:
    monkeypatch.setenv("SF6_LOCALE", "fr-fr")

    result = runner.invoke(cli.app, ["rank", "1234567890"])

    assert result.exit_code == 2
    assert not isinstance(result.exception, ValueError)
    assert "fr-fr" in result.output
    assert FakeService.calls == []


def test_doctor_reports_unsupported_locale(monkeypatch) -> None:
    monkeypatch.setenv("SF6_LOCALE", "fr-fr")

    result = runner.invoke(cli.app, ["doctor"])

    assert result.exit_code == 2
    assert not isinstance(result.exception, ValueError)
    assert "SF6_LOCALE: missing (fr-fr)" in result.output


def test_all_outputs_failed_exits_3() -> None:
    FakeService.outcome = QueryOutcome(errors=[("text", TransportTimeout("请求超时"))])
    result = runner.invoke(cli.app, ["rank", "1234567890"])
    assert result.exit_code == 3
    assert "请求超时" in result.output


def test_search_json_output(tmp_path) -> None:
    FakeService.outcome = QueryOutcome(
        record=[SearchResult("1234567890", "Daigo", "https://x/1234567890")]
    )
    result = runner.invoke(cli.app, ["search", "Daigo", "--json"])

    assert result.exit_code == 0
    payload = json.loads(result.output.strip().splitlines()[-1])
    assert payload["command"] == "search"
    assert payload["record"][0]["player_id"] == "1234567890"
    assert _cooldown_keys(tmp_path) == {"search:local:Daigo"}


def test_unbind() -> None:
    runner.invoke(cli.app, ["bind", "1234567890"])
    result = runner.invoke(cli.app, ["unbind"])
    assert result.exit_code == 0
    assert "已解除绑定" in result.output
    result = runner.invoke(cli.app, ["unbind"])
    assert "当前没有绑定" in result.output


def test_find_lists_matching_entries() -> None:
    result = runner.invoke(cli.app, ["--find", "cookie"])
    assert result.exit_code == 0
    assert "SF6_COOKIE" in result.output
