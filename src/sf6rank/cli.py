from __future__ import annotations

import asyncio
import json
import logging
import math
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional

import typer

from .core import K_CMD_BATTLELOG, K_CMD_RANK, K_CMD_SEARCH, K_CMD_WINRATE, cooldown_key
from .workflows.bindings import JsonBindingStore, resolve_player_id, validate_player_id
from .workflows.cache import JsonCooldownLimiter
from .workflows.doctor import build_doctor_report, format_doctor_report
from .workflows.errors import InvalidPlayerId
from .workflows.models import QueryOutcome, RankRecord, WinRateRecord
from .workflows.profile_config import DEFAULT_LOCALE
from .workflows.service import ProfileService
from .workflows.settings import ProfileConfig, env_locale, load_config_from_env
from .workflows.summaries import format_errors, format_rank, format_search_results, format_win_rate

app = typer.Typer(add_help_option=False, no_args_is_help=False)

EXIT_OK = 0
EXIT_BAD_INPUT = 2
EXIT_ALL_FAILED = 3

DEFAULT_USER = "local"
COOLDOWNS_FILE = "cooldowns.json"


def _minimal_help() -> str:
    return """sf6rank (Buckler profile lookups)

Usage:
  sf6rank rank [ID]        [--user <KEY>] [--out <DIR>] [--no-text] [--no-screenshot] [--json]
  sf6rank winrate [ID]     (same options)
  sf6rank battlelog [ID]   (same options)
  sf6rank search <NAME>    (same options)
  sf6rank bind <ID>        [--user <KEY>]
  sf6rank unbind           [--user <KEY>]
  sf6rank doctor

Common options:
  --user <KEY>       Caller key for bindings and cooldowns (default: local).
  --channel <KEY>    Channel key; rank cooldowns are shared per channel.
  --out <DIR>        Write the screenshot PNG into this directory.
  --no-text          Skip the text lookup.
  --no-screenshot    Skip the screenshot.
  --json             Print the outcome JSON to stdout only.
  --debug            Verbose logging.

Discoverability:
  --help-full     Expanded help + env vars.
  --find <query>  Search commands, flags, env vars.
  --doctor        Run environment diagnostics and exit.
"""


def _help_full() -> str:
    return """sf6rank CLI

Commands:
  rank        Rank, points and title for a player (profile page).
  winrate     Overall wins, battles and win rate (play page).
  battlelog   Battle log screenshot.
  search      Find players by fighter name.
  bind        Bind a player ID to the caller key.
  unbind      Remove the caller's binding.
  doctor      Print environment diagnostics.

Exit codes:
  0  at least one output succeeded
  2  bad input, unbound caller, cooldown, or all outputs disabled
  3  every requested output failed

Environment (also read from .env):
  SF6_COOKIE                  Cookie header of a logged-in Buckler session.
  SF6_LOCALE                  zh-hans (default), zh-hant, en-us, ja-jp, ko-kr.
  SF6_BASE_URL                Override the Buckler base URL.
  SF6_USER_AGENT              Override the browser user agent.
  SF6_HTTP_TIMEOUT            HTTP timeout in seconds (default 15).
  SF6_CACHE_TTL               Cache lifetime in seconds (default 600).
  SF6_COOLDOWN_SECONDS        Cooldown window in seconds (default 5).
  SF6_ENABLE_TEXT             1/0 text output (default 1).
  SF6_ENABLE_SCREENSHOT       1/0 screenshot output (default 1).
  SF6_STRICT_SEARCH_PAIRING   1 to refuse misaligned search pairing.
  SF6_PLAYWRIGHT_HEADED       1 to show the browser window.
  SF6_BINDINGS_PATH           Bindings JSON file (default run/bindings.json).
                              Cooldown marks go to cooldowns.json beside it.
  SF6_DEBUG                   1 for verbose logging.

Cooldowns:
  Each command records its cooldown key in cooldowns.json, so repeated CLI
  runs inside SF6_COOLDOWN_SECONDS exit with code 2. Response caches live
  only for one run; hosts that embed ProfileService keep them between calls.

Troubleshooting:
  - If Playwright isn't installed, screenshots report capability_unavailable.
  - auth_required means the cookie is missing or expired.
"""


_FIND_INDEX = [
    ("command", "rank", "Rank, points and title for a player."),
    ("command", "winrate", "Overall wins, battles and win rate."),
    ("command", "battlelog", "Battle log screenshot."),
    ("command", "search", "Find players by fighter name."),
    ("command", "bind", "Bind a player ID to the caller key."),
    ("command", "unbind", "Remove the caller's binding."),
    ("command", "doctor", "Print environment diagnostics."),
    ("flag", "--user", "Caller key for bindings and cooldowns."),
    ("flag", "--channel", "Channel key for rank cooldowns."),
    ("flag", "--out", "Write the screenshot PNG into this directory."),
    ("flag", "--no-text", "Skip the text lookup."),
    ("flag", "--no-screenshot", "Skip the screenshot."),
    ("flag", "--json", "Print the outcome JSON to stdout only."),
    ("flag", "--debug", "Verbose logging."),
    ("env", "SF6_COOKIE", "Logged-in Buckler session cookie."),
    ("env", "SF6_LOCALE", "Buckler locale segment."),
    ("env", "SF6_CACHE_TTL", "Cache lifetime in seconds."),
    ("env", "SF6_COOLDOWN_SECONDS", "Cooldown window in seconds."),
    ("env", "SF6_BINDINGS_PATH", "Bindings JSON file."),
]


def _run_find(query: str) -> str:
    needle = (query or "").strip().lower()
    if not needle:
        return ""
    lines = []
    for category, name, desc in _FIND_INDEX:
        haystack = f"{category} {name} {desc}".lower()
        if needle in haystack:
            lines.append(f"{category} {name} - {desc}")
    return "\n".join(lines)


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config(*, no_text: bool = False, no_screenshot: bool = False, debug: bool = False) -> ProfileConfig:
    try:
        config = load_config_from_env()
    except ValueError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=EXIT_BAD_INPUT)
    overrides: Dict[str, Any] = {}
    if no_text:
        overrides["enable_text_output"] = False
    if no_screenshot:
        overrides["enable_screenshot_output"] = False
    if debug:
        overrides["debug"] = True
    if overrides:
        config = replace(config, **overrides)
    _configure_logging(config.debug)
    return config


def _cooldown_limiter(config: ProfileConfig) -> JsonCooldownLimiter:
    return JsonCooldownLimiter(config.bindings_path.with_name(COOLDOWNS_FILE), config.cooldown_seconds)


async def _run_query(
    config: ProfileConfig,
    query: Callable[[ProfileService], Awaitable[QueryOutcome]],
) -> QueryOutcome:
    async with ProfileService(config) as service:
        return await query(service)


def _write_screenshot(out: Path, kind: str, ident: str, image: bytes) -> Path:
    out.mkdir(parents=True, exist_ok=True)
    safe_ident = "".join(ch if ch.isalnum() else "_" for ch in ident) or "query"
    path = out / f"{kind}-{safe_ident}.png"
    path.write_bytes(image)
    return path


def _render(kind: str, ident: str, outcome: QueryOutcome, out: Optional[Path], json_out: bool) -> int:
    screenshot_path: Optional[Path] = None
    if outcome.screenshot and out is not None:
        screenshot_path = _write_screenshot(out, kind, ident, outcome.screenshot)

    if json_out:
        payload = {"command": kind, "query": ident, **outcome.to_dict()}
        payload["screenshot_path"] = str(screenshot_path) if screenshot_path else None
        sys.stdout.write(json.dumps(payload, ensure_ascii=False) + "\n")
    else:
        record = outcome.record
        if isinstance(record, RankRecord):
            typer.echo(format_rank(record))
        elif isinstance(record, WinRateRecord):
            typer.echo(format_win_rate(record))
        elif isinstance(record, list):
            for chunk in format_search_results(ident, record):
                typer.echo(chunk)
        if screenshot_path is not None:
            typer.echo(f"截图已保存：{screenshot_path}")
        elif outcome.screenshot:
            typer.echo(f"截图已获取（{len(outcome.screenshot)} 字节），使用 --out 保存")
        if outcome.errors:
            typer.echo(format_errors(outcome.errors), err=True)
    return EXIT_OK if outcome.ok else EXIT_ALL_FAILED


def _execute(
    kind: str,
    ident: str,
    config: ProfileConfig,
    key: str,
    query: Callable[[ProfileService], Awaitable[QueryOutcome]],
    out: Optional[Path],
    json_out: bool,
) -> None:
    if not config.enable_text_output and not config.enable_screenshot_output:
        typer.echo("error: 文字与截图输出均已关闭", err=True)
        raise typer.Exit(code=EXIT_BAD_INPUT)
    limiter = _cooldown_limiter(config)
    if not limiter.try_admit(key):
        typer.echo(f"操作过于频繁，请 {math.ceil(limiter.remaining(key))} 秒后再试", err=True)
        raise typer.Exit(code=EXIT_BAD_INPUT)
    outcome = asyncio.run(_run_query(config, query))
    raise typer.Exit(code=_render(kind, ident, outcome, out, json_out))


def _resolve_or_exit(player_id: Optional[str], user: str, config: ProfileConfig) -> str:
    try:
        return resolve_player_id(player_id, user, JsonBindingStore(config.bindings_path))
    except InvalidPlayerId as exc:
        typer.echo(f"error: {exc.message}", err=True)
        raise typer.Exit(code=EXIT_BAD_INPUT)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    help: bool = typer.Option(False, "--help", "-h", is_eager=True, help="Show minimal help."),
    help_full: bool = typer.Option(False, "--help-full", is_eager=True, help="Show expanded help."),
    find: Optional[str] = typer.Option(None, "--find", is_eager=True, help="Search commands, flags, env vars."),
    doctor: bool = typer.Option(False, "--doctor", is_eager=True, help="Run environment diagnostics and exit."),
) -> None:
    if help_full:
        typer.echo(_help_full())
        raise typer.Exit(code=0)
    if find is not None:
        output = _run_find(find)
        if output:
            typer.echo(output)
        raise typer.Exit(code=0)
    if doctor:
        doctor_cmd()
    if help or ctx.invoked_subcommand is None:
        typer.echo(_minimal_help())
        raise typer.Exit(code=0)


@app.command("doctor", add_help_option=True)
def doctor_cmd() -> None:
    """Print environment and dependency diagnostics."""
    try:
        report = build_doctor_report(load_config_from_env())
    except ValueError:
        report = build_doctor_report(load_config_from_env(locale=DEFAULT_LOCALE), locale=env_locale())
    typer.echo(format_doctor_report(report))
    raise typer.Exit(code=0 if report.get("ok", True) else 2)


@app.command("rank", add_help_option=True)
def rank_cmd(
    player_id: Optional[str] = typer.Argument(None, help="Player ID (defaults to the bound ID)."),
    user: str = typer.Option(DEFAULT_USER, "--user", help="Caller key for bindings and cooldowns."),
    channel: Optional[str] = typer.Option(None, "--channel", help="Channel key for rank cooldowns."),
    out: Optional[Path] = typer.Option(None, "--out", help="Write the screenshot PNG into this directory."),
    no_text: bool = typer.Option(False, "--no-text", help="Skip the text lookup."),
    no_screenshot: bool = typer.Option(False, "--no-screenshot", help="Skip the screenshot."),
    json_out: bool = typer.Option(False, "--json", help="Print the outcome JSON to stdout only."),
    debug: bool = typer.Option(False, "--debug", help="Verbose logging."),
) -> None:
    config = _load_config(no_text=no_text, no_screenshot=no_screenshot, debug=debug)
    pid = _resolve_or_exit(player_id, user, config)
    key = cooldown_key(K_CMD_RANK, user, target=pid, channel_id=channel)
    _execute(K_CMD_RANK, pid, config, key, lambda svc: svc.query_rank(pid), out, json_out)


@app.command("winrate", add_help_option=True)
def winrate_cmd(
    player_id: Optional[str] = typer.Argument(None, help="Player ID (defaults to the bound ID)."),
    user: str = typer.Option(DEFAULT_USER, "--user", help="Caller key for bindings and cooldowns."),
    out: Optional[Path] = typer.Option(None, "--out", help="Write the screenshot PNG into this directory."),
    no_text: bool = typer.Option(False, "--no-text", help="Skip the text lookup."),
    no_screenshot: bool = typer.Option(False, "--no-screenshot", help="Skip the screenshot."),
    json_out: bool = typer.Option(False, "--json", help="Print the outcome JSON to stdout only."),
    debug: bool = typer.Option(False, "--debug", help="Verbose logging."),
) -> None:
    config = _load_config(no_text=no_text, no_screenshot=no_screenshot, debug=debug)
    pid = _resolve_or_exit(player_id, user, config)
    key = cooldown_key(K_CMD_WINRATE, user, target=pid)
    _execute(K_CMD_WINRATE, pid, config, key, lambda svc: svc.query_win_rate(pid), out, json_out)


@app.command("battlelog", add_help_option=True)
def battlelog_cmd(
    player_id: Optional[str] = typer.Argument(None, help="Player ID (defaults to the bound ID)."),
    user: str = typer.Option(DEFAULT_USER, "--user", help="Caller key for bindings and cooldowns."),
    out: Optional[Path] = typer.Option(None, "--out", help="Write the screenshot PNG into this directory."),
    json_out: bool = typer.Option(False, "--json", help="Print the outcome JSON to stdout only."),
    debug: bool = typer.Option(False, "--debug", help="Verbose logging."),
) -> None:
    config = _load_config(debug=debug)
    pid = _resolve_or_exit(player_id, user, config)
    key = cooldown_key(K_CMD_BATTLELOG, user, target=pid)
    _execute(K_CMD_BATTLELOG, pid, config, key, lambda svc: svc.query_battlelog(pid), out, json_out)


@app.command("search", add_help_option=True)
def search_cmd(
    name: str = typer.Argument(..., help="Fighter name to search for."),
    user: str = typer.Option(DEFAULT_USER, "--user", help="Caller key for cooldowns."),
    out: Optional[Path] = typer.Option(None, "--out", help="Write the screenshot PNG into this directory."),
    no_text: bool = typer.Option(False, "--no-text", help="Skip the text lookup."),
    no_screenshot: bool = typer.Option(False, "--no-screenshot", help="Skip the screenshot."),
    json_out: bool = typer.Option(False, "--json", help="Print the outcome JSON to stdout only."),
    debug: bool = typer.Option(False, "--debug", help="Verbose logging."),
) -> None:
    query = name.strip()
    if not query:
        typer.echo("error: 请提供要搜索的玩家名称", err=True)
        raise typer.Exit(code=EXIT_BAD_INPUT)
    config = _load_config(no_text=no_text, no_screenshot=no_screenshot, debug=debug)
    key = cooldown_key(K_CMD_SEARCH, user, target=query)
    _execute(K_CMD_SEARCH, query, config, key, lambda svc: svc.query_search(query), out, json_out)


@app.command("bind", add_help_option=True)
def bind_cmd(
    player_id: str = typer.Argument(..., help="Player ID to bind."),
    user: str = typer.Option(DEFAULT_USER, "--user", help="Caller key to bind."),
) -> None:
    config = _load_config()
    try:
        pid = validate_player_id(player_id)
    except InvalidPlayerId as exc:
        typer.echo(f"error: {exc.message}", err=True)
        raise typer.Exit(code=EXIT_BAD_INPUT)
    JsonBindingStore(config.bindings_path).upsert(user, pid)
    typer.echo(f"已绑定玩家ID：{pid}")


@app.command("unbind", add_help_option=True)
def unbind_cmd(
    user: str = typer.Option(DEFAULT_USER, "--user", help="Caller key to unbind."),
) -> None:
    config = _load_config()
    if JsonBindingStore(config.bindings_path).delete(user):
        typer.echo("已解除绑定")
    else:
        typer.echo("当前没有绑定的玩家ID")


if __name__ == "__main__":  # pragma: no cover
    app()
