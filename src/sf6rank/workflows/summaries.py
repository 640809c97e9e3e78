"""Plain-text summaries of records for chat and terminal output."""

from __future__ import annotations

from typing import Iterable, List, Sequence, Tuple

from .errors import ProfileError
from .models import RankRecord, SearchResult, WinRateRecord
from .profile_config import NO_TITLE, SEARCH_CHUNK_CHARS

_PATH_LABELS = {"text": "文字信息", "screenshot": "截图"}


def format_rank(record: RankRecord) -> str:
    lines = []
    if record.player_name:
        lines.append(f"玩家：{record.player_name}")
    lines.append(f"使用角色：{record.character}")
    lines.append(f"段位：{record.rank_name}")
    lines.append(f"排位积分：{record.rank_points:,}")
    lines.append(f"格斗点：{record.fighting_points:,}")
    if record.title != NO_TITLE:
        lines.append(f"称号：{record.title}")
    lines.append(f"详情：{record.url}")
    return "\n".join(lines)


def format_win_rate(record: WinRateRecord) -> str:
    lines = []
    if record.player_name:
        lines.append(f"玩家：{record.player_name}")
    lines.append(f"总战绩：{record.total_wins:,}胜/{record.total_battles:,}战")
    lines.append(f"总胜率：{record.win_rate:.2f}%")
    lines.append(f"详情：{record.url}")
    return "\n".join(lines)


def _chunk(lines: Iterable[str], limit: int) -> List[str]:
    chunks: List[str] = []
    current = ""
    for line in lines:
        candidate = f"{current}\n{line}" if current else line
        if current and len(candidate) > limit:
            chunks.append(current)
            current = line
        else:
            current = candidate
    if current:
        chunks.append(current)
    return chunks


def format_search_results(
    query: str,
    results: Sequence[SearchResult],
    limit: int = SEARCH_CHUNK_CHARS,
) -> List[str]:
    """Numbered result list split into messages of at most ``limit`` chars.

    A single line longer than ``limit`` is kept whole in its own chunk.
    """

    if not results:
        return [f"未找到名为「{query}」的玩家"]
    lines = [f"搜索「{query}」共找到 {len(results)} 名玩家："]
    for index, result in enumerate(results, 1):
        lines.append(f"{index}. {result.player_name}（ID：{result.player_id}）")
        lines.append(f"   {result.url}")
    return _chunk(lines, limit)


def format_errors(errors: Sequence[Tuple[str, ProfileError]]) -> str:
    return "\n".join(
        f"{_PATH_LABELS.get(path, path)}获取失败：{err.message}" for path, err in errors
    )


__all__ = ["format_rank", "format_win_rate", "format_search_results", "format_errors"]
