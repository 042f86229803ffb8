"""订阅文档解析。

支持两种纯文本格式：
- 扩展播放列表（m3u）：以 #EXTM3U 开头，#EXTINF 元数据行后紧跟 URL 行
- 逗号分隔列表（txt）：每行 "频道名,URL"

解析结果为 SourceMap：原始频道名 -> URL 列表（保序，允许重复）。
IPv6 地址的源会被过滤掉。
"""

import re
from collections.abc import Iterable
from enum import Enum
from urllib.parse import urlsplit

from src.modules.sources.domain.exceptions import ParseError

SourceMap = dict[str, list[str]]

EXTENDED_HEADER = "#EXTM3U"
EXTINF_PREFIX = "#EXTINF"

_TVG_NAME_RE = re.compile(r'tvg-name="([^"]+)"')
_TRAILING_LABEL_RE = re.compile(r",([^,]+)$")


class PlaylistFormat(str, Enum):
    EXTENDED = "m3u"
    DELIMITED = "txt"


def detect_format(content: str) -> PlaylistFormat:
    if content.strip().startswith(EXTENDED_HEADER):
        return PlaylistFormat.EXTENDED
    return PlaylistFormat.DELIMITED


def is_ipv6_url(url: str) -> bool:
    try:
        parts = urlsplit(url)
        host = parts.hostname
    except ValueError:
        return False
    if not host:
        return False
    return ":" in host or parts.netloc.rpartition("@")[2].startswith("[")


def parse_extended(content: str) -> SourceMap:
    channels: SourceMap = {}
    lines = content.split("\n")

    for index, raw_line in enumerate(lines):
        line = raw_line.strip()
        if not line.startswith(EXTINF_PREFIX):
            continue

        next_line = lines[index + 1].strip() if index + 1 < len(lines) else ""
        if not next_line or next_line.startswith("#"):
            continue

        name = _extract_extinf_name(line)
        if name and not is_ipv6_url(next_line):
            channels.setdefault(name, []).append(next_line)

    return channels


def _extract_extinf_name(line: str) -> str:
    # tvg-name 属性优先，其次取最后一个逗号后的标签
    tvg_match = _TVG_NAME_RE.search(line)
    if tvg_match:
        return tvg_match.group(1)
    label_match = _TRAILING_LABEL_RE.search(line)
    if label_match:
        return label_match.group(1).strip()
    return ""


def parse_delimited(content: str) -> SourceMap:
    channels: SourceMap = {}

    for raw_line in content.split("\n"):
        line = raw_line.strip()
        if "," not in line or line.startswith("#"):
            continue

        name, _, url = line.partition(",")
        name = name.strip()
        url = url.strip()
        if not name or not url.startswith(("http://", "https://")) or is_ipv6_url(url):
            continue
        channels.setdefault(name, []).append(url)

    return channels


def parse_playlist(content: str) -> tuple[PlaylistFormat, SourceMap]:
    """识别格式并解析。

    Raises:
        ParseError: 文档非空但没有任何可用条目
    """
    playlist_format = detect_format(content)
    if playlist_format is PlaylistFormat.EXTENDED:
        channels = parse_extended(content)
    else:
        channels = parse_delimited(content)

    if not channels and content.strip():
        raise ParseError(
            f"No channel entries found in {playlist_format.value} document"
        )
    return playlist_format, channels


def merge_source_maps(maps: Iterable[SourceMap]) -> SourceMap:
    """按原始频道名合并多个 SourceMap，URL 列表依次拼接。"""
    merged: SourceMap = {}
    for source_map in maps:
        for name, urls in source_map.items():
            merged.setdefault(name, []).extend(urls)
    return merged
