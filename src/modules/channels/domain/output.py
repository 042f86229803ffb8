"""Output store domain model.

输出按分类组织，每个分类是 {name, sources} 的有序列表。
整个输出中规范名唯一：插入前扫描全部分类做存在性检查。
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

from src.modules.channels.domain.entities import (
    CATEGORY_PATHS,
    CategoryPath,
    ChannelIdentity,
)

MAX_SOURCES_PER_CHANNEL = 100


def dedupe_sources(
    urls: Iterable[str], limit: int = MAX_SOURCES_PER_CHANNEL
) -> list[str]:
    """保序去重并截断到 limit 条。"""
    unique = list(dict.fromkeys(urls))
    return unique[:limit]


@dataclass(frozen=True)
class MatchedChannel:
    identity: ChannelIdentity
    sources: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def create(
        cls,
        identity: ChannelIdentity,
        urls: Iterable[str],
        limit: int = MAX_SOURCES_PER_CHANNEL,
    ) -> MatchedChannel:
        return cls(identity=identity, sources=tuple(dedupe_sources(urls, limit)))

    @property
    def canonical(self) -> str:
        return self.identity.canonical

    def to_document(self) -> dict[str, Any]:
        return {"name": self.identity.to_raw(), "sources": list(self.sources)}


class OutputStore:
    """累积的分类输出。只追加，不修改已有条目。"""

    def __init__(self) -> None:
        self._categories: dict[str, list[MatchedChannel]] = {
            path.category_id: [] for path in CATEGORY_PATHS
        }

    @classmethod
    def from_document(cls, document: Any) -> OutputStore:
        """从输出 JSON 恢复；缺失的分类补为空列表。

        Raises:
            ValueError: 文档结构不符合分类形状
        """
        if not isinstance(document, dict):
            raise ValueError("output document must be a JSON object")

        store = cls()
        for path in CATEGORY_PATHS:
            raw_entries = path.select(document)
            if raw_entries is None:
                continue
            if not isinstance(raw_entries, list):
                raise ValueError(f"{path.category_id} must be a list")
            for raw in raw_entries:
                if not isinstance(raw, dict):
                    raise ValueError(f"{path.category_id} entries must be objects")
                identity = ChannelIdentity.from_raw(raw.get("name"))
                sources = raw.get("sources") or []
                if not isinstance(sources, list):
                    raise ValueError(f"sources of {identity.canonical} must be a list")
                store.add(
                    path,
                    MatchedChannel.create(
                        identity, [s for s in sources if isinstance(s, str)]
                    ),
                )
        return store

    def contains(self, canonical: str) -> bool:
        for entries in self._categories.values():
            for entry in entries:
                if entry.canonical == canonical:
                    return True
        return False

    def add(self, category: CategoryPath, channel: MatchedChannel) -> bool:
        """追加频道；规范名已存在时不做任何修改并返回 False。"""
        if category.category_id not in self._categories:
            raise KeyError(f"Unknown category: {category.category_id}")
        if self.contains(channel.canonical):
            return False
        self._categories[category.category_id].append(channel)
        return True

    def entries(self, category: CategoryPath) -> list[MatchedChannel]:
        return list(self._categories[category.category_id])

    def __iter__(self) -> Iterator[MatchedChannel]:
        for entries in self._categories.values():
            yield from entries

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._categories.values())

    def to_document(self) -> dict[str, Any]:
        """按目录分类形状输出嵌套 JSON 结构。"""
        document: dict[str, Any] = {}
        for path in CATEGORY_PATHS:
            node = document
            for key in path.keys[:-1]:
                node = node.setdefault(key, {})
            node[path.keys[-1]] = [
                entry.to_document() for entry in self._categories[path.category_id]
            ]
        return document
