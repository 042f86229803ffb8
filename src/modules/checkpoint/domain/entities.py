"""Checkpoint domain entities.

检查点记录每个目录频道的待扫描文件集合，采用“处理完即删除”的表示：
条目存在即未处理，处理完成（匹配合并、无匹配或重复）后从映射中移除。

状态：
- MISSING: 尚无持久化检查点（首次运行）
- ACTIVE: 仍有待处理条目
- EXHAUSTED: 所有条目都已处理。驱动器检测到该状态会从完整目录重新初始化，
  即“重新运行会重新处理全部频道”
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.modules.channels.domain.entities import Catalog, ChannelIdentity


class CheckpointState(str, Enum):
    MISSING = "missing"
    ACTIVE = "active"
    EXHAUSTED = "exhausted"


class CheckpointEntry(BaseModel):
    """单个频道的检查点条目。"""

    model_config = ConfigDict(populate_by_name=True)

    name: str | list[str] = Field(..., description="目录中的频道标识")
    pending_files: list[str] = Field(
        default_factory=list, alias="pendingFiles", description="尚未扫描的订阅文件"
    )
    processed: bool = Field(default=False, description="是否已处理")

    @property
    def identity(self) -> ChannelIdentity:
        return ChannelIdentity.from_raw(self.name)

    @property
    def pending_paths(self) -> list[Path]:
        return [Path(p) for p in self.pending_files]


class CheckpointMap:
    """内存中的检查点映射，键为规范名，按目录定义顺序排列。"""

    def __init__(self, entries: dict[str, CheckpointEntry] | None = None) -> None:
        self._entries: dict[str, CheckpointEntry] = dict(entries or {})

    @classmethod
    def create(cls, catalog: Catalog, files: Iterable[Path]) -> CheckpointMap:
        """目录 × 已抓取文件集合，每个频道一个条目。"""
        pending_files = [str(path) for path in files]
        entries: dict[str, CheckpointEntry] = {}
        for channel in catalog.channels:
            entries.setdefault(
                channel.canonical,
                CheckpointEntry(
                    name=channel.identity.to_raw(),
                    pending_files=list(pending_files),
                ),
            )
        return cls(entries)

    @classmethod
    def from_document(cls, document: Any) -> CheckpointMap:
        if not isinstance(document, dict):
            raise ValueError("checkpoint document must be a JSON object")
        entries: dict[str, CheckpointEntry] = {}
        for key, raw in document.items():
            entry = CheckpointEntry.model_validate(raw)
            # processed=true 的条目视为已删除
            if entry.processed:
                continue
            entries[key] = entry
        return cls(entries)

    def to_document(self) -> dict[str, Any]:
        return {
            key: entry.model_dump(by_alias=True, mode="json")
            for key, entry in self._entries.items()
        }

    @property
    def state(self) -> CheckpointState:
        return CheckpointState.ACTIVE if self._entries else CheckpointState.EXHAUSTED

    def claim(self, limit: int) -> list[tuple[str, CheckpointEntry]]:
        """按目录顺序取出至多 limit 个待处理条目（不修改映射）。"""
        if limit <= 0:
            raise ValueError("batch size must be positive")
        claimed: list[tuple[str, CheckpointEntry]] = []
        for key, entry in self._entries.items():
            if len(claimed) >= limit:
                break
            claimed.append((key, entry))
        return claimed

    def rebase(self, files: Iterable[Path]) -> None:
        """剩余条目的待扫描文件整体替换为新下载的文件集合。"""
        pending_files = [str(path) for path in files]
        for entry in self._entries.values():
            entry.pending_files = list(pending_files)

    def resolve(self, key: str) -> None:
        self._entries.pop(key, None)

    def get(self, key: str) -> CheckpointEntry | None:
        return self._entries.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
