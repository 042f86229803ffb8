"""Channel domain entities.

频道目录（catalog）在整次运行中只读：
- 频道标识可以是单个名称，也可以是别名列表（第一个别名为规范名）
- 分类由 CATEGORY_PATHS 声明式表格定义，所有遍历都基于该表
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


class ChannelIdentity(ABC):
    """频道标识：SingleName 或 AliasList。"""

    @property
    @abstractmethod
    def aliases(self) -> tuple[str, ...]: ...

    @property
    def canonical(self) -> str:
        """规范名（第一个别名），作为检查点与输出中的唯一键。"""
        return self.aliases[0]

    @abstractmethod
    def to_raw(self) -> str | list[str]:
        """还原为目录 JSON 中的原始表示。"""

    @staticmethod
    def from_raw(value: Any) -> ChannelIdentity:
        if isinstance(value, str):
            name = value.strip()
            if not name:
                raise ValueError("channel name must not be empty")
            return SingleName(name)
        if isinstance(value, list):
            names = [v.strip() for v in value if isinstance(v, str) and v.strip()]
            if not names:
                raise ValueError("alias list must contain at least one name")
            return AliasList(tuple(names))
        raise ValueError(f"unsupported channel name: {value!r}")


@dataclass(frozen=True)
class SingleName(ChannelIdentity):
    name: str

    @property
    def aliases(self) -> tuple[str, ...]:
        return (self.name,)

    def to_raw(self) -> str:
        return self.name


@dataclass(frozen=True)
class AliasList(ChannelIdentity):
    names: tuple[str, ...]

    @property
    def aliases(self) -> tuple[str, ...]:
        return self.names

    def to_raw(self) -> list[str]:
        return list(self.names)


@dataclass(frozen=True)
class CategoryPath:
    """目录 JSON 中一个叶子分类的位置，如 ("cctv_channels", "donghua_region")。"""

    keys: tuple[str, ...]

    @property
    def category_id(self) -> str:
        return ".".join(self.keys)

    def select(self, document: dict[str, Any]) -> Any:
        """按路径取值，路径不存在时返回 None。"""
        node: Any = document
        for key in self.keys:
            if not isinstance(node, dict):
                return None
            node = node.get(key)
        return node


CATEGORY_PATHS: tuple[CategoryPath, ...] = (
    CategoryPath(("cctv_channels", "free_terrestrial_channel")),
    CategoryPath(("cctv_channels", "donghua_region")),
    CategoryPath(("provincial_satellite_channel", "huabei_region")),
    CategoryPath(("provincial_satellite_channel", "dongbei_region")),
    CategoryPath(("provincial_satellite_channel", "huadong_region")),
    CategoryPath(("provincial_satellite_channel", "zhongnan_region")),
    CategoryPath(("provincial_satellite_channel", "xinan_region")),
    CategoryPath(("provincial_satellite_channel", "xibei_region")),
    CategoryPath(("provincial_satellite_channel", "characteristic_city_channel")),
    CategoryPath(("digital_paid_channel",)),
)


@dataclass(frozen=True)
class CatalogChannel:
    identity: ChannelIdentity
    category: CategoryPath

    @property
    def canonical(self) -> str:
        return self.identity.canonical


@dataclass
class Catalog:
    """只读频道目录。"""

    channels: list[CatalogChannel] = field(default_factory=list)
    subscription_urls: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._by_canonical: dict[str, CatalogChannel] = {}
        for channel in self.channels:
            self._by_canonical.setdefault(channel.canonical, channel)

    def find(self, canonical: str) -> CatalogChannel | None:
        return self._by_canonical.get(canonical)

    def category_of(self, canonical: str) -> CategoryPath | None:
        channel = self.find(canonical)
        return channel.category if channel else None
