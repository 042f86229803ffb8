"""Fetcher domain interfaces and models."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Protocol


class SubscriptionFetcher(Protocol):
    """Port for retrieving one subscription document.

    Raises FetchError on network error, timeout or size-limit overflow.
    """

    async def fetch(self, url: str) -> str: ...


class DownloadStatus(str, Enum):
    """下载阶段状态枚举。"""

    SUCCESS = "success"
    PARTIAL = "partial"  # 部分订阅失败
    FAILED = "failed"  # 全部失败
    SKIPPED = "skipped"  # 已有完成标记，未重新下载


@dataclass
class DownloadSummary:
    """下载阶段结果封装。"""

    status: DownloadStatus
    files: list[Path] = field(default_factory=list)
    failed_urls: list[str] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def has_files(self) -> bool:
        return bool(self.files)

    @classmethod
    def from_attempts(
        cls,
        files: list[Path],
        failed_urls: list[str],
        duration_ms: int = 0,
    ) -> "DownloadSummary":
        if not failed_urls:
            status = DownloadStatus.SUCCESS
        elif files:
            status = DownloadStatus.PARTIAL
        else:
            status = DownloadStatus.FAILED
        return cls(
            status=status,
            files=files,
            failed_urls=failed_urls,
            duration_ms=duration_ms,
        )

    @classmethod
    def skipped(cls, files: list[Path]) -> "DownloadSummary":
        return cls(status=DownloadStatus.SKIPPED, files=files)
