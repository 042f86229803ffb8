"""订阅一次性下载与完成标记。

下载阶段只在没有完成标记时执行：每个订阅 URL 写入新建临时目录中的一个文件，
至少一个成功时写入标记文件（记录时间戳与文件列表）。后续运行读取标记即可
恢复文件集合，不再重复下载。

清除标记时一并删除其记录的下载目录；没有任何文件写入的新目录立即删除。
"""

import asyncio
import json
import shutil
import tempfile
import time
from datetime import UTC, datetime
from pathlib import Path

from loguru import logger
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from src.core.infrastructure.json_file import read_json, write_json_atomic
from src.core.infrastructure.logging import BusinessEvents
from src.modules.sources.domain.exceptions import FetchError, TempDirectoryError
from src.modules.sources.domain.fetcher import DownloadSummary, SubscriptionFetcher


class DownloadMarker(BaseModel):
    """下载完成标记内容。"""

    completed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    directory: Path
    files: list[Path] = Field(default_factory=list)
    urls: list[str] = Field(default_factory=list)


class SubscriptionDownloadStore:
    def __init__(
        self,
        fetcher: SubscriptionFetcher,
        state_dir: Path,
        marker_path: Path,
        dir_prefix: str = "subscriptions-",
    ) -> None:
        self.fetcher = fetcher
        self.state_dir = state_dir
        self.marker_path = marker_path
        self.dir_prefix = dir_prefix

    async def read_marker(self) -> DownloadMarker | None:
        try:
            payload = await read_json(self.marker_path)
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"Unreadable download marker {self.marker_path}: {e}")
            return None

        try:
            return DownloadMarker.model_validate(payload)
        except PydanticValidationError as e:
            logger.warning(f"Invalid download marker {self.marker_path}: {e}")
            return None

    async def clear_marker(self) -> None:
        marker = await self.read_marker()
        await asyncio.to_thread(self.marker_path.unlink, missing_ok=True)
        if marker is not None:
            await self._remove_directory(marker.directory)
        logger.info(f"Download marker removed: {self.marker_path}")

    async def ensure_downloaded(self, urls: list[str]) -> DownloadSummary:
        """返回已抓取文件集合；没有完成标记时先下载全部订阅。"""
        marker = await self.read_marker()
        if marker is not None:
            logger.info(
                f"Subscriptions already downloaded at {marker.completed_at.isoformat()}, "
                f"reusing {len(marker.files)} files"
            )
            return DownloadSummary.skipped(list(marker.files))

        start_time = time.time()
        directory = await self._create_directory()

        files: list[Path] = []
        failed_urls: list[str] = []
        for index, url in enumerate(urls):
            logger.info(f"正在获取: {url}")
            try:
                content = await self.fetcher.fetch(url)
            except FetchError as e:
                logger.warning(f"  获取失败: {e.cause}")
                BusinessEvents.subscription_fetch_failed(url=url, error=e.cause)
                failed_urls.append(url)
                continue

            path = directory / f"subscription_{index:03d}.txt"
            try:
                await asyncio.to_thread(path.write_text, content, encoding="utf-8")
            except OSError as e:
                logger.warning(f"  写入失败 {path}: {e}")
                BusinessEvents.subscription_fetch_failed(url=url, error=str(e))
                failed_urls.append(url)
                continue

            files.append(path)
            BusinessEvents.subscription_downloaded(
                url=url, path=str(path), size_bytes=len(content.encode("utf-8"))
            )

        summary = DownloadSummary.from_attempts(
            files=files,
            failed_urls=failed_urls,
            duration_ms=int((time.time() - start_time) * 1000),
        )
        if summary.has_files:
            marker = DownloadMarker(directory=directory, files=files, urls=urls)
            await write_json_atomic(self.marker_path, marker.model_dump(mode="json"))
        else:
            logger.warning("No subscription downloaded, completion marker not written")
            await self._remove_directory(directory)

        BusinessEvents.download_phase_completed(
            status=summary.status.value,
            downloaded=len(files),
            failed=len(failed_urls),
            duration_ms=summary.duration_ms,
        )
        return summary

    async def _create_directory(self) -> Path:
        try:
            await asyncio.to_thread(self.state_dir.mkdir, parents=True, exist_ok=True)
            created = await asyncio.to_thread(
                tempfile.mkdtemp, prefix=self.dir_prefix, dir=self.state_dir
            )
        except OSError as e:
            raise TempDirectoryError(self.state_dir, str(e)) from e
        return Path(created)

    async def _remove_directory(self, directory: Path) -> None:
        # 只删除本存储在 state_dir 下创建的目录
        if (
            directory.parent.resolve() != self.state_dir.resolve()
            or not directory.name.startswith(self.dir_prefix)
        ):
            logger.warning(f"Refusing to remove foreign directory: {directory}")
            return
        await asyncio.to_thread(shutil.rmtree, directory, ignore_errors=True)
        logger.debug(f"Download directory removed: {directory}")
