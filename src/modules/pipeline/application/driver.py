"""管线驱动器。

流程：
    读取目录 -> 一次性下载订阅（已有完成标记则复用）
    -> 读取或初始化检查点 -> 循环处理批次直到全部完成

检查点处于 MISSING 或 EXHAUSTED 状态时，从完整目录 × 已抓取文件集合重新初始化。
EXHAUSTED 后每次完整重跑都会重新处理全部频道；已存在于输出中的频道直接跳过。
一个订阅文件都没有下载成功时不处理任何批次，检查点保持不变。
"""

import time
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from src.core.infrastructure.logging import BusinessEvents
from src.modules.channels.domain.entities import CATEGORY_PATHS, Catalog
from src.modules.channels.infrastructure.catalog_loader import JsonCatalogLoader
from src.modules.channels.infrastructure.output_repository import JsonOutputRepository
from src.modules.checkpoint.domain.entities import CheckpointMap, CheckpointState
from src.modules.checkpoint.domain.exceptions import CheckpointCorruptedError
from src.modules.checkpoint.domain.repository import CheckpointRepository
from src.modules.pipeline.application.batch_processor import BatchProcessor
from src.modules.sources.domain.fetcher import DownloadStatus
from src.modules.sources.infrastructure.download_store import SubscriptionDownloadStore


@dataclass
class PipelineResult:
    """一次驱动器调用的结果。"""

    all_done: bool
    batches: int = 0
    remaining: int = 0
    matched_total: int = 0
    files: list[Path] = field(default_factory=list)
    no_subscriptions: bool = False
    no_files: bool = False


class PipelineDriver:
    def __init__(
        self,
        catalog_loader: JsonCatalogLoader,
        download_store: SubscriptionDownloadStore,
        checkpoint_repository: CheckpointRepository,
        output_repository: JsonOutputRepository,
        batch_processor: BatchProcessor,
    ) -> None:
        self.catalog_loader = catalog_loader
        self.download_store = download_store
        self.checkpoint_repository = checkpoint_repository
        self.output_repository = output_repository
        self.batch_processor = batch_processor

    async def run(self, *, refresh: bool = False) -> PipelineResult:
        """完整运行：循环处理批次直到检查点清空。"""
        start_time = time.time()
        logger.info("读取频道配置文件...")
        catalog = await self.catalog_loader.load()
        if not catalog.subscription_urls:
            logger.info("未找到订阅地址")
            return PipelineResult(all_done=True, no_subscriptions=True)

        files = await self._prepare(catalog, refresh=refresh)
        if not files:
            return await self._no_files_result(catalog)

        logger.info("匹配频道...")
        batches = 0
        all_done = False
        while not all_done:
            all_done = await self.batch_processor.process_batch(catalog, files)
            batches += 1

        matched_total = await self._report_output()
        BusinessEvents.pipeline_completed(
            batches=batches,
            matched_total=matched_total,
            duration_ms=int((time.time() - start_time) * 1000),
        )
        return PipelineResult(
            all_done=True,
            batches=batches,
            matched_total=matched_total,
            files=files,
        )

    async def step(self, *, refresh: bool = False) -> PipelineResult:
        """单步运行：只处理一个批次，供外部调度逐步推进。"""
        catalog = await self.catalog_loader.load()
        if not catalog.subscription_urls:
            logger.info("未找到订阅地址")
            return PipelineResult(all_done=True, no_subscriptions=True)

        files = await self._prepare(catalog, refresh=refresh)
        if not files:
            return await self._no_files_result(catalog)

        report = await self.batch_processor.run_batch(catalog, files)
        return PipelineResult(
            all_done=report.all_done,
            batches=1 if report.claimed else 0,
            remaining=report.remaining,
            files=files,
        )

    async def _prepare(self, catalog: Catalog, *, refresh: bool) -> list[Path]:
        if refresh:
            await self.download_store.clear_marker()

        logger.info("获取订阅地址内容...")
        summary = await self.download_store.ensure_downloaded(catalog.subscription_urls)
        logger.info(
            f"Download phase {summary.status.value}: {len(summary.files)} files, "
            f"{len(summary.failed_urls)} failed"
        )
        if not summary.has_files:
            logger.warning("没有可用的订阅文件，本次不处理批次，检查点保持不变")
            return []

        await self.ensure_checkpoint(
            catalog, summary.files, fresh=summary.status is not DownloadStatus.SKIPPED
        )
        return summary.files

    async def ensure_checkpoint(
        self, catalog: Catalog, files: list[Path], *, fresh: bool = False
    ) -> CheckpointState:
        """检查点缺失、已耗尽或损坏时重新初始化，返回初始化前的状态。

        fresh 表示 files 是本次新下载的文件集合：此时 ACTIVE 检查点中剩余频道的
        待扫描文件改为 files，已处理的频道保持已处理。
        """
        existing: CheckpointMap | None = None
        try:
            existing = await self.checkpoint_repository.load()
            state = CheckpointState.MISSING if existing is None else existing.state
            reason = state.value
        except CheckpointCorruptedError as e:
            logger.warning(f"{e.message}, reinitializing")
            state = CheckpointState.MISSING
            reason = "corrupted"

        if state is CheckpointState.ACTIVE and existing is not None:
            if fresh:
                existing.rebase(files)
                await self.checkpoint_repository.save(existing)
                logger.info(
                    f"Checkpoint rebased onto {len(files)} fresh files: "
                    f"{len(existing)} channels pending"
                )
                BusinessEvents.checkpoint_initialized(
                    reason="rebased",
                    channel_count=len(existing),
                    file_count=len(files),
                )
            else:
                logger.info("Resuming from existing checkpoint")
            return state

        checkpoint = CheckpointMap.create(catalog, files)
        await self.checkpoint_repository.save(checkpoint)
        logger.info(
            f"Checkpoint initialized ({reason}): {len(checkpoint)} channels, "
            f"{len(files)} files"
        )
        BusinessEvents.checkpoint_initialized(
            reason=reason, channel_count=len(checkpoint), file_count=len(files)
        )
        return state

    async def _no_files_result(self, catalog: Catalog) -> PipelineResult:
        try:
            checkpoint = await self.checkpoint_repository.load()
        except CheckpointCorruptedError:
            checkpoint = None
        remaining = len(checkpoint) if checkpoint else len(catalog.channels)
        return PipelineResult(all_done=False, remaining=remaining, no_files=True)

    async def _report_output(self) -> int:
        output = await self.output_repository.load()
        for path in CATEGORY_PATHS:
            for entry in output.entries(path):
                logger.info(f"{entry.canonical}: {len(entry.sources)} 个直播源")
        logger.info(f"成功匹配 {len(output)} 个频道")
        return len(output)
