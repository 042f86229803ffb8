"""批处理器：断点续跑管线的单次批处理。

每次调用：
1. 读取检查点（不存在则直接失败，调用方必须先初始化）
2. 按目录顺序认领至多 batch_size 个待处理频道
3. 扫描每个频道的待扫描文件，按展开别名集合精确匹配并收集源
4. 非重复的匹配结果追加到输出
5. 无论结果如何，被认领的频道都从检查点删除
6. 先保存输出（仅有新增时），再保存检查点

中断时，最近一次保存的检查点与输出即为恢复点；输出先于检查点落盘，
重复处理同一批次只会命中“已存在”分支，不会产生重复条目。
"""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from loguru import logger

from src.core.config import settings
from src.core.infrastructure.logging import BusinessEvents
from src.modules.channels.domain.entities import Catalog, ChannelIdentity
from src.modules.channels.domain.output import (
    MatchedChannel,
    OutputStore,
    dedupe_sources,
)
from src.modules.channels.infrastructure.output_repository import JsonOutputRepository
from src.modules.checkpoint.domain.entities import CheckpointEntry
from src.modules.checkpoint.domain.exceptions import CheckpointMissingError
from src.modules.checkpoint.domain.repository import CheckpointRepository
from src.modules.matching.domain.matcher import exact_match, get_expanded_names
from src.modules.sources.domain.exceptions import FileAccessError, ParseError
from src.modules.sources.domain.playlist import SourceMap, parse_playlist


class ChannelOutcome(str, Enum):
    MERGED = "merged"
    DUPLICATE = "duplicate"
    NO_CATEGORY = "no_category"
    NO_MATCH = "no_match"


@dataclass(frozen=True)
class BatchReport:
    claimed: int
    merged: int
    remaining: int

    @property
    def all_done(self) -> bool:
        return self.remaining == 0


class BatchProcessor:
    """Resolve one bounded batch of pending checkpoint entries."""

    def __init__(
        self,
        checkpoint_repository: CheckpointRepository,
        output_repository: JsonOutputRepository,
        *,
        batch_size: int | None = None,
        max_sources: int | None = None,
        max_expanded_names: int | None = None,
    ) -> None:
        self.checkpoint_repository = checkpoint_repository
        self.output_repository = output_repository
        self.batch_size = batch_size or settings.BATCH_SIZE
        self.max_sources = max_sources or settings.MAX_SOURCES_PER_CHANNEL
        self.max_expanded_names = max_expanded_names or settings.MAX_EXPANDED_NAMES

    async def process_batch(
        self, catalog: Catalog, fetched_files: Sequence[Path]
    ) -> bool:
        """处理一个批次，返回是否已全部处理完毕。"""
        report = await self.run_batch(catalog, fetched_files)
        return report.all_done

    async def run_batch(
        self, catalog: Catalog, fetched_files: Sequence[Path]
    ) -> BatchReport:
        checkpoint = await self.checkpoint_repository.load()
        if checkpoint is None:
            raise CheckpointMissingError(self.checkpoint_repository.location)

        if len(checkpoint) == 0:
            return BatchReport(claimed=0, merged=0, remaining=0)

        claimed = checkpoint.claim(self.batch_size)
        output = await self.output_repository.load()

        merged = 0
        for key, entry in claimed:
            outcome = await self._resolve_channel(
                catalog, key, entry, fetched_files, output
            )
            if outcome is ChannelOutcome.MERGED:
                merged += 1
            checkpoint.resolve(key)

        if merged:
            await self.output_repository.save(output)
        await self.checkpoint_repository.save(checkpoint)

        report = BatchReport(
            claimed=len(claimed), merged=merged, remaining=len(checkpoint)
        )
        logger.info(
            f"Batch done: {report.claimed} claimed, {report.merged} merged, "
            f"{report.remaining} remaining"
        )
        BusinessEvents.batch_completed(
            claimed=report.claimed, merged=report.merged, remaining=report.remaining
        )
        return report

    async def _resolve_channel(
        self,
        catalog: Catalog,
        key: str,
        entry: CheckpointEntry,
        fetched_files: Sequence[Path],
        output: OutputStore,
    ) -> ChannelOutcome:
        catalog_channel = catalog.find(key)
        identity = catalog_channel.identity if catalog_channel else entry.identity

        files = self._order_pending(entry.pending_paths, fetched_files)
        sources = await self.collect_sources(identity, files)

        if not sources:
            outcome = ChannelOutcome.NO_MATCH
            logger.info(f"{key}: 未匹配到直播源")
        elif catalog_channel is None:
            outcome = ChannelOutcome.NO_CATEGORY
            logger.warning(f"{key}: 目录中找不到分类，跳过")
        elif output.add(
            catalog_channel.category, MatchedChannel(identity, tuple(sources))
        ):
            outcome = ChannelOutcome.MERGED
            logger.info(f"{key}: {len(sources)} 个直播源")
        else:
            outcome = ChannelOutcome.DUPLICATE
            logger.info(f"{key}: 输出中已存在，跳过")

        BusinessEvents.channel_resolved(
            channel=key, outcome=outcome.value, source_count=len(sources)
        )
        return outcome

    async def collect_sources(
        self, identity: ChannelIdentity, files: Sequence[Path]
    ) -> list[str]:
        """扫描文件，收集与展开别名精确匹配的全部源（去重，截断）。"""
        expanded = get_expanded_names(identity.aliases, self.max_expanded_names)
        urls: list[str] = []
        for path in files:
            try:
                source_map = await self._read_source_map(path)
            except FileAccessError as e:
                logger.warning(f"Skipping file for {identity.canonical}: {e.message}")
                continue
            for raw_name, source_urls in source_map.items():
                if exact_match(raw_name, expanded):
                    urls.extend(source_urls)
        return dedupe_sources(urls, self.max_sources)

    @staticmethod
    async def _read_source_map(path: Path) -> SourceMap:
        try:
            content = await asyncio.to_thread(
                path.read_text, encoding="utf-8", errors="replace"
            )
        except OSError as e:
            raise FileAccessError(path, str(e)) from e

        try:
            _, source_map = parse_playlist(content)
        except ParseError as e:
            logger.warning(f"Parse failure for {path}: {e.message}")
            return {}
        return source_map

    @staticmethod
    def _order_pending(
        pending: Sequence[Path], fetched_files: Sequence[Path]
    ) -> list[Path]:
        # 按订阅顺序扫描，不在本次文件集合中的待扫描文件排在最后
        pending_set = set(pending)
        ordered = [path for path in fetched_files if path in pending_set]
        seen = set(ordered)
        for path in pending:
            if path not in seen:
                seen.add(path)
                ordered.append(path)
        return ordered
