"""一次性匹配服务。

不使用完成标记、临时文件和检查点：订阅内容全部读入内存，合并为一个
SourceMap，然后对每个目录频道做包含式模糊匹配，结果整体覆盖输出文件。
断点续跑管线使用的是更严格的精确匹配。
"""

from loguru import logger

from src.core.config import settings
from src.modules.channels.domain.entities import Catalog
from src.modules.channels.domain.output import MatchedChannel, OutputStore
from src.modules.channels.infrastructure.output_repository import JsonOutputRepository
from src.modules.matching.domain.matcher import fuzzy_match, get_expanded_names
from src.modules.sources.domain.exceptions import FetchError, ParseError
from src.modules.sources.domain.fetcher import SubscriptionFetcher
from src.modules.sources.domain.playlist import (
    SourceMap,
    merge_source_maps,
    parse_playlist,
)


class OneShotMatchService:
    def __init__(
        self,
        fetcher: SubscriptionFetcher,
        output_repository: JsonOutputRepository,
        *,
        max_sources: int | None = None,
        max_expanded_names: int | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.output_repository = output_repository
        self.max_sources = max_sources or settings.MAX_SOURCES_PER_CHANNEL
        self.max_expanded_names = max_expanded_names or settings.MAX_EXPANDED_NAMES

    async def run(self, catalog: Catalog) -> OutputStore:
        combined = await self._collect(catalog.subscription_urls)
        logger.info(f"总共获取到 {len(combined)} 个频道")

        store = self.match(catalog, combined)
        logger.info(f"成功匹配 {len(store)} 个频道")

        await self.output_repository.save(store)
        return store

    def match(self, catalog: Catalog, combined: SourceMap) -> OutputStore:
        store = OutputStore()
        for channel in catalog.channels:
            expanded = get_expanded_names(
                channel.identity.aliases, self.max_expanded_names
            )
            urls = [
                url
                for raw_name, source_urls in combined.items()
                if fuzzy_match(raw_name, expanded)
                for url in source_urls
            ]
            if urls:
                store.add(
                    channel.category,
                    MatchedChannel.create(channel.identity, urls, self.max_sources),
                )
        return store

    async def _collect(self, urls: list[str]) -> SourceMap:
        maps: list[SourceMap] = []
        for url in urls:
            logger.info(f"正在获取: {url}")
            try:
                content = await self.fetcher.fetch(url)
            except FetchError as e:
                logger.warning(f"  获取失败: {e.cause}")
                continue

            try:
                playlist_format, source_map = parse_playlist(content)
            except ParseError as e:
                logger.warning(f"  解析失败: {e.message}")
                continue

            logger.info(
                f"  成功获取 {len(source_map)} 个频道 ({playlist_format.value}格式)"
            )
            maps.append(source_map)
        return merge_source_maps(maps)
