"""Pipeline module dependencies."""

from src.core.config import Settings
from src.modules.channels.infrastructure.catalog_loader import JsonCatalogLoader
from src.modules.channels.infrastructure.output_repository import JsonOutputRepository
from src.modules.checkpoint.infrastructure.json_store import JsonCheckpointStore
from src.modules.pipeline.application.batch_processor import BatchProcessor
from src.modules.pipeline.application.driver import PipelineDriver
from src.modules.pipeline.application.oneshot_service import OneShotMatchService
from src.modules.sources.domain.fetcher import SubscriptionFetcher
from src.modules.sources.infrastructure.download_store import SubscriptionDownloadStore
from src.modules.sources.infrastructure.fetchers.http import HttpSubscriptionFetcher


def get_catalog_loader(settings: Settings) -> JsonCatalogLoader:
    return JsonCatalogLoader(settings.CATALOG_PATH)


def get_output_repository(settings: Settings) -> JsonOutputRepository:
    return JsonOutputRepository(settings.OUTPUT_PATH)


def get_fetcher(settings: Settings) -> HttpSubscriptionFetcher:
    return HttpSubscriptionFetcher(
        timeout_sec=settings.FETCH_TIMEOUT_SEC,
        max_bytes=settings.FETCH_MAX_BYTES,
        user_agent=settings.FETCHER_USER_AGENT,
    )


def get_pipeline_driver(
    settings: Settings,
    fetcher: SubscriptionFetcher | None = None,
) -> PipelineDriver:
    checkpoint_store = JsonCheckpointStore(settings.checkpoint_path)
    output_repository = get_output_repository(settings)
    return PipelineDriver(
        catalog_loader=get_catalog_loader(settings),
        download_store=SubscriptionDownloadStore(
            fetcher=fetcher or get_fetcher(settings),
            state_dir=settings.STATE_DIR,
            marker_path=settings.download_marker_path,
            dir_prefix=settings.DOWNLOAD_DIR_PREFIX,
        ),
        checkpoint_repository=checkpoint_store,
        output_repository=output_repository,
        batch_processor=BatchProcessor(
            checkpoint_store,
            output_repository,
            batch_size=settings.BATCH_SIZE,
            max_sources=settings.MAX_SOURCES_PER_CHANNEL,
            max_expanded_names=settings.MAX_EXPANDED_NAMES,
        ),
    )


def get_oneshot_service(
    settings: Settings,
    fetcher: SubscriptionFetcher | None = None,
) -> OneShotMatchService:
    return OneShotMatchService(
        fetcher=fetcher or get_fetcher(settings),
        output_repository=get_output_repository(settings),
        max_sources=settings.MAX_SOURCES_PER_CHANNEL,
        max_expanded_names=settings.MAX_EXPANDED_NAMES,
    )
