"""Logging configuration with structlog integration.

提供两种日志记录方式：
1. loguru: 用于一般运行日志（进度、跳过原因、可恢复错误）
2. structlog: 用于关键业务事件的结构化日志
"""

import sys
from typing import Any

import structlog
from loguru import logger

from src.core.config import settings


def setup_logging(level: str | None = None) -> None:
    """Configure application logging with structlog and loguru."""
    log_level = (level or settings.LOG_LEVEL).upper()

    # 配置 structlog
    _configure_structlog(log_level)

    # 配置 loguru
    _configure_loguru(log_level)

    logger.debug(f"Logging configured with level: {log_level}")


def _configure_structlog(log_level: str) -> None:
    """配置 structlog 处理器链。"""
    # 根据环境选择渲染器
    if settings.ENVIRONMENT == "local":
        # 本地开发使用人类可读格式
        renderer = structlog.dev.ConsoleRenderer(colors=True)
    else:
        # 生产环境使用 JSON 格式
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            _get_log_level_number(log_level)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def _configure_loguru(log_level: str) -> None:
    """配置 loguru。"""
    # Remove default handler
    logger.remove()

    logger.add(
        sys.stderr,
        level=log_level,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
        colorize=True,
    )

    # Add file handler for production
    if settings.ENVIRONMENT != "local":
        logger.add(
            "logs/livesource_{time:YYYY-MM-DD}.log",
            rotation="00:00",
            retention="30 days",
            level="INFO",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        )


def _get_log_level_number(level: str) -> int:
    """将日志级别字符串转换为数字。"""
    levels = {
        "DEBUG": 10,
        "INFO": 20,
        "WARNING": 30,
        "ERROR": 40,
        "CRITICAL": 50,
    }
    return levels.get(level.upper(), 20)


# ============================================================================
# 业务事件日志记录器
# ============================================================================

def get_business_logger() -> structlog.BoundLogger:
    """获取业务事件日志记录器。

    用于记录关键业务事件，输出为结构化格式。

    Usage:
        from src.core.infrastructure.logging import get_business_logger

        log = get_business_logger()
        log.info("batch_completed", claimed=5, remaining=120)
    """
    return structlog.get_logger("business")


class BusinessEvents:
    """业务事件日志助手类。

    提供统一的业务事件日志记录接口，确保事件格式一致。

    Usage:
        from src.core.infrastructure.logging import BusinessEvents

        BusinessEvents.subscription_downloaded(url="...", path="...", size_bytes=1024)
        BusinessEvents.channel_resolved(channel="CCTV-1", outcome="merged")
    """

    _log = structlog.get_logger("business.events")

    @classmethod
    def subscription_downloaded(
        cls,
        url: str,
        path: str,
        size_bytes: int,
        **extra: Any,
    ) -> None:
        """记录订阅下载成功事件。"""
        cls._log.info(
            "subscription_downloaded",
            event_type="download",
            url=url,
            path=path,
            size_bytes=size_bytes,
            **extra,
        )

    @classmethod
    def subscription_fetch_failed(
        cls,
        url: str,
        error: str,
        **extra: Any,
    ) -> None:
        """记录订阅抓取失败事件。"""
        cls._log.warning(
            "subscription_fetch_failed",
            event_type="download_error",
            url=url,
            error=error,
            **extra,
        )

    @classmethod
    def download_phase_completed(
        cls,
        status: str,
        downloaded: int,
        failed: int,
        **extra: Any,
    ) -> None:
        """记录下载阶段完成事件。"""
        cls._log.info(
            "download_phase_completed",
            event_type="download",
            status=status,
            downloaded=downloaded,
            failed=failed,
            **extra,
        )

    @classmethod
    def checkpoint_initialized(
        cls,
        reason: str,
        channel_count: int,
        file_count: int,
        **extra: Any,
    ) -> None:
        """记录检查点（重新）初始化事件。"""
        cls._log.info(
            "checkpoint_initialized",
            event_type="checkpoint",
            reason=reason,
            channel_count=channel_count,
            file_count=file_count,
            **extra,
        )

    @classmethod
    def channel_resolved(
        cls,
        channel: str,
        outcome: str,
        source_count: int = 0,
        **extra: Any,
    ) -> None:
        """记录频道处理完成事件。"""
        cls._log.info(
            "channel_resolved",
            event_type="match",
            channel=channel,
            outcome=outcome,
            source_count=source_count,
            **extra,
        )

    @classmethod
    def batch_completed(
        cls,
        claimed: int,
        merged: int,
        remaining: int,
        **extra: Any,
    ) -> None:
        """记录批次完成事件。"""
        cls._log.info(
            "batch_completed",
            event_type="batch",
            claimed=claimed,
            merged=merged,
            remaining=remaining,
            **extra,
        )

    @classmethod
    def pipeline_completed(
        cls,
        batches: int,
        matched_total: int,
        duration_ms: int,
        **extra: Any,
    ) -> None:
        """记录整条管线完成事件。"""
        cls._log.info(
            "pipeline_completed",
            event_type="pipeline",
            batches=batches,
            matched_total=matched_total,
            duration_ms=duration_ms,
            **extra,
        )
