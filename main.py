#!/usr/bin/env python
"""直播源聚合 - 命令行入口。

用法:
    python main.py run [--refresh]      # 完整运行断点续跑管线
    python main.py step [--refresh]     # 只处理一个批次
    python main.py oneshot              # 一次性模糊匹配，覆盖输出文件

公共参数:
    --catalog PATH  --output PATH  --state-dir PATH  --log-level LEVEL
"""

import argparse
import asyncio
import sys
from pathlib import Path

from loguru import logger

from src.core.config import Settings, settings
from src.core.domain.exceptions import DomainException
from src.core.infrastructure.logging import setup_logging
from src.modules.pipeline.infrastructure.dependencies import (
    get_catalog_loader,
    get_oneshot_service,
    get_pipeline_driver,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="直播源聚合与频道匹配")
    parser.add_argument("--catalog", type=Path, default=None, help="频道配置文件路径")
    parser.add_argument("--output", type=Path, default=None, help="输出文件路径")
    parser.add_argument(
        "--state-dir",
        type=Path,
        default=None,
        help="检查点、下载标记与订阅临时文件所在目录",
    )
    parser.add_argument("--log-level", type=str, default=None, help="日志级别")

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="循环处理批次直到全部完成")
    run_parser.add_argument(
        "--refresh", action="store_true", help="删除下载完成标记，重新下载订阅"
    )

    step_parser = subparsers.add_parser("step", help="只处理一个批次")
    step_parser.add_argument(
        "--refresh", action="store_true", help="删除下载完成标记，重新下载订阅"
    )

    subparsers.add_parser("oneshot", help="一次性模糊匹配（不使用检查点）")
    return parser


def build_settings(args: argparse.Namespace) -> Settings:
    overrides: dict[str, object] = {}
    if args.catalog is not None:
        overrides["CATALOG_PATH"] = args.catalog
    if args.output is not None:
        overrides["OUTPUT_PATH"] = args.output
    if args.state_dir is not None:
        overrides["STATE_DIR"] = args.state_dir
    if args.log_level is not None:
        overrides["LOG_LEVEL"] = args.log_level.upper()
    return settings.model_copy(update=overrides)


async def run_command(args: argparse.Namespace, config: Settings) -> int:
    if args.command == "run":
        result = await get_pipeline_driver(config).run(refresh=args.refresh)
        if result.no_files:
            logger.warning("没有成功下载的订阅，未处理任何频道")
        elif not result.no_subscriptions:
            logger.info(f"完成！结果已保存到 {config.OUTPUT_PATH}")
        return 0

    if args.command == "step":
        result = await get_pipeline_driver(config).step(refresh=args.refresh)
        if result.no_files:
            print(f"no subscriptions downloaded, remaining: {result.remaining}")
        elif result.all_done:
            print("all done")
        else:
            print(f"remaining: {result.remaining}")
        return 0

    catalog = await get_catalog_loader(config).load()
    if not catalog.subscription_urls:
        logger.info("未找到订阅地址")
        return 0
    await get_oneshot_service(config).run(catalog)
    logger.info(f"完成！结果已保存到 {config.OUTPUT_PATH}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = build_settings(args)
    setup_logging(config.LOG_LEVEL)

    try:
        return asyncio.run(run_command(args, config))
    except DomainException as e:
        if e.fatal:
            logger.error(f"[{e.error_code}] {e.message}")
        else:
            logger.exception(f"[{e.error_code}] {e.message}")
        return 1
    except Exception as e:
        logger.exception(f"错误: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
