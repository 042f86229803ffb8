"""命令行入口测试：参数解析与退出码。"""

import json

import pytest

import main as cli
from src.modules.pipeline.infrastructure import dependencies


@pytest.fixture
def cli_args(test_settings) -> list[str]:
    return [
        "--catalog",
        str(test_settings.CATALOG_PATH),
        "--output",
        str(test_settings.OUTPUT_PATH),
        "--state-dir",
        str(test_settings.STATE_DIR),
    ]


@pytest.fixture(autouse=True)
def skip_logging_setup(monkeypatch):
    # setup_logging 会把 structlog 绑定到当前 stderr 并缓存 logger
    monkeypatch.setattr(cli, "setup_logging", lambda level=None: None)


@pytest.fixture
def use_fake_fetcher(monkeypatch, fake_fetcher):
    monkeypatch.setattr(dependencies, "get_fetcher", lambda settings: fake_fetcher)
    return fake_fetcher


def test_build_settings_applies_overrides(cli_args, test_settings):
    """命令行参数覆盖配置。"""
    args = cli.build_parser().parse_args([*cli_args, "--log-level", "debug", "run"])
    config = cli.build_settings(args)

    assert config.CATALOG_PATH == test_settings.CATALOG_PATH
    assert config.checkpoint_path == test_settings.STATE_DIR / "checkpoint.json"
    assert config.LOG_LEVEL == "DEBUG"
    assert args.refresh is False


def test_command_is_required():
    """必须指定子命令。"""
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args([])


def test_missing_catalog_exits_non_zero(cli_args, use_fake_fetcher):
    """目录缺失时退出码为 1。"""
    assert cli.main([*cli_args, "run"]) == 1
    assert use_fake_fetcher.calls == []


def test_no_subscriptions_exits_zero(cli_args, write_catalog, use_fake_fetcher, test_settings):
    """没有订阅地址时退出码为 0。"""
    write_catalog({"digital_paid_channel": [{"name": "CHC动作电影"}]})
    assert cli.main([*cli_args, "run"]) == 0
    assert not test_settings.OUTPUT_PATH.exists()


def test_run_writes_output(
    cli_args, write_catalog, sample_catalog_document, use_fake_fetcher, test_settings
):
    """run 写出输出文件。"""
    write_catalog(sample_catalog_document)
    assert cli.main([*cli_args, "run"]) == 0

    output = json.loads(test_settings.OUTPUT_PATH.read_text(encoding="utf-8"))
    assert output["cctv_channels"]["donghua_region"][0]["name"] == "CCTV-13"


def test_step_prints_progress(
    cli_args, write_catalog, sample_catalog_document, use_fake_fetcher, capsys
):
    """step 打印剩余数量或完成状态。"""
    write_catalog(sample_catalog_document)

    assert cli.main([*cli_args, "step"]) == 0
    assert "remaining: 1" in capsys.readouterr().out

    assert cli.main([*cli_args, "step"]) == 0
    assert "all done" in capsys.readouterr().out


def test_oneshot(cli_args, write_catalog, sample_catalog_document, use_fake_fetcher, test_settings):
    """oneshot 写出输出文件。"""
    write_catalog(sample_catalog_document)
    assert cli.main([*cli_args, "oneshot"]) == 0
    assert test_settings.OUTPUT_PATH.exists()


def test_step_without_downloads_exits_zero(
    cli_args, write_catalog, sample_catalog_document, monkeypatch, fetcher_factory, capsys
):
    """订阅全部下载失败时 step 不处理频道，退出码为 0。"""
    write_catalog(sample_catalog_document)
    failing = fetcher_factory({})
    monkeypatch.setattr(dependencies, "get_fetcher", lambda settings: failing)

    assert cli.main([*cli_args, "step"]) == 0
    assert "no subscriptions downloaded, remaining: 6" in capsys.readouterr().out
