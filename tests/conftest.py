"""
pytest 配置和共享 fixtures。

测试分层：
- unit/: 单元测试（不依赖网络，文件状态放在 tmp_path）

使用方法：
    # 运行所有测试
    pytest

    # 只运行单元测试
    pytest tests/unit/
"""

import json
from pathlib import Path
from typing import Any

import pytest

from src.core.config import Settings
from src.modules.sources.domain.exceptions import FetchError

# ============================================
# 配置 Fixtures
# ============================================


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """测试环境配置，所有文件都在 tmp_path 下。"""
    return Settings(
        ENVIRONMENT="local",
        CATALOG_PATH=tmp_path / "channel.json",
        OUTPUT_PATH=tmp_path / "output.json",
        STATE_DIR=tmp_path / "state",
        BATCH_SIZE=5,
        MAX_SOURCES_PER_CHANNEL=100,
        MAX_EXPANDED_NAMES=50,
    )


# ============================================
# 示例数据 Fixtures
# ============================================


@pytest.fixture
def sample_catalog_document() -> dict[str, Any]:
    """示例频道目录。"""
    return {
        "cctv_channels": {
            "free_terrestrial_channel": [
                {"name": "CCTV-1"},
                {"name": ["CCTV5", "CCTV-5 体育"]},
            ],
            "donghua_region": [{"name": "CCTV-13"}],
        },
        "provincial_satellite_channel": {
            "huabei_region": [{"name": "北京卫视"}],
            "dongbei_region": [],
            "huadong_region": [{"name": "东方卫视"}],
            "zhongnan_region": [],
            "xinan_region": [],
            "xibei_region": [],
            "characteristic_city_channel": [],
        },
        "digital_paid_channel": [{"name": "CHC动作电影"}],
        "subscription_urls": [
            "https://sub.test/a.m3u",
            {"url": "https://sub.test/b.txt"},
        ],
    }


@pytest.fixture
def write_catalog(test_settings: Settings):
    """把目录写入 test_settings.CATALOG_PATH。"""

    def _write(document: dict[str, Any]) -> Path:
        test_settings.CATALOG_PATH.write_text(
            json.dumps(document, ensure_ascii=False), encoding="utf-8"
        )
        return test_settings.CATALOG_PATH

    return _write


SAMPLE_M3U = """#EXTM3U
#EXTINF:-1 tvg-name="CCTV1" group-title="央视",CCTV-1 综合
http://a.test/cctv1/1.m3u8
#EXTINF:-1,CCTV-5
http://a.test/cctv5/1.m3u8
#EXTINF:-1,北京卫视
http://[2001:db8::1]/bjws.m3u8
#EXTINF:-1,北京卫视
http://a.test/bjws/1.m3u8
"""

SAMPLE_TXT = """央视频道,#genre#
CCTV-1,http://b.test/cctv1.m3u8
CCTV 1,http://a.test/cctv1/1.m3u8
CCTV-13,http://b.test/cctv13.m3u8
东方卫视,http://b.test/dfws.m3u8
# 注释行
坏行
"""


class FakeFetcher:
    """按 URL 返回预设内容的抓取器；未配置的 URL 抛出 FetchError。"""

    def __init__(self, responses: dict[str, str]) -> None:
        self.responses = responses
        self.calls: list[str] = []

    async def fetch(self, url: str) -> str:
        self.calls.append(url)
        if url not in self.responses:
            raise FetchError(url, "connection refused")
        return self.responses[url]


@pytest.fixture
def fake_fetcher() -> FakeFetcher:
    return FakeFetcher(
        {
            "https://sub.test/a.m3u": SAMPLE_M3U,
            "https://sub.test/b.txt": SAMPLE_TXT,
        }
    )


@pytest.fixture
def sample_m3u() -> str:
    return SAMPLE_M3U


@pytest.fixture
def sample_txt() -> str:
    return SAMPLE_TXT


@pytest.fixture
def fetcher_factory():
    """构造自定义响应的 FakeFetcher。"""
    return FakeFetcher
