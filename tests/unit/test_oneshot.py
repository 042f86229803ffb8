"""一次性模糊匹配服务单元测试。"""

import json

import pytest

from src.modules.channels.domain.entities import CategoryPath, SingleName
from src.modules.channels.domain.output import MatchedChannel, OutputStore
from src.modules.channels.infrastructure.catalog_loader import JsonCatalogLoader
from src.modules.pipeline.infrastructure.dependencies import get_oneshot_service

pytestmark = pytest.mark.anyio

FREE = CategoryPath(("cctv_channels", "free_terrestrial_channel"))
DONGHUA = CategoryPath(("cctv_channels", "donghua_region"))


@pytest.fixture
def catalog(sample_catalog_document):
    return JsonCatalogLoader.parse_document(sample_catalog_document)


class TestOneShotMatchService:
    """一次性匹配服务测试。"""

    async def test_fuzzy_matching_collects_related_names(
        self, test_settings, catalog, fake_fetcher
    ):
        """包含式匹配会收集名称相近频道的源。"""
        service = get_oneshot_service(test_settings, fetcher=fake_fetcher)
        store = await service.run(catalog)

        cctv1 = store.entries(FREE)[0]
        # 包含式匹配：CCTV-13 的源也会归到 CCTV-1
        assert cctv1.sources == (
            "http://a.test/cctv1/1.m3u8",
            "http://b.test/cctv1.m3u8",
            "http://b.test/cctv13.m3u8",
        )
        assert len(store.entries(DONGHUA)[0].sources) == 3
        assert not store.contains("CHC动作电影")

    async def test_output_is_overwritten(self, test_settings, catalog, fake_fetcher):
        """结果整体覆盖原有输出文件。"""
        stale = OutputStore()
        stale.add(FREE, MatchedChannel.create(SingleName("旧频道"), ["http://old.test/1"]))
        test_settings.OUTPUT_PATH.write_text(
            json.dumps(stale.to_document(), ensure_ascii=False), encoding="utf-8"
        )

        await get_oneshot_service(test_settings, fetcher=fake_fetcher).run(catalog)

        document = json.loads(test_settings.OUTPUT_PATH.read_text(encoding="utf-8"))
        names = [e["name"] for e in document["cctv_channels"]["free_terrestrial_channel"]]
        assert "旧频道" not in names
        assert names[0] == "CCTV-1"

    async def test_failed_and_unparseable_subscriptions_skipped(
        self, test_settings, catalog, fetcher_factory, sample_txt
    ):
        """抓取失败或无法解析的订阅被跳过。"""
        fetcher = fetcher_factory(
            {
                "https://sub.test/a.m3u": "<html>blocked</html>",
                "https://sub.test/b.txt": sample_txt,
            }
        )
        store = await get_oneshot_service(test_settings, fetcher=fetcher).run(catalog)

        assert store.contains("东方卫视")
        assert not store.contains("北京卫视")

    def test_match_is_pure(self, test_settings, catalog, fake_fetcher):
        """match() 只做匹配，不发起抓取。"""
        service = get_oneshot_service(test_settings, fetcher=fake_fetcher)
        store = service.match(catalog, {"北京卫视 HD": ["http://x.test/bj"]})

        assert len(store) == 1
        assert store.contains("北京卫视")
        assert fake_fetcher.calls == []
