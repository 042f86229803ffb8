"""检查点单元测试。"""

import json
from pathlib import Path

import pytest

from src.modules.channels.infrastructure.catalog_loader import JsonCatalogLoader
from src.modules.checkpoint.domain.entities import (
    CheckpointEntry,
    CheckpointMap,
    CheckpointState,
)
from src.modules.checkpoint.domain.exceptions import (
    CheckpointCorruptedError,
    CheckpointMissingError,
)
from src.modules.checkpoint.infrastructure.json_store import JsonCheckpointStore

pytestmark = pytest.mark.anyio


@pytest.fixture
def catalog(sample_catalog_document):
    return JsonCatalogLoader.parse_document(sample_catalog_document)


@pytest.fixture
def files(tmp_path: Path) -> list[Path]:
    return [tmp_path / "subscription_000.txt", tmp_path / "subscription_001.txt"]


# ============================================
# 检查点映射测试
# ============================================


class TestCheckpointMap:
    """CheckpointMap 测试。"""

    def test_create_one_entry_per_channel(self, catalog, files):
        """每个目录频道一个条目，待扫描文件为完整文件集合。"""
        checkpoint = CheckpointMap.create(catalog, files)

        assert list(checkpoint) == [c.canonical for c in catalog.channels]
        entry = checkpoint.get("CCTV5")
        assert entry.name == ["CCTV5", "CCTV-5 体育"]
        assert entry.pending_paths == files
        assert entry.processed is False
        assert checkpoint.state is CheckpointState.ACTIVE

    def test_entries_do_not_share_pending_list(self, catalog, files):
        """条目之间不共享待扫描文件列表。"""
        checkpoint = CheckpointMap.create(catalog, files)
        checkpoint.get("CCTV-1").pending_files.clear()
        assert len(checkpoint.get("CCTV5").pending_files) == 2

    def test_claim_in_catalog_order_without_mutation(self, catalog, files):
        """按目录顺序认领，认领本身不修改映射。"""
        checkpoint = CheckpointMap.create(catalog, files)
        claimed = checkpoint.claim(2)

        assert [key for key, _ in claimed] == ["CCTV-1", "CCTV5"]
        assert len(checkpoint) == 6

    def test_claim_larger_than_remaining(self, catalog, files):
        """批次大于剩余条目时全部认领。"""
        checkpoint = CheckpointMap.create(catalog, files)
        assert len(checkpoint.claim(50)) == 6

    @pytest.mark.parametrize("limit", [0, -1])
    def test_claim_rejects_non_positive(self, catalog, files, limit):
        """批次大小必须为正数。"""
        with pytest.raises(ValueError):
            CheckpointMap.create(catalog, files).claim(limit)

    def test_resolve_until_exhausted(self, catalog, files):
        """全部条目删除后状态为 EXHAUSTED。"""
        checkpoint = CheckpointMap.create(catalog, files)
        for key in list(checkpoint):
            checkpoint.resolve(key)
        assert "CCTV-1" not in checkpoint
        assert checkpoint.state is CheckpointState.EXHAUSTED
        assert checkpoint.claim(5) == []

    def test_rebase_replaces_pending_files_of_remaining_entries(
        self, tmp_path, catalog, files
    ):
        """rebase 只替换剩余条目的待扫描文件，已删除的条目不会恢复。"""
        checkpoint = CheckpointMap.create(catalog, files)
        checkpoint.resolve("CCTV-1")
        fresh = [tmp_path / "fresh" / "subscription_000.txt"]

        checkpoint.rebase(fresh)

        assert "CCTV-1" not in checkpoint
        assert len(checkpoint) == 5
        assert all(checkpoint.get(key).pending_paths == fresh for key in checkpoint)

    def test_document_uses_camel_case(self, catalog, files):
        """持久化字段名为 pendingFiles。"""
        document = CheckpointMap.create(catalog, files).to_document()
        assert document["CCTV-1"] == {
            "name": "CCTV-1",
            "pendingFiles": [str(p) for p in files],
            "processed": False,
        }

    def test_processed_entries_are_dropped_on_load(self):
        """processed=true 的条目按已删除处理。"""
        checkpoint = CheckpointMap.from_document(
            {
                "A": {"name": "A", "pendingFiles": ["/x"], "processed": True},
                "B": {"name": ["B", "b"], "pendingFiles": ["/x"], "processed": False},
            }
        )
        assert list(checkpoint) == ["B"]
        assert checkpoint.get("B").identity.canonical == "B"

    def test_entry_accepts_field_name(self):
        """条目同时接受字段名与别名。"""
        entry = CheckpointEntry(name="A", pending_files=["/x"])
        assert entry.pending_paths == [Path("/x")]


# ============================================
# JSON 存储测试
# ============================================


class TestJsonCheckpointStore:
    """JsonCheckpointStore 测试。"""

    async def test_missing(self, tmp_path: Path):
        """文件不存在时返回 None，状态为 MISSING。"""
        store = JsonCheckpointStore(tmp_path / "checkpoint.json")
        assert await store.load() is None
        assert await store.state() is CheckpointState.MISSING

    async def test_round_trip_preserves_order(self, tmp_path: Path, catalog, files):
        """保存后重新读取，条目顺序不变。"""
        store = JsonCheckpointStore(tmp_path / "state" / "checkpoint.json")
        checkpoint = CheckpointMap.create(catalog, files)
        checkpoint.resolve("CCTV-1")
        await store.save(checkpoint)

        loaded = await store.load()
        assert list(loaded) == ["CCTV5", "CCTV-13", "北京卫视", "东方卫视", "CHC动作电影"]
        assert await store.state() is CheckpointState.ACTIVE

        raw = json.loads((tmp_path / "state" / "checkpoint.json").read_text("utf-8"))
        assert "北京卫视" in raw

    async def test_empty_map_is_exhausted(self, tmp_path: Path):
        """空映射保存后状态为 EXHAUSTED。"""
        store = JsonCheckpointStore(tmp_path / "checkpoint.json")
        await store.save(CheckpointMap())
        assert await store.state() is CheckpointState.EXHAUSTED

    @pytest.mark.parametrize(
        "content",
        ["{broken", "[]", '{"A": {"pendingFiles": []}}'],
    )
    async def test_corrupted(self, tmp_path: Path, content):
        """无法解析或结构不符的文件抛出 CheckpointCorruptedError。"""
        path = tmp_path / "checkpoint.json"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(CheckpointCorruptedError):
            await JsonCheckpointStore(path).load()


def test_missing_error_is_fatal():
    """检查点缺失属于致命错误。"""
    error = CheckpointMissingError("/tmp/checkpoint.json")
    assert error.fatal is True
    assert error.error_code == "CHECKPOINT_MISSING"
