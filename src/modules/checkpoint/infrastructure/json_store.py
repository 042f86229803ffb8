"""JSON 文件检查点存储。

文件内容：{规范名: {"name": ..., "pendingFiles": [...], "processed": false}}
每次保存整体覆盖（临时文件 + 原子替换），不做增量更新。
"""

import json
from pathlib import Path

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from src.core.infrastructure.json_file import read_json, write_json_atomic
from src.modules.checkpoint.domain.entities import CheckpointMap
from src.modules.checkpoint.domain.exceptions import CheckpointCorruptedError
from src.modules.checkpoint.domain.repository import CheckpointRepository


class JsonCheckpointStore(CheckpointRepository):
    def __init__(self, path: Path) -> None:
        self.path = path

    @property
    def location(self) -> str:
        return str(self.path)

    async def load(self) -> CheckpointMap | None:
        try:
            document = await read_json(self.path)
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CheckpointCorruptedError(str(self.path), str(exc)) from exc

        try:
            return CheckpointMap.from_document(document)
        except (PydanticValidationError, ValueError) as exc:
            raise CheckpointCorruptedError(str(self.path), str(exc)) from exc

    async def save(self, checkpoint: CheckpointMap) -> None:
        await write_json_atomic(self.path, checkpoint.to_document())
        logger.debug(f"Checkpoint saved to {self.path} ({len(checkpoint)} pending)")
