"""JSON file persistence for the output store."""

import json
from pathlib import Path

from loguru import logger

from src.core.infrastructure.json_file import read_json, write_json_atomic
from src.modules.channels.domain.exceptions import OutputStoreReadError
from src.modules.channels.domain.output import OutputStore


class JsonOutputRepository:
    """输出文件读写。文件不存在时返回空骨架。"""

    def __init__(self, path: Path) -> None:
        self.path = path

    async def load(self) -> OutputStore:
        try:
            document = await read_json(self.path)
        except FileNotFoundError:
            logger.info(f"No existing output at {self.path}, starting empty")
            return OutputStore()
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise OutputStoreReadError(self.path, str(exc)) from exc

        try:
            return OutputStore.from_document(document)
        except ValueError as exc:
            raise OutputStoreReadError(self.path, str(exc)) from exc

    async def save(self, store: OutputStore) -> None:
        await write_json_atomic(self.path, store.to_document())
        logger.debug(f"Output saved to {self.path} ({len(store)} channels)")
