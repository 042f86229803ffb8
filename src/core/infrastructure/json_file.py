"""JSON 文件读写工具。

写入采用“临时文件 + 原子替换”，进程中断时不会留下写了一半的目标文件。
"""

import asyncio
import json
import os
from pathlib import Path
from typing import Any


async def read_json(path: Path) -> Any:
    """读取 JSON 文件。

    Raises:
        FileNotFoundError: 文件不存在
        OSError / json.JSONDecodeError: 读取或解析失败
    """
    text = await asyncio.to_thread(path.read_text, encoding="utf-8")
    return json.loads(text)


async def write_json_atomic(path: Path, data: Any) -> None:
    """整体覆盖写入 JSON 文件。"""
    payload = json.dumps(data, ensure_ascii=False, indent=2)
    await asyncio.to_thread(_write_text_atomic, path, payload)


def _write_text_atomic(path: Path, payload: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.tmp")
    with tmp_path.open("w", encoding="utf-8") as fh:
        fh.write(payload)
        fh.flush()
        os.fsync(fh.fileno())
    tmp_path.replace(path)
