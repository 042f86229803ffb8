"""JSON catalog loader.

目录文件结构（只读）：
{
    "cctv_channels": {"free_terrestrial_channel": [...], "donghua_region": [...]},
    "provincial_satellite_channel": {"huabei_region": [...], ...},
    "digital_paid_channel": [...],
    "subscription_urls": ["https://...", {"url": "https://..."}]
}
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from src.modules.channels.domain.entities import (
    CATEGORY_PATHS,
    Catalog,
    CatalogChannel,
    ChannelIdentity,
)
from src.modules.channels.domain.exceptions import CatalogReadError


class ChannelRecord(BaseModel):
    """目录中的单个频道条目。"""

    model_config = ConfigDict(extra="allow")

    name: str | list[str]


class SubscriptionRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    url: str


_channel_list_adapter = TypeAdapter(list[ChannelRecord])


class JsonCatalogLoader:
    """Load the channel catalog from a JSON file."""

    def __init__(self, path: Path) -> None:
        self.path = path

    async def load(self) -> Catalog:
        try:
            text = await asyncio.to_thread(self.path.read_text, encoding="utf-8")
            document = json.loads(text)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CatalogReadError(self.path, str(exc)) from exc

        try:
            return self.parse_document(document)
        except (PydanticValidationError, ValueError) as exc:
            raise CatalogReadError(self.path, str(exc)) from exc

    @classmethod
    def parse_document(cls, document: Any) -> Catalog:
        if not isinstance(document, dict):
            raise ValueError("catalog must be a JSON object")

        channels: list[CatalogChannel] = []
        seen: set[str] = set()
        for path in CATEGORY_PATHS:
            raw_entries = path.select(document)
            if raw_entries is None:
                continue
            for record in _channel_list_adapter.validate_python(raw_entries):
                identity = ChannelIdentity.from_raw(record.name)
                if identity.canonical in seen:
                    logger.warning(
                        f"Duplicate catalog channel '{identity.canonical}' "
                        f"in {path.category_id}, keeping first occurrence"
                    )
                    continue
                seen.add(identity.canonical)
                channels.append(CatalogChannel(identity=identity, category=path))

        return Catalog(
            channels=channels,
            subscription_urls=cls._parse_subscription_urls(
                document.get("subscription_urls") or []
            ),
        )

    @staticmethod
    def _parse_subscription_urls(raw_urls: Any) -> list[str]:
        if not isinstance(raw_urls, list):
            raise ValueError("subscription_urls must be a list")

        urls: list[str] = []
        for raw in raw_urls:
            if isinstance(raw, str):
                url = raw.strip()
            elif isinstance(raw, dict):
                try:
                    url = SubscriptionRecord.model_validate(raw).url.strip()
                except PydanticValidationError:
                    url = ""
            else:
                url = ""

            if not url:
                logger.warning(f"Ignoring invalid subscription entry: {raw!r}")
                continue
            urls.append(url)
        return urls
