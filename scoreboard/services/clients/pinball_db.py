"""
Pinball catalog client.

The catalog is a single JSON document listing known tables with their
authors, themes and uploaded table files. It is large, so it is downloaded
once and cached for the life of the client.

Cache states:
    idle     nothing loaded, next request starts a download
    loading  a download is in flight, concurrent requests share it
    loaded   served from memory

A failed download returns the cache to idle so a later request retries.
"""
import asyncio
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

from scoreboard.core.config import settings
from scoreboard.core.logging import get_logger
from scoreboard.services.clients.base import BaseClient

logger = get_logger(__name__)


class CatalogFile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    version: Optional[str] = None
    img_url: Optional[str] = Field(None, alias="imgUrl")
    authors: List[str] = Field(default_factory=list)
    features: List[str] = Field(default_factory=list)
    urls: List[Dict[str, Any]] = Field(default_factory=list)
    updated_at: Optional[int] = Field(None, alias="updatedAt")

    @property
    def updated(self) -> Optional[datetime]:
        if self.updated_at is None:
            return None
        return datetime.fromtimestamp(self.updated_at / 1000)


class CatalogEntry(BaseModel):
    """One table in the catalog."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    manufacturer: Optional[str] = None
    year: Optional[int] = None
    type: Optional[str] = None
    ipdb_url: Optional[str] = Field(None, alias="ipdbUrl")
    theme: List[str] = Field(default_factory=list)
    designers: List[str] = Field(default_factory=list)
    table_files: List[CatalogFile] = Field(default_factory=list, alias="tableFiles")
    b2s_files: List[CatalogFile] = Field(default_factory=list, alias="b2sFiles")

    @property
    def title(self) -> str:
        details = ", ".join(str(part) for part in (self.manufacturer, self.year) if part)
        return f"{self.name} ({details})" if details else self.name

    @property
    def newest_table_file(self) -> Optional[CatalogFile]:
        if not self.table_files:
            return None
        return max(self.table_files, key=lambda item: item.updated_at or 0)

    @property
    def image_url(self) -> Optional[str]:
        newest = self.newest_table_file
        return newest.img_url if newest else None


class CacheState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"


class PinballDBClient(BaseClient):
    """Lazily loaded, shared catalog of known tables."""

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(url or settings.PINBALL_DB_URL, timeout=timeout or settings.HTTP_TIMEOUT, transport=transport)
        self.state = CacheState.IDLE
        self._entries: Dict[str, CatalogEntry] = {}
        self._task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()

    async def _download(self) -> Dict[str, CatalogEntry]:
        data = await self.get_json(self.base_url)
        entries = {}
        for item in data:
            entry = CatalogEntry.model_validate(item)
            entries[entry.id] = entry
        logger.info(f"Catalog loaded with {len(entries)} entries")
        return entries

    async def load(self) -> Dict[str, CatalogEntry]:
        """Return the catalog, downloading it at most once at a time."""
        async with self._lock:
            if self.state == CacheState.LOADED:
                return self._entries
            if self.state == CacheState.IDLE:
                self._task = asyncio.ensure_future(self._download())
                self.state = CacheState.LOADING
            task = self._task

        try:
            entries = await asyncio.shield(task)
        except asyncio.CancelledError:
            raise
        except Exception:
            async with self._lock:
                if self._task is task:
                    self.state = CacheState.IDLE
                    self._task = None
            raise

        async with self._lock:
            if self._task is task:
                self._entries = entries
                self.state = CacheState.LOADED
                self._task = None
        return entries

    async def find(self, text: str) -> List[CatalogEntry]:
        """Entries whose name contains text (case-insensitive), by name."""
        entries = await self.load()
        needle = text.lower()
        matches = [entry for entry in entries.values() if needle in entry.name.lower()]
        return sorted(matches, key=lambda entry: entry.name.lower())

    async def find_by_id(self, entry_id: str) -> Optional[CatalogEntry]:
        entries = await self.load()
        return entries.get(entry_id)
