"""Spreadsheet export repository with a per-dataset TTL cache.

Fetch failures never escape this module: the last good rows for a dataset
are served instead, or an empty list when nothing was ever fetched.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List

import httpx

from kaneshiro_pipeline.config import DATASETS, SheetsConfig
from kaneshiro_pipeline.errors import ConfigError, SourceUnavailable
from kaneshiro_pipeline.ingestion import decode_csv

logger = logging.getLogger(__name__)

Row = Dict[str, str]


@dataclass(frozen=True)
class CacheEntry:
    rows: tuple[Row, ...]
    fetched_at: float


def _copy_rows(rows: tuple[Row, ...] | list[Row]) -> list[Row]:
    return [dict(row) for row in rows]


class SheetsRepository:
    """Fetches the orders/payouts/staff tabs of one spreadsheet document."""

    def __init__(
        self,
        config: SheetsConfig,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self._client = client
        self._owns_client = client is None
        self._clock = clock
        self._cache: Dict[str, CacheEntry] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    async def __aenter__(self) -> "SheetsRepository":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.fetch_timeout, follow_redirects=True)
        return self._client

    def _lock(self, dataset: str) -> asyncio.Lock:
        lock = self._locks.get(dataset)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[dataset] = lock
        return lock

    def cache_entry(self, dataset: str) -> CacheEntry | None:
        return self._cache.get(dataset)

    def _fresh_entry(self, dataset: str) -> CacheEntry | None:
        entry = self._cache.get(dataset)
        if entry is None:
            return None
        age = self._clock() - entry.fetched_at
        if age < self.config.cache_ttl:
            logger.debug("Using cached %s data (%.0fs old)", dataset, age)
            return entry
        return None

    async def _download(self, dataset: str) -> str:
        url = self.config.export_url(dataset)
        timeout = self.config.fetch_timeout if self.config.fetch_timeout is not None else httpx.USE_CLIENT_DEFAULT
        try:
            response = await self._http().get(url, timeout=timeout)
        except httpx.HTTPError as exc:
            raise SourceUnavailable(dataset, f"request failed: {exc!r}") from exc

        if not response.is_success:
            raise SourceUnavailable(dataset, f"HTTP status {response.status_code}")
        text = response.text
        if text.lstrip().startswith("<"):
            raise SourceUnavailable(dataset, "received HTML instead of CSV; check sharing settings")
        return text

    async def fetch(self, dataset: str) -> List[Row]:
        """Return decoded rows for ``dataset``, from cache while it is fresh."""
        if dataset not in DATASETS:
            raise ConfigError(f"Unknown dataset: {dataset!r} (expected one of {list(DATASETS)})")

        async with self._lock(dataset):
            entry = self._fresh_entry(dataset)
            if entry is not None:
                return _copy_rows(entry.rows)

            try:
                text = await self._download(dataset)
            except SourceUnavailable as exc:
                previous = self._cache.get(dataset)
                if previous is not None:
                    logger.warning("Fetch failed for %s, serving stale cache: %s", dataset, exc.reason)
                    return _copy_rows(previous.rows)
                logger.warning("Fetch failed for %s and no cache exists: %s", dataset, exc.reason)
                return []

            rows = decode_csv(text)
            self._cache[dataset] = CacheEntry(rows=tuple(rows), fetched_at=self._clock())
            logger.info("Fetched %d rows of %s", len(rows), dataset)
            return _copy_rows(rows)

    async def fetch_all(self) -> Dict[str, List[Row]]:
        results = await asyncio.gather(*(self.fetch(dataset) for dataset in DATASETS))
        return dict(zip(DATASETS, results))

    def clear(self) -> None:
        self._cache.clear()

    async def refresh(self) -> Dict[str, List[Row]]:
        logger.info("Refreshing all datasets")
        self.clear()
        return await self.fetch_all()
