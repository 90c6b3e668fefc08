from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence

from pokecheck.knowledge.fetcher import PokedexFetcher, ProgressCallback, report_progress
from pokecheck.knowledge.pokedex_db import Entity
from pokecheck.storage.backends import CorruptEntryError, KeyValueStore, QuotaExceededError, StorageError
from pokecheck.storage.projections import PROJECTION_LADDER, Projection, project
from pokecheck.utils.logger import get_logger

logger = get_logger(__name__)

CACHE_KEY = "pokemon_data"
CACHE_DURATION_MS = 24 * 60 * 60 * 1000
ASSUMED_CAPACITY_BYTES = 5 * 1024 * 1024
MAX_RECORD_BYTES = 4 * 1024 * 1024


class CacheState(str, Enum):
    EMPTY = "empty"
    FRESH = "fresh"
    STALE = "stale"


def now_ms() -> int:
    return int(time.time() * 1000)


def is_fresh(timestamp_ms: int, current_ms: int) -> bool:
    return current_ms - timestamp_ms < CACHE_DURATION_MS


@dataclass(frozen=True)
class CacheRecord:
    payload: list
    timestamp: int

    def to_json(self) -> str:
        return json.dumps({"payload": self.payload, "timestamp": self.timestamp}, separators=(",", ":"))

    @classmethod
    def from_json(cls, raw: str) -> "CacheRecord":
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("cache record must be an object")
        payload, timestamp = data["payload"], data["timestamp"]
        if not isinstance(payload, list):
            raise ValueError("cache payload must be an array")
        if isinstance(timestamp, bool) or not isinstance(timestamp, int):
            raise ValueError("cache timestamp must be an integer")
        return cls(payload=payload, timestamp=timestamp)


@dataclass(frozen=True)
class StorageUsage:
    used_kb: int
    available_kb: int
    percentage: int


class DatasetCacheManager:
    """Fetch-or-load orchestration over a single cache slot in a key-value store."""

    def __init__(
        self,
        store: Optional[KeyValueStore],
        fetcher: Optional[PokedexFetcher] = None,
        clock: Optional[Callable[[], int]] = None,
        ladder: Sequence[tuple[str, Projection]] = PROJECTION_LADDER,
        key: str = CACHE_KEY,
    ) -> None:
        self.store = store
        self.fetcher = fetcher or PokedexFetcher()
        self.clock = clock or now_ms
        self.ladder = tuple(ladder)
        self.key = key
        self._lock = asyncio.Lock()

    def _read_record(self) -> Optional[CacheRecord]:
        if self.store is None:
            return None
        try:
            raw = self.store.get(self.key)
        except CorruptEntryError as exc:
            logger.warning("cache_corrupt", error=str(exc))
            self.clear_cache()
            return None
        except StorageError as exc:
            logger.warning("cache_read_failed", error=str(exc))
            return None
        if raw is None:
            return None
        try:
            return CacheRecord.from_json(raw)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("cache_corrupt", error=str(exc))
            self.clear_cache()
            return None

    def state(self) -> CacheState:
        record = self._read_record()
        if record is None:
            return CacheState.EMPTY
        return CacheState.FRESH if is_fresh(record.timestamp, self.clock()) else CacheState.STALE

    def load_if_fresh(self) -> Optional[List[Entity]]:
        """Cached entities when the slot is fresh and well-formed; stale or corrupt slots are deleted."""
        record = self._read_record()
        if record is None:
            return None
        if not is_fresh(record.timestamp, self.clock()):
            logger.info("cache_stale", age_ms=self.clock() - record.timestamp)
            self.clear_cache()
            return None
        try:
            return [Entity.from_cached(entry) for entry in record.payload]
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("cache_corrupt", error=str(exc))
            self.clear_cache()
            return None

    async def get_data(self, progress: Optional[ProgressCallback] = None) -> List[Entity]:
        async with self._lock:
            cached = self.load_if_fresh()
            if cached is not None:
                logger.info("cache_hit", entities=len(cached))
                await report_progress(progress, 100)
                return cached

            entities = await self.fetcher.fetch(progress)
            await report_progress(progress, 90)
            self.persist(entities)
            await report_progress(progress, 100)
            return entities

    def persist(self, entities: Sequence[Entity]) -> Optional[str]:
        """Store ``entities`` using the first projection that fits; returns its name or None."""
        if self.store is None:
            return None
        timestamp = self.clock()
        for name, projection in self.ladder:
            record = CacheRecord(payload=project(entities, projection), timestamp=timestamp)
            raw = record.to_json()
            size = len(raw.encode("utf-8"))
            try:
                if size > MAX_RECORD_BYTES:
                    raise QuotaExceededError(f"{name} record is {size / (1024 * 1024):.2f} MB")
                self.store.set(self.key, raw)
            except QuotaExceededError as exc:
                logger.warning("cache_quota_exceeded", tier=name, size_kb=round(size / 1024), error=str(exc))
                self.clear_cache()
                continue
            except StorageError as exc:
                logger.error("cache_write_failed", tier=name, error=str(exc))
                return None
            logger.info("pokedex_cached", tier=name, size_kb=round(size / 1024), entities=len(entities))
            return name
        logger.error("cache_disabled", reason="every projection exceeded the storage quota")
        return None

    def clear_cache(self) -> None:
        if self.store is None:
            return
        try:
            self.store.delete(self.key)
        except StorageError as exc:
            logger.error("cache_clear_failed", error=str(exc))
            return
        logger.info("cache_cleared", key=self.key)

    def storage_usage_info(self) -> StorageUsage:
        """Rough usage of the store against the assumed capacity. Never raises; zeros when unknown."""
        if self.store is None:
            return StorageUsage(0, 0, 0)
        try:
            used = sum(len(key) + len(value) for key, value in self.store.items())
        except Exception as exc:
            logger.error("storage_info_failed", error=str(exc), error_type=type(exc).__name__)
            return StorageUsage(0, 0, 0)
        return StorageUsage(
            used_kb=round(used / 1024),
            available_kb=round((ASSUMED_CAPACITY_BYTES - used) / 1024),
            percentage=round(used / ASSUMED_CAPACITY_BYTES * 100),
        )
