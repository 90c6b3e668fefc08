from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from pokecheck.analysis.effectiveness import TypeProfile, load_type_profile
from pokecheck.analysis.evolution import DroppedEdgeHook, EvolutionNode, build_evolution_forest
from pokecheck.analysis.search import DEFAULT_PAGE_SIZE, Page, apply_filters, paginate
from pokecheck.knowledge.fetcher import PokedexFetcher, ProgressCallback, report_progress
from pokecheck.knowledge.pokedex_db import Entity
from pokecheck.knowledge.type_chart import TypeChartCache
from pokecheck.storage.backends import FileStore, QuotaExceededError
from pokecheck.storage.cache_manager import DatasetCacheManager, StorageUsage
from pokecheck.utils.logger import get_logger
from pokecheck.utils.settings import Settings

logger = get_logger(__name__)


class EntityNotFoundError(KeyError):
    pass


def _is_quota_error(exc: BaseException) -> bool:
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, QuotaExceededError) or "quota" in str(current).lower():
            return True
        current = current.__cause__ or current.__context__
    return False


def describe_load_error(exc: BaseException, usage: Optional[StorageUsage] = None) -> str:
    message = str(exc) or type(exc).__name__
    if _is_quota_error(exc) or "quota" in message.lower():
        percentage = usage.percentage if usage else 0
        return (
            f"Storage quota exceeded ({percentage}% used). "
            "Try clearing the local cache and loading again."
        )
    return message


class PokedexSession:
    """One consumer of the dataset (a screen, a CLI invocation).

    Once closed, loads that are still in flight complete but their results and
    progress updates are discarded.
    """

    def __init__(
        self,
        cache: DatasetCacheManager,
        type_charts: Optional[TypeChartCache] = None,
        on_dropped_edge: Optional[DroppedEdgeHook] = None,
    ) -> None:
        self.cache = cache
        self.type_charts = type_charts or TypeChartCache()
        self.on_dropped_edge = on_dropped_edge
        self.entities: List[Entity] = []
        self._by_id: Dict[str, Entity] = {}
        self._closed = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "PokedexSession":
        fetcher = PokedexFetcher(url=settings.data_url, timeout=settings.request_timeout)
        store = FileStore(settings.cache_dir, quota_bytes=settings.storage_quota)
        return cls(
            cache=DatasetCacheManager(store=store, fetcher=fetcher),
            type_charts=TypeChartCache(source=settings.type_chart),
        )

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    async def load(self, progress: Optional[ProgressCallback] = None) -> Optional[List[Entity]]:
        async def relay(value: int) -> None:
            if not self._closed:
                await report_progress(progress, value)

        entities = await self.cache.get_data(relay)
        if self._closed:
            logger.info("load_discarded", reason="session closed", entities=len(entities))
            return None
        self.entities = entities
        self._by_id = {}
        for entity in entities:
            self._by_id.setdefault(entity.id, entity)
        return entities

    def entity(self, entity_id: str) -> Entity:
        try:
            return self._by_id[entity_id]
        except KeyError:
            raise EntityNotFoundError(entity_id) from None

    def find(self, query: str) -> Entity:
        """Look up by id, dex number or English name."""
        if query in self._by_id:
            return self._by_id[query]
        needle = query.strip().lower()
        for entity in self.entities:
            if str(entity.dex_nr) == needle or entity.english_name.lower() == needle:
                return entity
        raise EntityNotFoundError(query)

    def filtered(
        self,
        term: str = "",
        types: Iterable[str] = (),
        generations: Iterable[int] = (),
        page: int = 1,
        per_page: int = DEFAULT_PAGE_SIZE,
    ) -> Page:
        return paginate(apply_filters(self.entities, term, types, generations), page, per_page)

    def evolution_forest(self, entity_id: str) -> List[EvolutionNode]:
        return build_evolution_forest(self.entity(entity_id), self.entities, self.on_dropped_edge)

    async def type_profile(self, entity_id: str) -> Optional[TypeProfile]:
        entity = self.entity(entity_id)
        profile = await load_type_profile(entity, self.type_charts)
        if self._closed:
            return None
        return profile

    def clear_cache(self) -> None:
        self.cache.clear_cache()
