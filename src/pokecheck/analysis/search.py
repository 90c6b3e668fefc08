from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from pokecheck.knowledge.pokedex_db import Entity

DEFAULT_PAGE_SIZE = 24


def _matches_term(entity: Entity, term: str) -> bool:
    fields = [entity.english_name, str(entity.dex_nr), entity.primary_type_name]
    if entity.secondary_type is not None:
        fields.append(entity.secondary_type.english)
    return any(term in value.lower() for value in fields)


def search(collection: Sequence[Entity], term: str) -> List[Entity]:
    """Case-insensitive substring match on name, dex number and type names."""
    if not term or not term.strip():
        return list(collection)
    needle = term.strip().lower()
    return [entity for entity in collection if _matches_term(entity, needle)]


def filter_by_types(collection: Sequence[Entity], types: Iterable[str]) -> List[Entity]:
    wanted = {t.lower() for t in types}
    if not wanted:
        return list(collection)
    return [e for e in collection if any(name.lower() in wanted for name in e.type_names)]


def filter_by_generations(collection: Sequence[Entity], generations: Iterable[int]) -> List[Entity]:
    wanted = set(generations)
    if not wanted:
        return list(collection)
    return [e for e in collection if e.generation in wanted]


def apply_filters(
    collection: Sequence[Entity],
    term: str = "",
    types: Iterable[str] = (),
    generations: Iterable[int] = (),
) -> List[Entity]:
    result = search(collection, term)
    result = filter_by_types(result, types)
    return filter_by_generations(result, generations)


def unique_types(collection: Sequence[Entity]) -> List[str]:
    return sorted({name for entity in collection for name in entity.type_names})


def unique_generations(collection: Sequence[Entity]) -> List[int]:
    return sorted({entity.generation for entity in collection})


@dataclass(frozen=True)
class Page:
    items: Tuple[Entity, ...]
    page: int
    total_pages: int
    total: int


def paginate(items: Sequence[Entity], page: int = 1, per_page: int = DEFAULT_PAGE_SIZE) -> Page:
    if per_page <= 0:
        raise ValueError("per_page must be positive")
    total_pages = max(1, math.ceil(len(items) / per_page))
    page = min(max(page, 1), total_pages)
    start = (page - 1) * per_page
    return Page(items=tuple(items[start : start + per_page]), page=page, total_pages=total_pages, total=len(items))


@dataclass(frozen=True)
class DatasetSummary:
    total: int
    type_count: int
    generations: Tuple[int, ...]


def dataset_summary(collection: Sequence[Entity]) -> DatasetSummary:
    return DatasetSummary(
        total=len(collection),
        type_count=len(unique_types(collection)),
        generations=tuple(unique_generations(collection)),
    )
