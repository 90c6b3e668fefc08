import pytest

from pokecheck.analysis.search import (
    apply_filters,
    dataset_summary,
    filter_by_generations,
    filter_by_types,
    paginate,
    search,
    unique_generations,
    unique_types,
)
from pokecheck.knowledge.pokedex_db import Entity


def make_entity(entity_id, dex_nr, name, primary, secondary=None, generation=1):
    return Entity.from_dict(
        {
            "id": entity_id,
            "dexNr": dex_nr,
            "generation": generation,
            "names": {"English": name},
            "primaryType": {"names": {"English": primary}},
            "secondaryType": {"names": {"English": secondary}} if secondary else None,
        }
    )


POKEDEX = [
    make_entity("BULBASAUR", 1, "Bulbasaur", "Grass", "Poison"),
    make_entity("CHARMANDER", 4, "Charmander", "Fire"),
    make_entity("SQUIRTLE", 7, "Squirtle", "Water"),
    make_entity("PIKACHU", 25, "Pikachu", "Electric"),
    make_entity("CHIKORITA", 152, "Chikorita", "Grass", generation=2),
    make_entity("TOTODILE", 158, "Totodile", "Water", generation=2),
    make_entity("TREECKO", 252, "Treecko", "Grass", generation=3),
]


def ids(entities):
    return [e.id for e in entities]


def test_search_by_name_is_case_insensitive():
    assert ids(search(POKEDEX, "CHAR")) == ["CHARMANDER"]
    assert ids(search(POKEDEX, "  pika ")) == ["PIKACHU"]


def test_search_by_dex_number_substring():
    assert ids(search(POKEDEX, "25")) == ["PIKACHU", "TREECKO"]


def test_search_by_type_names():
    assert ids(search(POKEDEX, "poison")) == ["BULBASAUR"]
    assert ids(search(POKEDEX, "water")) == ["SQUIRTLE", "TOTODILE"]


def test_blank_search_returns_input():
    assert search(POKEDEX, "") == POKEDEX
    assert search(POKEDEX, "   ") == POKEDEX


def test_search_is_idempotent():
    for term in ["a", "gr", "1", "poison", "zzz"]:
        once = search(POKEDEX, term)
        assert search(once, term) == once


def test_filter_by_types_uses_or_semantics():
    assert ids(filter_by_types(POKEDEX, ["fire", "Electric"])) == ["CHARMANDER", "PIKACHU"]
    assert ids(filter_by_types(POKEDEX, ["poison"])) == ["BULBASAUR"]
    assert filter_by_types(POKEDEX, []) == POKEDEX


def test_filter_by_generations():
    assert ids(filter_by_generations(POKEDEX, [2, 3])) == ["CHIKORITA", "TOTODILE", "TREECKO"]
    assert filter_by_generations(POKEDEX, []) == POKEDEX


def test_apply_filters_composes_with_and_semantics():
    assert ids(apply_filters(POKEDEX, "", ["Grass"], [1, 2])) == ["BULBASAUR", "CHIKORITA"]
    assert ids(apply_filters(POKEDEX, "to", ["Water"], [2])) == ["TOTODILE"]
    assert apply_filters(POKEDEX, "to", ["Fire"], []) == []
    assert apply_filters(POKEDEX) == POKEDEX


def test_facets_are_sorted_and_unique():
    assert unique_types(POKEDEX) == ["Electric", "Fire", "Grass", "Poison", "Water"]
    assert unique_generations(POKEDEX) == [1, 2, 3]


def test_paginate_clamps_page():
    page = paginate(POKEDEX, page=2, per_page=3)
    assert ids(page.items) == ["PIKACHU", "CHIKORITA", "TOTODILE"]
    assert (page.page, page.total_pages, page.total) == (2, 3, 7)
    assert paginate(POKEDEX, page=99, per_page=3).page == 3
    assert paginate([], page=1).total_pages == 1
    with pytest.raises(ValueError):
        paginate(POKEDEX, per_page=0)


def test_dataset_summary():
    summary = dataset_summary(POKEDEX)
    assert summary.total == 7
    assert summary.type_count == 5
    assert summary.generations == (1, 2, 3)
