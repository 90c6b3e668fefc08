from pokecheck.analysis.evolution import (
    CYCLE,
    DANGLING,
    MULTI_PARENT,
    EvolutionRequirement,
    are_in_same_family,
    build_evolution_forest,
    direct_predecessors,
    direct_successors,
    evolution_family,
    evolution_stage,
    find_roots,
    iter_forest,
)
from pokecheck.knowledge.pokedex_db import Entity


def make_entity(entity_id, dex_nr=1, evolutions=(), name=None):
    return Entity.from_dict(
        {
            "id": entity_id,
            "dexNr": dex_nr,
            "names": {"English": name or entity_id.title()},
            "primaryType": {"names": {"English": "Normal"}},
            "evolutions": [
                evo if isinstance(evo, dict) else {"id": evo, "candies": 25, "item": None, "quests": []}
                for evo in evolutions
            ],
        }
    )


def shape(forest):
    return [(node.entity.id, [c.entity.id for c in node.children]) for node in forest]


def test_two_stage_example():
    bulba = Entity.from_dict(
        {
            "id": "a",
            "dexNr": 1,
            "names": {"English": "Bulba"},
            "primaryType": {"names": {"English": "Grass"}},
            "secondaryType": {"names": {"English": "Poison"}},
            "evolutions": [{"id": "b", "candies": 25}],
        }
    )
    ivy = Entity.from_dict(
        {
            "id": "b",
            "dexNr": 2,
            "names": {"English": "Ivy"},
            "primaryType": {"names": {"English": "Grass"}},
            "secondaryType": {"names": {"English": "Poison"}},
            "evolutions": [],
        }
    )
    forest = build_evolution_forest(bulba, [bulba, ivy])
    assert len(forest) == 1
    root = forest[0]
    assert root.entity.id == "a"
    assert root.requirement is None
    assert [child.entity.id for child in root.children] == ["b"]
    assert root.children[0].requirement == EvolutionRequirement(candies=25)


def test_branching_children_follow_evolution_order():
    eevee = make_entity("eevee", 133, ["vaporeon", "jolteon", "flareon"])
    collection = [
        make_entity("flareon", 136),
        make_entity("jolteon", 135),
        eevee,
        make_entity("vaporeon", 134),
    ]
    forest = build_evolution_forest(collection[0], collection)
    assert shape(forest) == [("eevee", ["vaporeon", "jolteon", "flareon"])]


def test_requirement_comes_from_matching_parent_record():
    parent = make_entity(
        "gloom",
        44,
        [
            {"id": "vileplume", "candies": 100, "item": None, "quests": []},
            {"id": "bellossom", "candies": 100, "item": "ITEM_SUN_STONE", "quests": ["QUEST_X"]},
        ],
    )
    collection = [parent, make_entity("vileplume", 45), make_entity("bellossom", 182)]
    root = build_evolution_forest(parent, collection)[0]
    vileplume, bellossom = root.children
    assert vileplume.requirement == EvolutionRequirement(candies=100)
    assert bellossom.requirement == EvolutionRequirement(100, "ITEM_SUN_STONE", ("QUEST_X",))
    assert bellossom.requirement.describe() == "100 candies, item sun stone, special quest"


def test_family_closure_is_symmetric():
    collection = [
        make_entity("a", 1, ["b"]),
        make_entity("b", 2, ["c"]),
        make_entity("c", 3),
        make_entity("x", 4, ["y"]),
        make_entity("y", 5),
    ]
    families = [{e.id for e in evolution_family(entity, collection)} for entity in collection[:3]]
    assert families[0] == families[1] == families[2] == {"a", "b", "c"}
    assert {e.id for e in evolution_family(collection[3], collection)} == {"x", "y"}


def test_forest_from_middle_member_finds_root():
    collection = [make_entity("a", 1, ["b"]), make_entity("b", 2, ["c"]), make_entity("c", 3)]
    forest = build_evolution_forest(collection[2], collection)
    assert shape(forest) == [("a", ["b"])]
    assert [(d, n.entity.id) for d, n in iter_forest(forest)] == [(0, "a"), (1, "b"), (2, "c")]


def test_forest_is_idempotent():
    collection = [
        make_entity("a", 1, ["b", "c"]),
        make_entity("b", 2, ["d"]),
        make_entity("c", 3),
        make_entity("d", 4),
    ]
    first = build_evolution_forest(collection[1], collection)
    second = build_evolution_forest(collection[1], collection)
    assert [n.edges() for n in first] == [n.edges() for n in second]
    assert shape(first) == shape(second)


def test_dangling_reference_is_dropped_and_reported():
    dropped = []
    entity = make_entity("a", 1, ["ghost", "b"])
    forest = build_evolution_forest(entity, [entity, make_entity("b", 2)], dropped.append)
    assert shape(forest) == [("a", ["b"])]
    assert [(d.parent_id, d.child_id, d.reason) for d in dropped] == [("a", "ghost", DANGLING)]


def test_cycle_terminates_and_reports_edge():
    dropped = []
    collection = [make_entity("a", 1, ["b"]), make_entity("b", 2, ["a"])]
    forest = build_evolution_forest(collection[0], collection, dropped.append)
    ids = [node.entity.id for _, node in iter_forest(forest)]
    assert sorted(ids) == ["a", "b"]
    assert len(forest) == 1
    assert [d.reason for d in dropped] == [CYCLE]


def test_cycle_hanging_off_a_root():
    dropped = []
    collection = [
        make_entity("root", 1, ["b"]),
        make_entity("b", 2, ["c"]),
        make_entity("c", 3, ["b"]),
    ]
    forest = build_evolution_forest(collection[2], collection, dropped.append)
    assert [(d, n.entity.id) for d, n in iter_forest(forest)] == [(0, "root"), (1, "b"), (2, "c")]
    assert [(d.parent_id, d.child_id, d.reason) for d in dropped] == [("c", "b", CYCLE)]


def test_multi_parent_entity_appears_once():
    dropped = []
    collection = [
        make_entity("p1", 1, ["child"]),
        make_entity("p2", 2, ["child"]),
        make_entity("child", 3),
    ]
    forest = build_evolution_forest(collection[2], collection, dropped.append)
    ids = [node.entity.id for _, node in iter_forest(forest)]
    assert sorted(ids) == ["child", "p1", "p2"]
    assert len(ids) == 3
    assert [root.entity.id for root in forest] == ["p1", "p2"]
    assert [d.reason for d in dropped] == [MULTI_PARENT]


def test_roots_preserve_discovery_order():
    collection = [
        make_entity("p1", 1, ["child"]),
        make_entity("p2", 2, ["child"]),
        make_entity("child", 3),
    ]
    family = evolution_family(collection[2], collection)
    assert [e.id for e in find_roots(family)] == ["p1", "p2"]


def test_standalone_entity_is_its_own_root():
    lonely = make_entity("tauros", 128)
    forest = build_evolution_forest(lonely, [lonely])
    assert shape(forest) == [("tauros", [])]


def test_direct_neighbours():
    collection = [
        make_entity("a", 1, ["b", "missing"]),
        make_entity("b", 2, ["c"]),
        make_entity("c", 3),
    ]
    assert [e.id for e in direct_predecessors(collection[1], collection)] == ["a"]
    assert [e.id for e in direct_successors(collection[0], collection)] == ["b"]
    assert direct_predecessors(collection[0], collection) == []


def test_evolution_stage():
    collection = [make_entity("a", 1, ["b"]), make_entity("b", 2, ["c"]), make_entity("c", 3)]
    assert [evolution_stage(e, collection) for e in collection] == [0, 1, 2]


def test_evolution_stage_terminates_on_cycle():
    collection = [make_entity("a", 1, ["b"]), make_entity("b", 2, ["a"])]
    assert evolution_stage(collection[0], collection) == 1


def test_are_in_same_family():
    collection = [make_entity("a", 1, ["b"]), make_entity("b", 2), make_entity("z", 3)]
    assert are_in_same_family(collection[1], collection[0], collection)
    assert not are_in_same_family(collection[0], collection[2], collection)
