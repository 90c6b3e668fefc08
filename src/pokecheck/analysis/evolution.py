from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Set, Tuple

from pokecheck.knowledge.pokedex_db import Entity, Evolution
from pokecheck.utils.format import format_requirement
from pokecheck.utils.logger import get_logger

logger = get_logger(__name__)

DANGLING = "dangling"
CYCLE = "cycle"
MULTI_PARENT = "multi_parent"


@dataclass(frozen=True)
class EvolutionRequirement:
    candies: int = 0
    item: Optional[str] = None
    quests: Tuple[str, ...] = ()

    @classmethod
    def from_evolution(cls, evolution: Evolution) -> "EvolutionRequirement":
        return cls(candies=evolution.candies, item=evolution.item, quests=tuple(evolution.quests))

    def describe(self) -> str:
        return format_requirement(self.candies, self.item, self.quests)


@dataclass
class EvolutionNode:
    entity: Entity
    children: List["EvolutionNode"] = field(default_factory=list)
    # how this node is reached from its parent; None for roots
    requirement: Optional[EvolutionRequirement] = None

    def edges(self) -> List[Tuple[str, str, Optional[EvolutionRequirement]]]:
        out = []
        for child in self.children:
            out.append((self.entity.id, child.entity.id, child.requirement))
            out.extend(child.edges())
        return out


@dataclass(frozen=True)
class DroppedEdge:
    parent_id: str
    child_id: str
    reason: str


DroppedEdgeHook = Callable[[DroppedEdge], None]


class EvolutionIndex:
    """Id lookup and reverse (evolves-from) edges for one collection."""

    def __init__(self, collection: Sequence[Entity]) -> None:
        self.by_id: Dict[str, Entity] = {}
        self.predecessors: Dict[str, List[Entity]] = {}
        for entity in collection:
            self.by_id.setdefault(entity.id, entity)
        for entity in collection:
            for evo in entity.evolutions:
                parents = self.predecessors.setdefault(evo.id, [])
                if entity not in parents:
                    parents.append(entity)

    def successors(self, entity: Entity) -> List[Entity]:
        return [self.by_id[evo.id] for evo in entity.evolutions if evo.id in self.by_id]

    def family(self, entity: Entity) -> List[Entity]:
        """Everything reachable over forward or backward edges, in discovery order."""
        visited: Set[str] = {entity.id}
        order: List[Entity] = []
        queue = deque([entity])
        while queue:
            current = queue.popleft()
            order.append(current)
            for neighbour in self.successors(current) + self.predecessors.get(current.id, []):
                if neighbour.id not in visited:
                    visited.add(neighbour.id)
                    queue.append(neighbour)
        return order


def evolution_family(entity: Entity, collection: Sequence[Entity]) -> List[Entity]:
    return EvolutionIndex(collection).family(entity)


def find_roots(family: Sequence[Entity]) -> List[Entity]:
    targets = {evo.id for member in family for evo in member.evolutions if evo.id != member.id}
    return [member for member in family if member.id not in targets]


def build_evolution_forest(
    entity: Entity,
    collection: Sequence[Entity],
    on_dropped_edge: Optional[DroppedEdgeHook] = None,
) -> List[EvolutionNode]:
    """Build one tree per root of ``entity``'s evolution family.

    Each family member appears exactly once. Edges that are dangling, loop back
    onto the current path or reach a member already placed under another
    parent are dropped and reported to ``on_dropped_edge``.
    """
    index = EvolutionIndex(collection)
    family = index.family(entity)
    placed: Set[str] = set()

    def drop(parent: Entity, child_id: str, reason: str) -> None:
        dropped = DroppedEdge(parent.id, child_id, reason)
        logger.debug("evolution_edge_dropped", parent=parent.id, child=child_id, reason=reason)
        if on_dropped_edge is not None:
            on_dropped_edge(dropped)

    def build(current: Entity, requirement: Optional[EvolutionRequirement], path: Set[str]) -> EvolutionNode:
        placed.add(current.id)
        node = EvolutionNode(entity=current, requirement=requirement)
        path = path | {current.id}
        for evo in current.evolutions:
            target = index.by_id.get(evo.id)
            if target is None:
                drop(current, evo.id, DANGLING)
            elif target.id in path:
                drop(current, evo.id, CYCLE)
            elif target.id in placed:
                drop(current, evo.id, MULTI_PARENT)
            else:
                node.children.append(build(target, EvolutionRequirement.from_evolution(evo), path))
        return node

    forest = []
    for root in find_roots(family):
        if root.id not in placed:
            forest.append(build(root, None, set()))
    # members only reachable through a cycle have no natural root
    for member in family:
        if member.id not in placed:
            forest.append(build(member, None, set()))
    return forest


def iter_forest(forest: Sequence[EvolutionNode]) -> Iterator[Tuple[int, EvolutionNode]]:
    stack = [(0, node) for node in reversed(forest)]
    while stack:
        depth, node = stack.pop()
        yield depth, node
        stack.extend((depth + 1, child) for child in reversed(node.children))


def direct_predecessors(entity: Entity, collection: Sequence[Entity]) -> List[Entity]:
    return [other for other in collection if any(evo.id == entity.id for evo in other.evolutions)]


def direct_successors(entity: Entity, collection: Sequence[Entity]) -> List[Entity]:
    return EvolutionIndex(collection).successors(entity)


def evolution_stage(entity: Entity, collection: Sequence[Entity]) -> int:
    """Backward hops to a base form, following only the first predecessor at each step."""
    index = EvolutionIndex(collection)
    seen = {entity.id}
    stage = 0
    current = entity
    while True:
        parents = index.predecessors.get(current.id)
        if not parents or parents[0].id in seen:
            return stage
        current = parents[0]
        seen.add(current.id)
        stage += 1


def are_in_same_family(first: Entity, second: Entity, collection: Sequence[Entity]) -> bool:
    return any(member.id == second.id for member in evolution_family(first, collection))
