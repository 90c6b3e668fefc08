from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from pokecheck.knowledge.pokedex_db import Entity
from pokecheck.knowledge.type_chart import MatrixUnavailableError, TypeChart, TypeChartCache
from pokecheck.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Effectiveness:
    type: str
    multiplier: float


def combined_multiplier(attacker: str, primary: str, secondary: Optional[str], chart: TypeChart) -> float:
    """Damage multiplier of ``attacker`` against a (possibly dual-typed) defender, rounded to 2 places."""
    row = chart.get(attacker, {})
    vs_primary = row.get(primary, 1.0)
    vs_secondary = row.get(secondary, 1.0) if secondary else 1.0
    return round(vs_primary * vs_secondary, 2)


def _by_multiplier_desc(entry: Effectiveness):
    return (-entry.multiplier, entry.type)


def _by_multiplier_asc(entry: Effectiveness):
    return (entry.multiplier, entry.type)


def _defensive(primary: str, secondary: Optional[str], chart: TypeChart) -> List[Effectiveness]:
    return [Effectiveness(atk, combined_multiplier(atk, primary, secondary, chart)) for atk in chart]


def compute_weaknesses(primary: str, secondary: Optional[str], chart: TypeChart) -> List[Effectiveness]:
    result = [e for e in _defensive(primary, secondary, chart) if e.multiplier > 1]
    return sorted(result, key=_by_multiplier_desc)


def compute_resistances(primary: str, secondary: Optional[str], chart: TypeChart) -> List[Effectiveness]:
    result = [e for e in _defensive(primary, secondary, chart) if 0 < e.multiplier < 1]
    return sorted(result, key=_by_multiplier_asc)


def compute_immunities(primary: str, secondary: Optional[str], chart: TypeChart) -> List[Effectiveness]:
    result = [e for e in _defensive(primary, secondary, chart) if e.multiplier == 0]
    return sorted(result, key=lambda e: e.type)


def compute_offense_strengths(attacker_type: str, chart: TypeChart) -> List[Effectiveness]:
    """Defending types that ``attacker_type`` hits for more than neutral damage."""
    row = chart.get(attacker_type)
    if not row:
        return []
    out = []
    for def_type, mult in row.items():
        rounded = round(mult if mult is not None else 1.0, 2)
        if rounded > 1:
            out.append(Effectiveness(def_type, rounded))
    return sorted(out, key=_by_multiplier_desc)


@dataclass(frozen=True)
class TypeProfile:
    weaknesses: List[Effectiveness] = field(default_factory=list)
    resistances: List[Effectiveness] = field(default_factory=list)
    immunities: List[Effectiveness] = field(default_factory=list)
    offense: Dict[str, List[Effectiveness]] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not (self.weaknesses or self.resistances or self.immunities or self.offense)


def build_type_profile(primary: str, secondary: Optional[str], chart: TypeChart) -> TypeProfile:
    own_types = [primary] + ([secondary] if secondary else [])
    return TypeProfile(
        weaknesses=compute_weaknesses(primary, secondary, chart),
        resistances=compute_resistances(primary, secondary, chart),
        immunities=compute_immunities(primary, secondary, chart),
        offense={t: compute_offense_strengths(t, chart) for t in own_types},
    )


async def load_type_profile(entity: Entity, cache: TypeChartCache) -> TypeProfile:
    """Profile for an entity's typing; empty when the chart cannot be loaded."""
    try:
        chart = await cache.get()
    except MatrixUnavailableError as exc:
        logger.warning("type_profile_degraded", entity=entity.id, error=str(exc))
        return TypeProfile()
    return build_type_profile(entity.primary_type_name, entity.secondary_type_name, chart)
