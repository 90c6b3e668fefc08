from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple


@dataclass(frozen=True)
class TypeDescriptor:
    names: Dict[str, str]
    type: Optional[str] = None

    @property
    def english(self) -> str:
        return self.names["English"]

    def to_dict(self) -> Dict[str, object]:
        return {"type": self.type, "names": dict(self.names)}

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "TypeDescriptor":
        names = data["names"]
        if not isinstance(names, Mapping) or not isinstance(names.get("English"), str):
            raise ValueError("type descriptor without an English name")
        return cls(names=dict(names), type=data.get("type"))

    @classmethod
    def from_cached(cls, value: object) -> Optional["TypeDescriptor"]:
        # ultra-compressed records store the bare English name
        if value is None:
            return None
        if isinstance(value, str):
            return cls(names={"English": value})
        if isinstance(value, Mapping):
            return cls.from_dict(value)
        raise TypeError(f"unexpected type descriptor: {value!r}")


@dataclass(frozen=True)
class Stats:
    stamina: int = 0
    attack: int = 0
    defense: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"stamina": self.stamina, "attack": self.attack, "defense": self.defense}

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, object]]) -> "Stats":
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise TypeError(f"stats must be an object, got {type(data).__name__}")
        stats = cls(
            stamina=int(data.get("stamina") or 0),
            attack=int(data.get("attack") or 0),
            defense=int(data.get("defense") or 0),
        )
        if min(stats.stamina, stats.attack, stats.defense) < 0:
            raise ValueError("stats must be non-negative")
        return stats


@dataclass(frozen=True)
class Evolution:
    id: str
    form_id: Optional[str] = None
    candies: int = 0
    item: Optional[str] = None
    quests: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "formId": self.form_id,
            "candies": self.candies,
            "item": self.item,
            "quests": list(self.quests),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "Evolution":
        target = data["id"]
        if not isinstance(target, str):
            raise TypeError("evolution id must be a string")
        item = data.get("item")
        if isinstance(item, Mapping):
            item = item.get("id")
        return cls(
            id=target,
            form_id=data.get("formId"),
            candies=int(data.get("candies") or 0),
            item=item,
            quests=tuple(_quest_id(q) for q in data.get("quests") or ()),
        )


def _quest_id(quest: object) -> str:
    if isinstance(quest, Mapping):
        return str(quest.get("id") or quest.get("type") or "")
    return str(quest)


@dataclass(frozen=True)
class Entity:
    """One creature record from the upstream pokedex feed."""

    id: str
    dex_nr: int
    names: Dict[str, str]
    primary_type: TypeDescriptor
    form_id: Optional[str] = None
    generation: int = 0
    stats: Stats = field(default_factory=Stats)
    secondary_type: Optional[TypeDescriptor] = None
    evolutions: Tuple[Evolution, ...] = field(default_factory=tuple)
    pokemon_class: Optional[str] = None
    has_mega_evolution: bool = False
    mega_evolutions: Tuple[Dict[str, object], ...] = field(default_factory=tuple)
    region_forms: Dict[str, object] = field(default_factory=dict)
    assets: Optional[Dict[str, object]] = None

    @property
    def english_name(self) -> str:
        return self.names["English"]

    @property
    def primary_type_name(self) -> str:
        return self.primary_type.english

    @property
    def secondary_type_name(self) -> Optional[str]:
        return self.secondary_type.english if self.secondary_type else None

    @property
    def type_names(self) -> Tuple[str, ...]:
        if self.secondary_type is None:
            return (self.primary_type_name,)
        return (self.primary_type_name, self.secondary_type.english)

    @property
    def image(self) -> Optional[str]:
        return (self.assets or {}).get("image")

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "formId": self.form_id,
            "dexNr": self.dex_nr,
            "generation": self.generation,
            "names": dict(self.names),
            "stats": self.stats.to_dict(),
            "primaryType": self.primary_type.to_dict(),
            "secondaryType": self.secondary_type.to_dict() if self.secondary_type else None,
            "pokemonClass": self.pokemon_class,
            "assets": dict(self.assets) if self.assets else None,
            "regionForms": dict(self.region_forms),
            "evolutions": [evo.to_dict() for evo in self.evolutions],
            "hasMegaEvolution": self.has_mega_evolution,
            "megaEvolutions": [dict(mega) for mega in self.mega_evolutions],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "Entity":
        secondary = data.get("secondaryType")
        mega = data.get("megaEvolutions") or ()
        if isinstance(mega, Mapping):
            mega = list(mega.values())
        return cls(
            id=_require_str(data, "id"),
            form_id=data.get("formId"),
            dex_nr=_require_int(data, "dexNr"),
            generation=int(data.get("generation") or 0),
            names=_english_names(data["names"]),
            stats=Stats.from_dict(data.get("stats")),
            primary_type=TypeDescriptor.from_dict(data["primaryType"]),
            secondary_type=TypeDescriptor.from_dict(secondary) if secondary else None,
            evolutions=tuple(Evolution.from_dict(evo) for evo in data.get("evolutions") or ()),
            pokemon_class=data.get("pokemonClass"),
            has_mega_evolution=bool(data.get("hasMegaEvolution", False)),
            mega_evolutions=tuple(dict(m) for m in mega),
            region_forms=_optional_mapping(data, "regionForms") or {},
            assets=_optional_mapping(data, "assets"),
        )

    @classmethod
    def from_cached(cls, data: Mapping[str, object]) -> "Entity":
        """Rebuild an entity from any persisted projection (full, compressed or ultra)."""
        if not isinstance(data, Mapping):
            raise TypeError("cached entity must be an object")
        names = data.get("names") or {"English": data.get("name") or "Unknown"}
        assets = data.get("assets")
        if isinstance(assets, str):
            assets = {"image": assets}
        elif assets is not None and not isinstance(assets, Mapping):
            raise TypeError(f"assets must be an object or an image url, got {type(assets).__name__}")
        return cls(
            id=_require_str(data, "id"),
            form_id=data.get("formId"),
            dex_nr=_require_int(data, "dexNr"),
            generation=int(data.get("generation") or 0),
            names=_english_names(names),
            stats=Stats.from_dict(data.get("stats")),
            primary_type=TypeDescriptor.from_cached(data["primaryType"]),
            secondary_type=TypeDescriptor.from_cached(data.get("secondaryType")),
            evolutions=tuple(Evolution.from_dict(evo) for evo in data.get("evolutions") or ()),
            pokemon_class=data.get("pokemonClass"),
            has_mega_evolution=bool(data.get("hasMegaEvolution", False)),
            region_forms=_optional_mapping(data, "regionForms") or {},
            assets=dict(assets) if assets else None,
        )


def _require_str(data: Mapping[str, object], key: str) -> str:
    value = data[key]
    if not isinstance(value, str):
        raise TypeError(f"{key} must be a string, got {type(value).__name__}")
    return value


def _require_int(data: Mapping[str, object], key: str) -> int:
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{key} must be an integer, got {type(value).__name__}")
    return value


def _optional_mapping(data: Mapping[str, object], key: str) -> Optional[Dict[str, object]]:
    value = data.get(key)
    if not value:
        return None
    if not isinstance(value, Mapping):
        raise TypeError(f"{key} must be an object, got {type(value).__name__}")
    return dict(value)


def _english_names(names: object) -> Dict[str, str]:
    if not isinstance(names, Mapping) or not isinstance(names.get("English"), str):
        raise ValueError("entity names must include English")
    return {str(k): str(v) for k, v in names.items() if v is not None}


def parse_pokedex(data: object) -> List[Entity]:
    if not isinstance(data, list):
        raise ValueError("pokedex payload must be a JSON array")
    entities = [Entity.from_dict(entry) for entry in data]
    return sorted(entities, key=lambda e: e.dex_nr)


def load_pokedex(path: str | Path) -> List[Entity]:
    path = Path(path)
    if not path.exists():
        return []

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    return parse_pokedex(data)
