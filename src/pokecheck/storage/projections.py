from __future__ import annotations

from typing import Callable, Dict, List, Sequence, Tuple

from pokecheck.knowledge.pokedex_db import Entity

Projection = Callable[[Entity], Dict[str, object]]


def _english_type(entity: Entity, secondary: bool = False) -> object:
    descriptor = entity.secondary_type if secondary else entity.primary_type
    if descriptor is None:
        return None
    return {"names": {"English": descriptor.english}}


def compressed_projection(entity: Entity) -> Dict[str, object]:
    """English-only names and types, a single image, full evolution records."""
    return {
        "id": entity.id,
        "formId": entity.form_id,
        "dexNr": entity.dex_nr,
        "generation": entity.generation,
        "names": {"English": entity.english_name},
        "stats": entity.stats.to_dict(),
        "primaryType": _english_type(entity),
        "secondaryType": _english_type(entity, secondary=True),
        "pokemonClass": entity.pokemon_class,
        "assets": {"image": entity.image} if entity.image else None,
        "evolutions": [evo.to_dict() for evo in entity.evolutions],
        "hasMegaEvolution": entity.has_mega_evolution,
    }


def ultra_compressed_projection(entity: Entity) -> Dict[str, object]:
    return {
        "id": entity.id,
        "dexNr": entity.dex_nr,
        "names": {"English": entity.english_name},
        "stats": entity.stats.to_dict(),
        "primaryType": _english_type(entity),
        "secondaryType": entity.secondary_type_name,
        "assets": entity.image,
        "evolutions": [{"id": evo.id, "candies": evo.candies} for evo in entity.evolutions],
    }


PROJECTION_LADDER: Tuple[Tuple[str, Projection], ...] = (
    ("compressed", compressed_projection),
    ("ultra_compressed", ultra_compressed_projection),
)


def project(entities: Sequence[Entity], projection: Projection) -> List[Dict[str, object]]:
    return [projection(entity) for entity in entities]
