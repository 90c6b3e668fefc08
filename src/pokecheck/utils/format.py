from __future__ import annotations

from typing import Optional, Sequence


def format_requirement(candies: int = 0, item: Optional[str] = None, quests: Sequence[str] = ()) -> str:
    """Human readable evolution cost, e.g. "25 candies, sun stone, special quest"."""
    parts = []
    if candies > 0:
        parts.append(f"{candies} candies")
    if item:
        parts.append(item.replace("_", " ").lower())
    if quests:
        parts.append("special quest")
    return ", ".join(parts) or "Unknown requirements"


def format_multiplier(multiplier: float) -> str:
    text = f"{multiplier:.2f}".rstrip("0").rstrip(".")
    return f"{text}x"
