from __future__ import annotations

import json
from pathlib import Path

from pokecheck.knowledge.fetcher import PokedexFetcher
from pokecheck.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_BACKUP_PATH = Path("data/pokedex.backup.json")


def write_backup(fetcher: PokedexFetcher, out_path: str | Path = DEFAULT_BACKUP_PATH) -> int:
    """Download the full feed, sort by dex number and write it compactly. Returns bytes written."""
    data = fetcher.fetch_raw()
    # entries without a dexNr keep their relative order at the end
    data.sort(key=lambda entry: entry.get("dexNr", float("inf")) if isinstance(entry, dict) else float("inf"))
    text = json.dumps(data, separators=(",", ":"), ensure_ascii=False)

    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(text, encoding="utf-8")
    size = len(text.encode("utf-8"))
    logger.info("pokedex_backup_written", path=str(out), entries=len(data), size_mb=round(size / (1024 * 1024), 2))
    return size
