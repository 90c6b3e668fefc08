from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_DATA_URL = "https://pokemon-go-api.github.io/pokemon-go-api/api/pokedex.json"
DEFAULT_CACHE_DIR = "data/pokedex_cache"
DEFAULT_TYPE_CHART = str(Path(__file__).resolve().parent.parent / "data" / "type_chart.json")
DEFAULT_STORAGE_QUOTA = 5 * 1024 * 1024


def load_env(path: str | Path = ".env") -> Mapping[str, str]:
    """Lightweight .env loader (KEY=VALUE per line, ignores comments/blank)."""
    env_path = Path(path)
    env: dict[str, str] = {}
    if not env_path.exists():
        return env
    for line in env_path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, val = line.split("=", 1)
        val = val.strip()
        if len(val) >= 2 and val[0] == val[-1] and val[0] in "'\"":
            val = val[1:-1]
        env[key.strip()] = val
    return env


@dataclass
class Settings:
    data_url: str = DEFAULT_DATA_URL
    cache_dir: Path = Path(DEFAULT_CACHE_DIR)
    type_chart: str = DEFAULT_TYPE_CHART
    storage_quota: int = DEFAULT_STORAGE_QUOTA
    request_timeout: Optional[float] = None

    @classmethod
    def from_env(cls, env_path: str | Path = ".env", **overrides: object) -> "Settings":
        env = load_env(env_path)

        def lookup(key: str) -> Optional[str]:
            return os.getenv(key) or env.get(key)

        timeout = lookup("POKECHECK_REQUEST_TIMEOUT")
        quota = lookup("POKECHECK_STORAGE_QUOTA")
        settings = cls(
            data_url=lookup("POKECHECK_DATA_URL") or DEFAULT_DATA_URL,
            cache_dir=Path(lookup("POKECHECK_CACHE_DIR") or DEFAULT_CACHE_DIR),
            type_chart=lookup("POKECHECK_TYPE_CHART") or DEFAULT_TYPE_CHART,
            storage_quota=int(quota) if quota else DEFAULT_STORAGE_QUOTA,
            request_timeout=float(timeout) if timeout else None,
        )
        for key, value in overrides.items():
            if value is None:
                continue
            if not hasattr(settings, key):
                raise TypeError(f"Unknown setting: {key}")
            setattr(settings, key, Path(value) if key == "cache_dir" else value)
        return settings
