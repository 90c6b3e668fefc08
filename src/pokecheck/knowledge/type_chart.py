from __future__ import annotations

import asyncio
import json
from numbers import Real
from pathlib import Path
from typing import Awaitable, Callable, Dict, Optional, Tuple

import requests

from pokecheck.utils.logger import get_logger
from pokecheck.utils.settings import DEFAULT_TYPE_CHART

logger = get_logger(__name__)

TypeChart = Dict[str, Dict[str, float]]

TYPE_LIST: Tuple[str, ...] = (
    "Normal",
    "Fire",
    "Water",
    "Electric",
    "Grass",
    "Ice",
    "Fighting",
    "Poison",
    "Ground",
    "Flying",
    "Psychic",
    "Bug",
    "Rock",
    "Ghost",
    "Dragon",
    "Dark",
    "Steel",
    "Fairy",
)


class MatrixUnavailableError(RuntimeError):
    """The type-effectiveness matrix could not be loaded."""


def load_type_chart(source: str | Path = DEFAULT_TYPE_CHART, requester: Optional[Callable[..., object]] = None) -> TypeChart:
    """Read the attacker -> defender -> multiplier matrix from a local file or an http(s) URL."""
    source_str = str(source)
    try:
        if source_str.startswith(("http://", "https://")):
            resp = (requester or requests.get)(source_str)
            resp.raise_for_status()
            data = resp.json()
        else:
            data = json.loads(Path(source).read_text(encoding="utf-8"))
    except (OSError, ValueError, requests.RequestException) as exc:
        raise MatrixUnavailableError(f"Failed to load type chart from {source_str}: {exc}") from exc
    return _validate_chart(data, source_str)


def _validate_chart(data: object, source: str) -> TypeChart:
    if not isinstance(data, dict):
        raise MatrixUnavailableError(f"Type chart at {source} is not an object")
    chart: TypeChart = {}
    for atk_type, row in data.items():
        if not isinstance(row, dict):
            raise MatrixUnavailableError(f"Type chart row {atk_type!r} is not an object")
        chart[atk_type] = {}
        for def_type, mult in row.items():
            if isinstance(mult, bool) or not isinstance(mult, Real) or mult < 0:
                raise MatrixUnavailableError(f"Invalid multiplier {atk_type}->{def_type}: {mult!r}")
            chart[atk_type][def_type] = float(mult)
    return chart


class TypeChartCache:
    """Load-once holder for the type chart.

    Concurrent first callers share one pending load instead of each reading the
    chart. A failed load is not remembered, so the next ``get`` tries again.
    """

    def __init__(
        self,
        loader: Optional[Callable[[], Awaitable[TypeChart]]] = None,
        source: str | Path = DEFAULT_TYPE_CHART,
    ) -> None:
        self.source = source
        self._loader = loader or self._load_from_source
        self._chart: Optional[TypeChart] = None
        self._pending: Optional[asyncio.Future] = None
        self._generation = 0

    @property
    def cached(self) -> Optional[TypeChart]:
        return self._chart

    async def get(self) -> TypeChart:
        if self._chart is not None:
            return self._chart
        if self._pending is None:
            self._pending = asyncio.ensure_future(self._load_once(self._generation))
        return await asyncio.shield(self._pending)

    def reset(self) -> None:
        """Forget the chart. A load already in flight still resolves for its callers but is not kept."""
        self._generation += 1
        self._chart = None
        self._pending = None

    async def _load_once(self, generation: int) -> TypeChart:
        try:
            chart = await self._loader()
        except MatrixUnavailableError:
            logger.warning("type_chart_unavailable", source=str(self.source))
            raise
        except (OSError, ValueError, requests.RequestException) as exc:
            logger.warning("type_chart_unavailable", source=str(self.source), error=str(exc))
            raise MatrixUnavailableError(str(exc)) from exc
        finally:
            if generation == self._generation:
                self._pending = None
        if generation != self._generation:
            logger.debug("type_chart_discarded", source=str(self.source), reason="reset during load")
            return chart
        self._chart = chart
        logger.debug("type_chart_loaded", source=str(self.source), types=len(chart))
        return chart

    async def _load_from_source(self) -> TypeChart:
        return await asyncio.to_thread(load_type_chart, self.source)


_shared_cache: Optional[TypeChartCache] = None


def shared_type_chart_cache() -> TypeChartCache:
    global _shared_cache
    if _shared_cache is None:
        _shared_cache = TypeChartCache()
    return _shared_cache
