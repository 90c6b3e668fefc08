from __future__ import annotations

import asyncio
import inspect
from typing import Awaitable, Callable, List, Optional, Union

import requests

from pokecheck.knowledge.pokedex_db import Entity, parse_pokedex
from pokecheck.utils.logger import get_logger
from pokecheck.utils.settings import DEFAULT_DATA_URL

logger = get_logger(__name__)

ProgressCallback = Callable[[int], Union[None, Awaitable[None]]]


class DatasetFetchError(RuntimeError):
    """The upstream pokedex could not be downloaded or parsed."""


async def report_progress(progress: Optional[ProgressCallback], value: int) -> None:
    """Invoke a progress callback that may be a plain function or a coroutine."""
    if progress is None:
        return
    result = progress(value)
    if inspect.isawaitable(result):
        await result


class PokedexFetcher:
    """Downloads the full pokedex array from the upstream feed."""

    def __init__(
        self,
        url: str = DEFAULT_DATA_URL,
        requester: Optional[Callable[..., object]] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._requester = requester or requests.get

    def fetch_raw(self) -> list:
        try:
            resp = self._requester(self.url, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as exc:
            logger.error("pokedex_fetch_failed", url=self.url, error=str(exc))
            raise DatasetFetchError(f"Failed to load Pokemon data: {exc}") from exc
        except ValueError as exc:
            logger.error("pokedex_decode_failed", url=self.url, error=str(exc))
            raise DatasetFetchError(f"Upstream returned invalid JSON: {exc}") from exc
        if not isinstance(data, list):
            raise DatasetFetchError(f"Upstream returned {type(data).__name__}, expected an array")
        return data

    async def fetch(self, progress: Optional[ProgressCallback] = None) -> List[Entity]:
        await report_progress(progress, 10)
        data = await asyncio.to_thread(self.fetch_raw)
        await report_progress(progress, 50)
        try:
            entities = parse_pokedex(data)
        except (KeyError, TypeError, ValueError) as exc:
            logger.error("pokedex_parse_failed", url=self.url, error=str(exc))
            raise DatasetFetchError(f"Malformed pokedex record: {exc}") from exc
        await report_progress(progress, 80)
        logger.info("pokedex_fetched", url=self.url, entities=len(entities))
        return entities
