from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, Iterator, Optional, Protocol, Tuple

from pokecheck.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024


class StorageError(RuntimeError):
    """The key-value store could not complete an operation."""


class QuotaExceededError(StorageError):
    """Writing the value would push the store past its quota."""


class CorruptEntryError(StorageError):
    """A stored value exists but cannot be decoded."""


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def items(self) -> Iterator[Tuple[str, str]]: ...


def _entry_size(key: str, value: str) -> int:
    return len(key) + len(value)


def _read_entry(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise CorruptEntryError(f"{path.name} is not valid UTF-8: {exc.reason}") from exc


class MemoryStore:
    """In-process store with a browser-like character quota."""

    def __init__(self, quota_bytes: int = DEFAULT_QUOTA_BYTES) -> None:
        self.quota_bytes = quota_bytes
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        others = sum(_entry_size(k, v) for k, v in self._data.items() if k != key)
        needed = others + _entry_size(key, value)
        if needed > self.quota_bytes:
            raise QuotaExceededError(f"quota exceeded: {needed} > {self.quota_bytes}")
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def items(self) -> Iterator[Tuple[str, str]]:
        return iter(list(self._data.items()))


class FileStore:
    """One file per key under ``directory``; quota counts key plus value length."""

    _SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")

    def __init__(self, directory: str | Path, quota_bytes: int = DEFAULT_QUOTA_BYTES) -> None:
        self.directory = Path(directory)
        self.quota_bytes = quota_bytes

    def _path(self, key: str) -> Path:
        if not self._SAFE_KEY.match(key):
            raise StorageError(f"Unsupported storage key: {key!r}")
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return _read_entry(path)
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageError(str(exc)) from exc

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        needed = self._used_by_others(key) + _entry_size(key, value)
        if needed > self.quota_bytes:
            raise QuotaExceededError(f"quota exceeded: {needed} > {self.quota_bytes}")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".tmp")
            tmp.write_text(value, encoding="utf-8")
            tmp.replace(path)
        except OSError as exc:
            raise StorageError(str(exc)) from exc
        logger.debug("storage_written", key=key, chars=len(value))

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(str(exc)) from exc

    def items(self) -> Iterator[Tuple[str, str]]:
        if not self.directory.exists():
            return iter(())
        try:
            pairs = [(p.stem, _read_entry(p)) for p in sorted(self.directory.glob("*.json"))]
        except OSError as exc:
            raise StorageError(str(exc)) from exc
        return iter(pairs)

    def _used_by_others(self, key: str) -> int:
        if not self.directory.exists():
            return 0
        # undecodable files still count toward the quota
        try:
            return sum(
                _entry_size(p.stem, p.read_text(encoding="utf-8", errors="replace"))
                for p in self.directory.glob("*.json")
                if p.stem != key
            )
        except OSError as exc:
            raise StorageError(str(exc)) from exc
