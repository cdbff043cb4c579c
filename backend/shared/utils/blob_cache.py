"""
Flat file blob cache.

Backend responses are stored as one JSON document per key under a root
directory so repeat runs can skip the network. Entries never expire; a
missing or unreadable entry reads as a miss and is never an error.
Single writer per key is assumed.
"""
from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Generic, Optional, TypeVar
from urllib.parse import quote

from pydantic import TypeAdapter

from shared.utils.logging import get_logger
from shared.utils.metrics import CACHE_LOOKUPS

logger = get_logger(__name__)

T = TypeVar("T")


def cache_key(namespace: str, *fields: object) -> str:
    """
    Build a relative cache path such as ``vods/123_1700000000000_1700086400000_0.0.json``.

    Each field is stringified and URL-quoted so names with spaces, slashes
    or unicode stay inside a single file name.
    """
    parts = [quote(str(f), safe="") for f in fields]
    return f"{namespace}/{'_'.join(parts)}.json"


class BlobCache:
    """Read/write raw bytes addressed by a relative key under ``root``."""

    def __init__(self, root: str | Path = ".cache") -> None:
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, key: str) -> Path:
        path = (self._root / key).resolve()
        if self._root != path and self._root not in path.parents:
            raise ValueError(f"cache key escapes cache root: {key}")
        return path

    def read(self, key: str) -> Optional[bytes]:
        """Return the stored bytes, or None when the entry is absent or unreadable."""
        try:
            return self.path_for(key).read_bytes()
        except (OSError, ValueError):
            return None

    def write(self, key: str, data: bytes) -> None:
        """Store bytes, creating parent directories and replacing any previous entry."""
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def typed(self, name: str, value_type: type[T] | object) -> "TypedCache[T]":
        """A typed view over this store for one logical cache."""
        return TypedCache(self, name, TypeAdapter(value_type))


class TypedCache(Generic[T]):
    """
    One logical cache (account ids, match lists, users, intervals) over a
    shared BlobCache. Values are (de)serialized with a pydantic TypeAdapter;
    anything that fails validation is treated as a miss.
    """

    def __init__(self, blob: BlobCache, name: str, adapter: TypeAdapter[T]) -> None:
        self._blob = blob
        self._name = name
        self._adapter = adapter

    def read(self, key: str) -> Optional[T]:
        raw = self._blob.read(key)
        if raw is None:
            CACHE_LOOKUPS.labels(cache=self._name, outcome="miss").inc()
            return None
        try:
            value = self._adapter.validate_json(raw)
        except ValueError as exc:
            CACHE_LOOKUPS.labels(cache=self._name, outcome="corrupt").inc()
            logger.debug("cache_entry_unreadable", cache=self._name, key=key, error=str(exc)[:200])
            return None
        CACHE_LOOKUPS.labels(cache=self._name, outcome="hit").inc()
        return value

    def write(self, key: str, value: T) -> None:
        self._blob.write(key, self._adapter.dump_json(value, by_alias=True, indent=2))
