"""
Durable local key-value store.

One file per key under a base directory. Writes go to a temp file and are
moved into place with ``os.replace`` so a reader never sees half a value.
"""

import asyncio
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, Optional, Protocol
from urllib.parse import quote, unquote

logger = logging.getLogger(__name__)

_SUFFIX = ".json"


class KeyValueStore(Protocol):
    async def get(self, key: str) -> Optional[bytes]:
        ...

    async def set(self, key: str, value: bytes) -> None:
        ...

    async def remove_many(self, keys: Iterable[str]) -> None:
        ...

    async def list_keys(self) -> list[str]:
        ...


class FileKeyValueStore:
    def __init__(self, base_dir: str):
        self.base_dir = Path(base_dir)

    def _path(self, key: str) -> Path:
        if not key:
            raise ValueError("key must not be empty")
        return self.base_dir / f"{quote(key, safe='')}{_SUFFIX}"

    async def get(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError:
            return None

    async def set(self, key: str, value: bytes) -> None:
        await asyncio.to_thread(self._write_atomic, self._path(key), value)

    def _write_atomic(self, path: Path, value: bytes) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.base_dir, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(value)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise

    async def remove_many(self, keys: Iterable[str]) -> None:
        paths = [self._path(k) for k in keys]
        await asyncio.to_thread(self._remove_paths, paths)

    @staticmethod
    def _remove_paths(paths: list[Path]) -> None:
        for path in paths:
            try:
                path.unlink()
            except FileNotFoundError:
                continue

    async def list_keys(self) -> list[str]:
        return await asyncio.to_thread(self._list_keys)

    def _list_keys(self) -> list[str]:
        if not self.base_dir.is_dir():
            return []
        return sorted(
            unquote(p.name[: -len(_SUFFIX)])
            for p in self.base_dir.iterdir()
            if p.is_file() and p.name.endswith(_SUFFIX) and not p.name.startswith(".tmp-")
        )
