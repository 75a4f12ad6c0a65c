from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Protocol

from jadwalshalat.errors import ParseError


class CacheMiss(KeyError):
    """Raised by ``Cache.get`` when nothing is stored under the key."""


class Cache(Protocol):
    def get(self, key: str) -> Any:
        ...

    def put(self, key: str, document: Any) -> None:
        ...


class CacheStore:
    """JSON documents on disk, one file per logical key.

    Entries never expire; a document stays trusted until its file is removed.
    A stored ``null`` is a hit like any other document; only a missing file
    raises ``CacheMiss``.
    """

    def __init__(self, root_dir: Path) -> None:
        self._root_dir = Path(root_dir)
        self._root_dir.mkdir(parents=True, exist_ok=True)
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    def root_dir(self) -> Path:
        return self._root_dir

    def get(self, key: str) -> Any:
        path = self._path_for_key(key)
        if not path.exists():
            self._logger.debug("Cache miss for %s", path)
            raise CacheMiss(key)
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            # A broken cache file is not repaired; the caller has to see it.
            raise ParseError(f"Cache file {path} cannot be read: {exc}") from exc

    def put(self, key: str, document: Any) -> None:
        path = self._path_for_key(key)
        tmp_path = path.with_name(path.name + ".tmp")

        # Key order is kept so events come back in the order the remote sent them.
        data = json.dumps(document, indent=2, ensure_ascii=False)
        try:
            tmp_path.write_text(data, encoding="utf-8")
            tmp_path.replace(path)
        except OSError as exc:
            self._logger.error("Cache write failed for %s: %s", path, exc)
            tmp_path.unlink(missing_ok=True)
            raise

    def _path_for_key(self, key: str) -> Path:
        safe_key = key.replace("/", "_")
        return self._root_dir / f"{safe_key}.json"
