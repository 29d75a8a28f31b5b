from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Mapping, Protocol

logger = logging.getLogger(__name__)


class CacheStore(Protocol):
    def load_all(self, scope_prefix: str) -> dict[str, str]:
        ...

    def save_all(self, entries: Mapping[str, str]) -> None:
        ...


class MemoryCacheStore:
    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})
        self.saves = 0

    def load_all(self, scope_prefix: str) -> dict[str, str]:
        return {k: v for k, v in self.data.items() if k.startswith(scope_prefix)}

    def save_all(self, entries: Mapping[str, str]) -> None:
        self.saves += 1
        self.data.update(entries)


class JsonFileCacheStore:
    """
    Translations persisted as one JSON object {"provider|src|tgt|text": "..."}.
    save_all() upserts; the oldest keys are dropped past max_entries.
    """

    def __init__(self, path: Path, max_entries: int = 5000) -> None:
        self.path = Path(path)
        self.max_entries = max(1, int(max_entries))
        self._lock = threading.Lock()

    def load_all(self, scope_prefix: str) -> dict[str, str]:
        with self._lock:
            data = self._read()
        return {k: v for k, v in data.items() if k.startswith(scope_prefix)}

    def save_all(self, entries: Mapping[str, str]) -> None:
        if not entries:
            return
        with self._lock:
            try:
                data = self._read()
            except ValueError as e:
                # unreadable file is replaced by this write
                logger.warning(f"Discarding unreadable translation cache {self.path}: {e}")
                data = {}
            for key, value in entries.items():
                # re-insert so updated keys count as newest
                data.pop(key, None)
                data[key] = value
            overflow = len(data) - self.max_entries
            if overflow > 0:
                for key in list(data.keys())[:overflow]:
                    del data[key]
            self._write(data)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8-sig") as f:
            loaded = json.load(f)
        if not isinstance(loaded, dict):
            raise ValueError(f"translation cache must be a JSON object: {self.path}")
        return {str(k): v for k, v in loaded.items() if isinstance(v, str)}

    def _write(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False)
            f.write("\n")
        os.replace(tmp, self.path)
