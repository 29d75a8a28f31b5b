from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Optional

from subtwin.app.logging_setup import log_event
from subtwin.cache.store import CacheStore
from subtwin.caption.timers import Debouncer, Scheduler
from subtwin.contracts import TranslationKey, scope_prefix

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheLookup:
    value: Optional[str] = None
    handle: Optional["Future[Optional[str]]"] = None
    created: bool = False


class TranslationCache:
    """
    Completed translations plus the table of in-flight requests, both scoped
    to one (provider, source, target) triple.

    Writes go to memory first and are flushed to the store in one batch after
    a quiet period. A scope change drops everything and reloads the new
    scope from the store in the background.
    """

    def __init__(
        self,
        scope: tuple[str, str, str],
        *,
        scheduler: Scheduler,
        store: CacheStore | None = None,
        flush_delay_sec: float = 1.0,
        logger: logging.Logger | None = _log,
    ) -> None:
        self.scheduler = scheduler
        self.store = store
        self.flush_delay_sec = max(0.0, float(flush_delay_sec))
        self.logger = logger
        self.lock = threading.RLock()
        self._scope = tuple(scope)
        self._generation = 0
        self._entries: dict[TranslationKey, str] = {}
        self._pending: dict[TranslationKey, "Future[Optional[str]]"] = {}
        self._dirty: dict[str, str] = {}
        self._flush_timer = Debouncer(scheduler)

    @property
    def scope(self) -> tuple[str, str, str]:
        return self._scope

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: TranslationKey) -> Optional[str]:
        with self.lock:
            return self._entries.get(key)

    def put(self, key: TranslationKey, value: str) -> bool:
        """First write wins; out-of-scope keys are ignored."""
        with self.lock:
            stored = self._put_locked(key, value)
        if stored:
            self._flush_timer.schedule(self.flush_delay_sec, self.flush)
        return stored

    def get_pending(self, key: TranslationKey) -> Optional["Future[Optional[str]]"]:
        with self.lock:
            return self._pending.get(key)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def reserve(self, key: TranslationKey) -> CacheLookup:
        """Cached value, else the shared in-flight handle, else a new handle."""
        with self.lock:
            value = self._entries.get(key)
            if value is not None:
                return CacheLookup(value=value)
            handle = self._pending.get(key)
            if handle is not None:
                return CacheLookup(handle=handle)
            handle = Future()
            self._pending[key] = handle
            return CacheLookup(handle=handle, created=True)

    def complete(self, key: TranslationKey, handle: "Future[Optional[str]]", value: Optional[str]) -> None:
        with self.lock:
            stored = bool(value) and self._put_locked(key, str(value))
            if self._pending.get(key) is handle:
                del self._pending[key]
        if stored:
            self._flush_timer.schedule(self.flush_delay_sec, self.flush)

    def invalidate_scope(self, provider_id: str, source_lang: str, target_lang: str) -> None:
        new_scope = (provider_id, source_lang, target_lang)
        with self.lock:
            old_scope = self._scope
            self._scope = new_scope
            self._generation += 1
            generation = self._generation
            dropped = len(self._entries)
            self._entries.clear()
            self._pending.clear()
        log_event(
            self.logger,
            logging.INFO,
            "cache_scope_changed",
            old_scope="|".join(old_scope),
            new_scope="|".join(new_scope),
            dropped=dropped,
        )
        self.scheduler.schedule(0.0, lambda: self._reload(generation))

    def load(self) -> None:
        """Schedule a background load of the current scope."""
        with self.lock:
            generation = self._generation
        self.scheduler.schedule(0.0, lambda: self._reload(generation))

    def flush(self) -> int:
        with self.lock:
            batch = dict(self._dirty)
            self._dirty.clear()
        if not batch or self.store is None:
            return 0
        try:
            self.store.save_all(batch)
        except Exception as exc:
            log_event(self.logger, logging.WARNING, "cache_flush_failed", entries=len(batch), error=str(exc))
            with self.lock:
                # keep entries written since the failed attempt
                for storage_key, value in batch.items():
                    self._dirty.setdefault(storage_key, value)
            self._flush_timer.schedule(self.flush_delay_sec, self.flush)
            return 0
        log_event(self.logger, logging.DEBUG, "cache_flush_done", entries=len(batch))
        return len(batch)

    def close(self) -> None:
        self._flush_timer.cancel()
        self.flush()
        # a failed final flush must not leave a retry behind
        self._flush_timer.cancel()

    def _put_locked(self, key: TranslationKey, value: str) -> bool:
        if key.scope != self._scope or key in self._entries:
            return False
        self._entries[key] = value
        self._dirty[key.storage_key] = value
        return True

    def _reload(self, generation: int) -> None:
        if self.store is None:
            return
        with self.lock:
            if generation != self._generation:
                return
            prefix = scope_prefix(*self._scope)
        try:
            loaded = self.store.load_all(prefix)
        except Exception as exc:
            log_event(self.logger, logging.WARNING, "cache_reload_failed", scope=prefix, error=str(exc))
            return

        added = 0
        with self.lock:
            if generation != self._generation:
                return
            for raw, value in loaded.items():
                try:
                    key = TranslationKey.from_storage_key(raw)
                except ValueError:
                    continue
                if key.scope != self._scope or not value or key in self._entries:
                    continue
                self._entries[key] = value
                added += 1
        log_event(self.logger, logging.INFO, "cache_reload_done", scope=prefix, entries=added)
