# subtwin/live/session.py
from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor
from dataclasses import replace
from typing import Optional

from subtwin.app.logging_setup import log_event
from subtwin.cache.store import CacheStore
from subtwin.cache.translation_cache import TranslationCache
from subtwin.caption.stability import StabilityDetector, Transition
from subtwin.caption.timers import Debouncer, Scheduler
from subtwin.contracts import Overlay, SessionTimings, Settings
from subtwin.live.orchestrator import TranslationOrchestrator
from subtwin.nlp.translator.factory import TranslatorRegistry

_log = logging.getLogger(__name__)


class CaptionSession:
    """
    Everything one player page needs: current settings, the scoped cache and
    pending table, caption state and the overlay timers.

    Caption source -> observe() -> StabilityDetector -> TranslationOrchestrator -> overlay
    """

    def __init__(
        self,
        settings: Settings,
        overlay: Overlay,
        *,
        scheduler: Scheduler,
        executor: Executor,
        registry: Optional[TranslatorRegistry] = None,
        store: Optional[CacheStore] = None,
        timings: Optional[SessionTimings] = None,
        logger: logging.Logger | None = _log,
    ) -> None:
        self.overlay = overlay
        self.timings = timings or SessionTimings()
        self.logger = logger
        self._settings = settings
        self._settings_lock = threading.Lock()
        self._hide_timer = Debouncer(scheduler)

        self.cache = TranslationCache(
            settings.scope,
            scheduler=scheduler,
            store=store,
            flush_delay_sec=self.timings.cache_flush_sec,
        )
        self.detector = StabilityDetector(
            scheduler=scheduler,
            on_finalize=self._on_finalize,
            on_prefetch=self._on_prefetch,
            prefetch_delay_sec=self.timings.prefetch_delay_sec,
            min_prefetch_chars=self.timings.min_prefetch_chars,
        )
        self.orchestrator = TranslationOrchestrator(
            cache=self.cache,
            registry=registry or TranslatorRegistry(),
            overlay=overlay,
            executor=executor,
            scheduler=scheduler,
            settings=lambda: self.settings,
            is_current=self.detector.is_current,
            error_clear_sec=self.timings.error_clear_sec,
        )

    @property
    def settings(self) -> Settings:
        with self._settings_lock:
            return self._settings

    def start(self) -> None:
        self.cache.load()

    def observe(self, text: Optional[str]) -> Transition:
        if not self.settings.enabled:
            return Transition.NOOP
        transition = self.detector.observe(text)
        if transition == Transition.CLEAR:
            self._hide_timer.schedule(self.timings.auto_hide_sec, self.overlay.hide)
        elif transition in (Transition.START, Transition.REPLACE):
            self._hide_timer.cancel()
        return transition

    def flush(self) -> Optional[str]:
        if not self.settings.enabled:
            return None
        return self.detector.flush()

    def apply_settings(self, settings: Settings) -> bool:
        """Swap in a new snapshot; True when the cache scope changed."""
        with self._settings_lock:
            old = self._settings
            self._settings = settings
        scope_changed = old.scope != settings.scope
        if scope_changed:
            self.cache.invalidate_scope(*settings.scope)
        if scope_changed or (old.enabled and not settings.enabled):
            # in-flight results become stale; nothing would replace a loading indicator
            self.detector.reset()
            self._hide_timer.cancel()
            self.overlay.hide()
        log_event(
            self.logger,
            logging.INFO,
            "settings_applied",
            provider=settings.provider_id,
            source_lang=settings.source_lang,
            target_lang=settings.target_lang,
            enabled=settings.enabled,
            scope_changed=scope_changed,
        )
        return scope_changed

    def set_enabled(self, enabled: bool) -> None:
        current = self.settings
        if current.enabled == bool(enabled):
            return
        self.apply_settings(replace(current, enabled=bool(enabled)))

    def toggle(self) -> bool:
        self.set_enabled(not self.settings.enabled)
        return self.settings.enabled

    def close(self) -> None:
        self._hide_timer.cancel()
        self.detector.reset()
        self.orchestrator.close()
        self.cache.close()

    def _on_finalize(self, text: str) -> None:
        self.orchestrator.display(text)

    def _on_prefetch(self, text: str) -> None:
        if self.settings.enabled:
            self.orchestrator.prefetch(text)
