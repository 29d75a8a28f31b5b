# subtwin/live/orchestrator.py
from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Executor, Future
from typing import Callable, Optional

from subtwin.app.diagnostics import hint_for_exception, summarize_exception
from subtwin.app.logging_setup import log_event
from subtwin.cache.translation_cache import TranslationCache
from subtwin.caption.timers import Debouncer, Scheduler
from subtwin.contracts import Overlay, ProviderConfig, Settings, TranslationKey, TranslationRequest
from subtwin.nlp.translator.base import Translator
from subtwin.nlp.translator.errors import MalformedResponse, TranslationError
from subtwin.nlp.translator.factory import TranslatorRegistry

_log = logging.getLogger(__name__)


def _resolved(value: Optional[str]) -> "Future[Optional[str]]":
    fut: "Future[Optional[str]]" = Future()
    fut.set_result(value)
    return fut


class TranslationOrchestrator:
    """
    Turns finalized or prefetched caption text into at most one provider call
    per (provider, source, target, text) and drives the overlay.

    Returned futures resolve to the translation, or to None on failure; they
    never raise.
    """

    def __init__(
        self,
        *,
        cache: TranslationCache,
        registry: TranslatorRegistry,
        overlay: Overlay,
        executor: Executor,
        scheduler: Scheduler,
        settings: Callable[[], Settings],
        is_current: Optional[Callable[[str], bool]] = None,
        error_clear_sec: float = 3.0,
        logger: logging.Logger | None = _log,
    ) -> None:
        self.cache = cache
        self.registry = registry
        self.overlay = overlay
        self.executor = executor
        self.settings = settings
        self.is_current = is_current
        self.error_clear_sec = max(0.0, float(error_clear_sec))
        self.logger = logger
        self._error_timer = Debouncer(scheduler)
        self._stats_lock = threading.Lock()
        self.stats: dict[str, int] = {
            "cache_hits": 0,
            "coalesced": 0,
            "provider_calls": 0,
            "failures": 0,
            "stale_results": 0,
        }

    def display(self, text: str) -> "Future[Optional[str]]":
        return self.request_translation(text, is_prefetch=False)

    def prefetch(self, text: str) -> "Future[Optional[str]]":
        return self.request_translation(text, is_prefetch=True)

    def request_translation(self, text: str, is_prefetch: bool = False) -> "Future[Optional[str]]":
        text = (text or "").strip()
        if not text:
            return _resolved(None)

        snapshot = self.settings()
        key = snapshot.key_for(text)
        lookup = self.cache.reserve(key)

        if lookup.value is not None:
            self._count("cache_hits")
            if not is_prefetch:
                self._show_result(lookup.value)
            return _resolved(lookup.value)

        handle = lookup.handle
        if not lookup.created:
            self._count("coalesced")
            log_event(self.logger, logging.DEBUG, "translate_coalesced", provider=key.provider_id, chars=len(text))

        if not is_prefetch:
            self._show_loading()
            handle.add_done_callback(lambda f: self._surface(text, f))

        if lookup.created:
            translator = self.registry.get(key.provider_id)
            self._start(translator, key, handle, snapshot.provider_config, is_prefetch)
        return handle

    def _start(
        self,
        translator: Translator,
        key: TranslationKey,
        handle: "Future[Optional[str]]",
        config: ProviderConfig,
        is_prefetch: bool,
    ) -> None:
        self._count("provider_calls")
        log_event(
            self.logger,
            logging.INFO,
            "translate_start",
            provider=translator.name,
            source_lang=key.source_lang,
            target_lang=key.target_lang,
            chars=len(key.text),
            prefetch=is_prefetch,
        )
        try:
            self.executor.submit(self._run, translator, key, handle, config)
        except RuntimeError as exc:
            # executor already shut down
            log_event(self.logger, logging.WARNING, "translate_not_started", provider=translator.name, error=str(exc))
            self._settle(key, handle, None)

    def _run(
        self,
        translator: Translator,
        key: TranslationKey,
        handle: "Future[Optional[str]]",
        config: ProviderConfig,
    ) -> None:
        req = TranslationRequest(text=key.text, source_lang=key.source_lang, target_lang=key.target_lang)
        t0 = time.perf_counter()
        value: Optional[str] = None
        try:
            res = translator.translate(req, config)
            value = (res.translated_text or "").strip()
            if not value:
                raise MalformedResponse(f"{translator.name} returned an empty translation")
            log_event(
                self.logger,
                logging.INFO,
                "translate_done",
                provider=translator.name,
                chars=len(key.text),
                ms=round((time.perf_counter() - t0) * 1000.0, 2),
            )
        except TranslationError as exc:
            value = None
            self._count("failures")
            summary = summarize_exception(str(exc))
            log_event(
                self.logger,
                logging.WARNING,
                "translate_failed",
                provider=translator.name,
                code=exc.code,
                summary=summary,
                hint=hint_for_exception(summary, exc.code),
                ms=round((time.perf_counter() - t0) * 1000.0, 2),
            )
        except Exception as exc:
            value = None
            self._count("failures")
            if self.logger is not None:
                self.logger.exception(
                    "translate_failed",
                    extra={
                        "provider": translator.name,
                        "code": "unexpected",
                        "summary": summarize_exception(f"{type(exc).__name__}: {exc}"),
                    },
                )
        finally:
            self._settle(key, handle, value)

    def _settle(self, key: TranslationKey, handle: "Future[Optional[str]]", value: Optional[str]) -> None:
        # cache first, so a caller arriving after the pending entry is gone hits it
        self.cache.complete(key, handle, value)
        if not handle.done():
            handle.set_result(value)

    def _surface(self, text: str, fut: "Future[Optional[str]]") -> None:
        value = fut.result()
        if self.is_current is not None and not self.is_current(text):
            self._count("stale_results")
            log_event(self.logger, logging.DEBUG, "translate_result_stale", chars=len(text))
            return
        if value:
            self._show_result(value)
        else:
            self._show_error()

    def _show_loading(self) -> None:
        self._error_timer.cancel()
        self.overlay.show_loading()

    def _show_result(self, text: str) -> None:
        self._error_timer.cancel()
        self.overlay.show_result(text)

    def _show_error(self) -> None:
        self.overlay.show_error()
        self._error_timer.schedule(self.error_clear_sec, self.overlay.hide)

    def close(self) -> None:
        self._error_timer.cancel()

    def _count(self, name: str) -> None:
        with self._stats_lock:
            self.stats[name] = self.stats.get(name, 0) + 1
