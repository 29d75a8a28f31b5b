# subtwin/caption/stability.py
from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Callable, Optional

from subtwin.app.logging_setup import log_event
from subtwin.caption.timers import Debouncer, Scheduler

_log = logging.getLogger(__name__)


class Transition(str, Enum):
    NOOP = "noop"          # empty -> empty
    START = "start"        # empty -> text
    REPEAT = "repeat"      # same text re-rendered
    GROW = "grow"          # new text extends current
    REPLACE = "replace"    # unrelated text, previous one is final
    CLEAR = "clear"        # text -> empty, previous one is final


def is_extension(old: str, new: str) -> bool:
    if not old or not new:
        return False
    return new.startswith(old)


class StabilityDetector:
    """
    Decides when a growing caption has settled.

    Rules:
      1) Text that extends the current caption (prefix growth) keeps growing;
         only the prefetch debounce is restarted.
      2) Unrelated text or an empty observation finalizes the current caption.
      3) Finalize is suppressed when the text equals the last emitted one.
      4) After `prefetch_delay_sec` without a change, the current caption is
         offered as a prefetch candidate if it is long enough.
    """

    def __init__(
        self,
        *,
        scheduler: Scheduler,
        on_finalize: Callable[[str], None],
        on_prefetch: Optional[Callable[[str], None]] = None,
        prefetch_delay_sec: float = 0.3,
        min_prefetch_chars: int = 8,
        logger: logging.Logger | None = _log,
    ) -> None:
        self.on_finalize = on_finalize
        self.on_prefetch = on_prefetch
        self.prefetch_delay_sec = max(0.0, float(prefetch_delay_sec))
        self.min_prefetch_chars = max(0, int(min_prefetch_chars))
        self.logger = logger
        self._current = ""
        self._last_emitted = ""
        self._lock = threading.Lock()
        self._prefetch_timer = Debouncer(scheduler)

    @property
    def current(self) -> str:
        return self._current

    @property
    def last_emitted(self) -> str:
        return self._last_emitted

    def observe(self, text: Optional[str]) -> Transition:
        new = (text or "").strip()
        finalized: Optional[str] = None

        with self._lock:
            cur = self._current
            if not cur and not new:
                return Transition.NOOP
            if not new:
                transition = Transition.CLEAR
                finalized = self._claim(cur)
                self._current = ""
                self._prefetch_timer.cancel()
            elif not cur:
                transition = Transition.START
                self._current = new
                self._arm_prefetch()
            elif new == cur:
                return Transition.REPEAT
            elif is_extension(cur, new):
                transition = Transition.GROW
                self._current = new
                self._arm_prefetch()
            else:
                transition = Transition.REPLACE
                finalized = self._claim(cur)
                self._current = new
                self._arm_prefetch()

        if finalized is not None:
            self._emit_finalize(finalized)
        return transition

    def flush(self) -> Optional[str]:
        """Finalize whatever is on screen now (end of stream)."""
        with self._lock:
            cur = self._current
            self._current = ""
            self._prefetch_timer.cancel()
            finalized = self._claim(cur) if cur else None
        if finalized is not None:
            self._emit_finalize(finalized)
        return finalized

    def reset(self) -> None:
        with self._lock:
            self._current = ""
            self._last_emitted = ""
            self._prefetch_timer.cancel()

    def is_current(self, text: str) -> bool:
        return text == self._last_emitted

    def _claim(self, text: str) -> Optional[str]:
        # caller holds the lock; last_emitted moves before any network work
        if text == self._last_emitted:
            return None
        self._last_emitted = text
        return text

    def _arm_prefetch(self) -> None:
        if self.on_prefetch is None:
            return
        self._prefetch_timer.schedule(self.prefetch_delay_sec, self._on_prefetch_timer)

    def _on_prefetch_timer(self) -> None:
        with self._lock:
            text = self._current
        if not text:
            return
        if len(text) < self.min_prefetch_chars:
            log_event(self.logger, logging.DEBUG, "prefetch_drop_short", chars=len(text))
            return
        log_event(self.logger, logging.DEBUG, "prefetch_fire", chars=len(text))
        if self.on_prefetch is not None:
            self.on_prefetch(text)

    def _emit_finalize(self, text: str) -> None:
        log_event(self.logger, logging.INFO, "caption_finalize", chars=len(text))
        self.on_finalize(text)
