from __future__ import annotations

import logging
import os
import threading
from typing import Callable, Dict, Optional

import httpx

from .argos import ArgosTranslator
from .baidu import BaiduTranslator
from .base import Translator
from .chat import DEEPSEEK, GLM, OPENAI, ChatCompletionTranslator
from .deepl import DeepLTranslator
from .google import GoogleTranslator
from .mymemory import MyMemoryTranslator
from .stub import StubTranslator

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "mymemory"

Builder = Callable[[Optional[httpx.BaseTransport]], Translator]

PROVIDERS: Dict[str, Builder] = {
    "google": GoogleTranslator,
    "mymemory": MyMemoryTranslator,
    "deepl": DeepLTranslator,
    "baidu": BaiduTranslator,
    "openai": lambda transport: ChatCompletionTranslator(OPENAI, transport),
    "deepseek": lambda transport: ChatCompletionTranslator(DEEPSEEK, transport),
    "glm": lambda transport: ChatCompletionTranslator(GLM, transport),
    "argos": lambda transport: ArgosTranslator(),
    "stub": lambda transport: StubTranslator(),
}


def normalize_provider_id(provider: str | None) -> str:
    pid = (provider or "").lower().strip()
    if pid not in PROVIDERS:
        if pid:
            logger.warning(f"Unknown translator provider {pid!r}, falling back to {DEFAULT_PROVIDER}")
        return DEFAULT_PROVIDER
    return pid


class TranslatorRegistry:
    """Provider id -> translator instance, built lazily and reused."""

    def __init__(self, transport: Optional[httpx.BaseTransport] = None) -> None:
        self.transport = transport
        self._instances: Dict[str, Translator] = {}
        self._lock = threading.Lock()

    def get(self, provider: str | None) -> Translator:
        with self._lock:
            registered = self._instances.get((provider or "").lower().strip())
        if registered is not None:
            return registered
        pid = normalize_provider_id(provider)
        with self._lock:
            tr = self._instances.get(pid)
            if tr is None:
                tr = PROVIDERS[pid](self.transport)
                self._instances[pid] = tr
            # remember the fallback so an unknown id warns once
            self._instances.setdefault((provider or "").lower().strip(), tr)
            return tr

    def register(self, provider: str, translator: Translator) -> None:
        with self._lock:
            self._instances[provider] = translator


def get_translator(provider: str | None = None) -> Translator:
    provider = provider or os.getenv("SUBTWIN_TRANSLATOR", "google")
    return TranslatorRegistry().get(provider)
