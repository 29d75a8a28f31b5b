from __future__ import annotations
from .base import Translator
from subtwin.contracts import ProviderConfig, TranslationRequest, TranslationResult

class StubTranslator(Translator):
    @property
    def name(self) -> str:
        return "stub"

    def translate(self, req: TranslationRequest, config: ProviderConfig) -> TranslationResult:
        # Deterministic, offline
        return self._result(req, f"[{req.target_lang}] {req.text}")
