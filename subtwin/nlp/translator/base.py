from __future__ import annotations
from abc import ABC, abstractmethod
from subtwin.contracts import ProviderConfig, TranslationRequest, TranslationResult

class Translator(ABC):
    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def translate(self, req: TranslationRequest, config: ProviderConfig) -> TranslationResult: ...

    def _result(self, req: TranslationRequest, translated: str) -> TranslationResult:
        return TranslationResult(source_text=req.text, translated_text=translated, provider=self.name)
