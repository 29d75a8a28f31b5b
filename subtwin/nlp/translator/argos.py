from __future__ import annotations

import threading

from .base import Translator
from subtwin.contracts import ProviderConfig, TranslationRequest, TranslationResult
from subtwin.nlp.translator.errors import ProviderLogicFailure, UnsupportedLanguage
from subtwin.nlp.translator.languages import ARGOS_CODES, is_auto, to_provider_code


class ArgosTranslator(Translator):
    """Offline translation through locally installed Argos packages."""

    def __init__(self, auto_install: bool = True):
        self.auto_install = auto_install
        self._ready: set[tuple[str, str]] = set()
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "argos"

    def _ensure_ready(self, from_code: str, to_code: str) -> None:
        with self._lock:
            if (from_code, to_code) in self._ready:
                return

            import argostranslate.package
            import argostranslate.translate

            installed = argostranslate.translate.get_installed_languages()
            have_from = any(l.code == from_code for l in installed)
            have_to = any(l.code == to_code for l in installed)

            if not (have_from and have_to):
                if not self.auto_install:
                    raise ProviderLogicFailure(
                        f"Argos model {from_code}->{to_code} not installed and auto_install=False",
                        details={"provider": self.name},
                    )

                argostranslate.package.update_package_index()
                available = argostranslate.package.get_available_packages()

                pkg = None
                for p in available:
                    if p.from_code == from_code and p.to_code == to_code:
                        pkg = p
                        break
                if pkg is None:
                    raise UnsupportedLanguage(
                        f"No Argos package found for {from_code}->{to_code}",
                        details={"provider": self.name},
                    )

                path = pkg.download()
                argostranslate.package.install_from_path(path)

            self._ready.add((from_code, to_code))

    def translate(self, req: TranslationRequest, config: ProviderConfig) -> TranslationResult:
        if is_auto(req.source_lang):
            raise UnsupportedLanguage("Argos cannot detect the source language", details={"provider": self.name})
        from_code = to_provider_code(req.source_lang, ARGOS_CODES)
        to_code = to_provider_code(req.target_lang, ARGOS_CODES)
        self._ensure_ready(from_code, to_code)

        import argostranslate.translate
        out = argostranslate.translate.translate(req.text, from_code, to_code)
        return self._result(req, str(out).strip())
