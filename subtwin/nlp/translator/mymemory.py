from __future__ import annotations

from subtwin.contracts import ProviderConfig, TranslationRequest, TranslationResult
from subtwin.nlp.translator.errors import MalformedResponse, ProviderLogicFailure, UnsupportedLanguage
from subtwin.nlp.translator.http import HttpTranslator
from subtwin.nlp.translator.languages import is_auto

MYMEMORY_URL = "https://api.mymemory.translated.net/get"


class MyMemoryTranslator(HttpTranslator):
    @property
    def name(self) -> str:
        return "mymemory"

    def translate(self, req: TranslationRequest, config: ProviderConfig) -> TranslationResult:
        if is_auto(req.source_lang):
            raise UnsupportedLanguage(
                "MyMemory needs an explicit source language",
                details={"provider": self.name, "source_lang": req.source_lang},
            )
        params = {"q": req.text, "langpair": f"{req.source_lang}|{req.target_lang}"}
        data = self._get_json(config, MYMEMORY_URL, params=params)
        if not isinstance(data, dict):
            raise MalformedResponse("mymemory returned an unexpected payload", details={"provider": self.name})

        status = data.get("responseStatus")
        payload = data.get("responseData")
        if str(status) == "200" and isinstance(payload, dict):
            out = str(payload.get("translatedText") or "").strip()
            if not out:
                raise MalformedResponse("mymemory returned an empty translation", details={"provider": self.name})
            return self._result(req, out)
        raise ProviderLogicFailure(
            str(data.get("responseDetails") or "MyMemory translation failed"),
            details={"provider": self.name, "status": status},
        )
