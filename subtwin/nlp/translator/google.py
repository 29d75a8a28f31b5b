from __future__ import annotations

from subtwin.contracts import ProviderConfig, TranslationRequest, TranslationResult
from subtwin.nlp.translator.errors import MalformedResponse
from subtwin.nlp.translator.http import HttpTranslator
from subtwin.nlp.translator.languages import AUTO, is_auto

GOOGLE_URL = "https://translate.googleapis.com/translate_a/single"


class GoogleTranslator(HttpTranslator):
    """Free translate.googleapis.com endpoint (client=gtx)."""

    @property
    def name(self) -> str:
        return "google"

    def translate(self, req: TranslationRequest, config: ProviderConfig) -> TranslationResult:
        params = {
            "client": "gtx",
            "sl": AUTO if is_auto(req.source_lang) else req.source_lang,
            "tl": req.target_lang,
            "dt": "t",
            "q": req.text,
        }
        data = self._get_json(config, GOOGLE_URL, params=params)

        # [[["translated", "original", ...], ...], ...]
        if not isinstance(data, list) or not data or not isinstance(data[0], list):
            raise MalformedResponse("google returned an unexpected payload", details={"provider": self.name})
        parts = []
        for item in data[0]:
            if isinstance(item, list) and item and item[0]:
                parts.append(str(item[0]))
        out = "".join(parts).strip()
        if not out:
            raise MalformedResponse("google returned an empty translation", details={"provider": self.name})
        return self._result(req, out)
