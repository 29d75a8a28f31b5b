from __future__ import annotations

from subtwin.contracts import ProviderConfig, TranslationRequest, TranslationResult
from subtwin.nlp.translator.errors import MalformedResponse, MissingCredential
from subtwin.nlp.translator.http import HttpTranslator
from subtwin.nlp.translator.languages import (
    DEEPL_SOURCE_CODES,
    DEEPL_TARGET_CODES,
    is_auto,
    to_provider_code,
)

DEEPL_FREE_URL = "https://api-free.deepl.com/v2/translate"
DEEPL_PRO_URL = "https://api.deepl.com/v2/translate"


def deepl_endpoint(config: ProviderConfig) -> str:
    if config.endpoint:
        return config.endpoint
    # free-plan keys end with ":fx"
    return DEEPL_FREE_URL if config.api_key.endswith(":fx") else DEEPL_PRO_URL


class DeepLTranslator(HttpTranslator):
    @property
    def name(self) -> str:
        return "deepl"

    def translate(self, req: TranslationRequest, config: ProviderConfig) -> TranslationResult:
        if not config.api_key:
            raise MissingCredential("DeepL requires an API key", details={"provider": self.name})

        body: dict = {
            "text": [req.text],
            "target_lang": to_provider_code(req.target_lang, DEEPL_TARGET_CODES, upper_fallback=True),
        }
        if not is_auto(req.source_lang):
            body["source_lang"] = to_provider_code(req.source_lang, DEEPL_SOURCE_CODES, upper_fallback=True)

        headers = {
            "Authorization": f"DeepL-Auth-Key {config.api_key}",
            "Content-Type": "application/json",
        }
        data = self._post_json(config, deepl_endpoint(config), body=body, headers=headers)

        translations = data.get("translations") if isinstance(data, dict) else None
        if translations and isinstance(translations[0], dict):
            out = str(translations[0].get("text") or "").strip()
            if out:
                return self._result(req, out)
        raise MalformedResponse("DeepL returned no translation", details={"provider": self.name})
