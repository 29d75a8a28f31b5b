from __future__ import annotations

import hashlib
import itertools
import threading
import time

from subtwin.contracts import ProviderConfig, TranslationRequest, TranslationResult
from subtwin.nlp.translator.errors import MalformedResponse, MissingCredential, ProviderLogicFailure
from subtwin.nlp.translator.http import HttpTranslator
from subtwin.nlp.translator.languages import AUTO, BAIDU_CODES, is_auto, to_provider_code

BAIDU_URL = "https://fanyi-api.baidu.com/api/trans/vip/translate"

_salt_counter = itertools.count(int(time.time() * 1000))
_salt_lock = threading.Lock()


def next_salt() -> str:
    """Process-wide strictly increasing nonce."""
    with _salt_lock:
        return str(next(_salt_counter))


def baidu_sign(app_id: str, text: str, salt: str, secret: str) -> str:
    return hashlib.md5(f"{app_id}{text}{salt}{secret}".encode("utf-8")).hexdigest()


class BaiduTranslator(HttpTranslator):
    """Baidu Fanyi general translation API (appid + MD5-signed query)."""

    @property
    def name(self) -> str:
        return "baidu"

    def translate(self, req: TranslationRequest, config: ProviderConfig) -> TranslationResult:
        if not config.app_id or not config.api_key:
            raise MissingCredential(
                "Baidu requires both an App ID and a secret key",
                details={"provider": self.name, "missing_field": "app_id" if not config.app_id else "api_key"},
            )

        salt = next_salt()
        params = {
            "q": req.text,
            "from": AUTO if is_auto(req.source_lang) else to_provider_code(req.source_lang, BAIDU_CODES),
            "to": to_provider_code(req.target_lang, BAIDU_CODES),
            "appid": config.app_id,
            "salt": salt,
            "sign": baidu_sign(config.app_id, req.text, salt, config.api_key),
        }
        data = self._get_json(config, config.endpoint or BAIDU_URL, params=params)
        if not isinstance(data, dict):
            raise MalformedResponse("baidu returned an unexpected payload", details={"provider": self.name})

        if data.get("error_code") and str(data.get("error_code")) != "52000":
            raise ProviderLogicFailure(
                f"Baidu error {data.get('error_code')}: {data.get('error_msg', '')}",
                details={"provider": self.name, "error_code": str(data.get("error_code"))},
            )
        rows = data.get("trans_result") or []
        out = "\n".join(str(r.get("dst", "")) for r in rows if isinstance(r, dict)).strip()
        if not out:
            raise MalformedResponse("baidu returned no translation", details={"provider": self.name})
        return self._result(req, out)
