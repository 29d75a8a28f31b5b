from __future__ import annotations

import hashlib
import json

import httpx
import pytest

from subtwin.contracts import ProviderConfig, TranslationRequest
from subtwin.nlp.translator.baidu import BaiduTranslator, baidu_sign, next_salt
from subtwin.nlp.translator.chat import DEEPSEEK, GLM, OPENAI, ChatCompletionTranslator, build_messages
from subtwin.nlp.translator.deepl import DEEPL_FREE_URL, DEEPL_PRO_URL, DeepLTranslator, deepl_endpoint
from subtwin.nlp.translator.errors import (
    MalformedResponse,
    MissingCredential,
    ProviderLogicFailure,
    TransportFailure,
    UnsupportedLanguage,
)
from subtwin.nlp.translator.google import GoogleTranslator
from subtwin.nlp.translator.http import get_httpx_timeout
from subtwin.nlp.translator.mymemory import MyMemoryTranslator


def _transport(handler, seen: list):
    def wrapped(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    return httpx.MockTransport(wrapped)


def test_google_joins_segments() -> None:
    seen: list[httpx.Request] = []
    payload = [[["你好，", "Hello, ", None], ["世界", "world", None]], None, "en"]
    tr = GoogleTranslator(_transport(lambda r: httpx.Response(200, json=payload), seen))

    res = tr.translate(TranslationRequest("Hello, world", "auto", "zh-CN"), ProviderConfig())

    assert res.translated_text == "你好，世界"
    assert res.provider == "google"
    params = seen[0].url.params
    assert seen[0].url.host == "translate.googleapis.com"
    assert params["client"] == "gtx"
    assert params["sl"] == "auto"
    assert params["tl"] == "zh-CN"
    assert params["q"] == "Hello, world"


def test_google_unexpected_payload_is_malformed() -> None:
    tr = GoogleTranslator(_transport(lambda r: httpx.Response(200, json={"oops": 1}), []))
    with pytest.raises(MalformedResponse):
        tr.translate(TranslationRequest("Hello"), ProviderConfig())


def test_http_status_maps_to_transport_failure() -> None:
    tr = GoogleTranslator(_transport(lambda r: httpx.Response(429, json={"error": {"message": "slow down"}}), []))
    with pytest.raises(TransportFailure) as ei:
        tr.translate(TranslationRequest("Hello"), ProviderConfig())
    assert ei.value.status_code == 429
    assert "slow down" in str(ei.value)


def test_network_error_maps_to_transport_failure() -> None:
    def boom(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    tr = GoogleTranslator(_transport(boom, []))
    with pytest.raises(TransportFailure) as ei:
        tr.translate(TranslationRequest("Hello"), ProviderConfig())
    assert ei.value.status_code is None


def test_non_json_body_is_malformed() -> None:
    tr = GoogleTranslator(_transport(lambda r: httpx.Response(200, text="<html>"), []))
    with pytest.raises(MalformedResponse):
        tr.translate(TranslationRequest("Hello"), ProviderConfig())


def test_timeout_is_capped_for_connect() -> None:
    t = get_httpx_timeout(20)
    assert t.read == 20.0
    assert t.connect == 5.0
    assert get_httpx_timeout(None).read == 10.0


def test_mymemory_success_and_langpair() -> None:
    seen: list[httpx.Request] = []
    body = {"responseStatus": 200, "responseData": {"translatedText": "Bonjour"}}
    tr = MyMemoryTranslator(_transport(lambda r: httpx.Response(200, json=body), seen))
    res = tr.translate(TranslationRequest("Hello", "en", "fr"), ProviderConfig())
    assert res.translated_text == "Bonjour"
    assert seen[0].url.params["langpair"] == "en|fr"


def test_mymemory_rejects_auto_detect_without_network() -> None:
    seen: list[httpx.Request] = []
    tr = MyMemoryTranslator(_transport(lambda r: httpx.Response(200, json={}), seen))
    with pytest.raises(UnsupportedLanguage):
        tr.translate(TranslationRequest("Hello", "auto", "fr"), ProviderConfig())
    assert seen == []


def test_mymemory_logical_failure() -> None:
    body = {"responseStatus": "403", "responseDetails": "INVALID LANGUAGE PAIR", "responseData": {}}
    tr = MyMemoryTranslator(_transport(lambda r: httpx.Response(200, json=body), []))
    with pytest.raises(ProviderLogicFailure, match="INVALID LANGUAGE PAIR"):
        tr.translate(TranslationRequest("Hello", "en", "xx"), ProviderConfig())


def test_deepl_endpoint_follows_key_plan() -> None:
    assert deepl_endpoint(ProviderConfig(api_key="abc:fx")) == DEEPL_FREE_URL
    assert deepl_endpoint(ProviderConfig(api_key="abc")) == DEEPL_PRO_URL
    assert deepl_endpoint(ProviderConfig(api_key="abc", endpoint="http://proxy/v2")) == "http://proxy/v2"


def test_deepl_request_shape() -> None:
    seen: list[httpx.Request] = []
    body = {"translations": [{"detected_source_language": "EN", "text": "Hallo"}]}
    tr = DeepLTranslator(_transport(lambda r: httpx.Response(200, json=body), seen))

    res = tr.translate(TranslationRequest("Hello", "auto", "de"), ProviderConfig(api_key="k:fx"))

    assert res.translated_text == "Hallo"
    req = seen[0]
    assert str(req.url) == DEEPL_FREE_URL
    assert req.headers["Authorization"] == "DeepL-Auth-Key k:fx"
    sent = json.loads(req.content)
    assert sent == {"text": ["Hello"], "target_lang": "DE"}


def test_deepl_maps_language_codes() -> None:
    seen: list[httpx.Request] = []
    body = {"translations": [{"text": "Hello"}]}
    tr = DeepLTranslator(_transport(lambda r: httpx.Response(200, json=body), seen))
    tr.translate(TranslationRequest("你好", "zh-CN", "en"), ProviderConfig(api_key="k"))
    sent = json.loads(seen[0].content)
    assert sent["source_lang"] == "ZH"
    assert sent["target_lang"] == "EN-US"


def test_deepl_requires_key() -> None:
    with pytest.raises(MissingCredential):
        DeepLTranslator().translate(TranslationRequest("Hello"), ProviderConfig())


def test_baidu_sign_is_md5_of_concatenation() -> None:
    expected = hashlib.md5("2015063000000001apple143566028812345678".encode("utf-8")).hexdigest()
    assert baidu_sign("2015063000000001", "apple", "1435660288", "12345678") == expected


def test_baidu_salt_is_increasing() -> None:
    a, b = int(next_salt()), int(next_salt())
    assert b > a


def test_baidu_request_and_multiline_result() -> None:
    seen: list[httpx.Request] = []
    body = {"from": "en", "to": "zh", "trans_result": [{"src": "a", "dst": "甲"}, {"src": "b", "dst": "乙"}]}
    tr = BaiduTranslator(_transport(lambda r: httpx.Response(200, json=body), seen))

    res = tr.translate(TranslationRequest("a\nb", "en", "zh-TW"), ProviderConfig(api_key="secret", app_id="app"))

    assert res.translated_text == "甲\n乙"
    params = seen[0].url.params
    assert params["from"] == "en"
    assert params["to"] == "cht"
    assert params["appid"] == "app"
    assert params["sign"] == baidu_sign("app", "a\nb", params["salt"], "secret")


def test_baidu_error_code_is_logic_failure() -> None:
    body = {"error_code": "54001", "error_msg": "Invalid Sign"}
    tr = BaiduTranslator(_transport(lambda r: httpx.Response(200, json=body), []))
    with pytest.raises(ProviderLogicFailure) as ei:
        tr.translate(TranslationRequest("a"), ProviderConfig(api_key="s", app_id="a"))
    assert ei.value.details["error_code"] == "54001"


def test_baidu_requires_app_id_and_secret() -> None:
    with pytest.raises(MissingCredential) as ei:
        BaiduTranslator().translate(TranslationRequest("a"), ProviderConfig(api_key="s"))
    assert ei.value.details["missing_field"] == "app_id"


@pytest.mark.parametrize(
    "preset, host, model",
    [
        (OPENAI, "api.openai.com", "gpt-4o-mini"),
        (DEEPSEEK, "api.deepseek.com", "deepseek-chat"),
        (GLM, "open.bigmodel.cn", "glm-4-flash"),
    ],
)
def test_chat_presets(preset, host, model) -> None:
    seen: list[httpx.Request] = []
    body = {"choices": [{"message": {"role": "assistant", "content": " 你好 \n"}}]}
    tr = ChatCompletionTranslator(preset, _transport(lambda r: httpx.Response(200, json=body), seen))

    res = tr.translate(TranslationRequest("Hello", "en", "zh-CN"), ProviderConfig(api_key="sk"))

    assert res.translated_text == "你好"
    assert res.provider == preset.provider_id
    req = seen[0]
    assert req.url.host == host
    assert req.headers["Authorization"] == "Bearer sk"
    sent = json.loads(req.content)
    assert sent["model"] == model
    assert sent["temperature"] == 0.3
    assert sent["messages"][1] == {"role": "user", "content": "Hello"}


def test_chat_overrides_endpoint_and_model() -> None:
    seen: list[httpx.Request] = []
    body = {"choices": [{"message": {"content": "ok"}}]}
    tr = ChatCompletionTranslator(OPENAI, _transport(lambda r: httpx.Response(200, json=body), seen))
    tr.translate(
        TranslationRequest("Hello"),
        ProviderConfig(api_key="sk", endpoint="http://localhost:8080/v1/chat/completions", model="local"),
    )
    assert seen[0].url.host == "localhost"
    assert json.loads(seen[0].content)["model"] == "local"


def test_chat_empty_content_is_malformed() -> None:
    body = {"choices": [{"message": {"content": "   "}}]}
    tr = ChatCompletionTranslator(OPENAI, _transport(lambda r: httpx.Response(200, json=body), []))
    with pytest.raises(MalformedResponse):
        tr.translate(TranslationRequest("Hello"), ProviderConfig(api_key="sk"))


def test_chat_requires_key() -> None:
    with pytest.raises(MissingCredential):
        ChatCompletionTranslator(DEEPSEEK).translate(TranslationRequest("Hello"), ProviderConfig())


def test_build_messages_names_languages() -> None:
    msgs = build_messages(TranslationRequest("Hi", "auto", "ja"))
    assert msgs[0]["role"] == "system"
    assert "Japanese" in msgs[0]["content"]
    assert "detected source language" in msgs[0]["content"]
