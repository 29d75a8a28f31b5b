"""
Chat-completion translators (OpenAI-compatible APIs).

OpenAI, DeepSeek and Zhipu GLM share the same wire format; they differ
only in default endpoint and model.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx

from subtwin.contracts import ProviderConfig, TranslationRequest, TranslationResult
from subtwin.nlp.translator.errors import MalformedResponse, MissingCredential
from subtwin.nlp.translator.http import HttpTranslator
from subtwin.nlp.translator.languages import is_auto, language_name

SYSTEM_PROMPT = (
    "You are a subtitle translator. Translate the user's message from {source} into {target}. "
    "Keep the original tone and meaning. Reply with the translation only: "
    "no explanations, notes, quotes or commentary."
)


@dataclass(frozen=True)
class ChatPreset:
    provider_id: str
    endpoint: str
    model: str


OPENAI = ChatPreset("openai", "https://api.openai.com/v1/chat/completions", "gpt-4o-mini")
DEEPSEEK = ChatPreset("deepseek", "https://api.deepseek.com/v1/chat/completions", "deepseek-chat")
GLM = ChatPreset("glm", "https://open.bigmodel.cn/api/paas/v4/chat/completions", "glm-4-flash")


def build_messages(req: TranslationRequest) -> list[dict[str, str]]:
    if is_auto(req.source_lang):
        source = "the detected source language"
    else:
        source = language_name(req.source_lang) or req.source_lang
    target = language_name(req.target_lang) or req.target_lang
    return [
        {"role": "system", "content": SYSTEM_PROMPT.format(source=source, target=target)},
        {"role": "user", "content": req.text},
    ]


class ChatCompletionTranslator(HttpTranslator):
    def __init__(self, preset: ChatPreset, transport: Optional[httpx.BaseTransport] = None) -> None:
        super().__init__(transport)
        self.preset = preset

    @property
    def name(self) -> str:
        return self.preset.provider_id

    def translate(self, req: TranslationRequest, config: ProviderConfig) -> TranslationResult:
        if not config.api_key:
            raise MissingCredential(f"{self.name} requires an API key", details={"provider": self.name})

        body = {
            "model": config.model or self.preset.model,
            "messages": build_messages(req),
            "temperature": 0.3,
        }
        headers = {
            "Authorization": f"Bearer {config.api_key}",
            "Content-Type": "application/json",
        }
        result = self._post_json(config, config.endpoint or self.preset.endpoint, body=body, headers=headers)

        choices = result.get("choices") if isinstance(result, dict) else None
        if choices and isinstance(choices[0], dict):
            content = (choices[0].get("message") or {}).get("content") or ""
            content = str(content).strip()
            if content:
                return self._result(req, content)
        raise MalformedResponse(f"No content in {self.name} response", details={"provider": self.name})
