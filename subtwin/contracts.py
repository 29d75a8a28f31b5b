from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Protocol

_KEY_SEP = "|"

@dataclass(frozen=True)
class ProviderConfig:
    """
    Immutable credential/endpoint snapshot handed to a translator call.
    Settings changes build a new instance; in-flight calls keep theirs.
    """
    api_key: str = ""
    endpoint: str = ""
    model: str = ""
    app_id: str = ""  # Baidu appid
    timeout_sec: float = 10.0

@dataclass(frozen=True)
class TranslationRequest:
    text: str
    source_lang: str = "auto"
    target_lang: str = "zh-CN"

@dataclass(frozen=True)
class TranslationResult:
    source_text: str
    translated_text: str
    provider: str

@dataclass(frozen=True)
class TranslationKey:
    provider_id: str
    source_lang: str
    target_lang: str
    text: str

    @property
    def scope(self) -> tuple[str, str, str]:
        return (self.provider_id, self.source_lang, self.target_lang)

    @property
    def storage_key(self) -> str:
        return scope_prefix(*self.scope) + self.text

    @classmethod
    def from_storage_key(cls, raw: str) -> "TranslationKey":
        parts = raw.split(_KEY_SEP, 3)
        if len(parts) != 4:
            raise ValueError(f"not a translation cache key: {raw!r}")
        return cls(*parts)


def scope_prefix(provider_id: str, source_lang: str, target_lang: str) -> str:
    return _KEY_SEP.join((provider_id, source_lang, target_lang)) + _KEY_SEP


@dataclass(frozen=True)
class Settings:
    enabled: bool = True
    provider_id: str = "google"
    source_lang: str = "auto"
    target_lang: str = "zh-CN"
    provider_config: ProviderConfig = field(default_factory=ProviderConfig)
    # display-only; never part of the cache scope
    font_size: str = "1.8"
    font_color: str = "#ffd700"
    bg_opacity: str = "0.75"

    @property
    def scope(self) -> tuple[str, str, str]:
        return (self.provider_id, self.source_lang, self.target_lang)

    def key_for(self, text: str) -> TranslationKey:
        return TranslationKey(self.provider_id, self.source_lang, self.target_lang, text)

@dataclass(frozen=True)
class DisplayEvent:
    kind: str  # "loading" | "result" | "error" | "hide"
    text: Optional[str] = None


class Overlay(Protocol):
    def show_loading(self) -> None:
        ...

    def show_result(self, text: str) -> None:
        ...

    def show_error(self) -> None:
        ...

    def hide(self) -> None:
        ...

@dataclass(frozen=True)
class SessionTimings:
    prefetch_delay_sec: float = 0.3
    min_prefetch_chars: int = 8
    auto_hide_sec: float = 2.0
    error_clear_sec: float = 3.0
    cache_flush_sec: float = 1.0
