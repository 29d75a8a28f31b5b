"""
Canonical language tags and per-provider code tables.

Canonical tags follow the settings UI: ISO 639-1 codes plus BCP 47
region tags for Chinese ('zh-CN' simplified, 'zh-TW' traditional) and
'auto' for source-language detection.
"""

from typing import Dict, Optional

AUTO = "auto"

LANGUAGE_NAMES: Dict[str, str] = {
    "en": "English",
    "zh-CN": "Simplified Chinese",
    "zh-TW": "Traditional Chinese",
    "ja": "Japanese",
    "ko": "Korean",
    "fr": "French",
    "de": "German",
    "es": "Spanish",
    "ru": "Russian",
    "pt": "Portuguese",
    "it": "Italian",
    "ar": "Arabic",
    "hi": "Hindi",
    "th": "Thai",
    "vi": "Vietnamese",
    "id": "Indonesian",
}

# DeepL: uppercase codes, Chinese variants collapse to ZH
DEEPL_SOURCE_CODES: Dict[str, str] = {
    "en": "EN",
    "zh-CN": "ZH",
    "zh-TW": "ZH",
    "ja": "JA",
    "ko": "KO",
    "fr": "FR",
    "de": "DE",
    "es": "ES",
    "ru": "RU",
    "pt": "PT",
    "it": "IT",
    "id": "ID",
}

# DeepL rejects bare EN/PT as target languages
DEEPL_TARGET_CODES: Dict[str, str] = {
    **DEEPL_SOURCE_CODES,
    "en": "EN-US",
    "pt": "PT-PT",
}

BAIDU_CODES: Dict[str, str] = {
    "auto": "auto",
    "en": "en",
    "zh-CN": "zh",
    "zh-TW": "cht",
    "ja": "jp",
    "ko": "kor",
    "fr": "fra",
    "de": "de",
    "es": "spa",
    "ru": "ru",
    "pt": "pt",
    "it": "it",
    "ar": "ara",
    "th": "th",
    "vi": "vie",
}

ARGOS_CODES: Dict[str, str] = {
    "zh-CN": "zh",
    "zh-TW": "zt",
}


def to_provider_code(tag: str, table: Dict[str, str], *, upper_fallback: bool = False) -> str:
    """Map a canonical tag through a provider table; unmapped tags pass through."""
    if tag in table:
        return table[tag]
    return tag.upper() if upper_fallback else tag


def language_name(tag: str) -> Optional[str]:
    return LANGUAGE_NAMES.get(tag)


def is_auto(tag: str) -> bool:
    return not tag or tag.lower() == AUTO
