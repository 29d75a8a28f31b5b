"""
Translator errors.

Every adapter failure is a TranslationError subclass; the orchestrator
catches them at its boundary and never caches the failure.
"""
from __future__ import annotations

from typing import Optional


class TranslationError(Exception):
    """Translation failure with a stable code and optional details."""

    default_code = "translation_error"

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message)
        self.code = code or self.default_code
        self.details = details or {}


class MissingCredential(TranslationError):
    default_code = "missing_credential"


class UnsupportedLanguage(TranslationError):
    default_code = "unsupported_language"


class TransportFailure(TranslationError):
    default_code = "transport_failure"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, code=code, details=details)
        self.status_code = status_code


class MalformedResponse(TranslationError):
    default_code = "malformed_response"


class ProviderLogicFailure(TranslationError):
    default_code = "provider_failure"
