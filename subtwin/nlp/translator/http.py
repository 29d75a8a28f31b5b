"""
Shared httpx plumbing for the HTTP translators.

Adapters describe the request; this module performs it and maps transport
problems onto the translator error types.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import httpx

from subtwin.contracts import ProviderConfig
from subtwin.nlp.translator.base import Translator
from subtwin.nlp.translator.errors import MalformedResponse, TransportFailure

logger = logging.getLogger(__name__)


def get_httpx_timeout(timeout_sec: Any) -> httpx.Timeout:
    """
    Build an httpx.Timeout for caption-sized requests.

    Subtitles go stale within seconds, so the read timeout is the configured
    value and connect/pool are capped by it.
    """
    read = float(timeout_sec) if timeout_sec else 10.0
    return httpx.Timeout(connect=min(5.0, read), write=read, read=read, pool=min(5.0, read))


def describe_http_error(response: httpx.Response) -> str:
    """Best-effort provider error text from a non-2xx response."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:300] if response.text else "No details"
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            return str(error.get("message") or error)
        if error:
            return str(error)
        if body.get("message"):
            return str(body["message"])
    return str(body)[:300]


class HttpTranslator(Translator):
    """Translator speaking JSON over HTTP; `transport` is injectable for tests."""

    def __init__(self, transport: Optional[httpx.BaseTransport] = None) -> None:
        self.transport = transport

    def _client(self, config: ProviderConfig) -> httpx.Client:
        return httpx.Client(timeout=get_httpx_timeout(config.timeout_sec), transport=self.transport)

    def _get_json(self, config: ProviderConfig, url: str, *, params: Mapping[str, str]) -> Any:
        return self._send(config, "GET", url, params=params)

    def _post_json(
        self,
        config: ProviderConfig,
        url: str,
        *,
        body: Mapping[str, Any],
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        return self._send(config, "POST", url, json=body, headers=headers)

    def _send(self, config: ProviderConfig, method: str, url: str, **kwargs: Any) -> Any:
        logger.debug(f"{self.name}: {method} {url}")
        try:
            with self._client(config) as client:
                response = client.request(method, url, **kwargs)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise TransportFailure(
                f"{self.name} API error ({status}): {describe_http_error(e.response)}",
                details={"provider": self.name},
                status_code=status,
            ) from e
        except httpx.TimeoutException as e:
            raise TransportFailure(f"{self.name} API request timeout", details={"provider": self.name}) from e
        except httpx.HTTPError as e:
            raise TransportFailure(f"{self.name} API request failed: {e}", details={"provider": self.name}) from e
        except ValueError as e:
            raise MalformedResponse(f"{self.name} returned a non-JSON body", details={"provider": self.name}) from e
