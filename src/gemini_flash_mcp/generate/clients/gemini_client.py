# Client for the Gemini generateContent REST endpoint.
# One POST per call, no retries. Transport and HTTP failures raise ProviderError;
# a read/connect timeout raises ProviderTimeout.

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlsplit

import requests

from ...errors import ConfigurationError, ProviderError, ProviderTimeout
from ..types import GenerationParams

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.0-flash-exp-image-generation"
DEFAULT_API_BASE = "https://generativelanguage.googleapis.com/v1beta"


def _error_message(data: Any) -> Optional[str]:
    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        msg = data["error"].get("message")
        return str(msg) if msg else None
    return None


class GeminiClient:
    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        api_base: str = DEFAULT_API_BASE,
        session: Optional[requests.Session] = None,
    ):
        if not api_key:
            raise ConfigurationError("GEMINI_API_KEY is required")
        self.api_key = api_key
        self.model = model
        self.api_base = api_base.rstrip("/")
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        return {"x-goog-api-key": self.api_key}

    def _trusts(self, uri: str) -> bool:
        """Only the API host and other googleapis.com hosts over https get the key."""
        parts = urlsplit(uri)
        host = (parts.hostname or "").lower()
        if parts.scheme != "https" or not host:
            return False
        return host == urlsplit(self.api_base).hostname or host.endswith(".googleapis.com")

    def build_payload(self, prompt: str, params: GenerationParams) -> Dict[str, Any]:
        generation_config: Dict[str, Any] = {
            "temperature": float(params.temperature),
            "topP": float(params.top_p),
            "topK": int(params.top_k),
            "maxOutputTokens": int(params.max_output_tokens),
            "responseModalities": ["TEXT", "IMAGE"],
        }
        if params.response_mime_type:
            generation_config["responseMimeType"] = params.response_mime_type
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": generation_config,
        }

    def generate(self, prompt: str, params: GenerationParams, timeout: Optional[float] = None) -> Dict[str, Any]:
        url = f"{self.api_base}/models/{self.model}:generateContent"
        payload = self.build_payload(prompt, params)
        try:
            resp = self.session.post(url, json=payload, headers=self._headers(), timeout=timeout)
        except requests.Timeout as e:
            raise ProviderTimeout("timeout") from e
        except requests.RequestException as e:
            raise ProviderError(f"transport error: {e}") from e

        try:
            data = resp.json()
        except ValueError:
            data = None

        if not resp.ok:
            message = _error_message(data) or resp.text[:200] or resp.reason
            raise ProviderError(f"provider error {resp.status_code}: {message}")
        if data is None:
            raise ProviderError("malformed provider reply: body is not JSON")
        logger.debug("generateContent %s -> HTTP %s", self.model, resp.status_code)
        return data

    def fetch_file(self, uri: str, timeout: Optional[float] = None) -> bytes:
        """Download an image the provider returned by reference (fileData.fileUri)."""
        try:
            headers = self._headers() if self._trusts(uri) else {}
            resp = self.session.get(uri, headers=headers, timeout=timeout)
            resp.raise_for_status()
        except requests.Timeout as e:
            raise ProviderTimeout("timeout") from e
        except requests.RequestException as e:
            raise ProviderError(f"could not fetch image from {uri}: {e}") from e
        if not resp.content:
            raise ProviderError(f"empty image body from {uri}")
        return resp.content
