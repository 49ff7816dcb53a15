# ===============================================
# tests/test_gemini_client.py
# GeminiClient request building and error mapping, with a fake requests session.
# ===============================================

import pytest
import requests

from conftest import image_reply
from gemini_flash_mcp.errors import ConfigurationError, ProviderError, ProviderTimeout
from gemini_flash_mcp.generate import GenerationParams
from gemini_flash_mcp.generate.clients.gemini_client import GeminiClient


class FakeResponse:
    def __init__(self, status_code=200, data=None, text="", content=b""):
        self.status_code = status_code
        self._data = data
        self.text = text
        self.content = content
        self.reason = "Bad Request" if status_code >= 400 else "OK"

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._data is None:
            raise ValueError("no json")
        return self._data

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.posts = []
        self.gets = []
        self.closed = False

    def post(self, url, json=None, headers=None, timeout=None):
        self.posts.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
        if self.exc is not None:
            raise self.exc
        return self.response

    def get(self, url, headers=None, timeout=None):
        self.gets.append({"url": url, "headers": headers, "timeout": timeout})
        if self.exc is not None:
            raise self.exc
        return self.response

    def close(self):
        self.closed = True


def _client(session, **kwargs):
    return GeminiClient("secret", session=session, **kwargs)


def test_api_key_required():
    with pytest.raises(ConfigurationError):
        GeminiClient("")


def test_request_shape():
    session = FakeSession(FakeResponse(data=image_reply()))
    client = _client(session, model="gemini-test", api_base="https://api.example/v1beta/")
    params = GenerationParams(temperature=0.3, top_p=0.9, top_k=7, max_output_tokens=256)
    data = client.generate("a red cube", params, timeout=12)

    assert data == image_reply()
    sent = session.posts[0]
    assert sent["url"] == "https://api.example/v1beta/models/gemini-test:generateContent"
    assert sent["headers"] == {"x-goog-api-key": "secret"}
    assert sent["timeout"] == 12
    assert sent["json"]["contents"] == [{"role": "user", "parts": [{"text": "a red cube"}]}]
    cfg = sent["json"]["generationConfig"]
    assert cfg == {
        "temperature": 0.3,
        "topP": 0.9,
        "topK": 7,
        "maxOutputTokens": 256,
        "responseModalities": ["TEXT", "IMAGE"],
    }


def test_response_mime_type_sent_when_configured():
    session = FakeSession(FakeResponse(data=image_reply()))
    _client(session).generate("x", GenerationParams(response_mime_type="image/png"))
    assert session.posts[0]["json"]["generationConfig"]["responseMimeType"] == "image/png"


def test_http_error_uses_provider_message():
    body = {"error": {"code": 400, "message": "API key not valid", "status": "INVALID_ARGUMENT"}}
    session = FakeSession(FakeResponse(status_code=400, data=body))
    with pytest.raises(ProviderError, match="400: API key not valid"):
        _client(session).generate("x", GenerationParams())


def test_http_error_without_json_body():
    session = FakeSession(FakeResponse(status_code=503, text="upstream unavailable"))
    with pytest.raises(ProviderError, match="503: upstream unavailable"):
        _client(session).generate("x", GenerationParams())


def test_non_json_success_body():
    session = FakeSession(FakeResponse(status_code=200, text="<html>"))
    with pytest.raises(ProviderError, match="not JSON"):
        _client(session).generate("x", GenerationParams())


def test_timeout_maps_to_provider_timeout():
    session = FakeSession(exc=requests.ReadTimeout("slow"))
    with pytest.raises(ProviderTimeout):
        _client(session).generate("x", GenerationParams(), timeout=0.1)


def test_connection_error_maps_to_provider_error():
    session = FakeSession(exc=requests.ConnectionError("refused"))
    with pytest.raises(ProviderError, match="transport error"):
        _client(session).generate("x", GenerationParams())


def test_fetch_file():
    session = FakeSession(FakeResponse(content=b"png-bytes"))
    uri = "https://generativelanguage.googleapis.com/v1beta/files/abc:download"
    assert _client(session).fetch_file(uri, timeout=3) == b"png-bytes"
    assert session.gets[0]["headers"] == {"x-goog-api-key": "secret"}
    assert session.gets[0]["timeout"] == 3


@pytest.mark.parametrize("uri", [
    "https://files.example/a",
    "https://googleapis.com.attacker.example/a",
    "http://generativelanguage.googleapis.com/v1beta/files/abc",
])
def test_fetch_file_keeps_key_off_other_hosts(uri):
    session = FakeSession(FakeResponse(content=b"png-bytes"))
    assert _client(session).fetch_file(uri) == b"png-bytes"
    assert "x-goog-api-key" not in session.gets[0]["headers"]


def test_fetch_file_errors():
    with pytest.raises(ProviderError):
        _client(FakeSession(FakeResponse(status_code=404))).fetch_file("https://files.example/a")
    with pytest.raises(ProviderError, match="empty"):
        _client(FakeSession(FakeResponse(content=b""))).fetch_file("https://files.example/a")
