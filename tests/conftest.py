# ===============================================
# tests/conftest.py
# Shared stubs: a scriptable provider client and generator factories.
# ===============================================

import base64

import pytest

from gemini_flash_mcp.generate import ImageGenerator

PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


def image_reply(data: bytes = PNG_BYTES, mime_type: str = "image/png", text: str = "Here you go") -> dict:
    return {
        "candidates": [
            {
                "content": {
                    "role": "model",
                    "parts": [
                        {"text": text},
                        {"inlineData": {"mimeType": mime_type, "data": base64.b64encode(data).decode("ascii")}},
                    ],
                },
                "finishReason": "STOP",
                "index": 0,
            }
        ]
    }


def text_reply(text: str) -> dict:
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}, "finishReason": "STOP"}]}


EMPTY_REPLY = {"candidates": []}


class StubModelClient:
    """Provider stand-in: returns a canned reply or raises a canned exception."""

    def __init__(self, reply=None, exc=None, file_bytes: bytes = PNG_BYTES):
        self.reply = image_reply() if reply is None else reply
        self.exc = exc
        self.file_bytes = file_bytes
        self.calls = []
        self.fetched = []
        self.fetch_timeouts = []

    def generate(self, prompt, params, timeout=None):
        self.calls.append({"prompt": prompt, "params": params, "timeout": timeout})
        if self.exc is not None:
            raise self.exc
        return self.reply

    def fetch_file(self, uri, timeout=None):
        self.fetched.append(uri)
        self.fetch_timeouts.append(timeout)
        return self.file_bytes


@pytest.fixture
def out_dir(tmp_path):
    return tmp_path / "images"


@pytest.fixture
def stub_client():
    return StubModelClient()


@pytest.fixture
def make_generator(out_dir):
    def _make(client=None, **kwargs):
        kwargs.setdefault("output_directory", out_dir)
        return ImageGenerator(api_key="test-key", model_client=client or StubModelClient(), **kwargs)
    return _make


@pytest.fixture
def generator(make_generator, stub_client):
    return make_generator(stub_client)
