# ===============================================
# tests/test_reply.py
# Strict parsing of generateContent replies.
# ===============================================

import pytest

from conftest import PNG_BYTES, image_reply
from gemini_flash_mcp.errors import ProviderError
from gemini_flash_mcp.generate.reply import parse_reply


def test_inline_image_is_decoded():
    parsed = parse_reply(image_reply(text="A cube"))
    assert parsed.image.data == PNG_BYTES
    assert parsed.image.mime_type == "image/png"
    assert parsed.text == "A cube"
    assert parsed.finish_reason == "STOP"


def test_first_image_part_wins_and_non_images_are_skipped():
    raw = {"candidates": [{"content": {"parts": [
        {"inlineData": {"mimeType": "text/plain", "data": "aGVsbG8="}},
        {"fileData": {"mimeType": "image/webp", "fileUri": "https://files.example/1"}},
        {"fileData": {"mimeType": "image/png", "fileUri": "https://files.example/2"}},
    ]}}]}
    parsed = parse_reply(raw)
    assert parsed.image.file_uri == "https://files.example/1"
    assert parsed.image.data is None


def test_only_the_first_candidate_is_inspected():
    raw = {"candidates": [{"content": {"parts": [{"text": "no"}]}}, image_reply()["candidates"][0]]}
    assert parse_reply(raw).image is None


def test_candidate_without_content_has_no_image():
    parsed = parse_reply({"candidates": [{"finishReason": "SAFETY"}]})
    assert parsed.image is None
    assert "finish reason: SAFETY" in parsed.describe_missing_image()


def test_missing_candidates_key_means_no_image():
    assert parse_reply({}).image is None


@pytest.mark.parametrize("raw", [
    None,
    "text",
    ["list"],
    {"candidates": "oops"},
    {"candidates": [{"content": {"parts": [{"inlineData": {"mimeType": "image/png"}}]}}]},
])
def test_malformed_replies_raise(raw):
    with pytest.raises(ProviderError):
        parse_reply(raw)


def test_undecodable_image_data_raises():
    raw = {"candidates": [{"content": {"parts": [{"inlineData": {"mimeType": "image/png", "data": "@@not-b64@@"}}]}}]}
    with pytest.raises(ProviderError, match="undecodable"):
        parse_reply(raw)


def test_provider_error_body_raises_with_message():
    with pytest.raises(ProviderError, match="quota exceeded"):
        parse_reply({"error": {"code": 429, "message": "quota exceeded", "status": "RESOURCE_EXHAUSTED"}})
