# Parse-and-validate step for generateContent replies.
#
# The provider reply is treated as untrusted input: it is validated against the
# models below and reduced to a ParsedReply. Anything that does not fit raises
# ProviderError, which the generator turns into a Failure outcome.
#
# Expected shape (fields we do not use are ignored):
#   {"candidates": [{"content": {"parts": [
#        {"text": "..."} |
#        {"inlineData": {"mimeType": "image/png", "data": "<base64>"}} |
#        {"fileData":   {"mimeType": "image/png", "fileUri": "https://..."}}
#   ]}, "finishReason": "STOP"}],
#    "promptFeedback": {"blockReason": "SAFETY"}}
# or, on provider-side errors:
#   {"error": {"code": 400, "message": "...", "status": "INVALID_ARGUMENT"}}

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Any, List, Optional

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from ..errors import ProviderError
from .types import ProviderImage


class _ReplyModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class InlineData(_ReplyModel):
    mime_type: str = Field(alias="mimeType")
    data: str


class FileData(_ReplyModel):
    mime_type: str = Field(alias="mimeType")
    file_uri: str = Field(alias="fileUri")


class Part(_ReplyModel):
    text: Optional[str] = None
    inline_data: Optional[InlineData] = Field(default=None, alias="inlineData")
    file_data: Optional[FileData] = Field(default=None, alias="fileData")


class Content(_ReplyModel):
    parts: List[Part] = Field(default_factory=list)
    role: Optional[str] = None


class Candidate(_ReplyModel):
    content: Optional[Content] = None
    finish_reason: Optional[str] = Field(default=None, alias="finishReason")


class PromptFeedback(_ReplyModel):
    block_reason: Optional[str] = Field(default=None, alias="blockReason")


class ProviderErrorBody(_ReplyModel):
    code: Optional[int] = None
    message: str = "provider reported an error"
    status: Optional[str] = None


class GenerateContentReply(_ReplyModel):
    candidates: List[Candidate] = Field(default_factory=list)
    prompt_feedback: Optional[PromptFeedback] = Field(default=None, alias="promptFeedback")


@dataclass(frozen=True)
class ParsedReply:
    image: Optional[ProviderImage]
    text: str = ""
    finish_reason: Optional[str] = None
    block_reason: Optional[str] = None

    def describe_missing_image(self) -> str:
        """Human-readable reason used when no image part was found."""
        reason = "no image produced"
        details = []
        if self.block_reason:
            details.append(f"blocked: {self.block_reason}")
        elif self.finish_reason and self.finish_reason != "STOP":
            details.append(f"finish reason: {self.finish_reason}")
        if self.text:
            details.append(f"model replied: {self.text[:200]}")
        return f"{reason} ({'; '.join(details)})" if details else reason


def _is_image(mime_type: str) -> bool:
    return mime_type.lower().startswith("image/")


def _image_from_part(part: Part) -> Optional[ProviderImage]:
    if part.inline_data is not None and _is_image(part.inline_data.mime_type):
        try:
            data = base64.b64decode(part.inline_data.data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ProviderError(f"malformed provider reply: undecodable image data ({e})") from e
        if not data:
            return None
        return ProviderImage(mime_type=part.inline_data.mime_type, data=data)
    if part.file_data is not None and _is_image(part.file_data.mime_type) and part.file_data.file_uri:
        return ProviderImage(mime_type=part.file_data.mime_type, file_uri=part.file_data.file_uri)
    return None


def parse_reply(raw: Any) -> ParsedReply:
    """Validate a raw generateContent reply and locate the first image in the first candidate.

    Raises:
        ProviderError: the reply is not an object, carries a provider error, or does not
            match the expected shape.
    """
    if not isinstance(raw, dict):
        raise ProviderError(f"malformed provider reply: expected object, got {type(raw).__name__}")

    if raw.get("error") is not None:
        try:
            err = ProviderErrorBody.model_validate(raw["error"])
        except pydantic.ValidationError:
            raise ProviderError(f"provider error: {raw['error']!r}") from None
        prefix = f"provider error {err.code}" if err.code is not None else "provider error"
        raise ProviderError(f"{prefix}: {err.message}")

    try:
        reply = GenerateContentReply.model_validate(raw)
    except pydantic.ValidationError as e:
        raise ProviderError(f"malformed provider reply: {e.error_count()} validation error(s)") from e

    block_reason = reply.prompt_feedback.block_reason if reply.prompt_feedback else None
    if not reply.candidates:
        return ParsedReply(image=None, block_reason=block_reason)

    first = reply.candidates[0]
    parts = first.content.parts if first.content else []
    texts = [p.text.strip() for p in parts if p.text and p.text.strip()]

    image = None
    for part in parts:
        image = _image_from_part(part)
        if image is not None:
            break

    return ParsedReply(
        image=image,
        text=" ".join(texts),
        finish_reason=first.finish_reason,
        block_reason=block_reason,
    )
