# Typed request/outcome models shared across the generate package.
#   GenerationRequest  -> validated, immutable caller input (wire names are camelCase)
#   GenerationParams   -> fully merged tunables sent to the provider
#   GenerationSuccess / GenerationFailure -> the two outcome branches

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_TEMPERATURE = 1.0
DEFAULT_TOP_P = 0.95
DEFAULT_TOP_K = 40
DEFAULT_MAX_OUTPUT_TOKENS = 8192


class GenerationRequest(BaseModel):
    """Text prompt plus optional sampling tunables. Out-of-range values are rejected, never clamped."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    prompt: str = Field(min_length=1)
    temperature: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    top_p: Optional[float] = Field(default=None, ge=0.0, le=1.0, alias="topP")
    top_k: Optional[int] = Field(default=None, gt=0, alias="topK")
    max_output_tokens: Optional[int] = Field(default=None, gt=0, alias="maxOutputTokens")

    @field_validator("prompt")
    @classmethod
    def _prompt_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("prompt must not be blank")
        return v

    # JSON numbers only: no "0.5" strings, no true/false standing in for 1/0
    @field_validator("temperature", "top_p", "top_k", "max_output_tokens", mode="before")
    @classmethod
    def _tunable_is_number(cls, v):
        if v is None:
            return v
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("must be a number")
        return v


@dataclass(frozen=True)
class GenerationParams:
    """Provider generation config after defaults are applied."""
    temperature: float = DEFAULT_TEMPERATURE
    top_p: float = DEFAULT_TOP_P
    top_k: int = DEFAULT_TOP_K
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS
    response_mime_type: Optional[str] = None

    def merged_with(self, request: GenerationRequest) -> "GenerationParams":
        return GenerationParams(
            temperature=self.temperature if request.temperature is None else request.temperature,
            top_p=self.top_p if request.top_p is None else request.top_p,
            top_k=self.top_k if request.top_k is None else request.top_k,
            max_output_tokens=(
                self.max_output_tokens if request.max_output_tokens is None else request.max_output_tokens
            ),
            response_mime_type=self.response_mime_type,
        )


@dataclass(frozen=True)
class ProviderImage:
    """An image located in a provider reply: inline bytes or a downloadable file URI."""
    mime_type: str
    data: Optional[bytes] = None
    file_uri: Optional[str] = None


@dataclass(frozen=True)
class GenerationSuccess:
    artifact_path: Optional[str]
    artifact_bytes: Optional[bytes] = None
    mime_type: Optional[str] = None
    output_directory: Optional[str] = None  # directory the artifact was written to


@dataclass(frozen=True)
class GenerationFailure:
    reason: str


GenerationOutcome = Union[GenerationSuccess, GenerationFailure]
