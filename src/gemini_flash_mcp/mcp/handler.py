# ============================================================
# ToolInvocationHandler
# ------------------------------------------------------------
# Adapts JSON-RPC tool calls to ImageGenerator:
#   Received -> Validated -> Delegated -> Succeeded | Failed -> Responded
# Every path ends in a response envelope carrying the request id;
# nothing raises past call_tool() or dispatch().
# ============================================================

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import pydantic

from ..errors import ValidationError
from ..generate.generator import ImageGenerator
from ..generate.types import GenerationFailure, GenerationParams, GenerationRequest, GenerationSuccess
from .types import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    ToolCallEnvelope,
    err,
    ok,
)

logger = logging.getLogger(__name__)

TOOL_NAME = "generate_image"
SERVER_NAME = "gemini-flash-mcp"
SERVER_VERSION = "1.0.0"
PROTOCOL_VERSIONS = ("2024-11-05", "2025-03-26")
IMAGE_URL_PREFIX = "/images"


def build_tool_schema(defaults: GenerationParams) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "prompt": {
                "type": "string",
                "description": "Text description of the desired image",
            },
            "temperature": {
                "type": "number",
                "description": "Controls randomness (0.0 to 1.0)",
                "default": defaults.temperature,
            },
            "topP": {
                "type": "number",
                "description": "Controls diversity via nucleus sampling (0.0 to 1.0)",
                "default": defaults.top_p,
            },
            "topK": {
                "type": "number",
                "description": "Controls diversity via top-k sampling (positive integer)",
                "default": defaults.top_k,
            },
            "maxOutputTokens": {
                "type": "number",
                "description": "Maximum number of tokens to generate (positive integer)",
                "default": defaults.max_output_tokens,
            },
        },
        "required": ["prompt"],
    }


def _format_validation_error(e: pydantic.ValidationError) -> str:
    problems = []
    for item in e.errors():
        loc = ".".join(str(p) for p in item.get("loc", ())) or "arguments"
        problems.append(f"{loc}: {item.get('msg', 'invalid value')}")
    return "Invalid params: " + "; ".join(problems)


class ToolInvocationHandler:
    def __init__(self, generator: ImageGenerator, image_url_prefix: str = IMAGE_URL_PREFIX):
        self.generator = generator
        self.image_url_prefix = image_url_prefix.rstrip("/")
        self._tools: List[Dict[str, Any]] = [
            {
                "name": TOOL_NAME,
                "description": "Generate an image using Google's Gemini 2.0 Flash model",
                "inputSchema": build_tool_schema(generator.defaults),
            }
        ]

    # -------------------------
    # Catalog
    # -------------------------
    def list_tools(self) -> List[Dict[str, Any]]:
        return copy.deepcopy(self._tools)

    # -------------------------
    # Tool call
    # -------------------------
    def call_tool(self, envelope: ToolCallEnvelope) -> dict:
        req_id = envelope.id
        try:
            if envelope.name != TOOL_NAME:
                return err(req_id, METHOD_NOT_FOUND, f"Tool not found: {envelope.name}")

            request = self._build_request(envelope.arguments)
            outcome = self.generator.generate(request)

            if isinstance(outcome, GenerationFailure):
                return err(req_id, INTERNAL_ERROR, f"Image generation failed: {outcome.reason}")

            if not outcome.artifact_path:
                return err(req_id, INTERNAL_ERROR, "Image generation failed: no image was produced")

            image_url = self._image_url(outcome)
            return ok(req_id, {
                "content": [
                    {"type": "image", "imageUrl": image_url},
                    {"type": "text", "text": f"Image generated successfully: {image_url}"},
                ],
            })
        except ValidationError as e:
            return err(req_id, INVALID_PARAMS, str(e))
        except Exception as e:
            logger.exception("Error handling tool call %r", envelope.name)
            return err(req_id, INTERNAL_ERROR, f"Internal error: {e}")

    def _build_request(self, arguments: Any) -> GenerationRequest:
        if not isinstance(arguments, dict):
            raise ValidationError("Invalid params: arguments must be an object")
        prompt = arguments.get("prompt")
        if prompt is None or (isinstance(prompt, str) and not prompt.strip()):
            raise ValidationError("Missing required parameter: prompt")
        try:
            return GenerationRequest.model_validate(arguments)
        except pydantic.ValidationError as e:
            raise ValidationError(_format_validation_error(e)) from e

    def _image_url(self, outcome: GenerationSuccess) -> str:
        """Servable reference for an artifact, relative to the directory it was written to."""
        root = Path(outcome.output_directory or self.generator.get_output_directory()).resolve()
        try:
            rel = Path(outcome.artifact_path).resolve().relative_to(root)
        except ValueError:
            raise RuntimeError(f"artifact {outcome.artifact_path} is outside the output directory") from None
        return f"{self.image_url_prefix}/{rel.as_posix()}"

    # -------------------------
    # JSON-RPC routing
    # -------------------------
    def dispatch(self, message: Any) -> Optional[dict]:
        """Route one decoded JSON-RPC message. Returns None for notifications."""
        if not isinstance(message, dict):
            return err(None, INVALID_REQUEST, "Invalid Request")

        req_id = message.get("id")
        method = message.get("method")
        params = message.get("params")
        if params is None:
            params = {}
        if not isinstance(method, str) or not method:
            return err(req_id, INVALID_REQUEST, "Invalid Request: missing method")

        try:
            if method == "initialize":
                client_ver = params.get("protocolVersion") if isinstance(params, dict) else None
                agreed_ver = client_ver if client_ver in PROTOCOL_VERSIONS else PROTOCOL_VERSIONS[0]
                return ok(req_id, {
                    "protocolVersion": agreed_ver,
                    "capabilities": {"tools": {}},
                    "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
                })

            if method.startswith("notifications/"):
                return None

            if method == "ping":
                return ok(req_id, {})

            if method in ("tools/list", "listTools"):
                return ok(req_id, {"tools": self.list_tools()})

            if method in ("tools/call", "callTool"):
                if not isinstance(params, dict):
                    return err(req_id, INVALID_PARAMS, "Invalid params: params must be an object")
                return self.call_tool(ToolCallEnvelope.from_params(req_id, params))

            if req_id is None:
                return None
            return err(req_id, METHOD_NOT_FOUND, f"Method not found: {method}")
        except Exception as e:
            logger.exception("Error dispatching %s", method)
            return err(req_id, INTERNAL_ERROR, f"Internal error: {e}")
