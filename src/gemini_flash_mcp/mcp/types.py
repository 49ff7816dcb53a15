# JSON-RPC 2.0 envelope helpers and the tool-call input model.

from __future__ import annotations
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

JSONRPC_VERSION = "2.0"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class ToolCallEnvelope(BaseModel):
    """A tool invocation: correlation id, tool name and raw arguments."""

    model_config = ConfigDict(frozen=True)

    id: Any = None
    name: str = ""
    # validated by the handler, after the tool name is resolved
    arguments: Any = Field(default_factory=dict)

    @classmethod
    def from_params(cls, request_id: Any, params: Optional[Dict[str, Any]]) -> "ToolCallEnvelope":
        params = params or {}
        arguments = params.get("arguments")
        return cls(
            id=request_id,
            name=str(params.get("name") or ""),
            arguments={} if arguments is None else arguments,
        )


def ok(request_id: Any, result: Any) -> dict:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def err(request_id: Any, code: int, message: str) -> dict:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": {"code": code, "message": message}}
