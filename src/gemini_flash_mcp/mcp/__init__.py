# Tool-invocation layer: JSON-RPC envelopes and the generate_image handler.

from .handler import TOOL_NAME, ToolInvocationHandler
from .types import ToolCallEnvelope

__all__ = ["TOOL_NAME", "ToolInvocationHandler", "ToolCallEnvelope"]
