# Dummy provider client for local dev and testing without API calls.
# Always replies with a single 1x1 PNG in the generateContent shape.

from typing import Any, Dict, Optional

from ...errors import ProviderError
from ..types import GenerationParams

# 1x1 transparent PNG
PIXEL_PNG_B64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


class EchoDevClient:
    def __init__(self):
        self.model = "echo-dev"

    def generate(self, prompt: str, params: GenerationParams, timeout: Optional[float] = None) -> Dict[str, Any]:
        return {
            "candidates": [
                {
                    "content": {
                        "role": "model",
                        "parts": [
                            {"text": f"[ECHO RESPONSE] {prompt}"},
                            {"inlineData": {"mimeType": "image/png", "data": PIXEL_PNG_B64}},
                        ],
                    },
                    "finishReason": "STOP",
                    "index": 0,
                }
            ]
        }

    def fetch_file(self, uri: str, timeout: Optional[float] = None) -> bytes:
        raise ProviderError("echo-dev client cannot fetch remote files")
