# Generator package

# Makes generate/ importable and exposes key interfaces.

from .generator import ImageGenerator, create_image_generator
from .types import (
    GenerationFailure,
    GenerationOutcome,
    GenerationParams,
    GenerationRequest,
    GenerationSuccess,
)
from .clients.echo_dev_client import EchoDevClient

__all__ = [
    "ImageGenerator",
    "create_image_generator",
    "GenerationRequest",
    "GenerationParams",
    "GenerationOutcome",
    "GenerationSuccess",
    "GenerationFailure",
    "EchoDevClient",
]
