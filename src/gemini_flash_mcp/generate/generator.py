# ImageGenerator: the single seam between the tool layer and the image provider.
# - merges request tunables over config defaults
# - runs one provider round trip (no retries)
# - parses the reply strictly and writes the image under the output directory
# - never raises from generate(); every request-time error becomes a GenerationFailure

from __future__ import annotations

import logging
import os
import re
import tempfile
import threading
import time
import uuid
from pathlib import Path
from typing import Optional

import yaml

from ..errors import ConfigurationError, ImageGenError, ProviderTimeout, StorageError
from .clients.gemini_client import DEFAULT_API_BASE, DEFAULT_MODEL, GeminiClient
from .reply import parse_reply
from .types import (
    GenerationFailure,
    GenerationOutcome,
    GenerationParams,
    GenerationRequest,
    GenerationSuccess,
    ProviderImage,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).with_name("config.yaml")
DEFAULT_FILE_PREFIX = "gemini-image"

_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/webp": ".webp",
    "image/gif": ".gif",
}

# one deadline covers the provider call and any file download
_clock = time.monotonic


def default_output_directory() -> Path:
    return Path(tempfile.gettempdir()) / "gemini-images"


def ensure_directory(path: str | os.PathLike) -> Path:
    """Create ``path`` if absent and check it is a writable directory.

    ``mkdir(exist_ok=True)`` makes the check-and-create a single step, so concurrent
    callers racing on the same location cannot fail each other.
    """
    target = Path(path).expanduser().resolve()
    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError(f"cannot create output directory {target}: {e}") from e
    if not target.is_dir():
        raise StorageError(f"output path is not a directory: {target}")
    if not os.access(target, os.W_OK):
        raise StorageError(f"output directory is not writable: {target}")
    return target


class ImageGenerator:
    def __init__(
        self,
        api_key: str,
        output_directory: Optional[str | os.PathLike] = None,
        model_client=None,
        config_path: str | os.PathLike = DEFAULT_CONFIG_PATH,
        timeout: Optional[float] = None,
        model: str = DEFAULT_MODEL,
        api_base: str = DEFAULT_API_BASE,
    ):
        if not api_key:
            raise ConfigurationError("GEMINI_API_KEY is required")
        self.model_client = model_client or GeminiClient(api_key, model=model, api_base=api_base)
        self.config_path = Path(config_path)
        self.cfg = self._load_config()
        self.defaults = GenerationParams(
            temperature=float(self.cfg.get("temperature", GenerationParams.temperature)),
            top_p=float(self.cfg.get("top_p", GenerationParams.top_p)),
            top_k=int(self.cfg.get("top_k", GenerationParams.top_k)),
            max_output_tokens=int(self.cfg.get("max_output_tokens", GenerationParams.max_output_tokens)),
            response_mime_type=self.cfg.get("response_mime_type"),
        )
        self.file_prefix = str(self.cfg.get("file_prefix") or DEFAULT_FILE_PREFIX)
        self.timeout = timeout
        self._lock = threading.Lock()
        self._output_directory = ensure_directory(output_directory or default_output_directory())
        logger.info("Image output directory: %s", self._output_directory)

    def _load_config(self) -> dict:
        if not self.config_path.exists():
            return {}
        with open(self.config_path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    # -------------------------
    # Output directory
    # -------------------------
    def get_output_directory(self) -> str:
        with self._lock:
            return str(self._output_directory)

    def set_output_directory(self, path: str | os.PathLike) -> str:
        """Switch to a new output directory; it is created before being accepted."""
        with self._lock:
            self._output_directory = ensure_directory(path)
            logger.info("Image output directory changed to %s", self._output_directory)
            return str(self._output_directory)

    def is_artifact_name(self, name: str) -> bool:
        """True for a bare filename of the shape ``_save`` produces."""
        pattern = rf"{re.escape(self.file_prefix)}-\d+-[0-9a-f]{{8}}\.(png|jpg|webp|gif)"
        return re.fullmatch(pattern, name) is not None

    # -------------------------
    # Generation
    # -------------------------
    def generate(self, request: GenerationRequest, timeout: Optional[float] = None) -> GenerationOutcome:
        """Generate one image for ``request``. Returns a success or failure outcome, never raises.

        ``timeout`` (or the configured default) bounds the whole call: a ``fileData``
        download only gets whatever the provider round trip left over.
        """
        deadline = timeout if timeout is not None else self.timeout
        started = _clock()
        try:
            params = self.defaults.merged_with(request)
            raw = self.model_client.generate(request.prompt, params, timeout=deadline)
            parsed = parse_reply(raw)
            if parsed.image is None:
                reason = parsed.describe_missing_image()
                logger.warning("Generation produced no image: %s", reason)
                return GenerationFailure(reason)
            data = self._image_bytes(parsed.image, deadline, started)
            path, directory = self._save(data, parsed.image.mime_type)
        except ProviderTimeout:
            logger.warning("Image generation timed out after %ss", deadline)
            return GenerationFailure("timeout")
        except ImageGenError as e:
            logger.warning("Image generation failed: %s", e)
            return GenerationFailure(str(e) or e.__class__.__name__)
        except Exception as e:
            logger.exception("Unexpected error generating image")
            return GenerationFailure(f"unexpected error: {e}" if str(e) else e.__class__.__name__)

        logger.info("Image saved to %s (%d bytes)", path, len(data))
        return GenerationSuccess(
            artifact_path=str(path),
            artifact_bytes=data,
            mime_type=parsed.image.mime_type,
            output_directory=str(directory),
        )

    @staticmethod
    def _remaining(deadline: Optional[float], started: float) -> Optional[float]:
        if deadline is None:
            return None
        left = deadline - (_clock() - started)
        if left <= 0:
            raise ProviderTimeout("timeout")
        return left

    def _image_bytes(self, image: ProviderImage, deadline: Optional[float], started: float) -> bytes:
        if image.data:
            return image.data
        timeout = self._remaining(deadline, started)
        logger.info("Fetching image from file URI %s", image.file_uri)
        return self.model_client.fetch_file(image.file_uri, timeout=timeout)

    def _save(self, data: bytes, mime_type: str) -> tuple[Path, Path]:
        directory = Path(self.get_output_directory())
        ext = _EXTENSIONS.get(mime_type.lower(), ".png")
        for _ in range(3):
            name = f"{self.file_prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{ext}"
            path = directory / name
            if path.resolve().parent != directory:
                raise StorageError(f"artifact path escapes output directory: {path}")
            try:
                with open(path, "xb") as f:
                    f.write(data)
                return path, directory
            except FileExistsError:
                continue
            except OSError as e:
                raise StorageError(f"cannot write image to {path}: {e}") from e
        raise StorageError("could not allocate a unique artifact filename")

    def close(self) -> None:
        session = getattr(self.model_client, "session", None)
        if session is not None:
            session.close()


def create_image_generator(settings) -> ImageGenerator:
    """Build the process-wide generator from settings.

    Raises ConfigurationError when GEMINI_API_KEY is missing (unless the echo dev client is used).
    """
    if settings.USE_ECHO:
        from .clients.echo_dev_client import EchoDevClient
        return ImageGenerator(
            api_key=settings.GEMINI_API_KEY or "echo-dev",
            output_directory=settings.IMAGE_OUTPUT_DIR,
            model_client=EchoDevClient(),
            timeout=settings.GENERATION_TIMEOUT,
        )
    if not settings.GEMINI_API_KEY:
        raise ConfigurationError("GEMINI_API_KEY environment variable is required")
    return ImageGenerator(
        api_key=settings.GEMINI_API_KEY,
        output_directory=settings.IMAGE_OUTPUT_DIR,
        timeout=settings.GENERATION_TIMEOUT,
        model=settings.GEMINI_MODEL,
        api_base=settings.GEMINI_API_BASE,
    )
