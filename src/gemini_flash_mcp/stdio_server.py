"""
stdio transport for the generate_image tool.

Protocol: JSON-RPC 2.0 over stdio (one JSON object per line), for MCP hosts
that spawn the server as a subprocess instead of talking HTTP.

Usage
-----
    GEMINI_API_KEY=... python -m gemini_flash_mcp.stdio_server

Host config entry
-----------------
{
  "mcpServers": {
    "gemini-flash": {
      "command": "gemini-flash-mcp-stdio",
      "env": {"GEMINI_API_KEY": "<key>"}
    }
  }
}

Logs go to stderr; stdout carries protocol frames only.
"""
from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any, Optional, TextIO

from .errors import ConfigurationError, StorageError
from .generate import create_image_generator
from .logs import configure_logging
from .mcp import ToolInvocationHandler
from .mcp.types import INVALID_REQUEST, PARSE_ERROR, err
from .settings import get_settings

logger = logging.getLogger(__name__)

# largest single frame accepted on stdin; longer lines are rejected, not fatal
MAX_FRAME_BYTES = 16 * 1024 * 1024


def _write(obj: dict, out: TextIO) -> None:
    out.write(json.dumps(obj) + "\n")
    out.flush()


def handle_line(handler: ToolInvocationHandler, line: str) -> Optional[dict]:
    """Decode one frame and dispatch it. Returns the reply, or None for notifications."""
    try:
        message: Any = json.loads(line)
    except json.JSONDecodeError:
        return err(None, PARSE_ERROR, "Parse error")
    return handler.dispatch(message)


async def _handle(handler: ToolInvocationHandler, line: str, out: TextIO) -> None:
    # provider calls block; run them in a worker thread so frames keep flowing
    reply = await asyncio.to_thread(handle_line, handler, line)
    if reply is not None:
        _write(reply, out)


async def _discard_line(reader: asyncio.StreamReader) -> None:
    while True:
        try:
            await reader.readuntil(b"\n")
            return
        except asyncio.LimitOverrunError as e:
            await reader.readexactly(e.consumed)
        except asyncio.IncompleteReadError:
            return


async def _read_frame(reader: asyncio.StreamReader) -> Optional[bytes]:
    """Next line from ``reader``; b"" at EOF, None when the line exceeded the reader limit."""
    try:
        return await reader.readuntil(b"\n")
    except asyncio.IncompleteReadError as e:
        return e.partial
    except asyncio.LimitOverrunError:
        await _discard_line(reader)
        return None


async def serve(handler: ToolInvocationHandler, reader: asyncio.StreamReader, out: TextIO) -> None:
    """Read frames until EOF, dispatching each one concurrently."""
    pending: set[asyncio.Task] = set()
    while True:
        try:
            line_bytes = await _read_frame(reader)
        except ConnectionError as e:
            logger.warning("stdin closed: %s", e)
            break
        if line_bytes is None:
            logger.warning("Dropped an oversized frame")
            _write(err(None, INVALID_REQUEST, "Request too large"), out)
            continue
        if not line_bytes:
            break
        line = line_bytes.decode(errors="replace").strip()
        if line:
            task = asyncio.create_task(_handle(handler, line, out))
            pending.add(task)
            task.add_done_callback(pending.discard)

    if pending:
        await asyncio.gather(*pending)


async def _run(handler: ToolInvocationHandler) -> None:
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=MAX_FRAME_BYTES)
    protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: protocol, sys.stdin)
    await serve(handler, reader, sys.stdout)


def main() -> None:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL, stream=sys.stderr)
    try:
        generator = create_image_generator(settings)
    except (ConfigurationError, StorageError) as e:
        logger.error("Failed to initialize image generator: %s", e)
        sys.exit(1)
    try:
        asyncio.run(_run(ToolInvocationHandler(generator)))
    finally:
        generator.close()


if __name__ == "__main__":
    main()
