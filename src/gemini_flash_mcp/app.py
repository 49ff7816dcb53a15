# ============================================================
# Gemini Flash MCP FastAPI App
# ------------------------------------------------------------
# This app wires everything together:
#   - One ImageGenerator per process (Gemini or Echo client)
#   - ToolInvocationHandler for the generate_image tool
#   - JSON-RPC endpoints (/mcp, /mcp/listTools, /mcp/callTool)
#   - Artifact serving from the current output directory (/images)
# ============================================================

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse, JSONResponse, Response

# --- Local imports ---
from .generate import ImageGenerator, create_image_generator
from .logs import configure_logging
from .mcp import ToolCallEnvelope, ToolInvocationHandler
from .mcp.handler import IMAGE_URL_PREFIX
from .mcp.types import INVALID_PARAMS, PARSE_ERROR, err, ok
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)


# ------------------------------------------------------------
# 🧠 Helpers
# ------------------------------------------------------------
def _handler(request: Request) -> ToolInvocationHandler:
    return request.app.state.handler


async def _read_json(request: Request) -> tuple[Any, Optional[dict]]:
    """Return (body, None) or (None, parse-error envelope)."""
    try:
        return await request.json(), None
    except ValueError:
        return None, err(None, PARSE_ERROR, "Parse error")


def _request_id(body: Any) -> Any:
    return body.get("id") if isinstance(body, dict) else None


# ------------------------------------------------------------
# 🚀 FastAPI init
# ------------------------------------------------------------
def create_app(settings: Optional[Settings] = None, generator: Optional[ImageGenerator] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.LOG_LEVEL)
        if app.state.generator is None:
            # ConfigurationError here aborts startup: no key, no server
            app.state.generator = create_image_generator(settings)
            app.state.handler = ToolInvocationHandler(app.state.generator)
        logger.info("%s ready, images in %s", settings.APP_NAME, app.state.generator.get_output_directory())
        yield
        app.state.generator.close()

    app = FastAPI(title=settings.APP_NAME, version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.generator = generator
    app.state.handler = ToolInvocationHandler(generator) if generator is not None else None

    # ------------------------------------------------------------
    # 🔧 MCP endpoints
    # ------------------------------------------------------------
    @app.post("/mcp")
    async def mcp_rpc(request: Request):
        body, parse_error = await _read_json(request)
        if parse_error:
            return JSONResponse(parse_error)
        reply = await run_in_threadpool(_handler(request).dispatch, body)
        if reply is None:
            return Response(status_code=202)
        return JSONResponse(reply)

    @app.post("/mcp/listTools")
    async def list_tools(request: Request):
        body, parse_error = await _read_json(request)
        if parse_error:
            return JSONResponse(parse_error)
        return JSONResponse(ok(_request_id(body), {"tools": _handler(request).list_tools()}))

    @app.post("/mcp/callTool")
    async def call_tool(request: Request):
        body, parse_error = await _read_json(request)
        if parse_error:
            return JSONResponse(parse_error)
        req_id = _request_id(body)
        params = body.get("params") if isinstance(body, dict) else None
        if not isinstance(params, dict):
            return JSONResponse(err(req_id, INVALID_PARAMS, "Invalid params: params must be an object"))
        envelope = ToolCallEnvelope.from_params(req_id, params)
        # provider call blocks; keep it off the event loop
        reply = await run_in_threadpool(_handler(request).call_tool, envelope)
        return JSONResponse(reply)

    # ------------------------------------------------------------
    # 🖼️ Artifacts
    # ------------------------------------------------------------
    # flat generated names only; output directory changes are an in-process operation
    @app.get(IMAGE_URL_PREFIX + "/{filename}")
    def get_image(filename: str, request: Request):
        generator = request.app.state.generator
        if not generator.is_artifact_name(filename):
            raise HTTPException(status_code=404, detail="Image not found")
        target = Path(generator.get_output_directory()) / filename
        if not target.is_file():
            raise HTTPException(status_code=404, detail="Image not found")
        return FileResponse(target)

    # ------------------------------------------------------------
    # 🧭 Health checks
    # ------------------------------------------------------------
    @app.get("/healthz")
    def healthz():
        return {
            "ok": True,
            "env": settings.ENV,
            "debug": settings.DEBUG,
            "app": settings.APP_NAME,
        }

    @app.get("/health")
    def health():
        return {"status": "ok", "env": settings.ENV}

    @app.get("/")
    def hello():
        return {"message": f"{settings.APP_NAME} running. POST /mcp/listTools to discover tools."}

    return app


app = create_app()


def main() -> None:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    main()
