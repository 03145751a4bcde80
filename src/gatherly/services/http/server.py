from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ...api import ApiState, ToolSpec, call_tool, get_tools
from ...logging import configure_logging

logger = logging.getLogger(__name__)


class ToolCallRequest(BaseModel):
    arguments: Dict[str, Any] = Field(default_factory=dict)


def _serialize_tool(tool: ToolSpec) -> dict:
    return {
        "name": tool.name,
        "description": tool.description,
        "category": tool.category,
        "tags": list(tool.tags),
        "parameters": tool.parameter_schema,
    }


def create_app(state: Optional[ApiState] = None) -> FastAPI:
    """Build the HTTP surface; ``state`` defaults to the process-wide API state."""

    app = FastAPI(title="Gatherly Tool API", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/tools")
    def list_tools() -> JSONResponse:
        return JSONResponse({"tools": [_serialize_tool(tool) for tool in get_tools()]})

    @app.post("/api/tools/{tool_name}")
    def invoke_tool(
        tool_name: str,
        request: ToolCallRequest,
        authorization: Optional[str] = Header(default=None),
    ) -> JSONResponse:
        try:
            result = call_tool(tool_name, request.arguments, token=authorization, state=state)
        except KeyError as exc:
            logger.warning("Tool not found: %s", tool_name)
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        return JSONResponse(result.to_dict())

    return app


app = create_app()


def run_local_server(host: str = "127.0.0.1", port: int = 8000) -> None:
    import asyncio

    from hypercorn.asyncio import serve
    from hypercorn.config import Config

    configure_logging()
    config = Config()
    config.bind = [f"{host}:{port}"]
    logger.info("Serving Gatherly tools on http://%s:%d", host, port)
    asyncio.run(serve(app, config))
