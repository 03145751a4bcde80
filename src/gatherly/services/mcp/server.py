from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Dict, List, Optional

from fastmcp import FastMCP
from fastmcp.server.dependencies import get_http_headers

from ...api import ToolSpec, call_tool, get_tools
from ...logging import configure_logging

INSTRUCTIONS = (
    "Gatherly MCP server exposes the activity tools: create, refine and publish drafts, join or leave "
    "activities, look activities up by id or title, manage partner intents and ask the user for preferences. "
    "Every tool returns {success, data} or {success: false, error, errorKind}."
)

logger = logging.getLogger(__name__)


def _caller_token() -> Optional[str]:
    headers = get_http_headers(include_all=True)
    return headers.get("authorization")


def _tool_function(tool: ToolSpec) -> Callable[..., Dict[str, Any]]:
    """Expose ``tool``'s request fields as keyword parameters named by their wire alias."""

    parameters: List[inspect.Parameter] = []
    annotations: Dict[str, Any] = {}
    for field_name, field in tool.request_model.model_fields.items():
        name = field.alias or field_name
        if field.is_required():
            default: Any = inspect.Parameter.empty
            annotation: Any = field.annotation
        else:
            default = None if field.default_factory is not None else field.default
            annotation = Optional[field.annotation]
        parameters.append(inspect.Parameter(name, inspect.Parameter.KEYWORD_ONLY, default=default, annotation=annotation))
        annotations[name] = annotation

    def invoke(**kwargs: Any) -> Dict[str, Any]:
        arguments = {key: value for key, value in kwargs.items() if value is not None}
        return call_tool(tool.name, arguments, token=_caller_token()).to_dict()

    invoke.__name__ = tool.name
    invoke.__doc__ = tool.description
    invoke.__signature__ = inspect.Signature(parameters, return_annotation=Dict[str, Any])  # type: ignore[attr-defined]
    invoke.__annotations__ = {**annotations, "return": Dict[str, Any]}
    return invoke


server = FastMCP(name="gatherly", instructions=INSTRUCTIONS)

# Dynamically register all tools as MCP tools.
for tool_spec in get_tools():
    logger.debug("Registering MCP tool: %s", tool_spec.name)
    server.tool(
        _tool_function(tool_spec),
        name=tool_spec.name,
        description=tool_spec.description,
        tags=set(tool_spec.tags),
    )


def run_mcp_server(host: str = "127.0.0.1", port: int = 8765) -> None:
    import asyncio

    configure_logging()
    logger.info("Serving Gatherly MCP tools on http://%s:%d", host, port)
    asyncio.run(server.run_streamable_http_async(host=host, port=port))
