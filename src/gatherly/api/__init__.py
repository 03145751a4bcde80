"""Tool surface shared by the HTTP and MCP transports."""

from __future__ import annotations

from .envelope import ToolResult
from .registry import ToolSpec, call_tool, get_tool, get_tools, register_tool
from .state import ApiState, get_api_state, set_api_state

# Import endpoints so decorators run at module import time.
from . import endpoints  # noqa: F401

__all__ = [
    "ApiState",
    "ToolResult",
    "ToolSpec",
    "call_tool",
    "get_api_state",
    "get_tool",
    "get_tools",
    "register_tool",
    "set_api_state",
]
