"""Tool dispatch table.

Each tool registers one handler for authenticated callers and one for
sandbox callers. ``call_tool`` binds the caller once, validates the
arguments against the tool's request model and turns every failure into a
``ToolResult``; the only exception that escapes is ``KeyError`` for a name
that was never registered.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Type

from pydantic import BaseModel, ValidationError

from ..domain import Authenticated, ErrorKind
from ..domain.errors import ActivityError, InfrastructureError
from .envelope import ToolResult
from .state import ApiState, get_api_state

logger = logging.getLogger(__name__)

JsonSchema = Dict[str, Any]
AuthenticatedHandler = Callable[[ApiState, str, Any], Dict[str, Any]]
SandboxHandler = Callable[[ApiState, Any], Dict[str, Any]]


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    category: str
    tags: tuple[str, ...]
    request_model: Type[BaseModel]
    handler: AuthenticatedHandler
    sandbox: SandboxHandler

    @property
    def parameter_schema(self) -> JsonSchema:
        return self.request_model.model_json_schema(by_alias=True)

    def as_tool(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameter_schema,
            },
        }


REGISTRY: Dict[str, ToolSpec] = {}


def register_tool(
    name: str,
    *,
    description: str,
    category: str,
    request_model: Type[BaseModel],
    sandbox: SandboxHandler,
    tags: Optional[Iterable[str]] = None,
) -> Callable[[AuthenticatedHandler], AuthenticatedHandler]:
    def decorator(func: AuthenticatedHandler) -> AuthenticatedHandler:
        if name in REGISTRY:
            raise ValueError(f"Tool '{name}' is already registered.")
        REGISTRY[name] = ToolSpec(
            name=name,
            description=description,
            category=category,
            tags=tuple(tags or ()),
            request_model=request_model,
            handler=func,
            sandbox=sandbox,
        )
        return func

    return decorator


def get_tools() -> List[ToolSpec]:
    return list(REGISTRY.values())


def get_tool(name: str) -> ToolSpec:
    if name not in REGISTRY:
        raise KeyError(f"Tool '{name}' is not registered.")
    return REGISTRY[name]


def _describe_validation_error(exc: ValidationError) -> tuple[str, List[Dict[str, Any]]]:
    problems = []
    for error in exc.errors(include_url=False, include_input=False):
        location = ".".join(str(part) for part in error.get("loc", ())) or "arguments"
        problems.append({"field": location, "message": error.get("msg", "is invalid")})
    summary = "; ".join(f"{problem['field']}: {problem['message']}" for problem in problems)
    return f"Invalid arguments: {summary}", problems


def call_tool(
    name: str,
    arguments: Optional[Mapping[str, Any]] = None,
    *,
    token: Optional[str] = None,
    state: Optional[ApiState] = None,
) -> ToolResult:
    tool = get_tool(name)
    state = state or get_api_state()
    try:
        caller = state.context.identity.bind(token)
        request = tool.request_model.model_validate(dict(arguments or {}))
        if isinstance(caller, Authenticated):
            data = tool.handler(state, caller.user_id, request)
        else:
            data = tool.sandbox(state, request)
            data["sandbox"] = True
    except ActivityError as exc:
        logger.info("Tool %s rejected: %s (%s)", name, exc.kind.value, exc.message)
        return ToolResult.from_error(exc)
    except ValidationError as exc:
        message, problems = _describe_validation_error(exc)
        logger.info("Tool %s received invalid arguments: %s", name, message)
        return ToolResult.fail(ErrorKind.VALIDATION_FAILED, message, details={"errors": problems})
    except InfrastructureError as exc:
        logger.warning("Tool %s hit an infrastructure fault: %s", name, exc)
        return ToolResult.fail(
            ErrorKind.UNAVAILABLE,
            "The service is temporarily unavailable; try again shortly.",
            retryable=True,
        )
    except Exception:  # noqa: BLE001
        logger.exception("Tool %s failed unexpectedly", name)
        return ToolResult.fail(ErrorKind.UNAVAILABLE, "Something went wrong; try again shortly.")
    logger.debug("Tool %s executed successfully", name)
    return ToolResult.ok(data)


__all__ = ["REGISTRY", "ToolSpec", "call_tool", "get_tool", "get_tools", "register_tool"]
