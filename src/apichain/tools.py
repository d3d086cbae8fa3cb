"""Static tool registry.

Every tool is enumerated explicitly in ``build_registry``: a name, a
description, a pydantic input model and a handler taking the validated input.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field, PositiveInt, ValidationError

from .config import Settings
from .constants import ToolNames
from .engine import ChainExecutor
from .exceptions import ApiChainError, ToolExecutionError
from .models import ApiRequestInput, WireModel
from .report import generate_report
from .sessions import SessionStore
from .status import LogFilter, session_status

logger = logging.getLogger(__name__)


class SessionStatusInput(WireModel):
    session_id: str = Field(description="The session ID to query")
    include_details: bool = Field(default=True, description="Whether to include detailed request/response data")
    filter_by_type: LogFilter = Field(default="all", description="Filter logs by entry kind")
    limit: PositiveInt | None = Field(default=None, description="Maximum number of log entries to return")


class SessionReportInput(WireModel):
    session_id: str = Field(description="The session ID to generate report for")
    output_path: str = Field(description="Report path relative to the report directory; '.har' writes an HTTP Archive")
    title: str = Field(default="API Test Session Report")
    include_request_data: bool = True
    include_response_data: bool = True
    include_timing: bool = True


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    input_model: type[BaseModel]
    handler: Callable[[Any], BaseModel]
    read_only: bool = False


class ToolRegistry:
    """Registry of tools with argument validation and uniform error wrapping."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools)

    def dispatch(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        """Validate ``arguments`` against the tool input model and run its handler.

        Raises:
            KeyError: If no tool is registered under ``name``
            ToolExecutionError: If the arguments are invalid or the handler fails
        """
        tool = self._tools.get(name)
        if tool is None:
            raise KeyError(f"Unknown tool: {name}")

        logger.debug(f"[Tool:{name}] Executing with parameters: {arguments}")
        try:
            parameters = tool.input_model.model_validate(arguments)
            result = tool.handler(parameters)
        except ValidationError as e:
            details = "; ".join(f"{' -> '.join(str(x) for x in error['loc'])}: {error['msg']}" for error in e.errors())
            logger.error(f"[Tool:{name}] Invalid parameters: {details}")
            raise ToolExecutionError(name, f"Invalid parameters: {details}") from None
        except ApiChainError as e:
            logger.error(f"[Tool:{name}] Error during execution: {str(e)}")
            raise ToolExecutionError(name, str(e)) from e

        return result.model_dump(mode="json", by_alias=True)


def build_registry(store: SessionStore, executor: ChainExecutor, settings: Settings) -> ToolRegistry:
    registry = ToolRegistry()

    registry.register(
        Tool(
            name=ToolNames.API_REQUEST,
            description=(
                "Perform HTTP API requests with validation, session management, "
                "and request chaining capabilities for comprehensive API testing."
            ),
            input_model=ApiRequestInput,
            handler=executor.run,
        )
    )

    registry.register(
        Tool(
            name=ToolNames.API_SESSION_STATUS,
            description="Query API test session status, logs, and results by sessionId.",
            input_model=SessionStatusInput,
            handler=lambda p: session_status(
                store,
                p.session_id,
                include_details=p.include_details,
                filter_by_type=p.filter_by_type,
                limit=p.limit or settings.status_limit,
            ),
            read_only=True,
        )
    )

    registry.register(
        Tool(
            name=ToolNames.API_SESSION_REPORT,
            description="Generate a JSON or HAR report for an API test session with request/response logs, validation results, and timing analysis.",
            input_model=SessionReportInput,
            handler=lambda p: generate_report(
                store,
                p.session_id,
                p.output_path,
                settings.report_dir,
                title=p.title,
                include_request_data=p.include_request_data,
                include_response_data=p.include_response_data,
                include_timing=p.include_timing,
            ),
        )
    )

    return registry
