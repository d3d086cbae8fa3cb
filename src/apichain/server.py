"""MCP server exposing the tool registry over stdio."""

import logging
import sys
from functools import partial
from typing import Any

import anyio.to_thread
from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import JsonValue

from .client import HttpExecutor
from .config import Settings
from .constants import ToolNames
from .engine import ChainExecutor
from .models import ChainStep, Expectation
from .sessions import SessionStore
from .status import LogFilter
from .tools import ToolRegistry, build_registry

logger = logging.getLogger(__name__)


def _drop_unset(arguments: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in arguments.items() if value is not None}


def create_server(registry: ToolRegistry) -> FastMCP:
    """Create a FastMCP server whose tools dispatch through ``registry``.

    Handlers block on network and file I/O, so each call runs in a worker thread.
    """
    mcp = FastMCP("apichain")

    async def dispatch(name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        return await anyio.to_thread.run_sync(partial(registry.dispatch, name, _drop_unset(arguments)))

    def describe(name: ToolNames) -> str:
        tool = registry.get(name)
        return tool.description if tool else ""

    @mcp.tool(
        name=ToolNames.API_REQUEST,
        title="API request",
        description=describe(ToolNames.API_REQUEST),
        annotations=ToolAnnotations(readOnlyHint=False, openWorldHint=True),
    )
    async def api_request(
        session_id: str | None = None,
        method: str = "GET",
        url: str | None = None,
        headers: dict[str, str] | None = None,
        data: JsonValue = None,
        expect: Expectation | None = None,
        chain: list[ChainStep] | None = None,
        timeout: int | None = None,
    ) -> dict[str, Any]:
        """Run a single request (url) or an ordered chain of requests (chain).

        Args:
            session_id: Session ID for tracking multiple related requests
            method: HTTP method for single request mode
            url: URL for single request mode (required if not using chain)
            headers: HTTP headers for single request
            data: Request body; objects are sent as JSON
            expect: Validation expectations for the response
            chain: Ordered steps; later steps may use {{ step.field }} templates
            timeout: Per-request timeout in milliseconds
        """
        return await dispatch(
            ToolNames.API_REQUEST,
            {
                "session_id": session_id,
                "method": method,
                "url": url,
                "headers": headers,
                "data": data,
                "expect": expect,
                "chain": chain,
                "timeout": timeout,
            },
        )

    @mcp.tool(
        name=ToolNames.API_SESSION_STATUS,
        title="API session status",
        description=describe(ToolNames.API_SESSION_STATUS),
        annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=False),
    )
    async def api_session_status(
        session_id: str,
        include_details: bool = True,
        filter_by_type: LogFilter = "all",
        limit: int | None = None,
    ) -> dict[str, Any]:
        return await dispatch(
            ToolNames.API_SESSION_STATUS,
            {
                "session_id": session_id,
                "include_details": include_details,
                "filter_by_type": filter_by_type,
                "limit": limit,
            },
        )

    @mcp.tool(
        name=ToolNames.API_SESSION_REPORT,
        title="API session report",
        description=describe(ToolNames.API_SESSION_REPORT),
        annotations=ToolAnnotations(readOnlyHint=False, openWorldHint=False),
    )
    async def api_session_report(
        session_id: str,
        output_path: str,
        title: str = "API Test Session Report",
        include_request_data: bool = True,
        include_response_data: bool = True,
        include_timing: bool = True,
    ) -> dict[str, Any]:
        return await dispatch(
            ToolNames.API_SESSION_REPORT,
            {
                "session_id": session_id,
                "output_path": output_path,
                "title": title,
                "include_request_data": include_request_data,
                "include_response_data": include_response_data,
                "include_timing": include_timing,
            },
        )

    return mcp


def main() -> None:
    settings = Settings()
    logging.basicConfig(
        level=settings.log_level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    store = SessionStore()
    with HttpExecutor(settings.user_agent) as client:
        executor = ChainExecutor(store, client, settings)
        server = create_server(build_registry(store, executor, settings))
        logger.info("Starting apichain MCP server")
        server.run()


if __name__ == "__main__":
    main()
