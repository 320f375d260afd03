"""
MCP Client for talking to a running User Directory server over streamable HTTP.

Uses the official MCP Python SDK session. Intended for smoke checks and
integration tests against ``user-mcp serve --transport http``.
"""

import asyncio
import json
import os
from typing import Any, Dict, List, Optional

from mcp import ClientSession
from mcp.client.streamable_http import streamablehttp_client
from pydantic import AnyUrl


# Default MCP server URL - configurable via environment variable
DEFAULT_MCP_URL = os.environ.get("MCP_SERVER_URL", "http://localhost:8080/mcp")


class MCPClient:
    """
    MCP Client that communicates with the server using the official MCP SDK.
    Each call opens a short-lived session.
    """

    def __init__(self, base_url: str = DEFAULT_MCP_URL):
        """
        Initialize the MCP client.

        Args:
            base_url: URL of the MCP server endpoint (default: http://localhost:8080/mcp)
        """
        self.url = base_url.rstrip("/")
        if not self.url.endswith("/mcp"):
            self.url = f"{self.url}/mcp"

    @property
    def base_url(self) -> str:
        return self.url.rsplit("/mcp", 1)[0]

    async def _run_session(self, callback):
        """Run a callback within an initialized MCP session."""
        async with streamablehttp_client(self.url) as (read_stream, write_stream, _):
            async with ClientSession(read_stream, write_stream) as session:
                await session.initialize()
                return await callback(session)

    def _run_sync(self, coro):
        """Run an async coroutine synchronously."""
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(coro)

        # Already inside an event loop: run the session on a worker thread
        import concurrent.futures
        with concurrent.futures.ThreadPoolExecutor() as pool:
            return pool.submit(asyncio.run, coro).result()

    async def _list_tools_async(self) -> List[Dict[str, Any]]:
        async def get_tools(session: ClientSession):
            result = await session.list_tools()
            return [
                {
                    "name": tool.name,
                    "description": tool.description or "",
                    "inputSchema": tool.inputSchema,
                }
                for tool in result.tools
            ]
        return await self._run_session(get_tools)

    async def _list_resources_async(self) -> List[Dict[str, Any]]:
        async def get_resources(session: ClientSession):
            result = await session.list_resources()
            return [
                {
                    "uri": str(resource.uri),
                    "name": resource.name,
                    "mimeType": resource.mimeType,
                }
                for resource in result.resources
            ]
        return await self._run_session(get_resources)

    async def _read_resource_async(self, uri: str) -> Any:
        async def read(session: ClientSession):
            result = await session.read_resource(AnyUrl(uri))
            return parse_text_content(result.contents)
        return await self._run_session(read)

    async def _call_tool_async(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Any:
        async def call(session: ClientSession):
            result = await session.call_tool(name, arguments or {})
            if result.isError:
                raise MCPToolError(name, parse_text_content(result.content) or "Tool execution failed")
            return parse_text_content(result.content)
        return await self._run_session(call)

    def list_tools(self) -> List[Dict[str, Any]]:
        """List tool definitions (name, description, inputSchema)."""
        return self._run_sync(self._list_tools_async())

    def list_resources(self) -> List[Dict[str, Any]]:
        """List concrete resources, including one profile per user."""
        return self._run_sync(self._list_resources_async())

    def read_resource(self, uri: str) -> Any:
        """
        Read a resource by URI.

        Returns:
            Parsed JSON when the content is JSON, otherwise the raw text
        """
        return self._run_sync(self._read_resource_async(uri))

    def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Any:
        """
        Call a tool via tools/call.

        Raises:
            MCPToolError: If the tool execution failed (isError: true)
        """
        return self._run_sync(self._call_tool_async(name, arguments))

    # Convenience methods for the user directory

    def list_users(self) -> List[Dict[str, Any]]:
        return self.read_resource("user://list")

    def get_user(self, user_id: int) -> Dict[str, Any]:
        return self.read_resource(f"user://{user_id}/profile")

    def count_users(self) -> str:
        return self.call_tool("getUser")

    def create_random_user(self, model: Optional[str] = None) -> str:
        args = {"model": model} if model else {}
        return self.call_tool("create-random-users", args)


def parse_text_content(contents: List[Any]) -> Any:
    """Return the first text block, decoded as JSON when possible."""
    for block in contents or []:
        text = getattr(block, "text", None)
        if text is None:
            continue
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return text
    return None


class MCPToolError(Exception):
    """
    Exception raised when a tool execution fails (isError: true in response).
    """

    def __init__(self, tool_name: str, message: Any):
        self.tool_name = tool_name
        self.message = str(message)
        super().__init__(f"Tool '{tool_name}' failed: {self.message}")
