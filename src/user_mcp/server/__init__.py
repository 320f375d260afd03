"""
MCP surface of the user directory.

Run the server over stdio (for Claude Desktop and other MCP hosts):
    user-mcp serve

Or over streamable HTTP:
    user-mcp serve --transport http --port 8080

Talk to an HTTP server from Python:
    from user_mcp.server import MCPClient

    client = MCPClient("http://localhost:8080")
    client.list_users()
"""

from .mcp_server import (
    AppResources,
    UserDirectoryMCP,
    app_resources,
    create_server,
    run_http_server,
    run_server,
)
from .mcp_client import DEFAULT_MCP_URL, MCPClient, MCPToolError

__all__ = [
    "AppResources",
    "UserDirectoryMCP",
    "app_resources",
    "create_server",
    "run_server",
    "run_http_server",
    "MCPClient",
    "MCPToolError",
    "DEFAULT_MCP_URL",
]
