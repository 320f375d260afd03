"""
MCP Server implementation using the official MCP Python SDK (FastMCP).
Exposes the users table through two resources and two tools.

Resources:
- user-list (user://list): every user as a JSON array
- user-details (user://{user_id}/profile): one user; resources/list
  enumerates one profile URI per stored user

Tools:
- getUser: report how many users are stored
- create-random-users: ask the completion endpoint for a fabricated user and
  insert it

Long-lived handles (asyncpg pool, httpx client) are created by
``app_resources`` and passed to ``create_server``; they are released when
the process shuts the server down.
"""

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import List, Optional

from mcp.server.fastmcp import FastMCP
from mcp.types import Resource as MCPResource
from mcp.types import ToolAnnotations

from user_mcp.config import DEFAULT_MODEL, Settings
from user_mcp.db import Database, UserRepository
from user_mcp.llm import CompletionClient, RandomUserGenerator

logger = logging.getLogger(__name__)

SERVER_NAME = "Sample MCP Server"
JSON_MIME_TYPE = "application/json"


@dataclass
class AppResources:
    """Handles shared by every request for the lifetime of the process."""
    database: Database
    completion: CompletionClient


@asynccontextmanager
async def app_resources(settings: Settings) -> AsyncIterator[AppResources]:
    """Open the database pool and HTTP client; close both on exit."""
    database = Database(
        settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
    )
    await database.connect()
    completion = None
    try:
        completion = CompletionClient(
            settings.completion_endpoint,
            settings.completion_api_key,
            timeout=settings.completion_timeout,
        )
        yield AppResources(database=database, completion=completion)
    finally:
        if completion is not None:
            await completion.aclose()
        await database.close()


class UserDirectoryMCP(FastMCP):
    """FastMCP server whose resource listing includes one profile per user."""

    def __init__(self, name: str, users: UserRepository, **settings):
        super().__init__(name, **settings)
        self.users = users

    async def list_resources(self) -> List[MCPResource]:
        resources = list(await super().list_resources())
        for summary in await self.users.list_user_summaries():
            resources.append(
                MCPResource(
                    uri=summary.uri,
                    name=summary.label,
                    mimeType=JSON_MIME_TYPE,
                )
            )
        return resources


def create_server(
    database: Database,
    completion: CompletionClient,
    default_model: str = DEFAULT_MODEL,
) -> UserDirectoryMCP:
    """
    Build the MCP server around already-constructed handles.

    Args:
        database: Database handle; connected by the caller
        completion: Client for the completion endpoint
        default_model: Model used when create-random-users gets no model

    Returns:
        Configured FastMCP server
    """
    users = UserRepository(database)
    generator = RandomUserGenerator(users, completion, default_model)

    mcp = UserDirectoryMCP(
        SERVER_NAME,
        users=users,
        instructions="""
        User directory MCP server providing:
        - user://list and user://{user_id}/profile resources
        - getUser to count stored users
        - create-random-users to insert an LLM-generated user
        """,
    )

    @mcp.resource(
        "user://list",
        name="user-list",
        description="All users ordered by id",
        mime_type=JSON_MIME_TYPE,
    )
    async def user_list() -> str:
        rows = await users.list_users()
        return json.dumps([user.to_dict() for user in rows], indent=2)

    @mcp.resource(
        "user://{user_id}/profile",
        name="user-details",
        description="Full record of a single user",
        mime_type=JSON_MIME_TYPE,
    )
    async def user_details(user_id: str) -> str:
        user = await users.get_user(user_id)
        return json.dumps(user.to_dict(), indent=2)

    @mcp.tool(name="getUser", description="Get a user")
    async def get_user() -> str:
        logger.info("Fetching user list from database...")
        rows = await users.list_users()
        return f"Fetched {len(rows)} users from the database."

    @mcp.tool(
        name="create-random-users",
        description="Create random users in the database",
        annotations=ToolAnnotations(
            title="Create User",
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=False,
            openWorldHint=False,
        ),
    )
    async def create_random_users(model: Optional[str] = None) -> str:
        """
        Generate one fake user with an LLM and insert it.

        Args:
            model: Completion model id (optional, defaults to the configured model)
        """
        outcome = await generator.generate(model)
        return outcome.message()

    return mcp


async def serve_stdio(settings: Settings) -> None:
    async with app_resources(settings) as resources:
        mcp = create_server(resources.database, resources.completion, settings.default_model)
        await mcp.run_stdio_async()


async def serve_http(settings: Settings, host: str, port: int) -> None:
    import uvicorn

    async with app_resources(settings) as resources:
        mcp = create_server(resources.database, resources.completion, settings.default_model)
        # FastMCP.run() doesn't accept host/port for streamable-http, so the
        # ASGI app is served through uvicorn directly.
        config = uvicorn.Config(mcp.streamable_http_app(), host=host, port=port)
        await uvicorn.Server(config).serve()


def run_server(settings: Settings):
    """Run the MCP server with stdio transport (default for MCP)."""
    asyncio.run(serve_stdio(settings))


def run_http_server(settings: Settings, host: str = "0.0.0.0", port: int = 8080):
    """Run the MCP server with streamable HTTP transport."""
    asyncio.run(serve_http(settings, host, port))
