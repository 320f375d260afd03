"""
Tests for the MCP server implementation.

This file contains four test suites:
1. Protocol tests that drive the server through an in-memory MCP client
   session (no network, fake database, mocked completion endpoint)
2. Lifecycle tests for the pool and HTTP client opened by app_resources
3. Integration tests through MCPClient against a running HTTP server
4. MCPClient tests that need no server
"""

import json

import httpx
import pytest
from mcp.shared.exceptions import McpError
from mcp.shared.memory import create_connected_server_and_client_session
from mcp.types import TextContent
from pydantic import AnyUrl

from user_mcp.config import Settings
from user_mcp.db import database as database_module
from user_mcp.errors import PersistenceError
from user_mcp.llm.completion import CompletionClient
from user_mcp.server import mcp_server
from user_mcp.server.mcp_client import MCPClient, MCPToolError, parse_text_content
from user_mcp.server.mcp_server import app_resources, create_server

from conftest import TEST_ENDPOINT, RecordingHandler, chat_response, make_completion_client, run


class TestMCPServerProtocol:
    """
    Drive the FastMCP server through the SDK's in-memory client session,
    so requests go through resources/list, resources/read and tools/call.
    """

    @pytest.fixture(autouse=True)
    def setup(self, database):
        self.database = database
        self.handler = RecordingHandler(
            chat_response('```json\n{"name":"A","email":"a@b.com","address":"X"}\n```')
        )
        self.server = create_server(
            database,
            make_completion_client(self.handler),
            default_model="default/model",
        )

    def _with_session(self, callback):
        async def go():
            async with create_connected_server_and_client_session(
                self.server._mcp_server
            ) as session:
                return await callback(session)
        return run(go())

    def _read(self, uri):
        async def read(session):
            result = await session.read_resource(AnyUrl(uri))
            return result.contents[0]
        return self._with_session(read)

    def _call(self, name, arguments=None):
        async def call(session):
            return await session.call_tool(name, arguments or {})
        return self._with_session(call)

    def test_list_resources_includes_profiles(self):
        """resources/list has user://list plus one profile per stored user."""
        async def list_resources(session):
            return (await session.list_resources()).resources

        resources = {str(r.uri): r for r in self._with_session(list_resources)}

        assert "user://list" in resources
        assert resources["user://list"].name == "user-list"
        assert resources["user://1/profile"].name == "User 1 - Ann"
        assert resources["user://2/profile"].name == "User 2 - Bo"
        assert resources["user://2/profile"].mimeType == "application/json"

    def test_list_resource_templates(self):
        async def list_templates(session):
            return (await session.list_resource_templates()).resourceTemplates

        templates = {t.uriTemplate: t for t in self._with_session(list_templates)}

        assert "user://{user_id}/profile" in templates
        assert templates["user://{user_id}/profile"].name == "user-details"

    def test_read_user_list(self):
        content = self._read("user://list")

        assert content.mimeType == "application/json"
        assert json.loads(content.text) == [
            {"id": 1, "name": "Ann", "email": "a@x.com", "address": "1 Rd"},
            {"id": 2, "name": "Bo", "email": "b@x.com", "address": "2 Rd"},
        ]

    def test_read_user_profile(self):
        content = self._read("user://2/profile")

        record = json.loads(content.text)
        assert record["id"] == 2
        assert record["name"] == "Bo"

    def test_read_unknown_user_profile(self):
        """A missing user surfaces to the client as a protocol error."""
        with pytest.raises(McpError) as exc_info:
            self._read("user://3/profile")

        assert "User 3 not found" in str(exc_info.value)

    def test_list_tools(self):
        async def list_tools(session):
            return (await session.list_tools()).tools

        tools = {tool.name: tool for tool in self._with_session(list_tools)}

        assert set(tools) == {"getUser", "create-random-users"}
        create = tools["create-random-users"]
        assert "model" in create.inputSchema["properties"]
        assert create.annotations.title == "Create User"
        assert create.annotations.readOnlyHint is False
        assert create.annotations.idempotentHint is False

    def test_get_user_tool_reports_count(self):
        result = self._call("getUser")

        assert result.isError is False
        assert isinstance(result.content[0], TextContent)
        assert result.content[0].text == "Fetched 2 users from the database."

    def test_create_random_users_success(self):
        result = self._call("create-random-users")

        assert result.content[0].text == "Successfully created user with ID: 3"
        assert self.database.rows[3]["email"] == "a@b.com"
        assert self.handler.last_body["model"] == "default/model"

    def test_create_random_users_with_model(self):
        self._call("create-random-users", {"model": "other/model"})

        assert self.handler.last_body["model"] == "other/model"

    def test_create_random_users_prose_fails(self):
        """Unparseable output gives the uniform failure text and no insert."""
        self.handler.response = chat_response("Here is a user: Alice, alice@example.com")

        result = self._call("create-random-users")

        assert result.isError is False
        assert result.content[0].text == "Failed to generate user data"
        assert self.database.inserts == []

    def test_create_random_users_upstream_error(self):
        self.handler.response = httpx.Response(500)

        result = self._call("create-random-users")

        assert result.content[0].text == "Failed to generate user data"
        assert self.database.inserts == []

    def test_create_random_users_unencodable_api_key(self):
        """A bad API key is reported as the uniform failure, not a tool error."""
        self.server = create_server(
            self.database,
            CompletionClient(
                TEST_ENDPOINT,
                "sk-\u2013key",
                http_client=httpx.AsyncClient(transport=httpx.MockTransport(self.handler)),
            ),
        )

        result = self._call("create-random-users")

        assert result.isError is False
        assert result.content[0].text == "Failed to generate user data"
        assert self.database.inserts == []


class FakePool:
    """Stands in for the asyncpg pool created by Database.connect."""

    def __init__(self):
        self.closed = False

    async def close(self):
        self.closed = True


class TestAppResources:
    """The pool and HTTP client live exactly as long as app_resources."""

    @pytest.fixture(autouse=True)
    def setup(self, monkeypatch):
        self.settings = Settings(
            database_url="postgresql://localhost/users",
            completion_api_key="sk-test",
        )
        self.pools = []
        self.clients = []

        async def fake_create_pool(dsn, **kwargs):
            pool = FakePool()
            self.pools.append(pool)
            return pool

        clients = self.clients

        class TrackingCompletionClient(CompletionClient):
            def __init__(self, *args, **kwargs):
                super().__init__(*args, **kwargs)
                clients.append(self)

        self.monkeypatch = monkeypatch
        monkeypatch.setattr(database_module.asyncpg, "create_pool", fake_create_pool)
        monkeypatch.setattr(mcp_server, "CompletionClient", TrackingCompletionClient)

    def test_handles_closed_on_exit(self):
        async def use():
            async with app_resources(self.settings) as resources:
                assert resources.database.is_connected is True
                assert resources.completion._client.is_closed is False

        run(use())

        assert self.pools[0].closed is True
        assert self.clients[0]._client.is_closed is True

    def test_handles_closed_when_body_raises(self):
        async def use():
            async with app_resources(self.settings):
                raise RuntimeError("transport crashed")

        with pytest.raises(RuntimeError):
            run(use())

        assert self.pools[0].closed is True
        assert self.clients[0]._client.is_closed is True

    def test_failed_connect_opens_no_http_client(self):
        async def refuse(dsn, **kwargs):
            raise OSError("connection refused")

        self.monkeypatch.setattr(database_module.asyncpg, "create_pool", refuse)

        async def use():
            async with app_resources(self.settings):
                pass

        with pytest.raises(PersistenceError):
            run(use())

        assert self.clients == []


class TestMCPClientProtocol:
    """
    Protocol tests against a running server.

    NOTE: These tests require the MCP HTTP server to be running:
        user-mcp serve --transport http --port 8080
    """

    @pytest.fixture
    def client(self):
        return MCPClient(base_url="http://localhost:8080")

    @pytest.mark.integration
    def test_tool_names(self, client):
        try:
            tools = client.list_tools()
        except Exception as e:
            pytest.skip(f"MCP server not available: {e}")

        assert {"getUser", "create-random-users"}.issubset({t["name"] for t in tools})

    @pytest.mark.integration
    def test_user_list_matches_count(self, client):
        try:
            users = client.list_users()
            message = client.count_users()
        except Exception as e:
            pytest.skip(f"MCP server not available: {e}")

        assert message == f"Fetched {len(users)} users from the database."
        ids = [user["id"] for user in users]
        assert ids == sorted(ids)


class TestMCPClient:
    """MCPClient behaviour that needs no running server."""

    def test_url_normalisation(self):
        client = MCPClient(base_url="http://test:8080/")

        assert client.url == "http://test:8080/mcp"
        assert client.base_url == "http://test:8080"

    def test_url_with_mcp_suffix(self):
        assert MCPClient(base_url="http://test:8080/mcp").url == "http://test:8080/mcp"

    def test_parse_text_content_json(self):
        blocks = [TextContent(type="text", text='[{"id": 1}]')]
        assert parse_text_content(blocks) == [{"id": 1}]

    def test_parse_text_content_plain(self):
        blocks = [TextContent(type="text", text="Fetched 2 users from the database.")]
        assert parse_text_content(blocks) == "Fetched 2 users from the database."

    def test_parse_text_content_empty(self):
        assert parse_text_content([]) is None

    def test_tool_error_message(self):
        error = MCPToolError("getUser", "boom")

        assert error.tool_name == "getUser"
        assert str(error) == "Tool 'getUser' failed: boom"
