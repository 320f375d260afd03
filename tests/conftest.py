"""
Shared fixtures: an in-memory stand-in for the asyncpg-backed Database and
helpers for building completion clients on httpx.MockTransport.
"""

import asyncio
import json

import httpx
import pytest

from user_mcp.db.users import (
    GET_USER_SQL,
    INSERT_USER_SQL,
    LIST_USER_SUMMARIES_SQL,
    LIST_USERS_SQL,
)
from user_mcp.llm.completion import CompletionClient

TEST_ENDPOINT = "https://llm.test/api/v1/chat/completions"
TEST_API_KEY = "sk-test"

SAMPLE_ROWS = [
    {"id": 2, "name": "Bo", "email": "b@x.com", "address": "2 Rd"},
    {"id": 1, "name": "Ann", "email": "a@x.com", "address": "1 Rd"},
]


class FakeDatabase:
    """Answers the users queries from a dict keyed by id."""

    def __init__(self, rows=None):
        self.rows = {row["id"]: dict(row) for row in rows or []}
        self.next_id = max(self.rows, default=0) + 1
        self.insert_error = None
        self.inserts = []
        self.connected = True

    async def connect(self):
        self.connected = True

    async def close(self):
        self.connected = False

    def _ordered(self):
        return [self.rows[key] for key in sorted(self.rows)]

    async def fetch(self, query, *args):
        if query == LIST_USERS_SQL:
            return [dict(row) for row in self._ordered()]
        if query == LIST_USER_SUMMARIES_SQL:
            return [{"id": row["id"], "name": row["name"]} for row in self._ordered()]
        raise AssertionError(f"Unexpected fetch: {query}")

    async def fetchrow(self, query, *args):
        assert query == GET_USER_SQL, f"Unexpected fetchrow: {query}"
        assert isinstance(args[0], int)
        row = self.rows.get(args[0])
        return dict(row) if row else None

    async def fetchval(self, query, *args):
        assert query == INSERT_USER_SQL, f"Unexpected fetchval: {query}"
        if self.insert_error is not None:
            raise self.insert_error
        name, email, address = args
        user_id = self.next_id
        self.next_id += 1
        self.rows[user_id] = {"id": user_id, "name": name, "email": email, "address": address}
        self.inserts.append(user_id)
        return user_id


def chat_response(content, status_code=200):
    """Build a chat-completions style response."""
    return httpx.Response(
        status_code,
        json={"choices": [{"message": {"role": "assistant", "content": content}}]},
    )


def make_completion_client(handler):
    """CompletionClient whose HTTP traffic goes to ``handler``."""
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return CompletionClient(TEST_ENDPOINT, TEST_API_KEY, timeout=5.0, http_client=http_client)


class RecordingHandler:
    """MockTransport handler that replays one response and records requests."""

    def __init__(self, response):
        self.response = response
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if isinstance(self.response, Exception):
            raise self.response
        return self.response

    @property
    def last_body(self):
        return json.loads(self.requests[-1].content)


def run(coro):
    """Run a coroutine to completion from a synchronous test."""
    return asyncio.run(coro)


@pytest.fixture
def database():
    """Fake database holding the two sample users."""
    return FakeDatabase(SAMPLE_ROWS)
