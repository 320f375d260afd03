"""
User Directory MCP server.

Exposes a PostgreSQL users table over the Model Context Protocol and can
insert LLM-generated users through an OpenAI-compatible completion endpoint.
"""

__version__ = "1.0.0"
