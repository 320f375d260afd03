"""
Environment-sourced configuration for the User Directory MCP server.

Values are read from the process environment after loading an optional
``.env`` file with python-dotenv.
"""

import logging
import os
import sys
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from dotenv import load_dotenv

from user_mcp.errors import ConfigurationError


DEFAULT_COMPLETION_ENDPOINT = "https://openrouter.ai/api/v1/chat/completions"
DEFAULT_MODEL = "nvidia/nemotron-3-nano-30b-a3b:free"


def _first_env(*names: str, default: Optional[str] = None) -> Optional[str]:
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return default


def _number_env(name: str, cast: Callable[[str], Any], default: str) -> Any:
    value = os.getenv(name, default)
    try:
        return cast(value)
    except ValueError:
        expected = "an integer" if cast is int else "a number"
        raise ConfigurationError(name, value, expected) from None


@dataclass
class Settings:
    """Runtime settings for the server."""
    database_url: Optional[str]
    completion_endpoint: str = DEFAULT_COMPLETION_ENDPOINT
    completion_api_key: Optional[str] = None
    default_model: str = DEFAULT_MODEL
    completion_timeout: float = 60.0
    pool_min_size: int = 1
    pool_max_size: int = 5
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            load_env_file: Whether to load a ``.env`` file first

        Returns:
            Settings instance

        Raises:
            ConfigurationError: If a numeric variable cannot be parsed
        """
        if load_env_file:
            load_dotenv()

        return cls(
            database_url=os.getenv("DATABASE_URL"),
            completion_endpoint=_first_env(
                "COMPLETION_ENDPOINT", "OPENROUTER_DOMAIN",
                default=DEFAULT_COMPLETION_ENDPOINT,
            ),
            completion_api_key=_first_env("COMPLETION_API_KEY", "OPENROUTER_API_KEY"),
            default_model=os.getenv("COMPLETION_MODEL", DEFAULT_MODEL),
            completion_timeout=_number_env("COMPLETION_TIMEOUT", float, "60"),
            pool_min_size=_number_env("DB_POOL_MIN_SIZE", int, "1"),
            pool_max_size=_number_env("DB_POOL_MAX_SIZE", int, "5"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    def missing(self, require_completion: bool = True) -> List[str]:
        """Names of required variables that are not set."""
        missing = []
        if not self.database_url:
            missing.append("DATABASE_URL")
        if require_completion and not self.completion_api_key:
            missing.append("COMPLETION_API_KEY")
        return missing


def configure_logging(level: str = "INFO") -> None:
    """Send log records to stderr; stdout is reserved for the stdio transport."""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
