"""
Generate a fabricated user with the completion endpoint and store it.

``RandomUserGenerator.generate`` never raises for the expected failure kinds.
It returns a GenerationOutcome that either holds the new user id or the
specific error, so callers can log the detail and show a uniform message.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from user_mcp.db.users import UserRepository
from user_mcp.errors import GenerationError, ParseError, UserServiceError
from user_mcp.llm.completion import CompletionClient
from user_mcp.models import NewUser

logger = logging.getLogger(__name__)

RANDOM_USER_PROMPT = (
    "Generate a fake user data. The user should have a realistic name, email, "
    "and address. Return the data in JSON format with keys: name, email, address "
    "or formatter so it can be used with JSON.parse."
)

SUCCESS_MESSAGE = "Successfully created user with ID: {user_id}"
FAILURE_MESSAGE = "Failed to generate user data"

_CODE_FENCE = re.compile(r"```json|```")
_REQUIRED_FIELDS = ("name", "email", "address")


def strip_code_fences(text: str) -> str:
    """Remove ```json and ``` markers and surrounding whitespace."""
    return _CODE_FENCE.sub("", text).strip()


def parse_user_record(text: str) -> NewUser:
    """
    Parse generated text into a NewUser.

    Raises:
        ParseError: If the text is not a JSON object with string name,
            email and address fields
    """
    try:
        data: Any = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"Generated text is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ParseError("Generated JSON is not an object")

    for field in _REQUIRED_FIELDS:
        if not isinstance(data.get(field), str):
            raise ParseError(f"Generated user is missing string field '{field}'")

    return NewUser(name=data["name"], email=data["email"], address=data["address"])


@dataclass(frozen=True)
class GenerationOutcome:
    """Result of one generation attempt: a user id or the error that stopped it."""
    user_id: Optional[int] = None
    error: Optional[UserServiceError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.user_id is not None

    @property
    def kind(self) -> str:
        return "created" if self.ok else self.error.kind

    def message(self) -> str:
        """Text shown to MCP clients."""
        if self.ok:
            return SUCCESS_MESSAGE.format(user_id=self.user_id)
        return FAILURE_MESSAGE


class RandomUserGenerator:
    """Ask the completion endpoint for one user, validate it, persist it."""

    def __init__(
        self,
        users: UserRepository,
        completion: CompletionClient,
        default_model: str,
    ):
        self.users = users
        self.completion = completion
        self.default_model = default_model

    async def generate(self, model: Optional[str] = None) -> GenerationOutcome:
        selected_model = model or self.default_model
        try:
            raw = await self.completion.complete(selected_model, RANDOM_USER_PROMPT)
            record = parse_user_record(strip_code_fences(raw))
            user_id = await self.users.insert_user(record)
        except UserServiceError as e:
            logger.warning(
                "Random user generation failed (%s) with model %s: %s",
                e.kind, selected_model, e.message,
            )
            return GenerationOutcome(error=e)
        except Exception as e:
            logger.exception(
                "Random user generation failed unexpectedly with model %s", selected_model
            )
            return GenerationOutcome(error=GenerationError(f"{type(e).__name__}: {e}"))

        logger.info("Created random user %s with model %s", user_id, selected_model)
        return GenerationOutcome(user_id=user_id)
