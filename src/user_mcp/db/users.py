"""
Queries against the users table.

All statements use asyncpg ``$n`` parameter binding.
"""

import logging
import re
from typing import Any, List, Optional

from user_mcp.db.database import DB_ERRORS, Database
from user_mcp.errors import PersistenceError, UserNotFoundError
from user_mcp.models import NewUser, User, UserSummary

logger = logging.getLogger(__name__)

LIST_USERS_SQL = "SELECT id, name, email, address FROM users ORDER BY id"
LIST_USER_SUMMARIES_SQL = "SELECT id, name FROM users ORDER BY id"
GET_USER_SQL = "SELECT id, name, email, address FROM users WHERE id = $1"
INSERT_USER_SQL = (
    "INSERT INTO users (name, email, address) VALUES ($1, $2, $3) RETURNING id"
)

# users.id is a SERIAL (int4) column.
MAX_USER_ID = 2**31 - 1
_USER_ID_PATTERN = re.compile(r"[0-9]+")


def parse_user_id(user_id: Any) -> Optional[int]:
    """
    Return user_id as an int4 key, or None if no row could ever match it.

    Accepts plain ints and strings of ASCII digits only, so URI ids like
    "1_0", " 1" or "+1" are rejected rather than coerced.
    """
    if isinstance(user_id, bool):
        return None
    if isinstance(user_id, int):
        key = user_id
    elif isinstance(user_id, str) and _USER_ID_PATTERN.fullmatch(user_id):
        key = int(user_id)
    else:
        return None
    return key if 0 <= key <= MAX_USER_ID else None


class UserRepository:
    """Read and insert users through a shared Database handle."""

    def __init__(self, database: Database):
        self.database = database

    async def list_users(self) -> List[User]:
        """
        Get every user ordered by ascending id.

        Returns:
            List of users; unbounded, no pagination
        """
        rows = await self.database.fetch(LIST_USERS_SQL)
        return [User.from_row(row) for row in rows]

    async def list_user_summaries(self) -> List[UserSummary]:
        """Get the id and name of every user ordered by id."""
        rows = await self.database.fetch(LIST_USER_SUMMARIES_SQL)
        return [UserSummary(id=row["id"], name=row["name"]) for row in rows]

    async def get_user(self, user_id: Any) -> User:
        """
        Get a single user by id.

        Args:
            user_id: The user's id; numeric strings are accepted

        Returns:
            The matching user

        Raises:
            UserNotFoundError: If no row matches, or the id is not a valid int4 key
        """
        key = parse_user_id(user_id)
        if key is None:
            raise UserNotFoundError(user_id)

        row = await self.database.fetchrow(GET_USER_SQL, key)
        if row is None:
            raise UserNotFoundError(user_id)
        return User.from_row(row)

    async def insert_user(self, record: NewUser) -> int:
        """
        Insert one user.

        Args:
            record: Name, email and address of the new user

        Returns:
            The id generated by the database

        Raises:
            PersistenceError: On constraint violation or lost connectivity
        """
        try:
            user_id = await self.database.fetchval(
                INSERT_USER_SQL, record.name, record.email, record.address
            )
        except DB_ERRORS as e:
            raise PersistenceError(f"Failed to insert user: {e}") from e

        if user_id is None:
            raise PersistenceError("Insert did not return an id")
        logger.info("Inserted user %s", user_id)
        return user_id
