"""Database access for the users table (asyncpg)."""

from .database import Database
from .users import UserRepository
from .bootstrap import DatabaseSetup, setup_database

__all__ = [
    "Database",
    "UserRepository",
    "DatabaseSetup",
    "setup_database",
]
