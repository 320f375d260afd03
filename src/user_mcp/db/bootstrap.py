"""
Development bootstrap for the users table.

Creates the table when it is missing and seeds a few rows into an empty
table. Existing tables are never altered.
"""

import logging
from typing import Any, Optional

import asyncpg

logger = logging.getLogger(__name__)

CREATE_USERS_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS users (
        id SERIAL PRIMARY KEY,
        name TEXT NOT NULL,
        email TEXT NOT NULL,
        address TEXT NOT NULL
    )
"""

SAMPLE_USERS = [
    ("Ann Carter", "ann.carter@example.com", "12 Harbour Road, Bristol"),
    ("Bo Lindqvist", "bo.lindqvist@example.com", "4 Storgatan, Uppsala"),
    ("Chidi Okafor", "chidi.okafor@example.com", "88 Allen Avenue, Lagos"),
    ("Dana Whitfield", "dana.w@example.com", "301 Pine Street, Seattle"),
    ("Emil Novak", "emil.novak@example.com", "7 Vinohradska, Prague"),
]


class DatabaseSetup:
    """PostgreSQL setup for the users table."""

    def __init__(self, dsn: str):
        """
        Args:
            dsn: PostgreSQL connection string
        """
        self.dsn = dsn
        self.conn: Optional[Any] = None

    async def connect(self) -> None:
        """Open a single connection for the setup run."""
        self.conn = await asyncpg.connect(self.dsn)
        logger.info("Connected to database for setup")

    async def create_tables(self) -> None:
        """Create the users table if it does not exist."""
        await self.conn.execute(CREATE_USERS_TABLE_SQL)
        logger.info("users table ready")

    async def insert_sample_data(self) -> int:
        """
        Seed sample users into an empty table.

        Returns:
            Number of rows inserted (0 when data already exists)
        """
        count = await self.conn.fetchval("SELECT COUNT(*) FROM users")
        if count:
            logger.info("users table already has %d rows, skipping sample data", count)
            return 0

        await self.conn.executemany(
            "INSERT INTO users (name, email, address) VALUES ($1, $2, $3)",
            SAMPLE_USERS,
        )
        logger.info("Inserted %d sample users", len(SAMPLE_USERS))
        return len(SAMPLE_USERS)

    async def close(self) -> None:
        if self.conn is not None:
            await self.conn.close()
            self.conn = None


async def setup_database(dsn: str, seed: bool = True) -> int:
    """Create the users table and optionally seed it. Returns rows inserted."""
    db = DatabaseSetup(dsn)
    try:
        await db.connect()
        await db.create_tables()
        return await db.insert_sample_data() if seed else 0
    finally:
        await db.close()
