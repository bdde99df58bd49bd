"""
Database setup utilities for examples
"""
import sys
from pathlib import Path

import asyncpg

# Add the parent directory to Python path so we can import rowmapper
sys.path.append(str(Path(__file__).parent.parent))


async def connect(
    host: str = "localhost",
    port: int = 5432,
    database: str = "postgres",
    user: str = "postgres",
    password: str = "postgres",
) -> asyncpg.Connection:
    """
    Open a connection to a local PostgreSQL instance.

    The examples own this connection and close it themselves; the mapper
    never does.
    """
    try:
        conn = await asyncpg.connect(
            host=host, port=port, database=database, user=user, password=password
        )
    except (OSError, asyncpg.PostgresError) as e:
        print(f"❌ Failed to connect to PostgreSQL: {e}")
        print(f"Make sure PostgreSQL is running on {host}:{port}")
        raise

    print(f"✅ Connected to PostgreSQL at {host}:{port}/{database} as {user}")
    return conn


async def setup_example_schema(conn: asyncpg.Connection):
    """
    Create the users table for examples if it doesn't exist.
    """
    await conn.execute(
        """
        CREATE TABLE IF NOT EXISTS users (
            user_id BIGSERIAL PRIMARY KEY,
            name VARCHAR(255) NOT NULL,
            email VARCHAR(255) NOT NULL
        );
        """
    )
    print("✅ Users table ready")


async def cleanup_example_data(conn: asyncpg.Connection):
    """
    Clean up example data (optional - for clean runs).
    """
    await conn.execute("TRUNCATE TABLE users RESTART IDENTITY;")
    print("🧹 Cleaned up existing users")
