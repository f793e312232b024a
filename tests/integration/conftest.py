"""
Integration test fixtures.

Tests using these fixtures need a PostgreSQL database reachable at
DATABASE_URL (docker-compose up db). They are skipped when it is not.
"""

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from src.adapters.repository.postgres import run_migrations
from src.config.settings import get_settings


@pytest.fixture(scope="session")
def pool() -> ConnectionPool:
    """Create connection pool and schema for integration tests."""
    settings = get_settings()
    pool = ConnectionPool(conninfo=settings.database_url, min_size=1, max_size=10, open=False)
    try:
        pool.open(wait=True, timeout=5)
    except PoolTimeout:
        pool.close()
        pytest.skip("PostgreSQL is not reachable")
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_database(pool: ConnectionPool) -> None:
    """Empty every table before the test."""
    with pool.connection() as conn:
        conn.execute("DELETE FROM account_members")
        conn.execute("DELETE FROM accounts")
        conn.execute("DELETE FROM verification_codes")
        conn.commit()
    yield
