"""Repository adapters - Database implementations."""

from .postgres import PostgresAccountRepository, PostgresVerificationCodeRepository, run_migrations

__all__ = ["PostgresAccountRepository", "PostgresVerificationCodeRepository", "run_migrations"]
