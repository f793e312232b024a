"""
PostgreSQL repository adapters - Implement the account and code ports.

This module provides the PostgreSQL implementations of the domain's
AccountRepository and VerificationCodeRepository ports using psycopg3
with raw SQL.

Account writes:
--------------
Accounts are keyed by id with a UNIQUE email. Inserts use
ON CONFLICT DO NOTHING so a duplicate id or email reports False instead
of raising. A corporate account and its member rows are written inside
one transaction: either the whole team lands or nothing does. A retry
rewrites the account in place and replaces its member rows, unless the
new email already belongs to a different account.

Verification codes:
------------------
One row per email. Issuing a code upserts the row and resets the attempt
counter. Checking a code locks the row with SELECT FOR UPDATE so that
concurrent guesses are counted correctly, and compares with
secrets.compare_digest(). A matching code is deleted.
"""

import logging
import secrets
from dataclasses import asdict
from pathlib import Path

import psycopg
from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool

from src.domain.exceptions import (
    AccountCreationFailed,
    CollaboratorError,
    VerificationDeliveryFailed,
)
from src.domain.ports import VerifyResult
from src.domain.records import AccountRecord, CompanyRecord, MemberRecord

logger = logging.getLogger(__name__)

_INSERT_ACCOUNT_SQL = """
    INSERT INTO accounts (
        id, email, display_name, status, membership_type,
        is_company_account, password_hash, logo_url, profile
    )
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
    ON CONFLICT DO NOTHING
"""

_UPDATE_ACCOUNT_SQL = """
    UPDATE accounts
    SET email = %s, display_name = %s, status = %s, membership_type = %s,
        is_company_account = %s, password_hash = %s, logo_url = %s, profile = %s,
        updated_at = NOW()
    WHERE id = %s
      AND NOT EXISTS (SELECT 1 FROM accounts other WHERE other.email = %s AND other.id <> %s)
"""

_INSERT_MEMBER_SQL = """
    INSERT INTO account_members (
        account_id, id, email, personal_name, job_title, phone,
        is_primary_contact, is_registrant, account_confirmed
    )
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
"""


def _individual_profile(record: AccountRecord) -> dict:
    return {
        "personal_name": record.personal_name,
        "business_address": asdict(record.business_address),
        "has_other_associations": record.has_other_associations,
        "other_associations": list(record.other_associations),
    }


def _company_profile(company: CompanyRecord) -> dict:
    return {
        "organization_name": company.organization_name,
        "organization_type": company.organization_type,
        "account_administrator": asdict(company.account_administrator),
        "account_administrator_member_id": company.account_administrator_member_id,
        "business_address": asdict(company.business_address),
        "has_other_associations": company.has_other_associations,
        "other_associations": list(company.other_associations),
        "portfolio": asdict(company.portfolio) if company.portfolio else None,
    }


def _account_params(record: AccountRecord | CompanyRecord, profile: dict) -> tuple:
    return (
        record.id,
        record.email,
        record.display_name,
        record.status.value,
        record.membership_type.value,
        record.is_company_account,
        record.password_hash,
        record.logo_url,
        Jsonb(profile),
    )


def _member_params(account_id: str, members: list[MemberRecord]) -> list[tuple]:
    return [
        (
            account_id,
            member.id,
            member.email,
            member.personal_name,
            member.job_title,
            member.phone,
            member.is_primary_contact,
            member.is_registrant,
            member.account_confirmed,
        )
        for member in members
    ]


class PostgresAccountRepository:
    """
    Implements AccountRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def create_account(self, record: AccountRecord) -> bool:
        """
        Insert an individual account.

        Returns:
            True if inserted, False if the id or email already exists

        Raises:
            AccountCreationFailed: Database error
        """
        params = _account_params(record, _individual_profile(record))
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(_INSERT_ACCOUNT_SQL, params)
                conn.commit()
                return cursor.rowcount == 1
        except psycopg.Error as e:
            logger.warning("Account insert failed for %s: %s", record.id, e)
            raise AccountCreationFailed("Failed to create account") from e

    def create_company_with_members(
        self, company: CompanyRecord, members: list[MemberRecord]
    ) -> bool:
        """
        Insert a company account and its member rows in one transaction.

        Returns:
            True if inserted, False if the id or email already exists
            (no member rows are written in that case)

        Raises:
            AccountCreationFailed: Database error; the transaction is rolled back
        """
        params = _account_params(company, _company_profile(company))
        member_params = _member_params(company.id, members)
        try:
            with self._pool.connection() as conn:
                with conn.transaction(), conn.cursor() as cursor:
                    cursor.execute(_INSERT_ACCOUNT_SQL, params)
                    if cursor.rowcount != 1:
                        return False
                    if member_params:
                        cursor.executemany(_INSERT_MEMBER_SQL, member_params)
                return True
        except psycopg.Error as e:
            logger.warning("Company insert failed for %s: %s", company.id, e)
            raise AccountCreationFailed("Failed to create account") from e

    def update_account(self, record: AccountRecord) -> bool:
        """
        Rewrite an individual account and drop any member rows it had.

        Returns:
            True if rewritten, False if the account is missing or the email
            belongs to another account

        Raises:
            AccountCreationFailed: Database error; the transaction is rolled back
        """
        params = _account_params(record, _individual_profile(record))
        return self._rewrite(params, [])

    def update_company_with_members(
        self, company: CompanyRecord, members: list[MemberRecord]
    ) -> bool:
        """
        Rewrite a company account and replace its member rows.

        Returns:
            True if rewritten, False if the account is missing or the email
            belongs to another account

        Raises:
            AccountCreationFailed: Database error; the transaction is rolled back
        """
        params = _account_params(company, _company_profile(company))
        return self._rewrite(params, _member_params(company.id, members))

    def _rewrite(self, params: tuple, member_params: list[tuple]) -> bool:
        account_id, email = params[0], params[1]
        try:
            with self._pool.connection() as conn:
                with conn.transaction(), conn.cursor() as cursor:
                    cursor.execute(
                        _UPDATE_ACCOUNT_SQL, (*params[1:], account_id, email, account_id)
                    )
                    if cursor.rowcount != 1:
                        return False
                    cursor.execute(
                        "DELETE FROM account_members WHERE account_id = %s", (account_id,)
                    )
                    if member_params:
                        cursor.executemany(_INSERT_MEMBER_SQL, member_params)
                return True
        except psycopg.Error as e:
            logger.warning("Account rewrite failed for %s: %s", account_id, e)
            raise AccountCreationFailed("Failed to update account") from e


class PostgresVerificationCodeRepository:
    """
    Implements VerificationCodeRepository protocol via psycopg3.

    Expiry is evaluated with database time (NOW()) so that application
    clock skew cannot extend a code's lifetime.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def store_code(self, email: str, code: str, ttl_seconds: int) -> None:
        """
        Upsert the code for an email, resetting attempts and expiry.

        Raises:
            VerificationDeliveryFailed: Database error
        """
        sql = """
            INSERT INTO verification_codes (email, code, attempt_count, expires_at, created_at)
            VALUES (%s, %s, 0, NOW() + make_interval(secs => %s), NOW())
            ON CONFLICT (email) DO UPDATE
            SET code = EXCLUDED.code,
                attempt_count = 0,
                expires_at = EXCLUDED.expires_at,
                created_at = NOW()
        """
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, (email, code, ttl_seconds))
                conn.commit()
        except psycopg.Error as e:
            logger.warning("Storing verification code failed for %s: %s", email, e)
            raise VerificationDeliveryFailed("Failed to send verification code") from e

    def consume_code(self, email: str, code: str, max_attempts: int) -> VerifyResult:
        """
        Check a code under a row lock and delete it on success.

        Args:
            email: Normalized email address
            code: Candidate code
            max_attempts: Wrong guesses allowed before the code locks

        Returns:
            VerifyResult indicating success or specific failure reason

        Raises:
            CollaboratorError: Database error
        """
        select_sql = """
            SELECT code, attempt_count, expires_at <= NOW() AS expired
            FROM verification_codes
            WHERE email = %s
            FOR UPDATE
        """
        increment_sql = """
            UPDATE verification_codes
            SET attempt_count = attempt_count + 1
            WHERE email = %s
        """
        delete_sql = "DELETE FROM verification_codes WHERE email = %s"

        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(select_sql, (email,))
                row = cursor.fetchone()

                if row is None:
                    conn.commit()
                    return VerifyResult.NOT_FOUND

                stored_code, attempt_count, expired = row
                # Always compare so mismatches and lockouts take the same time
                code_valid = secrets.compare_digest(code.encode(), stored_code.encode())

                if expired:
                    conn.commit()
                    return VerifyResult.EXPIRED

                if attempt_count >= max_attempts:
                    conn.commit()
                    return VerifyResult.LOCKED

                if not code_valid:
                    cursor.execute(increment_sql, (email,))
                    conn.commit()
                    if attempt_count + 1 >= max_attempts:
                        return VerifyResult.LOCKED
                    return VerifyResult.INVALID_CODE

                cursor.execute(delete_sql, (email,))
                conn.commit()
                return VerifyResult.SUCCESS
        except psycopg.Error as e:
            logger.warning("Verification check failed for %s: %s", email, e)
            raise CollaboratorError("Failed to verify code") from e


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info("Running %d migration(s)", len(sql_files))

    for sql_file in sql_files:
        logger.info("Executing migration: %s", sql_file.name)
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info("Migration complete: %s", sql_file.name)
        except Exception as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
