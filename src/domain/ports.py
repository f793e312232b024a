"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols through
structural subtyping.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from .models import LogoFile, WizardSession
from .records import AccountRecord, AccountSummary, CompanyRecord, MemberRecord


class VerifyResult(Enum):
    """
    Result of an email code check.

    Used by consume_code() to indicate success or the specific failure.
    """

    SUCCESS = "success"
    INVALID_CODE = "invalid_code"
    EXPIRED = "expired"
    LOCKED = "locked"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class CheckoutSession:
    session_id: str
    url: str


@dataclass(frozen=True)
class InvoiceResult:
    success: bool
    email_sent: bool
    invoice_id: str | None = None
    error: str | None = None


class VerificationCodeRepository(Protocol):
    """Port interface for issued email code persistence."""

    def store_code(self, email: str, code: str, ttl_seconds: int) -> None:
        """
        Store a code for an email, replacing any earlier one.

        Resets the attempt counter and sets expiry to now + ttl_seconds.
        """
        ...

    def consume_code(self, email: str, code: str, max_attempts: int) -> VerifyResult:
        """
        Check a code and delete it on success.

        Implementations lock the row for the duration of the check so
        concurrent guesses are counted correctly.

        Return values by scenario:
        - SUCCESS: code matches, not expired, under the attempt limit
        - NOT_FOUND: no code was issued for the email
        - EXPIRED: code exists but its expiry has passed
        - LOCKED: max_attempts wrong guesses reached
        - INVALID_CODE: code mismatch, attempt counted
        """
        ...


class EmailSender(Protocol):
    """Port interface for email delivery."""

    def send_verification_code(self, email: str, code: str) -> None:
        """
        Send verification code to email address.

        Args:
            email: Recipient email address
            code: Numeric verification code
        """
        ...


class VerificationService(Protocol):
    """Issues and checks one-time email codes."""

    def send_code(self, email: str) -> None:
        """Issue a fresh code; raises VerificationDeliveryFailed on failure."""
        ...

    def check_code(self, email: str, code: str) -> VerifyResult: ...


class AccountRepository(Protocol):
    """Port interface for account persistence."""

    def create_account(self, record: AccountRecord) -> bool:
        """
        Write an individual account.

        Returns:
            True if written, False if the id or email already exists
        """
        ...

    def create_company_with_members(
        self, company: CompanyRecord, members: list[MemberRecord]
    ) -> bool:
        """
        Write a company and all its members atomically.

        Either every document is written or none is.

        Returns:
            True if written, False if the id or email already exists
        """
        ...

    def update_account(self, record: AccountRecord) -> bool:
        """
        Rewrite an existing individual account with fresh data and status.

        Member rows left by an earlier corporate write are removed.

        Returns:
            True if rewritten, False if the account does not exist or its
            new email belongs to another account
        """
        ...

    def update_company_with_members(
        self, company: CompanyRecord, members: list[MemberRecord]
    ) -> bool:
        """
        Rewrite an existing company and replace its members atomically.

        Returns:
            True if rewritten, False if the account does not exist or its
            new email belongs to another account
        """
        ...


class CheckoutGateway(Protocol):
    """Hosted checkout session creation."""

    def create_checkout(self, summary: AccountSummary) -> CheckoutSession:
        """Raises CheckoutFailed when no session could be created."""
        ...


class InvoiceGateway(Protocol):
    """Invoice generation and delivery."""

    def request_invoice(self, summary: AccountSummary) -> InvoiceResult: ...


class LogoStorage(Protocol):
    def store_logo(self, organization_name: str, logo: LogoFile) -> str:
        """Persist a logo and return its public URL."""
        ...


class SessionStore(Protocol):
    """Holds wizard sessions between requests."""

    def save(self, session: WizardSession) -> None: ...

    def get(self, session_id: str) -> WizardSession | None: ...

    def delete(self, session_id: str) -> None: ...
