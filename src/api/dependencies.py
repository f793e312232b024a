"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from functools import lru_cache

from fastapi import Depends, Request
from psycopg_pool import ConnectionPool

from src.adapters.payments.stripe_gateway import StripeCheckoutGateway, StripeInvoiceGateway
from src.adapters.repository.postgres import (
    PostgresAccountRepository,
    PostgresVerificationCodeRepository,
)
from src.adapters.sessions.memory import InMemorySessionStore
from src.adapters.smtp.console import ConsoleEmailSender
from src.adapters.storage.local import LocalLogoStorage
from src.config.settings import Settings, get_settings
from src.domain.registration import RegistrationService
from src.domain.verification import VerificationCodeService

# Module-level singleton - ConsoleEmailSender is stateless
_email_sender = ConsoleEmailSender()


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


@lru_cache
def get_session_store() -> InMemorySessionStore:
    """Get the process-wide wizard session store (singleton)."""
    return InMemorySessionStore(ttl_seconds=get_settings().session_ttl_seconds)


def get_email_sender() -> ConsoleEmailSender:
    """Get console email sender (singleton)."""
    return _email_sender


def get_verification_service(
    request: Request, settings: Settings = Depends(get_settings)
) -> VerificationCodeService:
    """Create the email code issuer backed by PostgreSQL."""
    return VerificationCodeService(
        repository=PostgresVerificationCodeRepository(get_pool(request)),
        email_sender=get_email_sender(),
        ttl_seconds=settings.verification_ttl_seconds,
        max_attempts=settings.verification_max_attempts,
        code_length=settings.verification_code_length,
    )


def get_registration_service(
    request: Request,
    settings: Settings = Depends(get_settings),
    verification: VerificationCodeService = Depends(get_verification_service),
) -> RegistrationService:
    """
    Create registration service with injected dependencies.

    Wires the session store, account repository, verification service,
    Stripe gateways and logo storage for the domain service.
    """
    return RegistrationService(
        sessions=get_session_store(),
        accounts=PostgresAccountRepository(get_pool(request)),
        verification=verification,
        checkout=StripeCheckoutGateway(
            api_key=settings.stripe_secret_key,
            success_url=settings.checkout_success_url,
            cancel_url=settings.checkout_cancel_url,
            currency=settings.membership_currency,
        ),
        invoices=StripeInvoiceGateway(
            api_key=settings.stripe_secret_key,
            days_until_due=settings.invoice_days_until_due,
            currency=settings.membership_currency,
        ),
        logos=LocalLogoStorage(settings.logo_dir, settings.logo_base_url),
        bcrypt_cost=settings.bcrypt_cost,
    )
