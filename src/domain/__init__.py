"""
Domain layer - Pure business logic with zero framework imports.

This package contains the membership registration wizard: form state
transitions, step validation, the team roster, fee calculation, the email
verification gate and payment orchestration. It defines its own port
interfaces for infrastructure abstraction, ensuring true hexagonal
architecture decoupling.
"""

from .exceptions import (
    AccountCreationFailed,
    CheckoutFailed,
    CollaboratorError,
    EmailAlreadyClaimed,
    InvoiceFailed,
    LogoRejected,
    MemberNotFound,
    RegistrantRemovalError,
    RegistrationError,
    SessionNotFound,
    VerificationDeliveryFailed,
    VerificationFailed,
)
from .models import (
    MembershipType,
    OrganizationType,
    PaymentMethod,
    PaymentStatus,
    RegistrationState,
    WizardSession,
)
from .ports import (
    AccountRepository,
    CheckoutGateway,
    EmailSender,
    InvoiceGateway,
    LogoStorage,
    SessionStore,
    VerificationCodeRepository,
    VerifyResult,
)
from .registration import RegistrationService
from .verification import VerificationCodeService

__all__ = [
    "AccountCreationFailed",
    "AccountRepository",
    "CheckoutFailed",
    "CheckoutGateway",
    "CollaboratorError",
    "EmailAlreadyClaimed",
    "EmailSender",
    "InvoiceFailed",
    "InvoiceGateway",
    "LogoRejected",
    "LogoStorage",
    "MemberNotFound",
    "MembershipType",
    "OrganizationType",
    "PaymentMethod",
    "PaymentStatus",
    "RegistrantRemovalError",
    "RegistrationError",
    "RegistrationService",
    "RegistrationState",
    "SessionNotFound",
    "SessionStore",
    "VerificationCodeRepository",
    "VerificationCodeService",
    "VerificationDeliveryFailed",
    "VerificationFailed",
    "VerifyResult",
    "WizardSession",
]
