"""
Domain exceptions - Semantic error types for registration.

This module defines domain-specific exceptions that communicate
business rule violations and collaborator failures without leaking
infrastructure details. Every message is meant to be shown to the user.
"""


class RegistrationError(Exception):
    """Base class for registration domain errors."""

    pass


class EmailAlreadyClaimed(RegistrationError):
    """An account already exists for this email or account id."""

    pass


class VerificationFailed(RegistrationError):
    """Email code mismatch, expired, unknown, or locked."""

    pass


class LogoRejected(RegistrationError):
    """Logo file is too large or not an allowed image type."""

    pass


class SessionNotFound(RegistrationError):
    """No wizard session exists for the given id."""

    pass


class MemberNotFound(RegistrationError):
    """No roster entry exists for the given id."""

    pass


class RegistrantRemovalError(RegistrationError):
    """The registrant roster entry cannot be removed."""

    pass


class CollaboratorError(RegistrationError):
    """An external call (verification, checkout, invoice, storage) failed."""

    pass


class VerificationDeliveryFailed(CollaboratorError):
    """Verification code could not be issued or delivered."""

    pass


class AccountCreationFailed(CollaboratorError):
    """Account record could not be written."""

    pass


class CheckoutFailed(CollaboratorError):
    """Hosted checkout session could not be created."""

    pass


class InvoiceFailed(CollaboratorError):
    """Invoice could not be generated or emailed."""

    pass
