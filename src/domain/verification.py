"""
Email verification - Code issuance and the gate in front of payment.

VerificationCodeService implements the issue/check collaborator on top of
a code repository and an email sender.

EmailVerificationGate is the wizard-side state machine:

    idle -> code_sent -> verifying -> verified  (gate passed, state reset)
                                   -> rejected  (back to code_sent, error shown)

The gate remembers which payment action was requested before verification
was required, and hands it back exactly once when the code is accepted.
"""

import logging
import secrets
from dataclasses import dataclass, field

from .exceptions import RegistrationError, VerificationDeliveryFailed, VerificationFailed
from .models import PaymentMethod, VerificationState
from .ports import EmailSender, VerificationCodeRepository, VerificationService, VerifyResult
from .validation import is_valid_email

logger = logging.getLogger(__name__)

VERIFY_ERROR_MESSAGES = {
    VerifyResult.INVALID_CODE: "Invalid verification code",
    VerifyResult.EXPIRED: "Verification code expired",
    VerifyResult.NOT_FOUND: "No verification code found",
    VerifyResult.LOCKED: "Too many attempts. Please request a new code",
}


def normalize_email(email: str) -> str:
    """Strip whitespace and lowercase."""
    return email.strip().lower()


@dataclass
class VerificationCodeService:
    """
    Issues and checks one-time numeric codes sent by email.

    Codes expire after ttl_seconds and lock after max_attempts wrong
    guesses. A successful check consumes the code.
    """

    repository: VerificationCodeRepository
    email_sender: EmailSender
    ttl_seconds: int = 600
    max_attempts: int = 5
    code_length: int = 6

    def send_code(self, email: str) -> None:
        """
        Generate, store and deliver a fresh code.

        Raises:
            VerificationDeliveryFailed: If the email is malformed or the
                code could not be stored or sent
        """
        normalized_email = normalize_email(email)
        if not is_valid_email(normalized_email):
            raise VerificationDeliveryFailed("Valid email address is required")

        code = self._generate_verification_code()
        self.repository.store_code(normalized_email, code, self.ttl_seconds)
        self.email_sender.send_verification_code(normalized_email, code)
        logger.info("Verification code issued for %s", normalized_email)

    def check_code(self, email: str, code: str) -> VerifyResult:
        """Malformed codes are rejected without touching storage."""
        code = code.strip()
        if len(code) != self.code_length or not code.isdigit():
            return VerifyResult.INVALID_CODE
        return self.repository.consume_code(normalize_email(email), code, self.max_attempts)

    def _generate_verification_code(self) -> str:
        """
        Generate a cryptographically secure numeric code.

        Returns string to preserve leading zeros.
        """
        return "".join(secrets.choice("0123456789") for _ in range(self.code_length))


@dataclass
class EmailVerificationGate:
    """Gates payment on proof that the registrant owns their email address."""

    service: VerificationService
    state: VerificationState = field(default_factory=VerificationState)

    def is_verified(self, email: str) -> bool:
        """True once the given email passed verification in this session."""
        verified = self.state.verified_email
        return verified is not None and verified == normalize_email(email)

    def require(self, email: str, action: PaymentMethod) -> None:
        """Remember the payment action to resume and send a code."""
        self.state.pending_payment_action = action
        self.send_verification_code(email)

    def send_verification_code(self, email: str) -> None:
        """
        Ask the collaborator for a code and open the gate.

        On failure the gate state is left unchanged and the error propagates.
        """
        self.state.is_sending_verification = True
        try:
            self.service.send_code(email)
        finally:
            self.state.is_sending_verification = False

        self.state.show_email_verification = True
        self.state.error = ""

    def verify_code(self, email: str, code: str) -> PaymentMethod | None:
        """
        Check a code.

        Returns:
            The pending payment action to resume, or None if none was pending

        Raises:
            VerificationFailed: Code rejected; the gate stays open for retry
        """
        self.state.verification_code = code
        self.state.is_checking_verification = True
        try:
            result = self.service.check_code(email, code)
        except RegistrationError as exc:
            self.state.error = str(exc)
            raise
        finally:
            self.state.is_checking_verification = False

        if result != VerifyResult.SUCCESS:
            message = VERIFY_ERROR_MESSAGES.get(result, "Invalid verification code")
            self.state.error = message
            raise VerificationFailed(message)

        action = self.state.pending_payment_action
        self.reset()
        self.state.verified_email = normalize_email(email)
        return action

    def reset(self) -> None:
        self.state.show_email_verification = False
        self.state.verification_code = ""
        self.state.is_checking_verification = False
        self.state.is_sending_verification = False
        self.state.pending_payment_action = None
        self.state.verified_email = None
        self.state.error = ""
