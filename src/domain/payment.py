"""
Payment orchestrator - Hosted checkout or invoice-on-account.

The two paths write the account at different points:

- Hosted checkout: the account is created first with status
  pending_payment, then a checkout session is requested. If checkout
  fails the account stays pending_payment for an administrator to
  reconcile; a retry rewrites it with the data current at that attempt.
- Invoice: the invoice is requested first; the account is only created
  (pending_invoice) once the invoice email is confirmed sent, so a failed
  invoice never leaves an orphaned account.

Both paths compute the fee at submission time. Every failure ends up in
PaymentState.payment_error and a FAILED outcome; nothing is raised past
this boundary.
"""

import logging
from dataclasses import dataclass, field

from .exceptions import (
    EmailAlreadyClaimed,
    InvoiceFailed,
    RegistrationError,
)
from .fees import calculate_membership_fee, get_discounted_fee
from .models import (
    AccountStatus,
    PaymentMethod,
    PaymentOutcome,
    PaymentState,
    PaymentStatus,
    RegistrationState,
)
from .ports import AccountRepository, CheckoutGateway, InvoiceGateway, LogoStorage
from .records import (
    AccountSummary,
    build_account_summary,
    build_company_records,
    build_individual_record,
    hash_password,
)
from .validation import validate_through
from .verification import EmailVerificationGate
from .wizard import PAYMENT_STEP

logger = logging.getLogger(__name__)


@dataclass
class PaymentOrchestrator:
    """Runs the selected payment path once the email gate is passed."""

    accounts: AccountRepository
    checkout: CheckoutGateway
    invoices: InvoiceGateway
    logos: LogoStorage
    gate: EmailVerificationGate
    state: PaymentState = field(default_factory=PaymentState)
    bcrypt_cost: int = 10

    def set_payment_method(self, method: PaymentMethod) -> None:
        self.state.payment_method = method

    def request_payment(
        self, registration: RegistrationState, method: PaymentMethod, account_id: str
    ) -> PaymentOutcome:
        """
        Start the chosen payment path.

        If the email is not verified yet, a code is sent and the method is
        remembered so complete_verification() can resume it.
        """
        self.set_payment_method(method)
        if self.state.registration_complete:
            return PaymentOutcome(PaymentStatus.COMPLETE)

        error = self._readiness_error(registration)
        if error:
            return self._fail(error)

        if not self.gate.is_verified(registration.email):
            try:
                self.gate.require(registration.email, method)
            except RegistrationError as exc:
                return self._fail(str(exc) or "Failed to send verification code")
            return PaymentOutcome(PaymentStatus.VERIFICATION_REQUIRED)

        return self._run(registration, method, account_id)

    def complete_verification(
        self, registration: RegistrationState, code: str, account_id: str
    ) -> PaymentOutcome:
        """
        Pass the gate and resume the payment action requested before it.

        The form may have been edited while the code was pending, so the
        registration is checked again before anything is written.
        """
        try:
            action = self.gate.verify_code(registration.email, code)
        except RegistrationError as exc:
            return PaymentOutcome(PaymentStatus.FAILED, error=str(exc))

        if action is None:
            return PaymentOutcome(PaymentStatus.VERIFIED)

        error = self._readiness_error(registration)
        if error:
            return self._fail(error)
        return self._run(registration, action, account_id)

    def start_checkout(self, registration: RegistrationState, account_id: str) -> PaymentOutcome:
        self._begin()
        try:
            summary = self._summary(registration, account_id)
            self._ensure_account(registration, account_id, AccountStatus.PENDING_PAYMENT)
            session = self.checkout.create_checkout(summary)
        except RegistrationError as exc:
            return self._fail(str(exc) or "Failed to start payment process")

        logger.info("Checkout session %s created for account %s", session.session_id, account_id)
        self.state.processing_payment = False
        self.state.checkout_url = session.url
        return PaymentOutcome(PaymentStatus.REDIRECT, redirect_url=session.url)

    def request_invoice(self, registration: RegistrationState, account_id: str) -> PaymentOutcome:
        self._begin()
        try:
            summary = self._summary(registration, account_id)
            result = self.invoices.request_invoice(summary)
            if not result.success or not result.email_sent:
                raise InvoiceFailed(result.error or "Failed to send invoice email")
            self._ensure_account(registration, account_id, AccountStatus.PENDING_INVOICE)
        except RegistrationError as exc:
            return self._fail(str(exc) or "Failed to process invoice request")

        logger.info("Invoice %s sent for account %s", result.invoice_id, account_id)
        self.state.processing_payment = False
        self.state.registration_complete = True
        return PaymentOutcome(PaymentStatus.COMPLETE)

    def _run(
        self, registration: RegistrationState, method: PaymentMethod, account_id: str
    ) -> PaymentOutcome:
        if method == PaymentMethod.STRIPE:
            return self.start_checkout(registration, account_id)
        return self.request_invoice(registration, account_id)

    def _readiness_error(self, registration: RegistrationState) -> str | None:
        if registration.step != PAYMENT_STEP:
            return "Please complete all registration steps before payment"
        return validate_through(registration, PAYMENT_STEP - 1)

    def _summary(self, registration: RegistrationState, account_id: str) -> AccountSummary:
        return build_account_summary(
            registration,
            account_id,
            base_fee=calculate_membership_fee(registration),
            fee=get_discounted_fee(registration),
        )

    def _ensure_account(
        self, registration: RegistrationState, account_id: str, status: AccountStatus
    ) -> None:
        """
        Write the account with the current registration data.

        The first attempt creates it. Later attempts rewrite the same
        account so that edits made between attempts reach the stored record.
        """
        first_write = self.state.account_status is None
        logo_url = self._logo_url(registration)
        password_hash = hash_password(registration.password, self.bcrypt_cost)

        if registration.is_corporate:
            company, members = build_company_records(
                registration, account_id, status, password_hash, logo_url
            )
            if first_write:
                written = self.accounts.create_company_with_members(company, members)
            else:
                written = self.accounts.update_company_with_members(company, members)
        else:
            record = build_individual_record(
                registration, account_id, status, password_hash, logo_url
            )
            if first_write:
                written = self.accounts.create_account(record)
            else:
                written = self.accounts.update_account(record)

        if not written:
            raise EmailAlreadyClaimed("An account already exists for this email address")
        logger.info(
            "%s %s account %s with status %s",
            "Created" if first_write else "Rewrote",
            registration.membership_type.value,
            account_id,
            status.value,
        )
        self.state.account_status = status

    def _logo_url(self, registration: RegistrationState) -> str | None:
        """Upload the logo unless this exact file was uploaded by an earlier attempt."""
        logo = registration.logo_file
        if logo is None:
            return None
        if logo != self.state.stored_logo:
            self.state.logo_url = self.logos.store_logo(
                registration.effective_organization_name, logo
            )
            self.state.stored_logo = logo
        return self.state.logo_url

    def _begin(self) -> None:
        self.state.processing_payment = True
        self.state.payment_error = ""

    def _fail(self, message: str) -> PaymentOutcome:
        self.state.processing_payment = False
        self.state.payment_error = message
        return PaymentOutcome(PaymentStatus.FAILED, error=message)

