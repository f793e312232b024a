"""
Registration domain service - One entry point per wizard action.

Each call loads a WizardSession from the session store, applies one
transition from wizard.py / roster.py (or hands off to the verification
gate and payment orchestrator), stores the session again and returns it.

Wizard flow
===========

    0 data notice -> 1 code of conduct -> 2 account info
      -> 3 membership info -> 4 address/portfolio -> 5 payment

Payment (step 5):

    request_payment(method)
        email not verified -> code sent, method remembered
                              -> submit_verification_code(code) resumes it
        email verified     -> hosted checkout (redirect) or invoice (complete)

Step-level errors are stored on the session so the next view shows them;
the session itself never raises for validation failures.
"""

import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from . import roster, wizard
from .exceptions import (
    LogoRejected,
    MemberNotFound,
    RegistrantRemovalError,
    RegistrationError,
    SessionNotFound,
)
from .fees import fee_quote
from .models import (
    REGISTRANT_ID,
    FeeQuote,
    LogoFile,
    PaymentMethod,
    PaymentOutcome,
    PaymentState,
    RegistrationState,
    VerificationState,
    WizardSession,
)
from .payment import PaymentOrchestrator
from .ports import (
    AccountRepository,
    CheckoutGateway,
    InvoiceGateway,
    LogoStorage,
    SessionStore,
    VerificationService,
)
from .verification import EmailVerificationGate

logger = logging.getLogger(__name__)


@dataclass
class RegistrationService:
    """
    Domain service for the membership registration wizard.

    Holds only collaborators; all per-user state lives in WizardSession.
    """

    sessions: SessionStore
    accounts: AccountRepository
    verification: VerificationService
    checkout: CheckoutGateway
    invoices: InvoiceGateway
    logos: LogoStorage
    bcrypt_cost: int = 10

    def start(self) -> WizardSession:
        """Open a new wizard session on the data notice step."""
        session = WizardSession(session_id=uuid.uuid4().hex, account_id=str(uuid.uuid4()))
        self.sessions.save(session)
        logger.info("Registration session %s started", session.session_id)
        return session

    def get(self, session_id: str) -> WizardSession:
        session = self.sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def discard(self, session_id: str) -> None:
        """Drop a session; unknown ids are ignored."""
        self.sessions.delete(session_id)

    # Field edits

    def update_fields(
        self,
        session_id: str,
        changes: Mapping[str, Any],
        address: Mapping[str, str] | None = None,
    ) -> WizardSession:
        session = self.get(session_id)
        state = wizard.update_fields(session.registration, changes)
        if address:
            state = wizard.update_address(state, address)
        return self._commit(session, state)

    def update_gwp_input(self, session_id: str, bucket: str, value: str) -> WizardSession:
        session = self.get(session_id)
        return self._commit(session, wizard.update_gwp_input(session.registration, bucket, value))

    def mark_touched(self, session_id: str, field_name: str) -> WizardSession:
        session = self.get(session_id)
        return self._commit(session, wizard.mark_field_touched(session.registration, field_name))

    def attach_logo(self, session_id: str, logo: LogoFile | None) -> WizardSession:
        """
        Attach or clear the organization logo.

        Raises:
            LogoRejected: File too large or not an allowed type; the
                previous selection is cleared
        """
        session = self.get(session_id)
        state, error = wizard.set_logo(session.registration, logo)
        self._commit(session, state, error or "")
        if error:
            raise LogoRejected(error)
        return session

    # Navigation

    def next_step(self, session_id: str) -> WizardSession:
        session = self.get(session_id)
        state, error = wizard.next_step(session.registration)
        return self._commit(session, state, error or "")

    def previous_step(self, session_id: str) -> WizardSession:
        session = self.get(session_id)
        return self._commit(session, wizard.previous_step(session.registration))

    def go_to_step(self, session_id: str, step: int) -> WizardSession:
        session = self.get(session_id)
        state, error = wizard.go_to_step(session.registration, step)
        return self._commit(session, state, error or "")

    def reset(self, session_id: str) -> WizardSession:
        session = self.get(session_id)
        session.verification = VerificationState()
        session.payment = PaymentState()
        return self._commit(session, wizard.reset_form())

    # Roster

    def add_member(self, session_id: str) -> WizardSession:
        session = self.get(session_id)
        return self._commit(session, roster.add_member(session.registration))

    def remove_member(self, session_id: str, member_id: str) -> WizardSession:
        session = self.get(session_id)
        if member_id == REGISTRANT_ID:
            raise RegistrantRemovalError("The registrant cannot be removed from the team")
        self._require_member(session, member_id)
        return self._commit(session, roster.remove_member(session.registration, member_id))

    def update_member(
        self, session_id: str, member_id: str, changes: Mapping[str, str]
    ) -> WizardSession:
        session = self.get(session_id)
        self._require_member(session, member_id)
        state = session.registration
        for field_name, value in changes.items():
            state = roster.update_member(state, member_id, field_name, value)
        return self._commit(session, state)

    def set_primary_contact(self, session_id: str, member_id: str) -> WizardSession:
        session = self.get(session_id)
        self._require_member(session, member_id)
        return self._commit(session, roster.set_primary_contact(session.registration, member_id))

    # Fee and payment

    def fee_quote(self, session_id: str) -> FeeQuote:
        return fee_quote(self.get(session_id).registration)

    def request_payment(self, session_id: str, method: PaymentMethod) -> PaymentOutcome:
        session = self.get(session_id)
        outcome = self._orchestrator(session).request_payment(
            session.registration, method, session.account_id
        )
        self.sessions.save(session)
        return outcome

    def resend_verification_code(self, session_id: str) -> WizardSession:
        """
        Send a new code without changing the pending payment action.

        Raises:
            VerificationDeliveryFailed: The code could not be issued
        """
        session = self.get(session_id)
        gate = EmailVerificationGate(self.verification, session.verification)
        try:
            gate.send_verification_code(session.registration.email)
        except RegistrationError as exc:
            session.error = str(exc) or "Failed to send verification code"
            self.sessions.save(session)
            raise
        session.error = ""
        self.sessions.save(session)
        return session

    def submit_verification_code(self, session_id: str, code: str) -> PaymentOutcome:
        session = self.get(session_id)
        outcome = self._orchestrator(session).complete_verification(
            session.registration, code, session.account_id
        )
        self.sessions.save(session)
        return outcome

    def _orchestrator(self, session: WizardSession) -> PaymentOrchestrator:
        return PaymentOrchestrator(
            accounts=self.accounts,
            checkout=self.checkout,
            invoices=self.invoices,
            logos=self.logos,
            gate=EmailVerificationGate(self.verification, session.verification),
            state=session.payment,
            bcrypt_cost=self.bcrypt_cost,
        )

    def _require_member(self, session: WizardSession, member_id: str) -> None:
        if roster.find_member(session.registration, member_id) is None:
            raise MemberNotFound(member_id)

    def _commit(
        self, session: WizardSession, state: RegistrationState, error: str = ""
    ) -> WizardSession:
        session.registration = state
        session.error = error
        self.sessions.save(session)
        return session
