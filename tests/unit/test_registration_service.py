"""
Unit tests for RegistrationService.

Tests the session facade with an in-memory session store and mocked
ports to verify:
- Session lifecycle and lookup
- Step errors stored on the session
- Roster guards (registrant removal, unknown members)
- Logo rejection
- Payment and verification hand-off through the stored session
"""

from dataclasses import replace
from unittest.mock import Mock

import pytest

from src.adapters.sessions.memory import InMemorySessionStore
from src.domain.exceptions import (
    LogoRejected,
    MemberNotFound,
    RegistrantRemovalError,
    SessionNotFound,
    VerificationDeliveryFailed,
)
from src.domain.models import (
    REGISTRANT_ID,
    LogoFile,
    PaymentMethod,
    PaymentStatus,
    RegistrationState,
)
from src.domain.ports import CheckoutSession, InvoiceResult
from src.domain.registration import RegistrationService


@pytest.fixture
def sessions() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def service(sessions, verification_service) -> RegistrationService:
    accounts = Mock()
    accounts.create_account.return_value = True
    accounts.create_company_with_members.return_value = True
    checkout = Mock()
    checkout.create_checkout.return_value = CheckoutSession("cs_1", "https://pay.example/cs_1")
    invoices = Mock()
    invoices.request_invoice.return_value = InvoiceResult(success=True, email_sent=True)
    return RegistrationService(
        sessions=sessions,
        accounts=accounts,
        verification=verification_service,
        checkout=checkout,
        invoices=invoices,
        logos=Mock(),
        bcrypt_cost=4,
    )


def _seed(service: RegistrationService, state: RegistrationState) -> str:
    session = service.start()
    session.registration = state
    service.sessions.save(session)
    return session.session_id


class TestSessionLifecycle:
    def test_start_creates_stored_session(self, service, sessions) -> None:
        session = service.start()
        assert sessions.get(session.session_id) is session
        assert session.registration.step == 0
        assert session.account_id != session.session_id

    def test_unknown_session_raises(self, service) -> None:
        with pytest.raises(SessionNotFound):
            service.get("missing")

    def test_discard_removes_session(self, service, sessions) -> None:
        session = service.start()
        service.discard(session.session_id)
        assert sessions.get(session.session_id) is None

    def test_reset_clears_payment_and_verification(self, service, individual_state) -> None:
        session_id = _seed(service, individual_state)
        session = service.get(session_id)
        session.payment.payment_error = "boom"
        session.verification.verified_email = "ada@example.com"

        session = service.reset(session_id)

        assert session.registration == RegistrationState()
        assert session.payment.payment_error == ""
        assert session.verification.verified_email is None


class TestFieldsAndNavigation:
    def test_update_fields_with_address(self, service) -> None:
        session_id = service.start().session_id
        session = service.update_fields(
            session_id, {"first_name": "Ada"}, address={"city": "London"}
        )
        assert session.registration.first_name == "Ada"
        assert session.registration.address.city == "London"

    def test_failed_next_step_stores_error(self, service) -> None:
        session_id = service.start().session_id
        session = service.next_step(session_id)
        assert session.error == "Please consent to our data notice to continue"
        assert session.registration.step == 0

    def test_successful_next_step_clears_error(self, service) -> None:
        session_id = service.start().session_id
        service.next_step(session_id)
        service.update_fields(session_id, {"data_notice_consent": True})
        session = service.next_step(session_id)
        assert session.error == ""
        assert session.registration.step == 1

    def test_gwp_bucket_updates_total(self, service) -> None:
        session_id = service.start().session_id
        session = service.update_gwp_input(session_id, "billions", "1")
        assert session.registration.gross_written_premiums == "1000000000"


class TestRoster:
    def test_registrant_cannot_be_removed(self, service, corporate_state) -> None:
        session_id = _seed(service, corporate_state)
        with pytest.raises(RegistrantRemovalError):
            service.remove_member(session_id, REGISTRANT_ID)

    def test_unknown_member_rejected(self, service, corporate_state) -> None:
        session_id = _seed(service, corporate_state)
        with pytest.raises(MemberNotFound):
            service.update_member(session_id, "member_nope", {"phone": "1"})

    def test_add_edit_and_promote_member(self, service, corporate_state) -> None:
        session_id = _seed(service, corporate_state)
        session = service.add_member(session_id)
        member_id = session.registration.members[-1].id

        service.update_member(session_id, member_id, {"first_name": "Grace", "last_name": "Hopper"})
        session = service.set_primary_contact(session_id, member_id)

        primary = [m for m in session.registration.members if m.is_primary_contact]
        assert [m.name for m in primary] == ["Grace Hopper"]

    def test_remove_member(self, service, corporate_state) -> None:
        session_id = _seed(service, corporate_state)
        member_id = service.add_member(session_id).registration.members[-1].id
        session = service.remove_member(session_id, member_id)
        assert [m.id for m in session.registration.members] == [REGISTRANT_ID]


class TestLogo:
    def test_rejected_logo_raises_and_clears(self, service) -> None:
        session_id = service.start().session_id
        service.attach_logo(session_id, LogoFile("a.png", "image/png", b"png"))

        with pytest.raises(LogoRejected, match="Only PNG, JPG, and SVG files are allowed"):
            service.attach_logo(session_id, LogoFile("a.gif", "image/gif", b"gif"))

        assert service.get(session_id).registration.logo_file is None


class TestPayment:
    def test_fee_quote(self, service, corporate_state) -> None:
        session_id = _seed(service, replace(corporate_state, has_other_associations=True))
        quote = service.fee_quote(session_id)
        assert quote.base_fee == 900
        assert quote.fee == 720

    def test_payment_waits_for_code_then_completes(self, service, individual_state) -> None:
        session_id = _seed(service, individual_state)

        outcome = service.request_payment(session_id, PaymentMethod.INVOICE)
        assert outcome.status == PaymentStatus.VERIFICATION_REQUIRED
        assert service.get(session_id).verification.show_email_verification is True

        outcome = service.submit_verification_code(session_id, "123456")
        assert outcome.status == PaymentStatus.COMPLETE
        assert service.get(session_id).payment.registration_complete is True

    def test_verified_email_skips_gate_on_retry(self, service, individual_state) -> None:
        session_id = _seed(service, individual_state)
        service.request_payment(session_id, PaymentMethod.STRIPE)
        service.submit_verification_code(session_id, "123456")

        outcome = service.request_payment(session_id, PaymentMethod.STRIPE)

        assert outcome.status == PaymentStatus.REDIRECT
        assert service.verification.sent_to == ["ada@example.com"]

    def test_resend_keeps_pending_action(self, service, individual_state) -> None:
        session_id = _seed(service, individual_state)
        service.request_payment(session_id, PaymentMethod.INVOICE)

        session = service.resend_verification_code(session_id)

        assert session.verification.pending_payment_action == PaymentMethod.INVOICE
        assert len(service.verification.sent_to) == 2

    def test_resend_failure_recorded_and_raised(self, sessions, individual_state) -> None:
        verification = Mock()
        verification.send_code.side_effect = VerificationDeliveryFailed("Mail server down")
        service = RegistrationService(
            sessions=sessions,
            accounts=Mock(),
            verification=verification,
            checkout=Mock(),
            invoices=Mock(),
            logos=Mock(),
        )
        session_id = _seed(service, individual_state)

        with pytest.raises(VerificationDeliveryFailed):
            service.resend_verification_code(session_id)
        assert service.get(session_id).error == "Mail server down"
