"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- Registration states that pass every wizard step
- In-memory doubles for the verification and session ports
"""

from dataclasses import replace

import pytest

from src.domain.models import (
    REGISTRANT_ID,
    Address,
    Currency,
    GWPInputs,
    Member,
    MembershipType,
    OrganizationType,
    RegistrationState,
)
from src.domain.ports import VerifyResult

VALID_PASSWORD = "Secret#123"


class FakeVerificationService:
    """Accepts one fixed code for any email it was asked to send to."""

    def __init__(self, code: str = "123456") -> None:
        self.code = code
        self.sent_to: list[str] = []

    def send_code(self, email: str) -> None:
        self.sent_to.append(email.strip().lower())

    def check_code(self, email: str, code: str) -> VerifyResult:
        if email.strip().lower() not in self.sent_to:
            return VerifyResult.NOT_FOUND
        if code != self.code:
            return VerifyResult.INVALID_CODE
        return VerifyResult.SUCCESS


@pytest.fixture
def verification_service() -> FakeVerificationService:
    return FakeVerificationService()


@pytest.fixture
def individual_state() -> RegistrationState:
    """Individual registration, complete through step 4, sitting on the payment step."""
    return RegistrationState(
        step=5,
        data_notice_consent=True,
        code_of_conduct_consent=True,
        first_name="Ada",
        surname="Lovelace",
        email="ada@example.com",
        password=VALID_PASSWORD,
        confirm_password=VALID_PASSWORD,
        membership_type=MembershipType.INDIVIDUAL,
        address=Address(line1="1 Analytical Way", city="London", country="GB"),
        has_other_associations=False,
    )


@pytest.fixture
def corporate_state(individual_state: RegistrationState) -> RegistrationState:
    """Corporate MGA registration with 8M EUR premiums and the registrant as administrator."""
    registrant = Member(
        id=REGISTRANT_ID,
        first_name="Ada",
        last_name="Lovelace",
        name="Ada Lovelace",
        email="ada@example.com",
        job_title="CEO",
        is_primary_contact=True,
    )
    return replace(
        individual_state,
        membership_type=MembershipType.CORPORATE,
        organization_name="Acme Underwriting",
        organization_type=OrganizationType.MGA,
        members=(registrant,),
        gwp_inputs=GWPInputs(millions="8"),
        gwp_currency=Currency.EUR,
        gross_written_premiums="8000000",
    )


@pytest.fixture
def blank_member() -> Member:
    return Member(id="member_abc")
