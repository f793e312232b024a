"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
Response models are built from domain objects and never carry password
fields.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from src.domain.fees import MAX_BUCKET_LENGTH
from src.domain.models import (
    REGISTRANT_ID,
    Currency,
    FeeQuote,
    MembershipType,
    OrganizationType,
    PaymentMethod,
    PaymentOutcome,
    PaymentStatus,
    WizardSession,
)
from src.domain.validation import validate_password, visible_field_errors

AssociationOption = Literal["ASASE", "AIMGA", "BAUA", "MGAA", "NVGA"]
GWPBucket = Literal["billions", "millions", "thousands", "hundreds"]


class AddressUpdate(BaseModel):
    """Partial business address update."""

    model_config = ConfigDict(extra="forbid")

    line1: str | None = None
    line2: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None


class FieldsUpdateRequest(BaseModel):
    """
    Partial update of wizard fields.

    Only fields present in the request are applied; each one is marked
    touched so its inline error becomes visible.
    """

    model_config = ConfigDict(extra="forbid")

    first_name: str | None = None
    surname: str | None = None
    email: str | None = None
    password: str | None = None
    confirm_password: str | None = None
    membership_type: MembershipType | None = None
    organization_name: str | None = None
    organization_type: OrganizationType | None = None
    address: AddressUpdate | None = None
    gwp_currency: Currency | None = None
    principal_lines: str | None = None
    additional_lines: str | None = None
    target_clients: str | None = None
    current_markets: str | None = None
    planned_markets: str | None = None
    has_other_associations: bool | None = None
    other_associations: list[AssociationOption] | None = None
    data_notice_consent: bool | None = None
    code_of_conduct_consent: bool | None = None
    is_admin_test: bool | None = None

    def field_changes(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude_none=True, exclude={"address"})

    def address_changes(self) -> dict | None:
        if self.address is None:
            return None
        return self.address.model_dump(exclude_unset=True, exclude_none=True)


class GWPInputRequest(BaseModel):
    value: str = Field(
        "",
        max_length=MAX_BUCKET_LENGTH,
        description="Amount in this magnitude bucket, e.g. '2.5'",
    )


class MemberUpdateRequest(BaseModel):
    """Partial update of one roster entry."""

    model_config = ConfigDict(extra="forbid")

    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    job_title: str | None = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude_none=True)


class PaymentRequest(BaseModel):
    payment_method: PaymentMethod


class VerificationRequest(BaseModel):
    code: str = Field(
        ...,
        min_length=1,
        max_length=12,
        description="Numeric code sent to the registrant's email",
    )


class MemberView(BaseModel):
    id: str
    first_name: str
    last_name: str
    name: str
    email: str
    phone: str
    job_title: str
    is_primary_contact: bool
    is_registrant: bool


class AddressView(BaseModel):
    line1: str
    line2: str
    city: str
    state: str
    postal_code: str
    country: str


class GWPInputsView(BaseModel):
    billions: str
    millions: str
    thousands: str
    hundreds: str


class LogoView(BaseModel):
    filename: str
    content_type: str
    size: int


class PasswordRequirementsView(BaseModel):
    length: bool
    capital: bool
    lowercase: bool
    number: bool
    special: bool


class VerificationView(BaseModel):
    show_email_verification: bool
    is_checking_verification: bool
    is_sending_verification: bool
    pending_payment_action: PaymentMethod | None
    email_verified: bool
    error: str


class PaymentView(BaseModel):
    payment_method: PaymentMethod
    processing_payment: bool
    payment_error: str
    registration_complete: bool
    checkout_url: str | None


class RegistrationView(BaseModel):
    """Current wizard state as shown to the browser."""

    session_id: str
    step: int
    attempted_next: bool
    touched_fields: list[str]
    error: str
    field_errors: dict[str, str]
    first_name: str
    surname: str
    email: str
    password_requirements: PasswordRequirementsView
    membership_type: MembershipType
    organization_name: str
    organization_type: OrganizationType | None
    members: list[MemberView]
    address: AddressView
    gwp_inputs: GWPInputsView
    gwp_currency: Currency
    gross_written_premiums: str
    principal_lines: str
    additional_lines: str
    target_clients: str
    current_markets: str
    planned_markets: str
    has_other_associations: bool | None
    other_associations: list[str]
    logo: LogoView | None
    data_notice_consent: bool
    code_of_conduct_consent: bool
    is_admin_test: bool
    verification: VerificationView
    payment: PaymentView

    @classmethod
    def from_session(cls, session: WizardSession) -> "RegistrationView":
        state = session.registration
        verification = session.verification
        payment = session.payment
        requirements = validate_password(state.password)
        logo = state.logo_file
        return cls(
            session_id=session.session_id,
            step=state.step,
            attempted_next=state.attempted_next,
            touched_fields=sorted(state.touched_fields),
            error=session.error,
            field_errors=visible_field_errors(state),
            first_name=state.first_name,
            surname=state.surname,
            email=state.email,
            password_requirements=PasswordRequirementsView(
                length=requirements.length,
                capital=requirements.capital,
                lowercase=requirements.lowercase,
                number=requirements.number,
                special=requirements.special,
            ),
            membership_type=state.membership_type,
            organization_name=state.organization_name,
            organization_type=state.organization_type,
            members=[
                MemberView(
                    id=member.id,
                    first_name=member.first_name,
                    last_name=member.last_name,
                    name=member.name,
                    email=member.email,
                    phone=member.phone,
                    job_title=member.job_title,
                    is_primary_contact=member.is_primary_contact,
                    is_registrant=member.id == REGISTRANT_ID,
                )
                for member in state.members
            ],
            address=AddressView(**vars(state.address)),
            gwp_inputs=GWPInputsView(**vars(state.gwp_inputs)),
            gwp_currency=state.gwp_currency,
            gross_written_premiums=state.gross_written_premiums,
            principal_lines=state.principal_lines,
            additional_lines=state.additional_lines,
            target_clients=state.target_clients,
            current_markets=state.current_markets,
            planned_markets=state.planned_markets,
            has_other_associations=state.has_other_associations,
            other_associations=sorted(state.other_associations),
            logo=(
                LogoView(filename=logo.filename, content_type=logo.content_type, size=logo.size)
                if logo is not None
                else None
            ),
            data_notice_consent=state.data_notice_consent,
            code_of_conduct_consent=state.code_of_conduct_consent,
            is_admin_test=state.is_admin_test,
            verification=VerificationView(
                show_email_verification=verification.show_email_verification,
                is_checking_verification=verification.is_checking_verification,
                is_sending_verification=verification.is_sending_verification,
                pending_payment_action=verification.pending_payment_action,
                email_verified=verification.verified_email is not None,
                error=verification.error,
            ),
            payment=PaymentView(
                payment_method=payment.payment_method,
                processing_payment=payment.processing_payment,
                payment_error=payment.payment_error,
                registration_complete=payment.registration_complete,
                checkout_url=payment.checkout_url,
            ),
        )


class FeeQuoteResponse(BaseModel):
    """Annual fee in EUR."""

    base_fee: float
    fee: float
    discount: float
    currency: str
    premium_band: str | None

    @classmethod
    def from_quote(cls, quote: FeeQuote) -> "FeeQuoteResponse":
        return cls(
            base_fee=quote.base_fee,
            fee=quote.fee,
            discount=quote.discount,
            currency=quote.currency,
            premium_band=quote.premium_band,
        )


class PaymentResponse(BaseModel):
    status: PaymentStatus
    redirect_url: str | None = None
    error: str | None = None

    @classmethod
    def from_outcome(cls, outcome: PaymentOutcome) -> "PaymentResponse":
        return cls(status=outcome.status, redirect_url=outcome.redirect_url, error=outcome.error)


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
