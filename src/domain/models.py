"""
Wizard state models - Plain dataclasses for one registration session.

RegistrationState is immutable: every user action goes through a
transition function in wizard.py or roster.py that returns a new state.
VerificationState and PaymentState are small mutable records owned by
the verification gate and the payment orchestrator.
"""

from dataclasses import dataclass, field
from enum import Enum

REGISTRANT_ID = "registrant"


class MembershipType(str, Enum):
    """Membership tier selected on the membership step."""

    INDIVIDUAL = "individual"
    CORPORATE = "corporate"


class OrganizationType(str, Enum):
    """Organization category for corporate memberships."""

    MGA = "MGA"
    CARRIER = "carrier"
    PROVIDER = "provider"


class Currency(str, Enum):
    """Currencies accepted for the gross written premium input."""

    EUR = "EUR"
    GBP = "GBP"
    USD = "USD"


class PaymentMethod(str, Enum):
    """Payment path chosen on the final step."""

    STRIPE = "stripe"
    INVOICE = "invoice"


class AccountStatus(str, Enum):
    """Status written on a freshly created account."""

    PENDING_PAYMENT = "pending_payment"
    PENDING_INVOICE = "pending_invoice"


class PaymentStatus(str, Enum):
    """Result of a payment request."""

    VERIFICATION_REQUIRED = "verification_required"
    VERIFIED = "verified"  # email verified, nothing pending to resume
    REDIRECT = "redirect"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass(frozen=True)
class Member:
    """One organization contact on a corporate roster."""

    id: str
    first_name: str = ""
    last_name: str = ""
    name: str = ""  # derived: "first last", trimmed
    email: str = ""
    phone: str = ""
    job_title: str = ""
    is_primary_contact: bool = False


@dataclass(frozen=True)
class Address:
    line1: str = ""
    line2: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""


@dataclass(frozen=True)
class GWPInputs:
    """Gross written premium split into magnitude buckets (decimal strings)."""

    billions: str = ""
    millions: str = ""
    thousands: str = ""
    hundreds: str = ""


@dataclass(frozen=True)
class LogoFile:
    filename: str
    content_type: str
    data: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class RegistrationState:
    """All wizard field values plus step tracking."""

    # Step tracking
    step: int = 0
    touched_fields: frozenset[str] = frozenset()
    attempted_next: bool = False

    # Account info
    first_name: str = ""
    surname: str = ""
    email: str = ""
    password: str = field(default="", repr=False)
    confirm_password: str = field(default="", repr=False)

    # Membership info
    membership_type: MembershipType = MembershipType.CORPORATE
    organization_name: str = ""
    organization_type: OrganizationType | None = None
    members: tuple[Member, ...] = ()

    # Address
    address: Address = field(default_factory=Address)

    # Portfolio (MGA only)
    gwp_inputs: GWPInputs = field(default_factory=GWPInputs)
    gwp_currency: Currency = Currency.EUR
    gross_written_premiums: str = ""
    principal_lines: str = ""
    additional_lines: str = ""
    target_clients: str = ""
    current_markets: str = ""
    planned_markets: str = ""

    # Other associations (None = unanswered)
    has_other_associations: bool | None = None
    other_associations: frozenset[str] = frozenset()

    logo_file: LogoFile | None = None

    # Consent
    data_notice_consent: bool = False
    code_of_conduct_consent: bool = False

    # Charges a nominal amount for end-to-end payment testing
    is_admin_test: bool = False

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.surname}".strip()

    @property
    def effective_organization_name(self) -> str:
        """Full name for individuals, organization name for corporates."""
        if self.membership_type == MembershipType.INDIVIDUAL:
            return self.full_name
        return self.organization_name

    @property
    def is_corporate(self) -> bool:
        return self.membership_type == MembershipType.CORPORATE

    @property
    def is_mga(self) -> bool:
        return self.is_corporate and self.organization_type == OrganizationType.MGA


@dataclass
class VerificationState:
    """Email verification gate state."""

    show_email_verification: bool = False
    verification_code: str = ""
    is_checking_verification: bool = False
    is_sending_verification: bool = False
    pending_payment_action: PaymentMethod | None = None
    verified_email: str | None = None
    error: str = ""


@dataclass
class PaymentState:
    payment_method: PaymentMethod = PaymentMethod.STRIPE
    processing_payment: bool = False
    payment_error: str = ""
    registration_complete: bool = False
    checkout_url: str | None = None
    account_status: AccountStatus | None = None  # set once the account is written
    stored_logo: LogoFile | None = None
    logo_url: str | None = None


@dataclass(frozen=True)
class PasswordRequirements:
    """Which of the five password rules a candidate satisfies."""

    length: bool
    capital: bool
    lowercase: bool
    number: bool
    special: bool

    def all_met(self) -> bool:
        return all((self.length, self.capital, self.lowercase, self.number, self.special))


@dataclass(frozen=True)
class FeeQuote:
    """Annual membership fee as shown on the payment step."""

    base_fee: float
    fee: float
    discount: float
    currency: str = "EUR"
    premium_band: str | None = None


@dataclass(frozen=True)
class PaymentOutcome:
    status: PaymentStatus
    redirect_url: str | None = None
    error: str | None = None


@dataclass
class WizardSession:
    """Everything one browser session owns while registering."""

    session_id: str
    account_id: str
    registration: RegistrationState = field(default_factory=RegistrationState)
    verification: VerificationState = field(default_factory=VerificationState)
    payment: PaymentState = field(default_factory=PaymentState)
    error: str = ""  # step-level banner
