"""
Account records - What gets sent to payment collaborators and persisted.

Corporate registrations produce one company record plus one member
record per roster entry. Individual registrations produce a single flat
account record. The company record is the stable anchor for the account;
members hang off it regardless of who the primary contact is.
"""

from dataclasses import dataclass

import bcrypt

from .fees import format_gwp, gwp_value, premium_band, to_eur
from .models import (
    REGISTRANT_ID,
    AccountStatus,
    Address,
    MembershipType,
    RegistrationState,
)
from .roster import get_primary_contact


@dataclass(frozen=True)
class Contact:
    name: str
    email: str
    phone: str
    role: str


@dataclass(frozen=True)
class AccountSummary:
    """Account data handed to the checkout and invoice collaborators."""

    account_id: str
    organization_name: str
    organization_type: str  # "individual" for individual memberships
    membership_type: MembershipType
    email: str
    base_fee: float
    fee: float
    currency: str
    test_payment: bool
    primary_contact: Contact
    address: Address
    has_other_associations: bool
    other_associations: tuple[str, ...]


@dataclass(frozen=True)
class Portfolio:
    gross_written_premiums_value: str
    gross_written_premiums_currency: str
    premium_band: str
    principal_lines: str
    additional_lines: str
    target_clients: str
    current_markets: str
    planned_markets: str


@dataclass(frozen=True)
class AccountRecord:
    """Flat account document for an individual membership."""

    id: str
    email: str
    display_name: str
    personal_name: str
    status: AccountStatus
    password_hash: str
    business_address: Address
    has_other_associations: bool
    other_associations: tuple[str, ...]
    logo_url: str | None = None
    membership_type: MembershipType = MembershipType.INDIVIDUAL
    is_company_account: bool = False


@dataclass(frozen=True)
class CompanyRecord:
    """Anchor document for a corporate membership."""

    id: str
    email: str
    display_name: str
    status: AccountStatus
    password_hash: str
    organization_name: str
    organization_type: str
    account_administrator: Contact
    account_administrator_member_id: str
    business_address: Address
    has_other_associations: bool
    other_associations: tuple[str, ...]
    portfolio: Portfolio | None = None
    logo_url: str | None = None
    membership_type: MembershipType = MembershipType.CORPORATE
    is_company_account: bool = True


@dataclass(frozen=True)
class MemberRecord:
    id: str
    email: str
    personal_name: str
    job_title: str
    phone: str
    is_primary_contact: bool
    is_registrant: bool
    account_confirmed: bool


def hash_password(password: str, cost: int = 10) -> str:
    """Hash password using bcrypt with the configured cost factor."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=cost)).decode()


def member_record_id(member_id: str, account_id: str) -> str:
    """The registrant entry is stored under the account id."""
    return account_id if member_id == REGISTRANT_ID else member_id


def primary_contact(state: RegistrationState) -> Contact:
    if state.is_corporate:
        member = get_primary_contact(state)
        if member is not None:
            return Contact(
                name=member.name,
                email=member.email,
                phone=member.phone,
                role=member.job_title,
            )
        return Contact(name=state.full_name, email=state.email, phone="", role="Account Administrator")
    return Contact(name=state.full_name, email=state.email, phone="", role="Individual Member")


def _associations(state: RegistrationState) -> tuple[str, ...]:
    if not state.has_other_associations:
        return ()
    return tuple(sorted(state.other_associations))


def build_account_summary(
    state: RegistrationState, account_id: str, base_fee: float, fee: float
) -> AccountSummary:
    return AccountSummary(
        account_id=account_id,
        organization_name=state.effective_organization_name,
        organization_type=(
            state.organization_type.value
            if state.is_corporate and state.organization_type is not None
            else "individual"
        ),
        membership_type=state.membership_type,
        email=state.email.strip(),
        base_fee=base_fee,
        fee=fee,
        currency="EUR",
        test_payment=state.is_admin_test,
        primary_contact=primary_contact(state),
        address=state.address,
        has_other_associations=bool(state.has_other_associations),
        other_associations=_associations(state),
    )


def build_individual_record(
    state: RegistrationState,
    account_id: str,
    status: AccountStatus,
    password_hash: str,
    logo_url: str | None = None,
) -> AccountRecord:
    return AccountRecord(
        id=account_id,
        email=state.email.strip().lower(),
        display_name=state.full_name,
        personal_name=state.full_name,
        status=status,
        password_hash=password_hash,
        business_address=state.address,
        has_other_associations=bool(state.has_other_associations),
        other_associations=_associations(state),
        logo_url=logo_url,
    )


def _portfolio(state: RegistrationState) -> Portfolio:
    value = gwp_value(state.gross_written_premiums)
    return Portfolio(
        gross_written_premiums_value=format_gwp(value),
        gross_written_premiums_currency=state.gwp_currency.value,
        premium_band=premium_band(to_eur(value, state.gwp_currency)),
        principal_lines=state.principal_lines.strip(),
        additional_lines=state.additional_lines.strip(),
        target_clients=state.target_clients.strip(),
        current_markets=state.current_markets.strip(),
        planned_markets=state.planned_markets.strip(),
    )


def build_company_records(
    state: RegistrationState,
    account_id: str,
    status: AccountStatus,
    password_hash: str,
    logo_url: str | None = None,
) -> tuple[CompanyRecord, list[MemberRecord]]:
    """Build the company anchor record and one member record per roster entry."""
    primary = get_primary_contact(state)
    administrator_id = member_record_id(primary.id, account_id) if primary else account_id

    company = CompanyRecord(
        id=account_id,
        email=state.email.strip().lower(),
        display_name=state.organization_name.strip(),
        status=status,
        password_hash=password_hash,
        organization_name=state.organization_name.strip(),
        organization_type=state.organization_type.value if state.organization_type else "",
        account_administrator=primary_contact(state),
        account_administrator_member_id=administrator_id,
        business_address=state.address,
        has_other_associations=bool(state.has_other_associations),
        other_associations=_associations(state),
        portfolio=_portfolio(state) if state.is_mga else None,
        logo_url=logo_url,
    )

    members = [
        MemberRecord(
            id=member_record_id(member.id, account_id),
            email=member.email.strip().lower(),
            personal_name=member.name,
            job_title=member.job_title.strip(),
            phone=member.phone.strip(),
            is_primary_contact=member.is_primary_contact,
            is_registrant=member.id == REGISTRANT_ID,
            account_confirmed=member.id == REGISTRANT_ID,
        )
        for member in state.members
    ]
    return company, members
