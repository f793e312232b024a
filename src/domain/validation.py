"""
Step validators - Pure predicates deciding whether the wizard may advance.

Each validator returns None on success or a single human-readable error
string describing the first violated rule. Validators never raise.

Steps:
    0  Data notice consent
    1  Code of conduct consent
    2  Account info (identity, email, password rules)
    3  Membership info (organization, roster)
    4  Address and portfolio
    5  Payment (terminal, nothing to validate)
"""

import re
import string

from .models import (
    REGISTRANT_ID,
    LogoFile,
    Member,
    MembershipType,
    OrganizationType,
    PasswordRequirements,
    RegistrationState,
)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PASSWORD_SPECIAL_CHARACTERS = "!@#$%^&*()_+-=[]{};':\"\\|,.<>/?"
MIN_PASSWORD_LENGTH = 8

OTHER_ASSOCIATION_OPTIONS = frozenset({"ASASE", "AIMGA", "BAUA", "MGAA", "NVGA"})

MAX_LOGO_BYTES = 5 * 1024 * 1024
ALLOWED_LOGO_TYPES = frozenset({"image/png", "image/jpeg", "image/jpg", "image/svg+xml"})


def validate_password(password: str) -> PasswordRequirements:
    return PasswordRequirements(
        length=len(password) >= MIN_PASSWORD_LENGTH,
        capital=any(c.isascii() and c.isupper() for c in password),
        lowercase=any(c.isascii() and c.islower() for c in password),
        number=any(c in string.digits for c in password),
        special=any(c in PASSWORD_SPECIAL_CHARACTERS for c in password),
    )


def is_password_valid(password: str) -> bool:
    return validate_password(password).all_met()


def is_valid_email(email: str) -> bool:
    return EMAIL_PATTERN.match(email) is not None


def validate_member(member: Member, is_registrant: bool = False) -> list[str]:
    """All missing-field errors for one roster entry, in display order."""
    errors: list[str] = []

    if not member.first_name.strip():
        errors.append("First name is required")
    if not member.last_name.strip():
        errors.append("Last name is required")
    if not member.email.strip():
        errors.append("Email is required")
    elif not is_valid_email(member.email):
        errors.append("Valid email is required")
    if not is_registrant and not member.phone.strip():
        errors.append("Phone number is required")
    if not member.job_title.strip():
        errors.append("Job title is required")

    return errors


def validate_logo_file(logo: LogoFile) -> str | None:
    if logo.size > MAX_LOGO_BYTES:
        return "File size must be less than 5MB"
    if logo.content_type not in ALLOWED_LOGO_TYPES:
        return "Only PNG, JPG, and SVG files are allowed"
    return None


def validate_data_notice_step(state: RegistrationState) -> str | None:
    if not state.data_notice_consent:
        return "Please consent to our data notice to continue"
    return None


def validate_code_of_conduct_step(state: RegistrationState) -> str | None:
    if not state.code_of_conduct_consent:
        return "Please consent to the Code of Conduct to continue"
    return None


def validate_account_info_step(state: RegistrationState) -> str | None:
    required = (state.first_name, state.surname, state.email, state.password, state.confirm_password)
    if any(not value.strip() for value in required):
        return "All fields are required"

    if not is_valid_email(state.email):
        return "Please enter a valid email address"

    if not is_password_valid(state.password):
        return "Password does not meet requirements"

    if state.password != state.confirm_password:
        return "Passwords do not match"

    return None


def validate_membership_info_step(state: RegistrationState) -> str | None:
    if not state.effective_organization_name.strip():
        if state.membership_type == MembershipType.INDIVIDUAL:
            return "Name is required"
        return "Organization name is required"

    if state.membership_type == MembershipType.CORPORATE:
        if state.organization_type is None:
            return "Organization type is required"

        if not state.members:
            return "At least one team member is required"

        if not any(member.is_primary_contact for member in state.members):
            return "You must designate one person as the account administrator"

        for member in state.members:
            errors = validate_member(member, is_registrant=member.id == REGISTRANT_ID)
            if errors:
                return f"{member.first_name or 'Member'}: {errors[0]}"

        emails = [member.email.strip().lower() for member in state.members]
        if len(set(emails)) != len(emails):
            return "Each team member must have a unique email address"

    return None


def _is_number(value: str) -> bool:
    try:
        float(value)
    except ValueError:
        return False
    return True


def validate_address_portfolio_step(state: RegistrationState) -> str | None:
    address = state.address
    if not address.line1.strip() or not address.city.strip() or not address.country:
        return "Address information is required"

    if (
        state.membership_type == MembershipType.CORPORATE
        and state.organization_type == OrganizationType.MGA
        and (not state.gross_written_premiums or not _is_number(state.gross_written_premiums))
    ):
        return "Gross written premiums are required for MGA memberships"

    if state.has_other_associations is None:
        return "Please specify if your organization is a member of other European MGA associations"

    if state.has_other_associations and not state.other_associations:
        return "Please select at least one European MGA association you are a member of"

    return None


STEP_VALIDATORS = {
    0: validate_data_notice_step,
    1: validate_code_of_conduct_step,
    2: validate_account_info_step,
    3: validate_membership_info_step,
    4: validate_address_portfolio_step,
}


def validate_step(state: RegistrationState, step: int) -> str | None:
    validator = STEP_VALIDATORS.get(step)
    if validator is None:
        return None
    return validator(state)


def validate_current_step(state: RegistrationState) -> str | None:
    return validate_step(state, state.step)


def validate_through(state: RegistrationState, last_step: int) -> str | None:
    """First failure across steps 0..last_step inclusive."""
    for step in range(last_step + 1):
        error = validate_step(state, step)
        if error:
            return error
    return None


def field_errors(state: RegistrationState) -> dict[str, str]:
    """Per-field errors for the current step, used for inline feedback."""
    errors: dict[str, str] = {}

    if state.step == 2:
        for name in ("first_name", "surname", "email", "password", "confirm_password"):
            if not getattr(state, name).strip():
                errors[name] = "This field is required"
        if "email" not in errors and not is_valid_email(state.email):
            errors["email"] = "Please enter a valid email address"
        if "password" not in errors and not is_password_valid(state.password):
            errors["password"] = "Password does not meet requirements"
        if "confirm_password" not in errors and state.password != state.confirm_password:
            errors["confirm_password"] = "Passwords do not match"

    elif state.step == 3:
        if not state.effective_organization_name.strip():
            errors["organization_name"] = "This field is required"
        if state.membership_type == MembershipType.CORPORATE and state.organization_type is None:
            errors["organization_type"] = "Organization type is required"

    elif state.step == 4:
        for name in ("line1", "city", "country"):
            if not getattr(state.address, name).strip():
                errors[f"address.{name}"] = "This field is required"
        if state.is_mga and not _is_number(state.gross_written_premiums or "x"):
            errors["gross_written_premiums"] = "Gross written premiums are required"
        if state.has_other_associations is None:
            errors["has_other_associations"] = "Please answer this question"

    return errors


def visible_field_errors(state: RegistrationState) -> dict[str, str]:
    """Errors for touched fields, or all of them once the user tried to advance."""
    errors = field_errors(state)
    if state.attempted_next:
        return errors
    return {name: message for name, message in errors.items() if name in state.touched_fields}
