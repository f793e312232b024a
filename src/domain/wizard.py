"""
Form state store - Transition functions for the registration wizard.

Every user action maps to one function that takes the current
RegistrationState and returns the next one. Derived fields
(gross_written_premiums, member display names, the registrant roster
entry) are recomputed inside the transition that changes their inputs,
so a returned state is always internally consistent.

Forward movement only happens through validated transitions;
moving backward is always allowed.
"""

from collections.abc import Mapping
from dataclasses import fields, replace
from typing import Any

from .fees import format_gwp, total_gwp
from .models import Address, GWPInputs, LogoFile, RegistrationState
from .roster import sync_registrant
from .validation import validate_current_step, validate_logo_file, validate_through

FIRST_STEP = 0
PAYMENT_STEP = 5

GWP_TOUCHED_KEY = "gross_written_premiums"

# Only changed through dedicated transitions
_DERIVED_FIELDS = frozenset(
    {
        "step",
        "touched_fields",
        "attempted_next",
        "members",
        "address",
        "gwp_inputs",
        "gross_written_premiums",
        "logo_file",
    }
)
EDITABLE_FIELDS = frozenset(f.name for f in fields(RegistrationState)) - _DERIVED_FIELDS

# Fields mirrored into the registrant roster entry
_REGISTRANT_SOURCE_FIELDS = frozenset({"first_name", "surname", "email", "membership_type"})

GWP_BUCKETS = frozenset(f.name for f in fields(GWPInputs))
ADDRESS_FIELDS = frozenset(f.name for f in fields(Address))


def mark_field_touched(state: RegistrationState, field_name: str) -> RegistrationState:
    if field_name in state.touched_fields:
        return state
    return replace(state, touched_fields=state.touched_fields | {field_name})


def _normalize_associations(state: RegistrationState) -> RegistrationState:
    if state.has_other_associations is not True and state.other_associations:
        return replace(state, other_associations=frozenset())
    return state


def update_field(state: RegistrationState, field_name: str, value: Any) -> RegistrationState:
    """Set one editable field, mark it touched and refresh dependent state."""
    if field_name not in EDITABLE_FIELDS:
        raise ValueError(f"Field cannot be edited directly: {field_name}")

    if field_name == "other_associations":
        value = frozenset(value)

    state = replace(state, **{field_name: value})
    state = mark_field_touched(state, field_name)
    if field_name in _REGISTRANT_SOURCE_FIELDS:
        state = sync_registrant(state)
    return _normalize_associations(state)


def update_fields(state: RegistrationState, changes: Mapping[str, Any]) -> RegistrationState:
    # Answer to "other associations?" first so a selection sent alongside it sticks
    ordered = sorted(changes.items(), key=lambda item: item[0] != "has_other_associations")
    for field_name, value in ordered:
        state = update_field(state, field_name, value)
    return state


def update_address(state: RegistrationState, changes: Mapping[str, str]) -> RegistrationState:
    unknown = set(changes) - ADDRESS_FIELDS
    if unknown:
        raise ValueError(f"Unknown address fields: {', '.join(sorted(unknown))}")

    state = replace(state, address=replace(state.address, **changes))
    for field_name in changes:
        state = mark_field_touched(state, f"address.{field_name}")
    return state


def update_gwp_input(state: RegistrationState, bucket: str, value: str) -> RegistrationState:
    """Edit one premium bucket and recompute the canonical total."""
    if bucket not in GWP_BUCKETS:
        raise ValueError(f"Unknown premium bucket: {bucket}")

    inputs = replace(state.gwp_inputs, **{bucket: value})
    state = replace(
        state,
        gwp_inputs=inputs,
        gross_written_premiums=format_gwp(total_gwp(inputs)),
    )
    return mark_field_touched(state, GWP_TOUCHED_KEY)


def set_logo(
    state: RegistrationState, logo: LogoFile | None
) -> tuple[RegistrationState, str | None]:
    """Attach a logo; a rejected file clears the current selection."""
    if logo is None:
        return replace(state, logo_file=None), None

    error = validate_logo_file(logo)
    if error:
        return replace(state, logo_file=None), error
    return replace(state, logo_file=logo), None


def next_step(state: RegistrationState) -> tuple[RegistrationState, str | None]:
    """
    Try to advance one step.

    Returns the new state and None on success. On failure the step is
    unchanged, attempted_next is set so every outstanding error shows,
    and the first validation error is returned.
    """
    if state.step >= PAYMENT_STEP:
        return state, None

    error = validate_current_step(state)
    if error:
        return replace(state, attempted_next=True), error

    advanced = replace(state, step=state.step + 1, attempted_next=False)
    return sync_registrant(advanced), None


def previous_step(state: RegistrationState) -> RegistrationState:
    if state.step <= FIRST_STEP:
        return state
    return replace(state, step=state.step - 1, attempted_next=False)


def go_to_step(state: RegistrationState, step: int) -> tuple[RegistrationState, str | None]:
    """Jump backward freely; jump forward only if every skipped step validates."""
    if not FIRST_STEP <= step <= PAYMENT_STEP:
        raise ValueError(f"Step out of range: {step}")

    if step <= state.step:
        return replace(state, step=step, attempted_next=False), None

    error = validate_through(state, step - 1)
    if error:
        return replace(state, attempted_next=True), error
    return sync_registrant(replace(state, step=step, attempted_next=False)), None


def reset_form() -> RegistrationState:
    return RegistrationState()
