"""
Member roster manager - Organization contacts on a corporate membership.

Invariants kept by every operation here:
- at most MAX_MEMBERS entries
- exactly one entry is the primary contact whenever the roster is non-empty
  (once one has been designated)
- member.name is always "first last", trimmed

Each function takes a RegistrationState and returns a new one.
"""

import uuid
from dataclasses import replace

from .models import REGISTRANT_ID, Member, MembershipType, RegistrationState

MAX_MEMBERS = 3

EDITABLE_MEMBER_FIELDS = frozenset({"first_name", "last_name", "email", "phone", "job_title"})


def _display_name(first_name: str, last_name: str) -> str:
    return f"{first_name} {last_name}".strip()


def _new_member_id() -> str:
    return f"member_{uuid.uuid4().hex[:12]}"


def add_member(state: RegistrationState) -> RegistrationState:
    """Append a blank member; no-op when the roster is full."""
    if len(state.members) >= MAX_MEMBERS:
        return state
    return replace(state, members=(*state.members, Member(id=_new_member_id())))


def remove_member(state: RegistrationState, member_id: str) -> RegistrationState:
    """
    Remove a member by id.

    If the removed member was the primary contact, the new first entry is
    promoted. Callers must not offer the registrant entry for removal.
    """
    removed = find_member(state, member_id)
    if removed is None:
        return state

    remaining = [member for member in state.members if member.id != member_id]
    if removed.is_primary_contact and remaining:
        remaining[0] = replace(remaining[0], is_primary_contact=True)
    return replace(state, members=tuple(remaining))


def update_member(
    state: RegistrationState, member_id: str, field_name: str, value: str
) -> RegistrationState:
    if field_name not in EDITABLE_MEMBER_FIELDS:
        raise ValueError(f"Unknown member field: {field_name}")

    members = []
    for member in state.members:
        if member.id == member_id:
            member = replace(member, **{field_name: value})
            if field_name in ("first_name", "last_name"):
                member = replace(member, name=_display_name(member.first_name, member.last_name))
        members.append(member)
    return replace(state, members=tuple(members))


def set_primary_contact(state: RegistrationState, member_id: str) -> RegistrationState:
    if find_member(state, member_id) is None:
        return state
    return replace(
        state,
        members=tuple(
            replace(member, is_primary_contact=member.id == member_id) for member in state.members
        ),
    )


def find_member(state: RegistrationState, member_id: str) -> Member | None:
    return next((member for member in state.members if member.id == member_id), None)


def get_primary_contact(state: RegistrationState) -> Member | None:
    return next((member for member in state.members if member.is_primary_contact), None)


def get_registrant(state: RegistrationState) -> Member | None:
    return find_member(state, REGISTRANT_ID)


def sync_registrant(state: RegistrationState) -> RegistrationState:
    """
    Keep the registrant roster entry in step with the account fields.

    Seeds the roster with the registrant as primary contact the first time a
    corporate registration has a full name and email, and afterwards mirrors
    name and email edits into the existing entry.
    """
    if state.membership_type != MembershipType.CORPORATE:
        return state

    registrant = get_registrant(state)
    if registrant is None:
        if state.members or not state.full_name or not state.email:
            return state
        seeded = Member(
            id=REGISTRANT_ID,
            first_name=state.first_name,
            last_name=state.surname,
            name=state.full_name,
            email=state.email,
            is_primary_contact=True,
        )
        return replace(state, members=(seeded,))

    mirrored = replace(
        registrant,
        first_name=state.first_name,
        last_name=state.surname,
        name=_display_name(state.first_name, state.surname),
        email=state.email,
    )
    if mirrored == registrant:
        return state
    return replace(
        state,
        members=tuple(mirrored if member.id == REGISTRANT_ID else member for member in state.members),
    )
