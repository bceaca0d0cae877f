"""
Role-Based Access Control – loading caller context and the role policy table.
"""

from typing import Dict, FrozenSet

from sqlalchemy import text

from recordguard.config import ROLE_ALIASES
from recordguard.models import (
    RECORD_FIELDS,
    AccessContext,
    IntentKind,
    Policy,
    Role,
    StatusAccess,
)

GUEST_FIELDS = frozenset({"code", "status"})

STAFF_FIELDS = frozenset({
    "code", "status", "owner_initials", "service_name",
    "scheduled_date", "start_time", "duration_minutes",
})

# Full detail minus the derived initials, which only make sense as a redaction.
FULL_FIELDS = RECORD_FIELDS - {"owner_initials"}


POLICIES: Dict[Role, Policy] = {
    Role.GUEST: Policy(
        role=Role.GUEST,
        permitted_intents=frozenset({IntentKind.CODE}),
        disclosed_fields=GUEST_FIELDS,
        foreign_fields=GUEST_FIELDS,
        record_scope=None,
        status_access=StatusAccess.NONE,
        notes="Guests need a booking code and only ever see the code and its status.",
    ),
    Role.OWNER: Policy(
        role=Role.OWNER,
        permitted_intents=frozenset({IntentKind.CODE}),
        disclosed_fields=FULL_FIELDS,
        foreign_fields=GUEST_FIELDS,
        record_scope="owner",
        status_access=StatusAccess.NONE,
        notes="Clients see full detail on their own bookings; other codes show status only.",
    ),
    Role.PRIVILEGED_STAFF: Policy(
        role=Role.PRIVILEGED_STAFF,
        permitted_intents=frozenset({IntentKind.CODE}),
        disclosed_fields=STAFF_FIELDS,
        foreign_fields=frozenset(),
        record_scope="provider",
        status_access=StatusAccess.FORWARD_ONLY,
        notes="Staff see client initials, status and schedule for their own assignments only.",
    ),
    Role.ADMIN: Policy(
        role=Role.ADMIN,
        permitted_intents=frozenset({IntentKind.CODE, IntentKind.NAME}),
        disclosed_fields=FULL_FIELDS,
        foreign_fields=FULL_FIELDS,
        record_scope=None,
        status_access=StatusAccess.BYPASS,
        notes="Admin can search by code or name and see every field.",
    ),
}


def policy_for(role: Role) -> Policy:
    return POLICIES[role]


def permitted_intents(role: Role) -> FrozenSet[IntentKind]:
    return POLICIES[role].permitted_intents


def disclosure_level(role: Role) -> FrozenSet[str]:
    return POLICIES[role].disclosed_fields


def parse_role(raw) -> Role:
    """Map a stored role string onto a Role."""
    key = str(raw).strip().lower()
    if key not in ROLE_ALIASES:
        raise ValueError(f"Unsupported role '{raw}' in dbo.portal_users.")
    return Role(ROLE_ALIASES[key])


def guest_context() -> AccessContext:
    return AccessContext(user_id=None, display_name="Guest", role=Role.GUEST, party_id=None)


def load_access_context(engine, api_key: str) -> AccessContext:
    """Look up a user by API key and return their AccessContext."""
    sql = text("""
        SELECT TOP 1 id, display_name, role, party_id
        FROM dbo.portal_users
        WHERE api_key = :k AND is_active = 1
    """)
    with engine.connect() as conn:
        row = conn.execute(sql, {"k": api_key}).mappings().first()

    if not row:
        raise ValueError("Invalid key or user inactive (no match in dbo.portal_users).")

    return AccessContext(
        user_id=int(row["id"]),
        display_name=str(row["display_name"]),
        role=parse_role(row["role"]),
        party_id=str(row["party_id"]) if row["party_id"] is not None else None,
    )


def build_policy(ctx: AccessContext) -> Policy:
    """Return the Policy for an AccessContext, checking its scope is usable."""
    if ctx.role == Role.OWNER and ctx.party_id is None:
        raise ValueError("Client user must have party_id set in dbo.portal_users.")
    if ctx.role == Role.PRIVILEGED_STAFF and ctx.party_id is None:
        raise ValueError("Staff user must have party_id set in dbo.portal_users.")
    return policy_for(ctx.role)
