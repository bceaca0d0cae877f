"""
Booking status progression rules.

STATUS_SEQUENCE is the only source of ordering. Staff may move a booking
forward or leave it where it is; admins bypass the ordering; clients and
guests cannot change status at all.
"""

from typing import List, Tuple, Union

from recordguard.models import AccessContext, Role, Status, StatusAccess, TransitionResult
from recordguard.rbac import build_policy, policy_for

STATUS_SEQUENCE: Tuple[Status, ...] = (
    Status.CHECKED_IN,
    Status.PRE_PROCEDURE,
    Status.IN_PROGRESS,
    Status.CLOSING,
    Status.RECOVERY,
    Status.COMPLETE,
    Status.DISMISSAL,
)


def parse_status(value: Union[str, Status]) -> Status:
    if isinstance(value, Status):
        return value
    try:
        return Status(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(s.value for s in STATUS_SEQUENCE)
        raise ValueError(f"Unknown status '{value}'. Expected one of: {allowed}.") from None


def position(status: Status) -> int:
    return STATUS_SEQUENCE.index(status)


def is_forward(current: Status, proposed: Status) -> bool:
    """True when *proposed* is the same step or a later one."""
    return position(proposed) >= position(current)


def next_allowed(current: Status) -> List[Status]:
    """Statuses a forward-only role may pick next, current one included."""
    return list(STATUS_SEQUENCE[position(current):])


def previous_statuses(current: Status) -> List[Status]:
    """Earlier statuses, for display only. Never grants a backward move."""
    return list(STATUS_SEQUENCE[:position(current)])


def can_transition(role: Role, current: Status, proposed: Status) -> bool:
    access = policy_for(role).status_access
    if access == StatusAccess.BYPASS:
        return True
    if access == StatusAccess.FORWARD_ONLY:
        return is_forward(current, proposed)
    return False


def check_transition(role: Role, current, proposed) -> TransitionResult:
    current = parse_status(current)
    proposed = parse_status(proposed)

    if can_transition(role, current, proposed):
        if proposed == current:
            message = f"Status stays at '{current.value}'."
        else:
            message = f"Status moved from '{current.value}' to '{proposed.value}'."
        return TransitionResult(True, current, proposed, message)

    if policy_for(role).status_access == StatusAccess.NONE:
        message = (
            f"Role '{role.value}' may not change booking status "
            f"(attempted '{proposed.value}', current '{current.value}')."
        )
    else:
        message = (
            f"Illegal transition: cannot move back to '{proposed.value}' "
            f"from current status '{current.value}'."
        )
    return TransitionResult(False, current, proposed, message)


def update_record_status(ctx: AccessContext, code: str, proposed, store) -> TransitionResult:
    """
    Guard and apply a status change on a stored booking.

    Raises LookupError when the code is unknown or, for staff, belongs to
    another provider's assignment; the two cases are reported identically.
    The store is only written when the transition is allowed.
    """
    policy = build_policy(ctx)
    proposed = parse_status(proposed)
    record = store.fetch_by_code(code)
    if record is None or (policy.record_scope == "provider" and record.provider_id != ctx.party_id):
        raise LookupError(f"No booking found for code '{code.upper()}'.")

    result = check_transition(ctx.role, record.status, proposed)
    if result.allowed and result.proposed != result.current:
        store.update_status(record.code, proposed)
    return result
