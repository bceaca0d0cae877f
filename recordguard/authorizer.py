"""
Role-gated booking search: classifier output + role policy + record lookup.

Every call is independent. Classification and policy outcomes come back as
typed results; only a failing record store produces LookupFailure.
"""

import asyncio
import sys
from typing import Dict, Iterable, List, Optional

from recordguard.classifier import classify
from recordguard.config import LOOKUP_TIMEOUT_SECONDS
from recordguard.database import AsyncRecordLookup, RecordLookup
from recordguard.models import (
    AccessContext,
    AuthResult,
    CodeLookup,
    Forbidden,
    LookupFailure,
    Multiple,
    NameLookup,
    NoQuery,
    NotFound,
    Policy,
    Record,
    RecordList,
    Rejected,
    SearchIntent,
    Single,
)
from recordguard.rbac import build_policy


# ── Disclosure ───────────────────────────────────────────────────────

def disclose(record: Record, ctx: AccessContext, policy: Policy) -> Optional[Dict]:
    """
    Filter a record down to the fields the caller may see.

    Returns None when the record lies outside a staff member's assignments;
    callers report that exactly like an absent record.
    """
    if policy.record_scope == "provider":
        if record.provider_id != ctx.party_id:
            return None
        allowed = policy.disclosed_fields
    elif policy.record_scope == "owner":
        allowed = policy.disclosed_fields if record.owner_id == ctx.party_id else policy.foreign_fields
    else:
        allowed = policy.disclosed_fields
    return {k: v for k, v in record.as_fields().items() if k in allowed}


def disambiguation_entry(record: Record, policy: Policy) -> Dict[str, str]:
    """Code plus a short label, enough to ask the caller which booking they meant."""
    if "owner_name" in policy.disclosed_fields and record.owner_name:
        label = f"{record.owner_name} ({record.code})"
    else:
        label = f"Booking {record.code}"
    return {"code": record.code, "label": label}


# ── Name matching ────────────────────────────────────────────────────

def name_fragments(name: str) -> List[str]:
    """The whole query followed by each of its words, lowercased, no repeats."""
    whole = " ".join(name.lower().split())
    fragments = [whole] if whole else []
    for word in whole.split():
        if word not in fragments:
            fragments.append(word)
    return fragments


def name_matches(record: Record, name: str) -> bool:
    haystacks = [record.owner_name.lower(), record.provider_name.lower()]
    return any(frag in hay for frag in name_fragments(name) for hay in haystacks if hay)


def _merge_matches(name: str, batches: Iterable[List[Record]]) -> List[Record]:
    seen: Dict[str, Record] = {}
    for batch in batches:
        for record in batch:
            seen.setdefault(record.code, record)
    return [r for r in seen.values() if name_matches(r, name)]


def search_by_name(lookup: RecordLookup, name: str) -> List[Record]:
    return _merge_matches(name, (lookup.search_by_fragment(f) for f in name_fragments(name)))


async def search_by_name_async(lookup: AsyncRecordLookup, name: str) -> List[Record]:
    batches = [await lookup.search_by_fragment(f) for f in name_fragments(name)]
    return _merge_matches(name, batches)


# ── Decision steps ───────────────────────────────────────────────────

def _gate(policy: Policy, intent: SearchIntent, trail: List[str]) -> Optional[AuthResult]:
    """Terminal result for rejected or forbidden intents, else None."""
    if isinstance(intent, Rejected):
        trail.append("classified:rejected")
        return NoQuery(intent.reason, tuple(trail))

    trail.append(f"classified:{intent.kind.value}")
    if intent.kind not in policy.permitted_intents:
        trail.append("policy:denied")
        return Forbidden(intent.kind, tuple(trail))

    trail.append("policy:permitted")
    return None


def _resolve_code(ctx, policy, intent: CodeLookup, record: Optional[Record], trail) -> AuthResult:
    if record is None:
        trail.append("lookup:0")
        return NotFound(intent, tuple(trail))

    trail.append("lookup:1")
    disclosed = disclose(record, ctx, policy)
    if disclosed is None:
        # Someone else's assignment: same outcome as an unknown code.
        trail.append("scope:provider-mismatch")
        return NotFound(intent, tuple(trail))
    return Single(disclosed, intent, tuple(trail))


def _resolve_name(ctx, policy, intent: NameLookup, records: List[Record], trail) -> AuthResult:
    visible = [r for r in records if disclose(r, ctx, policy) is not None]
    trail.append(f"lookup:{len(visible)}")
    if not visible:
        return NotFound(intent, tuple(trail))
    if len(visible) == 1:
        return Single(disclose(visible[0], ctx, policy), intent, tuple(trail))
    return Multiple([disambiguation_entry(r, policy) for r in visible], intent, tuple(trail))


def _failure(intent, exc: BaseException, trail: List[str]) -> LookupFailure:
    print(f"[WARN] Record lookup failed: {exc!r}", file=sys.stderr)
    trail.append("lookup:error")
    reason = "lookup timed out" if isinstance(exc, TimeoutError) else "record store unavailable"
    return LookupFailure(intent, reason, tuple(trail))


# ── Entry points ─────────────────────────────────────────────────────

def authorize(ctx: AccessContext, text: str, lookup: RecordLookup) -> AuthResult:
    """Classify *text*, apply the caller's policy and run at most one kind of lookup."""
    policy = build_policy(ctx)
    intent = classify(text)
    trail: List[str] = []

    gated = _gate(policy, intent, trail)
    if gated is not None:
        return gated

    try:
        if isinstance(intent, CodeLookup):
            record = lookup.fetch_by_code(intent.code)
        else:
            records = search_by_name(lookup, intent.name)
    except Exception as e:
        return _failure(intent, e, trail)

    if isinstance(intent, CodeLookup):
        return _resolve_code(ctx, policy, intent, record, trail)
    return _resolve_name(ctx, policy, intent, records, trail)


async def authorize_async(
    ctx: AccessContext,
    text: str,
    lookup: AsyncRecordLookup,
    timeout: float = LOOKUP_TIMEOUT_SECONDS,
) -> AuthResult:
    """Same decision as authorize() over an async store; cancellation propagates."""
    policy = build_policy(ctx)
    intent = classify(text)
    trail: List[str] = []

    gated = _gate(policy, intent, trail)
    if gated is not None:
        return gated

    try:
        if isinstance(intent, CodeLookup):
            record = await asyncio.wait_for(lookup.fetch_by_code(intent.code), timeout)
        else:
            records = await asyncio.wait_for(search_by_name_async(lookup, intent.name), timeout)
    except asyncio.TimeoutError as e:
        return _failure(intent, TimeoutError(str(e)), trail)
    except Exception as e:
        return _failure(intent, e, trail)

    if isinstance(intent, CodeLookup):
        return _resolve_code(ctx, policy, intent, record, trail)
    return _resolve_name(ctx, policy, intent, records, trail)


def own_records(ctx: AccessContext, lookup) -> AuthResult:
    """List the caller's own bookings (clients) or assignments (staff)."""
    policy = build_policy(ctx)
    trail: List[str] = ["listing"]

    if policy.record_scope == "owner":
        fetch = lookup.list_for_owner
    elif policy.record_scope == "provider":
        fetch = lookup.list_for_provider
    else:
        trail.append("policy:denied")
        return Forbidden(None, tuple(trail))

    trail.append("policy:permitted")
    try:
        records = fetch(ctx.party_id)
    except Exception as e:
        return _failure(None, e, trail)

    disclosed = [d for d in (disclose(r, ctx, policy) for r in records) if d is not None]
    trail.append(f"lookup:{len(disclosed)}")
    return RecordList(disclosed, tuple(trail))
