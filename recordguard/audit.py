"""
Decision trail persistence (dbo.lookup_audit).
"""

import sys
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import text

from recordguard.models import AccessContext, AuthResult, TransitionResult

_INSERT = text("""
    INSERT INTO dbo.lookup_audit (user_id, role, intent, outcome, trail, created_at)
    VALUES (:user_id, :role, :intent, :outcome, :trail, :created_at)
""")


def _intent_of(result: AuthResult) -> Optional[str]:
    intent = getattr(result, "intent", None)
    if intent is not None and intent.kind is not None:
        return intent.kind.value
    attempted = getattr(result, "attempted", None)
    return attempted.value if attempted is not None else None


def _write(engine, row: Dict[str, Any]) -> None:
    with engine.begin() as conn:
        conn.execute(_INSERT, row)
    print(f"[audit] role={row['role']} intent={row['intent']} outcome={row['outcome']} trail={row['trail']}")


def record_decision(engine, ctx: AccessContext, result: AuthResult) -> None:
    """Persist one authorization decision. The raw query text is never stored."""
    _write(engine, {
        "user_id": ctx.user_id,
        "role": ctx.role.value,
        "intent": _intent_of(result),
        "outcome": result.kind,
        "trail": ",".join(result.trail),
        "created_at": datetime.utcnow(),
    })


def record_transition(engine, ctx: AccessContext, code: str, result: TransitionResult) -> None:
    _write(engine, {
        "user_id": ctx.user_id,
        "role": ctx.role.value,
        "intent": "status",
        "outcome": "transition_allowed" if result.allowed else "illegal_transition",
        "trail": f"{code.upper()}:{result.current.value}->{result.proposed.value}",
        "created_at": datetime.utcnow(),
    })


def safe_record(fn, *args) -> bool:
    """Run an audit writer, reporting (not raising) a failed write."""
    try:
        fn(*args)
        return True
    except Exception as e:
        print(f"[WARN] Failed to write audit entry: {e}", file=sys.stderr)
        return False
