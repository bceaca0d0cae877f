"""
Interactive CLI for the Aura booking assistant.
Look up bookings by code (or by name, for admins) with role-based disclosure.
"""

import pandas as pd

from recordguard.audit import record_decision, record_transition, safe_record
from recordguard.authorizer import authorize, own_records
from recordguard.config import MAX_PREVIEW_ROWS
from recordguard.database import SqlRecordLookup, init_engine
from recordguard.llm import init_llm
from recordguard.models import Multiple, RecordList, Single
from recordguard.rbac import build_policy, guest_context, load_access_context
from recordguard.responder import fallback_reply, generate_reply
from recordguard.status_guard import update_record_status


def preview(result) -> str:
    """Tabular view of whatever the result discloses."""
    if isinstance(result, Single):
        rows = [result.record]
    elif isinstance(result, Multiple):
        rows = result.matches
    elif isinstance(result, RecordList):
        rows = result.records
    else:
        return "(nothing to show)"
    if not rows:
        return "(no rows returned)"
    return pd.DataFrame(rows).head(MAX_PREVIEW_ROWS).to_string(index=False)


def main():
    print("=== Aura Booking Assistant (role-based lookup) ===\n")

    engine = init_engine()
    lookup = SqlRecordLookup(engine)
    llm = init_llm()

    # ── Login ────────────────────────────────────────────────────────
    try:
        api_key = input("Enter access key (empty for guest, or 'quit'): ").strip()
    except (EOFError, KeyboardInterrupt):
        print("\nExiting.")
        return

    if api_key.lower() in {"quit", "exit"}:
        print("Goodbye.")
        return

    try:
        ctx = load_access_context(engine, api_key) if api_key else guest_context()
        policy = build_policy(ctx)
    except Exception as e:
        print("\n[ERROR] Login failed.")
        print("Details:", e)
        return

    print(f"\n[auth] Logged in as: {ctx.display_name} (role={ctx.role.value})")
    print(f"[auth] Policy: {policy.notes}")
    print("[help] Type ':mine' to list your bookings, ':status CODE STATUS' to update a status.")

    # ── REPL ─────────────────────────────────────────────────────────
    while True:
        try:
            q = input("\nAsk about a booking (or 'quit'): ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nExiting.")
            break

        if not q:
            continue
        if q.lower() in {"quit", "exit"}:
            print("Goodbye.")
            break

        if q.startswith(":status"):
            parts = q.split()
            if len(parts) != 3:
                print("Usage: :status CODE STATUS")
                continue
            try:
                transition = update_record_status(ctx, parts[1], parts[2], lookup)
            except (ValueError, LookupError) as e:
                print(f"\n[STATUS] {e}")
                continue
            except Exception as e:
                print("\n[DB ERROR] Could not update the booking.")
                print("Details:", e)
                continue
            safe_record(record_transition, engine, ctx, parts[1], transition)
            tag = "OK" if transition.allowed else "REJECTED"
            print(f"\n[STATUS {tag}] {transition.message}")
            continue

        if q == ":mine":
            result = own_records(ctx, lookup)
        else:
            print(f"\n[user] {q}")
            result = authorize(ctx, q, lookup)
        safe_record(record_decision, engine, ctx, result)

        print(f"\n[decision] {result.kind}")
        print(preview(result))

        try:
            reply = generate_reply(llm, ctx, q, result)
        except Exception as e:
            print("\n[WARN] Failed to generate AI reply; using plain reply.")
            print("Details:", e)
            reply = fallback_reply(ctx, result)
        print("\n[Assistant]")
        print(reply)


if __name__ == "__main__":
    main()
