"""
Reply generation from an authorization result.

Only the fields already present in the (filtered) result are ever shown to
the model or written into a fallback reply.
"""

from typing import Any, Dict, List

import pandas as pd
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from recordguard.models import (
    AccessContext,
    AuthResult,
    Forbidden,
    LookupFailure,
    Multiple,
    NoQuery,
    NotFound,
    RecordList,
    Role,
    Single,
)

SYSTEM_PROMPT = (
    "You are the assistant for Aura Bienestar, a platform where clients book massages "
    "and therapeutic wellness services and therapists manage their bookings.\n"
    "Be warm, concise and practical. Reply in the language the user writes in.\n\n"
    "PRIVACY RULES:\n"
    "- Only mention booking details that appear in the BOOKING CONTEXT below.\n"
    "- Never guess or invent names, contact data, availability or prices.\n"
    "- Booking codes are 6-10 letters/digits (e.g. AUR1234) and work like a password.\n"
    "- Never confirm or deny that a booking exists for a name unless the context says so.\n"
    "- No medical diagnoses or prescriptions; suggest a health professional instead.\n"
    "Keep the answer short and end with one clear next step."
)

ROLE_LABELS = {
    Role.ADMIN: "Admin (may mention client and therapist names)",
    Role.PRIVILEGED_STAFF: "Therapist (client first name/initials, own bookings only)",
    Role.OWNER: "Client (own booking details)",
    Role.GUEST: "Guest (code only, refer to the booking as 'Booking CODE')",
}

_FORBIDDEN_NOTE = (
    "SEARCH RESTRICTION:\n"
    "The user tried a kind of booking search their role does not allow.\n"
    "Explain that for privacy, searching by name is limited to administrators, and that "
    "they can look up a booking with its code (6-10 characters, like AUR1234).\n"
    "Do not say whether any booking matches what they typed."
)

_LISTING_REFUSED_NOTE = (
    "SEARCH RESTRICTION:\n"
    "The user asked for their own bookings, but their role has no bookings of its own.\n"
    "Explain that only clients and therapists can list their bookings, and that a single "
    "booking can still be looked up with its code (6-10 characters, like AUR1234)."
)


def records_table(rows: List[Dict[str, Any]]) -> str:
    """Markdown table of already-disclosed fields."""
    if not rows:
        return "(no rows)"
    return pd.DataFrame(rows).to_markdown(index=False)


def build_decision_context(ctx: AccessContext, result: AuthResult) -> str:
    """Describe the decision for the model, without adding any record data."""
    role_line = f"Caller role: {ROLE_LABELS[ctx.role]}"

    if isinstance(result, Single):
        return (
            "BOOKING DATA FOUND:\n"
            f"{records_table([result.record])}\n\n"
            f"{role_line}\n"
            "Give a helpful, reassuring update about this booking's current status."
        )
    if isinstance(result, Multiple):
        labels = ", ".join(m["label"] for m in result.matches)
        return (
            f"MULTIPLE BOOKINGS FOUND ({len(result.matches)}):\n{labels}\n\n"
            f"{role_line}\n"
            "Ask the user which booking they mean, or for its booking code."
        )
    if isinstance(result, RecordList):
        return (
            f"CALLER'S OWN BOOKINGS ({len(result.records)}):\n"
            f"{records_table(result.records)}\n\n{role_line}"
        )
    if isinstance(result, Forbidden):
        note = _LISTING_REFUSED_NOTE if result.attempted is None else _FORBIDDEN_NOTE
        return f"{note}\n\n{role_line}"
    if isinstance(result, NotFound):
        return (
            "NO BOOKING FOUND:\n"
            f"The search for \"{result.intent.query}\" returned nothing.\n"
            "Suggest checking the spelling (codes are 6-10 letters/digits) or contacting support.\n\n"
            f"{role_line}"
        )
    if isinstance(result, LookupFailure):
        return (
            "TEMPORARY LOOKUP FAILURE:\n"
            "The booking system could not be reached. Do not say the booking is missing; "
            "ask the user to try again in a moment.\n\n"
            f"{role_line}"
        )
    if isinstance(result, NoQuery):
        return (
            "NO BOOKING QUERY DETECTED:\n"
            "If the user wants booking information, ask for their booking code.\n\n"
            f"{role_line}"
        )
    raise ValueError(f"Unsupported result kind: {result.kind}")


def generate_reply(llm: ChatOpenAI, ctx: AccessContext, message: str, result: AuthResult) -> str:
    """Ask the LLM for a user-facing reply grounded on the decision."""
    system = SystemMessage(content=SYSTEM_PROMPT)
    human = HumanMessage(
        content=(
            f"BOOKING CONTEXT:\n{build_decision_context(ctx, result)}\n\n"
            f"User message:\n{message}\n"
        )
    )
    resp = llm.invoke([system, human])
    return resp.content.strip()


def fallback_reply(ctx: AccessContext, result: AuthResult) -> str:
    """Plain reply used when the LLM call fails."""
    text = "Sorry, I'm having trouble answering right now. "

    if isinstance(result, Single):
        record = result.record
        if ctx.role == Role.ADMIN and record.get("owner_name"):
            text += f"I did find the booking for {record['owner_name']}:\n\n"
        else:
            text += f"I did find Booking {record['code']}:\n\n"
        labels = [
            ("status", "Status"), ("service_name", "Service"), ("scheduled_date", "Date"),
            ("start_time", "Time"), ("owner_initials", "Client"), ("provider_name", "Therapist"),
            ("code", "Code"),
        ]
        for key, label in labels:
            if record.get(key):
                text += f"• {label}: {record[key]}\n"
    elif isinstance(result, Multiple):
        text += "Several bookings match: " + ", ".join(m["label"] for m in result.matches) + ".\n"
    elif isinstance(result, Forbidden) and result.attempted is None:
        text += (
            "\n\nListing your own bookings is only available to clients and therapists. "
            "You can still look up a booking with its code (6-10 characters, like AUR1234)."
        )
    elif isinstance(result, Forbidden):
        text += (
            "\n\nFor privacy and security, searching bookings by name is limited to administrators. "
            "You can look up a booking with its code (6-10 characters, like AUR1234)."
        )
    elif isinstance(result, NotFound):
        text += f"\n\nNo booking was found for \"{result.intent.query}\"."

    text += "\n\nPlease try again in a moment, or ask me anything else about our services."
    return text
