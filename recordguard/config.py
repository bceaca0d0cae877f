"""
Centralised configuration constants and environment helpers.
"""

import os
import string
import sys

from dotenv import load_dotenv

load_dotenv()

# ── LLM ──────────────────────────────────────────────────────────────
MODEL_NAME = "gpt-4.1-mini"
REPLY_TEMPERATURE = 0.7

# ── Booking codes ────────────────────────────────────────────────────
CODE_MIN_LENGTH = 6
CODE_MAX_LENGTH = 10
GENERATED_CODE_LENGTH = 6
CODE_ALPHABET = string.ascii_uppercase + string.digits

# Words trimmed from either end of an extracted name candidate.
NAME_STOP_WORDS = {
    "booking", "appointment", "reservation", "status", "check", "look",
    "find", "search", "info", "about", "for", "of", "on", "up", "the",
}

# ── Roles ────────────────────────────────────────────────────────────
# Stored role strings (dbo.portal_users.role) -> canonical role value.
ROLE_ALIASES = {
    "guest": "guest",
    "owner": "owner",
    "customer": "owner",
    "client": "owner",
    "staff": "staff",
    "therapist": "staff",
    "massage-provider": "staff",
    "surgical-team": "staff",
    "admin": "admin",
}

# ── Lookup limits ────────────────────────────────────────────────────
LOOKUP_TIMEOUT_SECONDS = float(os.getenv("LOOKUP_TIMEOUT_SECONDS", "5"))
MAX_PREVIEW_ROWS = 20

# ── API server ───────────────────────────────────────────────────────
SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
TOKEN_EXPIRY_HOURS = 24


def get_env(name: str) -> str:
    """Return an environment variable or exit with an error message."""
    value = os.getenv(name)
    if not value:
        print(f"ERROR: env var {name} is not set", file=sys.stderr)
        sys.exit(1)
    return value
