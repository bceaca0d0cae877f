"""
JWT authentication helpers and middleware for the Flask API.
"""

from datetime import datetime, timedelta
from functools import wraps
from typing import Dict, Any, Optional

import jwt
from flask import request, jsonify

from recordguard.config import SECRET_KEY, TOKEN_EXPIRY_HOURS
from recordguard.models import AccessContext

# In-memory session store (use Redis in production)
# Structure: {token: {"ctx": AccessContext, "policy": Policy, "created_at": datetime, ...}}
sessions: Dict[str, Dict[str, Any]] = {}


def generate_token(ctx: AccessContext) -> str:
    """Generate a JWT token for an authenticated user."""
    payload = {
        "user_id": ctx.user_id,
        "role": ctx.role.value,
        "display_name": ctx.display_name,
        "iat": datetime.utcnow(),
        "exp": datetime.utcnow() + timedelta(hours=TOKEN_EXPIRY_HOURS),
    }
    return jwt.encode(payload, SECRET_KEY, algorithm="HS256")


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify a JWT token and return the decoded payload (or None)."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def _extract_token():
    """Return (token, error_response). Both None when no token was sent."""
    token = None
    if "Authorization" in request.headers:
        auth_header = request.headers["Authorization"]
        try:
            token = auth_header.split(" ")[1]
        except IndexError:
            return None, (jsonify({"error": "Invalid authorization header format"}), 401)

    if not token and request.is_json:
        token = (request.get_json(silent=True) or {}).get("token")
    if not token:
        token = request.args.get("token")
    return token, None


def _attach_session(token: str):
    payload = verify_token(token)
    if not payload:
        return jsonify({"error": "Invalid or expired token"}), 401
    if token not in sessions:
        return jsonify({"error": "Session not found. Please login again."}), 401

    request.session_data = sessions[token]
    request.token = token
    sessions[token]["last_activity"] = datetime.utcnow()
    return None


def token_required(f):
    """Decorator that protects endpoints with JWT authentication."""
    @wraps(f)
    def decorated(*args, **kwargs):
        token, error = _extract_token()
        if error:
            return error
        if not token:
            return jsonify({"error": "Authentication token is missing"}), 401

        error = _attach_session(token)
        if error:
            return error
        return f(*args, **kwargs)

    return decorated


def token_optional(f):
    """Like token_required, but an anonymous caller proceeds with no session."""
    @wraps(f)
    def decorated(*args, **kwargs):
        token, error = _extract_token()
        if error:
            return error

        request.session_data = None
        request.token = None
        if token:
            error = _attach_session(token)
            if error:
                return error
        return f(*args, **kwargs)

    return decorated


def cleanup_expired_sessions():
    """Remove sessions that have been inactive beyond TOKEN_EXPIRY_HOURS."""
    now = datetime.utcnow()
    expired = [
        tok for tok, data in sessions.items()
        if (now - data["last_activity"]).total_seconds() > TOKEN_EXPIRY_HOURS * 3600
    ]
    for tok in expired:
        del sessions[tok]
    if expired:
        print(f"[cleanup] Removed {len(expired)} expired sessions")
