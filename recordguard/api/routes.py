"""
Flask route handlers for the REST API.
"""

import sys
import traceback
from datetime import datetime, timedelta

from flask import request, jsonify

from recordguard.audit import record_decision, record_transition, safe_record
from recordguard.authorizer import authorize, own_records
from recordguard.config import TOKEN_EXPIRY_HOURS
from recordguard.models import Forbidden, LookupFailure
from recordguard.rbac import build_policy, guest_context, load_access_context
from recordguard.responder import fallback_reply, generate_reply
from recordguard.status_guard import (
    STATUS_SEQUENCE,
    next_allowed,
    parse_status,
    previous_statuses,
    update_record_status,
)
from recordguard.api.auth import (
    cleanup_expired_sessions,
    sessions,
    generate_token,
    token_optional,
    token_required,
)


def _caller():
    """AccessContext for the current request; anonymous callers are guests."""
    session_data = request.session_data
    return session_data["ctx"] if session_data else guest_context()


def _json_body():
    """The request body when it is a JSON object, otherwise None."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else None


def register_routes(app, engine, llm, lookup):
    """Register all API routes on the Flask *app*."""

    # ── Health / info ────────────────────────────────────────────────

    @app.route("/", methods=["GET"])
    def index():
        return jsonify({
            "service": "Aura Booking Lookup API",
            "version": "1.0.0",
            "status": "running",
            "endpoints": {
                "auth": "/api/auth/login",
                "lookup": "/api/lookup",
                "chat": "/api/chat",
                "own_records": "/api/records/mine",
                "status_update": "/api/records/<code>/status",
                "status_sequence": "/api/status/sequence",
                "logout": "/api/auth/logout",
                "health": "/health",
            },
        })

    @app.route("/health", methods=["GET"])
    def health():
        from sqlalchemy import text as sa_text

        checks = {"database": False, "llm": False}
        try:
            if engine:
                with engine.connect() as conn:
                    conn.execute(sa_text("SELECT 1"))
                checks["database"] = True
        except Exception as e:
            print(f"[WARN] Health check could not reach DB: {e}", file=sys.stderr)

        checks["llm"] = llm is not None
        all_healthy = all(checks.values())

        return jsonify({
            "status": "healthy" if all_healthy else "unhealthy",
            "checks": checks,
            "active_sessions": len(sessions),
        }), 200 if all_healthy else 503

    # ── Auth ─────────────────────────────────────────────────────────

    @app.route("/api/auth/login", methods=["POST"])
    def login():
        if not request.is_json:
            return jsonify({"error": "Content-Type must be application/json"}), 400

        data = _json_body()
        if data is None:
            return jsonify({"error": "Request body must be a JSON object"}), 400
        api_key = data.get("api_key")
        api_key = api_key.strip() if isinstance(api_key, str) else ""
        if not api_key:
            return jsonify({"error": "api_key is required"}), 400

        try:
            ctx = load_access_context(engine, api_key)
            policy = build_policy(ctx)
            token = generate_token(ctx)

            cleanup_expired_sessions()
            sessions[token] = {
                "ctx": ctx,
                "policy": policy,
                "created_at": datetime.utcnow(),
                "last_activity": datetime.utcnow(),
            }
            print(f"[auth] Logged in: {ctx.display_name} (role={ctx.role.value})")

            return jsonify({
                "success": True,
                "token": token,
                "user": {
                    "id": ctx.user_id,
                    "display_name": ctx.display_name,
                    "role": ctx.role.value,
                    "party_id": ctx.party_id,
                },
                "policy": {
                    "role": policy.role.value,
                    "notes": policy.notes,
                },
                "expires_at": (datetime.utcnow() + timedelta(hours=TOKEN_EXPIRY_HOURS)).isoformat(),
            }), 200

        except ValueError as e:
            return jsonify({"error": f"Authentication failed: {str(e)}"}), 401
        except Exception as e:
            print(f"[ERROR] Login error: {e}", file=sys.stderr)
            traceback.print_exc()
            return jsonify({"error": "Internal server error during login"}), 500

    @app.route("/api/auth/logout", methods=["POST"])
    @token_required
    def logout():
        token = request.token
        if token in sessions:
            del sessions[token]
        return jsonify({"success": True, "message": "Logged out successfully"}), 200

    # ── Lookup / chat ────────────────────────────────────────────────

    def _decide(message):
        ctx = _caller()
        result = authorize(ctx, message, lookup)
        safe_record(record_decision, engine, ctx, result)
        return ctx, result

    def _message_or_error():
        if not request.is_json:
            return None, (jsonify({"error": "Content-Type must be application/json"}), 400)
        data = _json_body()
        if data is None:
            return None, (jsonify({"error": "Request body must be a JSON object"}), 400)
        message = data.get("message")
        message = message.strip() if isinstance(message, str) else ""
        if not message:
            return None, (jsonify({"error": "message is required"}), 400)
        return message, None

    @app.route("/api/lookup", methods=["POST"])
    @token_optional
    def lookup_booking():
        message, error = _message_or_error()
        if error:
            return error

        ctx, result = _decide(message)
        status = 503 if isinstance(result, LookupFailure) else 200
        return jsonify({"success": status == 200, "result": result.to_dict()}), status

    @app.route("/api/chat", methods=["POST"])
    @token_optional
    def chat():
        message, error = _message_or_error()
        if error:
            return error

        ctx, result = _decide(message)
        try:
            reply = generate_reply(llm, ctx, message, result)
        except Exception as e:
            print(f"[WARN] Reply generation failed: {e}", file=sys.stderr)
            reply = fallback_reply(ctx, result)

        return jsonify({
            "response": reply,
            "timestamp": datetime.utcnow().isoformat(),
            "result": result.to_dict(),
        }), 200

    # ── Records ──────────────────────────────────────────────────────

    @app.route("/api/records/mine", methods=["GET"])
    @token_required
    def my_records():
        ctx = request.session_data["ctx"]
        result = own_records(ctx, lookup)
        safe_record(record_decision, engine, ctx, result)
        if isinstance(result, Forbidden):
            return jsonify({"success": False, "result": result.to_dict()}), 403
        if isinstance(result, LookupFailure):
            return jsonify({"success": False, "result": result.to_dict()}), 503
        return jsonify({"success": True, "result": result.to_dict()}), 200

    @app.route("/api/records/<code>/status", methods=["POST"])
    @token_required
    def update_status(code):
        if not request.is_json:
            return jsonify({"error": "Content-Type must be application/json"}), 400
        data = _json_body()
        if data is None:
            return jsonify({"error": "Request body must be a JSON object"}), 400
        proposed = data.get("status")
        if not isinstance(proposed, str) or not proposed:
            return jsonify({"error": "status is required"}), 400

        ctx = request.session_data["ctx"]
        try:
            result = update_record_status(ctx, code, proposed, lookup)
        except ValueError as e:
            return jsonify({"success": False, "error": str(e)}), 400
        except LookupError as e:
            return jsonify({"success": False, "error": str(e)}), 404
        except Exception as e:
            print(f"[ERROR] Status update error: {e}", file=sys.stderr)
            traceback.print_exc()
            return jsonify({"success": False, "error": "Record store unavailable"}), 503

        safe_record(record_transition, engine, ctx, code, result)
        return jsonify({"success": result.allowed, "transition": result.to_dict()}), (
            200 if result.allowed else 409
        )

    @app.route("/api/status/sequence", methods=["GET"])
    def status_sequence():
        payload = {"sequence": [s.value for s in STATUS_SEQUENCE]}
        current = request.args.get("current")
        if current:
            try:
                status = parse_status(current)
            except ValueError as e:
                return jsonify({"error": str(e)}), 400
            payload["current"] = status.value
            payload["next_allowed"] = [s.value for s in next_allowed(status)]
            payload["previous"] = [s.value for s in previous_statuses(status)]
        return jsonify(payload), 200

    # ── Profile ──────────────────────────────────────────────────────

    @app.route("/api/user/profile", methods=["GET"])
    @token_required
    def get_profile():
        session_data = request.session_data
        ctx = session_data["ctx"]
        policy = session_data["policy"]
        return jsonify({
            "success": True,
            "user": {
                "id": ctx.user_id,
                "display_name": ctx.display_name,
                "role": ctx.role.value,
                "party_id": ctx.party_id,
            },
            "policy": {
                "role": policy.role.value,
                "notes": policy.notes,
                "permitted_intents": sorted(k.value for k in policy.permitted_intents),
                "disclosed_fields": sorted(policy.disclosed_fields),
                "status_access": policy.status_access.value,
            },
            "session": {
                "created_at": session_data["created_at"].isoformat(),
                "last_activity": session_data["last_activity"].isoformat(),
            },
        }), 200

    # ── Error handlers ───────────────────────────────────────────────

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Endpoint not found", "message": str(e)}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed", "message": str(e)}), 405

    @app.errorhandler(500)
    def internal_error(e):
        return jsonify({"error": "Internal server error", "message": str(e)}), 500
