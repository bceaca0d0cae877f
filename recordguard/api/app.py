"""
Flask application factory and server entry-point.
"""

import os
import sys
import traceback

from flask import Flask
from flask_cors import CORS

from recordguard.config import TOKEN_EXPIRY_HOURS
from recordguard.database import SqlRecordLookup, init_engine
from recordguard.llm import init_llm
from recordguard.api.routes import register_routes


def create_app(engine=None, llm=None, lookup=None):
    """Build and return a fully configured Flask application.

    Resources that are not passed in are initialised from the environment.
    """
    app = Flask(__name__)
    CORS(app)

    # ── Initialise shared resources ──────────────────────────────────
    try:
        if engine is None:
            print("[init] Initializing database connection...")
            engine = init_engine()

        if llm is None:
            print("[init] Initializing LLM...")
            llm = init_llm()

        if lookup is None:
            lookup = SqlRecordLookup(engine)

        print("[init] ✓ API server ready")
    except Exception as e:
        print(f"[FATAL] Failed to initialize: {e}", file=sys.stderr)
        traceback.print_exc()
        sys.exit(1)

    # ── Register routes ──────────────────────────────────────────────
    register_routes(app, engine, llm, lookup)

    return app


def main():
    """Run the development server."""
    print("=" * 60)
    print("Aura Booking Lookup – REST API Server")
    print("=" * 60)

    app = create_app()

    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("API_PORT", "8000"))
    debug = os.getenv("FLASK_ENV") == "development"

    print(f"\n[server] Starting Flask API on {host}:{port}")
    print(f"[server] Debug mode: {debug}")
    print("[server] CORS enabled: True")
    print(f"[server] Session expiry: {TOKEN_EXPIRY_HOURS} hours")
    print("\nAPI Endpoints:")
    print(f"  - POST http://{host}:{port}/api/auth/login")
    print(f"  - POST http://{host}:{port}/api/lookup")
    print(f"  - POST http://{host}:{port}/api/chat")
    print(f"  - GET  http://{host}:{port}/api/records/mine")
    print(f"  - POST http://{host}:{port}/api/records/<code>/status")
    print(f"  - GET  http://{host}:{port}/api/status/sequence")
    print(f"  - GET  http://{host}:{port}/api/user/profile")
    print(f"  - POST http://{host}:{port}/api/auth/logout")
    print(f"  - GET  http://{host}:{port}/health")
    print("\n" + "=" * 60)

    app.run(host=host, port=port, debug=debug, threaded=True)


if __name__ == "__main__":
    main()
