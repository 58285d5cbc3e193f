"""HTTP entrypoint serving partner lookups and session context (Cloud Run friendly)."""

from __future__ import annotations

import atexit
import logging
import os
from typing import Any, Optional

from flask import Flask, current_app, jsonify, request

from portal.core.config import get_settings
from portal.core.db import Database, close_pool
from portal.core.errors import PortalError
from portal.models import AuthAbsent, AuthFound, HeaderContext
from portal.services.partners import lookup_partner
from portal.services.session import (
    NO_TOKEN,
    TOKEN_EXPIRED,
    fetch_profile,
    get_current_user,
    resolve_header_context,
)
from portal.vendors.supabase_auth import SupabaseAuthClient

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

_EXTENSION = "portal"

# A token the auth service rejects (bad signature, revoked user) is not an expiry.
_ABSENT_ERRORS = {NO_TOKEN: "Not authenticated", TOKEN_EXPIRED: "Session expired"}


# ---------- App factory ----------


def create_app(
    database: Optional[Database] = None,
    auth_client: Optional[SupabaseAuthClient] = None,
) -> Flask:
    """
    Build the Flask app. Collaborators left as None are created on first use
    from environment settings, so importing this module never opens a connection.
    """
    flask_app = Flask(__name__)
    flask_app.extensions[_EXTENSION] = {"database": database, "auth_client": auth_client}
    _register_routes(flask_app)
    return flask_app


def _database() -> Database:
    deps = current_app.extensions[_EXTENSION]
    if deps["database"] is None:
        deps["database"] = Database()
    return deps["database"]


def _auth_client() -> SupabaseAuthClient:
    deps = current_app.extensions[_EXTENSION]
    if deps["auth_client"] is None:
        deps["auth_client"] = SupabaseAuthClient.from_settings()
    return deps["auth_client"]


# ---------- Routes ----------


def _register_routes(flask_app: Flask) -> None:
    @flask_app.get("/")
    def root() -> Any:
        """Simple root to avoid 404 on GET /"""
        return "ok", 200

    @flask_app.get("/healthz")
    def healthcheck() -> Any:
        """Lightweight health endpoint; never touches the database."""
        return (
            jsonify(
                {
                    "status": "ok",
                    "revision": os.getenv("K_REVISION", "unknown"),
                    "region": os.getenv("X_GOOGLE_RUNTIMEREGION", "unknown"),
                }
            ),
            200,
        )

    @flask_app.get("/partners/", defaults={"partner_id": ""})
    @flask_app.get("/partners/<path:partner_id>")
    def get_partner(partner_id: str) -> Any:
        """Return one normalized partner from the unified view."""
        try:
            partner = lookup_partner(partner_id, database=_database())
        except PortalError as exc:
            return jsonify({"error": exc.message}), exc.status_code
        except Exception as exc:  # noqa: BLE001
            logger.exception("Partner endpoint failed for id=%s: %s", partner_id, exc)
            return jsonify({"error": "Internal server error"}), 500

        return jsonify(partner.to_dict()), 200

    @flask_app.get("/header-context")
    def header_context() -> Any:
        """Principal and profile for the page header; anonymous rather than failing."""
        try:
            context = resolve_header_context(request, auth_client=_auth_client(), database=_database())
        except Exception as exc:  # noqa: BLE001
            logger.exception("Header context collaborators unavailable: %s", exc)
            context = HeaderContext()
        return jsonify(context.to_dict()), 200

    @flask_app.get("/api/auth/me")
    def current_user() -> Any:
        """Current user plus profile, or 401 when no session resolves."""
        try:
            result = get_current_user(request, auth_client=_auth_client())
            if isinstance(result, AuthAbsent):
                error = _ABSENT_ERRORS.get(result.reason, "Authentication failed")
                logger.info("Auth me rejected: %s", result.reason)
                return jsonify({"success": False, "error": error}), 401
            if not isinstance(result, AuthFound):
                logger.warning("Auth me failed: %s", result.reason)
                return jsonify({"success": False, "error": "Authentication failed"}), 401

            principal = result.principal
            profile = fetch_profile(_database(), principal.id)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Auth me endpoint error: %s", exc)
            return jsonify({"success": False, "error": "Internal server error"}), 500

        return (
            jsonify(
                {
                    "success": True,
                    "data": {
                        "user": principal.to_api_user(),
                        "profile": profile.to_dict() if profile else None,
                    },
                }
            ),
            200,
        )


app = create_app()


def main() -> None:
    """
    Cloud Run injects PORT (usually 8080); fall back to settings for local runs.
    """
    env_port = os.getenv("PORT")
    logger.info("[BOOT] ENV PORT=%s", env_port)

    port = int(env_port or get_settings().port)
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)

    atexit.register(close_pool)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
