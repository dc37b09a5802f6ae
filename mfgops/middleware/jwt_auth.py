"""
JWT Auth Middleware — Parses the Bearer token and resolves the actor scope.

Every /api/v1 route except health requires ``Authorization: Bearer <jwt>``.
A valid access token becomes an immutable ``Scope`` on ``g.scope``;
blueprints read it through ``current_scope()`` and pass it explicitly to the
service layer. Missing, expired or invalid tokens are answered with 401.
"""

import logging

import jwt as pyjwt
from flask import g, request

from mfgops.services.helpers.scoped_queries import Scope
from mfgops.services.jwt_service import decode_access_token
from mfgops.utils.errors import E, api_error

logger = logging.getLogger(__name__)

# Paths that skip JWT auth entirely
JWT_SKIP_PREFIXES = (
    "/api/v1/health",
)


def _unauthorized(message: str):
    return api_error(E.UNAUTHORIZED, message)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.scope = None

        path = request.path
        if not path.startswith("/api/v1/") or request.method == "OPTIONS":
            return None
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return None

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return _unauthorized("Authentication required")

        token = auth_header[7:]  # Strip "Bearer "

        try:
            payload = decode_access_token(token)
            g.scope = Scope.from_claims(payload)
        except pyjwt.ExpiredSignatureError:
            return _unauthorized("Token has expired")
        except (pyjwt.InvalidTokenError, TypeError, ValueError) as exc:
            logger.info("Rejected access token: %s", exc, extra={"path": path})
            return _unauthorized("Invalid token")
        return None
