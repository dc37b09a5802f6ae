"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in mfgops/__init__.py with no default limits;
this module applies granular limits per route category.

Usage:
    from mfgops.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

import jwt as pyjwt
from flask import g, request as flask_request

from mfgops.services.jwt_service import decode_access_token

logger = logging.getLogger(__name__)

WRITE_LIMIT = "60/minute"
WRITE_BLUEPRINTS = ("access", "catalog", "production", "quality")


def _company_from_bearer():
    # The limiter check runs before the JWT hook populates g.scope.
    auth_header = flask_request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    try:
        company_id = decode_access_token(auth_header[7:]).get("company_id")
    except pyjwt.InvalidTokenError:
        return None
    return company_id or None


def rate_limit_key():
    """Rate limit key: company of the caller if resolvable, else remote IP."""
    scope = getattr(g, "scope", None)
    company_id = scope.company_id if scope is not None else _company_from_bearer()
    if company_id:
        return f"company:{company_id}"
    return flask_request.remote_addr or "unknown"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits:
        - Write-heavy blueprints:  60/minute
        - Health check:            exempt

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING") or not app.config.get("RATELIMIT_ENABLED", True):
        app.logger.info("Rate limiter disabled")
        return

    for bp_name in WRITE_BLUEPRINTS:
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT, key_func=rate_limit_key)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured — write: %s", WRITE_LIMIT)
