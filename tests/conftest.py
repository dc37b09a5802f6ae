"""
Shared pytest fixtures for the Manufacturing Operations Backend test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test app context, rollback + table recreate (autouse)
    - client: Flask test client (function-scoped)
    - company_a / company_b: two tenants
    - scope_a / admin_a / scope_b / sysadmin: actor scopes for service calls
    - auth_headers: mint a Bearer header for a scope (API tests)
"""

import pytest

from mfgops import create_app
from mfgops.models import db as _db
from mfgops.models.access import Company
from mfgops.services.helpers.scoped_queries import (
    COMPANY_ADMIN_ROLE,
    SYSTEM_ADMIN_ROLE,
    Scope,
)
from mfgops.services.jwt_service import generate_access_token


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    return create_app("testing")


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Tenants & scopes ─────────────────────────────────────────────────────


def _company(name: str) -> Company:
    c = Company(name=name)
    _db.session.add(c)
    _db.session.commit()
    return c


@pytest.fixture()
def company_a():
    return _company("Acme Manufacturing")


@pytest.fixture()
def company_b():
    return _company("Beta Industries")


@pytest.fixture()
def scope_a(company_a):
    """Plain user of company A."""
    return Scope(actor_id=11, company_id=company_a.id)


@pytest.fixture()
def admin_a(company_a):
    """Company admin of company A."""
    return Scope(actor_id=12, company_id=company_a.id, is_company_admin=True)


@pytest.fixture()
def scope_b(company_b):
    """Plain user of company B."""
    return Scope(actor_id=21, company_id=company_b.id)


@pytest.fixture()
def sysadmin(company_a):
    """System admin whose home company is A."""
    return Scope(actor_id=1, company_id=company_a.id, is_system_admin=True)


@pytest.fixture()
def auth_headers():
    """Return a function that mints an Authorization header for a scope."""

    def _headers(scope: Scope) -> dict:
        roles = []
        if scope.is_system_admin:
            roles.append(SYSTEM_ADMIN_ROLE)
        if scope.is_company_admin:
            roles.append(COMPANY_ADMIN_ROLE)
        token = generate_access_token(scope.actor_id, scope.company_id, roles)
        return {"Authorization": f"Bearer {token}"}

    return _headers
