"""
Company-scoped query helpers.

Every read and write in the platform goes through these helpers instead of
Model.query.get(pk) or db.session.get(Model, pk). Direct .get() calls bypass
tenant isolation.

The acting tenant is passed explicitly as a ``Scope`` value to every service
function. It is never read from ``flask.g`` or any module-level variable
below the blueprint layer, so isolation is visible at each call site.

Scope predicate:
    system admin         → no company filter at all
    company admin / user → company_id = scope.company_id

Usage:
    scope = Scope(actor_id=7, company_id=3)

    # Live rows of the actor's company, newest first
    rows = find(RawMaterial, scope, order_by=RawMaterial.created_at.desc())

    # Get-by-id; NotFoundError for missing AND for foreign-company rows
    order = get_scoped(ProductionOrder, order_id, scope)

    # Association target must be live and in the same company as the new row
    recipe = get_live_reference(Recipe, recipe_id, company_id, "Recipe")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select

from mfgops.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from mfgops.models import db

logger = logging.getLogger(__name__)

SYSTEM_ADMIN_ROLE = "admin"
COMPANY_ADMIN_ROLE = "company_admin"


@dataclass(frozen=True)
class Scope:
    """Resolved actor identity: who is acting and for which company."""

    actor_id: int | None
    company_id: int | None
    is_system_admin: bool = False
    is_company_admin: bool = False

    @classmethod
    def from_claims(cls, claims: dict) -> "Scope":
        """Build a scope from decoded access-token claims."""
        roles = claims.get("roles") or []
        sub = claims.get("sub")
        company_id = claims.get("company_id")
        return cls(
            actor_id=int(sub) if sub is not None else None,
            company_id=int(company_id) if company_id is not None else None,
            is_system_admin=SYSTEM_ADMIN_ROLE in roles,
            is_company_admin=COMPANY_ADMIN_ROLE in roles,
        )

    @property
    def is_admin(self) -> bool:
        return self.is_system_admin or self.is_company_admin

    def company_for_write(self, requested: int | None = None) -> int:
        """Return the company_id a new row must carry.

        Raises:
            ForbiddenError: a non-system-admin asked to write for another company.
            ValidationError: no company could be resolved (system admin without
                a company claim and no explicit company_id).
        """
        if requested is not None:
            try:
                requested = int(requested)
            except (TypeError, ValueError):
                raise ValidationError("company_id must be an integer")
        if requested is None or requested == self.company_id:
            if self.company_id is None:
                raise ValidationError("company_id is required")
            return self.company_id
        if self.is_system_admin:
            return requested
        logger.warning(
            "Cross-company write rejected: actor=%s company=%s requested=%s",
            self.actor_id, self.company_id, requested,
            extra={"company_id": self.company_id, "actor_id": self.actor_id},
        )
        raise ForbiddenError("You cannot write data for another company")


def scoped_select(model, scope: Scope, *, include_inactive: bool = False):
    """Return ``select(model)`` with the scope predicate and liveness filter."""
    stmt = select(model)
    if not scope.is_system_admin:
        stmt = stmt.where(model.company_id == scope.company_id)
    if not include_inactive:
        stmt = stmt.where(model.status.is_(True))
    return stmt


def find(model, scope: Scope, *criteria, include_inactive: bool = False, order_by=None) -> list:
    """Scoped multi-row read."""
    stmt = scoped_select(model, scope, include_inactive=include_inactive)
    if criteria:
        stmt = stmt.where(*criteria)
    if order_by is not None:
        stmt = stmt.order_by(*order_by) if isinstance(order_by, (list, tuple)) else stmt.order_by(order_by)
    return list(db.session.execute(stmt).scalars().all())


def find_one(model, scope: Scope, *criteria, include_inactive: bool = False):
    """Scoped single-row read; None when nothing matches."""
    stmt = scoped_select(model, scope, include_inactive=include_inactive).where(*criteria).limit(1)
    return db.session.execute(stmt).scalar_one_or_none()


def get_scoped(model, pk, scope: Scope, *, include_inactive: bool = False, label: str | None = None):
    """Fetch a single entity by PK within the actor's scope.

    Cross-company access is indistinguishable from a missing record: both
    raise NotFoundError → HTTP 404. A 403 would confirm the row exists.

    Soft-deleted rows are only returned with ``include_inactive=True``.

    Raises:
        NotFoundError: If the entity does not exist, is soft-deleted (unless
                       requested), or belongs to another company.
    """
    stmt = scoped_select(model, scope, include_inactive=include_inactive).where(model.id == pk)
    result = db.session.execute(stmt).scalar_one_or_none()
    if result is None:
        logger.debug(
            "get_scoped: %s id=%s not found for company=%s",
            model.__name__, pk, scope.company_id,
        )
        raise NotFoundError(resource=label or model.__name__, resource_id=pk)
    return result


def get_scoped_or_none(model, pk, scope: Scope, *, include_inactive: bool = False):
    """Same as get_scoped but returns None instead of raising NotFoundError."""
    try:
        return get_scoped(model, pk, scope, include_inactive=include_inactive)
    except NotFoundError:
        return None


def get_live_reference(model, pk, company_id: int, label: str | None = None):
    """Fetch the target of a new association.

    The target must be live and carry the same company_id as the row that is
    about to reference it. A system admin writing for company X may only link
    rows that belong to X.

    Raises:
        NotFoundError: missing, soft-deleted or owned by another company.
    """
    stmt = select(model).where(
        model.id == pk,
        model.company_id == company_id,
        model.status.is_(True),
    )
    result = db.session.execute(stmt).scalar_one_or_none()
    if result is None:
        raise NotFoundError(resource=label or model.__name__, resource_id=pk)
    return result


def reject_company_change(row, data: dict) -> None:
    """company_id is fixed at creation; an update may not move a row."""
    if "company_id" in data and data["company_id"] is not None:
        try:
            requested = int(data["company_id"])
        except (TypeError, ValueError):
            requested = None
        if requested != row.company_id:
            raise ValidationError("company_id cannot be changed")


def company_of_parent(parent, data: dict) -> int:
    """company_id for a child row: always the parent's."""
    requested = data.get("company_id")
    if requested is not None and str(requested) != str(parent.company_id):
        raise ValidationError("company_id must match the parent record's company")
    return parent.company_id
