"""
Uniqueness Enforcer — application-level check-then-write.

The tables carry no unique constraints for codes, names or association
pairs, so uniqueness within a company is checked here before each insert or
update. Only live rows count: a soft-deleted code may be reused.

Used for:
    - RawMaterial.code, SemiProduct.code, Product.code, ProductionPlan.code
    - Role.name within a company
    - (group_id, role_id) on GroupInRole
    - (product_id, customer_id) on ProductToCustomer
    - (production_order_id, sequence_number) on ProductionStage

Known race: the read and the following write are separate round-trips with no
lock or version token. Two concurrent writers can both pass the check and both
insert. This is accepted for the low-concurrency administrative workflows the
platform serves.
"""

import logging

from sqlalchemy import func, select

from mfgops.core.exceptions import ConflictError
from mfgops.models import db

logger = logging.getLogger(__name__)


def check_unique(model, fields: dict, company_id: int, exclude_id: int | None = None) -> bool:
    """Return True when no other live row of *company_id* has these values.

    Args:
        model: TenantModel subclass.
        fields: column name → value; all must match for a collision.
        company_id: Company whose rows are searched.
        exclude_id: Row being updated, ignored in the search.
    """
    stmt = select(func.count(model.id)).where(
        model.company_id == company_id,
        model.status.is_(True),
    )
    for name, value in fields.items():
        stmt = stmt.where(getattr(model, name) == value)
    if exclude_id is not None:
        stmt = stmt.where(model.id != exclude_id)
    return (db.session.execute(stmt).scalar() or 0) == 0


def ensure_unique(
    model,
    fields: dict,
    company_id: int,
    *,
    exclude_id: int | None = None,
    label: str | None = None,
    message: str | None = None,
) -> None:
    """Raise ConflictError when *fields* already exist among live rows.

    Without an explicit *message* the error reads
    "<label> with <field> '<value>' already exists".
    """
    if check_unique(model, fields, company_id, exclude_id):
        return
    label = label or model.__name__
    field = ", ".join(fields)
    value = ", ".join(str(v) for v in fields.values())
    logger.info(
        "Uniqueness conflict: %s %s=%s company=%s", label, field, value, company_id,
        extra={"company_id": company_id, "entity": label},
    )
    if message:
        raise ConflictError(message, resource=label, field=field, value=value)
    raise ConflictError.duplicate(label, field, value)
