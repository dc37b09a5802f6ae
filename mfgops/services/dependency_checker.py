"""
Dependency Checker — application-level referential integrity for soft delete.

The store does not stop a referenced row from being soft-deleted, so every
deletable entity type registers the relations whose live rows block its
deletion. Relations are checked in registry order; the first one with a live
referencing row is reported. All checks run before any mutation.

Registered blocking relations:
    user             → UserInGroup
    group            → UserInGroup, GroupInRole
    role             → GroupInRole
    raw_material     → RecipeDetail (ingredient)
    semi_product     → Recipe (output), RecipeDetail (ingredient)
    product          → Recipe (output)
    customer         → ProductToCustomer
    warehouse        → WarehouseInventory
    production_plan  → ProductionOrder
    production_order → ProductionOutput
    quality_check    → OutputQualityCheck

Cascaded (non-blocking) detail children, soft-deleted before their parent:
    recipe           → RecipeDetail
    spec             → SpecDetail
    quality_check    → QualityCheckItem
    production_stage → ProductionStageResource
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select

from mfgops.core.exceptions import ConflictError
from mfgops.models import db
from mfgops.models.access import GroupInRole, UserInGroup
from mfgops.models.catalog import (
    ProductToCustomer,
    Recipe,
    RecipeDetail,
    SpecDetail,
    WarehouseInventory,
)
from mfgops.models.production import (
    OutputQualityCheck,
    ProductionOrder,
    ProductionOutput,
    ProductionStageResource,
    QualityCheckItem,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DependentRelation:
    """Rows of *model* whose *column* points at the entity being deleted."""

    name: str
    model: type
    column: str
    message: str


@dataclass(frozen=True)
class CascadeChild:
    """Detail rows owned by an aggregate root and deleted along with it."""

    name: str
    model: type
    column: str


DEPENDENT_RELATIONS: dict[str, tuple[DependentRelation, ...]] = {
    "user": (
        DependentRelation(
            "user_in_groups", UserInGroup, "user_id",
            "Cannot delete user: they are a member of one or more groups. Remove these associations first.",
        ),
    ),
    "group": (
        DependentRelation(
            "user_in_groups", UserInGroup, "group_id",
            "Cannot delete group: it is associated with users. Remove these associations first.",
        ),
        DependentRelation(
            "group_in_roles", GroupInRole, "group_id",
            "Cannot delete group: it is associated with roles. Remove these associations first.",
        ),
    ),
    "role": (
        DependentRelation(
            "group_in_roles", GroupInRole, "role_id",
            "Cannot delete role: it is associated with groups. Remove these associations first.",
        ),
    ),
    "raw_material": (
        DependentRelation(
            "recipe_details", RecipeDetail, "raw_material_id",
            "Cannot delete raw material: it is used in one or more recipes",
        ),
    ),
    "semi_product": (
        DependentRelation(
            "recipes", Recipe, "semi_product_id",
            "Cannot delete semi-product: it is an output in one or more recipes",
        ),
        DependentRelation(
            "recipe_details", RecipeDetail, "semi_product_id",
            "Cannot delete semi-product: it is used as an ingredient in one or more recipes",
        ),
    ),
    "product": (
        DependentRelation(
            "recipes", Recipe, "product_id",
            "Cannot delete product: it is an output in one or more recipes",
        ),
    ),
    "customer": (
        DependentRelation(
            "product_to_customers", ProductToCustomer, "customer_id",
            "Cannot delete customer: it is linked to one or more products",
        ),
    ),
    "warehouse": (
        DependentRelation(
            "warehouse_inventories", WarehouseInventory, "warehouse_id",
            "Cannot delete warehouse: it still holds inventory records",
        ),
    ),
    "production_plan": (
        DependentRelation(
            "production_orders", ProductionOrder, "production_plan_id",
            "Cannot delete production plan with existing orders. Delete the orders first.",
        ),
    ),
    "production_order": (
        DependentRelation(
            "production_outputs", ProductionOutput, "production_order_id",
            "Cannot delete production order with recorded outputs. "
            "Delete the outputs first or cancel the order.",
        ),
    ),
    "quality_check": (
        DependentRelation(
            "output_quality_checks", OutputQualityCheck, "quality_check_id",
            "Cannot delete quality check: it is linked to one or more production outputs",
        ),
    ),
}

CASCADE_CHILDREN: dict[str, tuple[CascadeChild, ...]] = {
    "recipe": (CascadeChild("recipe_details", RecipeDetail, "recipe_id"),),
    "spec": (CascadeChild("spec_details", SpecDetail, "spec_id"),),
    "quality_check": (CascadeChild("quality_check_items", QualityCheckItem, "quality_check_id"),),
    "production_stage": (
        CascadeChild("stage_resources", ProductionStageResource, "production_stage_id"),
    ),
}


def has_live_dependents(relation: DependentRelation, entity_id: int, company_id: int) -> bool:
    """True when at least one live row of *relation* references *entity_id*."""
    model = relation.model
    stmt = (
        select(model.id)
        .where(
            getattr(model, relation.column) == entity_id,
            model.company_id == company_id,
            model.status.is_(True),
        )
        .limit(1)
    )
    return db.session.execute(stmt).first() is not None


def find_blocking_relation(entity: str, entity_id: int, company_id: int) -> DependentRelation | None:
    """Return the first registered relation with live rows, or None."""
    for relation in DEPENDENT_RELATIONS.get(entity, ()):
        if has_live_dependents(relation, entity_id, company_id):
            return relation
    return None


def ensure_no_dependents(entity: str, entity_id: int, company_id: int) -> None:
    """Raise ConflictError naming the first blocking relation, if any."""
    relation = find_blocking_relation(entity, entity_id, company_id)
    if relation is None:
        return
    logger.info(
        "Delete of %s id=%s blocked by %s", entity, entity_id, relation.name,
        extra={"entity": entity, "entity_id": entity_id, "company_id": company_id},
    )
    raise ConflictError(relation.message, resource=entity, field=relation.name)


def live_children(child: CascadeChild, parent_id: int, company_id: int) -> list:
    model = child.model
    stmt = select(model).where(
        getattr(model, child.column) == parent_id,
        model.company_id == company_id,
        model.status.is_(True),
    )
    return list(db.session.execute(stmt).scalars().all())
