"""
Soft-Delete Coordinator.

delete(entity, id, scope):
    1. load the row within scope (NotFoundError otherwise)
    2. run the Dependency Checker; a blocking relation aborts with
       ConflictError before anything is written
    3. soft-delete the live detail children of aggregate roots, one step
       per child relation
    4. flip ``status`` on the row itself

Steps 3 and 4 commit separately through a UnitOfWork; a failure in step 4
after children were removed surfaces as PartialFailureError.

Workflow entities with state guards (orders, stages, quality checks) run
their own guards first and then reuse ``soft_delete_row``.
"""

import logging

from mfgops.models.access import Group, GroupInRole, Role, User, UserInGroup
from mfgops.models.catalog import (
    Customer,
    Product,
    ProductToCustomer,
    RawMaterial,
    Recipe,
    RecipeDetail,
    SemiProduct,
    Spec,
    SpecDetail,
    Warehouse,
    WarehouseInventory,
)
from mfgops.services.dependency_checker import (
    CASCADE_CHILDREN,
    ensure_no_dependents,
    live_children,
)
from mfgops.services.helpers.scoped_queries import Scope, get_scoped
from mfgops.services.helpers.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

# entity key → (model, human label)
DELETABLE_ENTITIES = {
    "user": (User, "User"),
    "group": (Group, "Group"),
    "user_in_group": (UserInGroup, "User-group association"),
    "role": (Role, "Role"),
    "group_in_role": (GroupInRole, "Group-role association"),
    "product": (Product, "Product"),
    "customer": (Customer, "Customer"),
    "product_to_customer": (ProductToCustomer, "Product-customer relationship"),
    "raw_material": (RawMaterial, "Raw material"),
    "semi_product": (SemiProduct, "Semi-product"),
    "recipe": (Recipe, "Recipe"),
    "recipe_detail": (RecipeDetail, "Recipe detail"),
    "spec": (Spec, "Spec"),
    "spec_detail": (SpecDetail, "Spec detail"),
    "warehouse": (Warehouse, "Warehouse"),
    "warehouse_inventory": (WarehouseInventory, "Inventory record"),
}


def soft_delete(entity: str, entity_id: int, scope: Scope) -> dict:
    """Dependency-checked soft delete of a catalog/access entity."""
    model, label = DELETABLE_ENTITIES[entity]
    row = get_scoped(model, entity_id, scope, label=label)
    return soft_delete_row(entity, row, scope, label=label)


def soft_delete_row(entity: str, row, scope: Scope, *, label: str | None = None, uow: UnitOfWork | None = None) -> dict:
    """Check dependents, cascade detail children, then flip the row.

    Args:
        entity: Registry key (see dependency_checker).
        row: Loaded, in-scope, live row.
        scope: Acting scope (audit columns and log context).
        label: Human-readable entity name for messages.
        uow: Existing unit of work to append steps to.

    Returns:
        {"message": ..., "id": ..., "cascaded": {child_name: count}}
    """
    label = label or entity
    ensure_no_dependents(entity, row.id, row.company_id)

    uow = uow or UnitOfWork(label, row.id, scope)
    cascaded = {}
    for child in CASCADE_CHILDREN.get(entity, ()):
        with uow.step(f"soft_delete_{child.name}"):
            cascaded[child.name] = uow.soft_delete(live_children(child, row.id, row.company_id))

    with uow.step(f"soft_delete_{entity}"):
        uow.soft_delete([row])

    logger.info(
        "%s soft-deleted id=%s cascaded=%s", label, row.id, cascaded,
        extra={"entity": entity, "entity_id": row.id, "company_id": row.company_id},
    )
    return {"message": f"{label} deleted successfully", "id": row.id, "cascaded": cascaded}
