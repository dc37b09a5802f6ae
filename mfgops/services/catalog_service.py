"""
Catalog — Service Layer.

Business logic for:
    - Coded items (Product, RawMaterial, SemiProduct): code unique per company
    - Customers and the product ↔ customer pair (pair unique per company)
    - Recipes (one output item) and their ordered ingredient lines
    - Specs and their ordered parameter lines
    - Warehouses and inventory rows (one stocked item each)

Every reference written here must point at a live row of the same company.
Ordered children get their ``sequence`` from the Sequencer when the caller
does not supply one. Deletes go through the Soft-Delete Coordinator.
"""

import logging

from mfgops.core.exceptions import ValidationError
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
from mfgops.services.helpers.item_refs import (
    INGREDIENT_KINDS,
    OUTPUT_KINDS,
    STOCK_KINDS,
    ItemRef,
)
from mfgops.services.helpers.scoped_queries import (
    Scope,
    company_of_parent,
    find,
    get_live_reference,
    get_scoped,
    reject_company_change,
)
from mfgops.services.helpers.unit_of_work import insert_one, update_one
from mfgops.services.sequencer import next_sequence
from mfgops.services.soft_delete_service import soft_delete
from mfgops.services.uniqueness import ensure_unique
from mfgops.utils.helpers import parse_bool, parse_int, parse_number, parse_positive, require_fields

logger = logging.getLogger(__name__)

PRODUCT_CUSTOMER_TAKEN = "This product-customer relationship already exists"

_CODED_FIELDS = {
    Product: ("name", "description", "unit"),
    RawMaterial: ("name", "description", "unit", "unit_cost"),
    SemiProduct: ("name", "description", "unit"),
}


def _resolve_item(ref: ItemRef, company_id: int):
    return get_live_reference(ref.model, ref.id, company_id, ref.label)


def _sequence(data: dict, model, parent_column: str, parent) -> int:
    if data.get("sequence") not in (None, ""):
        seq = parse_int(data["sequence"], "sequence")
        if seq <= 0:
            raise ValidationError("sequence must be a positive integer")
        return seq
    return next_sequence(model, parent_column, parent.id, parent.company_id)


# ═════════════════════════════════════════════════════════════════════════════
# Coded items: Product, RawMaterial, SemiProduct
# ═════════════════════════════════════════════════════════════════════════════


def _create_coded(model, label: str, data: dict, scope: Scope):
    require_fields(data, "code", "name")
    company_id = scope.company_for_write(data.get("company_id"))
    code = str(data["code"]).strip()
    ensure_unique(model, {"code": code}, company_id, label=label)
    values = {f: data[f] for f in _CODED_FIELDS[model] if f in data}
    values["name"] = str(values["name"]).strip()
    return insert_one(label, model(company_id=company_id, code=code, **values), scope)


def _update_coded(model, label: str, pk: int, data: dict, scope: Scope):
    row = get_scoped(model, pk, scope, label=label)
    reject_company_change(row, data)
    patch = {f: data[f] for f in _CODED_FIELDS[model] if f in data}
    if "name" in data:
        require_fields(data, "name")
    if "code" in data:
        require_fields(data, "code")
        code = str(data["code"]).strip()
        if code != row.code:
            ensure_unique(model, {"code": code}, row.company_id, exclude_id=row.id, label=label)
        patch["code"] = code
    return update_one(label, row, patch, scope)


def list_products(scope: Scope) -> list[Product]:
    return find(Product, scope, order_by=Product.created_at.desc())


def get_product(pk: int, scope: Scope, include_inactive: bool = False) -> Product:
    return get_scoped(Product, pk, scope, include_inactive=include_inactive, label="Product")


def create_product(data: dict, scope: Scope) -> Product:
    return _create_coded(Product, "Product", data, scope)


def update_product(pk: int, data: dict, scope: Scope) -> Product:
    return _update_coded(Product, "Product", pk, data, scope)


def delete_product(pk: int, scope: Scope) -> dict:
    return soft_delete("product", pk, scope)


def list_raw_materials(scope: Scope) -> list[RawMaterial]:
    return find(RawMaterial, scope, order_by=RawMaterial.created_at.desc())


def get_raw_material(pk: int, scope: Scope, include_inactive: bool = False) -> RawMaterial:
    return get_scoped(RawMaterial, pk, scope, include_inactive=include_inactive, label="Raw material")


def create_raw_material(data: dict, scope: Scope) -> RawMaterial:
    return _create_coded(RawMaterial, "Raw material", data, scope)


def update_raw_material(pk: int, data: dict, scope: Scope) -> RawMaterial:
    return _update_coded(RawMaterial, "Raw material", pk, data, scope)


def delete_raw_material(pk: int, scope: Scope) -> dict:
    """Blocked while any live recipe line uses the material."""
    return soft_delete("raw_material", pk, scope)


def list_semi_products(scope: Scope) -> list[SemiProduct]:
    return find(SemiProduct, scope, order_by=SemiProduct.created_at.desc())


def get_semi_product(pk: int, scope: Scope, include_inactive: bool = False) -> SemiProduct:
    return get_scoped(SemiProduct, pk, scope, include_inactive=include_inactive, label="Semi-product")


def create_semi_product(data: dict, scope: Scope) -> SemiProduct:
    return _create_coded(SemiProduct, "Semi-product", data, scope)


def update_semi_product(pk: int, data: dict, scope: Scope) -> SemiProduct:
    return _update_coded(SemiProduct, "Semi-product", pk, data, scope)


def delete_semi_product(pk: int, scope: Scope) -> dict:
    """Blocked while a live recipe outputs it or a live recipe line consumes it."""
    return soft_delete("semi_product", pk, scope)


# ═════════════════════════════════════════════════════════════════════════════
# Customers + ProductToCustomer
# ═════════════════════════════════════════════════════════════════════════════

_CUSTOMER_FIELDS = ("name", "email", "phone", "address")


def list_customers(scope: Scope) -> list[Customer]:
    return find(Customer, scope, order_by=Customer.name)


def get_customer(pk: int, scope: Scope, include_inactive: bool = False) -> Customer:
    return get_scoped(Customer, pk, scope, include_inactive=include_inactive, label="Customer")


def create_customer(data: dict, scope: Scope) -> Customer:
    require_fields(data, "name")
    company_id = scope.company_for_write(data.get("company_id"))
    values = {f: data[f] for f in _CUSTOMER_FIELDS if f in data}
    return insert_one("Customer", Customer(company_id=company_id, **values), scope)


def update_customer(pk: int, data: dict, scope: Scope) -> Customer:
    customer = get_customer(pk, scope)
    reject_company_change(customer, data)
    if "name" in data:
        require_fields(data, "name")
    patch = {f: data[f] for f in _CUSTOMER_FIELDS if f in data}
    return update_one("Customer", customer, patch, scope)


def delete_customer(pk: int, scope: Scope) -> dict:
    return soft_delete("customer", pk, scope)


def list_product_customers(scope: Scope, product_id: int | None = None, customer_id: int | None = None) -> list[ProductToCustomer]:
    criteria = []
    if product_id is not None:
        criteria.append(ProductToCustomer.product_id == product_id)
    if customer_id is not None:
        criteria.append(ProductToCustomer.customer_id == customer_id)
    return find(ProductToCustomer, scope, *criteria, order_by=ProductToCustomer.created_at.desc())


def get_product_customer(pk: int, scope: Scope, include_inactive: bool = False) -> ProductToCustomer:
    return get_scoped(
        ProductToCustomer, pk, scope, include_inactive=include_inactive,
        label="Product-customer relationship",
    )


def create_product_customer(data: dict, scope: Scope) -> ProductToCustomer:
    require_fields(data, "product_id", "customer_id")
    company_id = scope.company_for_write(data.get("company_id"))
    product = get_live_reference(Product, data["product_id"], company_id, "Product")
    customer = get_live_reference(Customer, data["customer_id"], company_id, "Customer")
    ensure_unique(
        ProductToCustomer, {"product_id": product.id, "customer_id": customer.id}, company_id,
        label="Product-customer relationship", message=PRODUCT_CUSTOMER_TAKEN,
    )
    return insert_one("ProductToCustomer", ProductToCustomer(
        company_id=company_id,
        product_id=product.id,
        customer_id=customer.id,
        customer_product_code=data.get("customer_product_code"),
    ), scope)


def update_product_customer(pk: int, data: dict, scope: Scope) -> ProductToCustomer:
    link = get_product_customer(pk, scope)
    reject_company_change(link, data)
    patch = {}
    product_id = data.get("product_id", link.product_id)
    customer_id = data.get("customer_id", link.customer_id)
    if (product_id, customer_id) != (link.product_id, link.customer_id):
        product = get_live_reference(Product, product_id, link.company_id, "Product")
        customer = get_live_reference(Customer, customer_id, link.company_id, "Customer")
        ensure_unique(
            ProductToCustomer, {"product_id": product.id, "customer_id": customer.id},
            link.company_id, exclude_id=link.id,
            label="Product-customer relationship", message=PRODUCT_CUSTOMER_TAKEN,
        )
        patch.update(product_id=product.id, customer_id=customer.id)
    if "customer_product_code" in data:
        patch["customer_product_code"] = data["customer_product_code"]
    return update_one("ProductToCustomer", link, patch, scope)


def delete_product_customer(pk: int, scope: Scope) -> dict:
    return soft_delete("product_to_customer", pk, scope)


# ═════════════════════════════════════════════════════════════════════════════
# Recipe + RecipeDetail
# ═════════════════════════════════════════════════════════════════════════════

_RECIPE_FIELDS = ("code", "name", "description", "total_quantity", "unit")


def list_recipes(scope: Scope) -> list[Recipe]:
    return find(Recipe, scope, order_by=Recipe.created_at.desc())


def get_recipe(pk: int, scope: Scope, include_inactive: bool = False) -> Recipe:
    return get_scoped(Recipe, pk, scope, include_inactive=include_inactive, label="Recipe")


def create_recipe(data: dict, scope: Scope) -> Recipe:
    output = ItemRef.from_payload(data, OUTPUT_KINDS)
    require_fields(data, "name")
    company_id = scope.company_for_write(data.get("company_id"))
    _resolve_item(output, company_id)
    values = {f: data[f] for f in _RECIPE_FIELDS if f in data}
    return insert_one("Recipe", Recipe(
        company_id=company_id, **values, **output.columns(OUTPUT_KINDS),
    ), scope)


def update_recipe(pk: int, data: dict, scope: Scope) -> Recipe:
    recipe = get_recipe(pk, scope)
    reject_company_change(recipe, data)
    if "name" in data:
        require_fields(data, "name")
    patch = {f: data[f] for f in _RECIPE_FIELDS if f in data}
    output = ItemRef.merged(recipe, data, OUTPUT_KINDS)
    if output is not None:
        _resolve_item(output, recipe.company_id)
        patch.update(output.columns(OUTPUT_KINDS))
    return update_one("Recipe", recipe, patch, scope)


def delete_recipe(pk: int, scope: Scope) -> dict:
    """Soft-deletes the live ingredient lines first, then the recipe."""
    return soft_delete("recipe", pk, scope)


def list_recipe_details(recipe_id: int, scope: Scope) -> list[RecipeDetail]:
    get_recipe(recipe_id, scope)
    return find(
        RecipeDetail, scope, RecipeDetail.recipe_id == recipe_id,
        order_by=(RecipeDetail.sequence, RecipeDetail.id),
    )


def get_recipe_detail(pk: int, scope: Scope, include_inactive: bool = False) -> RecipeDetail:
    return get_scoped(RecipeDetail, pk, scope, include_inactive=include_inactive, label="Recipe detail")


def _check_not_own_output(recipe: Recipe, ingredient: ItemRef) -> None:
    if ingredient.kind == "semi_product" and ingredient.id == recipe.semi_product_id:
        raise ValidationError("A recipe cannot use its own output as an ingredient")


def create_recipe_detail(data: dict, scope: Scope) -> RecipeDetail:
    """Add an ingredient line; exactly one of raw_material_id / semi_product_id."""
    ingredient = ItemRef.from_payload(data, INGREDIENT_KINDS)
    require_fields(data, "recipe_id", "quantity")
    quantity = parse_positive(data["quantity"], "quantity")
    recipe = get_recipe(data["recipe_id"], scope)
    company_id = company_of_parent(recipe, data)
    _check_not_own_output(recipe, ingredient)
    _resolve_item(ingredient, company_id)
    sequence = _sequence(data, RecipeDetail, "recipe_id", recipe)
    return insert_one("RecipeDetail", RecipeDetail(
        company_id=company_id,
        recipe_id=recipe.id,
        quantity=quantity,
        unit=data.get("unit"),
        sequence=sequence,
        notes=data.get("notes", ""),
        **ingredient.columns(INGREDIENT_KINDS),
    ), scope)


def update_recipe_detail(pk: int, data: dict, scope: Scope) -> RecipeDetail:
    detail = get_recipe_detail(pk, scope)
    reject_company_change(detail, data)
    patch = {f: data[f] for f in ("unit", "notes") if f in data}
    ingredient = ItemRef.merged(detail, data, INGREDIENT_KINDS)
    if ingredient is not None:
        recipe = get_recipe(detail.recipe_id, scope)
        _check_not_own_output(recipe, ingredient)
        _resolve_item(ingredient, detail.company_id)
        patch.update(ingredient.columns(INGREDIENT_KINDS))
    if "quantity" in data:
        patch["quantity"] = parse_positive(data["quantity"], "quantity")
    if data.get("sequence") not in (None, ""):
        patch["sequence"] = parse_int(data["sequence"], "sequence")
        if patch["sequence"] <= 0:
            raise ValidationError("sequence must be a positive integer")
    return update_one("RecipeDetail", detail, patch, scope)


def delete_recipe_detail(pk: int, scope: Scope) -> dict:
    return soft_delete("recipe_detail", pk, scope)


# ═════════════════════════════════════════════════════════════════════════════
# Spec + SpecDetail
# ═════════════════════════════════════════════════════════════════════════════

_SPEC_FIELDS = ("code", "name", "description", "version")
_SPEC_DETAIL_FIELDS = ("parameter_name", "min_value", "max_value", "target_value", "unit")


def list_specs(scope: Scope, product_id: int | None = None) -> list[Spec]:
    criteria = [Spec.product_id == product_id] if product_id is not None else []
    return find(Spec, scope, *criteria, order_by=Spec.created_at.desc())


def get_spec(pk: int, scope: Scope, include_inactive: bool = False) -> Spec:
    return get_scoped(Spec, pk, scope, include_inactive=include_inactive, label="Spec")


def create_spec(data: dict, scope: Scope) -> Spec:
    require_fields(data, "name")
    company_id = scope.company_for_write(data.get("company_id"))
    product_id = data.get("product_id")
    if product_id is not None:
        product_id = get_live_reference(Product, product_id, company_id, "Product").id
    values = {f: data[f] for f in _SPEC_FIELDS if f in data}
    return insert_one("Spec", Spec(company_id=company_id, product_id=product_id, **values), scope)


def update_spec(pk: int, data: dict, scope: Scope) -> Spec:
    spec = get_spec(pk, scope)
    reject_company_change(spec, data)
    if "name" in data:
        require_fields(data, "name")
    patch = {f: data[f] for f in _SPEC_FIELDS if f in data}
    if "product_id" in data:
        product_id = data["product_id"]
        if product_id is not None:
            product_id = get_live_reference(Product, product_id, spec.company_id, "Product").id
        patch["product_id"] = product_id
    return update_one("Spec", spec, patch, scope)


def delete_spec(pk: int, scope: Scope) -> dict:
    """Soft-deletes the live parameter lines first, then the spec."""
    return soft_delete("spec", pk, scope)


def list_spec_details(spec_id: int, scope: Scope) -> list[SpecDetail]:
    get_spec(spec_id, scope)
    return find(
        SpecDetail, scope, SpecDetail.spec_id == spec_id,
        order_by=(SpecDetail.sequence, SpecDetail.id),
    )


def get_spec_detail(pk: int, scope: Scope, include_inactive: bool = False) -> SpecDetail:
    return get_scoped(SpecDetail, pk, scope, include_inactive=include_inactive, label="Spec detail")


def _parse_bounds(data: dict) -> dict:
    return {f: parse_number(data[f], f) for f in ("min_value", "max_value") if f in data}


def _check_bounds(min_value, max_value) -> None:
    if min_value is not None and max_value is not None and min_value > max_value:
        raise ValidationError("min_value cannot be greater than max_value")


def create_spec_detail(data: dict, scope: Scope) -> SpecDetail:
    require_fields(data, "spec_id", "parameter_name")
    spec = get_spec(data["spec_id"], scope)
    company_id = company_of_parent(spec, data)
    values = {f: data[f] for f in _SPEC_DETAIL_FIELDS if f in data}
    values.update(_parse_bounds(data))
    _check_bounds(values.get("min_value"), values.get("max_value"))
    if "is_mandatory" in data:
        values["is_mandatory"] = parse_bool(data["is_mandatory"], "is_mandatory")
    sequence = _sequence(data, SpecDetail, "spec_id", spec)
    return insert_one("SpecDetail", SpecDetail(
        company_id=company_id, spec_id=spec.id, sequence=sequence, **values,
    ), scope)


def update_spec_detail(pk: int, data: dict, scope: Scope) -> SpecDetail:
    detail = get_spec_detail(pk, scope)
    reject_company_change(detail, data)
    if "parameter_name" in data:
        require_fields(data, "parameter_name")
    patch = {f: data[f] for f in _SPEC_DETAIL_FIELDS if f in data}
    patch.update(_parse_bounds(data))
    _check_bounds(
        patch.get("min_value", detail.min_value), patch.get("max_value", detail.max_value),
    )
    if "is_mandatory" in data:
        patch["is_mandatory"] = parse_bool(data["is_mandatory"], "is_mandatory")
    if data.get("sequence") not in (None, ""):
        patch["sequence"] = parse_int(data["sequence"], "sequence")
        if patch["sequence"] <= 0:
            raise ValidationError("sequence must be a positive integer")
    return update_one("SpecDetail", detail, patch, scope)


def delete_spec_detail(pk: int, scope: Scope) -> dict:
    return soft_delete("spec_detail", pk, scope)


# ═════════════════════════════════════════════════════════════════════════════
# Warehouse + WarehouseInventory
# ═════════════════════════════════════════════════════════════════════════════

_WAREHOUSE_FIELDS = ("code", "name", "location")


def list_warehouses(scope: Scope) -> list[Warehouse]:
    return find(Warehouse, scope, order_by=Warehouse.name)


def get_warehouse(pk: int, scope: Scope, include_inactive: bool = False) -> Warehouse:
    return get_scoped(Warehouse, pk, scope, include_inactive=include_inactive, label="Warehouse")


def create_warehouse(data: dict, scope: Scope) -> Warehouse:
    require_fields(data, "name")
    company_id = scope.company_for_write(data.get("company_id"))
    values = {f: data[f] for f in _WAREHOUSE_FIELDS if f in data}
    return insert_one("Warehouse", Warehouse(company_id=company_id, **values), scope)


def update_warehouse(pk: int, data: dict, scope: Scope) -> Warehouse:
    warehouse = get_warehouse(pk, scope)
    reject_company_change(warehouse, data)
    if "name" in data:
        require_fields(data, "name")
    patch = {f: data[f] for f in _WAREHOUSE_FIELDS if f in data}
    return update_one("Warehouse", warehouse, patch, scope)


def delete_warehouse(pk: int, scope: Scope) -> dict:
    return soft_delete("warehouse", pk, scope)


def list_inventory(warehouse_id: int, scope: Scope) -> list[WarehouseInventory]:
    get_warehouse(warehouse_id, scope)
    return find(
        WarehouseInventory, scope, WarehouseInventory.warehouse_id == warehouse_id,
        order_by=WarehouseInventory.id,
    )


def get_inventory(pk: int, scope: Scope, include_inactive: bool = False) -> WarehouseInventory:
    return get_scoped(
        WarehouseInventory, pk, scope, include_inactive=include_inactive, label="Inventory record",
    )


def _stock_quantity(value) -> float:
    try:
        quantity = float(value)
    except (TypeError, ValueError):
        raise ValidationError("quantity must be a number")
    if quantity < 0:
        raise ValidationError("quantity cannot be negative")
    return quantity


def create_inventory(data: dict, scope: Scope) -> WarehouseInventory:
    """Stock row for exactly one of product / raw material / semi-product."""
    item = ItemRef.from_payload(data, STOCK_KINDS)
    require_fields(data, "warehouse_id")
    warehouse = get_warehouse(data["warehouse_id"], scope)
    company_id = company_of_parent(warehouse, data)
    _resolve_item(item, company_id)
    return insert_one("WarehouseInventory", WarehouseInventory(
        company_id=company_id,
        warehouse_id=warehouse.id,
        quantity=_stock_quantity(data.get("quantity", 0)),
        unit=data.get("unit"),
        **item.columns(STOCK_KINDS),
    ), scope)


def update_inventory(pk: int, data: dict, scope: Scope) -> WarehouseInventory:
    row = get_inventory(pk, scope)
    reject_company_change(row, data)
    patch = {}
    item = ItemRef.merged(row, data, STOCK_KINDS)
    if item is not None:
        _resolve_item(item, row.company_id)
        patch.update(item.columns(STOCK_KINDS))
    if "quantity" in data:
        patch["quantity"] = _stock_quantity(data["quantity"])
    if "unit" in data:
        patch["unit"] = data["unit"]
    return update_one("WarehouseInventory", row, patch, scope)


def delete_inventory(pk: int, scope: Scope) -> dict:
    return soft_delete("warehouse_inventory", pk, scope)
