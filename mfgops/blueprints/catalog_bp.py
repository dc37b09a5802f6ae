"""
Catalog blueprint — products, customers, materials, recipes, specs, warehouses.

Every catalog resource exposes the same five routes:

    GET    /api/v1/<resource>            — list live rows (paginated)
    POST   /api/v1/<resource>            — create
    GET    /api/v1/<resource>/<id>       — detail (?include_inactive=true for audit)
    PUT    /api/v1/<resource>/<id>       — update
    DELETE /api/v1/<resource>/<id>       — dependency-checked soft delete

Resources: products, customers, product-customers, raw-materials,
semi-products, recipes, recipe-details, specs, spec-details, warehouses,
inventory.

Nested listings:
    GET /api/v1/recipes/<id>/details
    GET /api/v1/specs/<id>/details
    GET /api/v1/warehouses/<id>/inventory
"""

import logging

from flask import Blueprint, request

from mfgops.blueprints import current_scope, include_inactive, json_body, ok, ok_list
from mfgops.services import catalog_service as svc

logger = logging.getLogger(__name__)

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/v1")


def _crud(path: str, name: str, *, list_fn, get_fn, create_fn, update_fn, delete_fn):
    """Register list/create/get/update/delete views for one resource."""

    def list_view():
        return ok_list(list_fn(current_scope()))

    def create_view():
        return ok(create_fn(json_body(), current_scope()).to_dict(), 201)

    def get_view(pk):
        return ok(get_fn(pk, current_scope(), include_inactive=include_inactive()).to_dict())

    def update_view(pk):
        return ok(update_fn(pk, json_body(), current_scope()).to_dict())

    def delete_view(pk):
        return ok(delete_fn(pk, current_scope()))

    if list_fn is not None:
        catalog_bp.add_url_rule(f"/{path}", f"list_{name}", list_view, methods=["GET"])
    catalog_bp.add_url_rule(f"/{path}", f"create_{name}", create_view, methods=["POST"])
    catalog_bp.add_url_rule(f"/{path}/<int:pk>", f"get_{name}", get_view, methods=["GET"])
    catalog_bp.add_url_rule(f"/{path}/<int:pk>", f"update_{name}", update_view, methods=["PUT"])
    catalog_bp.add_url_rule(f"/{path}/<int:pk>", f"delete_{name}", delete_view, methods=["DELETE"])


_crud(
    "products", "product",
    list_fn=svc.list_products, get_fn=svc.get_product, create_fn=svc.create_product,
    update_fn=svc.update_product, delete_fn=svc.delete_product,
)
_crud(
    "customers", "customer",
    list_fn=svc.list_customers, get_fn=svc.get_customer, create_fn=svc.create_customer,
    update_fn=svc.update_customer, delete_fn=svc.delete_customer,
)
_crud(
    "product-customers", "product_customer",
    list_fn=None, get_fn=svc.get_product_customer, create_fn=svc.create_product_customer,
    update_fn=svc.update_product_customer, delete_fn=svc.delete_product_customer,
)
_crud(
    "raw-materials", "raw_material",
    list_fn=svc.list_raw_materials, get_fn=svc.get_raw_material, create_fn=svc.create_raw_material,
    update_fn=svc.update_raw_material, delete_fn=svc.delete_raw_material,
)
_crud(
    "semi-products", "semi_product",
    list_fn=svc.list_semi_products, get_fn=svc.get_semi_product, create_fn=svc.create_semi_product,
    update_fn=svc.update_semi_product, delete_fn=svc.delete_semi_product,
)
_crud(
    "recipes", "recipe",
    list_fn=svc.list_recipes, get_fn=svc.get_recipe, create_fn=svc.create_recipe,
    update_fn=svc.update_recipe, delete_fn=svc.delete_recipe,
)
_crud(
    "recipe-details", "recipe_detail",
    list_fn=None, get_fn=svc.get_recipe_detail, create_fn=svc.create_recipe_detail,
    update_fn=svc.update_recipe_detail, delete_fn=svc.delete_recipe_detail,
)
_crud(
    "specs", "spec",
    list_fn=None, get_fn=svc.get_spec, create_fn=svc.create_spec,
    update_fn=svc.update_spec, delete_fn=svc.delete_spec,
)
_crud(
    "spec-details", "spec_detail",
    list_fn=None, get_fn=svc.get_spec_detail, create_fn=svc.create_spec_detail,
    update_fn=svc.update_spec_detail, delete_fn=svc.delete_spec_detail,
)
_crud(
    "warehouses", "warehouse",
    list_fn=svc.list_warehouses, get_fn=svc.get_warehouse, create_fn=svc.create_warehouse,
    update_fn=svc.update_warehouse, delete_fn=svc.delete_warehouse,
)
_crud(
    "inventory", "inventory",
    list_fn=None, get_fn=svc.get_inventory, create_fn=svc.create_inventory,
    update_fn=svc.update_inventory, delete_fn=svc.delete_inventory,
)


# ── Filtered / nested listings ──────────────────────────────────────────────


@catalog_bp.route("/product-customers", methods=["GET"])
def list_product_customers():
    rows = svc.list_product_customers(
        current_scope(),
        product_id=request.args.get("product_id", type=int),
        customer_id=request.args.get("customer_id", type=int),
    )
    return ok_list(rows)


@catalog_bp.route("/specs", methods=["GET"])
def list_specs():
    return ok_list(svc.list_specs(current_scope(), product_id=request.args.get("product_id", type=int)))


@catalog_bp.route("/recipes/<int:recipe_id>/details", methods=["GET"])
def list_recipe_details(recipe_id):
    return ok_list(svc.list_recipe_details(recipe_id, current_scope()))


@catalog_bp.route("/specs/<int:spec_id>/details", methods=["GET"])
def list_spec_details(spec_id):
    return ok_list(svc.list_spec_details(spec_id, current_scope()))


@catalog_bp.route("/warehouses/<int:warehouse_id>/inventory", methods=["GET"])
def list_inventory(warehouse_id):
    return ok_list(svc.list_inventory(warehouse_id, current_scope()))
