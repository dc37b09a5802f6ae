"""
Catalog input validation tests.

Exactly-one-of item references (400, nothing written):
    - recipe detail ingredient: raw material XOR semi-product
    - recipe detail update: switching variants needs the old one nulled
    - warehouse inventory: product XOR raw material XOR semi-product

Spec detail bounds:
    - min_value / max_value must be numeric
    - min_value <= max_value on create and on update
"""

import pytest

from mfgops.core.exceptions import ValidationError
from mfgops.models import db
from mfgops.models.catalog import RecipeDetail, WarehouseInventory
from mfgops.services import catalog_service


# ═════════════════════════════════════════════════════════════════════════════
# Helper Factories
# ═════════════════════════════════════════════════════════════════════════════


@pytest.fixture()
def items(scope_a):
    semi = catalog_service.create_semi_product({"code": "S-1", "name": "Dough"}, scope_a)
    return {
        "product": catalog_service.create_product({"code": "P-1", "name": "Bread"}, scope_a),
        "raw_material": catalog_service.create_raw_material({"code": "RM-1", "name": "Flour"}, scope_a),
        "semi_product": catalog_service.create_semi_product({"code": "S-2", "name": "Starter"}, scope_a),
        "recipe": catalog_service.create_recipe({"name": "Dough mix", "semi_product_id": semi.id}, scope_a),
        "warehouse": catalog_service.create_warehouse({"name": "Main"}, scope_a),
    }


def _refs(items, *kinds):
    return {f"{kind}_id": items[kind].id for kind in kinds}


def _detail_count(recipe_id):
    return db.session.query(RecipeDetail).filter_by(recipe_id=recipe_id).count()


# ═════════════════════════════════════════════════════════════════════════════
# Recipe detail ingredient
# ═════════════════════════════════════════════════════════════════════════════


class TestRecipeDetailIngredient:
    @pytest.mark.parametrize("kinds", [
        ("raw_material", "semi_product"),
        (),
    ], ids=["both", "neither"])
    def test_create_requires_exactly_one(self, scope_a, items, kinds):
        payload = {"recipe_id": items["recipe"].id, "quantity": 1, **_refs(items, *kinds)}
        with pytest.raises(ValidationError, match="Either raw_material_id or semi_product_id"):
            catalog_service.create_recipe_detail(payload, scope_a)
        assert _detail_count(items["recipe"].id) == 0

    def test_blank_id_counts_as_missing(self, scope_a, items):
        payload = {
            "recipe_id": items["recipe"].id, "quantity": 1,
            "raw_material_id": "", "semi_product_id": None,
        }
        with pytest.raises(ValidationError):
            catalog_service.create_recipe_detail(payload, scope_a)

    def test_switch_without_nulling_old_variant(self, scope_a, items):
        line = catalog_service.create_recipe_detail(
            {"recipe_id": items["recipe"].id, "quantity": 1, **_refs(items, "raw_material")}, scope_a,
        )
        with pytest.raises(ValidationError, match="but not both"):
            catalog_service.update_recipe_detail(line.id, _refs(items, "semi_product"), scope_a)
        db.session.expire_all()
        assert db.session.get(RecipeDetail, line.id).raw_material_id == items["raw_material"].id

    def test_nulling_the_only_variant(self, scope_a, items):
        line = catalog_service.create_recipe_detail(
            {"recipe_id": items["recipe"].id, "quantity": 1, **_refs(items, "raw_material")}, scope_a,
        )
        with pytest.raises(ValidationError):
            catalog_service.update_recipe_detail(line.id, {"raw_material_id": None}, scope_a)

    def test_switch_with_old_variant_nulled(self, scope_a, items):
        line = catalog_service.create_recipe_detail(
            {"recipe_id": items["recipe"].id, "quantity": 1, **_refs(items, "raw_material")}, scope_a,
        )
        updated = catalog_service.update_recipe_detail(
            line.id, {"raw_material_id": None, **_refs(items, "semi_product")}, scope_a,
        )
        assert updated.raw_material_id is None
        assert updated.semi_product_id == items["semi_product"].id


# ═════════════════════════════════════════════════════════════════════════════
# Warehouse inventory item
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.parametrize("kinds", [
    ("product", "raw_material"),
    ("raw_material", "semi_product"),
    ("product", "raw_material", "semi_product"),
    (),
], ids=["product+raw", "raw+semi", "all", "neither"])
def test_inventory_requires_exactly_one_item(scope_a, items, kinds):
    payload = {"warehouse_id": items["warehouse"].id, "quantity": 5, **_refs(items, *kinds)}
    with pytest.raises(ValidationError, match="Exactly one of"):
        catalog_service.create_inventory(payload, scope_a)
    assert db.session.query(WarehouseInventory).count() == 0


def test_inventory_with_one_item(scope_a, items):
    row = catalog_service.create_inventory(
        {"warehouse_id": items["warehouse"].id, "quantity": 5, **_refs(items, "semi_product")}, scope_a,
    )
    assert row.semi_product_id == items["semi_product"].id
    assert row.product_id is None and row.raw_material_id is None


# ═════════════════════════════════════════════════════════════════════════════
# Spec detail bounds
# ═════════════════════════════════════════════════════════════════════════════


class TestSpecDetailBounds:
    @pytest.fixture()
    def spec(self, scope_a):
        return catalog_service.create_spec({"name": "Widget spec"}, scope_a)

    @pytest.mark.parametrize("field", ["min_value", "max_value"])
    def test_non_numeric_bound_rejected(self, scope_a, spec, field):
        payload = {"spec_id": spec.id, "parameter_name": "Length", "min_value": "1", "max_value": "5"}
        payload[field] = "abc"
        with pytest.raises(ValidationError, match=f"{field} must be a number"):
            catalog_service.create_spec_detail(payload, scope_a)

    def test_numeric_strings_stored_as_numbers(self, scope_a, spec):
        detail = catalog_service.create_spec_detail(
            {"spec_id": spec.id, "parameter_name": "Length", "min_value": "1.5", "max_value": "3"}, scope_a,
        )
        assert detail.min_value == 1.5
        assert detail.max_value == 3.0

    def test_min_above_max_rejected(self, scope_a, spec):
        with pytest.raises(ValidationError, match="cannot be greater"):
            catalog_service.create_spec_detail(
                {"spec_id": spec.id, "parameter_name": "Length", "min_value": 10, "max_value": "9"}, scope_a,
            )

    def test_update_checks_against_stored_bound(self, scope_a, spec):
        detail = catalog_service.create_spec_detail(
            {"spec_id": spec.id, "parameter_name": "Length", "min_value": 1, "max_value": 5}, scope_a,
        )
        with pytest.raises(ValidationError, match="max_value must be a number"):
            catalog_service.update_spec_detail(detail.id, {"max_value": "five"}, scope_a)
        with pytest.raises(ValidationError, match="cannot be greater"):
            catalog_service.update_spec_detail(detail.id, {"min_value": "6"}, scope_a)
        updated = catalog_service.update_spec_detail(detail.id, {"max_value": None}, scope_a)
        assert updated.max_value is None


# ═════════════════════════════════════════════════════════════════════════════
# HTTP layer
# ═════════════════════════════════════════════════════════════════════════════


def test_api_recipe_detail_with_both_ingredients_is_400(client, auth_headers, admin_a, items):
    res = client.post(
        "/api/v1/recipe-details",
        json={"recipe_id": items["recipe"].id, "quantity": 1, **_refs(items, "raw_material", "semi_product")},
        headers=auth_headers(admin_a),
    )
    assert res.status_code == 400
    body = res.get_json()
    assert body["code"] == "ERR_VALIDATION"
    assert body["error"] == "Either raw_material_id or semi_product_id must be provided, but not both"


def test_api_non_numeric_spec_bound_is_400(client, auth_headers, admin_a, scope_a):
    spec = catalog_service.create_spec({"name": "Widget spec"}, scope_a)
    res = client.post(
        "/api/v1/spec-details",
        json={"spec_id": spec.id, "parameter_name": "Length", "min_value": "abc"},
        headers=auth_headers(admin_a),
    )
    assert res.status_code == 400
    assert res.get_json()["details"] == {"min_value": "abc"}
