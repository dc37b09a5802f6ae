"""
Uniqueness enforcer and sequencer tests.

    - check_unique / ensure_unique: live rows only, per company, exclude_id
    - duplicate codes through the catalog service (409 message text)
    - role names and group-role pairs through the access service
    - next_sequence: first child, max + 10, soft-deleted siblings ignored
"""

import pytest

from mfgops.core.exceptions import ConflictError, ForbiddenError, ValidationError
from mfgops.models import db
from mfgops.models.catalog import RawMaterial, Recipe, RecipeDetail, SemiProduct
from mfgops.services import access_service, catalog_service
from mfgops.services.sequencer import next_sequence
from mfgops.services.uniqueness import check_unique, ensure_unique


def _material(company_id, code, status=True):
    rm = RawMaterial(company_id=company_id, code=code, name=code, status=status)
    db.session.add(rm)
    db.session.commit()
    return rm


# ═════════════════════════════════════════════════════════════════════════════
# check_unique / ensure_unique
# ═════════════════════════════════════════════════════════════════════════════


class TestCheckUnique:
    def test_free_value(self, company_a):
        assert check_unique(RawMaterial, {"code": "RM-1"}, company_a.id)

    def test_taken_value(self, company_a):
        _material(company_a.id, "RM-1")
        assert not check_unique(RawMaterial, {"code": "RM-1"}, company_a.id)

    def test_other_company_does_not_collide(self, company_a, company_b):
        _material(company_b.id, "RM-1")
        assert check_unique(RawMaterial, {"code": "RM-1"}, company_a.id)

    def test_soft_deleted_row_does_not_collide(self, company_a):
        _material(company_a.id, "RM-1", status=False)
        assert check_unique(RawMaterial, {"code": "RM-1"}, company_a.id)

    def test_exclude_self_on_update(self, company_a):
        rm = _material(company_a.id, "RM-1")
        assert check_unique(RawMaterial, {"code": "RM-1"}, company_a.id, exclude_id=rm.id)

    def test_ensure_unique_default_message(self, company_a):
        _material(company_a.id, "RM-1")
        with pytest.raises(ConflictError) as exc_info:
            ensure_unique(RawMaterial, {"code": "RM-1"}, company_a.id, label="Raw material")
        assert exc_info.value.message == "Raw material with code 'RM-1' already exists"
        assert exc_info.value.status_code == 409


class TestCatalogCodes:
    def test_duplicate_product_code(self, scope_a):
        catalog_service.create_product({"code": "P-1", "name": "Widget"}, scope_a)
        with pytest.raises(ConflictError, match="Product with code 'P-1' already exists"):
            catalog_service.create_product({"code": "P-1", "name": "Other"}, scope_a)

    def test_same_code_in_two_companies(self, scope_a, scope_b):
        a = catalog_service.create_semi_product({"code": "S-1", "name": "Dough"}, scope_a)
        b = catalog_service.create_semi_product({"code": "S-1", "name": "Dough"}, scope_b)
        assert a.company_id != b.company_id

    def test_code_reusable_after_soft_delete(self, scope_a):
        rm = catalog_service.create_raw_material({"code": "RM-9", "name": "Flour"}, scope_a)
        catalog_service.delete_raw_material(rm.id, scope_a)
        again = catalog_service.create_raw_material({"code": "RM-9", "name": "Flour"}, scope_a)
        assert again.id != rm.id

    def test_update_to_taken_code(self, scope_a):
        catalog_service.create_raw_material({"code": "RM-1", "name": "Flour"}, scope_a)
        rm2 = catalog_service.create_raw_material({"code": "RM-2", "name": "Sugar"}, scope_a)
        with pytest.raises(ConflictError):
            catalog_service.update_raw_material(rm2.id, {"code": "RM-1"}, scope_a)
        # Re-saving the same code is not a collision with itself
        assert catalog_service.update_raw_material(rm2.id, {"code": "RM-2"}, scope_a).code == "RM-2"

    def test_duplicate_product_customer_pair(self, scope_a):
        p = catalog_service.create_product({"code": "P-1", "name": "Widget"}, scope_a)
        c = catalog_service.create_customer({"name": "Retailer"}, scope_a)
        catalog_service.create_product_customer({"product_id": p.id, "customer_id": c.id}, scope_a)
        with pytest.raises(ConflictError, match="product-customer relationship already exists"):
            catalog_service.create_product_customer({"product_id": p.id, "customer_id": c.id}, scope_a)


class TestAccessUniqueness:
    def test_duplicate_role_name(self, admin_a):
        access_service.create_role({"name": "Operator"}, admin_a)
        with pytest.raises(ConflictError, match="Role with this name already exists in your company"):
            access_service.create_role({"name": "Operator"}, admin_a)

    def test_role_rename_collision(self, admin_a):
        access_service.create_role({"name": "Operator"}, admin_a)
        planner = access_service.create_role({"name": "Planner"}, admin_a)
        with pytest.raises(ConflictError, match="Another role with this name"):
            access_service.update_role(planner.id, {"name": "Operator"}, admin_a)

    def test_plain_user_cannot_create_roles(self, scope_a):
        with pytest.raises(ForbiddenError):
            access_service.create_role({"name": "Operator"}, scope_a)

    def test_duplicate_group_role_pair(self, admin_a):
        group = access_service.create_group({"name": "Line 1"}, admin_a)
        role = access_service.create_role({"name": "Operator"}, admin_a)
        access_service.create_group_role({"group_id": group.id, "role_id": role.id}, admin_a)
        with pytest.raises(ConflictError, match="group-role association already exists"):
            access_service.create_group_role({"group_id": group.id, "role_id": role.id}, admin_a)


# ═════════════════════════════════════════════════════════════════════════════
# Sequencer
# ═════════════════════════════════════════════════════════════════════════════


class TestSequencer:
    def _recipe(self, scope):
        semi = catalog_service.create_semi_product({"code": "S-1", "name": "Dough"}, scope)
        return catalog_service.create_recipe({"name": "Dough mix", "semi_product_id": semi.id}, scope)

    def test_first_child_gets_ten(self, scope_a):
        recipe = self._recipe(scope_a)
        assert next_sequence(RecipeDetail, "recipe_id", recipe.id, recipe.company_id) == 10

    def test_next_is_max_plus_ten(self, scope_a):
        recipe = self._recipe(scope_a)
        rm = catalog_service.create_raw_material({"code": "RM-1", "name": "Flour"}, scope_a)
        first = catalog_service.create_recipe_detail(
            {"recipe_id": recipe.id, "raw_material_id": rm.id, "quantity": 2}, scope_a,
        )
        manual = catalog_service.create_recipe_detail(
            {"recipe_id": recipe.id, "raw_material_id": rm.id, "quantity": 1, "sequence": 35}, scope_a,
        )
        third = catalog_service.create_recipe_detail(
            {"recipe_id": recipe.id, "raw_material_id": rm.id, "quantity": 1}, scope_a,
        )
        assert (first.sequence, manual.sequence, third.sequence) == (10, 35, 45)

    def test_soft_deleted_children_ignored(self, scope_a):
        recipe = self._recipe(scope_a)
        rm = catalog_service.create_raw_material({"code": "RM-1", "name": "Flour"}, scope_a)
        line = catalog_service.create_recipe_detail(
            {"recipe_id": recipe.id, "raw_material_id": rm.id, "quantity": 2, "sequence": 50}, scope_a,
        )
        catalog_service.delete_recipe_detail(line.id, scope_a)
        assert next_sequence(RecipeDetail, "recipe_id", recipe.id, recipe.company_id) == 10

    def test_spec_details_sequenced(self, scope_a):
        spec = catalog_service.create_spec({"name": "Widget spec"}, scope_a)
        d1 = catalog_service.create_spec_detail({"spec_id": spec.id, "parameter_name": "Length"}, scope_a)
        d2 = catalog_service.create_spec_detail({"spec_id": spec.id, "parameter_name": "Width"}, scope_a)
        assert (d1.sequence, d2.sequence) == (10, 20)
        listed = catalog_service.list_spec_details(spec.id, scope_a)
        assert [d.parameter_name for d in listed] == ["Length", "Width"]


def test_recipe_rejects_own_output_as_ingredient(scope_a):
    semi = catalog_service.create_semi_product({"code": "S-1", "name": "Dough"}, scope_a)
    recipe = catalog_service.create_recipe({"name": "Dough mix", "semi_product_id": semi.id}, scope_a)
    with pytest.raises(ValidationError):
        catalog_service.create_recipe_detail(
            {"recipe_id": recipe.id, "semi_product_id": semi.id, "quantity": 1}, scope_a,
        )
    assert db.session.get(Recipe, recipe.id).semi_product_id == semi.id
    assert db.session.get(SemiProduct, semi.id).status is True
