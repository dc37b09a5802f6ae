"""
Catalog domain models — products, materials, recipes, specs, warehouses.

Models:
    - Product, Customer, ProductToCustomer
    - RawMaterial, SemiProduct:  coded items, code unique per company
    - Recipe:                    produces exactly one of {Product, SemiProduct}
    - RecipeDetail:              ingredient line, exactly one of {RawMaterial, SemiProduct}
    - Spec, SpecDetail:          quality specification and its parameter lines
    - Warehouse, WarehouseInventory:
                                 stock row for exactly one of {Product, RawMaterial, SemiProduct}

Architecture:
    Recipe ──1:N──▶ RecipeDetail  (ordered by sequence, soft-deleted with the recipe)
    Spec   ──1:N──▶ SpecDetail    (ordered by sequence, soft-deleted with the spec)
    Warehouse ──1:N──▶ WarehouseInventory

Uniqueness of codes and pairs is enforced in the service layer; the tables
carry no unique constraints for them.
"""

from mfgops.models import db
from mfgops.models.base import TenantModel, exactly_one_of


class Product(TenantModel):
    __tablename__ = "products"

    code = db.Column(db.String(50), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    unit = db.Column(db.String(20), default="pcs")

    def to_dict(self):
        result = self._audit_dict()
        result.update({
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "unit": self.unit,
        })
        return result


class Customer(TenantModel):
    __tablename__ = "customers"

    name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(50), nullable=True)
    address = db.Column(db.Text, default="")

    def to_dict(self):
        result = self._audit_dict()
        result.update({
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
        })
        return result


class ProductToCustomer(TenantModel):
    __tablename__ = "product_to_customers"

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    customer_product_code = db.Column(db.String(50), nullable=True)

    def to_dict(self):
        result = self._audit_dict()
        result.update({
            "product_id": self.product_id,
            "customer_id": self.customer_id,
            "customer_product_code": self.customer_product_code,
        })
        return result


class RawMaterial(TenantModel):
    __tablename__ = "raw_materials"

    code = db.Column(db.String(50), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    unit = db.Column(db.String(20), default="kg")
    unit_cost = db.Column(db.Numeric(12, 4), nullable=True)

    def to_dict(self):
        result = self._audit_dict()
        result.update({
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "unit": self.unit,
            "unit_cost": float(self.unit_cost) if self.unit_cost is not None else None,
        })
        return result


class SemiProduct(TenantModel):
    __tablename__ = "semi_products"

    code = db.Column(db.String(50), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    unit = db.Column(db.String(20), default="pcs")

    def to_dict(self):
        result = self._audit_dict()
        result.update({
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "unit": self.unit,
        })
        return result


class Recipe(TenantModel):
    """Bill of materials producing exactly one product or semi-product."""

    __tablename__ = "recipes"

    code = db.Column(db.String(50), nullable=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)
    semi_product_id = db.Column(
        db.Integer, db.ForeignKey("semi_products.id"), nullable=True, index=True,
    )
    total_quantity = db.Column(db.Float, nullable=True)
    unit = db.Column(db.String(20), nullable=True)

    __table_args__ = (
        exactly_one_of("ck_recipe_output", "product_id", "semi_product_id"),
    )

    def to_dict(self):
        result = self._audit_dict()
        result.update({
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "product_id": self.product_id,
            "semi_product_id": self.semi_product_id,
            "total_quantity": self.total_quantity,
            "unit": self.unit,
        })
        return result


class RecipeDetail(TenantModel):
    """Ingredient line of a recipe; ``sequence`` is display order only."""

    __tablename__ = "recipe_details"

    recipe_id = db.Column(db.Integer, db.ForeignKey("recipes.id"), nullable=False, index=True)
    raw_material_id = db.Column(
        db.Integer, db.ForeignKey("raw_materials.id"), nullable=True, index=True,
    )
    semi_product_id = db.Column(
        db.Integer, db.ForeignKey("semi_products.id"), nullable=True, index=True,
    )
    quantity = db.Column(db.Float, nullable=False)
    unit = db.Column(db.String(20), nullable=True)
    sequence = db.Column(db.Integer, nullable=False)
    notes = db.Column(db.Text, default="")

    __table_args__ = (
        exactly_one_of("ck_recipe_detail_ingredient", "raw_material_id", "semi_product_id"),
        db.CheckConstraint("quantity > 0", name="ck_recipe_detail_quantity"),
    )

    def to_dict(self):
        result = self._audit_dict()
        result.update({
            "recipe_id": self.recipe_id,
            "raw_material_id": self.raw_material_id,
            "semi_product_id": self.semi_product_id,
            "quantity": self.quantity,
            "unit": self.unit,
            "sequence": self.sequence,
            "notes": self.notes,
        })
        return result


class Spec(TenantModel):
    __tablename__ = "specs"

    code = db.Column(db.String(50), nullable=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)
    version = db.Column(db.String(20), default="1.0")

    def to_dict(self):
        result = self._audit_dict()
        result.update({
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "product_id": self.product_id,
            "version": self.version,
        })
        return result


class SpecDetail(TenantModel):
    """Measured parameter of a spec with its target window."""

    __tablename__ = "spec_details"

    spec_id = db.Column(db.Integer, db.ForeignKey("specs.id"), nullable=False, index=True)
    parameter_name = db.Column(db.String(200), nullable=False)
    min_value = db.Column(db.Float, nullable=True)
    max_value = db.Column(db.Float, nullable=True)
    target_value = db.Column(db.String(100), nullable=True)
    unit = db.Column(db.String(20), nullable=True)
    is_mandatory = db.Column(db.Boolean, nullable=False, default=True)
    sequence = db.Column(db.Integer, nullable=False)

    def to_dict(self):
        result = self._audit_dict()
        result.update({
            "spec_id": self.spec_id,
            "parameter_name": self.parameter_name,
            "min_value": self.min_value,
            "max_value": self.max_value,
            "target_value": self.target_value,
            "unit": self.unit,
            "is_mandatory": self.is_mandatory,
            "sequence": self.sequence,
        })
        return result


class Warehouse(TenantModel):
    __tablename__ = "warehouses"

    code = db.Column(db.String(50), nullable=True)
    name = db.Column(db.String(200), nullable=False)
    location = db.Column(db.String(255), default="")

    def to_dict(self):
        result = self._audit_dict()
        result.update({"code": self.code, "name": self.name, "location": self.location})
        return result


class WarehouseInventory(TenantModel):
    __tablename__ = "warehouse_inventories"

    warehouse_id = db.Column(
        db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True,
    )
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True)
    raw_material_id = db.Column(db.Integer, db.ForeignKey("raw_materials.id"), nullable=True)
    semi_product_id = db.Column(db.Integer, db.ForeignKey("semi_products.id"), nullable=True)
    quantity = db.Column(db.Float, nullable=False, default=0)
    unit = db.Column(db.String(20), nullable=True)

    __table_args__ = (
        exactly_one_of(
            "ck_inventory_item", "product_id", "raw_material_id", "semi_product_id",
        ),
        db.CheckConstraint("quantity >= 0", name="ck_inventory_quantity"),
    )

    def to_dict(self):
        result = self._audit_dict()
        result.update({
            "warehouse_id": self.warehouse_id,
            "product_id": self.product_id,
            "raw_material_id": self.raw_material_id,
            "semi_product_id": self.semi_product_id,
            "quantity": self.quantity,
            "unit": self.unit,
        })
        return result
