"""
Production workflow domain models.

Models:
    - ProductionPlan:           dated bundle of production orders
    - ProductionOrder:          make a quantity of exactly one of {Product, SemiProduct}
    - ProductionStage:          ordered step of an order (sequence_number unique per order)
    - ProductionStageResource:  machine / labor / tool / material used by a stage
    - QualityCheck:             inspection result for a stage; the only writer of
                                ProductionStage.quality_approved
    - QualityCheckItem:         measured parameter of a check
    - ProductionOutput:         produced quantity recorded against an order
    - OutputQualityCheck:       output ↔ quality check link

Architecture:
    ProductionPlan ──1:N──▶ ProductionOrder ──1:N──▶ ProductionStage ──1:N──▶ QualityCheck
    ProductionStage ──1:N──▶ ProductionStageResource
    QualityCheck ──1:N──▶ QualityCheckItem
    ProductionOrder ──1:N──▶ ProductionOutput ──N:M──▶ QualityCheck (via OutputQualityCheck)

Lifecycle states:
    ProductionPlan:   draft → active → completed  |  draft/active → cancelled  |  active → draft
    ProductionOrder:  draft → pending → in_progress → completed  |  any non-terminal → cancelled
    ProductionStage:  pending → in_progress → completed  |  pending/in_progress → cancelled

The workflow status columns are named ``plan_status`` / ``order_status`` /
``stage_status``; ``status`` is the soft-delete flag every table carries.
"""

from mfgops.models import db
from mfgops.models.base import TenantModel, exactly_one_of, isoformat


# ── Constants ────────────────────────────────────────────────────────────────

PLAN_STATUSES = ("draft", "active", "completed", "cancelled")
ORDER_STATUSES = ("draft", "pending", "in_progress", "completed", "cancelled")
STAGE_STATUSES = ("pending", "in_progress", "completed", "cancelled")
PLAN_PRIORITIES = ("low", "normal", "high", "urgent")
RESOURCE_TYPES = ("machine", "labor", "tool", "material")
OUTPUT_QUALITY_STATUSES = ("pending_inspection", "passed", "failed", "rework")

TERMINAL_PLAN_STATUSES = frozenset({"completed", "cancelled"})
TERMINAL_ORDER_STATUSES = frozenset({"completed", "cancelled"})
TERMINAL_STAGE_STATUSES = frozenset({"completed", "cancelled"})


def _in_clause(column, values):
    return f"{column} IN (" + ",".join(f"'{v}'" for v in values) + ")"


# ── Lifecycle Transition Guards ──────────────────────────────────────────────

PLAN_TRANSITIONS = {
    "draft":     ["active", "cancelled"],
    "active":    ["draft", "completed", "cancelled"],
    "completed": [],
    "cancelled": [],
}

ORDER_TRANSITIONS = {
    "draft":       ["pending", "cancelled"],
    "pending":     ["in_progress", "cancelled"],
    "in_progress": ["completed", "cancelled"],
    "completed":   [],
    "cancelled":   [],
}

STAGE_TRANSITIONS = {
    "pending":     ["in_progress", "cancelled"],
    "in_progress": ["completed", "cancelled"],
    "completed":   [],
    "cancelled":   [],
}


def validate_plan_transition(old_status, new_status):
    """Return True if ProductionPlan status transition is valid."""
    return new_status in PLAN_TRANSITIONS.get(old_status, [])


def validate_order_transition(old_status, new_status):
    """Return True if ProductionOrder status transition is valid."""
    return new_status in ORDER_TRANSITIONS.get(old_status, [])


def validate_stage_transition(old_status, new_status):
    """Return True if ProductionStage status transition is valid."""
    return new_status in STAGE_TRANSITIONS.get(old_status, [])


# ═════════════════════════════════════════════════════════════════════════════
# 1. ProductionPlan
# ═════════════════════════════════════════════════════════════════════════════


class ProductionPlan(TenantModel):
    __tablename__ = "production_plans"

    code = db.Column(db.String(50), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)
    plan_status = db.Column(db.String(20), nullable=False, default="draft")
    priority = db.Column(db.String(20), nullable=False, default="normal")

    __table_args__ = (
        db.CheckConstraint(_in_clause("plan_status", PLAN_STATUSES), name="ck_plan_status"),
        db.CheckConstraint(_in_clause("priority", PLAN_PRIORITIES), name="ck_plan_priority"),
    )

    def to_dict(self):
        result = self._audit_dict()
        result.update({
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "start_date": isoformat(self.start_date),
            "end_date": isoformat(self.end_date),
            "plan_status": self.plan_status,
            "priority": self.priority,
        })
        return result

    def __repr__(self):
        return f"<ProductionPlan {self.id}: {self.code} [{self.plan_status}]>"


# ═════════════════════════════════════════════════════════════════════════════
# 2. ProductionOrder
# ═════════════════════════════════════════════════════════════════════════════


class ProductionOrder(TenantModel):
    __tablename__ = "production_orders"

    order_number = db.Column(db.String(50), nullable=True)
    production_plan_id = db.Column(
        db.Integer, db.ForeignKey("production_plans.id"), nullable=True, index=True,
    )
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)
    semi_product_id = db.Column(
        db.Integer, db.ForeignKey("semi_products.id"), nullable=True, index=True,
    )
    recipe_id = db.Column(db.Integer, db.ForeignKey("recipes.id"), nullable=True, index=True)
    quantity = db.Column(db.Float, nullable=False)
    unit = db.Column(db.String(20), nullable=True)
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)
    order_status = db.Column(db.String(20), nullable=False, default="draft")
    progress = db.Column(db.Integer, nullable=False, default=0)
    actual_start = db.Column(db.DateTime(timezone=True), nullable=True)
    actual_end = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, default="")

    __table_args__ = (
        exactly_one_of("ck_order_item", "product_id", "semi_product_id"),
        db.CheckConstraint(_in_clause("order_status", ORDER_STATUSES), name="ck_order_status"),
        db.CheckConstraint("progress >= 0 AND progress <= 100", name="ck_order_progress"),
        db.CheckConstraint("quantity > 0", name="ck_order_quantity"),
    )

    def to_dict(self):
        result = self._audit_dict()
        result.update({
            "order_number": self.order_number,
            "production_plan_id": self.production_plan_id,
            "product_id": self.product_id,
            "semi_product_id": self.semi_product_id,
            "recipe_id": self.recipe_id,
            "quantity": self.quantity,
            "unit": self.unit,
            "start_date": isoformat(self.start_date),
            "end_date": isoformat(self.end_date),
            "order_status": self.order_status,
            "progress": self.progress,
            "actual_start": isoformat(self.actual_start),
            "actual_end": isoformat(self.actual_end),
            "notes": self.notes,
        })
        return result

    def __repr__(self):
        return f"<ProductionOrder {self.id} [{self.order_status}] {self.progress}%>"


# ═════════════════════════════════════════════════════════════════════════════
# 3. ProductionStage + resources
# ═════════════════════════════════════════════════════════════════════════════


class ProductionStage(TenantModel):
    """
    Ordered step of a production order.

    ``quality_approved`` is written only by quality-check results; completing a
    stage with ``quality_check_required`` needs it to be true.
    """

    __tablename__ = "production_stages"

    production_order_id = db.Column(
        db.Integer, db.ForeignKey("production_orders.id"), nullable=False, index=True,
    )
    stage_name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")
    sequence_number = db.Column(db.Integer, nullable=False)
    stage_status = db.Column(db.String(20), nullable=False, default="pending")
    quality_check_required = db.Column(db.Boolean, nullable=False, default=False)
    quality_approved = db.Column(db.Boolean, nullable=False, default=False)
    planned_start = db.Column(db.DateTime(timezone=True), nullable=True)
    planned_end = db.Column(db.DateTime(timezone=True), nullable=True)
    actual_start = db.Column(db.DateTime(timezone=True), nullable=True)
    actual_end = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, default="")

    __table_args__ = (
        db.CheckConstraint(_in_clause("stage_status", STAGE_STATUSES), name="ck_stage_status"),
        db.CheckConstraint("sequence_number > 0", name="ck_stage_sequence"),
    )

    def to_dict(self, resources=None):
        result = self._audit_dict()
        result.update({
            "production_order_id": self.production_order_id,
            "stage_name": self.stage_name,
            "description": self.description,
            "sequence_number": self.sequence_number,
            "stage_status": self.stage_status,
            "quality_check_required": self.quality_check_required,
            "quality_approved": self.quality_approved,
            "planned_start": isoformat(self.planned_start),
            "planned_end": isoformat(self.planned_end),
            "actual_start": isoformat(self.actual_start),
            "actual_end": isoformat(self.actual_end),
            "notes": self.notes,
        })
        if resources is not None:
            result["resources"] = [r.to_dict() for r in resources]
        return result

    def __repr__(self):
        return f"<ProductionStage {self.id}: #{self.sequence_number} [{self.stage_status}]>"


class ProductionStageResource(TenantModel):
    __tablename__ = "production_stage_resources"

    production_stage_id = db.Column(
        db.Integer, db.ForeignKey("production_stages.id"), nullable=False, index=True,
    )
    resource_type = db.Column(db.String(20), nullable=False)
    resource_id = db.Column(db.Integer, nullable=True)
    quantity = db.Column(db.Float, nullable=False, default=1)
    notes = db.Column(db.Text, default="")

    __table_args__ = (
        db.CheckConstraint(_in_clause("resource_type", RESOURCE_TYPES), name="ck_stage_resource_type"),
        db.CheckConstraint("quantity > 0", name="ck_stage_resource_quantity"),
    )

    def to_dict(self):
        result = self._audit_dict()
        result.update({
            "production_stage_id": self.production_stage_id,
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "quantity": self.quantity,
            "notes": self.notes,
        })
        return result


# ═════════════════════════════════════════════════════════════════════════════
# 4. QualityCheck + items
# ═════════════════════════════════════════════════════════════════════════════


class QualityCheck(TenantModel):
    __tablename__ = "quality_checks"

    production_stage_id = db.Column(
        db.Integer, db.ForeignKey("production_stages.id"), nullable=False, index=True,
    )
    passed = db.Column(db.Boolean, nullable=False, default=False)
    check_date = db.Column(db.DateTime(timezone=True), nullable=True)
    checked_by = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.Text, default="")

    def to_dict(self, items=None):
        result = self._audit_dict()
        result.update({
            "production_stage_id": self.production_stage_id,
            "passed": self.passed,
            "check_date": isoformat(self.check_date),
            "checked_by": self.checked_by,
            "notes": self.notes,
        })
        if items is not None:
            result["items"] = [i.to_dict() for i in items]
        return result


class QualityCheckItem(TenantModel):
    __tablename__ = "quality_check_items"

    quality_check_id = db.Column(
        db.Integer, db.ForeignKey("quality_checks.id"), nullable=False, index=True,
    )
    parameter_name = db.Column(db.String(200), nullable=False)
    expected_value = db.Column(db.String(100), nullable=True)
    actual_value = db.Column(db.String(100), nullable=True)
    unit = db.Column(db.String(20), nullable=True)
    passed = db.Column(db.Boolean, nullable=False, default=False)
    notes = db.Column(db.Text, default="")

    def to_dict(self):
        result = self._audit_dict()
        result.update({
            "quality_check_id": self.quality_check_id,
            "parameter_name": self.parameter_name,
            "expected_value": self.expected_value,
            "actual_value": self.actual_value,
            "unit": self.unit,
            "passed": self.passed,
            "notes": self.notes,
        })
        return result


# ═════════════════════════════════════════════════════════════════════════════
# 5. ProductionOutput + quality links
# ═════════════════════════════════════════════════════════════════════════════


class ProductionOutput(TenantModel):
    __tablename__ = "production_outputs"

    production_order_id = db.Column(
        db.Integer, db.ForeignKey("production_orders.id"), nullable=False, index=True,
    )
    quantity = db.Column(db.Float, nullable=False)
    unit = db.Column(db.String(20), nullable=True)
    output_date = db.Column(db.DateTime(timezone=True), nullable=True)
    batch_number = db.Column(db.String(50), nullable=True)
    lot_number = db.Column(db.String(50), nullable=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=True)
    quality_status = db.Column(db.String(30), nullable=False, default="pending_inspection")
    notes = db.Column(db.Text, default="")

    __table_args__ = (
        db.CheckConstraint(
            _in_clause("quality_status", OUTPUT_QUALITY_STATUSES), name="ck_output_quality_status",
        ),
        db.CheckConstraint("quantity > 0", name="ck_output_quantity"),
    )

    def to_dict(self):
        result = self._audit_dict()
        result.update({
            "production_order_id": self.production_order_id,
            "quantity": self.quantity,
            "unit": self.unit,
            "output_date": isoformat(self.output_date),
            "batch_number": self.batch_number,
            "lot_number": self.lot_number,
            "warehouse_id": self.warehouse_id,
            "quality_status": self.quality_status,
            "notes": self.notes,
        })
        return result


class OutputQualityCheck(TenantModel):
    __tablename__ = "output_quality_checks"

    production_output_id = db.Column(
        db.Integer, db.ForeignKey("production_outputs.id"), nullable=False, index=True,
    )
    quality_check_id = db.Column(
        db.Integer, db.ForeignKey("quality_checks.id"), nullable=False, index=True,
    )

    def to_dict(self):
        result = self._audit_dict()
        result.update({
            "production_output_id": self.production_output_id,
            "quality_check_id": self.quality_check_id,
        })
        return result
