"""
State-machine and workflow tests for production plans, orders and stages.

    1. **ProductionPlan** (PLAN_TRANSITIONS)
       - draft -> active | cancelled
       - active -> draft | completed | cancelled
       - completed / cancelled -> (terminal)
       Cascades: activate → draft orders pending; complete → in_progress
       orders completed; cancel → open orders and their stages cancelled.

    2. **ProductionOrder** (ORDER_TRANSITIONS)
       - draft -> pending | cancelled
       - pending -> in_progress | cancelled
       - in_progress -> completed | cancelled
       Guards: in_progress needs an active plan; delete only draft/pending.

    3. **ProductionStage** (STAGE_TRANSITIONS)
       - pending -> in_progress | cancelled
       - in_progress -> completed | cancelled
       Guards: sequence_number unique per order, no stage on a closed order,
       quality-gated completion, delete only pending.
"""

import pytest

from mfgops.core.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)
from mfgops.models import db
from mfgops.models.production import (
    ORDER_TRANSITIONS,
    PLAN_TRANSITIONS,
    STAGE_TRANSITIONS,
    ProductionOrder,
    ProductionStage,
    ProductionStageResource,
)
from mfgops.services import catalog_service, production_service as ps


# ═════════════════════════════════════════════════════════════════════════════
# Helper Factories
# ═════════════════════════════════════════════════════════════════════════════


def _product(scope, code="P-1"):
    return catalog_service.create_product({"code": code, "name": f"Product {code}"}, scope)


def _plan(scope, code="PLAN-1", status="draft"):
    plan = ps.create_plan({"code": code, "name": f"Plan {code}"}, scope)
    if status == "active":
        plan, _ = ps.transition_plan(plan.id, "active", scope)
    return plan


def _order(scope, plan=None, product=None, **extra):
    product = product or _product(scope)
    data = {"product_id": product.id, "quantity": 100, **extra}
    if plan is not None:
        data["production_plan_id"] = plan.id
    return ps.create_order(data, scope)


def _started_order(scope):
    plan = _plan(scope, status="active")
    order = _order(scope, plan=plan)
    return ps.transition_order(order.id, "in_progress", scope)


# ═════════════════════════════════════════════════════════════════════════════
# Transition tables
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.parametrize("table", [PLAN_TRANSITIONS, ORDER_TRANSITIONS, STAGE_TRANSITIONS])
def test_terminal_states_have_no_exits(table):
    assert table["completed"] == []
    assert table["cancelled"] == []


# ═════════════════════════════════════════════════════════════════════════════
# Plans
# ═════════════════════════════════════════════════════════════════════════════


class TestPlanLifecycle:
    def test_create_plan_is_draft(self, scope_a):
        plan = _plan(scope_a)
        assert plan.plan_status == "draft"
        assert plan.priority == "normal"

    def test_duplicate_plan_code(self, scope_a):
        _plan(scope_a, "PLAN-1")
        with pytest.raises(ConflictError, match="Production plan with code 'PLAN-1' already exists"):
            _plan(scope_a, "PLAN-1")

    def test_start_after_end_rejected(self, scope_a):
        with pytest.raises(ValidationError, match="start_date cannot be after end_date"):
            ps.create_plan({
                "code": "X", "name": "X", "start_date": "2026-05-10", "end_date": "2026-05-01",
            }, scope_a)

    def test_invalid_transition(self, scope_a):
        plan = _plan(scope_a)
        with pytest.raises(InvalidStateError) as exc_info:
            ps.transition_plan(plan.id, "completed", scope_a)
        assert exc_info.value.status_code == 409
        assert "draft" in exc_info.value.message

    def test_activate_promotes_draft_orders(self, scope_a):
        plan = _plan(scope_a)
        order = _order(scope_a, plan=plan)
        assert order.order_status == "draft"

        plan, cascaded = ps.transition_plan(plan.id, "active", scope_a)
        assert plan.plan_status == "active"
        assert cascaded == {"orders": 1, "stages": 0}
        db.session.expire_all()
        assert db.session.get(ProductionOrder, order.id).order_status == "pending"

    def test_order_joining_active_plan_is_pending(self, scope_a):
        plan = _plan(scope_a, status="active")
        assert _order(scope_a, plan=plan).order_status == "pending"

    def test_complete_completes_running_orders(self, scope_a):
        order = _started_order(scope_a)
        plan, cascaded = ps.transition_plan(order.production_plan_id, "completed", scope_a)
        assert cascaded["orders"] == 1
        db.session.expire_all()
        refreshed = db.session.get(ProductionOrder, order.id)
        assert refreshed.order_status == "completed"
        assert refreshed.progress == 100
        assert refreshed.actual_end is not None

    def test_cancel_cascades_to_orders_and_stages(self, scope_a):
        order = _started_order(scope_a)
        stage = ps.create_stage({"production_order_id": order.id, "stage_name": "Mixing"}, scope_a)
        ps.transition_stage(stage.id, "in_progress", scope_a)

        _, cascaded = ps.transition_plan(order.production_plan_id, "cancelled", scope_a)
        assert cascaded == {"orders": 1, "stages": 1}
        db.session.expire_all()
        assert db.session.get(ProductionOrder, order.id).order_status == "cancelled"
        assert db.session.get(ProductionStage, stage.id).stage_status == "cancelled"

    def test_terminal_plan_cannot_be_modified(self, scope_a):
        plan = _plan(scope_a)
        ps.transition_plan(plan.id, "cancelled", scope_a)
        with pytest.raises(PreconditionFailedError, match="Cannot modify a cancelled production plan"):
            ps.update_plan(plan.id, {"name": "Renamed"}, scope_a)

    def test_status_not_updatable_directly(self, scope_a):
        plan = _plan(scope_a)
        with pytest.raises(ValidationError, match="transition endpoint"):
            ps.update_plan(plan.id, {"plan_status": "active"}, scope_a)

    def test_no_orders_on_closed_plan(self, scope_a):
        plan = _plan(scope_a)
        ps.transition_plan(plan.id, "cancelled", scope_a)
        with pytest.raises(PreconditionFailedError, match="Cannot add orders to a cancelled production plan"):
            _order(scope_a, plan=plan)


class TestPlanDelete:
    def test_active_plan_not_deletable(self, scope_a):
        plan = _plan(scope_a, status="active")
        with pytest.raises(PreconditionFailedError, match="Cannot delete an active production plan"):
            ps.delete_plan(plan.id, scope_a)

    def test_plan_with_orders_blocked(self, scope_a):
        plan = _plan(scope_a)
        _order(scope_a, plan=plan)
        with pytest.raises(ConflictError, match="existing orders"):
            ps.delete_plan(plan.id, scope_a)

    def test_empty_draft_plan_deleted(self, scope_a):
        plan = _plan(scope_a)
        result = ps.delete_plan(plan.id, scope_a)
        assert result["message"] == "Production plan deleted successfully"
        with pytest.raises(NotFoundError):
            ps.get_plan(plan.id, scope_a)


# ═════════════════════════════════════════════════════════════════════════════
# Orders
# ═════════════════════════════════════════════════════════════════════════════


class TestOrderLifecycle:
    def test_exactly_one_item_required(self, scope_a):
        product = _product(scope_a)
        semi = catalog_service.create_semi_product({"code": "S-1", "name": "Dough"}, scope_a)
        with pytest.raises(ValidationError, match="Either product_id or semi_product_id"):
            ps.create_order({"quantity": 5}, scope_a)
        with pytest.raises(ValidationError):
            ps.create_order({"product_id": product.id, "semi_product_id": semi.id, "quantity": 5}, scope_a)

    def test_non_positive_quantity(self, scope_a):
        product = _product(scope_a)
        with pytest.raises(ValidationError, match="quantity must be greater than 0"):
            ps.create_order({"product_id": product.id, "quantity": 0}, scope_a)

    def test_recipe_must_match_item(self, scope_a):
        product = _product(scope_a)
        semi = catalog_service.create_semi_product({"code": "S-1", "name": "Dough"}, scope_a)
        recipe = catalog_service.create_recipe({"name": "Dough mix", "semi_product_id": semi.id}, scope_a)
        with pytest.raises(ValidationError, match="Recipe does not match the selected product"):
            ps.create_order({"product_id": product.id, "recipe_id": recipe.id, "quantity": 5}, scope_a)
        order = ps.create_order({"semi_product_id": semi.id, "recipe_id": recipe.id, "quantity": 5}, scope_a)
        assert order.recipe_id == recipe.id

    def test_start_requires_active_plan(self, scope_a):
        plan = _plan(scope_a, status="active")
        order = _order(scope_a, plan=plan)
        ps.transition_plan(plan.id, "draft", scope_a)
        with pytest.raises(PreconditionFailedError, match="must be active"):
            ps.transition_order(order.id, "in_progress", scope_a)

    def test_order_without_plan_can_start(self, scope_a):
        order = _order(scope_a)
        ps.transition_order(order.id, "pending", scope_a)
        started = ps.transition_order(order.id, "in_progress", scope_a)
        assert started.order_status == "in_progress"
        assert started.progress == 0
        assert started.actual_start is not None

    def test_skip_is_invalid(self, scope_a):
        order = _order(scope_a)
        with pytest.raises(InvalidStateError):
            ps.transition_order(order.id, "in_progress", scope_a)

    def test_complete_sets_progress(self, scope_a):
        order = _started_order(scope_a)
        done = ps.transition_order(order.id, "completed", scope_a)
        assert done.progress == 100
        assert done.actual_end is not None
        with pytest.raises(InvalidStateError):
            ps.transition_order(order.id, "cancelled", scope_a)

    def test_progress_bounds(self, scope_a):
        order = _started_order(scope_a)
        assert ps.update_order(order.id, {"progress": 40}, scope_a).progress == 40
        with pytest.raises(ValidationError, match="between 0 and 100"):
            ps.update_order(order.id, {"progress": 140}, scope_a)

    def test_cancel_cancels_open_stages(self, scope_a):
        order = _started_order(scope_a)
        s1 = ps.create_stage({"production_order_id": order.id, "stage_name": "Mixing"}, scope_a)
        s2 = ps.create_stage({"production_order_id": order.id, "stage_name": "Baking"}, scope_a)
        ps.transition_stage(s1.id, "in_progress", scope_a)

        ps.transition_order(order.id, "cancelled", scope_a)
        db.session.expire_all()
        assert db.session.get(ProductionStage, s1.id).stage_status == "cancelled"
        assert db.session.get(ProductionStage, s2.id).stage_status == "cancelled"

    def test_terminal_order_cannot_be_modified(self, scope_a):
        order = _order(scope_a)
        ps.transition_order(order.id, "cancelled", scope_a)
        with pytest.raises(PreconditionFailedError):
            ps.update_order(order.id, {"notes": "late"}, scope_a)


class TestOrderDelete:
    def test_running_order_not_deletable(self, scope_a):
        order = _started_order(scope_a)
        with pytest.raises(PreconditionFailedError, match="Only draft or pending orders"):
            ps.delete_order(order.id, scope_a)

    def test_delete_removes_stages_and_resources(self, scope_a):
        order = _order(scope_a)
        stage = ps.create_stage({
            "production_order_id": order.id,
            "stage_name": "Mixing",
            "resources": [{"resource_type": "machine", "resource_id": 4, "quantity": 1}],
        }, scope_a)
        (resource,) = ps.stage_resources(stage)

        result = ps.delete_order(order.id, scope_a)
        assert result == {"message": "Production order deleted successfully", "id": order.id}
        db.session.expire_all()
        assert db.session.get(ProductionOrder, order.id).status is False
        assert db.session.get(ProductionStage, stage.id).status is False
        assert db.session.get(ProductionStageResource, resource.id).status is False


# ═════════════════════════════════════════════════════════════════════════════
# Stages
# ═════════════════════════════════════════════════════════════════════════════


class TestStages:
    def test_sequence_assigned_when_omitted(self, scope_a):
        order = _order(scope_a)
        s1 = ps.create_stage({"production_order_id": order.id, "stage_name": "Mixing"}, scope_a)
        s2 = ps.create_stage({"production_order_id": order.id, "stage_name": "Baking"}, scope_a)
        assert (s1.sequence_number, s2.sequence_number) == (10, 20)

    def test_duplicate_sequence_number(self, scope_a):
        order = _order(scope_a)
        ps.create_stage({"production_order_id": order.id, "stage_name": "Mixing", "sequence_number": 1}, scope_a)
        with pytest.raises(ConflictError, match="Sequence number 1 is already used"):
            ps.create_stage(
                {"production_order_id": order.id, "stage_name": "Baking", "sequence_number": 1}, scope_a,
            )

    def test_same_sequence_in_other_order(self, scope_a):
        product = _product(scope_a)
        o1 = _order(scope_a, product=product)
        o2 = _order(scope_a, product=product)
        ps.create_stage({"production_order_id": o1.id, "stage_name": "A", "sequence_number": 1}, scope_a)
        stage = ps.create_stage({"production_order_id": o2.id, "stage_name": "A", "sequence_number": 1}, scope_a)
        assert stage.sequence_number == 1

    def test_list_ordered_by_sequence(self, scope_a):
        order = _order(scope_a)
        ps.create_stage({"production_order_id": order.id, "stage_name": "Late", "sequence_number": 30}, scope_a)
        ps.create_stage({"production_order_id": order.id, "stage_name": "Early", "sequence_number": 5}, scope_a)
        assert [s.stage_name for s in ps.list_stages(order.id, scope_a)] == ["Early", "Late"]

    def test_no_stage_on_closed_order(self, scope_a):
        order = _order(scope_a)
        ps.transition_order(order.id, "cancelled", scope_a)
        with pytest.raises(PreconditionFailedError, match="cancelled production order"):
            ps.create_stage({"production_order_id": order.id, "stage_name": "Mixing"}, scope_a)

    def test_bad_resource_type(self, scope_a):
        order = _order(scope_a)
        with pytest.raises(ValidationError, match="resource_type"):
            ps.create_stage({
                "production_order_id": order.id, "stage_name": "Mixing",
                "resources": [{"resource_type": "robot"}],
            }, scope_a)

    def test_quality_approved_not_writable(self, scope_a):
        order = _order(scope_a)
        stage = ps.create_stage({"production_order_id": order.id, "stage_name": "Mixing"}, scope_a)
        with pytest.raises(ValidationError, match="quality check results only"):
            ps.update_stage(stage.id, {"quality_approved": True}, scope_a)

    def test_required_stage_blocks_completion(self, scope_a):
        order = _started_order(scope_a)
        stage = ps.create_stage({
            "production_order_id": order.id, "stage_name": "Inspection", "quality_check_required": True,
        }, scope_a)
        ps.transition_stage(stage.id, "in_progress", scope_a)
        with pytest.raises(PreconditionFailedError, match="Quality check must be passed"):
            ps.transition_stage(stage.id, "completed", scope_a)

    def test_last_closed_stage_completes_order(self, scope_a):
        order = _started_order(scope_a)
        s1 = ps.create_stage({"production_order_id": order.id, "stage_name": "Mixing"}, scope_a)
        s2 = ps.create_stage({"production_order_id": order.id, "stage_name": "Baking"}, scope_a)
        ps.transition_stage(s1.id, "in_progress", scope_a)
        ps.transition_stage(s1.id, "completed", scope_a)
        db.session.expire_all()
        assert db.session.get(ProductionOrder, order.id).order_status == "in_progress"

        ps.transition_stage(s2.id, "cancelled", scope_a)
        db.session.expire_all()
        refreshed = db.session.get(ProductionOrder, order.id)
        assert refreshed.order_status == "completed"
        assert refreshed.progress == 100

    def test_only_pending_stage_deletable(self, scope_a):
        order = _started_order(scope_a)
        stage = ps.create_stage({"production_order_id": order.id, "stage_name": "Mixing"}, scope_a)
        ps.transition_stage(stage.id, "in_progress", scope_a)
        with pytest.raises(PreconditionFailedError, match="Only 'pending' stages"):
            ps.delete_stage(stage.id, scope_a)

    def test_delete_pending_stage_cascades_resources(self, scope_a):
        order = _order(scope_a)
        stage = ps.create_stage({"production_order_id": order.id, "stage_name": "Mixing"}, scope_a)
        ps.add_stage_resource(stage.id, {"resource_type": "labor", "quantity": 2}, scope_a)
        result = ps.delete_stage(stage.id, scope_a)
        assert result["cascaded"] == {"stage_resources": 1}
