"""
Production workflow — Service Layer.

Business logic for:
    - ProductionPlan:   CRUD, lifecycle transitions with order cascades
    - ProductionOrder:  CRUD, lifecycle transitions, progress, stage cancellation
    - ProductionStage:  CRUD, ordered by sequence_number (unique per order),
                        quality-gated completion, order auto-completion
    - Stage resources:  machine / labor / tool / material lines of a stage

Gating rules:
    - no stage is created or advanced while its order is completed/cancelled
    - an order enters in_progress only while its plan (if any) is active
    - a stage with quality_check_required completes only once quality_approved

Status changes that touch more than one entity run as a UnitOfWork; the
first step changes the entity itself, later steps cascade.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select

from mfgops.core.exceptions import (
    InvalidStateError,
    PreconditionFailedError,
    ValidationError,
)
from mfgops.models import db
from mfgops.models.catalog import Recipe
from mfgops.models.production import (
    PLAN_PRIORITIES,
    RESOURCE_TYPES,
    TERMINAL_ORDER_STATUSES,
    TERMINAL_PLAN_STATUSES,
    TERMINAL_STAGE_STATUSES,
    ProductionOrder,
    ProductionOutput,
    ProductionPlan,
    ProductionStage,
    ProductionStageResource,
    validate_order_transition,
    validate_plan_transition,
    validate_stage_transition,
)
from mfgops.services.dependency_checker import ensure_no_dependents
from mfgops.services.helpers.item_refs import OUTPUT_KINDS, ItemRef
from mfgops.services.helpers.scoped_queries import (
    Scope,
    company_of_parent,
    find,
    get_live_reference,
    get_scoped,
    reject_company_change,
)
from mfgops.services.helpers.unit_of_work import UnitOfWork, insert_one, update_one
from mfgops.services.sequencer import next_sequence
from mfgops.services.soft_delete_service import soft_delete_row
from mfgops.services.uniqueness import ensure_unique
from mfgops.utils.helpers import (
    parse_bool,
    parse_date,
    parse_datetime,
    parse_int,
    parse_positive,
    require_fields,
)

logger = logging.getLogger(__name__)


def _now():
    return datetime.now(timezone.utc)


def _check_date_range(start, end) -> None:
    if start and end and start > end:
        raise ValidationError("start_date cannot be after end_date")


def _parse_progress(value) -> int:
    progress = parse_int(value, "progress")
    if not 0 <= progress <= 100:
        raise ValidationError("progress must be between 0 and 100")
    return progress


# ═════════════════════════════════════════════════════════════════════════════
# ProductionPlan
# ═════════════════════════════════════════════════════════════════════════════


def list_plans(scope: Scope, plan_status: str | None = None) -> list[ProductionPlan]:
    criteria = [ProductionPlan.plan_status == plan_status] if plan_status else []
    return find(ProductionPlan, scope, *criteria, order_by=ProductionPlan.created_at.desc())


def get_plan(plan_id: int, scope: Scope, include_inactive: bool = False) -> ProductionPlan:
    return get_scoped(
        ProductionPlan, plan_id, scope, include_inactive=include_inactive, label="Production plan",
    )


def _priority(value) -> str:
    if value not in PLAN_PRIORITIES:
        raise ValidationError(
            f"priority must be one of: {', '.join(PLAN_PRIORITIES)}", details={"priority": value},
        )
    return value


def create_plan(data: dict, scope: Scope) -> ProductionPlan:
    """Create a draft plan; code unique among the company's live plans."""
    require_fields(data, "code", "name")
    start = parse_date(data.get("start_date"), "start_date")
    end = parse_date(data.get("end_date"), "end_date")
    _check_date_range(start, end)
    company_id = scope.company_for_write(data.get("company_id"))
    code = str(data["code"]).strip()
    ensure_unique(ProductionPlan, {"code": code}, company_id, label="Production plan")
    return insert_one("ProductionPlan", ProductionPlan(
        company_id=company_id,
        code=code,
        name=data["name"],
        description=data.get("description", ""),
        start_date=start,
        end_date=end,
        priority=_priority(data.get("priority", "normal")),
        plan_status="draft",
    ), scope)


def update_plan(plan_id: int, data: dict, scope: Scope) -> ProductionPlan:
    plan = get_plan(plan_id, scope)
    reject_company_change(plan, data)
    if plan.plan_status in TERMINAL_PLAN_STATUSES:
        raise PreconditionFailedError(f"Cannot modify a {plan.plan_status} production plan")
    if "plan_status" in data:
        raise ValidationError("Use the transition endpoint to change plan_status")
    patch = {f: data[f] for f in ("name", "description") if f in data}
    if "name" in data:
        require_fields(data, "name")
    if "priority" in data:
        patch["priority"] = _priority(data["priority"])
    for field in ("start_date", "end_date"):
        if field in data:
            patch[field] = parse_date(data[field], field)
    _check_date_range(patch.get("start_date", plan.start_date), patch.get("end_date", plan.end_date))
    if "code" in data:
        require_fields(data, "code")
        code = str(data["code"]).strip()
        if code != plan.code:
            ensure_unique(
                ProductionPlan, {"code": code}, plan.company_id,
                exclude_id=plan.id, label="Production plan",
            )
        patch["code"] = code
    return update_one("ProductionPlan", plan, patch, scope)


def _live_orders(plan: ProductionPlan, statuses) -> list[ProductionOrder]:
    stmt = select(ProductionOrder).where(
        ProductionOrder.production_plan_id == plan.id,
        ProductionOrder.company_id == plan.company_id,
        ProductionOrder.status.is_(True),
        ProductionOrder.order_status.in_(statuses),
    )
    return list(db.session.execute(stmt).scalars().all())


def _live_stages(order_ids, company_id: int, statuses=None) -> list[ProductionStage]:
    if not order_ids:
        return []
    stmt = select(ProductionStage).where(
        ProductionStage.production_order_id.in_(order_ids),
        ProductionStage.company_id == company_id,
        ProductionStage.status.is_(True),
    )
    if statuses is not None:
        stmt = stmt.where(ProductionStage.stage_status.in_(statuses))
    return list(db.session.execute(stmt).scalars().all())


def _cancel_stages(uow: UnitOfWork, order_ids, company_id: int) -> int:
    now = _now()
    stages = _live_stages(order_ids, company_id, ("pending", "in_progress"))
    for stage in stages:
        uow.update(stage, {"stage_status": "cancelled", "actual_end": stage.actual_end or now})
    return len(stages)


def transition_plan(plan_id: int, new_status: str, scope: Scope) -> tuple[ProductionPlan, dict]:
    """Change a plan's status and cascade to its orders.

    Cascades:
        → active:     draft orders become pending
        → completed:  in_progress orders become completed (progress 100)
        → cancelled:  pending / in_progress orders and their open stages are cancelled

    Returns:
        (plan, {"orders": n, "stages": m}) with the number of cascaded rows.
    """
    plan = get_plan(plan_id, scope)
    old = plan.plan_status
    if not validate_plan_transition(old, new_status):
        raise InvalidStateError("production plan", old, new_status)

    uow = UnitOfWork("ProductionPlan", plan.id, scope)
    affected = {"orders": 0, "stages": 0}
    with uow.step("update_plan_status"):
        uow.update(plan, {"plan_status": new_status})

    now = _now()
    if new_status == "active":
        with uow.step("activate_orders"):
            for order in _live_orders(plan, ("draft",)):
                uow.update(order, {"order_status": "pending"})
                affected["orders"] += 1
    elif new_status == "completed":
        with uow.step("complete_orders"):
            for order in _live_orders(plan, ("in_progress",)):
                uow.update(order, {
                    "order_status": "completed", "progress": 100,
                    "actual_end": order.actual_end or now,
                })
                affected["orders"] += 1
    elif new_status == "cancelled":
        orders = _live_orders(plan, ("draft", "pending", "in_progress"))
        with uow.step("cancel_orders"):
            for order in orders:
                uow.update(order, {"order_status": "cancelled", "actual_end": order.actual_end or now})
                affected["orders"] += 1
        with uow.step("cancel_stages"):
            affected["stages"] = _cancel_stages(uow, [o.id for o in orders], plan.company_id)

    logger.info(
        "ProductionPlan id=%s transitioned %s → %s cascaded=%s", plan.id, old, new_status, affected,
        extra={"entity": "ProductionPlan", "entity_id": plan.id, "company_id": plan.company_id},
    )
    return plan, affected


def delete_plan(plan_id: int, scope: Scope) -> dict:
    """Active plans cannot be deleted; plans with live orders are blocked."""
    plan = get_plan(plan_id, scope)
    if plan.plan_status == "active":
        raise PreconditionFailedError(
            "Cannot delete an active production plan. Change status to draft or completed first."
        )
    return soft_delete_row("production_plan", plan, scope, label="Production plan")


# ═════════════════════════════════════════════════════════════════════════════
# ProductionOrder
# ═════════════════════════════════════════════════════════════════════════════

_ORDER_FIELDS = ("order_number", "unit", "notes")


def list_orders(scope: Scope, plan_id: int | None = None, order_status: str | None = None) -> list[ProductionOrder]:
    criteria = []
    if plan_id is not None:
        criteria.append(ProductionOrder.production_plan_id == plan_id)
    if order_status:
        criteria.append(ProductionOrder.order_status == order_status)
    return find(ProductionOrder, scope, *criteria, order_by=ProductionOrder.created_at.desc())


def get_order(order_id: int, scope: Scope, include_inactive: bool = False) -> ProductionOrder:
    return get_scoped(
        ProductionOrder, order_id, scope, include_inactive=include_inactive, label="Production order",
    )


def _open_plan(plan_id, company_id: int) -> ProductionPlan:
    plan = get_live_reference(ProductionPlan, plan_id, company_id, "Production plan")
    if plan.plan_status in TERMINAL_PLAN_STATUSES:
        raise PreconditionFailedError(f"Cannot add orders to a {plan.plan_status} production plan")
    return plan


def _matching_recipe(recipe_id, item: ItemRef, company_id: int) -> Recipe:
    recipe = get_live_reference(Recipe, recipe_id, company_id, "Recipe")
    if ItemRef.of(recipe, OUTPUT_KINDS) != item:
        raise ValidationError(f"Recipe does not match the selected {item.label.lower()}")
    return recipe


def create_order(data: dict, scope: Scope) -> ProductionOrder:
    """Create an order for exactly one product or semi-product.

    Initial status is ``pending`` when the order joins an active plan and
    ``draft`` otherwise.
    """
    item = ItemRef.from_payload(data, OUTPUT_KINDS)
    require_fields(data, "quantity")
    quantity = parse_positive(data["quantity"], "quantity")
    start = parse_date(data.get("start_date"), "start_date")
    end = parse_date(data.get("end_date"), "end_date")
    _check_date_range(start, end)
    company_id = scope.company_for_write(data.get("company_id"))

    get_live_reference(item.model, item.id, company_id, item.label)
    plan = None
    if data.get("production_plan_id") is not None:
        plan = _open_plan(data["production_plan_id"], company_id)
    recipe_id = None
    if data.get("recipe_id") is not None:
        recipe_id = _matching_recipe(data["recipe_id"], item, company_id).id

    return insert_one("ProductionOrder", ProductionOrder(
        company_id=company_id,
        production_plan_id=plan.id if plan else None,
        recipe_id=recipe_id,
        quantity=quantity,
        start_date=start,
        end_date=end,
        order_status="pending" if plan is not None and plan.plan_status == "active" else "draft",
        progress=0,
        **{f: data[f] for f in _ORDER_FIELDS if f in data},
        **item.columns(OUTPUT_KINDS),
    ), scope)


def _has_live_outputs(order: ProductionOrder) -> bool:
    stmt = select(ProductionOutput.id).where(
        ProductionOutput.production_order_id == order.id,
        ProductionOutput.company_id == order.company_id,
        ProductionOutput.status.is_(True),
    ).limit(1)
    return db.session.execute(stmt).first() is not None


def update_order(order_id: int, data: dict, scope: Scope) -> ProductionOrder:
    """Update descriptive fields, item, recipe, plan, dates, quantity or progress."""
    order = get_order(order_id, scope)
    reject_company_change(order, data)
    if order.order_status in TERMINAL_ORDER_STATUSES:
        raise PreconditionFailedError(f"Cannot modify a {order.order_status} production order")
    if "order_status" in data:
        raise ValidationError("Use the transition endpoint to change order_status")

    patch = {f: data[f] for f in _ORDER_FIELDS if f in data}
    if "quantity" in data:
        patch["quantity"] = parse_positive(data["quantity"], "quantity")
    if "progress" in data:
        patch["progress"] = _parse_progress(data["progress"])
    for field in ("start_date", "end_date"):
        if field in data:
            patch[field] = parse_date(data[field], field)
    _check_date_range(patch.get("start_date", order.start_date), patch.get("end_date", order.end_date))

    item = ItemRef.merged(order, data, OUTPUT_KINDS)
    current_item = ItemRef.of(order, OUTPUT_KINDS)
    if item is not None and item != current_item:
        if _has_live_outputs(order):
            raise PreconditionFailedError(
                "Cannot change the produced item of an order with recorded outputs"
            )
        get_live_reference(item.model, item.id, order.company_id, item.label)
        patch.update(item.columns(OUTPUT_KINDS))
    effective_item = item or current_item

    if "recipe_id" in data:
        patch["recipe_id"] = (
            _matching_recipe(data["recipe_id"], effective_item, order.company_id).id
            if data["recipe_id"] is not None else None
        )
    elif item is not None and order.recipe_id is not None and effective_item != current_item:
        _matching_recipe(order.recipe_id, effective_item, order.company_id)

    if "production_plan_id" in data and data["production_plan_id"] != order.production_plan_id:
        patch["production_plan_id"] = (
            _open_plan(data["production_plan_id"], order.company_id).id
            if data["production_plan_id"] is not None else None
        )
    return update_one("ProductionOrder", order, patch, scope)


def transition_order(order_id: int, new_status: str, scope: Scope, progress=None) -> ProductionOrder:
    """Change an order's status.

    - ``in_progress`` needs the parent plan (if any) to be active.
    - ``progress`` defaults to 100 on completion and 0 when work starts.
    - cancelling the order cancels its open stages as a second step.
    """
    order = get_order(order_id, scope)
    old = order.order_status
    if not validate_order_transition(old, new_status):
        raise InvalidStateError("production order", old, new_status)

    if new_status == "in_progress" and order.production_plan_id is not None:
        plan = get_live_reference(
            ProductionPlan, order.production_plan_id, order.company_id, "Production plan",
        )
        if plan.plan_status != "active":
            raise PreconditionFailedError(
                "Production plan must be active before orders can be started"
            )

    patch = {"order_status": new_status}
    if progress is not None:
        patch["progress"] = _parse_progress(progress)
    elif new_status == "completed":
        patch["progress"] = 100
    elif new_status == "in_progress" and old == "pending":
        patch["progress"] = 0

    now = _now()
    if new_status == "in_progress" and order.actual_start is None:
        patch["actual_start"] = now
    if new_status in TERMINAL_ORDER_STATUSES and order.actual_end is None:
        patch["actual_end"] = now

    uow = UnitOfWork("ProductionOrder", order.id, scope)
    with uow.step("update_order_status"):
        uow.update(order, patch)
    if new_status == "cancelled":
        with uow.step("cancel_stages"):
            cancelled = _cancel_stages(uow, [order.id], order.company_id)
        logger.info("Cancelled %d stage(s) of order id=%s", cancelled, order.id)

    logger.info(
        "ProductionOrder id=%s transitioned %s → %s", order.id, old, new_status,
        extra={"entity": "ProductionOrder", "entity_id": order.id, "company_id": order.company_id},
    )
    return order


def delete_order(order_id: int, scope: Scope) -> dict:
    """Only draft/pending orders without live outputs can be deleted.

    Steps: stage resources, stages, then the order itself.
    """
    order = get_order(order_id, scope)
    if order.order_status not in ("draft", "pending"):
        raise PreconditionFailedError(
            f"Cannot delete a {order.order_status} production order. "
            "Only draft or pending orders can be deleted."
        )
    ensure_no_dependents("production_order", order.id, order.company_id)

    stages = _live_stages([order.id], order.company_id)
    uow = UnitOfWork("ProductionOrder", order.id, scope)
    with uow.step("soft_delete_stage_resources"):
        uow.soft_delete(_live_resources([s.id for s in stages], order.company_id))
    with uow.step("soft_delete_stages"):
        uow.soft_delete(stages)
    with uow.step("soft_delete_production_order"):
        uow.soft_delete([order])

    logger.info(
        "ProductionOrder soft-deleted id=%s stages=%d", order.id, len(stages),
        extra={"entity": "ProductionOrder", "entity_id": order.id, "company_id": order.company_id},
    )
    return {"message": "Production order deleted successfully", "id": order.id}


# ═════════════════════════════════════════════════════════════════════════════
# ProductionStage
# ═════════════════════════════════════════════════════════════════════════════

_STAGE_FIELDS = ("stage_name", "description", "notes")


def _live_resources(stage_ids, company_id: int) -> list[ProductionStageResource]:
    if not stage_ids:
        return []
    stmt = select(ProductionStageResource).where(
        ProductionStageResource.production_stage_id.in_(stage_ids),
        ProductionStageResource.company_id == company_id,
        ProductionStageResource.status.is_(True),
    )
    return list(db.session.execute(stmt).scalars().all())


def list_stages(order_id: int, scope: Scope) -> list[ProductionStage]:
    get_order(order_id, scope)
    return find(
        ProductionStage, scope, ProductionStage.production_order_id == order_id,
        order_by=(ProductionStage.sequence_number, ProductionStage.id),
    )


def get_stage(stage_id: int, scope: Scope, include_inactive: bool = False) -> ProductionStage:
    return get_scoped(
        ProductionStage, stage_id, scope, include_inactive=include_inactive, label="Production stage",
    )


def stage_resources(stage: ProductionStage) -> list[ProductionStageResource]:
    return _live_resources([stage.id], stage.company_id)


def _require_open_order(order: ProductionOrder, action: str) -> None:
    if order.order_status in TERMINAL_ORDER_STATUSES:
        raise PreconditionFailedError(
            f"Cannot {action} a stage of a {order.order_status} production order"
        )


def _sequence_number(value) -> int:
    number = parse_int(value, "sequence_number")
    if number <= 0:
        raise ValidationError("sequence_number must be a positive integer")
    return number


def _ensure_sequence_free(order: ProductionOrder, number: int, exclude_id: int | None = None) -> None:
    ensure_unique(
        ProductionStage,
        {"production_order_id": order.id, "sequence_number": number},
        order.company_id,
        exclude_id=exclude_id,
        label="Production stage",
        message=f"Sequence number {number} is already used in this production order",
    )


def _resource_rows(resources, stage: ProductionStage) -> list[ProductionStageResource]:
    rows = []
    for idx, res in enumerate(resources or []):
        if not isinstance(res, dict):
            raise ValidationError(f"resources[{idx}] must be an object")
        resource_type = res.get("resource_type")
        if resource_type not in RESOURCE_TYPES:
            raise ValidationError(
                f"resources[{idx}].resource_type must be one of: {', '.join(RESOURCE_TYPES)}"
            )
        rows.append(ProductionStageResource(
            company_id=stage.company_id,
            production_stage_id=stage.id,
            resource_type=resource_type,
            resource_id=res.get("resource_id"),
            quantity=parse_positive(res.get("quantity", 1), f"resources[{idx}].quantity"),
            notes=res.get("notes", ""),
        ))
    return rows


def create_stage(data: dict, scope: Scope) -> ProductionStage:
    """Add a stage to a non-terminal order.

    ``sequence_number`` must be unique among the order's live stages; when
    omitted the Sequencer assigns the next free slot. Optional ``resources``
    are inserted in the same step as the stage.
    """
    require_fields(data, "production_order_id", "stage_name")
    order = get_order(data["production_order_id"], scope)
    _require_open_order(order, "add")
    company_id = company_of_parent(order, data)

    if data.get("sequence_number") not in (None, ""):
        number = _sequence_number(data["sequence_number"])
        _ensure_sequence_free(order, number)
    else:
        number = next_sequence(
            ProductionStage, "production_order_id", order.id, company_id, column="sequence_number",
        )
    required = parse_bool(data.get("quality_check_required", False), "quality_check_required")
    resources = data.get("resources") or []
    if not isinstance(resources, list):
        raise ValidationError("resources must be a list")

    stage = ProductionStage(
        company_id=company_id,
        production_order_id=order.id,
        sequence_number=number,
        stage_status="pending",
        quality_check_required=required,
        quality_approved=False,
        planned_start=parse_datetime(data.get("planned_start"), "planned_start"),
        planned_end=parse_datetime(data.get("planned_end"), "planned_end"),
        **{f: data[f] for f in _STAGE_FIELDS if f in data},
    )
    uow = UnitOfWork("ProductionStage", None, scope)
    with uow.step("insert_stage"):
        uow.insert(stage)
        uow.entity_id = stage.id
        for row in _resource_rows(resources, stage):
            uow.insert(row)
    logger.info(
        "ProductionStage created id=%s order=%s seq=%s", stage.id, order.id, number,
        extra={"entity": "ProductionStage", "entity_id": stage.id, "company_id": company_id},
    )
    return stage


def update_stage(stage_id: int, data: dict, scope: Scope) -> ProductionStage:
    stage = get_stage(stage_id, scope)
    reject_company_change(stage, data)
    if "quality_approved" in data:
        raise ValidationError("quality_approved is set by quality check results only")
    if "stage_status" in data:
        raise ValidationError("Use the transition endpoint to change stage_status")
    if stage.stage_status in TERMINAL_STAGE_STATUSES:
        raise PreconditionFailedError(f"Cannot modify a {stage.stage_status} production stage")
    order = get_order(stage.production_order_id, scope)
    _require_open_order(order, "modify")

    if "stage_name" in data:
        require_fields(data, "stage_name")
    patch = {f: data[f] for f in _STAGE_FIELDS if f in data}
    for field in ("planned_start", "planned_end"):
        if field in data:
            patch[field] = parse_datetime(data[field], field)
    if "quality_check_required" in data:
        patch["quality_check_required"] = parse_bool(
            data["quality_check_required"], "quality_check_required",
        )
    if data.get("sequence_number") not in (None, ""):
        number = _sequence_number(data["sequence_number"])
        if number != stage.sequence_number:
            _ensure_sequence_free(order, number, exclude_id=stage.id)
        patch["sequence_number"] = number
    return update_one("ProductionStage", stage, patch, scope)


def _all_stages_closed(order: ProductionOrder) -> bool:
    stages = _live_stages([order.id], order.company_id)
    return bool(stages) and all(s.stage_status in TERMINAL_STAGE_STATUSES for s in stages)


def transition_stage(stage_id: int, new_status: str, scope: Scope) -> ProductionStage:
    """Change a stage's status.

    Guards:
        - the order must not be completed/cancelled (cancelling is still allowed)
        - completing a check-required stage needs ``quality_approved``

    When the last open stage of an in-progress order closes, the order is
    completed with progress 100 as a second step.
    """
    stage = get_stage(stage_id, scope)
    old = stage.stage_status
    if not validate_stage_transition(old, new_status):
        raise InvalidStateError("production stage", old, new_status)

    order = get_order(stage.production_order_id, scope)
    if new_status != "cancelled":
        _require_open_order(order, "advance")
    if new_status == "completed" and stage.quality_check_required and not stage.quality_approved:
        raise PreconditionFailedError(
            "Quality check must be passed before this stage can be completed"
        )

    now = _now()
    patch = {"stage_status": new_status}
    if new_status == "in_progress" and stage.actual_start is None:
        patch["actual_start"] = now
    if new_status in TERMINAL_STAGE_STATUSES:
        patch["actual_end"] = now

    uow = UnitOfWork("ProductionStage", stage.id, scope)
    with uow.step("update_stage_status"):
        uow.update(stage, patch)

    if new_status in TERMINAL_STAGE_STATUSES and order.order_status == "in_progress" and _all_stages_closed(order):
        with uow.step("complete_order"):
            uow.update(order, {
                "order_status": "completed", "progress": 100,
                "actual_end": order.actual_end or now,
            })
        logger.info("ProductionOrder id=%s auto-completed: all stages closed", order.id)

    logger.info(
        "ProductionStage id=%s transitioned %s → %s", stage.id, old, new_status,
        extra={"entity": "ProductionStage", "entity_id": stage.id, "company_id": stage.company_id},
    )
    return stage


def delete_stage(stage_id: int, scope: Scope) -> dict:
    """Only pending stages can be deleted; resources go first."""
    stage = get_stage(stage_id, scope)
    if stage.stage_status != "pending":
        raise PreconditionFailedError(
            f"Cannot delete a stage with status '{stage.stage_status}'. "
            "Only 'pending' stages can be deleted."
        )
    return soft_delete_row("production_stage", stage, scope, label="Production stage")


# ── Stage resources ─────────────────────────────────────────────────────────


def add_stage_resource(stage_id: int, data: dict, scope: Scope) -> ProductionStageResource:
    stage = get_stage(stage_id, scope)
    if stage.stage_status in TERMINAL_STAGE_STATUSES:
        raise PreconditionFailedError(f"Cannot add resources to a {stage.stage_status} stage")
    company_of_parent(stage, data)
    (row,) = _resource_rows([data], stage)
    return insert_one("ProductionStageResource", row, scope)


def delete_stage_resource(resource_id: int, scope: Scope) -> dict:
    row = get_scoped(ProductionStageResource, resource_id, scope, label="Stage resource")
    return soft_delete_row("production_stage_resource", row, scope, label="Stage resource")
