"""
Quality checks — Service Layer.

A quality check is the only writer of ``ProductionStage.quality_approved``.
Every operation that changes a check's ``passed`` flag propagates it to the
stage as a separate unit-of-work step:

    create_quality_check         insert check + items  →  stage approval
    update_quality_check         update check          →  stage approval
    update_quality_check_items   upsert items  →  recompute passed  →  stage approval
    delete_quality_check_item    soft-delete item  →  recompute passed  →  stage approval
    delete_quality_check         items  →  check  →  reset stage approval (if it had passed)

A failure after the first step raises PartialFailureError naming the steps
that committed.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select

from mfgops.core.exceptions import PreconditionFailedError, ValidationError
from mfgops.models import db
from mfgops.models.production import (
    ProductionStage,
    QualityCheck,
    QualityCheckItem,
)
from mfgops.services.dependency_checker import CASCADE_CHILDREN, live_children
from mfgops.services.helpers.scoped_queries import (
    Scope,
    company_of_parent,
    find,
    get_scoped,
    reject_company_change,
)
from mfgops.services.helpers.unit_of_work import UnitOfWork
from mfgops.services.production_service import get_order
from mfgops.services.soft_delete_service import soft_delete_row
from mfgops.utils.helpers import parse_bool, parse_datetime, parse_int, require_fields

logger = logging.getLogger(__name__)

NOT_REQUIRED_MSG = "Quality check is not required for this stage"
NOT_IN_PROGRESS_MSG = "Cannot create a quality check: stage must be in progress"
ITEMS_REQUIRED_MSG = "Items array is required"

_ITEM_FIELDS = ("parameter_name", "expected_value", "actual_value", "unit", "notes")


def _apply_stage_approval(uow: UnitOfWork, stage: ProductionStage, passed: bool) -> None:
    """Write a check result to its stage."""
    uow.update(stage, {"quality_approved": bool(passed)})


def _stage_of(check: QualityCheck) -> ProductionStage:
    return db.session.execute(
        select(ProductionStage).where(
            ProductionStage.id == check.production_stage_id,
            ProductionStage.company_id == check.company_id,
        )
    ).scalar_one()


def _item_rows(items, check: QualityCheck) -> list[QualityCheckItem]:
    if not isinstance(items, list):
        raise ValidationError("items must be a list")
    rows = []
    for idx, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{idx}] must be an object")
        require_fields(item, "parameter_name")
        rows.append(QualityCheckItem(
            company_id=check.company_id,
            quality_check_id=check.id,
            passed=parse_bool(item.get("passed", False), f"items[{idx}].passed"),
            **{f: item[f] for f in _ITEM_FIELDS if f in item},
        ))
    return rows


def check_items(check: QualityCheck) -> list[QualityCheckItem]:
    (child,) = CASCADE_CHILDREN["quality_check"]
    rows = live_children(child, check.id, check.company_id)
    return sorted(rows, key=lambda r: r.id)


# ── Reads ────────────────────────────────────────────────────────────────────


def get_quality_check(check_id: int, scope: Scope, include_inactive: bool = False) -> QualityCheck:
    return get_scoped(
        QualityCheck, check_id, scope, include_inactive=include_inactive, label="Quality check",
    )


def list_stage_checks(stage_id: int, scope: Scope) -> list[QualityCheck]:
    get_scoped(ProductionStage, stage_id, scope, label="Production stage")
    return find(
        QualityCheck, scope, QualityCheck.production_stage_id == stage_id,
        order_by=(QualityCheck.check_date.desc(), QualityCheck.id.desc()),
    )


def list_order_checks(order_id: int, scope: Scope) -> list[QualityCheck]:
    """Checks of every live stage of an order, newest check_date first."""
    order = get_order(order_id, scope)
    stage_ids = select(ProductionStage.id).where(
        ProductionStage.production_order_id == order.id,
        ProductionStage.company_id == order.company_id,
        ProductionStage.status.is_(True),
    )
    return find(
        QualityCheck, scope, QualityCheck.production_stage_id.in_(stage_ids),
        order_by=(QualityCheck.check_date.desc(), QualityCheck.id.desc()),
    )


# ── Writes ───────────────────────────────────────────────────────────────────


def create_quality_check(data: dict, scope: Scope) -> QualityCheck:
    """Record a check for an in-progress, check-required stage.

    Precondition order:
        1. stage in scope (NotFoundError)
        2. stage requires a quality check
        3. stage is in_progress

    ``passed`` is the submitted value; when omitted it is the AND of the
    submitted item flags (false with no items).

    Steps:
        insert_quality_check   check and items together
        update_stage_approval  stage.quality_approved = check.passed
    """
    require_fields(data, "production_stage_id")
    stage = get_scoped(ProductionStage, data["production_stage_id"], scope, label="Production stage")
    if not stage.quality_check_required:
        raise PreconditionFailedError(NOT_REQUIRED_MSG, details={"production_stage_id": stage.id})
    if stage.stage_status != "in_progress":
        raise PreconditionFailedError(NOT_IN_PROGRESS_MSG, details={
            "production_stage_id": stage.id, "stage_status": stage.stage_status,
        })
    company_id = company_of_parent(stage, data)

    items = data.get("items") or []
    check = QualityCheck(
        company_id=company_id,
        production_stage_id=stage.id,
        check_date=parse_datetime(data.get("check_date"), "check_date") or datetime.now(timezone.utc),
        checked_by=data.get("checked_by", scope.actor_id),
        notes=data.get("notes", ""),
    )

    uow = UnitOfWork("QualityCheck", None, scope)
    with uow.step("insert_quality_check"):
        uow.insert(check)
        uow.entity_id = check.id
        rows = [uow.insert(row) for row in _item_rows(items, check)]
        if "passed" in data and data["passed"] is not None:
            check.passed = parse_bool(data["passed"], "passed")
        else:
            check.passed = bool(rows) and all(r.passed for r in rows)
    with uow.step("update_stage_approval"):
        _apply_stage_approval(uow, stage, check.passed)

    logger.info(
        "QualityCheck created id=%s stage=%s passed=%s items=%d",
        check.id, stage.id, check.passed, len(rows),
        extra={"entity": "QualityCheck", "entity_id": check.id, "company_id": company_id},
    )
    return check


def update_quality_check(check_id: int, data: dict, scope: Scope) -> QualityCheck:
    """Update notes / check_date / passed; a changed ``passed`` reaches the stage."""
    check = get_quality_check(check_id, scope)
    reject_company_change(check, data)
    patch = {f: data[f] for f in ("notes", "checked_by") if f in data}
    if "check_date" in data:
        patch["check_date"] = parse_datetime(data["check_date"], "check_date")
    passed_changed = False
    if "passed" in data:
        passed = parse_bool(data["passed"], "passed")
        passed_changed = passed != check.passed
        patch["passed"] = passed
    if not patch:
        return check

    uow = UnitOfWork("QualityCheck", check.id, scope)
    with uow.step("update_quality_check"):
        uow.update(check, patch)
    if passed_changed:
        with uow.step("update_stage_approval"):
            _apply_stage_approval(uow, _stage_of(check), check.passed)
    logger.info(
        "QualityCheck updated id=%s fields=%s", check.id, sorted(patch),
        extra={"entity": "QualityCheck", "entity_id": check.id, "company_id": check.company_id},
    )
    return check


def update_quality_check_items(check_id: int, items, scope: Scope) -> QualityCheck:
    """Upsert items of a check and recompute its result.

    Items carrying an ``id`` update that live item of this check; items
    without one are inserted. ``passed`` becomes the AND over every live item
    of the check after the upsert and is propagated to the stage.

    Steps: upsert_items → update_check_result → update_stage_approval
    """
    check = get_quality_check(check_id, scope)
    if not isinstance(items, list) or not items:
        raise ValidationError(ITEMS_REQUIRED_MSG, details={"items": "required"})

    existing = {row.id: row for row in check_items(check)}
    updates, inserts = [], []
    for idx, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{idx}] must be an object")
        if item.get("id") is not None:
            item_id = parse_int(item["id"], f"items[{idx}].id")
            row = existing.get(item_id)
            if row is None:
                raise ValidationError(
                    f"items[{idx}].id does not belong to this quality check",
                    details={"id": item_id},
                )
            patch = {f: item[f] for f in _ITEM_FIELDS if f in item}
            if "parameter_name" in item:
                require_fields(item, "parameter_name")
            if "passed" in item:
                patch["passed"] = parse_bool(item["passed"], f"items[{idx}].passed")
            updates.append((row, patch))
        else:
            inserts.extend(_item_rows([item], check))

    uow = UnitOfWork("QualityCheck", check.id, scope)
    with uow.step("upsert_items"):
        for row, patch in updates:
            uow.update(row, patch)
        for row in inserts:
            uow.insert(row)
    with uow.step("update_check_result"):
        rows = check_items(check)
        uow.update(check, {"passed": bool(rows) and all(r.passed for r in rows)})
    with uow.step("update_stage_approval"):
        _apply_stage_approval(uow, _stage_of(check), check.passed)

    logger.info(
        "QualityCheck id=%s items upserted updated=%d inserted=%d passed=%s",
        check.id, len(updates), len(inserts), check.passed,
        extra={"entity": "QualityCheck", "entity_id": check.id, "company_id": check.company_id},
    )
    return check


def delete_quality_check_item(item_id: int, scope: Scope) -> QualityCheck:
    """Soft-delete one item and recompute the check over the remaining ones."""
    item = get_scoped(QualityCheckItem, item_id, scope, label="Quality check item")
    check = get_quality_check(item.quality_check_id, scope)

    uow = UnitOfWork("QualityCheck", check.id, scope)
    with uow.step("soft_delete_quality_check_item"):
        uow.soft_delete([item])
    with uow.step("update_check_result"):
        rows = check_items(check)
        uow.update(check, {"passed": bool(rows) and all(r.passed for r in rows)})
    with uow.step("update_stage_approval"):
        _apply_stage_approval(uow, _stage_of(check), check.passed)
    return check


def delete_quality_check(check_id: int, scope: Scope) -> dict:
    """Soft-delete a check and its items; a passing check's approval is revoked.

    Blocked while the check is linked to a live production output.
    """
    check = get_quality_check(check_id, scope)
    had_passed = check.passed

    uow = UnitOfWork("QualityCheck", check.id, scope)
    result = soft_delete_row("quality_check", check, scope, label="Quality check", uow=uow)
    if had_passed:
        with uow.step("reset_stage_approval"):
            _apply_stage_approval(uow, _stage_of(check), False)
    return result
