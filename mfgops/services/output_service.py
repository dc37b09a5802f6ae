"""
Production outputs — Service Layer.

An output records a produced quantity against an order that has started
(in_progress or completed). Outputs carry no state machine of their own;
``quality_status`` is descriptive and follows the quality checks linked to
the output:

    link a check     →  passed / failed from the check
    unlink a check   →  pending_inspection
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select

from mfgops.core.exceptions import (
    ConflictError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)
from mfgops.models import db
from mfgops.models.catalog import Warehouse
from mfgops.models.production import (
    OUTPUT_QUALITY_STATUSES,
    OutputQualityCheck,
    ProductionOutput,
    ProductionStage,
    QualityCheck,
)
from mfgops.services.helpers.scoped_queries import (
    Scope,
    company_of_parent,
    find,
    get_live_reference,
    get_scoped,
    reject_company_change,
)
from mfgops.services.helpers.unit_of_work import UnitOfWork, insert_one, update_one
from mfgops.services.production_service import get_order
from mfgops.services.soft_delete_service import soft_delete_row
from mfgops.services.uniqueness import check_unique
from mfgops.utils.helpers import parse_datetime, parse_positive, require_fields

logger = logging.getLogger(__name__)

OUTPUT_ORDER_STATUSES = ("in_progress", "completed")
LINK_TAKEN = "This quality check is already linked to the output"

_OUTPUT_FIELDS = ("unit", "batch_number", "lot_number", "notes")


def _quality_status(value) -> str:
    if value not in OUTPUT_QUALITY_STATUSES:
        raise ValidationError(
            f"quality_status must be one of: {', '.join(OUTPUT_QUALITY_STATUSES)}",
            details={"quality_status": value},
        )
    return value


def list_outputs(order_id: int, scope: Scope) -> list[ProductionOutput]:
    get_order(order_id, scope)
    return find(
        ProductionOutput, scope, ProductionOutput.production_order_id == order_id,
        order_by=ProductionOutput.created_at.desc(),
    )


def get_output(output_id: int, scope: Scope, include_inactive: bool = False) -> ProductionOutput:
    return get_scoped(
        ProductionOutput, output_id, scope, include_inactive=include_inactive, label="Production output",
    )


def create_output(data: dict, scope: Scope) -> ProductionOutput:
    require_fields(data, "production_order_id", "quantity")
    quantity = parse_positive(data["quantity"], "quantity")
    quality_status = _quality_status(data.get("quality_status", "pending_inspection"))
    order = get_order(data["production_order_id"], scope)
    if order.order_status not in OUTPUT_ORDER_STATUSES:
        raise PreconditionFailedError(
            "Outputs can only be recorded for orders that are in progress or completed",
            details={"order_status": order.order_status},
        )
    company_id = company_of_parent(order, data)
    warehouse_id = None
    if data.get("warehouse_id") is not None:
        warehouse_id = get_live_reference(Warehouse, data["warehouse_id"], company_id, "Warehouse").id

    return insert_one("ProductionOutput", ProductionOutput(
        company_id=company_id,
        production_order_id=order.id,
        quantity=quantity,
        output_date=parse_datetime(data.get("output_date"), "output_date") or datetime.now(timezone.utc),
        warehouse_id=warehouse_id,
        quality_status=quality_status,
        unit=data.get("unit") or order.unit,
        **{f: data[f] for f in _OUTPUT_FIELDS if f in data and f != "unit"},
    ), scope)


def update_output(output_id: int, data: dict, scope: Scope) -> ProductionOutput:
    output = get_output(output_id, scope)
    reject_company_change(output, data)
    if "production_order_id" in data and data["production_order_id"] != output.production_order_id:
        raise ValidationError("production_order_id cannot be changed")
    patch = {f: data[f] for f in _OUTPUT_FIELDS if f in data}
    if "quantity" in data:
        patch["quantity"] = parse_positive(data["quantity"], "quantity")
    if "quality_status" in data:
        patch["quality_status"] = _quality_status(data["quality_status"])
    if "output_date" in data:
        patch["output_date"] = parse_datetime(data["output_date"], "output_date")
    if "warehouse_id" in data:
        patch["warehouse_id"] = (
            get_live_reference(Warehouse, data["warehouse_id"], output.company_id, "Warehouse").id
            if data["warehouse_id"] is not None else None
        )
    return update_one("ProductionOutput", output, patch, scope)


def delete_output(output_id: int, scope: Scope) -> dict:
    """Soft-delete an output together with its quality-check links."""
    output = get_output(output_id, scope)
    uow = UnitOfWork("ProductionOutput", output.id, scope)
    with uow.step("soft_delete_output_quality_checks"):
        uow.soft_delete(_live_links(output))
    return soft_delete_row("production_output", output, scope, label="Production output", uow=uow)


# ── Quality check links ─────────────────────────────────────────────────────


def _live_links(output: ProductionOutput, check_id: int | None = None) -> list[OutputQualityCheck]:
    stmt = select(OutputQualityCheck).where(
        OutputQualityCheck.production_output_id == output.id,
        OutputQualityCheck.company_id == output.company_id,
        OutputQualityCheck.status.is_(True),
    )
    if check_id is not None:
        stmt = stmt.where(OutputQualityCheck.quality_check_id == check_id)
    return list(db.session.execute(stmt).scalars().all())


def list_output_checks(output_id: int, scope: Scope) -> list[OutputQualityCheck]:
    output = get_output(output_id, scope)
    return _live_links(output)


def link_quality_check(output_id: int, check_id: int, scope: Scope) -> OutputQualityCheck:
    """Link a check of one of the order's stages; quality_status follows it."""
    output = get_output(output_id, scope)
    check = get_live_reference(QualityCheck, check_id, output.company_id, "Quality check")
    stage = db.session.execute(
        select(ProductionStage).where(
            ProductionStage.id == check.production_stage_id,
            ProductionStage.company_id == output.company_id,
        )
    ).scalar_one_or_none()
    if stage is None or stage.production_order_id != output.production_order_id:
        raise ValidationError("Quality check does not belong to this output's production order")
    if not check_unique(
        OutputQualityCheck,
        {"production_output_id": output.id, "quality_check_id": check.id},
        output.company_id,
    ):
        raise ConflictError(LINK_TAKEN, resource="Output quality check", field="quality_check_id", value=check.id)

    link = OutputQualityCheck(
        company_id=output.company_id,
        production_output_id=output.id,
        quality_check_id=check.id,
    )
    uow = UnitOfWork("ProductionOutput", output.id, scope)
    with uow.step("insert_output_quality_check"):
        uow.insert(link)
    with uow.step("update_output_quality_status"):
        uow.update(output, {"quality_status": "passed" if check.passed else "failed"})
    logger.info(
        "QualityCheck id=%s linked to ProductionOutput id=%s", check.id, output.id,
        extra={"entity": "ProductionOutput", "entity_id": output.id, "company_id": output.company_id},
    )
    return link


def unlink_quality_check(output_id: int, check_id: int, scope: Scope) -> dict:
    output = get_output(output_id, scope)
    links = _live_links(output, check_id)
    if not links:
        raise NotFoundError(resource="Output quality check link", resource_id=check_id)

    uow = UnitOfWork("ProductionOutput", output.id, scope)
    with uow.step("soft_delete_output_quality_check"):
        uow.soft_delete(links)
    with uow.step("update_output_quality_status"):
        uow.update(output, {"quality_status": "pending_inspection"})
    return {"message": "Quality check unlinked successfully", "id": output.id}
