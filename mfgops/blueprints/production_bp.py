"""
Production workflow blueprint — plans, orders, stages, stage resources, outputs.

Endpoints:
    GET    /api/v1/production-plans                      — list (?plan_status=)
    POST   /api/v1/production-plans                      — create (draft)
    GET    /api/v1/production-plans/<id>                 — detail
    PUT    /api/v1/production-plans/<id>                 — update
    DELETE /api/v1/production-plans/<id>                 — soft delete
    POST   /api/v1/production-plans/<id>/transition      — {"status": ...}

    GET    /api/v1/production-orders                     — list (?plan_id=&order_status=)
    POST   /api/v1/production-orders                     — create
    GET    /api/v1/production-orders/<id>                — detail
    PUT    /api/v1/production-orders/<id>                — update
    DELETE /api/v1/production-orders/<id>                — soft delete (draft/pending)
    POST   /api/v1/production-orders/<id>/transition     — {"status": ..., "progress"?: int}
    GET    /api/v1/production-orders/<id>/stages         — stages by sequence_number
    GET    /api/v1/production-orders/<id>/outputs        — outputs

    POST   /api/v1/production-stages                     — create (optional resources)
    GET    /api/v1/production-stages/<id>                — detail with resources
    PUT    /api/v1/production-stages/<id>                — update
    DELETE /api/v1/production-stages/<id>                — soft delete (pending only)
    POST   /api/v1/production-stages/<id>/transition     — {"status": ...}
    POST   /api/v1/production-stages/<id>/resources      — add resource
    DELETE /api/v1/stage-resources/<id>                  — remove resource

    POST   /api/v1/production-outputs                    — record output
    GET    /api/v1/production-outputs/<id>               — detail
    PUT    /api/v1/production-outputs/<id>               — update
    DELETE /api/v1/production-outputs/<id>               — soft delete
    GET    /api/v1/production-outputs/<id>/quality-checks            — linked checks
    POST   /api/v1/production-outputs/<id>/quality-checks            — {"quality_check_id": ...}
    DELETE /api/v1/production-outputs/<id>/quality-checks/<check_id> — unlink
"""

import logging

from flask import Blueprint, request

from mfgops.blueprints import current_scope, include_inactive, json_body, ok, ok_list
from mfgops.services import output_service, production_service
from mfgops.utils.helpers import require_fields

logger = logging.getLogger(__name__)

production_bp = Blueprint("production", __name__, url_prefix="/api/v1")


def _target_status(data: dict) -> str:
    require_fields(data, "status")
    return data["status"]


# ═════════════════════════════════════════════════════════════════════════════
# Plans
# ═════════════════════════════════════════════════════════════════════════════


@production_bp.route("/production-plans", methods=["GET"])
def list_plans():
    return ok_list(production_service.list_plans(
        current_scope(), plan_status=request.args.get("plan_status"),
    ))


@production_bp.route("/production-plans", methods=["POST"])
def create_plan():
    plan = production_service.create_plan(json_body(), current_scope())
    return ok(plan.to_dict(), 201)


@production_bp.route("/production-plans/<int:plan_id>", methods=["GET"])
def get_plan(plan_id):
    plan = production_service.get_plan(plan_id, current_scope(), include_inactive=include_inactive())
    return ok(plan.to_dict())


@production_bp.route("/production-plans/<int:plan_id>", methods=["PUT"])
def update_plan(plan_id):
    plan = production_service.update_plan(plan_id, json_body(), current_scope())
    return ok(plan.to_dict())


@production_bp.route("/production-plans/<int:plan_id>", methods=["DELETE"])
def delete_plan(plan_id):
    return ok(production_service.delete_plan(plan_id, current_scope()))


@production_bp.route("/production-plans/<int:plan_id>/transition", methods=["POST"])
def transition_plan(plan_id):
    plan, cascaded = production_service.transition_plan(
        plan_id, _target_status(json_body()), current_scope(),
    )
    return ok(plan.to_dict(), cascaded=cascaded)


# ═════════════════════════════════════════════════════════════════════════════
# Orders
# ═════════════════════════════════════════════════════════════════════════════


@production_bp.route("/production-orders", methods=["GET"])
def list_orders():
    return ok_list(production_service.list_orders(
        current_scope(),
        plan_id=request.args.get("plan_id", type=int),
        order_status=request.args.get("order_status"),
    ))


@production_bp.route("/production-orders", methods=["POST"])
def create_order():
    order = production_service.create_order(json_body(), current_scope())
    return ok(order.to_dict(), 201)


@production_bp.route("/production-orders/<int:order_id>", methods=["GET"])
def get_order(order_id):
    order = production_service.get_order(order_id, current_scope(), include_inactive=include_inactive())
    return ok(order.to_dict())


@production_bp.route("/production-orders/<int:order_id>", methods=["PUT"])
def update_order(order_id):
    order = production_service.update_order(order_id, json_body(), current_scope())
    return ok(order.to_dict())


@production_bp.route("/production-orders/<int:order_id>", methods=["DELETE"])
def delete_order(order_id):
    return ok(production_service.delete_order(order_id, current_scope()))


@production_bp.route("/production-orders/<int:order_id>/transition", methods=["POST"])
def transition_order(order_id):
    data = json_body()
    order = production_service.transition_order(
        order_id, _target_status(data), current_scope(), progress=data.get("progress"),
    )
    return ok(order.to_dict())


@production_bp.route("/production-orders/<int:order_id>/stages", methods=["GET"])
def list_stages(order_id):
    return ok_list(production_service.list_stages(order_id, current_scope()))


@production_bp.route("/production-orders/<int:order_id>/outputs", methods=["GET"])
def list_outputs(order_id):
    return ok_list(output_service.list_outputs(order_id, current_scope()))


# ═════════════════════════════════════════════════════════════════════════════
# Stages
# ═════════════════════════════════════════════════════════════════════════════


@production_bp.route("/production-stages", methods=["POST"])
def create_stage():
    stage = production_service.create_stage(json_body(), current_scope())
    return ok(stage.to_dict(resources=production_service.stage_resources(stage)), 201)


@production_bp.route("/production-stages/<int:stage_id>", methods=["GET"])
def get_stage(stage_id):
    stage = production_service.get_stage(stage_id, current_scope(), include_inactive=include_inactive())
    return ok(stage.to_dict(resources=production_service.stage_resources(stage)))


@production_bp.route("/production-stages/<int:stage_id>", methods=["PUT"])
def update_stage(stage_id):
    stage = production_service.update_stage(stage_id, json_body(), current_scope())
    return ok(stage.to_dict())


@production_bp.route("/production-stages/<int:stage_id>", methods=["DELETE"])
def delete_stage(stage_id):
    return ok(production_service.delete_stage(stage_id, current_scope()))


@production_bp.route("/production-stages/<int:stage_id>/transition", methods=["POST"])
def transition_stage(stage_id):
    stage = production_service.transition_stage(stage_id, _target_status(json_body()), current_scope())
    return ok(stage.to_dict())


@production_bp.route("/production-stages/<int:stage_id>/resources", methods=["POST"])
def add_stage_resource(stage_id):
    row = production_service.add_stage_resource(stage_id, json_body(), current_scope())
    return ok(row.to_dict(), 201)


@production_bp.route("/stage-resources/<int:resource_id>", methods=["DELETE"])
def delete_stage_resource(resource_id):
    return ok(production_service.delete_stage_resource(resource_id, current_scope()))


# ═════════════════════════════════════════════════════════════════════════════
# Outputs
# ═════════════════════════════════════════════════════════════════════════════


@production_bp.route("/production-outputs", methods=["POST"])
def create_output():
    output = output_service.create_output(json_body(), current_scope())
    return ok(output.to_dict(), 201)


@production_bp.route("/production-outputs/<int:output_id>", methods=["GET"])
def get_output(output_id):
    output = output_service.get_output(output_id, current_scope(), include_inactive=include_inactive())
    return ok(output.to_dict())


@production_bp.route("/production-outputs/<int:output_id>", methods=["PUT"])
def update_output(output_id):
    output = output_service.update_output(output_id, json_body(), current_scope())
    return ok(output.to_dict())


@production_bp.route("/production-outputs/<int:output_id>", methods=["DELETE"])
def delete_output(output_id):
    return ok(output_service.delete_output(output_id, current_scope()))


@production_bp.route("/production-outputs/<int:output_id>/quality-checks", methods=["GET"])
def list_output_checks(output_id):
    return ok_list(output_service.list_output_checks(output_id, current_scope()))


@production_bp.route("/production-outputs/<int:output_id>/quality-checks", methods=["POST"])
def link_quality_check(output_id):
    data = json_body()
    require_fields(data, "quality_check_id")
    link = output_service.link_quality_check(output_id, data["quality_check_id"], current_scope())
    return ok(link.to_dict(), 201)


@production_bp.route(
    "/production-outputs/<int:output_id>/quality-checks/<int:check_id>", methods=["DELETE"],
)
def unlink_quality_check(output_id, check_id):
    return ok(output_service.unlink_quality_check(output_id, check_id, current_scope()))
