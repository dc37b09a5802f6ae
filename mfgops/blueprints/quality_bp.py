"""
Quality check blueprint.

Endpoints:
    POST   /api/v1/quality-checks                       — create (stage gated)
    GET    /api/v1/quality-checks/<id>                  — detail with items
    PUT    /api/v1/quality-checks/<id>                  — notes / check_date / passed
    DELETE /api/v1/quality-checks/<id>                  — soft delete with items
    PUT    /api/v1/quality-checks/<id>/items            — upsert items, recompute passed
    DELETE /api/v1/quality-check-items/<id>             — remove one item
    GET    /api/v1/production-stages/<id>/quality-checks
    GET    /api/v1/production-orders/<id>/quality-checks
"""

import logging

from flask import Blueprint

from mfgops.blueprints import current_scope, include_inactive, json_body, ok, ok_list
from mfgops.services import quality_service

logger = logging.getLogger(__name__)

quality_bp = Blueprint("quality", __name__, url_prefix="/api/v1")


def _with_items(check):
    return check.to_dict(items=quality_service.check_items(check))


@quality_bp.route("/quality-checks", methods=["POST"])
def create_quality_check():
    check = quality_service.create_quality_check(json_body(), current_scope())
    return ok(_with_items(check), 201)


@quality_bp.route("/quality-checks/<int:check_id>", methods=["GET"])
def get_quality_check(check_id):
    check = quality_service.get_quality_check(check_id, current_scope(), include_inactive=include_inactive())
    return ok(_with_items(check))


@quality_bp.route("/quality-checks/<int:check_id>", methods=["PUT"])
def update_quality_check(check_id):
    check = quality_service.update_quality_check(check_id, json_body(), current_scope())
    return ok(_with_items(check))


@quality_bp.route("/quality-checks/<int:check_id>", methods=["DELETE"])
def delete_quality_check(check_id):
    return ok(quality_service.delete_quality_check(check_id, current_scope()))


@quality_bp.route("/quality-checks/<int:check_id>/items", methods=["PUT"])
def update_quality_check_items(check_id):
    items = json_body().get("items")
    check = quality_service.update_quality_check_items(check_id, items, current_scope())
    return ok(_with_items(check))


@quality_bp.route("/quality-check-items/<int:item_id>", methods=["DELETE"])
def delete_quality_check_item(item_id):
    check = quality_service.delete_quality_check_item(item_id, current_scope())
    return ok(_with_items(check))


@quality_bp.route("/production-stages/<int:stage_id>/quality-checks", methods=["GET"])
def list_stage_checks(stage_id):
    return ok_list(quality_service.list_stage_checks(stage_id, current_scope()), serialize=_with_items)


@quality_bp.route("/production-orders/<int:order_id>/quality-checks", methods=["GET"])
def list_order_checks(order_id):
    return ok_list(quality_service.list_order_checks(order_id, current_scope()), serialize=_with_items)
