"""
Access control blueprint — companies, users, groups, roles and their links.

Endpoints:
    POST   /api/v1/companies                  — create company (system admin)

    GET    /api/v1/users                      — list users
    POST   /api/v1/users                      — create user
    GET    /api/v1/users/<id>                 — user detail
    DELETE /api/v1/users/<id>                 — soft delete

    GET    /api/v1/groups                     — list groups
    POST   /api/v1/groups                     — create group
    GET    /api/v1/groups/<id>                — group detail
    PUT    /api/v1/groups/<id>                — update group
    DELETE /api/v1/groups/<id>                — soft delete (blocked by members / roles)
    GET    /api/v1/groups/<id>/members        — live memberships

    POST   /api/v1/user-groups                — add user to group
    DELETE /api/v1/user-groups/<id>           — remove membership

    GET    /api/v1/roles                      — list roles
    POST   /api/v1/roles                      — create role (admin)
    GET    /api/v1/roles/<id>                 — role detail
    PUT    /api/v1/roles/<id>                 — update role (admin)
    DELETE /api/v1/roles/<id>                 — soft delete (admin)

    GET    /api/v1/group-roles                — list (?group_id=&role_id=)
    POST   /api/v1/group-roles                — assign role to group
    GET    /api/v1/group-roles/<id>           — association detail
    PUT    /api/v1/group-roles/<id>           — re-point association
    DELETE /api/v1/group-roles/<id>           — soft delete
"""

import logging

from flask import Blueprint, request

from mfgops.blueprints import current_scope, include_inactive, json_body, ok, ok_list
from mfgops.services import access_service

logger = logging.getLogger(__name__)

access_bp = Blueprint("access", __name__, url_prefix="/api/v1")


# ── Company ──────────────────────────────────────────────────────────────────


@access_bp.route("/companies", methods=["POST"])
def create_company():
    company = access_service.create_company(json_body(), current_scope())
    return ok(company.to_dict(), 201)


# ── Users ────────────────────────────────────────────────────────────────────


@access_bp.route("/users", methods=["GET"])
def list_users():
    return ok_list(access_service.list_users(current_scope()))


@access_bp.route("/users", methods=["POST"])
def create_user():
    user = access_service.create_user(json_body(), current_scope())
    return ok(user.to_dict(), 201)


@access_bp.route("/users/<int:user_id>", methods=["GET"])
def get_user(user_id):
    user = access_service.get_user(user_id, current_scope(), include_inactive=include_inactive())
    return ok(user.to_dict())


@access_bp.route("/users/<int:user_id>", methods=["DELETE"])
def delete_user(user_id):
    return ok(access_service.delete_user(user_id, current_scope()))


# ── Groups ───────────────────────────────────────────────────────────────────


@access_bp.route("/groups", methods=["GET"])
def list_groups():
    return ok_list(access_service.list_groups(current_scope()))


@access_bp.route("/groups", methods=["POST"])
def create_group():
    group = access_service.create_group(json_body(), current_scope())
    return ok(group.to_dict(), 201)


@access_bp.route("/groups/<int:group_id>", methods=["GET"])
def get_group(group_id):
    group = access_service.get_group(group_id, current_scope(), include_inactive=include_inactive())
    return ok(group.to_dict())


@access_bp.route("/groups/<int:group_id>", methods=["PUT"])
def update_group(group_id):
    group = access_service.update_group(group_id, json_body(), current_scope())
    return ok(group.to_dict())


@access_bp.route("/groups/<int:group_id>", methods=["DELETE"])
def delete_group(group_id):
    return ok(access_service.delete_group(group_id, current_scope()))


@access_bp.route("/groups/<int:group_id>/members", methods=["GET"])
def list_group_members(group_id):
    return ok_list(access_service.list_group_members(group_id, current_scope()))


@access_bp.route("/user-groups", methods=["POST"])
def add_user_to_group():
    membership = access_service.add_user_to_group(json_body(), current_scope())
    return ok(membership.to_dict(), 201)


@access_bp.route("/user-groups/<int:membership_id>", methods=["DELETE"])
def remove_user_from_group(membership_id):
    return ok(access_service.remove_user_from_group(membership_id, current_scope()))


# ── Roles ────────────────────────────────────────────────────────────────────


@access_bp.route("/roles", methods=["GET"])
def list_roles():
    return ok_list(access_service.list_roles(current_scope()))


@access_bp.route("/roles", methods=["POST"])
def create_role():
    role = access_service.create_role(json_body(), current_scope())
    return ok(role.to_dict(), 201)


@access_bp.route("/roles/<int:role_id>", methods=["GET"])
def get_role(role_id):
    role = access_service.get_role(role_id, current_scope(), include_inactive=include_inactive())
    return ok(role.to_dict())


@access_bp.route("/roles/<int:role_id>", methods=["PUT"])
def update_role(role_id):
    role = access_service.update_role(role_id, json_body(), current_scope())
    return ok(role.to_dict())


@access_bp.route("/roles/<int:role_id>", methods=["DELETE"])
def delete_role(role_id):
    return ok(access_service.delete_role(role_id, current_scope()))


# ── Group ↔ Role ─────────────────────────────────────────────────────────────


@access_bp.route("/group-roles", methods=["GET"])
def list_group_roles():
    rows = access_service.list_group_roles(
        current_scope(),
        group_id=request.args.get("group_id", type=int),
        role_id=request.args.get("role_id", type=int),
    )
    return ok_list(rows)


@access_bp.route("/group-roles", methods=["POST"])
def create_group_role():
    assoc = access_service.create_group_role(json_body(), current_scope())
    return ok(assoc.to_dict(), 201)


@access_bp.route("/group-roles/<int:assoc_id>", methods=["GET"])
def get_group_role(assoc_id):
    assoc = access_service.get_group_role(assoc_id, current_scope(), include_inactive=include_inactive())
    return ok(assoc.to_dict())


@access_bp.route("/group-roles/<int:assoc_id>", methods=["PUT"])
def update_group_role(assoc_id):
    assoc = access_service.update_group_role(assoc_id, json_body(), current_scope())
    return ok(assoc.to_dict())


@access_bp.route("/group-roles/<int:assoc_id>", methods=["DELETE"])
def delete_group_role(assoc_id):
    return ok(access_service.delete_group_role(assoc_id, current_scope()))
