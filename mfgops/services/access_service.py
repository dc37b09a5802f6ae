"""
Access control — Service Layer.

Business logic for:
    - Company bootstrap (system admin / CLI only)
    - Users, Groups, Roles: scoped CRUD with dependency-checked soft delete
    - UserInGroup, GroupInRole: association rows between live, same-company rows
    - Role name uniqueness within a company; role writes need admin scope
    - (group_id, role_id) pair uniqueness
"""

import logging

from mfgops.core.exceptions import ForbiddenError
from mfgops.models.access import Company, Group, GroupInRole, Role, User, UserInGroup
from mfgops.services.helpers.scoped_queries import (
    Scope,
    find,
    get_live_reference,
    get_scoped,
    reject_company_change,
)
from mfgops.services.helpers.unit_of_work import insert_one, update_one
from mfgops.services.soft_delete_service import soft_delete
from mfgops.services.uniqueness import ensure_unique
from mfgops.utils.helpers import require_fields

logger = logging.getLogger(__name__)

ROLE_NAME_TAKEN = "Role with this name already exists in your company"
ROLE_NAME_TAKEN_ON_UPDATE = "Another role with this name already exists in the company"
GROUP_ROLE_TAKEN = "This group-role association already exists"
USER_GROUP_TAKEN = "This user-group association already exists"


# ── Company ──────────────────────────────────────────────────────────────────


def create_company(data: dict, scope: Scope | None = None) -> Company:
    """Create a tenant. Only a system admin (or the bootstrap CLI) may do this."""
    if scope is not None and not scope.is_system_admin:
        raise ForbiddenError("Only system administrators can create companies")
    require_fields(data, "name")
    return insert_one("Company", Company(name=str(data["name"]).strip(), code=data.get("code")), scope)


# ── User ─────────────────────────────────────────────────────────────────────


def list_users(scope: Scope) -> list[User]:
    return find(User, scope, order_by=User.created_at.desc())


def get_user(user_id: int, scope: Scope, include_inactive: bool = False) -> User:
    return get_scoped(User, user_id, scope, include_inactive=include_inactive, label="User")


def create_user(data: dict, scope: Scope) -> User:
    require_fields(data, "email")
    company_id = scope.company_for_write(data.get("company_id"))
    email = str(data["email"]).strip().lower()
    ensure_unique(User, {"email": email}, company_id, label="User")
    return insert_one("User", User(
        company_id=company_id,
        email=email,
        full_name=data.get("full_name", ""),
    ), scope)


def delete_user(user_id: int, scope: Scope) -> dict:
    return soft_delete("user", user_id, scope)


# ── Group ────────────────────────────────────────────────────────────────────


def list_groups(scope: Scope) -> list[Group]:
    return find(Group, scope, order_by=Group.created_at.desc())


def get_group(group_id: int, scope: Scope, include_inactive: bool = False) -> Group:
    return get_scoped(Group, group_id, scope, include_inactive=include_inactive, label="Group")


def create_group(data: dict, scope: Scope) -> Group:
    require_fields(data, "name")
    company_id = scope.company_for_write(data.get("company_id"))
    return insert_one("Group", Group(
        company_id=company_id,
        name=str(data["name"]).strip(),
        description=data.get("description", ""),
    ), scope)


def update_group(group_id: int, data: dict, scope: Scope) -> Group:
    group = get_group(group_id, scope)
    reject_company_change(group, data)
    if "name" in data:
        require_fields(data, "name")
    patch = {f: data[f] for f in ("name", "description") if f in data}
    return update_one("Group", group, patch, scope)


def delete_group(group_id: int, scope: Scope) -> dict:
    """Blocked while live user memberships or role assignments exist."""
    return soft_delete("group", group_id, scope)


# ── UserInGroup ──────────────────────────────────────────────────────────────


def list_group_members(group_id: int, scope: Scope) -> list[UserInGroup]:
    get_group(group_id, scope)
    return find(UserInGroup, scope, UserInGroup.group_id == group_id)


def add_user_to_group(data: dict, scope: Scope) -> UserInGroup:
    require_fields(data, "user_id", "group_id")
    company_id = scope.company_for_write(data.get("company_id"))
    user = get_live_reference(User, data["user_id"], company_id, "User")
    group = get_live_reference(Group, data["group_id"], company_id, "Group")
    ensure_unique(
        UserInGroup, {"user_id": user.id, "group_id": group.id}, company_id,
        label="User-group association", message=USER_GROUP_TAKEN,
    )
    return insert_one("UserInGroup", UserInGroup(
        company_id=company_id, user_id=user.id, group_id=group.id,
    ), scope)


def remove_user_from_group(membership_id: int, scope: Scope) -> dict:
    return soft_delete("user_in_group", membership_id, scope)


# ── Role ─────────────────────────────────────────────────────────────────────


def _require_admin(scope: Scope, action: str) -> None:
    if not scope.is_admin:
        raise ForbiddenError(f"Only administrators can {action} roles")


def list_roles(scope: Scope) -> list[Role]:
    return find(Role, scope, order_by=Role.name)


def get_role(role_id: int, scope: Scope, include_inactive: bool = False) -> Role:
    return get_scoped(Role, role_id, scope, include_inactive=include_inactive, label="Role")


def create_role(data: dict, scope: Scope) -> Role:
    """Create a role; name must be unique among the company's live roles."""
    _require_admin(scope, "create")
    require_fields(data, "name")
    company_id = scope.company_for_write(data.get("company_id"))
    name = str(data["name"]).strip()
    ensure_unique(Role, {"name": name}, company_id, label="Role", message=ROLE_NAME_TAKEN)
    return insert_one("Role", Role(
        company_id=company_id,
        name=name,
        description=data.get("description", ""),
    ), scope)


def update_role(role_id: int, data: dict, scope: Scope) -> Role:
    _require_admin(scope, "update")
    role = get_role(role_id, scope)
    reject_company_change(role, data)
    patch = {}
    if "name" in data:
        require_fields(data, "name")
        name = str(data["name"]).strip()
        if name != role.name:
            ensure_unique(
                Role, {"name": name}, role.company_id,
                exclude_id=role.id, label="Role", message=ROLE_NAME_TAKEN_ON_UPDATE,
            )
        patch["name"] = name
    if "description" in data:
        patch["description"] = data["description"]
    return update_one("Role", role, patch, scope)


def delete_role(role_id: int, scope: Scope) -> dict:
    _require_admin(scope, "delete")
    return soft_delete("role", role_id, scope)


# ── GroupInRole ──────────────────────────────────────────────────────────────


def list_group_roles(scope: Scope, group_id: int | None = None, role_id: int | None = None) -> list[GroupInRole]:
    criteria = []
    if group_id is not None:
        criteria.append(GroupInRole.group_id == group_id)
    if role_id is not None:
        criteria.append(GroupInRole.role_id == role_id)
    return find(GroupInRole, scope, *criteria, order_by=GroupInRole.created_at.desc())


def get_group_role(assoc_id: int, scope: Scope, include_inactive: bool = False) -> GroupInRole:
    return get_scoped(
        GroupInRole, assoc_id, scope, include_inactive=include_inactive,
        label="Group-role association",
    )


def create_group_role(data: dict, scope: Scope) -> GroupInRole:
    require_fields(data, "group_id", "role_id")
    company_id = scope.company_for_write(data.get("company_id"))
    group = get_live_reference(Group, data["group_id"], company_id, "Group")
    role = get_live_reference(Role, data["role_id"], company_id, "Role")
    ensure_unique(
        GroupInRole, {"group_id": group.id, "role_id": role.id}, company_id,
        label="Group-role association", message=GROUP_ROLE_TAKEN,
    )
    return insert_one("GroupInRole", GroupInRole(
        company_id=company_id, group_id=group.id, role_id=role.id,
    ), scope)


def update_group_role(assoc_id: int, data: dict, scope: Scope) -> GroupInRole:
    assoc = get_group_role(assoc_id, scope)
    reject_company_change(assoc, data)
    group_id = data.get("group_id", assoc.group_id)
    role_id = data.get("role_id", assoc.role_id)
    if (group_id, role_id) == (assoc.group_id, assoc.role_id):
        return assoc
    group = get_live_reference(Group, group_id, assoc.company_id, "Group")
    role = get_live_reference(Role, role_id, assoc.company_id, "Role")
    ensure_unique(
        GroupInRole, {"group_id": group.id, "role_id": role.id}, assoc.company_id,
        exclude_id=assoc.id, label="Group-role association", message=GROUP_ROLE_TAKEN,
    )
    return update_one("GroupInRole", assoc, {"group_id": group.id, "role_id": role.id}, scope)


def delete_group_role(assoc_id: int, scope: Scope) -> dict:
    return soft_delete("group_in_role", assoc_id, scope)
