"""
Access-control domain models.

Models:
    - Company:      the tenant; every other row carries its id as company_id
    - User:         an actor belonging to one company
    - Group:        named set of users
    - UserInGroup:  user ↔ group membership
    - Role:         named permission bundle, unique per company
    - GroupInRole:  group ↔ role assignment, unique per (group, role)

Architecture:
    Company ──1:N──▶ User, Group, Role
    User ──N:M──▶ Group   (via UserInGroup)
    Group ──N:M──▶ Role   (via GroupInRole)

A Group or Role with live membership / assignment rows cannot be soft-deleted.
"""

from mfgops.models import db
from mfgops.models.base import TenantModel, isoformat, utcnow
from mfgops.models.soft_delete import SoftDeleteMixin


class Company(SoftDeleteMixin, db.Model):
    """Tenant root. Not itself company-scoped."""

    __tablename__ = "companies"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    code = db.Column(db.String(50), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "status": self.status,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def __repr__(self):
        return f"<Company {self.id}: {self.name}>"


class User(TenantModel):
    __tablename__ = "users"

    email = db.Column(db.String(255), nullable=False)
    full_name = db.Column(db.String(200), default="")

    def to_dict(self):
        result = self._audit_dict()
        result.update({"email": self.email, "full_name": self.full_name})
        return result


class Group(TenantModel):
    __tablename__ = "groups"

    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, default="")

    def to_dict(self):
        result = self._audit_dict()
        result.update({"name": self.name, "description": self.description})
        return result


class UserInGroup(TenantModel):
    __tablename__ = "user_in_groups"

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    group_id = db.Column(db.Integer, db.ForeignKey("groups.id"), nullable=False, index=True)

    def to_dict(self):
        result = self._audit_dict()
        result.update({"user_id": self.user_id, "group_id": self.group_id})
        return result


class Role(TenantModel):
    """Named role; ``name`` is unique among a company's live roles."""

    __tablename__ = "roles"

    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, default="")

    def to_dict(self):
        result = self._audit_dict()
        result.update({"name": self.name, "description": self.description})
        return result


class GroupInRole(TenantModel):
    __tablename__ = "group_in_roles"

    group_id = db.Column(db.Integer, db.ForeignKey("groups.id"), nullable=False, index=True)
    role_id = db.Column(db.Integer, db.ForeignKey("roles.id"), nullable=False, index=True)

    def to_dict(self):
        result = self._audit_dict()
        result.update({"group_id": self.group_id, "role_id": self.role_id})
        return result
