"""
TenantModel — Abstract base class for company-scoped models.

All domain tables inherit from TenantModel instead of db.Model directly.
This adds:
  - integer ``id`` primary key
  - ``company_id`` FK column with index (immutable after creation)
  - ``status`` soft-delete flag (via SoftDeleteMixin)
  - ``created_by`` / ``updated_by`` actor identity
  - ``created_at`` / ``updated_at`` timestamps
  - ``exactly_one_of`` check-constraint helper for tagged references
"""

from datetime import datetime, timezone

from sqlalchemy.orm import declared_attr

from mfgops.models import db
from mfgops.models.soft_delete import SoftDeleteMixin


def utcnow():
    return datetime.now(timezone.utc)


def isoformat(value):
    return value.isoformat() if value else None


def exactly_one_of(name, *columns):
    """Build a CHECK constraint requiring exactly one of *columns* to be set."""
    branches = []
    for chosen in columns:
        parts = [
            f"{col} IS NOT NULL" if col == chosen else f"{col} IS NULL"
            for col in columns
        ]
        branches.append("(" + " AND ".join(parts) + ")")
    return db.CheckConstraint(" OR ".join(branches), name=name)


class TenantModel(SoftDeleteMixin, db.Model):
    """Abstract base for company-scoped tables."""
    __abstract__ = True

    id = db.Column(db.Integer, primary_key=True)

    @declared_attr
    def company_id(cls):
        return db.Column(
            db.Integer,
            db.ForeignKey("companies.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )

    created_by = db.Column(db.Integer, nullable=True, comment="Actor id of creator")
    updated_by = db.Column(db.Integer, nullable=True, comment="Actor id of last writer")
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def _audit_dict(self):
        return {
            "id": self.id,
            "company_id": self.company_id,
            "status": self.status,
            "created_by": self.created_by,
            "updated_by": self.updated_by,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }

    def to_dict(self):
        return self._audit_dict()

    def __repr__(self):
        return f"<{type(self).__name__} {self.id} company={self.company_id}>"
