"""
Soft Delete Mixin.

Rows are never physically removed. The boolean ``status`` column is the
liveness flag: ``True`` for live rows, ``False`` once a row has been
soft-deleted. Soft-deleted rows stay queryable for audit but are excluded
from default listings and can never become the target of a new association.

Usage:
    class MyModel(SoftDeleteMixin, db.Model):
        ...

    # Soft delete
    obj.soft_delete(actor_id=7)
    db.session.commit()

    # Select only live rows
    db.session.execute(MyModel.select_active()).scalars().all()

    # Restore
    obj.restore(actor_id=7)
    db.session.commit()
"""

from sqlalchemy import select

from mfgops.models import db


class SoftDeleteMixin:
    """Mixin that adds the ``status`` liveness flag to a model."""

    status = db.Column(
        db.Boolean, nullable=False, default=True, index=True,
        comment="true = live, false = soft-deleted",
    )

    def soft_delete(self, actor_id=None):
        """Mark this record as deleted."""
        self.status = False
        if actor_id is not None and hasattr(self, "updated_by"):
            self.updated_by = actor_id

    def restore(self, actor_id=None):
        """Restore a soft-deleted record."""
        self.status = True
        if actor_id is not None and hasattr(self, "updated_by"):
            self.updated_by = actor_id

    @property
    def is_deleted(self):
        return not self.status

    @classmethod
    def select_active(cls):
        """Return a select() that excludes soft-deleted records."""
        return select(cls).where(cls.status.is_(True))
