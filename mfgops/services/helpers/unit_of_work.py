"""
Unit of work for multi-step writes.

Creating a quality check, cascading a soft delete, and propagating a check
result to its stage each take more than one write. Every step commits on its
own. There is no compensating transaction, so a failure after the first
committed step leaves partially-applied state behind. That state is surfaced
as ``PartialFailureError`` naming the steps that did commit, and is logged at
ERROR for manual remediation.

All such sequences go through this one class. Wrapping the whole sequence in a
single database transaction later only requires changing ``step``.

Usage:
    uow = UnitOfWork("QualityCheck", None, scope)
    with uow.step("insert_quality_check"):
        check = uow.insert(QualityCheck(...))
        uow.entity_id = check.id
    with uow.step("update_stage_approval"):
        stage.quality_approved = check.passed

Failure mapping:
    SQLAlchemyError before any committed step  → StoreError
    SQLAlchemyError after a committed step     → PartialFailureError
    MfgOpsError before any committed step      → re-raised unchanged
    MfgOpsError after a committed step         → PartialFailureError
"""

from __future__ import annotations

import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from mfgops.core.exceptions import MfgOpsError, PartialFailureError, StoreError
from mfgops.models import db

logger = logging.getLogger(__name__)


class UnitOfWork:
    """Ordered, individually committed steps acting on one entity."""

    def __init__(self, entity: str, entity_id, scope) -> None:
        self.entity = entity
        self.entity_id = entity_id
        self.scope = scope
        self.completed_steps: list[str] = []

    @contextmanager
    def step(self, name: str):
        try:
            yield
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise self._failure(name, exc) from exc
        except MfgOpsError as exc:
            db.session.rollback()
            if not self.completed_steps:
                raise
            raise self._failure(name, exc) from exc
        self.completed_steps.append(name)
        logger.debug(
            "%s id=%s step '%s' committed", self.entity, self.entity_id, name,
            extra=self._log_extra(name),
        )

    # ── Store primitives ─────────────────────────────────────────────────

    def insert(self, row):
        """Stage *row* with audit columns filled from the scope."""
        actor_id = getattr(self.scope, "actor_id", None)
        if hasattr(type(row), "created_by"):
            if row.created_by is None:
                row.created_by = actor_id
            row.updated_by = actor_id
        db.session.add(row)
        db.session.flush()
        return row

    def update(self, row, patch: dict):
        for field, value in patch.items():
            setattr(row, field, value)
        if hasattr(type(row), "updated_by"):
            row.updated_by = getattr(self.scope, "actor_id", None)
        db.session.flush()
        return row

    def soft_delete(self, rows):
        actor_id = getattr(self.scope, "actor_id", None)
        count = 0
        for row in rows:
            row.soft_delete(actor_id=actor_id)
            count += 1
        db.session.flush()
        return count

    # ── Failure handling ─────────────────────────────────────────────────

    def _log_extra(self, step: str) -> dict:
        return {
            "entity": self.entity,
            "entity_id": self.entity_id,
            "step": step,
            "company_id": getattr(self.scope, "company_id", None),
            "actor_id": getattr(self.scope, "actor_id", None),
        }

    def _failure(self, step: str, exc: Exception) -> MfgOpsError:
        reason = getattr(exc, "message", None) or str(exc)
        extra = self._log_extra(step)
        if not self.completed_steps:
            logger.error(
                "Store failure on %s id=%s at step '%s': %s",
                self.entity, self.entity_id, step, reason, extra=extra,
            )
            return StoreError(f"Database error during '{step}' on {self.entity}: {reason}")
        logger.error(
            "Partial write on %s id=%s: step '%s' failed after %s: %s",
            self.entity, self.entity_id, step, self.completed_steps, reason, extra=extra,
        )
        return PartialFailureError(
            self.entity, self.entity_id, self.completed_steps, step, reason,
        )


# ── Single-step conveniences ─────────────────────────────────────────────────


def insert_one(label: str, row, scope):
    """Insert *row* as a one-step unit of work and return it."""
    uow = UnitOfWork(label, None, scope)
    with uow.step(f"insert_{row.__tablename__}"):
        uow.insert(row)
        uow.entity_id = row.id
    logger.info(
        "%s created id=%s", label, row.id,
        extra={"entity": label, "entity_id": row.id, "company_id": getattr(row, "company_id", None)},
    )
    return row


def update_one(label: str, row, patch: dict, scope):
    """Apply *patch* to *row* as a one-step unit of work and return it."""
    if not patch:
        return row
    uow = UnitOfWork(label, row.id, scope)
    with uow.step(f"update_{row.__tablename__}"):
        uow.update(row, patch)
    logger.info(
        "%s updated id=%s fields=%s", label, row.id, sorted(patch),
        extra={"entity": label, "entity_id": row.id, "company_id": getattr(row, "company_id", None)},
    )
    return row
