"""
Platform-wide exception hierarchy.

Every core operation reports its outcome either by returning normally or by
raising exactly one of the types below. Each type carries a machine-readable
``code`` and the HTTP ``status_code`` the API boundary maps it to, so a single
error handler registered in ``create_app`` produces consistent responses:

    {"success": false, "error": "<message>", "code": "<code>", "details": {...}}

Usage:
    from mfgops.core.exceptions import NotFoundError, PreconditionFailedError

    raise NotFoundError(resource="ProductionStage", resource_id=42)
    raise PreconditionFailedError("Quality check is not required for this stage")
"""

from __future__ import annotations


class MfgOpsError(Exception):
    """Base class for every tagged core outcome other than success."""

    code = "ERR_INTERNAL"
    status_code = 500

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(MfgOpsError):
    """Malformed or missing input, or a violated exactly-one-of rule.

    Raised before the store is touched.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown (field name -> problem).
    """

    code = "ERR_VALIDATION"
    status_code = 400


class ForbiddenError(MfgOpsError):
    """The actor's scope does not allow the requested write."""

    code = "ERR_FORBIDDEN"
    status_code = 403


class NotFoundError(MfgOpsError):
    """Raised when a requested row does not exist within the given scope.

    Security note: used for BOTH genuinely missing rows AND rows owned by
    another company. The two cases are intentionally indistinguishable so the
    API never confirms cross-tenant existence.

    Args:
        resource: Human-readable entity name (e.g. "Raw material").
        resource_id: The PK that was looked up.
    """

    code = "ERR_NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, resource_id: int | str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource} not found"
        super().__init__(msg, details={"resource_id": resource_id} if resource_id is not None else None)


class ConflictError(MfgOpsError):
    """Duplicate unique value, or a delete blocked by live dependent rows.

    The message always names the offending value or the blocking relation.

    Args:
        message: Human-readable explanation.
        resource: Entity that could not be written or deleted.
        field: Unique field (duplicates) or dependent relation name (deletes).
        value: The conflicting value, if any.
    """

    code = "ERR_CONFLICT"
    status_code = 409

    def __init__(
        self,
        message: str,
        *,
        resource: str | None = None,
        field: str | None = None,
        value=None,
    ) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        details = {k: v for k, v in (("resource", resource), ("field", field)) if v}
        super().__init__(message, details=details)

    @classmethod
    def duplicate(cls, resource: str, field: str, value) -> "ConflictError":
        return cls(
            f"{resource} with {field} '{value}' already exists",
            resource=resource,
            field=field,
            value=value,
        )


class PreconditionFailedError(MfgOpsError):
    """A workflow guard on another entity's state is not satisfied."""

    code = "ERR_PRECONDITION"
    status_code = 400


class InvalidStateError(MfgOpsError):
    """Illegal state-machine transition.

    Args:
        resource: Entity name (e.g. "Production order").
        current: State the row is in.
        attempted: State the caller asked for.
    """

    code = "ERR_CONFLICT_STATE"
    status_code = 409

    def __init__(self, resource: str, current: str, attempted: str) -> None:
        self.resource = resource
        self.current = current
        self.attempted = attempted
        super().__init__(
            f"Invalid {resource} transition: {current} → {attempted}",
            details={"current": current, "attempted": attempted},
        )


class PartialFailureError(MfgOpsError):
    """A multi-step unit of work failed after at least one step committed.

    Nothing is rolled back across steps; the caller gets the list of steps that
    did commit so the remaining state can be repaired by hand.
    """

    code = "ERR_PARTIAL"
    status_code = 500

    def __init__(
        self,
        resource: str,
        resource_id,
        completed_steps: list[str],
        failed_step: str,
        reason: str,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.completed_steps = list(completed_steps)
        self.failed_step = failed_step
        super().__init__(
            f"{resource} id={resource_id} partially updated: "
            f"step '{failed_step}' failed after {', '.join(self.completed_steps)} ({reason})",
            details={
                "completed_steps": self.completed_steps,
                "failed_step": failed_step,
            },
        )


class StoreError(MfgOpsError):
    """Unexpected persistence failure before any mutation committed."""

    code = "ERR_DATABASE"
    status_code = 500
