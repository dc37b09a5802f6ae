"""
Quality gating tests.

Scenario (stage requires a check):
    1. completing the stage before any check → 400 precondition
    2. a check on a pending stage → refused (stage must be in progress)
    3. a check on a stage that does not require one → refused
    4. a failed check leaves the stage unapproved
    5. fixing the failing item approves the stage; completion succeeds

Also:
    - passed defaults to the AND of the submitted items
    - item upsert / delete recompute the check result
    - item upsert needs a non-empty list; string ids are accepted
    - deleting a passed check revokes approval; a linked check cannot be deleted
    - partial failure: the check commits, the approval step fails
    - store failure before any step commits
"""

import pytest
from sqlalchemy.exc import OperationalError

from mfgops.core.exceptions import (
    MfgOpsError,
    NotFoundError,
    PartialFailureError,
    PreconditionFailedError,
    StoreError,
    ValidationError,
)
from mfgops.models import db
from mfgops.models.production import ProductionStage, QualityCheck, QualityCheckItem
from mfgops.services import catalog_service, production_service as ps, quality_service as qs
from mfgops.services.helpers.unit_of_work import UnitOfWork


# ═════════════════════════════════════════════════════════════════════════════
# Helper Factories
# ═════════════════════════════════════════════════════════════════════════════


def _running_order(scope):
    product = catalog_service.create_product({"code": "P-1", "name": "Widget"}, scope)
    order = ps.create_order({"product_id": product.id, "quantity": 10}, scope)
    ps.transition_order(order.id, "pending", scope)
    return ps.transition_order(order.id, "in_progress", scope)


def _gated_stage(scope, order=None, required=True, start=True):
    order = order or _running_order(scope)
    stage = ps.create_stage({
        "production_order_id": order.id,
        "stage_name": "Inspection",
        "quality_check_required": required,
    }, scope)
    if start:
        stage = ps.transition_stage(stage.id, "in_progress", scope)
    return stage


def _stage(stage_id) -> ProductionStage:
    db.session.expire_all()
    return db.session.get(ProductionStage, stage_id)


# ═════════════════════════════════════════════════════════════════════════════
# Gating scenario
# ═════════════════════════════════════════════════════════════════════════════


class TestGatingScenario:
    def test_full_scenario(self, scope_a):
        stage = _gated_stage(scope_a)

        with pytest.raises(PreconditionFailedError, match="Quality check must be passed"):
            ps.transition_stage(stage.id, "completed", scope_a)

        check = qs.create_quality_check({
            "production_stage_id": stage.id,
            "items": [
                {"parameter_name": "Length", "expected_value": "10", "actual_value": "10", "passed": True},
                {"parameter_name": "Width", "expected_value": "5", "actual_value": "6", "passed": False},
            ],
        }, scope_a)
        assert check.passed is False
        assert _stage(stage.id).quality_approved is False

        with pytest.raises(PreconditionFailedError):
            ps.transition_stage(stage.id, "completed", scope_a)

        failing = [i for i in qs.check_items(check) if not i.passed][0]
        check = qs.update_quality_check_items(check.id, [{"id": failing.id, "actual_value": "5", "passed": True}], scope_a)
        assert check.passed is True
        assert _stage(stage.id).quality_approved is True

        done = ps.transition_stage(stage.id, "completed", scope_a)
        assert done.stage_status == "completed"

    def test_check_on_pending_stage_refused(self, scope_a):
        stage = _gated_stage(scope_a, start=False)
        with pytest.raises(PreconditionFailedError, match=qs.NOT_IN_PROGRESS_MSG):
            qs.create_quality_check({"production_stage_id": stage.id, "passed": True}, scope_a)

    def test_check_on_ungated_stage_refused(self, scope_a):
        stage = _gated_stage(scope_a, required=False, start=False)
        # "not required" is reported before "not in progress"
        with pytest.raises(PreconditionFailedError, match=qs.NOT_REQUIRED_MSG):
            qs.create_quality_check({"production_stage_id": stage.id, "passed": True}, scope_a)

    def test_unknown_stage(self, scope_a):
        with pytest.raises(NotFoundError):
            qs.create_quality_check({"production_stage_id": 9999}, scope_a)

    def test_foreign_stage_is_not_found(self, scope_a, scope_b):
        stage = _gated_stage(scope_a)
        with pytest.raises(NotFoundError):
            qs.create_quality_check({"production_stage_id": stage.id, "passed": True}, scope_b)


# ═════════════════════════════════════════════════════════════════════════════
# Check result derivation
# ═════════════════════════════════════════════════════════════════════════════


class TestCheckResult:
    def test_explicit_passed_wins(self, scope_a):
        stage = _gated_stage(scope_a)
        check = qs.create_quality_check({
            "production_stage_id": stage.id,
            "passed": True,
            "items": [{"parameter_name": "Colour", "passed": False}],
        }, scope_a)
        assert check.passed is True
        assert _stage(stage.id).quality_approved is True

    def test_no_items_no_flag_fails(self, scope_a):
        stage = _gated_stage(scope_a)
        check = qs.create_quality_check({"production_stage_id": stage.id}, scope_a)
        assert check.passed is False

    def test_item_requires_parameter_name(self, scope_a):
        stage = _gated_stage(scope_a)
        with pytest.raises(ValidationError, match="parameter_name"):
            qs.create_quality_check({"production_stage_id": stage.id, "items": [{"passed": True}]}, scope_a)
        assert qs.list_stage_checks(stage.id, scope_a) == []

    def test_foreign_item_id_rejected(self, scope_a):
        stage = _gated_stage(scope_a)
        c1 = qs.create_quality_check({"production_stage_id": stage.id, "items": [{"parameter_name": "A"}]}, scope_a)
        c2 = qs.create_quality_check({"production_stage_id": stage.id, "items": [{"parameter_name": "B"}]}, scope_a)
        (item_of_c1,) = qs.check_items(c1)
        with pytest.raises(ValidationError, match="does not belong"):
            qs.update_quality_check_items(c2.id, [{"id": item_of_c1.id, "passed": True}], scope_a)

    def test_item_id_sent_as_string(self, scope_a):
        stage = _gated_stage(scope_a)
        check = qs.create_quality_check({
            "production_stage_id": stage.id, "items": [{"parameter_name": "A", "passed": False}],
        }, scope_a)
        (item,) = qs.check_items(check)
        check = qs.update_quality_check_items(check.id, [{"id": str(item.id), "passed": True}], scope_a)
        assert check.passed is True
        assert len(qs.check_items(check)) == 1

    def test_non_integer_item_id_rejected(self, scope_a):
        stage = _gated_stage(scope_a)
        check = qs.create_quality_check({"production_stage_id": stage.id, "items": [{"parameter_name": "A"}]}, scope_a)
        with pytest.raises(ValidationError, match=r"items\[0\]\.id must be an integer"):
            qs.update_quality_check_items(check.id, [{"id": "abc", "passed": True}], scope_a)

    @pytest.mark.parametrize("items", [[], None, {"parameter_name": "A"}])
    def test_items_required(self, scope_a, items):
        stage = _gated_stage(scope_a)
        check = qs.create_quality_check({"production_stage_id": stage.id, "passed": True}, scope_a)
        with pytest.raises(ValidationError, match=qs.ITEMS_REQUIRED_MSG):
            qs.update_quality_check_items(check.id, items, scope_a)
        # Nothing recomputed: the explicit pass still stands
        assert _stage(stage.id).quality_approved is True

    def test_deleting_failing_item_recomputes(self, scope_a):
        stage = _gated_stage(scope_a)
        check = qs.create_quality_check({
            "production_stage_id": stage.id,
            "items": [{"parameter_name": "A", "passed": True}, {"parameter_name": "B", "passed": False}],
        }, scope_a)
        failing = [i for i in qs.check_items(check) if not i.passed][0]
        check = qs.delete_quality_check_item(failing.id, scope_a)
        assert check.passed is True
        assert _stage(stage.id).quality_approved is True
        assert [i.parameter_name for i in qs.check_items(check)] == ["A"]

    def test_update_passed_propagates(self, scope_a):
        stage = _gated_stage(scope_a)
        check = qs.create_quality_check({"production_stage_id": stage.id, "passed": True}, scope_a)
        qs.update_quality_check(check.id, {"passed": False}, scope_a)
        assert _stage(stage.id).quality_approved is False

    def test_order_checks_listed(self, scope_a):
        order = _running_order(scope_a)
        s1 = _gated_stage(scope_a, order=order)
        s2 = _gated_stage(scope_a, order=order)
        qs.create_quality_check({"production_stage_id": s1.id, "passed": True}, scope_a)
        qs.create_quality_check({"production_stage_id": s2.id, "passed": False}, scope_a)
        assert len(qs.list_order_checks(order.id, scope_a)) == 2
        assert len(qs.list_stage_checks(s1.id, scope_a)) == 1


class TestCheckDelete:
    def test_delete_passed_check_revokes_approval(self, scope_a):
        stage = _gated_stage(scope_a)
        check = qs.create_quality_check({
            "production_stage_id": stage.id, "items": [{"parameter_name": "A", "passed": True}],
        }, scope_a)
        assert _stage(stage.id).quality_approved is True

        result = qs.delete_quality_check(check.id, scope_a)
        assert result["cascaded"] == {"quality_check_items": 1}
        assert _stage(stage.id).quality_approved is False
        assert db.session.get(QualityCheck, check.id).status is False
        items = db.session.query(QualityCheckItem).filter_by(quality_check_id=check.id).all()
        assert all(i.status is False for i in items)


# ═════════════════════════════════════════════════════════════════════════════
# Failure surfacing
# ═════════════════════════════════════════════════════════════════════════════


class TestFailureSurfacing:
    def test_partial_failure_names_committed_steps(self, scope_a, monkeypatch):
        stage = _gated_stage(scope_a)

        def _broken_approval(uow, stage, passed):
            raise OperationalError("UPDATE production_stages", {}, Exception("database is locked"))

        monkeypatch.setattr(qs, "_apply_stage_approval", _broken_approval)
        with pytest.raises(PartialFailureError) as exc_info:
            qs.create_quality_check({"production_stage_id": stage.id, "passed": True}, scope_a)

        err = exc_info.value
        assert err.status_code == 500
        assert err.details["completed_steps"] == ["insert_quality_check"]
        assert err.details["failed_step"] == "update_stage_approval"
        # The check was committed, the stage was not approved
        assert len(qs.list_stage_checks(stage.id, scope_a)) == 1
        assert _stage(stage.id).quality_approved is False

    def test_store_error_before_first_step(self, scope_a):
        uow = UnitOfWork("QualityCheck", None, scope_a)
        with pytest.raises(StoreError) as exc_info:
            with uow.step("insert_quality_check"):
                raise OperationalError("INSERT", {}, Exception("disk I/O error"))
        assert exc_info.value.status_code == 500
        assert uow.completed_steps == []

    def test_core_error_before_first_step_passes_through(self, scope_a):
        uow = UnitOfWork("QualityCheck", None, scope_a)
        with pytest.raises(ValidationError):
            with uow.step("insert_quality_check"):
                raise ValidationError("bad input")

    def test_core_error_after_step_is_partial(self, scope_a):
        uow = UnitOfWork("QualityCheck", 1, scope_a)
        with uow.step("first"):
            pass
        with pytest.raises(PartialFailureError) as exc_info:
            with uow.step("second"):
                raise MfgOpsError("boom")
        assert exc_info.value.details["completed_steps"] == ["first"]
