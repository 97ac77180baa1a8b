"""Tests for PlanService."""
import pytest
from datetime import date, datetime
from unittest.mock import AsyncMock, MagicMock
from bson import ObjectId
from pymongo.errors import DuplicateKeyError


def plan_doc(**overrides):
    now = datetime(2025, 1, 1, 8, 0)
    doc = {
        "_id": ObjectId(),
        "user_id": "user123",
        "plan_date": "2025-01-01",
        "status": "draft",
        "submitted_at": None,
        "reviewed_at": None,
        "awareness_awarded": False,
        "closure_awarded": False,
        "reopen_history": [],
        "created_at": now,
        "updated_at": now,
    }
    doc.update(overrides)
    return doc


@pytest.mark.asyncio
class TestPlanServiceGetOrCreate:
    """Tests for get_or_create_plan."""

    async def test_creates_draft_with_upsert(self):
        """The plan is created through a single upsert keyed by user and date."""
        from standup.services.plan_service import PlanService

        mock_db = MagicMock()
        mock_plans = AsyncMock()
        mock_db.__getitem__.return_value = mock_plans
        mock_plans.find_one_and_update.return_value = plan_doc()

        service = PlanService(mock_db)
        plan = await service.get_or_create_plan("user123", date(2025, 1, 1))

        assert plan.plan_date == date(2025, 1, 1)
        assert plan.status == "draft"

        call = mock_plans.find_one_and_update.call_args
        assert call.args[0] == {"user_id": "user123", "plan_date": "2025-01-01"}
        assert "$setOnInsert" in call.args[1]
        assert call.kwargs["upsert"] is True

    async def test_lost_race_rereads_winner(self):
        """A duplicate key on the upsert means another request created it."""
        from standup.services.plan_service import PlanService

        mock_db = MagicMock()
        mock_plans = AsyncMock()
        mock_db.__getitem__.return_value = mock_plans
        winner = plan_doc()
        mock_plans.find_one_and_update.side_effect = DuplicateKeyError("duplicate")
        mock_plans.find_one.return_value = winner

        service = PlanService(mock_db)
        plan = await service.get_or_create_plan("user123", date(2025, 1, 1))

        assert plan.id == str(winner["_id"])

    async def test_lost_race_without_winner(self):
        from standup.exceptions import ConflictError
        from standup.services.plan_service import PlanService

        mock_db = MagicMock()
        mock_plans = AsyncMock()
        mock_db.__getitem__.return_value = mock_plans
        mock_plans.find_one_and_update.side_effect = DuplicateKeyError("duplicate")
        mock_plans.find_one.return_value = None

        service = PlanService(mock_db)

        with pytest.raises(ConflictError):
            await service.get_or_create_plan("user123", date(2025, 1, 1))


@pytest.mark.asyncio
class TestPlanServiceTransitions:
    """Tests for submit and lock transitions."""

    async def test_submit_keeps_first_submission_time(self):
        from standup.services.plan_service import PlanService

        mock_db = MagicMock()
        mock_plans = AsyncMock()
        mock_db.__getitem__.return_value = mock_plans
        first = datetime(2024, 12, 31, 21, 0)
        existing = plan_doc(status="submitted", submitted_at=first)
        mock_plans.find_one_and_update.return_value = existing

        service = PlanService(mock_db)
        await service.mark_submitted(service._doc_to_plan(existing))

        update = mock_plans.find_one_and_update.call_args.args[1]
        assert update["$set"]["submitted_at"] == first

    async def test_submit_locked_plan_fails(self):
        """The status filter rejects a plan that was locked meanwhile."""
        from standup.exceptions import ImmutablePlanError
        from standup.services.plan_service import PlanService

        mock_db = MagicMock()
        mock_plans = AsyncMock()
        mock_db.__getitem__.return_value = mock_plans
        mock_plans.find_one_and_update.return_value = None

        service = PlanService(mock_db)

        with pytest.raises(ImmutablePlanError):
            await service.mark_submitted(service._doc_to_plan(plan_doc()))

    async def test_lock_draft_fails(self):
        from standup.exceptions import ValidationError
        from standup.services.plan_service import PlanService

        mock_db = MagicMock()
        mock_plans = AsyncMock()
        mock_db.__getitem__.return_value = mock_plans

        service = PlanService(mock_db)

        with pytest.raises(ValidationError):
            await service.mark_locked(service._doc_to_plan(plan_doc()))
        mock_plans.find_one_and_update.assert_not_called()

    async def test_lock_locked_plan_is_noop(self):
        from standup.services.plan_service import PlanService

        mock_db = MagicMock()
        mock_plans = AsyncMock()
        mock_db.__getitem__.return_value = mock_plans

        service = PlanService(mock_db)
        plan = service._doc_to_plan(plan_doc(status="locked"))

        assert await service.mark_locked(plan) is plan
        mock_plans.find_one_and_update.assert_not_called()

    async def test_reopen_requires_closed_day(self):
        from standup.exceptions import ValidationError
        from standup.services.plan_service import PlanService

        mock_db = MagicMock()
        mock_plans = AsyncMock()
        mock_db.__getitem__.return_value = mock_plans
        mock_plans.find_one_and_update.return_value = None

        service = PlanService(mock_db)

        with pytest.raises(ValidationError, match="closed"):
            await service.clear_reviewed(service._doc_to_plan(plan_doc()))


@pytest.mark.asyncio
class TestPlanServiceGet:
    """Tests for get_plan."""

    async def test_invalid_id_is_not_found(self):
        from standup.exceptions import NotFoundError
        from standup.services.plan_service import PlanService

        mock_db = MagicMock()
        mock_db.__getitem__.return_value = AsyncMock()

        service = PlanService(mock_db)

        with pytest.raises(NotFoundError):
            await service.get_plan("user123", "not-an-id")

    async def test_other_users_plan_is_not_found(self):
        from standup.exceptions import NotFoundError
        from standup.services.plan_service import PlanService

        mock_db = MagicMock()
        mock_plans = AsyncMock()
        mock_db.__getitem__.return_value = mock_plans
        mock_plans.find_one.return_value = None

        service = PlanService(mock_db)
        plan_id = str(ObjectId())

        with pytest.raises(NotFoundError):
            await service.get_plan("user123", plan_id)

        query = mock_plans.find_one.call_args.args[0]
        assert query["user_id"] == "user123"
