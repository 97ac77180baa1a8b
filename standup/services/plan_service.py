"""Plan service - storage of daily plans keyed by (user, date)."""
import logging
from datetime import date
from typing import Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from standup.exceptions import ConflictError, ImmutablePlanError, NotFoundError, ValidationError
from standup.models.goal import GoalStatus
from standup.models.plan import DailyPlan, DaySummary, PlanStatus
from standup.utils.dates import to_iso_date, utcnow
from standup.utils.ids import to_object_id

logger = logging.getLogger(__name__)


class PlanService:
    """Service for handling daily plan documents."""

    def __init__(self, db):
        """Initialize service with database connection."""
        self.db = db
        self.plans = db["daily_plans"]
        self.goals = db["goals"]

    def _doc_to_plan(self, doc: dict) -> DailyPlan:
        """Convert database document to DailyPlan model."""
        return DailyPlan(
            _id=str(doc["_id"]),
            user_id=doc["user_id"],
            plan_date=doc["plan_date"],
            status=doc.get("status", PlanStatus.DRAFT.value),
            submitted_at=doc.get("submitted_at"),
            reviewed_at=doc.get("reviewed_at"),
            awareness_awarded=doc.get("awareness_awarded", False),
            closure_awarded=doc.get("closure_awarded", False),
            reopen_history=doc.get("reopen_history", []),
            created_at=doc["created_at"],
            updated_at=doc["updated_at"],
        )

    async def get_or_create_plan(self, user_id: str, plan_date: date) -> DailyPlan:
        """
        Return the user's plan for a date, creating a draft on first access.

        The upsert is atomic and the (user_id, plan_date) index is unique, so
        concurrent callers converge on a single document. A caller that loses
        the insert race gets DuplicateKeyError and re-reads the winner.

        Args:
            user_id: User ID
            plan_date: Calendar date of the plan

        Returns:
            The one plan for (user_id, plan_date)

        Raises:
            ConflictError: If the winning document cannot be read back
        """
        key = {"user_id": user_id, "plan_date": to_iso_date(plan_date)}
        now = utcnow()

        try:
            doc = await self.plans.find_one_and_update(
                key,
                {
                    "$setOnInsert": {
                        "status": PlanStatus.DRAFT.value,
                        "submitted_at": None,
                        "reviewed_at": None,
                        "awareness_awarded": False,
                        "closure_awarded": False,
                        "reopen_history": [],
                        "created_at": now,
                        "updated_at": now,
                    }
                },
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            logger.debug("Plan creation race for %s on %s, re-reading", user_id, key["plan_date"])
            doc = await self.plans.find_one(key)
            if doc is None:
                raise ConflictError(f"Could not create plan for {key['plan_date']}")

        return self._doc_to_plan(doc)

    async def find_plan_by_date(self, user_id: str, plan_date: date) -> Optional[DailyPlan]:
        """Look up a plan without creating it."""
        doc = await self.plans.find_one({
            "user_id": user_id,
            "plan_date": to_iso_date(plan_date),
        })
        if not doc:
            return None
        return self._doc_to_plan(doc)

    async def get_plan(self, user_id: str, plan_id: str) -> DailyPlan:
        """
        Get a plan owned by the user.

        Raises:
            NotFoundError: If the plan does not exist or belongs to someone else
        """
        doc = await self.plans.find_one({
            "_id": to_object_id(plan_id, "Plan"),
            "user_id": user_id,
        })
        if not doc:
            raise NotFoundError("Plan", plan_id)
        return self._doc_to_plan(doc)

    async def mark_submitted(self, plan: DailyPlan) -> DailyPlan:
        """
        Move a draft (or already submitted) plan to submitted.

        The first submission time is kept on re-submission.

        Raises:
            ImmutablePlanError: If the plan was locked in the meantime
        """
        now = utcnow()
        doc = await self.plans.find_one_and_update(
            {
                "_id": to_object_id(plan.id, "Plan"),
                "status": {"$in": [PlanStatus.DRAFT.value, PlanStatus.SUBMITTED.value]},
            },
            {
                "$set": {
                    "status": PlanStatus.SUBMITTED.value,
                    "submitted_at": plan.submitted_at or now,
                    "updated_at": now,
                }
            },
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            raise ImmutablePlanError(plan.id)
        return self._doc_to_plan(doc)

    async def mark_locked(self, plan: DailyPlan) -> DailyPlan:
        """
        Lock a submitted plan. Locking a locked plan is a no-op.

        Raises:
            ValidationError: If the plan is still a draft
        """
        if plan.status == PlanStatus.LOCKED:
            return plan
        if plan.status == PlanStatus.DRAFT:
            raise ValidationError("Submit the plan before locking it", field="status")

        doc = await self.plans.find_one_and_update(
            {"_id": to_object_id(plan.id, "Plan"), "status": PlanStatus.SUBMITTED.value},
            {"$set": {"status": PlanStatus.LOCKED.value, "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            # Someone else locked it first
            return await self.get_plan(plan.user_id, plan.id)
        return self._doc_to_plan(doc)

    async def clear_reviewed(self, plan: DailyPlan, reason: Optional[str] = None) -> DailyPlan:
        """
        Clear a plan's review stamp and append an audit entry.

        Raises:
            ValidationError: If the day is not closed
        """
        now = utcnow()
        doc = await self.plans.find_one_and_update(
            {"_id": to_object_id(plan.id, "Plan"), "reviewed_at": {"$ne": None}},
            {
                "$set": {"reviewed_at": None, "updated_at": now},
                "$push": {
                    "reopen_history": {
                        "reopened_at": now,
                        "previous_reviewed_at": plan.reviewed_at,
                        "reason": (reason or "").strip() or None,
                    }
                },
            },
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            raise ValidationError("Only a closed day can be reopened", field="reviewed_at")
        return self._doc_to_plan(doc)

    async def summarize_range(self, user_id: str, start: date, end: date) -> list[DaySummary]:
        """
        Summarize every planned day between start and end (inclusive).

        Args:
            user_id: User ID
            start: First day
            end: Last day

        Returns:
            One summary per existing plan, ordered by date
        """
        cursor = self.plans.find(
            {
                "user_id": user_id,
                "plan_date": {"$gte": to_iso_date(start), "$lte": to_iso_date(end)},
            },
            sort=[("plan_date", 1)],
        )
        plan_docs = await cursor.to_list(length=None)
        if not plan_docs:
            return []

        plan_ids = [str(doc["_id"]) for doc in plan_docs]
        goal_cursor = self.goals.find(
            {"plan_id": {"$in": plan_ids}},
            {"plan_id": 1, "status": 1},
        )
        goal_docs = await goal_cursor.to_list(length=None)

        counts: dict[str, list[int]] = {plan_id: [0, 0] for plan_id in plan_ids}
        for goal in goal_docs:
            bucket = counts[goal["plan_id"]]
            bucket[0] += 1
            if goal.get("status") == GoalStatus.COMPLETED.value:
                bucket[1] += 1

        summaries = []
        for doc in plan_docs:
            total, completed = counts[str(doc["_id"])]
            summaries.append(DaySummary(
                date=doc["plan_date"],
                plan_id=str(doc["_id"]),
                status=doc.get("status", PlanStatus.DRAFT.value),
                goal_count=total,
                completed_count=completed,
                reviewed=doc.get("reviewed_at") is not None,
            ))
        return summaries
