"""Reschedule service - moving goals to later days."""
import logging
from datetime import date
from typing import Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from standup.models.goal import Goal, GoalStatus
from standup.models.plan import DailyPlan
from standup.models.reschedule import RescheduleRecord
from standup.services.goal_service import GoalService
from standup.utils.dates import to_iso_date, utcnow

logger = logging.getLogger(__name__)


class RescheduleService:
    """
    Service for reschedule records.

    Rescheduling only records intent. The goal appears on the target day the
    first time that day's plan is opened (materialization), which works even
    when the target plan does not exist yet.
    """

    def __init__(self, db):
        """Initialize service with database connection."""
        self.db = db
        self.reschedules = db["goal_reschedules"]
        self.goals = db["goals"]
        self.goal_service = GoalService(db)

    def _doc_to_record(self, doc: dict) -> RescheduleRecord:
        """Convert database document to RescheduleRecord model."""
        return RescheduleRecord(
            _id=str(doc["_id"]),
            user_id=doc["user_id"],
            from_goal_id=doc["from_goal_id"],
            from_date=doc["from_date"],
            to_date=doc["to_date"],
            reason=doc.get("reason"),
            materialized=doc.get("materialized", False),
            materialized_goal_id=doc.get("materialized_goal_id"),
            materialized_at=doc.get("materialized_at"),
            snapshot_title=doc["snapshot_title"],
            snapshot_details=doc.get("snapshot_details"),
            snapshot_priority=doc.get("snapshot_priority", 3),
            created_at=doc["created_at"],
        )

    async def record_reschedule(
        self,
        goal: Goal,
        from_date: date,
        to_date: date,
        reason: Optional[str] = None,
    ) -> RescheduleRecord:
        """
        Record the intent to move a goal to another day.

        The goal's content is snapshotted so later edits or deletion of the
        source goal do not change what shows up on the target day. The source
        goal is marked postponed. The record is upserted on the goal, target
        date and pending state, so a retried request gets the record the
        first one wrote.

        Args:
            goal: Goal being moved
            from_date: Date of the goal's plan
            to_date: Target date
            reason: Optional free-text reason

        Returns:
            The pending record
        """
        key = {
            "from_goal_id": goal.id,
            "to_date": to_iso_date(to_date),
            "materialized": False,
        }
        doc = await self.reschedules.find_one_and_update(
            key,
            {
                "$setOnInsert": {
                    "user_id": goal.user_id,
                    "from_date": to_iso_date(from_date),
                    "reason": (reason or "").strip() or None,
                    "materialized_goal_id": None,
                    "materialized_at": None,
                    "snapshot_title": goal.title,
                    "snapshot_details": goal.details,
                    "snapshot_priority": goal.priority,
                    "created_at": utcnow(),
                }
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )

        await self.goals.update_one(
            {"_id": ObjectId(goal.id)},
            {"$set": {"status": GoalStatus.POSTPONED.value, "updated_at": utcnow()}},
        )

        logger.info(
            "Goal %s rescheduled from %s to %s",
            goal.id, doc["from_date"], doc["to_date"],
        )
        return self._doc_to_record(doc)

    async def find_pending_for_goal(self, goal_id: str) -> Optional[RescheduleRecord]:
        """The goal's reschedule that has not landed yet, if any."""
        doc = await self.reschedules.find_one({"from_goal_id": goal_id, "materialized": False})
        if not doc:
            return None
        return self._doc_to_record(doc)

    async def list_pending(self, user_id: str, to_date: date) -> list[RescheduleRecord]:
        """List records still waiting to land on a date, oldest first."""
        cursor = self.reschedules.find(
            {
                "user_id": user_id,
                "to_date": to_iso_date(to_date),
                "materialized": False,
            },
            sort=[("created_at", 1), ("_id", 1)],
        )
        docs = await cursor.to_list(length=None)
        return [self._doc_to_record(doc) for doc in docs]

    async def materialize_for(self, plan: DailyPlan) -> int:
        """
        Turn every pending record targeting the plan's date into a goal.

        Safe to run on every plan open: a record produces at most one goal no
        matter how many requests race on it.

        Args:
            plan: Plan that was just opened

        Returns:
            Number of goals inserted by this call
        """
        inserted = 0
        for record in await self.list_pending(plan.user_id, plan.plan_date):
            if await self._materialize_one(plan, record):
                inserted += 1

        if inserted:
            logger.info("Materialized %d rescheduled goals on plan %s", inserted, plan.id)
        return inserted

    async def _materialize_one(self, plan: DailyPlan, record: RescheduleRecord) -> bool:
        """
        Insert the goal for one record and flip the record.

        The goal carries the record id under a unique index, so the insert is
        the check-and-set: a duplicate means another request got there first
        and its goal is adopted. The flip is conditional on the record still
        being pending. A crash between the two steps is repaired on the next
        open.
        """
        next_slot = await self.goals.count_documents({"plan_id": plan.id})
        goal_doc = self.goal_service.new_goal_doc(
            plan,
            title=record.snapshot_title,
            sort_order=next_slot,
            details=record.snapshot_details,
            priority=record.snapshot_priority,
        )
        goal_doc.update({
            "reschedule_id": record.id,
            "rescheduled_from_date": to_iso_date(record.from_date),
            "reschedule_reason": record.reason,
        })

        try:
            result = await self.goals.insert_one(goal_doc)
            goal_id = str(result.inserted_id)
            created = True
        except DuplicateKeyError:
            existing = await self.goals.find_one({"reschedule_id": record.id})
            goal_id = str(existing["_id"])
            created = False
            logger.debug("Reschedule %s already materialized as goal %s", record.id, goal_id)

        await self.reschedules.update_one(
            {"_id": ObjectId(record.id), "materialized": False},
            {
                "$set": {
                    "materialized": True,
                    "materialized_goal_id": goal_id,
                    "materialized_at": utcnow(),
                }
            },
        )
        return created

    async def get_record(self, record_id: str) -> Optional[RescheduleRecord]:
        """Get a record by id."""
        if not ObjectId.is_valid(record_id):
            return None
        doc = await self.reschedules.find_one({"_id": ObjectId(record_id)})
        if not doc:
            return None
        return self._doc_to_record(doc)
