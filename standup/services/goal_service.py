"""Goal service - storage and ordering of the goals on a plan."""
import logging
from datetime import datetime
from typing import Optional

from bson import ObjectId
from pymongo import ReturnDocument

from standup.config import settings
from standup.exceptions import NotFoundError, ValidationError
from standup.models.goal import Goal, GoalInput, GoalNote, GoalStatus
from standup.models.plan import DailyPlan
from standup.utils.dates import utcnow

logger = logging.getLogger(__name__)


def normalize_inputs(inputs: list[GoalInput]) -> list[GoalInput]:
    """
    Trim titles, fill in missing sort orders and drop empty slots.

    A slot without a sort order takes its position in the list. Empty titles
    are never written to storage.

    Examples:
        >>> [g.title for g in normalize_inputs([GoalInput(title=" a "), GoalInput(title="  ")])]
        ['a']
    """
    normalized = []
    for idx, item in enumerate(inputs):
        title = (item.title or "").strip()
        if not title:
            continue
        sort_order = item.sort_order if item.sort_order is not None else idx
        normalized.append(item.model_copy(update={"title": title, "sort_order": sort_order}))
    return normalized


def priority_demotions(
    goals: list[Goal],
    keep_id: Optional[str] = None,
    required: Optional[int] = None,
) -> list[str]:
    """
    Return the ids that must drop to the demoted priority so that at most
    one of the required slots holds priority 1.

    ``goals`` must be ordered by slot. The goal named by ``keep_id`` keeps
    priority 1 when it sits in a required slot; otherwise the lowest slot
    holding priority 1 keeps it.
    """
    if required is None:
        required = settings.required_goals
    holders = [g.id for g in goals[:required] if g.priority == 1]
    if len(holders) <= 1:
        return []
    keeper = keep_id if keep_id in holders else holders[0]
    return [goal_id for goal_id in holders if goal_id != keeper]


class GoalService:
    """Service for handling goal operations."""

    def __init__(self, db):
        """Initialize service with database connection."""
        self.db = db
        self.goals = db["goals"]
        self.notes = db["goal_notes"]

    def _doc_to_goal(self, doc: dict) -> Goal:
        """Convert database document to Goal model."""
        return Goal(
            _id=str(doc["_id"]),
            plan_id=doc["plan_id"],
            user_id=doc["user_id"],
            title=doc["title"],
            details=doc.get("details"),
            status=doc.get("status", GoalStatus.NOT_STARTED.value),
            priority=doc.get("priority", settings.default_priority),
            sort_order=doc.get("sort_order", 0),
            reviewed_at=doc.get("reviewed_at"),
            reschedule_id=doc.get("reschedule_id"),
            rescheduled_from_date=doc.get("rescheduled_from_date"),
            reschedule_reason=doc.get("reschedule_reason"),
            created_at=doc["created_at"],
            updated_at=doc["updated_at"],
        )

    def new_goal_doc(
        self,
        plan: DailyPlan,
        title: str,
        sort_order: int,
        details: Optional[str] = None,
        status: GoalStatus = GoalStatus.NOT_STARTED,
        priority: Optional[int] = None,
    ) -> dict:
        """Build the document for a goal that is about to be inserted."""
        now = utcnow()
        return {
            "plan_id": plan.id,
            "user_id": plan.user_id,
            "title": title,
            "details": (details or "").strip() or None,
            "status": status.value,
            "priority": priority if priority is not None else settings.default_priority,
            "sort_order": sort_order,
            "reviewed_at": None,
            "created_at": now,
            "updated_at": now,
        }

    async def list_goals(self, plan_id: str) -> list[Goal]:
        """
        List the goals of a plan in slot order.

        Args:
            plan_id: Plan ID

        Returns:
            Goals ordered by sort_order (ties by creation time)
        """
        cursor = self.goals.find(
            {"plan_id": plan_id},
            sort=[("sort_order", 1), ("created_at", 1), ("_id", 1)],
        )
        goal_docs = await cursor.to_list(length=None)
        return [self._doc_to_goal(doc) for doc in goal_docs]

    async def find_goal(self, user_id: str, goal_id: str) -> Optional[Goal]:
        """Get a goal owned by the user, or None."""
        if not ObjectId.is_valid(goal_id):
            return None
        doc = await self.goals.find_one({"_id": ObjectId(goal_id), "user_id": user_id})
        if not doc:
            return None
        return self._doc_to_goal(doc)

    async def get_goal(self, user_id: str, goal_id: str) -> Goal:
        """
        Get a goal owned by the user.

        Raises:
            NotFoundError: If goal not found
        """
        goal = await self.find_goal(user_id, goal_id)
        if goal is None:
            raise NotFoundError("Goal", goal_id)
        return goal

    async def upsert_goals(self, plan: DailyPlan, inputs: list[GoalInput]) -> list[Goal]:
        """
        Save a list of goal slots onto a plan.

        Slots with an id update that goal; slots without one are inserted,
        except when the same slot already holds a goal with the same title
        (a retried save), which is then updated instead. Empty titles are
        dropped. Afterwards sort orders are compacted and the priority 1
        rule is repaired.

        Args:
            plan: Plan being edited
            inputs: Goal slots from the caller

        Returns:
            The plan's goals after the save, in slot order

        Raises:
            NotFoundError: If a slot references a goal that is not on this plan
        """
        normalized = normalize_inputs(inputs)
        existing = {goal.id: goal for goal in await self.list_goals(plan.id)}

        for item in normalized:
            if item.id and item.id not in existing:
                raise NotFoundError("Goal", item.id)

        referenced = {item.id for item in normalized if item.id}
        unclaimed = {
            (goal.sort_order, goal.title): goal.id
            for goal in existing.values()
            if goal.id not in referenced
        }

        promoted = None
        for item in normalized:
            goal_id = item.id or unclaimed.pop((item.sort_order, item.title), None)
            if goal_id:
                await self._update_from_input(goal_id, item)
            else:
                doc = self.new_goal_doc(
                    plan,
                    title=item.title,
                    sort_order=item.sort_order,
                    details=item.details,
                    status=item.status or GoalStatus.NOT_STARTED,
                    priority=item.priority,
                )
                result = await self.goals.insert_one(doc)
                goal_id = str(result.inserted_id)
            if item.priority == 1:
                promoted = goal_id

        goals = await self.compact_sort_order(plan.id)
        demoted = await self._apply_demotions(goals, keep_id=promoted)
        if demoted:
            goals = await self.list_goals(plan.id)

        logger.debug("Saved %d goal slots on plan %s", len(normalized), plan.id)
        return goals

    async def _update_from_input(self, goal_id: str, item: GoalInput) -> None:
        """Apply one slot to an existing goal. Unset fields keep their value."""
        update_doc = {
            "title": item.title,
            "sort_order": item.sort_order,
            "updated_at": utcnow(),
        }
        if item.details is not None:
            update_doc["details"] = item.details.strip() or None
        if item.status is not None:
            update_doc["status"] = item.status.value
        if item.priority is not None:
            update_doc["priority"] = item.priority

        await self.goals.update_one({"_id": ObjectId(goal_id)}, {"$set": update_doc})

    async def compact_sort_order(self, plan_id: str) -> list[Goal]:
        """
        Renumber a plan's goals to 0..n-1, keeping their relative order.

        Returns:
            The goals in slot order with their new sort orders
        """
        goals = await self.list_goals(plan_id)
        compacted = []
        for idx, goal in enumerate(goals):
            if goal.sort_order != idx:
                await self.goals.update_one(
                    {"_id": ObjectId(goal.id)},
                    {"$set": {"sort_order": idx}},
                )
                goal = goal.model_copy(update={"sort_order": idx})
            compacted.append(goal)
        return compacted

    async def _apply_demotions(self, goals: list[Goal], keep_id: Optional[str] = None) -> list[str]:
        demote = priority_demotions(goals, keep_id=keep_id)
        if demote:
            await self.goals.update_many(
                {"_id": {"$in": [ObjectId(goal_id) for goal_id in demote]}},
                {"$set": {"priority": settings.demoted_priority, "updated_at": utcnow()}},
            )
            logger.info("Demoted goals %s to priority %d", demote, settings.demoted_priority)
        return demote

    async def set_priority(self, goal: Goal, priority: int) -> Goal:
        """
        Change a goal's priority.

        Setting priority 1 on one of the required slots demotes whichever
        other required goal held priority 1. No other goal is touched.

        Args:
            goal: Goal to change
            priority: New priority (1..5)

        Returns:
            Updated goal
        """
        if not 1 <= priority <= 5:
            raise ValidationError("Priority must be between 1 and 5", field="priority")

        updated_doc = await self.goals.find_one_and_update(
            {"_id": ObjectId(goal.id)},
            {"$set": {"priority": priority, "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if not updated_doc:
            raise NotFoundError("Goal", goal.id)

        if priority == 1:
            await self._apply_demotions(await self.list_goals(goal.plan_id), keep_id=goal.id)

        return self._doc_to_goal(updated_doc)

    async def update_status(self, goal: Goal, status: GoalStatus) -> Goal:
        """
        Change a goal's status.

        A goal moved back to not_started loses its review, since only goals
        that were acted on can be reviewed.
        """
        status = GoalStatus(status)
        update_doc = {"status": status.value, "updated_at": utcnow()}
        if status == GoalStatus.NOT_STARTED:
            update_doc["reviewed_at"] = None

        updated_doc = await self.goals.find_one_and_update(
            {"_id": ObjectId(goal.id)},
            {"$set": update_doc},
            return_document=ReturnDocument.AFTER,
        )
        if not updated_doc:
            raise NotFoundError("Goal", goal.id)
        return self._doc_to_goal(updated_doc)

    async def set_reviewed(self, goal: Goal, reviewed_at: Optional[datetime]) -> Goal:
        """Stamp or clear a goal's review time."""
        updated_doc = await self.goals.find_one_and_update(
            {"_id": ObjectId(goal.id)},
            {"$set": {"reviewed_at": reviewed_at, "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if not updated_doc:
            raise NotFoundError("Goal", goal.id)
        return self._doc_to_goal(updated_doc)

    async def delete_goal(self, goal: Goal) -> int:
        """
        Delete a goal and close the gap it leaves in the slot order.

        Returns:
            Number of deleted documents (0 if it was already gone)
        """
        result = await self.goals.delete_one({"_id": ObjectId(goal.id)})
        if result.deleted_count:
            await self.compact_sort_order(goal.plan_id)
        return result.deleted_count

    async def add_note(self, goal: Goal, note: str) -> GoalNote:
        """
        Attach a note to a goal.

        Raises:
            ValidationError: If the note is empty
        """
        text = (note or "").strip()
        if not text:
            raise ValidationError("Note is empty", field="note")

        note_doc = {
            "goal_id": goal.id,
            "user_id": goal.user_id,
            "note": text,
            "created_at": utcnow(),
        }
        result = await self.notes.insert_one(note_doc)
        note_doc["_id"] = str(result.inserted_id)
        return GoalNote(**note_doc)

    async def list_notes(self, goal: Goal) -> list[GoalNote]:
        """List a goal's notes, oldest first."""
        cursor = self.notes.find({"goal_id": goal.id}, sort=[("created_at", 1)])
        docs = await cursor.to_list(length=None)
        return [
            GoalNote(
                _id=str(doc["_id"]),
                goal_id=doc["goal_id"],
                user_id=doc["user_id"],
                note=doc["note"],
                created_at=doc["created_at"],
            )
            for doc in docs
        ]
