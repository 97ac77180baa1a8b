"""Scoring service - profiles and the two-phase point awards."""
import logging

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from standup.models.goal import Goal, GoalStatus
from standup.models.plan import DailyPlan
from standup.models.profile import AwardResult, Profile, ProfileUpdate
from standup.utils.dates import utcnow

logger = logging.getLogger(__name__)


def closure_eligible(goals: list[Goal]) -> bool:
    """
    A day can be closed once every goal that was acted on has been reviewed.

    Goals still not_started do not block closure, and a day without goals
    is eligible.
    """
    return all(
        goal.reviewed_at is not None
        for goal in goals
        if goal.status != GoalStatus.NOT_STARTED
    )


def plan_points(doc: dict) -> int:
    """Points a plan document has paid out so far."""
    total = 0
    if doc.get("awareness_awarded"):
        total += doc.get("awareness_points", 0)
    if doc.get("closure_awarded"):
        total += doc.get("closure_points", 0)
    return total


class ScoringService:
    """
    Service for profiles and point awards.

    Each award is paid by flipping its flag on the plan with one conditional
    update (flag still false -> true, together with the amount paid). A
    single document update is atomic in MongoDB, so concurrent callers
    cannot both pay, and the flip and the payment can never be separated.
    A profile's point total is the sum of what its plans have paid.
    """

    def __init__(self, db):
        """Initialize service with database connection."""
        self.db = db
        self.profiles = db["profiles"]
        self.plans = db["daily_plans"]
        self.goals = db["goals"]

    def _doc_to_profile(self, doc: dict, points: int) -> Profile:
        return Profile(
            _id=str(doc["_id"]),
            display_name=doc.get("display_name"),
            points=points,
            created_at=doc["created_at"],
            updated_at=doc["updated_at"],
        )

    async def current_points(self, user_id: str) -> int:
        """Sum the points paid by the user's plans."""
        cursor = self.plans.find(
            {
                "user_id": user_id,
                "$or": [{"awareness_awarded": True}, {"closure_awarded": True}],
            },
            {
                "awareness_awarded": 1,
                "awareness_points": 1,
                "closure_awarded": 1,
                "closure_points": 1,
            },
        )
        docs = await cursor.to_list(length=None)
        return sum(plan_points(doc) for doc in docs)

    async def _get_or_create_profile_doc(self, user_id: str) -> dict:
        now = utcnow()
        try:
            return await self.profiles.find_one_and_update(
                {"_id": user_id},
                {
                    "$setOnInsert": {
                        "display_name": None,
                        "created_at": now,
                        "updated_at": now,
                    }
                },
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            return await self.profiles.find_one({"_id": user_id})

    async def get_or_create_profile(self, user_id: str) -> Profile:
        """
        Return the user's profile, creating it on first access.
        """
        doc = await self._get_or_create_profile_doc(user_id)
        return self._doc_to_profile(doc, await self.current_points(user_id))

    async def update_profile(self, user_id: str, profile_update: ProfileUpdate) -> Profile:
        """Update profile fields other than points."""
        await self._get_or_create_profile_doc(user_id)
        update_doc = {"updated_at": utcnow()}
        if profile_update.display_name is not None:
            update_doc["display_name"] = profile_update.display_name.strip() or None

        doc = await self.profiles.find_one_and_update(
            {"_id": user_id},
            {"$set": update_doc},
            return_document=ReturnDocument.AFTER,
        )
        return self._doc_to_profile(doc, await self.current_points(user_id))

    async def award_awareness(self, plan: DailyPlan, points: int) -> AwardResult:
        """
        Award points for engaging with a day that still has unreviewed goals.

        Not awarded (and not an error) when already paid, when the day is
        closed, or when nothing is left to review.

        Args:
            plan: Plan being opened
            points: Points to add

        Returns:
            AwardResult with the point total after the call
        """
        if plan.awareness_awarded or plan.closed:
            logger.debug("Awareness not due on plan %s", plan.id)
            return AwardResult(awarded=False, new_points=await self.current_points(plan.user_id))

        pending = await self.goals.count_documents({"plan_id": plan.id, "reviewed_at": None})
        if pending == 0:
            return AwardResult(awarded=False, new_points=await self.current_points(plan.user_id))

        result = await self.plans.update_one(
            {"_id": ObjectId(plan.id), "awareness_awarded": False, "reviewed_at": None},
            {
                "$set": {
                    "awareness_awarded": True,
                    "awareness_points": points,
                    "updated_at": utcnow(),
                }
            },
        )
        awarded = result.modified_count == 1

        if awarded:
            logger.info("Awarded %d awareness points on plan %s", points, plan.id)
        return AwardResult(awarded=awarded, new_points=await self.current_points(plan.user_id))

    async def award_closure(self, plan: DailyPlan, points: int) -> AwardResult:
        """
        Award closure points and stamp the plan as reviewed.

        The review stamp is what unlocks planning the next day. Eligibility
        must be checked by the caller (see closure_eligible). When a closed
        day was reopened, closing it again re-stamps the review without
        paying again.

        Args:
            plan: Plan being closed
            points: Points to add

        Returns:
            AwardResult with the point total after the call
        """
        if plan.closure_awarded and plan.closed:
            logger.debug("Closure already recorded on plan %s", plan.id)
            return AwardResult(awarded=False, new_points=await self.current_points(plan.user_id))

        now = utcnow()
        plan_oid = ObjectId(plan.id)
        paid = await self.plans.update_one(
            {"_id": plan_oid, "closure_awarded": False},
            {
                "$set": {
                    "closure_awarded": True,
                    "closure_points": points,
                    "reviewed_at": now,
                    "updated_at": now,
                }
            },
        )
        awarded = paid.modified_count == 1

        stamped = awarded
        if not awarded:
            # Reopened day: the points were paid before, only the stamp is missing
            restamp = await self.plans.update_one(
                {"_id": plan_oid, "reviewed_at": None},
                {"$set": {"reviewed_at": now, "updated_at": now}},
            )
            stamped = restamp.modified_count == 1

        if awarded:
            logger.info("Awarded %d closure points on plan %s", points, plan.id)
        if stamped:
            logger.info("Plan %s (%s) closed", plan.id, plan.plan_date.isoformat())
        return AwardResult(awarded=awarded, new_points=await self.current_points(plan.user_id))
