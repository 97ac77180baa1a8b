"""Lifecycle service - the planning and review rules for a user's days.

Every operation takes the caller's user id, and the operations that depend
on "today" take it as a parameter (falling back to the server date) so the
gate can be exercised for any day.
"""
import logging
from datetime import date
from typing import Optional

from standup.config import settings
from standup.core.logging import AUDIT_LOGGER
from standup.exceptions import GateBlockedError, ImmutablePlanError, ValidationError
from standup.models.goal import Goal, GoalInput, GoalNote, GoalStatus
from standup.models.plan import DailyPlan, DaySummary, GateStatus, PlanStatus, PlanWithGoals
from standup.models.profile import AwardResult, Profile, ProfileUpdate, ReviewResult
from standup.models.reschedule import RescheduleRecord
from standup.services.goal_service import GoalService
from standup.services.plan_service import PlanService
from standup.services.reschedule_service import RescheduleService
from standup.services.scoring_service import ScoringService, closure_eligible
from standup.utils.dates import previous_day, today as resolve_today, utcnow

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger(AUDIT_LOGGER)


def compact_for_submit(
    inputs: list[GoalInput],
    required: Optional[int] = None,
    max_goals: Optional[int] = None,
) -> list[GoalInput]:
    """
    Collapse submitted slots to the required ones plus non-empty optional ones.

    The first ``required`` slots are always kept (padded with empty slots
    when fewer were sent) so that validation can name the empty one. Later
    slots are kept only when they have a title, up to ``max_goals`` in
    total. Sort orders are renumbered by position.
    """
    if required is None:
        required = settings.required_goals
    if max_goals is None:
        max_goals = settings.max_goals

    head = [item.model_copy(update={"title": (item.title or "").strip()}) for item in inputs[:required]]
    while len(head) < required:
        head.append(GoalInput())

    optional = [
        item.model_copy(update={"title": item.title.strip()})
        for item in inputs[required:]
        if (item.title or "").strip()
    ]

    combined = (head + optional)[:max(required, max_goals)]
    return [item.model_copy(update={"sort_order": idx}) for idx, item in enumerate(combined)]


def validate_required_titles(titles: list[str], required: Optional[int] = None) -> None:
    """
    Check that every required slot has a title.

    Raises:
        ValidationError: Naming the first empty slot, e.g. "Goal 2 is empty"
    """
    if required is None:
        required = settings.required_goals
    for idx in range(required):
        title = titles[idx].strip() if idx < len(titles) else ""
        if not title:
            raise ValidationError(f"Goal {idx + 1} is empty", field=f"goals[{idx}].title")


class LifecycleService:
    """Service coordinating plans, goals, reschedules and scoring."""

    def __init__(self, db):
        """Initialize service with database connection."""
        self.db = db
        self.plans = PlanService(db)
        self.goals = GoalService(db)
        self.reschedules = RescheduleService(db)
        self.scoring = ScoringService(db)

    # Gating

    async def is_prior_day_reviewed(self, user_id: str, plan_date: date) -> bool:
        """
        Whether the day before ``plan_date`` is out of the way.

        A day that was never planned cannot block anything; a planned day
        blocks until it has been closed.
        """
        prior = await self.plans.find_plan_by_date(user_id, previous_day(plan_date))
        if prior is None:
            return True
        return prior.reviewed_at is not None

    async def gate_status(self, user_id: str, plan_date: date) -> GateStatus:
        """Gate check with the blocking date spelled out."""
        prior_date = previous_day(plan_date)
        reviewed = await self.is_prior_day_reviewed(user_id, plan_date)
        return GateStatus(
            plan_date=plan_date,
            prior_date=prior_date,
            prior_day_reviewed=reviewed,
            blocking_date=None if reviewed else prior_date,
        )

    async def _check_gate(self, user_id: str, plan_date: date, today: Optional[date]) -> None:
        """Planning a future day requires the previous day to be reviewed."""
        if plan_date <= resolve_today(today):
            return
        if not await self.is_prior_day_reviewed(user_id, plan_date):
            raise GateBlockedError(plan_date, previous_day(plan_date))

    @staticmethod
    def _ensure_writable(plan: DailyPlan) -> None:
        if plan.status == PlanStatus.LOCKED:
            raise ImmutablePlanError(plan.id)

    @staticmethod
    def _ensure_open(plan: DailyPlan) -> None:
        if plan.status == PlanStatus.LOCKED:
            raise ImmutablePlanError(plan.id)
        if plan.closed:
            raise ImmutablePlanError(plan.id, reason="closed")

    async def _prune_dropped(self, plan: DailyPlan, goals: list[GoalInput], kept: list[GoalInput]) -> None:
        """Delete saved goals that were sent but did not survive into ``kept``."""
        kept_ids = {item.id for item in kept if item.id}
        for item in goals:
            if not item.id or item.id in kept_ids:
                continue
            goal = await self.goals.find_goal(plan.user_id, item.id)
            if goal is not None and goal.plan_id == plan.id:
                await self.goals.delete_goal(goal)

    # Plans

    async def open_plan(self, user_id: str, plan_date: date, today: Optional[date] = None) -> PlanWithGoals:
        """
        Open (get or create) the plan for a date.

        Future dates go through the gate first. Any goals rescheduled onto
        this date are materialized before the goals are read.

        Raises:
            GateBlockedError: If the previous day still needs its review
        """
        await self._check_gate(user_id, plan_date, today)

        plan = await self.plans.get_or_create_plan(user_id, plan_date)
        materialized = await self.reschedules.materialize_for(plan)
        goals = await self.goals.list_goals(plan.id)
        return PlanWithGoals(plan=plan, goals=goals, materialized=materialized)

    async def get_plan(self, user_id: str, plan_id: str) -> DailyPlan:
        return await self.plans.get_plan(user_id, plan_id)

    async def list_goals(self, user_id: str, plan_id: str) -> list[Goal]:
        """List a plan's goals in slot order."""
        plan = await self.plans.get_plan(user_id, plan_id)
        return await self.goals.list_goals(plan.id)

    async def save_goals(
        self,
        user_id: str,
        plan_id: str,
        goals: list[GoalInput],
        today: Optional[date] = None,
    ) -> list[Goal]:
        """
        Upsert goal slots on a plan.

        On a submitted plan, optional slots that come back empty are removed.

        Raises:
            ImmutablePlanError: If the plan is locked
            GateBlockedError: If the plan is in the future and the day before
                it still needs its review
        """
        plan = await self.plans.get_plan(user_id, plan_id)
        self._ensure_writable(plan)
        await self._check_gate(user_id, plan.plan_date, today)

        if plan.status == PlanStatus.SUBMITTED:
            kept = [
                item for idx, item in enumerate(goals)
                if idx < settings.required_goals or (item.title or "").strip()
            ]
            await self._prune_dropped(plan, goals, kept)

        return await self.goals.upsert_goals(plan, goals)

    async def submit_plan(
        self,
        user_id: str,
        plan_id: str,
        goals: Optional[list[GoalInput]] = None,
        today: Optional[date] = None,
    ) -> DailyPlan:
        """
        Submit a plan.

        With a goal list, the list is collapsed and validated before anything
        is written, then saved. Without one, the saved goals are validated.

        Raises:
            ValidationError: If a required slot is empty
            ImmutablePlanError: If the plan is locked
            GateBlockedError: If the day before a future plan is not reviewed
        """
        plan = await self.plans.get_plan(user_id, plan_id)
        self._ensure_writable(plan)
        await self._check_gate(user_id, plan.plan_date, today)

        if goals is not None:
            slots = compact_for_submit(goals)
            validate_required_titles([slot.title for slot in slots])
            # Slots cut by compaction (empty or past the cap) are removed
            await self._prune_dropped(plan, goals, slots)
            await self.goals.upsert_goals(plan, slots)
        else:
            saved = await self.goals.list_goals(plan.id)
            validate_required_titles([goal.title for goal in saved])

        submitted = await self.plans.mark_submitted(plan)
        logger.info("Plan %s (%s) submitted", submitted.id, submitted.plan_date.isoformat())
        return submitted

    async def lock_plan(self, user_id: str, plan_id: str) -> DailyPlan:
        """
        Make a submitted plan read-only.

        Raises:
            ValidationError: If the plan is still a draft
        """
        plan = await self.plans.get_plan(user_id, plan_id)
        locked = await self.plans.mark_locked(plan)
        if plan.status != PlanStatus.LOCKED:
            logger.info("Plan %s (%s) locked", locked.id, locked.plan_date.isoformat())
        return locked

    async def reopen_plan(self, user_id: str, plan_id: str, reason: Optional[str] = None) -> DailyPlan:
        """
        Reopen a closed day by clearing its review stamp.

        This re-gates the following day. Points already paid are kept. Each
        reopen is appended to the plan's reopen_history and logged.

        Raises:
            ValidationError: If the day is not closed
            ImmutablePlanError: If the plan is locked
        """
        plan = await self.plans.get_plan(user_id, plan_id)
        self._ensure_writable(plan)
        reopened = await self.plans.clear_reviewed(plan, reason=reason)
        audit_logger.warning(
            "plan reopened: user=%s plan=%s date=%s previous_reviewed_at=%s reason=%r",
            user_id,
            plan.id,
            plan.plan_date.isoformat(),
            plan.reviewed_at.isoformat() if plan.reviewed_at else None,
            reason,
        )
        return reopened

    async def calendar(self, user_id: str, start: date, end: date) -> list[DaySummary]:
        """
        Summaries for the planned days in a date range.

        Raises:
            ValidationError: If start is after end
        """
        if start > end:
            raise ValidationError("start must not be after end", field="start")
        return await self.plans.summarize_range(user_id, start, end)

    # Goals

    async def delete_goal(self, user_id: str, goal_id: str) -> bool:
        """
        Delete a goal. Deleting a goal that does not exist is a no-op.

        Returns:
            True if a goal was deleted

        Raises:
            ImmutablePlanError: If the goal's plan is locked
        """
        goal = await self.goals.find_goal(user_id, goal_id)
        if goal is None:
            return False
        plan = await self.plans.get_plan(user_id, goal.plan_id)
        self._ensure_writable(plan)
        return await self.goals.delete_goal(goal) > 0

    async def change_status(self, user_id: str, goal_id: str, status: GoalStatus) -> Goal:
        """
        Change a goal's status while its day is open.

        Raises:
            ValidationError: If the status is not a known goal status
            NotFoundError: If goal not found
            ImmutablePlanError: If the plan is locked or the day closed
        """
        try:
            status = GoalStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown goal status: {status}", field="status")

        goal = await self.goals.get_goal(user_id, goal_id)
        plan = await self.plans.get_plan(user_id, goal.plan_id)
        self._ensure_open(plan)
        return await self.goals.update_status(goal, status)

    async def change_priority(self, user_id: str, goal_id: str, priority: int) -> Goal:
        """
        Change a goal's priority, keeping a single priority 1 in the required slots.

        Raises:
            NotFoundError: If goal not found
            ImmutablePlanError: If the plan is locked
        """
        goal = await self.goals.get_goal(user_id, goal_id)
        plan = await self.plans.get_plan(user_id, goal.plan_id)
        self._ensure_writable(plan)
        return await self.goals.set_priority(goal, priority)

    async def toggle_review(self, user_id: str, goal_id: str) -> ReviewResult:
        """
        Flip a goal between reviewed and pending.

        A goal has to be acted on (left not_started) before it can be
        reviewed. When marking a goal reviewed makes the day eligible for
        closure, the day is closed right away.

        Raises:
            NotFoundError: If goal not found
            ValidationError: If the goal is still not_started
            ImmutablePlanError: If the plan is locked or the day closed
        """
        goal = await self.goals.get_goal(user_id, goal_id)
        plan = await self.plans.get_plan(user_id, goal.plan_id)
        self._ensure_open(plan)

        if goal.reviewed:
            updated = await self.goals.set_reviewed(goal, None)
            return ReviewResult(goal=updated)

        if goal.status == GoalStatus.NOT_STARTED:
            raise ValidationError("Take action on the goal before reviewing it", field="status")

        updated = await self.goals.set_reviewed(goal, utcnow())

        closure = None
        if closure_eligible(await self.goals.list_goals(plan.id)):
            closure = await self.scoring.award_closure(plan, settings.closure_points)

        return ReviewResult(goal=updated, closure=closure)

    async def reschedule_goal(
        self,
        user_id: str,
        goal_id: str,
        to_date: date,
        reason: Optional[str] = None,
    ) -> RescheduleRecord:
        """
        Move a reviewed goal to a later day.

        Repeating the same move returns the pending record instead of
        recording a second one.

        Raises:
            NotFoundError: If goal not found
            ValidationError: If the goal is unreviewed or completed, the
                target date is not after the goal's day, or the goal is
                already waiting to land on another day
            ImmutablePlanError: If the plan is locked
        """
        goal = await self.goals.get_goal(user_id, goal_id)
        plan = await self.plans.get_plan(user_id, goal.plan_id)
        self._ensure_writable(plan)

        if not goal.reviewed:
            raise ValidationError("Review the goal before rescheduling it", field="reviewed_at")
        if goal.status == GoalStatus.COMPLETED:
            raise ValidationError("Completed goals cannot be rescheduled", field="status")
        if to_date <= plan.plan_date:
            raise ValidationError(
                f"Reschedule target must be after {plan.plan_date.isoformat()}",
                field="to_date",
            )

        pending = await self.reschedules.find_pending_for_goal(goal.id)
        if pending is not None and pending.to_date != to_date:
            raise ValidationError(
                f"Goal is already rescheduled to {pending.to_date.isoformat()}",
                field="to_date",
            )

        return await self.reschedules.record_reschedule(goal, plan.plan_date, to_date, reason)

    async def add_goal_note(self, user_id: str, goal_id: str, note: str) -> GoalNote:
        """
        Attach a note to a goal.

        Raises:
            NotFoundError: If goal not found
            ImmutablePlanError: If the plan is locked
        """
        goal = await self.goals.get_goal(user_id, goal_id)
        plan = await self.plans.get_plan(user_id, goal.plan_id)
        self._ensure_writable(plan)
        return await self.goals.add_note(goal, note)

    async def list_goal_notes(self, user_id: str, goal_id: str) -> list[GoalNote]:
        goal = await self.goals.get_goal(user_id, goal_id)
        return await self.goals.list_notes(goal)

    # Scoring

    async def award_awareness(self, user_id: str, plan_id: str, points: Optional[int] = None) -> AwardResult:
        """Award awareness points once per plan (see ScoringService)."""
        plan = await self.plans.get_plan(user_id, plan_id)
        if points is None:
            points = settings.awareness_points
        return await self.scoring.award_awareness(plan, points)

    async def award_closure(self, user_id: str, plan_id: str, points: Optional[int] = None) -> AwardResult:
        """
        Close a day: award closure points once and stamp the plan reviewed.

        Raises:
            ValidationError: If goals that were acted on are still unreviewed
        """
        plan = await self.plans.get_plan(user_id, plan_id)
        if points is None:
            points = settings.closure_points

        goals = await self.goals.list_goals(plan.id)
        if not closure_eligible(goals):
            pending = [g for g in goals if g.status != GoalStatus.NOT_STARTED and not g.reviewed]
            raise ValidationError(
                f"Review all goals before closing the day ({len(pending)} pending)",
                field="goals",
            )
        return await self.scoring.award_closure(plan, points)

    # Profile

    async def get_profile(self, user_id: str) -> Profile:
        return await self.scoring.get_or_create_profile(user_id)

    async def update_profile(self, user_id: str, profile_update: ProfileUpdate) -> Profile:
        return await self.scoring.update_profile(user_id, profile_update)
