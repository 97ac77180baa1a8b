"""
Domain exceptions for the standup service.

Services raise these; routers translate them into HTTP responses.
"""
from datetime import date
from typing import Optional


class StandupError(Exception):
    """Base exception for the standup service"""
    pass


class ValidationError(StandupError):
    """Raised when input breaks a planning rule (empty required goal, bad transition)"""
    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        self.message = message
        super().__init__(message)


class GateBlockedError(StandupError):
    """Raised when the day before the target date still needs its review"""
    def __init__(self, plan_date: date, blocking_date: date):
        self.plan_date = plan_date
        self.blocking_date = blocking_date
        super().__init__(
            f"Review {blocking_date.isoformat()} before planning {plan_date.isoformat()}"
        )


class NotFoundError(StandupError):
    """Raised when a plan or goal does not exist or belongs to someone else"""
    def __init__(self, resource: str, resource_id: str):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found")


class ImmutablePlanError(StandupError):
    """Raised when a write targets a locked plan or a closed day"""
    def __init__(self, plan_id: str, reason: str = "locked"):
        self.plan_id = plan_id
        self.reason = reason
        super().__init__(f"Plan is {reason} and cannot be changed")


class ConflictError(StandupError):
    """Raised when a concurrent write could not be reconciled"""
    def __init__(self, message: str):
        super().__init__(message)
