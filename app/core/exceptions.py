# app/core/exceptions.py
"""
Domain errors raised by the scheduling services.

Each carries the HTTP status the API layer answers with; services never
build HTTP responses themselves.
"""
from typing import Optional


class SchedulingError(Exception):
    """Base class for every error the engine surfaces to callers"""

    status_code: int = 400
    code: str = "scheduling_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(SchedulingError):
    status_code = 404
    code = "not_found"


class ConflictError(SchedulingError):
    status_code = 409
    code = "conflict"


class InvalidStateError(SchedulingError):
    status_code = 400
    code = "invalid_state"


class ForbiddenError(SchedulingError):
    status_code = 403
    code = "forbidden"


class ValidationError(SchedulingError):
    status_code = 422
    code = "validation_error"


class BusyError(SchedulingError):
    """Lock contention on booking admission; safe to retry with backoff"""

    status_code = 503
    code = "busy"

    def __init__(self, message: str, retry_after: int = 1):
        super().__init__(message)
        self.retry_after = retry_after


class AccessDeniedError(SchedulingError):
    """Subscription gate refusal"""

    status_code = 402
    code = "subscription_required"

    TRIAL_EXPIRED = "trial_expired"
    PERIOD_EXPIRED = "period_expired"
    CANCELLED = "cancelled"
    NO_SUBSCRIPTION = "no_subscription"

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.reason = reason
