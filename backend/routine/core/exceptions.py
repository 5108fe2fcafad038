class AppError(Exception):
    """Base class for all application exceptions.

    ``code`` is the machine-checkable reason tag surfaced to API callers;
    ``message`` is for humans only.
    """
    code = "AppError"

    def __init__(self, message: str, status_code: int = 500, details: dict = None, code: str = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        if code is not None:
            self.code = code
        super().__init__(self.message)


class ValidationError(AppError):
    """A candidate was rejected by a business rule. The caller may correct it and retry."""
    code = "ValidationError"

    def __init__(self, reason: str, message: str, details: dict = None):
        super().__init__(message, status_code=422, details=details, code=reason)

    @property
    def reason(self) -> str:
        return self.code


class CapacityExhaustedError(ValidationError):
    """Raised when a course has no remaining weekly sessions to allocate."""

    def __init__(self, course_code: str, course_id: str):
        super().__init__(
            "CourseExhausted",
            f"Course {course_code} has no remaining capacity",
            details={"course_id": course_id},
        )


class NotFoundError(AppError):
    """Raised when a requested resource is not found."""
    code = "NotFound"

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with id {resource_id} not found",
            status_code=404,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class ConflictError(AppError):
    """Raised when a mutation lost a race or collides with existing state. Retrying may succeed."""
    code = "Conflict"

    def __init__(self, message: str, details: dict = None, code: str = None):
        super().__init__(message, status_code=409, details=details, code=code)


class SearchBudgetExceededError(AppError):
    """Raised when the auto-scheduler gives up before finding a complete assignment."""
    code = "SearchBudgetExceeded"

    def __init__(self, message: str, unplaceable: list[dict], details: dict = None):
        payload = dict(details or {})
        payload["unplaceable"] = unplaceable
        self.unplaceable = unplaceable
        super().__init__(message, status_code=422, details=payload)
