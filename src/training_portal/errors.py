"""Exceptions raised by the progress, catalog and store layers."""


class PortalError(Exception):
    """Base class for recoverable training portal errors."""


class NotFoundError(PortalError):
    def __init__(self, resource: str, id: str | None = None):
        self.resource = resource
        self.id = id
        message = f"{resource} with ID {id} not found" if id else f"{resource} not found"
        super().__init__(message)


class NotEnrolledError(PortalError):
    def __init__(self, course_id: str):
        self.course_id = course_id
        super().__init__(f"Not enrolled in course {course_id}")


class InvalidScoreError(PortalError):
    def __init__(self, score):
        self.score = score
        super().__init__(f"Quiz score must be between 0 and 100, got {score}")


class ProfileConflictError(PortalError):
    """Raised when saving a profile snapshot that another writer already replaced."""

    def __init__(self, profile_id: str, expected: int, actual: int):
        self.profile_id = profile_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Profile {profile_id} was modified concurrently (expected version {expected}, found {actual})"
        )
