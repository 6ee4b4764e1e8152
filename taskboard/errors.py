"""Domain errors raised by the service layer.

Each error carries the HTTP status it maps to; ``taskboard.main`` renders
them as ``{"error": message}``.
"""


class TaskboardError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TaskboardError):
    status_code = 400


class ConflictError(TaskboardError):
    status_code = 400


class UnauthorizedError(TaskboardError):
    status_code = 401


class ForbiddenError(TaskboardError):
    status_code = 403


class NotFoundError(TaskboardError):
    status_code = 404


class AlreadyProcessedError(NotFoundError):
    """A guarded state transition matched no row in the expected state."""
