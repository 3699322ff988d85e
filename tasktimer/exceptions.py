"""Domain errors raised by the ordering store and the reorder service.

Each error carries the HTTP status it maps to and a short machine-readable
code; api/errors.py turns them into the JSON error body.
"""


class TaskTimerError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500
    code: str = "Error"

    def __init__(self, message: str = "Unexpected error"):
        self.message = message
        super().__init__(self.message)


class NotFound(TaskTimerError):
    status_code = 404
    code = "NotFound"

    def __init__(self, message: str = "Task not found"):
        super().__init__(message)


class InvalidInput(TaskTimerError):
    status_code = 400
    code = "InvalidInput"

    def __init__(self, message: str = "Invalid input"):
        super().__init__(message)


class AlreadyAtBoundary(TaskTimerError):
    """Move-up on the first task or move-down on the last one."""

    status_code = 400
    code = "AlreadyAtBoundary"

    def __init__(self, message: str = "Task is already at the boundary"):
        super().__init__(message)


class TransactionFailure(TaskTimerError):
    """An atomic write failed and was rolled back."""

    status_code = 500
    code = "TransactionFailure"

    def __init__(self, message: str = "Failed to apply changes; nothing was saved"):
        super().__init__(message)
