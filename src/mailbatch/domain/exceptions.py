class BatchError(Exception):
    """Base class for batch provisioning errors."""


class UnauthorizedError(BatchError):
    """Raised when no acting user can be resolved for a request."""

    def __init__(self) -> None:
        super().__init__("Unauthorized.")


class TaskNotFoundError(BatchError):
    """Raised when a task identifier does not exist or has expired."""
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task with id '{task_id}' was not found or has expired.")
        self.task_id = task_id


class TaskAccessDeniedError(BatchError):
    """Raised when a user attempts to access a task they do not own."""

    def __init__(self, task_id: str, user_id: str) -> None:
        super().__init__(f"User '{user_id}' has no access to task '{task_id}'.")
        self.task_id = task_id
        self.user_id = user_id


class InvalidArgumentError(BatchError):
    """Raised when a request carries an invalid domain, expiry or count."""


class QuotaExceededError(BatchError):
    """Raised when a batch would push the owner past their active address ceiling."""

    def __init__(self, current: int, maximum: int, attempted: int) -> None:
        super().__init__(
            "Batch would exceed the maximum number of active addresses. "
            f"Current: {current}/{maximum}, attempted: {attempted}"
        )
        self.current = current
        self.maximum = maximum
        self.attempted = attempted


class GenerationExhaustedError(BatchError):
    """Raised when no unique address could be produced within the attempt budget."""

    def __init__(self, domain: str, attempts: int) -> None:
        super().__init__(
            f"Could not generate a unique address for '{domain}' in {attempts} attempts."
        )
        self.domain = domain
        self.attempts = attempts


class StorageFailureError(BatchError):
    """Raised when a durable or ephemeral store rejects a read or write."""


class TaskVersionConflictError(BatchError):
    """Raised when a compare-and-set write loses against a concurrent writer."""

    def __init__(self, task_id: str, expected: int, actual: int | None) -> None:
        super().__init__(
            f"Task '{task_id}' changed concurrently (expected version {expected}, found {actual})."
        )
        self.task_id = task_id
        self.expected = expected
        self.actual = actual
