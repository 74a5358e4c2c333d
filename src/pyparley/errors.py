"""Exception types shared across pyparley modules."""


class PyparleyError(Exception):
    """Base class for pyparley errors."""


class AuthenticationError(PyparleyError):
    """Raised when a write operation has no resolved caller identity."""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class StoreNotConnectedError(PyparleyError, RuntimeError):
    """Raised when a backend is used before connect() or after disconnect()."""

    def __init__(self, backend: str):
        super().__init__(f"{backend} backend is not connected; call connect() first")
        self.backend = backend


class UnknownTaskError(PyparleyError, KeyError):
    """Raised when scheduling a task name that has no registered handler."""

    def __init__(self, task_name: str):
        super().__init__(task_name)
        self.task_name = task_name

    def __str__(self) -> str:
        return f"No handler registered for task '{self.task_name}'"


class SchedulerClosedError(PyparleyError, RuntimeError):
    """Raised when scheduling work on a scheduler that has been shut down."""

    def __init__(self, message: str = "Scheduler is shut down"):
        super().__init__(message)
