"""Job cache exception hierarchy."""


class JobCacheError(Exception):
    """Base exception for all job cache errors."""


class StoreError(JobCacheError):
    """Storage failure while reading or writing job data."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"[{operation}] {message}")


class IdentityResolutionError(JobCacheError):
    """A process or job identity could not be resolved."""

    def __init__(self, name: str, message: str):
        self.name = name
        super().__init__(f"Failed to resolve '{name}': {message}")


class InvalidStateError(JobCacheError):
    """Operation invoked while the job is in the wrong lifecycle state."""

    def __init__(self, operation: str, state: str):
        self.operation = operation
        self.state = state
        super().__init__(f"Cannot {operation} while job is {state}")
