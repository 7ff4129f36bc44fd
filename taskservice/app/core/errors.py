from typing import Any, Optional


class StoreError(Exception):
    """Raised when the task store fails; maps onto a 500 envelope."""

    status_code = 500

    def __init__(self, message: str, *, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class ValidationError(StoreError):
    """Client-supplied task fields violate a field constraint."""

    status_code = 400

    def __init__(
        self,
        message: str,
        *,
        details: Optional[list[dict[str, Any]]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, cause=cause)
        self.details = details or []


class NotFoundError(StoreError):
    status_code = 404

    def __init__(self, message: str = "Task not found", *, cause: Optional[BaseException] = None):
        super().__init__(message, cause=cause)


class StoreUnavailableError(StoreError):
    """The store connection was lost or never established."""

    def __init__(
        self,
        message: str = "Task store is unavailable",
        *,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, cause=cause)
