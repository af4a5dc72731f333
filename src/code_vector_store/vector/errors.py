"""Error taxonomy for vector database adapters."""


class VectorDatabaseError(Exception):
    """Base class for all adapter errors."""

    pass


class NotInitializedError(VectorDatabaseError):
    """Raised when an operation runs without a usable backend connection."""

    pass


class BackendError(VectorDatabaseError):
    """Raised when the backend rejects or fails a call.

    The backend's status code and message are carried verbatim.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"[{self.status_code}] {self.message}"


class InvalidRequestError(VectorDatabaseError):
    """Raised when caller-supplied arguments violate a documented precondition."""

    pass


class FilterSyntaxError(InvalidRequestError):
    """Raised when a filter expression falls outside the supported grammar."""

    def __init__(self, expression: str, reason: str) -> None:
        super().__init__(f"Unsupported filter expression {expression!r}: {reason}")
        self.expression = expression
        self.reason = reason
