"""Service-level error taxonomy.

Services raise these; the API layer turns each into ``{"error": message}``
with the class's ``status_code``.
"""


class DeafTubeError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = 500
    default_message: str = "Server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(DeafTubeError):
    """A required field is missing or malformed."""

    status_code = 400
    default_message = "Invalid request"


class UnauthorizedError(DeafTubeError):
    """Missing or invalid credential."""

    status_code = 401
    default_message = "Unauthorized"


class NotFoundError(DeafTubeError):
    """Lookup by id found nothing."""

    status_code = 404
    default_message = "Not found"


class NotFoundOrUnauthorizedError(DeafTubeError):
    """Resource absent or not owned by the caller.

    The two cases share one error so callers cannot probe for existence.
    """

    status_code = 404
    default_message = "Not found or unauthorized"


class ConflictError(DeafTubeError):
    """Request conflicts with existing state (self-subscription, duplicate account)."""

    status_code = 400
    default_message = "Conflict"


class LedgerContentionError(DeafTubeError):
    """A toggle kept losing its compare-and-set to concurrent requests."""

    status_code = 409
    default_message = "Too many concurrent updates, please retry"


class StorageFailureError(DeafTubeError):
    """The relational or blob store failed."""

    status_code = 500
    default_message = "Storage failure"
