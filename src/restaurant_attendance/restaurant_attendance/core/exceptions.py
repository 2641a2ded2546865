class DomainError(Exception):
    """Base exception for business rule violations.

    Every error carries a machine-readable ``code`` and the HTTP status the
    controllers answer with.
    """

    default_code = "domain_error"
    status_code = 400

    def __init__(self, code: str | None = None, message: str | None = None):
        self.code = code or self.default_code
        self.message = message or self.code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"success": False, "error": self.code, "message": self.message}


class ValidationError(DomainError):
    """Raised when input data is invalid or cannot be routed."""

    default_code = "validation_error"


class AuthenticationError(DomainError):
    """Raised when a device credential is missing or wrong."""

    default_code = "invalid_api_key"
    status_code = 401


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    default_code = "forbidden"
    status_code = 403


class NotFoundError(DomainError):
    default_code = "not_found"
    status_code = 404


class PolicyViolation(DomainError):
    """Attendance policy rejected the event (mode, schedule or time window)."""

    default_code = "policy_violation"


class ConflictError(DomainError):
    """State transition not allowed from the current session state."""

    default_code = "conflict"
    status_code = 409


class ConcurrencyConflict(DomainError):
    """A concurrent writer won a race; the unit of work should be retried."""

    default_code = "concurrency_conflict"
    status_code = 409
