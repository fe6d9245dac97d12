# --- Service Layer Exception Classes ---
class ServiceError(Exception):
    """General exception class for the service layer."""
    pass


class AuthorizationError(ServiceError):
    """The principal lacks the ownership or role the action requires."""
    pass


class InvalidInputError(ServiceError):
    """The request is malformed (bad session number, ttl, name, ...)."""
    pass


class NotFoundError(ServiceError):
    """The referenced session or course does not exist."""
    pass


class CodeSpaceExhaustedError(ServiceError):
    """No free session code was found within the retry budget."""
    pass


class SessionConflictError(ServiceError):
    """A concurrent request changed the session while this one was acting on it."""
    pass


class CascadeDeletionError(ServiceError):
    """A cascading delete failed; `stage` names the table it stopped at."""

    def __init__(self, stage: str, message: str):
        super().__init__(message)
        self.stage = stage


# --- Expected redemption outcomes ---
class RedemptionError(ServiceError):
    """Base for the user-facing redemption failures."""
    error_code = "RedemptionFailed"


class InvalidCodeError(RedemptionError):
    error_code = "InvalidCode"


class CodeExpiredError(RedemptionError):
    error_code = "CodeExpired"


class NotEnrolledError(RedemptionError):
    error_code = "NotEnrolled"
