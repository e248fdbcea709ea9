"""Error taxonomy for grading and reward claims.

Every exception carries the wire-level error code that handlers put into
the response envelope.
"""


class ScholarRewardsError(Exception):
    """Base exception; unexpected failures surface as INTERNAL_ERROR."""
    code = "INTERNAL_ERROR"


class RequestValidationError(ScholarRewardsError):
    """Malformed request, missing field, failed eligibility or cap check."""
    code = "VALIDATION_ERROR"


class NotFoundError(ScholarRewardsError):
    """Referenced entity does not exist."""
    code = "NOT_FOUND"


class UnauthorizedError(ScholarRewardsError):
    """Referenced entity belongs to another student."""
    code = "UNAUTHORIZED"


class StorageError(ScholarRewardsError):
    """Database operation failed."""
    code = "INTERNAL_ERROR"


class JudgeUnavailableError(ScholarRewardsError):
    """Short-answer judge failed, timed out, or is not configured."""
    code = "EXTERNAL_SERVICE_DEGRADED"
