"""Custom exception hierarchy for Dashgate."""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Lookup errors
    USER_NOT_FOUND = "USER_NOT_FOUND"
    AREA_NOT_FOUND = "AREA_NOT_FOUND"
    DASHBOARD_NOT_FOUND = "DASHBOARD_NOT_FOUND"
    GRANT_NOT_FOUND = "GRANT_NOT_FOUND"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    PREREQUISITE_MISSING = "PREREQUISITE_MISSING"

    # Auth
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    TOKEN_INVALID = "TOKEN_INVALID"
    FORBIDDEN = "FORBIDDEN"

    # Uniqueness and dependent rows
    CONFLICT = "CONFLICT"
    HAS_DEPENDENTS = "HAS_DEPENDENTS"

    # Generic errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class DashgateException(Exception):
    """
    Base exception for all Dashgate errors.

    Provides structured error responses with:
    - Human-readable message
    - Machine-readable error code
    - HTTP status code
    - Optional additional details
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {
            "error": self.error_code.value,
            "message": self.message,
            "details": self.details
        }


class UserNotFoundError(DashgateException):
    """User not found in database."""

    def __init__(self, user_id):
        super().__init__(
            f"User not found: {user_id}",
            ErrorCode.USER_NOT_FOUND,
            status_code=404,
            details={"user_id": user_id}
        )


class AreaNotFoundError(DashgateException):
    """Area not found in database."""

    def __init__(self, area_id):
        super().__init__(
            f"Area not found: {area_id}",
            ErrorCode.AREA_NOT_FOUND,
            status_code=404,
            details={"area_id": area_id}
        )


class DashboardNotFoundError(DashgateException):
    """Dashboard not found in database."""

    def __init__(self, dashboard_id):
        super().__init__(
            f"Dashboard not found: {dashboard_id}",
            ErrorCode.DASHBOARD_NOT_FOUND,
            status_code=404,
            details={"dashboard_id": dashboard_id}
        )


class GrantNotFoundError(DashgateException):
    """No dashboard grant exists for the given user and dashboard."""

    def __init__(self, user_id: int, dashboard_id: int):
        super().__init__(
            "User has no access grant for this dashboard",
            ErrorCode.GRANT_NOT_FOUND,
            status_code=404,
            details={"user_id": user_id, "dashboard_id": dashboard_id}
        )


class ValidationError(DashgateException):
    """Validation failed for user input."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=details
        )


class PrerequisiteMissingError(DashgateException):
    """Dashboard grant requested for a user without access to the dashboard's area."""

    def __init__(self, user_id: int, dashboard_id: int, area_id: int):
        super().__init__(
            "User must have access to the dashboard's area before being granted the dashboard",
            ErrorCode.PREREQUISITE_MISSING,
            status_code=400,
            details={"user_id": user_id, "dashboard_id": dashboard_id, "area_id": area_id}
        )


class AuthenticationError(DashgateException):
    """Request lacks valid authentication credentials."""

    def __init__(
        self,
        message: str = "Authentication token required",
        error_code: ErrorCode = ErrorCode.UNAUTHORIZED,
    ):
        super().__init__(
            message,
            error_code,
            status_code=401,
        )


class InvalidCredentialsError(AuthenticationError):
    """Login failed. Deliberately identical for unknown email and wrong password."""

    def __init__(self):
        super().__init__("Invalid email or password", ErrorCode.INVALID_CREDENTIALS)


class TokenExpiredError(AuthenticationError):
    """Session token was valid but has expired."""

    def __init__(self):
        super().__init__("Session token has expired", ErrorCode.TOKEN_EXPIRED)


class TokenInvalidError(AuthenticationError):
    """Session token is malformed or its signature does not verify."""

    def __init__(self, message: str = "Invalid session token"):
        super().__init__(message, ErrorCode.TOKEN_INVALID)


class ForbiddenError(DashgateException):
    """Authenticated user lacks permission for the requested action."""

    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(
            message,
            ErrorCode.FORBIDDEN,
            status_code=403,
        )


class ConflictError(DashgateException):
    """A uniqueness constraint would be violated."""

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(
            message,
            ErrorCode.CONFLICT,
            status_code=409,
            details=details
        )


class HasDependentsError(DashgateException):
    """Deletion blocked because other rows still reference the entity."""

    def __init__(self, message: str, dependents: Dict[str, int]):
        super().__init__(
            message,
            ErrorCode.HAS_DEPENDENTS,
            status_code=409,
            details={"dependents": dependents}
        )
