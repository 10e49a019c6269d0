from typing import Any, Dict, List, Optional


class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)

    def error_entries(self) -> List[Dict[str, Any]]:
        """Entries for the `errors` list of an error response."""
        return [{"msg": self.message, "code": self.error_code}]


class NotFoundError(AppException):
    def __init__(self, message: str = "Resource not found"):
        super().__init__(
            message=message,
            status_code=404,
            error_code="NOT_FOUND"
        )


class LeaveValidationError(AppException):
    """One or more leave fields failed validation; `field_errors` maps field -> message."""
    def __init__(self, field_errors: Dict[str, str], message: str = "Leave application failed validation"):
        self.field_errors = dict(field_errors)
        super().__init__(
            message=message,
            status_code=400,
            error_code="VALIDATION_FAILED",
            details={"fields": self.field_errors}
        )

    def error_entries(self) -> List[Dict[str, Any]]:
        return [
            {"field": field, "msg": msg, "code": self.error_code}
            for field, msg in self.field_errors.items()
        ]


class LeaveConflictError(AppException):
    """The requested dates overlap an existing pending or approved leave."""
    def __init__(
        self,
        message: str,
        overlapping_leave: Optional[Dict[str, Any]] = None,
        field_errors: Optional[Dict[str, str]] = None
    ):
        # Other field problems found in the same pass travel with the conflict
        self.field_errors = dict(field_errors or {})
        self.field_errors["overlapping"] = message
        super().__init__(
            message=message,
            status_code=409,
            error_code="LEAVE_OVERLAP",
            details={"overlappingLeave": overlapping_leave, "fields": self.field_errors}
        )

    def error_entries(self) -> List[Dict[str, Any]]:
        return [
            {"field": field, "msg": msg, "code": self.error_code if field == "overlapping" else "VALIDATION_FAILED"}
            for field, msg in self.field_errors.items()
        ]


class InsufficientBalanceError(AppException):
    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=400,
            error_code="INSUFFICIENT_BALANCE"
        )

    def error_entries(self) -> List[Dict[str, Any]]:
        return [{"field": "balance", "msg": self.message, "code": self.error_code}]


class InvalidTransitionError(AppException):
    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=400,
            error_code="INVALID_STATUS_TRANSITION"
        )


class AuthenticationError(AppException):
    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTH_FAILED"
        )


class AccessDeniedError(AppException):
    """Custom permission error. Named AccessDeniedError to avoid shadowing Python's built-in PermissionError."""
    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(
            message=message,
            status_code=403,
            error_code="PERMISSION_DENIED"
        )
