"""Custom exception classes and error handling."""

from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(
            status_code=status_code,
            detail={
                "success": False,
                "error": {
                    "code": code,
                    "message": message,
                    "details": details or {},
                },
            },
        )


class AuthenticationError(AppException):
    """Authentication failed."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            code="AUTH_FAILED",
            message=message,
        )


class PermissionDeniedError(AppException):
    """Permission denied for the requested action."""

    def __init__(
        self,
        message: str = "Permission denied",
        required_role: str | None = None,
    ):
        details = {}
        if required_role:
            details["required_role"] = required_role
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            code="PERMISSION_DENIED",
            message=message,
            details=details,
        )


class ForbiddenError(AppException):
    """Forbidden action - user is not allowed to perform this action."""

    def __init__(self, message: str = "Forbidden"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            code="FORBIDDEN",
            message=message,
        )


class ValidationError(AppException):
    """Data validation failed."""

    def __init__(
        self,
        message: str = "Validation error",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            code="VALIDATION_ERROR",
            message=message,
            details=details,
        )


class NotFoundError(AppException):
    """Resource not found."""

    def __init__(
        self,
        resource: str = "Resource",
        identifier: str | None = None,
    ):
        details = {}
        if identifier:
            details["identifier"] = identifier
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            code="NOT_FOUND",
            message=f"{resource} not found",
            details=details,
        )


class AlreadyFinalizedError(AppException):
    """Monthly exam is finalized; results are locked."""

    def __init__(
        self,
        monthly_exam_id: int | None = None,
        message: str = "Cannot regenerate ranking for finalized exam",
    ):
        details = {}
        if monthly_exam_id is not None:
            details["monthly_exam_id"] = monthly_exam_id
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            code="EXAM_FINALIZED",
            message=message,
            details=details,
        )


class FinalizedExamImmutableError(AlreadyFinalizedError):
    """Edit attempted on data owned by a finalized monthly exam."""

    def __init__(
        self,
        monthly_exam_id: int | None = None,
        message: str = "Cannot modify a finalized exam",
    ):
        super().__init__(monthly_exam_id=monthly_exam_id, message=message)


class InsufficientBalanceError(AppException):
    """Not enough SMS balance for the requested send."""

    def __init__(self, required: int, available: int):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            code="INSUFFICIENT_SMS_BALANCE",
            message=(
                f"Insufficient SMS balance. Required: {required} SMS, "
                f"Available: {available} SMS"
            ),
            details={"required": required, "available": available},
        )


class GatewayFailure(Exception):
    """SMS gateway answered but did not accept the message."""

    def __init__(self, number: str, body: str = "", status_code: int | None = None):
        self.number = number
        self.body = body
        self.status_code = status_code
        super().__init__(f"SMS gateway rejected message to {number}: {body}")


class GatewayUnreachable(GatewayFailure):
    """SMS gateway could not be reached (network error or timeout)."""

    def __init__(self, number: str, reason: str):
        super().__init__(number=number, body=reason)
        self.args = (f"SMS gateway unreachable for {number}: {reason}",)
