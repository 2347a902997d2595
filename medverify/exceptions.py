"""
Global exception handlers and the application error taxonomy.

Every error a client can see is an ``ErrorKind``: the member value is the
user-facing message and ``ERROR_STATUS_CODES`` holds its HTTP status. Anything
that is not an ``AppException`` is logged and replaced by a generic message.
"""
import enum
import logging
from typing import List, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

# Set up logging
logger = logging.getLogger(__name__)


class ErrorKind(str, enum.Enum):
    """Allow-listed client-facing errors."""
    # Validation
    VALIDATION_FAILED = "Validation failed"
    INVALID_PHONE = "Invalid phone number format"
    REJECTION_REASON_REQUIRED = "Rejection reason is required"
    INVALID_FILE_TYPE = "Invalid file type. Only JPEG, PNG, and WebP images are allowed."
    FILE_TOO_LARGE = "File too large. Maximum size is 5MB."

    # Business rules
    EMAIL_ALREADY_REGISTERED = "Email already registered"
    PHONE_ALREADY_REGISTERED = "Phone number already registered"
    INVALID_ROLE = "Invalid role"
    INVALID_CREDENTIALS = "Invalid email or password"
    ACCOUNT_SUSPENDED = "Account suspended"
    INVALID_OTP = "Invalid OTP"
    INVALID_OR_EXPIRED_OTP = "Invalid or expired OTP"
    INVALID_RESET_TOKEN = "Invalid or expired reset token"
    NOT_ELIGIBLE_FOR_VERIFICATION = "Account not eligible for verification"
    ONLY_REJECTED_CAN_RESUBMIT = "Only rejected accounts can resubmit verification"
    NOT_PENDING_VERIFICATION = "User is not pending verification"
    USER_NOT_FOUND = "User not found"

    # Authentication / authorization
    AUTHENTICATION_REQUIRED = "Authentication required"
    INVALID_TOKEN = "Invalid or expired token"
    INSUFFICIENT_PERMISSIONS = "Insufficient permissions"


ERROR_STATUS_CODES = {
    ErrorKind.VALIDATION_FAILED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_PHONE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.REJECTION_REASON_REQUIRED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_FILE_TYPE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.FILE_TOO_LARGE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.EMAIL_ALREADY_REGISTERED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.PHONE_ALREADY_REGISTERED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_ROLE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.ACCOUNT_SUSPENDED: status.HTTP_403_FORBIDDEN,
    ErrorKind.INVALID_OTP: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_OR_EXPIRED_OTP: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_RESET_TOKEN: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_ELIGIBLE_FOR_VERIFICATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.ONLY_REJECTED_CAN_RESUBMIT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_PENDING_VERIFICATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.USER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.AUTHENTICATION_REQUIRED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.INVALID_TOKEN: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.INSUFFICIENT_PERMISSIONS: status.HTTP_403_FORBIDDEN,
}


class Operation(str, enum.Enum):
    """Public operations that have a generic failure message."""
    REGISTER = "register"
    LOGIN = "login"
    FORGOT_PASSWORD = "forgotPassword"
    VERIFY_OTP = "verifyOtp"
    RESET_PASSWORD = "resetPassword"
    SUBMIT_VERIFICATION = "submitVerification"
    RESUBMIT_VERIFICATION = "resubmitVerification"
    APPROVE_VERIFICATION = "approveVerification"
    REJECT_VERIFICATION = "rejectVerification"
    GET_PENDING_VERIFICATIONS = "getPendingVerifications"


FALLBACK_MESSAGES = {
    Operation.REGISTER: "Registration failed. Please try again.",
    Operation.LOGIN: "Login failed. Please try again.",
    Operation.FORGOT_PASSWORD: "Request failed. Please try again.",
    Operation.VERIFY_OTP: "OTP verification failed. Please try again.",
    Operation.RESET_PASSWORD: "Password reset failed. Please try again.",
    Operation.SUBMIT_VERIFICATION: "Verification submission failed. Please try again.",
    Operation.RESUBMIT_VERIFICATION: "Verification resubmission failed. Please try again.",
    Operation.APPROVE_VERIFICATION: "Verification approval failed. Please try again.",
    Operation.REJECT_VERIFICATION: "Verification rejection failed. Please try again.",
    Operation.GET_PENDING_VERIFICATIONS: "Failed to retrieve pending verifications.",
}


class AppException(Exception):
    """
    Base exception class for application-specific exceptions.

    Args:
        kind: The allow-listed error kind
        errors: Optional per-field error strings (validation failures)
        status_code: Overrides the default status of the kind
    """
    def __init__(
        self,
        kind: ErrorKind,
        errors: Optional[List[str]] = None,
        status_code: Optional[int] = None
    ):
        super().__init__(kind.value)
        self.kind = kind
        self.errors = errors
        self.status_code = status_code or ERROR_STATUS_CODES[kind]
        self.detail = kind.value


class ValidationFailedException(AppException):
    """Raised with a list of per-field errors."""
    def __init__(self, errors: List[str]):
        super().__init__(ErrorKind.VALIDATION_FAILED, errors=errors)


class OperationFailedException(Exception):
    """
    Unexpected failure of a public operation.

    The original error is logged by the caller; clients only ever see the
    operation's fallback message.
    """
    def __init__(self, operation: Operation):
        super().__init__(FALLBACK_MESSAGES[operation])
        self.operation = operation
        self.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        self.detail = FALLBACK_MESSAGES[operation]


def error_body(message: str, errors: Optional[List[str]] = None) -> dict:
    body = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body


def format_validation_errors(errors) -> List[str]:
    """
    Flatten pydantic error dicts into "field: message" strings.

    Args:
        errors: Output of ``RequestValidationError.errors()``

    Returns:
        List of human-readable error strings
    """
    formatted = []
    for error in errors:
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path", "form")]
        message = error.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        formatted.append(f"{'.'.join(location)}: {message}" if location else message)
    return formatted


async def app_exception_handler(request: Request, exc: AppException):
    """
    Handler for application-specific exceptions.

    Args:
        request: The request that caused the exception
        exc: The exception instance

    Returns:
        JSONResponse: Standardized error response
    """
    logger.info(f"Request rejected: {exc.kind.name} ({request.method} {request.url.path})")
    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.detail, exc.errors),
        headers=headers
    )


async def operation_failed_handler(request: Request, exc: OperationFailedException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.detail)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handler for request validation exceptions.

    Args:
        request: The request that caused the exception
        exc: The validation exception instance

    Returns:
        JSONResponse: Standardized error response with validation details
    """
    errors = format_validation_errors(exc.errors())
    logger.info(f"Validation failed for {request.method} {request.url.path}: {errors}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(ErrorKind.VALIDATION_FAILED.value, errors)
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal Server Error")
    )


# Register exception handlers with FastAPI app
def register_exception_handlers(app):
    """
    Register all exception handlers with the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(OperationFailedException, operation_failed_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
