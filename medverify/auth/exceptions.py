"""
Authentication-specific exceptions.
"""
from typing import Optional

from ..exceptions import AppException, ErrorKind

class EmailAlreadyExistsException(AppException):
    """Exception raised when email already exists."""
    def __init__(self):
        super().__init__(ErrorKind.EMAIL_ALREADY_REGISTERED)

class PhoneAlreadyExistsException(AppException):
    """Exception raised when phone number already exists."""
    def __init__(self):
        super().__init__(ErrorKind.PHONE_ALREADY_REGISTERED)

class InvalidPhoneException(AppException):
    """Exception raised when a phone number cannot be normalized."""
    def __init__(self):
        super().__init__(ErrorKind.INVALID_PHONE)

class InvalidRoleException(AppException):
    """Exception raised when registration requests a forbidden role."""
    def __init__(self):
        super().__init__(ErrorKind.INVALID_ROLE)

class InvalidCredentialsException(AppException):
    """Exception raised for an unknown email or a wrong password alike."""
    def __init__(self):
        super().__init__(ErrorKind.INVALID_CREDENTIALS)

class AccountSuspendedException(AppException):
    """Exception raised when a suspended account tries to log in."""
    def __init__(self):
        super().__init__(ErrorKind.ACCOUNT_SUSPENDED)

class InvalidOtpException(AppException):
    """Exception raised when an OTP is checked for an unknown email."""
    def __init__(self):
        super().__init__(ErrorKind.INVALID_OTP)

class ExpiredOtpException(AppException):
    """Exception raised when no unused, unexpired OTP matches."""
    def __init__(self):
        super().__init__(ErrorKind.INVALID_OR_EXPIRED_OTP)

class InvalidResetTokenException(AppException):
    """Exception raised when a reset token is missing, expired or of the wrong kind."""
    def __init__(self):
        super().__init__(ErrorKind.INVALID_RESET_TOKEN)

class AuthenticationRequiredException(AppException):
    """Exception raised when no bearer token is attached."""
    def __init__(self):
        super().__init__(ErrorKind.AUTHENTICATION_REQUIRED)

class InvalidTokenException(AppException):
    """Exception raised when a bearer token is invalid."""
    def __init__(self):
        super().__init__(ErrorKind.INVALID_TOKEN)

class PermissionDeniedException(AppException):
    """Exception raised when user doesn't have required role."""
    def __init__(self):
        super().__init__(ErrorKind.INSUFFICIENT_PERMISSIONS)

class UserNotFoundException(AppException):
    """Exception raised when a referenced user does not exist."""
    def __init__(self, status_code: Optional[int] = None):
        super().__init__(ErrorKind.USER_NOT_FOUND, status_code=status_code)
