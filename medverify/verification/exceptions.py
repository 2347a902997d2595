"""
Verification-specific exceptions.
"""
from ..exceptions import AppException, ErrorKind

class NotEligibleForVerificationException(AppException):
    """Exception raised when documents are submitted by an account that is not pending verification."""
    def __init__(self):
        super().__init__(ErrorKind.NOT_ELIGIBLE_FOR_VERIFICATION)

class OnlyRejectedCanResubmitException(AppException):
    """Exception raised when a non-rejected account tries to resubmit."""
    def __init__(self):
        super().__init__(ErrorKind.ONLY_REJECTED_CAN_RESUBMIT)

class NotPendingVerificationException(AppException):
    """Exception raised when an admin reviews an account that is not pending."""
    def __init__(self):
        super().__init__(ErrorKind.NOT_PENDING_VERIFICATION)

class RejectionReasonRequiredException(AppException):
    """Exception raised when a rejection has no reason."""
    def __init__(self):
        super().__init__(ErrorKind.REJECTION_REASON_REQUIRED)
