"""
Authentication routes: registration, login and the OTP password reset flow.
"""
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from ..core.responses import ApiResponse
from ..database import get_db
from ..exceptions import AppException, Operation, OperationFailedException
from .schemas import (
    ForgotPasswordRequest,
    LoginData,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    ResetTokenData,
    UserResponse,
    VerifyOtpRequest
)
from .service import (
    FORGOT_PASSWORD_MESSAGE,
    forgot_password,
    login_user,
    register_user,
    reset_password,
    verify_otp
)

# Set up logging
logger = logging.getLogger(__name__)

# Create API router
router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[UserResponse],
    summary="Register a USER or MED account"
)
def register_route(
    user_data: RegisterRequest,
    db: Session = Depends(get_db)
):
    """
    Self-registration endpoint.

    MED accounts are created as PENDING_VERIFICATION and must submit their
    documents before an admin can approve them.

    Args:
        user_data: Registration details
        db: Database session

    Returns:
        ApiResponse with the created user
    """
    try:
        user = register_user(
            db=db,
            full_name=user_data.full_name,
            email=user_data.email,
            phone_number=user_data.phone_number,
            password=user_data.password,
            role=user_data.role
        )
    except AppException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during registration: {str(e)}")
        raise OperationFailedException(Operation.REGISTER)

    return ApiResponse(
        message="Account created successfully",
        data=UserResponse.model_validate(user)
    )


@router.post("/login", response_model=ApiResponse[LoginData], summary="User Login")
def login_route(
    login_data: LoginRequest,
    db: Session = Depends(get_db)
):
    """
    User login endpoint.

    Args:
        login_data: User login credentials
        db: Database session

    Returns:
        ApiResponse with the session token and user
    """
    try:
        result = login_user(db=db, email=login_data.email, password=login_data.password)
    except AppException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during login: {str(e)}")
        raise OperationFailedException(Operation.LOGIN)

    return ApiResponse(
        message="Login successful",
        data=LoginData(token=result["token"], user=UserResponse.model_validate(result["user"]))
    )


@router.post("/forgot-password", response_model=ApiResponse[None], summary="Request Password Reset OTP")
def forgot_password_route(
    reset_request: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    """
    Send a reset OTP if the email is registered.

    Always answers with the same message.
    """
    try:
        result = forgot_password(db=db, email=reset_request.email, background_tasks=background_tasks)
        message = result["message"]
    except Exception as e:
        logger.error(f"Unexpected error during forgot password: {str(e)}")
        message = FORGOT_PASSWORD_MESSAGE

    return ApiResponse(message=message)


@router.post("/verify-otp", response_model=ApiResponse[ResetTokenData], summary="Verify Password Reset OTP")
def verify_otp_route(
    otp_data: VerifyOtpRequest,
    db: Session = Depends(get_db)
):
    """
    Exchange an OTP for a short-lived reset token.

    Args:
        otp_data: Email and OTP code
        db: Database session

    Returns:
        ApiResponse with the reset token
    """
    try:
        result = verify_otp(db=db, email=otp_data.email, code=otp_data.otp)
    except AppException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during OTP verification: {str(e)}")
        raise OperationFailedException(Operation.VERIFY_OTP)

    return ApiResponse(
        message="OTP verified successfully",
        data=ResetTokenData(reset_token=result["reset_token"])
    )


@router.post("/reset-password", response_model=ApiResponse[None], summary="Reset Password")
def reset_password_route(
    reset_data: ResetPasswordRequest,
    db: Session = Depends(get_db)
):
    try:
        result = reset_password(
            db=db,
            reset_token=reset_data.reset_token,
            new_password=reset_data.new_password
        )
    except AppException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error during password reset: {str(e)}")
        raise OperationFailedException(Operation.RESET_PASSWORD)

    return ApiResponse(message=result["message"])
