"""
One-time passcode generation.
"""
import secrets
from datetime import datetime, timedelta, timezone

OTP_LENGTH = 6

def generate_otp() -> str:
    """
    Generate a numeric one-time passcode.

    Returns:
        A 6-digit string without a leading zero (100000-999999)
    """
    return str(100000 + secrets.randbelow(900000))

def get_otp_expiry(minutes: int = 10) -> datetime:
    """
    Get the absolute expiry time for an OTP issued now.

    Args:
        minutes: Minutes until expiration

    Returns:
        datetime: Timezone-aware UTC expiry
    """
    return datetime.now(timezone.utc) + timedelta(minutes=minutes)
