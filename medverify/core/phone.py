"""
Phone number normalization to E.164.
"""
import re

E164_PATTERN = re.compile(r"^\+[1-9]\d{6,14}$")

def normalize_phone(phone: str) -> str:
    """
    Normalize a phone number to E.164 format.

    Spaces, dashes, dots and brackets are removed and an international
    ``00`` prefix is rewritten as ``+``. The country code is mandatory.

    Args:
        phone: Phone number as typed by the user

    Returns:
        str: Phone number such as ``+14155552671``

    Raises:
        ValueError: If the number cannot be expressed in E.164
    """
    if not isinstance(phone, str):
        raise ValueError("Invalid phone number format")
    phone_clean = re.sub(r"[^\d+]", "", phone.strip())
    if phone_clean.startswith("00"):
        phone_clean = "+" + phone_clean[2:]
    if not E164_PATTERN.match(phone_clean):
        raise ValueError("Invalid phone number format")
    return phone_clean
