"""
Medical professional verification API.

Provides registration, login, OTP-based password reset and the
identity-verification workflow for medical professionals.
"""
