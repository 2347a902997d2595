"""
Authentication module.

This module provides:
- User registration (USER and MED roles)
- Login with session tokens
- Password reset through one-time passcodes
- Bearer-token authentication and role checks
"""
