"""
Response envelope shared by every endpoint.
"""
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """
    Success envelope.

    Attributes:
        success: Always True for successful responses
        message: Human-readable outcome
        data: Optional operation payload
    """
    success: bool = True
    message: str
    data: Optional[T] = None
