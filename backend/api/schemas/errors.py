"""Error response schemas"""
from pydantic import BaseModel
from typing import Any, Optional


class ErrorResponse(BaseModel):
    """Standard error response format"""
    error: str
    details: Optional[Any] = None
    status: Optional[int] = None
