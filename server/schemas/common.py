"""Common schemas used across multiple endpoints."""

from typing import List, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Response model for errors."""
    detail: str
    code: str
    missing_chunks: Optional[List[int]] = None
