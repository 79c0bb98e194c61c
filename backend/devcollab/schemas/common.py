"""
Common schemas and response models
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, Field
from datetime import datetime, timezone


class BaseResponse(BaseModel):
    """Base response model"""
    success: bool = Field(default=True)
    message: Optional[str] = Field(default=None)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class DataResponse(BaseResponse):
    """Response with data"""
    data: Any = Field(...)


class ErrorResponse(BaseResponse):
    """Error response model"""
    success: bool = Field(default=False)
    error_code: Optional[str] = Field(default=None)
    details: Optional[Dict[str, Any]] = Field(default=None)


class HealthResponse(BaseModel):
    """Health check response"""
    status: str = Field(...)
    timestamp: float = Field(...)
    version: str = Field(...)
    scheduler: str = Field(default="not_started")
