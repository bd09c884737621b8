from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone


def utc_timestamp() -> datetime:
    return datetime.now(timezone.utc)


# Base Response Models
class BaseResponse(BaseModel):
    """Base response envelope"""
    success: bool = Field(..., description="Whether the operation was successful")
    timestamp: datetime = Field(default_factory=utc_timestamp, description="Response timestamp")

class MessageResponse(BaseResponse):
    """Acknowledgement without a payload (deletes)"""
    success: bool = Field(default=True)
    message: str = Field(..., description="Response message")

class DataResponse(BaseResponse):
    """Single entity or mapping payload"""
    success: bool = Field(default=True)
    data: Any = Field(..., description="Response payload")
    message: Optional[str] = Field(None, description="Response message")

class Pagination(BaseModel):
    """Pagination block for list responses"""
    page: int = Field(..., description="Requested page (1-based)")
    limit: int = Field(..., description="Page size")
    total: int = Field(..., description="Total matching records")
    pages: int = Field(..., description="Total number of pages")

class PaginatedResponse(BaseResponse):
    """Page of records plus pagination metadata"""
    success: bool = Field(default=True)
    data: List[Dict[str, Any]] = Field(..., description="Records on this page")
    pagination: Pagination

class ErrorDetail(BaseModel):
    """Field-level validation error"""
    field: Optional[str] = Field(None, description="Offending field (dotted path)")
    message: str = Field(..., description="What is wrong with it")
    type: Optional[str] = Field(None, description="Error type code")

class ErrorResponse(BaseResponse):
    """Error response envelope"""
    success: bool = Field(default=False, description="Always false for errors")
    error: str = Field(..., description="Error summary")
    message: Optional[str] = Field(None, description="Additional detail")
    details: Optional[List[ErrorDetail]] = Field(None, description="Field-level validation errors")
    available_routes: Optional[List[str]] = Field(None, serialization_alias="availableRoutes")

# Auth Response Models
class LoginResponse(BaseResponse):
    """Response for a successful admin login"""
    success: bool = Field(default=True)
    token: str = Field(..., description="Signed admin credential")
    expires_at: datetime = Field(..., serialization_alias="expiresAt")
    message: str = Field(default="Authentication successful")

class VerifyResponse(BaseResponse):
    """Response for token verification"""
    success: bool = Field(default=True)
    valid: bool = Field(default=True)
    user: Dict[str, Any] = Field(..., description="Decoded token claims")

# Dashboard Models
class DashboardStats(BaseModel):
    """Aggregates across all collections"""
    job_count: int = Field(..., serialization_alias="jobCount")
    feedback_count: int = Field(..., serialization_alias="feedbackCount")
    project_count: int = Field(..., serialization_alias="projectCount")
    total_savings: float = Field(..., serialization_alias="totalSavings")
    total_printing_time: float = Field(..., serialization_alias="totalPrintingTime")
    last_updated: datetime = Field(default_factory=utc_timestamp, serialization_alias="lastUpdated")

class HealthResponse(BaseModel):
    """Service health"""
    status: str = Field(..., description="OK when the service is up")
    message: str
    database: str = Field(..., description="Store connectivity")
    version: str
    timestamp: datetime = Field(default_factory=utc_timestamp)
    features: Dict[str, bool] = Field(default_factory=dict)
