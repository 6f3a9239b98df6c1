"""
BookReview Backend: Response Envelope
=======================================

What:  The uniform wrappers every endpoint returns.

    Success:  {"success": true,  "message": "...", "data": {...} | null}
    Failure:  {"success": false, "message": "...", "errors": [...]?, "trace": "..."?}

Clients branch on `success` alone; `errors` is only present for validation
failures and `trace` only outside production.
"""

from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

DataT = TypeVar("DataT")


class ApiResponse(BaseModel, Generic[DataT]):
    """Success envelope; parameterize with the payload model, e.g. ApiResponse[BookData]."""

    success: bool = Field(default=True, description="Always true for successful responses")
    message: str = Field(description="Human-readable outcome")
    data: Optional[DataT] = Field(default=None, description="Operation payload (null when there is none)")


class FieldViolation(BaseModel):
    field: str = Field(description="Request field that failed validation")
    message: str = Field(description="Why the value was rejected")


class ErrorResponse(BaseModel):
    """
    Failure envelope, used for OpenAPI docs; handlers build the same shape
    through bookreview.main.error_response().
    """

    success: bool = Field(default=False)
    message: str = Field(description="Human-readable error description")
    errors: Optional[List[FieldViolation]] = Field(
        default=None,
        description="Field-level violations (validation failures only)",
    )
    trace: Optional[str] = Field(
        default=None,
        description="Diagnostic stack trace (non-production environments only)",
    )


class HealthData(BaseModel):
    status: str = Field(description="healthy or unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since the process started")
