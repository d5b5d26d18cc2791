"""
Roomly Backend - Shared Schema Building Blocks
===============================================

What:  The camelCase base model used by every request/response schema, the
       error body returned by the global exception handlers, and small
       envelopes reused across routers.
How:   `alias_generator=to_camel` maps snake_case attributes to the camelCase
       JSON the web client speaks; `populate_by_name` lets services build
       schemas with Python names; `from_attributes` reads ORM rows directly.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ErrorResponse(BaseModel):
    """
    Standard error response format for all API errors.

    Example:
        {
            "error": "failed_validation",
            "message": "One or more fields are invalid",
            "details": {"email": "must be a valid email address"},
            "request_id": "abc-123-def"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Per-field messages or extra context",
    )
    request_id: Optional[str] = Field(
        default=None,
        description="Request ID for log correlation",
    )


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    """Health check response for load balancers and orchestration probes."""
    status: str = Field(description="Overall health: ok or degraded")
    version: str = Field(description="API version")
    database: str = Field(description="Database connectivity: connected or disconnected")
    uptime_seconds: float = Field(description="Seconds since application start")
