"""
Memory Locks API — Shared Response Schemas
===========================================

What:  The `{Success, Message, Data}` envelope every endpoint returns, the
       error envelope, the health payload, and the base classes for request
       bodies (camelCase keys) and DTOs (PascalCase keys).
Who:   Route handlers and the exception handlers in main.py.

Key casing:
    Request bodies arrive from the mobile app in camelCase (lockId, newName).
    Responses keep the PascalCase contract of the previous .NET API
    (LockId, LockName) so existing clients keep working.
"""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel, to_pascal

DataT = TypeVar("DataT")


class RequestModel(BaseModel):
    """Base for JSON request bodies: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DtoModel(BaseModel):
    """Base for response DTOs: PascalCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_pascal,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(DtoModel, Generic[DataT]):
    """
    Boolean-success envelope.

    Example:
        {"Success": true, "Message": "Lock name updated successfully", "Data": {...}}
    """

    success: bool = True
    message: Optional[str] = None
    data: Optional[DataT] = None


class ErrorResponse(DtoModel):
    """
    Error envelope produced by the global exception handlers.

    Example:
        {
            "Success": false,
            "Message": "Lock with ID '42' was not found",
            "Code": "NOT_FOUND",
            "RequestId": "a1b2c3d4"
        }
    """

    success: bool = False
    message: str = Field(description="Human-readable error description")
    code: str = Field(description="Machine-readable error code")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(DtoModel):
    """Liveness payload for load balancers and the sibling workers."""

    success: bool = True
    status: str = Field(description="healthy or unhealthy")
    message: str
    version: str
    environment: str
    database: str = Field(description="connected or disconnected")
    timestamp: str
    uptime_seconds: float
