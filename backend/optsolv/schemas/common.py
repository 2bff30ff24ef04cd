"""
OptSolv Backend — Shared Schema Building Blocks
=================================================

What:  The camelCase base model, the success envelope and the error/health
       response shapes shared by every route module.
How:   CamelModel generates camelCase aliases (documentId, imageUrl, ...) while
       Python code keeps snake_case attribute names. FastAPI serializes
       response models by alias, and populate_by_name lets services build
       them with snake_case keyword arguments.
"""

from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Envelope(CamelModel, Generic[T]):
    """
    Success wrapper: {"success": true, "data": ...}.

    Example:
        Envelope[OcrData](data=OcrData(text="Buy milk"))
    """
    success: bool = True
    data: T


class ErrorResponse(CamelModel):
    """
    Error wrapper returned by the global exception handlers.

    Example:
        {
            "success": false,
            "error": "empty_result",
            "message": "No text found in image",
            "details": null,
            "requestId": "3f9a1c2e"
        }
    """
    success: bool = False
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[Dict[str, Any]] = Field(default=None)
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(CamelModel):
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str
    database: str = Field(description="connected | disconnected")
    gemini: str = Field(description="available | unavailable | not_configured | circuit_open")
    uptime_seconds: float
