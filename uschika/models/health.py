"""
Health endpoint response models.
"""

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    """Liveness plus current chat counts."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "ok",
                "timestamp": "2025-01-01T12:00:00Z",
                "waiting": 1,
                "active_sessions": 3,
                "connections": 9,
            }
        }
    )

    status: str = Field(default="ok", description="Overall status")
    timestamp: str = Field(..., description="Time of the check (ISO 8601 UTC)")
    waiting: int = Field(..., ge=0, description="Connections waiting for a partner")
    active_sessions: int = Field(..., ge=0, description="Chat sessions in progress")
    connections: int = Field(..., ge=0, description="Open connections")
