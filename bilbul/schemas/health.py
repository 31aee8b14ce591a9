"""
Health check endpoint schemas.

The health endpoint is PUBLIC (no authentication required).
"""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """
    Response model for GET /health.

    Used by load balancers, monitoring systems, and deployment checks.
    """

    status: str = Field(
        default="ok",
        description="Health status of the API (always 'ok' if responding)",
        examples=["ok"]
    )
    service: str = Field(default="bilbul-backend", examples=["bilbul-backend"])
    active_sessions: int = Field(
        default=0,
        description="Split sessions currently held in memory"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "status": "ok",
                "service": "bilbul-backend",
                "active_sessions": 3
            }
        }
    }
