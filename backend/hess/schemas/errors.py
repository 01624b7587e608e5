"""Error response schemas."""
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Standard error response schema.

    Every 4xx/5xx response body has this shape; ``details`` is only present
    for request validation failures.
    """

    error: str = Field(
        ...,
        description="Human-readable error message",
        examples=["Pending registration not found", "Invalid request body"]
    )
    details: Optional[list[dict[str, Any]]] = Field(
        None,
        description="Field-level validation errors",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {"error": "Pending registration not found"},
                {
                    "error": "Invalid request body",
                    "details": [{"loc": ["body", "registrationId"], "msg": "Field required"}],
                },
            ]
        }
    )
