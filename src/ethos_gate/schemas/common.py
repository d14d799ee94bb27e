"""Shared response schemas."""

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Body returned with every non-2xx response."""

    error: str = Field(..., description="Human-readable reason")
    retry_after: int | None = Field(
        None,
        alias="retryAfter",
        description="Seconds to wait before retrying (rate limits only)",
    )

    model_config = ConfigDict(populate_by_name=True)
