"""Schema for the outcome of one channel dispatch attempt."""

from pydantic import Field

from core.schemas.base_schema_model import BaseSchemaModel


class DispatchResult(BaseSchemaModel):
    """Outcome of a single dispatch attempt over a channel."""

    ok: bool = Field(..., description="Whether the channel accepted the message")
    external_id: str | None = Field(
        None, description="Identifier assigned by the channel provider"
    )
    error: str | None = Field(None, description="Failure description")

    @classmethod
    def success(cls, external_id: str | None = None) -> "DispatchResult":
        """Build a successful result."""
        return cls(ok=True, external_id=external_id)

    @classmethod
    def failure(cls, error: str) -> "DispatchResult":
        """Build a failed result."""
        return cls(ok=False, error=error)
