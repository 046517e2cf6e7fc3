"""Pydantic schemas for store endpoints.

The access token is write-only: accepted on create/update, never returned.
"""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

# =============================================================================
# Requests
# =============================================================================


class StoreCreate(BaseModel):
    """Register a Shopify store."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    url: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Shop URL or bare shop name, e.g. 'demo' or 'demo.myshopify.com'.",
    )
    access_token: str = Field(..., min_length=1, max_length=255, description="Admin API token.")
    name: str = Field(..., min_length=1, max_length=200, description="Display name.")


class StoreUpdate(BaseModel):
    """Partial store update; omitted fields are left unchanged."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: str | None = Field(None, min_length=1, max_length=200)
    access_token: str | None = Field(None, min_length=1, max_length=255)
    start_date: date | None = Field(None, description="First day pulled by sync.")
    end_date: date | None = Field(None, description="Last day pulled by sync.")

    @model_validator(mode="after")
    def validate_window(self) -> "StoreUpdate":
        """Reject an inverted sync window when both bounds are given."""
        if self.start_date and self.end_date and self.end_date < self.start_date:
            msg = "end_date must be on or after start_date"
            raise ValueError(msg)
        return self


# =============================================================================
# Responses
# =============================================================================


class StoreResponse(BaseModel):
    """A registered store (without credentials)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    url: str
    start_date: date | None = None
    end_date: date | None = None
    created_at: datetime
    updated_at: datetime


class StoreListResponse(BaseModel):
    """All registered stores."""

    stores: list[StoreResponse]
    total: int = Field(..., ge=0)


class SyncAcceptedResponse(BaseModel):
    """Acknowledgement of a queued store sync."""

    message: str = "Sync started"
    job_id: str = Field(..., description="Poll GET /jobs/{job_id} for the outcome.")
