"""User data model for rytetime."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from rytetime.models.constants import DEFAULT_TIMEZONE


class User(BaseModel):
    """Task owner and notification recipient."""

    id: str = Field(..., description="Unique user identifier (token subject)")
    email: str = Field(..., description="User email address")
    name: Optional[str] = Field(None, description="User display name")
    phone: Optional[str] = Field(None, description="E.164 phone number for SMS reminders")
    push_token: Optional[str] = Field(None, description="Device token for push reminders")
    timezone: str = Field(DEFAULT_TIMEZONE, description="Preferred IANA zone for the local view")
    created_at: datetime = Field(..., description="User creation timestamp")
    updated_at: datetime = Field(..., description="User last update timestamp")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True
