"""Model signup request/response schemas."""

from datetime import date, datetime, timezone
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from app.config import settings
from app.validators import age_on


class ModelSignupRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr = Field(max_length=254)
    password: str = Field(min_length=8)
    instagram_username: Optional[str] = Field(None, max_length=30)
    tiktok_username: Optional[str] = Field(None, max_length=24)
    phone: Optional[str] = Field(None, max_length=20)
    date_of_birth: Optional[date] = None
    height: Optional[str] = Field(None, max_length=10)

    @field_validator("name", "email", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("email")
    @classmethod
    def _lowercase_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("date_of_birth")
    @classmethod
    def _old_enough(cls, value: Optional[date]) -> Optional[date]:
        if value is not None:
            today = datetime.now(timezone.utc).date()
            if age_on(value, today) < settings.MINIMUM_SIGNUP_AGE:
                raise ValueError(f"You must be at least {settings.MINIMUM_SIGNUP_AGE} years old to apply")
        return value

    @model_validator(mode="after")
    def _at_least_one_handle(self):
        if not (self.instagram_username or "").strip() and not (self.tiktok_username or "").strip():
            raise ValueError("Please provide at least one social media handle")
        return self


class ModelSignupResponse(BaseModel):
    success: bool
    message: str
    existing: bool = False
    application_id: Optional[str] = None


class ApplicationResponse(BaseModel):
    id: str
    actor_id: str
    display_name: str
    email: str
    instagram_username: Optional[str]
    tiktok_username: Optional[str]
    status: str
    created_at: str
    reviewed_at: Optional[str]
