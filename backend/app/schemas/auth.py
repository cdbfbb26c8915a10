"""Auth request/response schemas."""

from typing import Optional

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    email: str
    password: str = Field(min_length=8)
    account_type: str = "fan"  # fan | brand | model
    display_name: str = Field(min_length=1, max_length=255)
    username: Optional[str] = None  # required for model accounts


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class ActorResponse(BaseModel):
    id: str
    email: str
    type: str
    display_name: str
    coin_balance: Optional[int] = None
    created_at: str

    class Config:
        from_attributes = True
