"""Coin balance, ledger and tip schemas."""

from typing import Optional

from pydantic import BaseModel, Field


class BalanceResponse(BaseModel):
    balance: int
    pending: int
    available: int


class TransactionResponse(BaseModel):
    id: str
    amount: int
    action: str
    metadata: dict
    created_at: str


class EarningsResponse(BaseModel):
    total: int
    by_action: dict[str, int]


class TipRequest(BaseModel):
    recipient_username: str
    amount: int = Field(ge=1)


class TipResponse(BaseModel):
    success: bool = True
    amount: int
    recipient_username: str
    new_balance: int


class GrantRequest(BaseModel):
    actor_id: str
    amount: int = Field(ge=1)
    reason: str = "Admin grant"


class GrantResponse(BaseModel):
    actor_id: str
    new_balance: int


class NotificationResponse(BaseModel):
    id: str
    type: str
    title: str
    body: Optional[str]
    data: dict
    is_read: bool
    created_at: str
