"""Request/response schemas for user endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from tonedu.store.entities import User


class TelegramLoginRequest(BaseModel):
    telegram_id: str = Field(..., min_length=1, max_length=32)
    display_name: str = Field(..., min_length=1, max_length=100)
    username: str = Field(..., min_length=1, max_length=64)


class TelegramLoginResponse(BaseModel):
    user: User
    created: bool


class WalletUpdateRequest(BaseModel):
    wallet_address: str = Field(..., min_length=1, max_length=128)


class WalletUpdateResponse(BaseModel):
    success: bool = True
    wallet_address: str
