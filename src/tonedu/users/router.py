"""User router: Telegram sign-in, profile lookup and wallet binding."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from tonedu.dependencies import get_user_service
from tonedu.store.entities import User
from tonedu.users.schemas import (
    TelegramLoginRequest,
    TelegramLoginResponse,
    WalletUpdateRequest,
    WalletUpdateResponse,
)
from tonedu.users.service import UserService

router = APIRouter(prefix="/api/v1", tags=["Users"])


@router.post("/auth/telegram")
async def telegram_login(
    body: TelegramLoginRequest,
    response: Response,
    svc: UserService = Depends(get_user_service),  # noqa: B008
) -> TelegramLoginResponse:
    """Sign in with a Telegram identity, registering the user on first visit."""
    user, created = await svc.telegram_login(body.telegram_id, body.display_name, body.username)
    if created:
        response.status_code = 201
    return TelegramLoginResponse(user=user, created=created)


@router.get("/users/{user_id}")
async def get_user(
    user_id: int,
    svc: UserService = Depends(get_user_service),  # noqa: B008
) -> User:
    return await svc.get_user(user_id)


@router.patch("/users/{user_id}/wallet")
async def update_wallet(
    user_id: int,
    body: WalletUpdateRequest,
    svc: UserService = Depends(get_user_service),  # noqa: B008
) -> WalletUpdateResponse:
    """Bind a TON payout address. Raw and user-friendly forms are accepted."""
    user = await svc.update_wallet(user_id, body.wallet_address)
    return WalletUpdateResponse(wallet_address=user.wallet_address or "")
